"""
Violation Monitor

Counts integrity signals during an exam and escalates to disqualification
once the configured maximum is reached. Detection is client-reported and
best-effort: the count is an audit trail and a deterrent.
"""

import logging
from typing import Callable, List, Optional

from .models import ViolationEvent, utcnow
from .signals import SignalSource, ViolationType

logger = logging.getLogger(__name__)


class ViolationMonitor:
    """Turns signals from a SignalSource into a monotonic violation count."""

    def __init__(
        self,
        source: SignalSource,
        max_violations: int,
        on_violation: Optional[Callable[[str, int], None]] = None,
        on_disqualify: Optional[Callable[[], None]] = None,
        initial_count: int = 0,
        session_logger=None
    ):
        self.source = source
        self.max_violations = max_violations
        self.on_violation = on_violation
        self.on_disqualify = on_disqualify
        self.session_logger = session_logger

        self.count = initial_count
        self.events: List[ViolationEvent] = []
        self.enabled = False
        self.disqualified = False

    def enable(self):
        """
        Attach to the signal source and start counting.

        A count carried over from an earlier attempt that already reached the
        limit escalates right away.
        """
        if self.enabled:
            return

        self.enabled = True
        self.source.attach(self._handle_signal)

        if self.session_logger:
            self.session_logger("MONITORING_STARTED", f"Violations so far: {self.count}/{self.max_violations}")

        if self.count > 0:
            self._escalate_at_limit()

    def disable(self):
        """Detach from the signal source. Idempotent, safe before enable()."""
        was_enabled = self.enabled
        self.enabled = False
        self.source.detach()

        if was_enabled and self.session_logger:
            self.session_logger("MONITORING_STOPPED", f"Violations recorded: {self.count}")

    def _handle_signal(self, signal: ViolationType):
        # A signal can still be in flight while the session tears down
        if not self.enabled:
            logger.debug("Ignoring %s: monitor disabled", signal.value)
            return

        self.count += 1
        event = ViolationEvent(type=signal.value, timestamp=utcnow(), count=self.count)
        self.events.append(event)
        logger.info("Violation %s (%d/%d)", signal.value, self.count, self.max_violations)

        if self.session_logger:
            self.session_logger("VIOLATION", f"Type: {signal.value}, Count: {self.count}/{self.max_violations}")

        if self.on_violation:
            self.on_violation(signal.value, self.count)

        self._escalate_at_limit()

    def _escalate_at_limit(self):
        if self.count >= self.max_violations and not self.disqualified:
            self.disqualified = True
            if self.on_disqualify:
                self.on_disqualify()
