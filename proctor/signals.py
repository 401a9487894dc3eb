"""
Environment signal sources.

A signal source delivers integrity-relevant events from the host (browser
bridge, terminal, test fixture) to a single handler. The violation monitor
only talks to this interface, never to the host directly.
"""

import enum
import logging
from typing import Callable, Optional

logger = logging.getLogger(__name__)


class ViolationType(str, enum.Enum):
    TAB_SWITCH = "tab_switch"
    FULLSCREEN_EXIT = "fullscreen_exit"
    RIGHT_CLICK = "right_click"
    COPY_ATTEMPT = "copy_attempt"
    CUT_ATTEMPT = "cut_attempt"
    PASTE_ATTEMPT = "paste_attempt"
    KEYBOARD_SHORTCUT = "keyboard_shortcut"
    WINDOW_BLUR = "window_blur"


SignalHandler = Callable[[ViolationType], None]

# Keys that count as a shortcut when pressed with ctrl or meta
MODIFIER_DENYLIST = {"c", "v", "x", "a", "p", "s", "u", "f12"}

# Keys that count as a shortcut on their own
BARE_KEY_DENYLIST = {"F5", "F11", "F12", "PrintScreen"}

CLIPBOARD_EVENTS = {
    "copy": ViolationType.COPY_ATTEMPT,
    "cut": ViolationType.CUT_ATTEMPT,
    "paste": ViolationType.PASTE_ATTEMPT,
}


def is_denylisted_key(key: str, ctrl: bool = False, meta: bool = False) -> bool:
    """Check whether a key press is a blocked shortcut (copy, print, devtools...)."""
    if (ctrl or meta) and key.lower() in MODIFIER_DENYLIST:
        return True
    return key in BARE_KEY_DENYLIST


class SignalSource:
    """Base class for anything that can feed the violation monitor."""

    def __init__(self):
        self._handler: Optional[SignalHandler] = None

    @property
    def attached(self) -> bool:
        return self._handler is not None

    def attach(self, handler: SignalHandler) -> None:
        """Start delivering signals to `handler`."""
        self._handler = handler

    def detach(self) -> None:
        """Stop delivering signals. Safe to call when not attached."""
        self._handler = None

    def emit(self, signal: ViolationType) -> bool:
        """
        Deliver a signal to the attached handler.

        Returns:
            True if a handler received it, False if the source is detached
        """
        handler = self._handler
        if handler is None:
            logger.debug("Dropping %s: no handler attached", signal.value)
            return False
        handler(ViolationType(signal))
        return True


class HostSignalBridge(SignalSource):
    """
    Translates raw host events into violation signals.

    A host integration calls the `on_*` methods as events arrive; events that
    are not violations (becoming visible, entering fullscreen, harmless
    keys) are ignored.
    """

    def __init__(self):
        super().__init__()
        self.fullscreen = False

    def on_visibility_change(self, hidden: bool) -> bool:
        if hidden:
            return self.emit(ViolationType.TAB_SWITCH)
        return False

    def on_fullscreen_change(self, active: bool) -> bool:
        was_fullscreen = self.fullscreen
        self.fullscreen = active
        if was_fullscreen and not active:
            return self.emit(ViolationType.FULLSCREEN_EXIT)
        return False

    def on_context_menu(self) -> bool:
        return self.emit(ViolationType.RIGHT_CLICK)

    def on_clipboard(self, event_type: str) -> bool:
        signal = CLIPBOARD_EVENTS.get(event_type)
        if signal is None:
            return False
        return self.emit(signal)

    def on_key(self, key: str, ctrl: bool = False, meta: bool = False) -> bool:
        if is_denylisted_key(key, ctrl=ctrl, meta=meta):
            return self.emit(ViolationType.KEYBOARD_SHORTCUT)
        return False

    def on_blur(self) -> bool:
        return self.emit(ViolationType.WINDOW_BLUR)
