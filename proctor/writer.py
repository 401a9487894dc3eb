"""
Serialized writes to the session store.

Every write for a session goes through one lock keyed by session id.
Checkpoints are best-effort: failures are logged and dropped. The terminal
write (submit or disqualify) seals the session, so checkpoints still queued
behind it are discarded, and is retried with exponential backoff.
"""

import asyncio
import logging
from typing import Any, Awaitable, Callable, Dict, Optional, Set

from .errors import FatalStoreFailure, StoreError, TransientStoreFailure
from .store import SessionStore

logger = logging.getLogger(__name__)


class SessionWriter:
    """Per-session write queue in front of a SessionStore."""

    def __init__(
        self,
        store: SessionStore,
        terminal_attempts: int = 5,
        backoff_seconds: float = 0.5,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        session_logger=None
    ):
        self.store = store
        self.terminal_attempts = terminal_attempts
        self.backoff_seconds = backoff_seconds
        self._sleep = sleep
        self.session_logger = session_logger

        self._locks: Dict[str, asyncio.Lock] = {}
        self._sealed: Set[str] = set()
        self._finalized: Set[str] = set()
        self._pending: Set[asyncio.Task] = set()

    def _lock_for(self, session_id: str) -> asyncio.Lock:
        if session_id not in self._locks:
            self._locks[session_id] = asyncio.Lock()
        return self._locks[session_id]

    def is_sealed(self, session_id: str) -> bool:
        return session_id in self._sealed

    def is_finalized(self, session_id: str) -> bool:
        return session_id in self._finalized

    async def _try_update(self, session_id: str, patch: Dict[str, Any]) -> Optional[str]:
        """Run one update. Returns None on success, else a failure description."""
        try:
            ok = await self.store.update_session(session_id, patch)
        except StoreError as e:
            return str(e)
        return None if ok else "store rejected the update"

    # ===== CHECKPOINTS =====

    async def checkpoint(self, session_id: str, patch: Dict[str, Any]) -> bool:
        """Best-effort write. Never raises for store failures."""
        if session_id in self._sealed:
            return False

        async with self._lock_for(session_id):
            # Sealed while waiting for the lock
            if session_id in self._sealed:
                logger.debug("Dropping checkpoint for sealed session %s", session_id)
                return False

            error = await self._try_update(session_id, patch)

        if error:
            logger.warning("Checkpoint for session %s failed: %s", session_id, error)
            if self.session_logger:
                self.session_logger("CHECKPOINT_FAILED", error)
            return False
        return True

    def schedule_checkpoint(self, session_id: str, patch: Dict[str, Any]) -> asyncio.Task:
        """Fire-and-forget checkpoint. Must be called from a running event loop."""
        task = asyncio.get_running_loop().create_task(self.checkpoint(session_id, patch))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        return task

    async def drain(self):
        """Wait for every scheduled checkpoint to finish."""
        while self._pending:
            await asyncio.gather(*list(self._pending))

    # ===== AWAITED WRITES =====

    async def write(self, session_id: str, patch: Dict[str, Any]):
        """
        A single awaited write that the caller needs to succeed.

        Raises:
            TransientStoreFailure: If the store did not apply the patch, or
                the session is already sealed
        """
        if session_id in self._sealed:
            raise TransientStoreFailure(f"Session {session_id} is already finalized")

        async with self._lock_for(session_id):
            error = await self._try_update(session_id, patch)
        if error:
            raise TransientStoreFailure(f"Could not update session {session_id}: {error}")

    async def finalize(self, session_id: str, patch: Dict[str, Any]):
        """
        Durably write the terminal patch, retrying with exponential backoff.

        Calling it again after success is a no-op, so a retry after a fatal
        failure never writes twice.

        Raises:
            FatalStoreFailure: If every attempt failed
        """
        if session_id in self._finalized:
            return

        self._sealed.add(session_id)
        delay = self.backoff_seconds
        error = None

        async with self._lock_for(session_id):
            for attempt in range(1, self.terminal_attempts + 1):
                error = await self._try_update(session_id, patch)
                if error is None:
                    self._finalized.add(session_id)
                    return

                logger.warning(
                    "Terminal write for session %s failed (attempt %d/%d): %s",
                    session_id, attempt, self.terminal_attempts, error
                )
                if attempt < self.terminal_attempts:
                    await self._sleep(delay)
                    delay *= 2

        if self.session_logger:
            self.session_logger("FINALIZE_FAILED", f"Attempts: {self.terminal_attempts}, Last error: {error}")
        raise FatalStoreFailure(
            f"Could not save the final state of session {session_id}: {error}",
            attempts=self.terminal_attempts
        )
