"""
Tests for the per-session write queue.

Tests write behaviour including:
- Best-effort checkpoints
- Sealing on the terminal write
- Exponential backoff and fatal failure
- Terminal writes whose acknowledgement was lost
"""

import asyncio
from unittest.mock import AsyncMock, Mock, call

import pytest

from proctor.bank import Bank
from proctor.errors import FatalStoreFailure, StoreError, TransientStoreFailure
from proctor.models import SessionStatus
from proctor.store import FileSessionStore
from proctor.writer import SessionWriter


def make_writer(update_result=True, attempts=3):
    store = Mock()
    store.update_session = AsyncMock(return_value=update_result)
    writer = SessionWriter(store, terminal_attempts=attempts, backoff_seconds=0.5,
                           sleep=AsyncMock(), session_logger=Mock())
    return store, writer


class TestCheckpoint:
    """Test best-effort checkpoints."""

    def test_checkpoint_success(self):
        store, writer = make_writer()

        assert asyncio.run(writer.checkpoint("s1", {"answers": [1]})) is True
        store.update_session.assert_awaited_once_with("s1", {"answers": [1]})

    def test_checkpoint_failure_is_swallowed(self):
        store, writer = make_writer()
        store.update_session.side_effect = StoreError("timeout")

        assert asyncio.run(writer.checkpoint("s1", {"answers": [1]})) is False
        writer.session_logger.assert_called_once_with("CHECKPOINT_FAILED", "timeout")

    def test_rejected_checkpoint_reports_false(self):
        _, writer = make_writer(update_result=False)

        assert asyncio.run(writer.checkpoint("s1", {"violation_count": 1})) is False

    def test_scheduled_checkpoints_drain(self):
        store, writer = make_writer()

        async def scenario():
            writer.schedule_checkpoint("s1", {"answers": [0, None]})
            writer.schedule_checkpoint("s1", {"answers": [0, 2]})
            await writer.drain()

        asyncio.run(scenario())

        assert store.update_session.await_args_list == [
            call("s1", {"answers": [0, None]}),
            call("s1", {"answers": [0, 2]}),
        ]


class TestSealing:
    """Test that the terminal write wins over queued checkpoints."""

    def test_checkpoint_after_finalize_is_dropped(self):
        store, writer = make_writer()

        async def scenario():
            await writer.finalize("s1", {"status": "submitted"})
            return await writer.checkpoint("s1", {"answers": [3]})

        assert asyncio.run(scenario()) is False
        store.update_session.assert_awaited_once_with("s1", {"status": "submitted"})
        assert writer.is_sealed("s1")
        assert writer.is_finalized("s1")

    def test_queued_checkpoint_behind_terminal_write_is_dropped(self):
        store, writer = make_writer()
        calls = []

        async def scenario():
            release = asyncio.Event()

            async def slow_update(session_id, patch):
                calls.append(patch)
                if len(calls) == 1:
                    await release.wait()
                return True

            store.update_session.side_effect = slow_update

            in_flight = writer.schedule_checkpoint("s1", {"answers": [0]})
            await asyncio.sleep(0)
            queued = writer.schedule_checkpoint("s1", {"answers": [1]})
            terminal = asyncio.ensure_future(writer.finalize("s1", {"status": "submitted", "answers": [2]}))
            await asyncio.sleep(0)
            release.set()
            await asyncio.gather(in_flight, queued, terminal)
            return queued.result()

        queued_result = asyncio.run(scenario())

        assert queued_result is False
        assert calls == [{"answers": [0]}, {"status": "submitted", "answers": [2]}]

    def test_other_sessions_unaffected(self):
        store, writer = make_writer()

        async def scenario():
            await writer.finalize("s1", {"status": "submitted"})
            return await writer.checkpoint("s2", {"answers": [1]})

        assert asyncio.run(scenario()) is True

    def test_write_to_sealed_session_raises(self):
        _, writer = make_writer()

        async def scenario():
            await writer.finalize("s1", {"status": "disqualified"})
            await writer.write("s1", {"status": "in_progress"})

        with pytest.raises(TransientStoreFailure):
            asyncio.run(scenario())


class TestAwaitedWrites:
    """Test awaited and terminal writes."""

    def test_write_failure_is_transient(self):
        store, writer = make_writer()
        store.update_session.side_effect = StoreError("down")

        with pytest.raises(TransientStoreFailure):
            asyncio.run(writer.write("s1", {"status": "in_progress"}))

    def test_finalize_retries_with_backoff(self):
        store, writer = make_writer(attempts=4)
        store.update_session.side_effect = [StoreError("a"), StoreError("b"), False, True]

        asyncio.run(writer.finalize("s1", {"status": "submitted"}))

        assert store.update_session.await_count == 4
        assert writer._sleep.await_args_list == [call(0.5), call(1.0), call(2.0)]
        assert writer.is_finalized("s1")

    def test_finalize_exhausted_is_fatal(self):
        store, writer = make_writer(attempts=3)
        store.update_session.side_effect = StoreError("down")

        with pytest.raises(FatalStoreFailure) as exc_info:
            asyncio.run(writer.finalize("s1", {"status": "submitted"}))

        assert exc_info.value.attempts == 3
        assert store.update_session.await_count == 3
        # No sleep after the last attempt
        assert writer._sleep.await_count == 2
        assert writer.session_logger.call_args.args[0] == "FINALIZE_FAILED"
        assert writer.is_sealed("s1")
        assert not writer.is_finalized("s1")

    def test_finalize_twice_writes_once(self):
        store, writer = make_writer()

        async def scenario():
            await writer.finalize("s1", {"status": "submitted"})
            await writer.finalize("s1", {"status": "submitted"})

        asyncio.run(scenario())

        store.update_session.assert_awaited_once()


class TestLostAcknowledgement:
    """Test a terminal write that landed but reported an error."""

    def test_retry_after_lost_acknowledgement_succeeds(self, tmp_path, make_exam):
        exam = make_exam()
        store = FileSessionStore(Bank("1", [exam], {exam.id: []}), tmp_path / "data")
        session = asyncio.run(store.create_session({
            "exam_id": exam.id,
            "student_name": "Ada",
            "student_email": "ada@example.com",
            "status": "in_progress",
        }))
        apply_update = store.update_session
        calls = []

        async def reset_after_write(session_id, patch):
            calls.append(patch)
            ok = await apply_update(session_id, patch)
            if len(calls) == 1:
                raise StoreError("connection reset after write")
            return ok

        store.update_session = reset_after_write
        writer = SessionWriter(store, terminal_attempts=3, backoff_seconds=0.5, sleep=AsyncMock())

        asyncio.run(writer.finalize(session.id, {"status": "submitted", "score": 2}))

        assert len(calls) == 2
        assert writer.is_finalized(session.id)
        stored = store.get_session(session.id)
        assert stored.status == SessionStatus.SUBMITTED
        assert stored.score == 2
