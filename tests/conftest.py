"""
Shared fixtures: a fake clock, an in-memory session store and exam builders.
"""

import sys
import uuid
from datetime import datetime, timedelta, timezone
from pathlib import Path
from unittest.mock import AsyncMock

import pytest

sys.path.insert(0, str(Path(__file__).parent.parent))

from proctor.errors import StoreError
from proctor.models import (
    ExamDefinition, ExamSession, Question, RunnerConfig, SessionStatus,
)
from proctor.session import ExamSessionMachine
from proctor.signals import HostSignalBridge
from proctor.store import SessionStore
from proctor.writer import SessionWriter


class FakeClock:
    """Manually advanced UTC clock."""

    def __init__(self, start=None):
        self.now = start or datetime(2024, 5, 1, 9, 0, 0, tzinfo=timezone.utc)

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += timedelta(seconds=seconds)


class MemoryStore(SessionStore):
    """
    SessionStore kept in dictionaries.

    `fail_updates` makes the next N update_session calls raise StoreError;
    `fail_lookups` makes session lookups raise.
    """

    def __init__(self, exams=(), questions=None):
        self.exams = {exam.access_code: exam for exam in exams}
        self.questions = questions or {}
        self.sessions = {}
        self.updates = []
        self.created = []
        self.fail_updates = 0
        self.fail_lookups = False

    async def find_exam_by_access_code(self, code):
        return self.exams.get(code)

    async def list_questions(self, exam_id):
        return sorted(self.questions.get(exam_id, []), key=lambda q: q.order_index)

    async def find_session_by_email(self, exam_id, email):
        if self.fail_lookups:
            raise StoreError("store unreachable")
        for record in self.sessions.values():
            if record["exam_id"] == exam_id and record["student_email"] == email:
                return ExamSession.from_dict(record)
        return None

    async def create_session(self, fields):
        record = dict(fields)
        record["id"] = uuid.uuid4().hex
        self.sessions[record["id"]] = record
        self.created.append(record["id"])
        return ExamSession.from_dict(record)

    async def update_session(self, session_id, patch):
        self.updates.append((session_id, dict(patch)))
        if self.fail_updates:
            self.fail_updates -= 1
            raise StoreError("write timed out")
        record = self.sessions.get(session_id)
        if record is None:
            return False
        if SessionStatus(record["status"]).is_terminal:
            return patch.get("status") == record["status"]
        record.update(patch)
        return True

    def record(self, session_id):
        return self.sessions[session_id]

    def terminal_updates(self):
        return [patch for _, patch in self.updates
                if patch.get("status") in ("submitted", "disqualified")]


def build_exam(**overrides):
    data = {
        "id": "exam-1",
        "title": "Algebra Quiz",
        "subject": "Mathematics",
        "time_limit": 10,
        "max_violations": 3,
        "shuffle_questions": False,
        "shuffle_options": False,
        "show_results_immediately": True,
        "status": "active",
        "access_code": "ALG1",
    }
    data.update(overrides)
    return ExamDefinition.from_dict(data)


def build_questions(exam_id="exam-1", count=3):
    return [
        Question(
            id=f"q{i}",
            exam_id=exam_id,
            question=f"Question {i}?",
            options=["A", "B", "C", "D"],
            answer=i % 4,
            order_index=i,
            explanation=f"Because {i}"
        )
        for i in range(count)
    ]


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def make_exam():
    return build_exam


@pytest.fixture
def make_questions():
    return build_questions


@pytest.fixture
def make_store():
    def _make(exam=None, questions=None):
        exam = exam or build_exam()
        if questions is None:
            questions = build_questions(exam.id)
        return MemoryStore([exam], {exam.id: questions})
    return _make


@pytest.fixture
def make_machine(clock, tmp_path):
    """
    Build a machine over a store. The countdown ticks every 60s of real time,
    so tests drive expiry through `countdown.check()` and the fake clock.
    """
    def _make(store, attempts=3, seed=12345):
        writer = SessionWriter(store, terminal_attempts=attempts, backoff_seconds=0.5, sleep=AsyncMock())
        config = RunnerConfig.default()
        config.tick_interval_seconds = 60
        return ExamSessionMachine(
            store,
            signal_source=HostSignalBridge(),
            config=config,
            writer=writer,
            clock=clock,
            journal_dir=tmp_path / "journals",
            seed_factory=lambda: seed
        )
    return _make
