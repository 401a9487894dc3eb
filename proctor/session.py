"""
Exam Session State Machine

Drives one examinee through an exam: access-code lookup, registration (or
resume), instructions, the timed exam itself, and the terminal outcome.

The countdown, the violation monitor and answer handlers all call into the
same machine on one event loop. The first terminal transition (submit or
disqualify) claims the session synchronously; every later attempt is a
no-op.
"""

import asyncio
import enum
import logging
import re
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Any, Awaitable, Callable, Dict, List, Optional, Set

from .errors import (
    ExamNotFound, FatalStoreFailure, InvalidTransition, StoreError,
    TerminalConflict, TransientStoreFailure, ValidationError,
)
from .journal import SessionJournal
from .models import (
    ExamDefinition, ExamSession, Question, RunnerConfig, SessionStatus,
    blank_answers, restore_answers, utcnow,
)
from .monitor import ViolationMonitor
from .results import ExamResult, build_result
from .shuffle import present_questions
from .signals import SignalSource, ViolationType
from .store import SessionStore
from .timer import Countdown
from .writer import SessionWriter

logger = logging.getLogger(__name__)

EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+$")


class ExamPhase(str, enum.Enum):
    LOADING = "loading"
    NOT_FOUND = "not_found"
    REGISTRATION = "registration"
    INSTRUCTIONS = "instructions"
    EXAM = "exam"
    SUBMITTED = "submitted"
    DISQUALIFIED = "disqualified"
    FINALIZE_FAILED = "finalize_failed"


class Presenter:
    """UI hooks used by the machine. The base class does nothing."""

    def request_fullscreen(self):
        pass

    def exit_fullscreen(self):
        pass

    def notify(self, key: str, **kwargs):
        pass


@dataclass(frozen=True)
class SubmitSummary:
    """Shown in the confirmation step before a manual submit."""
    total: int
    answered: int
    unanswered: int
    flagged: int


def default_seed(clock: Callable[[], datetime] = utcnow) -> int:
    """Session-establishment seed: the current time in milliseconds."""
    return int(clock().timestamp() * 1000)


class ExamSessionMachine:
    """Lifecycle, timer, answers, scoring and escalation for one examinee."""

    def __init__(
        self,
        store: SessionStore,
        signal_source: Optional[SignalSource] = None,
        presenter: Optional[Presenter] = None,
        config: Optional[RunnerConfig] = None,
        writer: Optional[SessionWriter] = None,
        clock: Callable[[], datetime] = utcnow,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        journal_dir: Optional[Path] = None,
        seed_factory: Optional[Callable[[], int]] = None
    ):
        self.store = store
        self.signal_source = signal_source or SignalSource()
        self.presenter = presenter or Presenter()
        self.config = config or RunnerConfig.default()
        self.writer = writer or SessionWriter(
            store,
            terminal_attempts=self.config.terminal_write_attempts,
            backoff_seconds=self.config.terminal_backoff_seconds,
            sleep=sleep
        )
        self._clock = clock
        self._sleep = sleep
        self.journal_dir = journal_dir
        self._seed_factory = seed_factory or (lambda: default_seed(clock))

        self.phase = ExamPhase.LOADING
        self.exam: Optional[ExamDefinition] = None
        self.session: Optional[ExamSession] = None
        self.questions: List[Question] = []
        self.seed: Optional[int] = None
        self.resumed = False

        self.current_index = 0
        self.flagged: Set[int] = set()

        self.monitor: Optional[ViolationMonitor] = None
        self.countdown: Optional[Countdown] = None
        self.journal: Optional[SessionJournal] = None

        self._source_questions: List[Question] = []
        self._terminal_claim: Optional[SessionStatus] = None
        self._terminal_payload: Optional[Dict[str, Any]] = None
        self._terminal_task: Optional[asyncio.Task] = None
        self.last_error: Optional[Exception] = None

    # ===== HELPERS =====

    def _log(self, event: str, details: str = ""):
        logger.debug("%s %s", event, details)
        if self.journal:
            self.journal.log(event, details)

    def _require(self, *phases: ExamPhase):
        if self.phase not in phases:
            allowed = ", ".join(p.value for p in phases)
            raise InvalidTransition(f"Not allowed in phase '{self.phase.value}' (expected {allowed})")

    def _open_journal(self):
        if self.journal_dir is not None and self.session is not None:
            self.journal = SessionJournal(Path(self.journal_dir) / f"{self.session.id}.log")
            self.writer.session_logger = self.journal.log

    @property
    def total_questions(self) -> int:
        return len(self.questions)

    @property
    def answers(self) -> List[Optional[int]]:
        return self.session.answers if self.session else []

    @property
    def is_terminal(self) -> bool:
        return self._terminal_claim is not None

    @property
    def remaining_seconds(self) -> int:
        if self.countdown:
            return self.countdown.remaining_seconds()
        return self.exam.time_limit_seconds if self.exam else 0

    @property
    def current_question(self) -> Optional[Question]:
        if not self.questions:
            return None
        return self.questions[self.current_index]

    # ===== LOADING =====

    async def initiate(self, access_code: str):
        """
        Resolve the exam behind an access code and prepare its questions.

        Raises:
            ExamNotFound: Unknown code, closed exam, or exam without questions
            TransientStoreFailure: The lookup failed; the caller may retry
        """
        self._require(ExamPhase.LOADING)
        code = (access_code or "").strip().upper()
        if not code:
            self.phase = ExamPhase.NOT_FOUND
            raise ExamNotFound("No access code given")

        try:
            exam = await self.store.find_exam_by_access_code(code)
        except StoreError as e:
            raise TransientStoreFailure(f"Exam lookup failed: {e}") from e

        if exam is None:
            self.phase = ExamPhase.NOT_FOUND
            raise ExamNotFound(f"No exam matches access code '{code}'")
        if not exam.accepts_examinees:
            self.phase = ExamPhase.NOT_FOUND
            raise ExamNotFound(f"Exam '{exam.title}' is not currently available ({exam.status.value})")

        try:
            questions = await self.store.list_questions(exam.id)
        except StoreError as e:
            raise TransientStoreFailure(f"Loading questions failed: {e}") from e

        if not questions:
            self.phase = ExamPhase.NOT_FOUND
            raise ExamNotFound(f"Exam '{exam.title}' has no questions")

        self.exam = exam
        self._source_questions = list(questions)
        self.seed = self._seed_factory()
        self.questions = present_questions(exam, self._source_questions, self.seed)
        self.phase = ExamPhase.REGISTRATION
        logger.info("Loaded exam %s (%d questions)", exam.id, len(self.questions))

    # ===== REGISTRATION =====

    async def register(self, name: str, email: str, student_id: Optional[str] = None) -> ExamSession:
        """
        Register the examinee, or resume their unfinished session.

        Raises:
            ValidationError: Missing name or email, or malformed email
            TerminalConflict: The examinee already submitted or was disqualified
            TransientStoreFailure: The store could not be reached
        """
        self._require(ExamPhase.REGISTRATION)
        name = (name or "").strip()
        email = (email or "").strip().lower()
        student_id = (student_id or "").strip() or None

        if not name or not email:
            raise ValidationError("Please enter your name and email")
        if not EMAIL_PATTERN.match(email):
            raise ValidationError(f"'{email}' is not a valid email address")

        try:
            existing = await self.store.find_session_by_email(self.exam.id, email)
        except StoreError as e:
            raise TransientStoreFailure(f"Session lookup failed: {e}") from e

        if existing is not None:
            if existing.is_terminal:
                raise TerminalConflict(
                    f"A {existing.status.value} session already exists for {email}",
                    status=existing.status.value
                )
            self._adopt(existing)
        else:
            fields = {
                "exam_id": self.exam.id,
                "student_name": name,
                "student_email": email,
                "student_id": student_id,
                "status": SessionStatus.REGISTERED.value,
                "total_questions": self.total_questions,
                "answers": blank_answers(self.total_questions),
                "violation_count": 0,
                "shuffle_seed": self.seed,
            }
            try:
                self.session = await self.store.create_session(fields)
            except StoreError as e:
                raise TransientStoreFailure(f"Could not create session: {e}") from e
            self._open_journal()
            self._log("SESSION_REGISTERED", f"Student: {name} <{email}>, Exam: {self.exam.id}")

        self.phase = ExamPhase.INSTRUCTIONS
        return self.session

    def _adopt(self, existing: ExamSession):
        """Resume path: the stored seed reproduces the stored presentation."""
        if existing.shuffle_seed is not None:
            self.seed = existing.shuffle_seed
            self.questions = present_questions(self.exam, self._source_questions, self.seed)

        existing.answers = restore_answers(
            existing.answers,
            self.total_questions,
            option_counts=[len(q.options) for q in self.questions]
        )
        existing.total_questions = self.total_questions
        self.session = existing
        self.resumed = True
        self._open_journal()
        answered = sum(1 for a in existing.answers if a is not None)
        self._log("SESSION_RESUMED", f"Status: {existing.status.value}, Answered: {answered}/{self.total_questions}")

    # ===== EXAM =====

    async def begin_exam(self):
        """
        Start (or continue) the timed exam.

        Raises:
            TransientStoreFailure: The in-progress status could not be saved
        """
        self._require(ExamPhase.INSTRUCTIONS)
        session = self.session
        started_at = session.started_at or self._clock()
        was_started = session.status == SessionStatus.IN_PROGRESS

        await self.writer.write(session.id, {
            "status": SessionStatus.IN_PROGRESS.value,
            "started_at": started_at.isoformat(),
        })
        session.status = SessionStatus.IN_PROGRESS
        session.started_at = started_at

        self.flagged = set()
        self.current_index = 0
        self.monitor = ViolationMonitor(
            self.signal_source,
            self.exam.max_violations,
            on_violation=self._on_violation,
            on_disqualify=self._on_disqualify,
            initial_count=session.violation_count,
            session_logger=self.journal.log if self.journal else None
        )
        self.countdown = Countdown(
            self.exam.time_limit_seconds,
            on_expire=self._on_timer_expired,
            interval=self.config.tick_interval_seconds,
            clock=self._clock,
            sleep=self._sleep
        )

        self.phase = ExamPhase.EXAM
        self.presenter.request_fullscreen()
        self._log("FULLSCREEN_REQUEST")

        # A resumed session may already be at the violation limit
        self.monitor.enable()
        if self.is_terminal:
            return
        self.countdown.start(started_at)

        if was_started:
            self._log("EXAM_RESUME", f"{self.countdown.format_remaining()} remaining")
        else:
            self._log("EXAM_START", f"Duration: {self.exam.time_limit} minutes")

    def _require_live_exam(self):
        self._require(ExamPhase.EXAM)
        if self.is_terminal:
            raise InvalidTransition("The exam is already finished")

    def _check_question_index(self, question_index: int):
        if not 0 <= question_index < self.total_questions:
            raise ValidationError(f"Question {question_index + 1} does not exist")

    def select_answer(self, question_index: int, option_index: int):
        """Record an answer and checkpoint the whole answers list."""
        self._require_live_exam()
        self._check_question_index(question_index)
        options = self.questions[question_index].options
        if not 0 <= option_index < len(options):
            raise ValidationError(f"Option {option_index + 1} does not exist")

        self.session.answers[question_index] = option_index
        self._log("ANSWER", f"Question: {question_index + 1}, Option: {option_index + 1}")
        self.writer.schedule_checkpoint(self.session.id, {"answers": list(self.session.answers)})

    def toggle_flag(self, question_index: int) -> bool:
        """Flag or unflag a question for review. Returns the new flag state."""
        self._require_live_exam()
        self._check_question_index(question_index)
        if question_index in self.flagged:
            self.flagged.discard(question_index)
            return False
        self.flagged.add(question_index)
        return True

    def go_to(self, question_index: int) -> Question:
        self._require_live_exam()
        self._check_question_index(question_index)
        self.current_index = question_index
        return self.questions[question_index]

    def next_question(self) -> Question:
        return self.go_to(min(self.current_index + 1, self.total_questions - 1))

    def previous_question(self) -> Question:
        return self.go_to(max(self.current_index - 1, 0))

    def submit_summary(self) -> SubmitSummary:
        answered = sum(1 for a in self.answers if a is not None)
        return SubmitSummary(
            total=self.total_questions,
            answered=answered,
            unanswered=self.total_questions - answered,
            flagged=len(self.flagged)
        )

    # ===== VIOLATIONS =====

    def _on_violation(self, violation_type: str, count: int):
        self.session.violation_count = count
        self.presenter.notify(
            f"violation_{violation_type}",
            count=count,
            max_violations=self.exam.max_violations
        )
        if violation_type == ViolationType.FULLSCREEN_EXIT.value:
            self.presenter.request_fullscreen()
        self.writer.schedule_checkpoint(self.session.id, {"violation_count": count})

    def _on_disqualify(self):
        # Raises before claiming when called off the loop
        loop = asyncio.get_running_loop()
        if not self._claim_disqualification():
            return
        self._terminal_task = loop.create_task(self._finalize_in_background())

    async def _finalize_in_background(self):
        try:
            await self._finalize()
        except FatalStoreFailure:
            # Already surfaced through the phase and the presenter
            logger.error("Disqualification of session %s could not be saved", self.session.id)

    # ===== TERMINAL TRANSITIONS =====

    def _claim(self, status: SessionStatus, payload: Dict[str, Any]) -> bool:
        if self._terminal_claim is not None or self.phase != ExamPhase.EXAM:
            return False

        self._terminal_claim = status
        self._terminal_payload = payload
        if self.countdown:
            self.countdown.stop()
        if self.monitor:
            self.monitor.disable()
        self.presenter.exit_fullscreen()
        return True

    def _claim_disqualification(self) -> bool:
        payload = {
            "status": SessionStatus.DISQUALIFIED.value,
            "answers": list(self.session.answers),
            "violation_count": self.session.violation_count,
        }
        if not self._claim(SessionStatus.DISQUALIFIED, payload):
            return False
        self._log("DISQUALIFIED", f"Violations: {self.session.violation_count}/{self.exam.max_violations}")
        return True

    async def submit(self, auto: bool = False) -> bool:
        """
        Score and submit the exam.

        Returns:
            True if this call performed the submission, False if the session
            was already finished (no second score, no second write)

        Raises:
            FatalStoreFailure: The submission could not be saved
        """
        if self.is_terminal:
            return False
        self._require(ExamPhase.EXAM)

        answers = list(self.session.answers)
        score = sum(1 for i, q in enumerate(self.questions) if answers[i] == q.answer)
        remaining = self.countdown.remaining_seconds() if self.countdown else 0
        time_taken = self.exam.time_limit_seconds - remaining
        payload = {
            "status": SessionStatus.SUBMITTED.value,
            "submitted_at": self._clock().isoformat(),
            "score": score,
            "total_questions": self.total_questions,
            "answers": answers,
            "time_taken": time_taken,
            "violation_count": self.session.violation_count,
        }
        if not self._claim(SessionStatus.SUBMITTED, payload):
            return False

        kind = "AUTO_SUBMISSION" if auto else "SUBMISSION"
        self._log(kind, f"Score: {score}/{self.total_questions}, Time taken: {time_taken}s")
        await self._finalize()
        return True

    async def disqualify(self) -> bool:
        """Disqualify the examinee. Normally reached through the monitor."""
        if not self._claim_disqualification():
            return False
        await self._finalize()
        return True

    async def _finalize(self):
        try:
            await self.writer.finalize(self.session.id, self._terminal_payload)
        except FatalStoreFailure as e:
            self.phase = ExamPhase.FINALIZE_FAILED
            self.last_error = e
            self._log("FINALIZE_FAILED", str(e))
            self.presenter.notify("finalize_failed", error=str(e))
            raise

        self.last_error = None
        self.session.apply_patch(self._terminal_payload)
        if self._terminal_claim == SessionStatus.SUBMITTED:
            self.phase = ExamPhase.SUBMITTED
            self.presenter.notify("submitted", score=self.session.score, total=self.total_questions)
        else:
            self.phase = ExamPhase.DISQUALIFIED
            self.presenter.notify("disqualified")
        logger.info("Session %s finished: %s", self.session.id, self.phase.value)

    async def retry_finalize(self):
        """Re-send the frozen terminal write after a FatalStoreFailure."""
        self._require(ExamPhase.FINALIZE_FAILED)
        await self._finalize()

    async def _on_timer_expired(self):
        self._log("EXAM_TIMEOUT", "Exam time finished - auto-submitting")
        try:
            if await self.submit(auto=True):
                self.presenter.notify("auto_submitted")
        except FatalStoreFailure:
            logger.error("Auto-submission of session %s could not be saved", self.session.id)

    # ===== LIFECYCLE =====

    async def settle(self):
        """Wait for pending checkpoints and any background terminal write."""
        await self.writer.drain()
        if self._terminal_task is not None:
            await asyncio.gather(self._terminal_task, return_exceptions=True)

    def suspend(self):
        """
        Leave a running exam without finishing it (page closed, runner exited).

        The session stays in progress so it can be resumed later.
        """
        if self.countdown:
            self.countdown.stop()
        if self.monitor:
            self.monitor.disable()
        if self.phase == ExamPhase.EXAM and not self.is_terminal:
            self.presenter.exit_fullscreen()
            self._log("SESSION_EXIT", "Examinee left - progress saved")

    def result(self) -> ExamResult:
        """Result of a finished session."""
        self._require(ExamPhase.SUBMITTED, ExamPhase.DISQUALIFIED)
        return build_result(self.exam, self.questions, self.session)
