"""
Data models for exams, questions and examinee sessions.

Provides type-safe structures for ExamDefinition, Question, ExamSession,
ViolationEvent and the runner configuration.
"""

import enum
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional, List, Dict, Any

logger = logging.getLogger(__name__)


class ExamStatus(str, enum.Enum):
    DRAFT = "draft"
    SCHEDULED = "scheduled"
    ACTIVE = "active"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class SessionStatus(str, enum.Enum):
    REGISTERED = "registered"
    IN_PROGRESS = "in_progress"
    SUBMITTED = "submitted"
    DISQUALIFIED = "disqualified"

    @property
    def is_terminal(self) -> bool:
        return self in (SessionStatus.SUBMITTED, SessionStatus.DISQUALIFIED)


# Exams in these states accept examinees
OPEN_EXAM_STATUSES = (ExamStatus.ACTIVE, ExamStatus.SCHEDULED)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _parse_datetime(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    return datetime.fromisoformat(value)


def _format_datetime(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


def blank_answers(total: int) -> List[Optional[int]]:
    """Return one empty answer slot per presented question."""
    return [None] * total


def restore_answers(raw: Optional[List[Any]], total: int,
                    option_counts: Optional[List[int]] = None) -> List[Optional[int]]:
    """
    Rebuild a fixed-length answers list from a stored record.

    Args:
        raw: The stored list (may be None for a fresh session)
        total: Number of presented questions
        option_counts: Option count of each presented question; when given,
            answers pointing past a question's last option are dropped

    Returns:
        A list of exactly `total` slots, each an int or None
    """
    if not raw:
        return blank_answers(total)

    answers: List[Optional[int]] = []
    for index, value in enumerate(raw[:total]):
        valid = isinstance(value, int) and not isinstance(value, bool) and value >= 0
        if valid and option_counts is not None and value >= option_counts[index]:
            logger.warning("Dropping stored answer %d for question %d: no such option", value, index + 1)
            valid = False
        answers.append(value if valid else None)

    if len(raw) != total:
        logger.warning("Stored answers have %d slots, expected %d", len(raw), total)
        answers.extend([None] * (total - len(answers)))
    return answers


@dataclass(frozen=True)
class ExamDefinition:
    """An exam as published by the authoring side. Read-only here."""
    id: str
    title: str
    subject: str
    time_limit: int  # minutes
    max_violations: int
    shuffle_questions: bool
    shuffle_options: bool
    show_results_immediately: bool
    status: ExamStatus
    access_code: str

    @property
    def time_limit_seconds(self) -> int:
        return self.time_limit * 60

    @property
    def accepts_examinees(self) -> bool:
        return self.status in OPEN_EXAM_STATUSES

    @staticmethod
    def from_dict(data: dict) -> 'ExamDefinition':
        """Create an ExamDefinition from a dictionary."""
        return ExamDefinition(
            id=str(data['id']),
            title=data['title'],
            subject=data.get('subject', ''),
            time_limit=int(data['time_limit']),
            max_violations=int(data.get('max_violations', 5)),
            shuffle_questions=bool(data.get('shuffle_questions', False)),
            shuffle_options=bool(data.get('shuffle_options', False)),
            show_results_immediately=bool(data.get('show_results_immediately', False)),
            status=ExamStatus(data.get('status', 'draft')),
            access_code=str(data['access_code']).strip().upper()
        )

    def validate(self) -> tuple[bool, str]:
        """
        Validate exam settings.

        Returns:
            Tuple of (is_valid, error_message)
        """
        if self.time_limit < 1:
            return False, f"Exam '{self.id}': time limit must be at least 1 minute"
        if self.max_violations < 0:
            return False, f"Exam '{self.id}': max_violations must be non-negative"
        if not self.access_code:
            return False, f"Exam '{self.id}': access code is empty"
        return True, ""


@dataclass(frozen=True)
class Question:
    """A single multiple-choice question."""
    id: str
    exam_id: str
    question: str
    options: List[str]
    answer: int  # zero-based index into options
    order_index: int
    explanation: Optional[str] = None

    @staticmethod
    def from_dict(data: dict, exam_id: Optional[str] = None) -> 'Question':
        """Create a Question from a dictionary."""
        return Question(
            id=str(data['id']),
            exam_id=str(data.get('exam_id', exam_id)),
            question=data['question'],
            options=list(data['options']),
            answer=int(data['answer']),
            order_index=int(data.get('order_index', 0)),
            explanation=data.get('explanation')
        )

    def validate(self) -> tuple[bool, str]:
        if len(self.options) < 2:
            return False, f"Question '{self.id}' needs at least 2 options"
        if not 0 <= self.answer < len(self.options):
            return False, f"Question '{self.id}' answer index {self.answer} is out of range"
        return True, ""


@dataclass
class ExamSession:
    """One examinee's attempt at an exam."""
    id: str
    exam_id: str
    student_name: str
    student_email: str
    student_id: Optional[str] = None
    status: SessionStatus = SessionStatus.REGISTERED
    started_at: Optional[datetime] = None
    submitted_at: Optional[datetime] = None
    score: Optional[int] = None
    total_questions: int = 0
    answers: List[Optional[int]] = field(default_factory=list)
    violation_count: int = 0
    time_taken: Optional[int] = None  # seconds
    shuffle_seed: Optional[int] = None
    created_at: Optional[datetime] = None

    @property
    def is_terminal(self) -> bool:
        return self.status.is_terminal

    @staticmethod
    def from_dict(data: dict) -> 'ExamSession':
        """Create an ExamSession from a stored record."""
        total = int(data.get('total_questions', 0))
        return ExamSession(
            id=str(data['id']),
            exam_id=str(data['exam_id']),
            student_name=data['student_name'],
            student_email=data['student_email'],
            student_id=data.get('student_id'),
            status=SessionStatus(data.get('status', 'registered')),
            started_at=_parse_datetime(data.get('started_at')),
            submitted_at=_parse_datetime(data.get('submitted_at')),
            score=data.get('score'),
            total_questions=total,
            answers=restore_answers(data.get('answers'), total),
            violation_count=int(data.get('violation_count', 0)),
            time_taken=data.get('time_taken'),
            shuffle_seed=data.get('shuffle_seed'),
            created_at=_parse_datetime(data.get('created_at'))
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "exam_id": self.exam_id,
            "student_name": self.student_name,
            "student_email": self.student_email,
            "student_id": self.student_id,
            "status": self.status.value,
            "started_at": _format_datetime(self.started_at),
            "submitted_at": _format_datetime(self.submitted_at),
            "score": self.score,
            "total_questions": self.total_questions,
            "answers": list(self.answers),
            "violation_count": self.violation_count,
            "time_taken": self.time_taken,
            "shuffle_seed": self.shuffle_seed,
            "created_at": _format_datetime(self.created_at),
        }

    def apply_patch(self, patch: Dict[str, Any]) -> None:
        """Apply a store patch (already in stored form) to this record."""
        merged = self.to_dict()
        merged.update(patch)
        updated = ExamSession.from_dict(merged)
        self.__dict__.update(updated.__dict__)


@dataclass(frozen=True)
class ViolationEvent:
    """A single integrity signal as counted by the monitor."""
    type: str
    timestamp: datetime
    count: int


@dataclass
class RunnerConfig:
    """
    Configuration for the exam runner set by the exam administrator.

    Attributes:
        data_dir: Directory for session records and session journals
        terminal_write_attempts: Attempts for submit/disqualify writes
        terminal_backoff_seconds: First retry delay, doubled each attempt
        tick_interval_seconds: Countdown resolution
        log_level: Diagnostic logging level
        language: Interface language ("en" or "fr")
    """
    data_dir: str
    terminal_write_attempts: int
    terminal_backoff_seconds: float
    tick_interval_seconds: float
    log_level: str
    language: str

    @staticmethod
    def from_dict(data: dict) -> 'RunnerConfig':
        """Create RunnerConfig from dictionary."""
        return RunnerConfig(
            data_dir=data.get('data_dir', 'exam_data'),
            terminal_write_attempts=int(data.get('terminal_write_attempts', 5)),
            terminal_backoff_seconds=float(data.get('terminal_backoff_seconds', 0.5)),
            tick_interval_seconds=float(data.get('tick_interval_seconds', 1.0)),
            log_level=str(data.get('log_level', 'INFO')).upper(),
            language=data.get('language', 'en')
        )

    def validate(self) -> tuple[bool, str]:
        """
        Validate configuration consistency.

        Returns:
            Tuple of (is_valid, error_message)
        """
        if not self.data_dir:
            return False, "data_dir must not be empty"
        if self.terminal_write_attempts < 1:
            return False, "terminal_write_attempts must be at least 1"
        if self.terminal_backoff_seconds < 0:
            return False, "terminal_backoff_seconds must be non-negative"
        if self.tick_interval_seconds <= 0 or self.tick_interval_seconds > 60:
            return False, "tick_interval_seconds must be between 0 and 60"
        if self.log_level not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            return False, f"Unknown log level: {self.log_level}"
        if self.language not in ("en", "fr"):
            return False, f"Unsupported language: {self.language}"
        return True, ""

    @staticmethod
    def default() -> 'RunnerConfig':
        """Return default configuration."""
        return RunnerConfig(
            data_dir='exam_data',
            terminal_write_attempts=5,
            terminal_backoff_seconds=0.5,
            tick_interval_seconds=1.0,
            log_level='INFO',
            language='en'
        )
