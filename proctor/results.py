"""
Finished-session results.

An ExamResult is the stable projection of a terminal session handed to
reporting. Its SHA-256 digest covers the canonical JSON of every scored
field, so a stored result can be checked against tampering later.
"""

import hashlib
import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

from .models import ExamDefinition, ExamSession, Question


@dataclass(frozen=True)
class QuestionReview:
    """One row of the post-exam review."""
    number: int
    question: str
    options: List[str]
    selected: Optional[int]
    correct: int
    explanation: Optional[str]

    @property
    def is_correct(self) -> bool:
        return self.selected == self.correct


@dataclass
class ExamResult:
    exam_id: str
    exam_title: str
    session_id: str
    student_name: str
    student_email: str
    student_id: Optional[str]
    status: str
    score: Optional[int]
    total_questions: int
    time_taken: Optional[int]
    violation_count: int
    answers: List[Optional[int]]
    submitted_at: Optional[str]
    review: List[QuestionReview] = field(default_factory=list)
    digest: str = ""

    @property
    def percentage(self) -> Optional[float]:
        if self.score is None or not self.total_questions:
            return None
        return round(100.0 * self.score / self.total_questions, 2)

    def payload(self) -> Dict[str, Any]:
        """The fields covered by the digest."""
        return {
            "exam_id": self.exam_id,
            "session_id": self.session_id,
            "student_email": self.student_email,
            "status": self.status,
            "score": self.score,
            "total_questions": self.total_questions,
            "time_taken": self.time_taken,
            "violation_count": self.violation_count,
            "answers": list(self.answers),
            "submitted_at": self.submitted_at,
        }

    def compute_digest(self) -> str:
        canonical = json.dumps(self.payload(), sort_keys=True, separators=(",", ":"))
        return hashlib.sha256(canonical.encode("utf-8")).hexdigest()

    def verify(self) -> bool:
        """Check that the stored digest still matches the scored fields."""
        return bool(self.digest) and self.digest == self.compute_digest()

    def render_text(self) -> str:
        """Human-readable results report."""
        lines = []
        lines.append(f"Student: {self.student_name} <{self.student_email}> | Exam: {self.exam_title}")
        if self.student_id:
            lines.append(f"Student ID: {self.student_id}")
        lines.append(f"Status: {self.status.upper()}")
        if self.submitted_at:
            lines.append(f"Submitted: {self.submitted_at}")
        if self.time_taken is not None:
            minutes, seconds = divmod(self.time_taken, 60)
            lines.append(f"Time taken: {minutes}m {seconds:02d}s")
        lines.append(f"Violations: {self.violation_count}")
        lines.append("")

        for item in self.review:
            mark = "CORRECT" if item.is_correct else "WRONG"
            if item.selected is None:
                mark = "NOT ANSWERED"
            lines.append(f"[Q{item.number}] {item.question}")
            for idx, option in enumerate(item.options):
                pointer = ">" if idx == item.selected else " "
                tick = "*" if idx == item.correct else " "
                lines.append(f"  {pointer}{tick} {idx + 1}. {option}")
            lines.append(f"  - {mark}")
            if item.explanation:
                lines.append(f"  - Explanation: {item.explanation}")
            lines.append("")

        if self.score is not None:
            lines.append(f"TOTAL SCORE: {self.score} / {self.total_questions} ({self.percentage:.2f}%)")
        else:
            lines.append(f"TOTAL SCORE: not awarded ({self.status})")
        lines.append(f"SHA256: {self.digest}")
        return "\n".join(lines)


def build_result(exam: ExamDefinition, questions: Sequence[Question],
                 session: ExamSession) -> ExamResult:
    """
    Build the result of a terminal session.

    The per-question review is only filled in when the exam shows results
    immediately.
    """
    review = []
    if exam.show_results_immediately:
        for i, question in enumerate(questions):
            review.append(QuestionReview(
                number=i + 1,
                question=question.question,
                options=list(question.options),
                selected=session.answers[i] if i < len(session.answers) else None,
                correct=question.answer,
                explanation=question.explanation
            ))

    result = ExamResult(
        exam_id=exam.id,
        exam_title=exam.title,
        session_id=session.id,
        student_name=session.student_name,
        student_email=session.student_email,
        student_id=session.student_id,
        status=session.status.value,
        score=session.score,
        total_questions=session.total_questions,
        time_taken=session.time_taken,
        violation_count=session.violation_count,
        answers=list(session.answers),
        submitted_at=session.submitted_at.isoformat() if session.submitted_at else None,
        review=review
    )
    result.digest = result.compute_digest()
    return result


def write_results_file(result: ExamResult, path: Path) -> Path:
    """Write the results report and return its path."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, 'w', encoding='utf-8') as f:
        f.write(result.render_text())
    return path
