"""
Tests for data models.
"""

from datetime import datetime, timezone

from proctor.models import (
    ExamDefinition, ExamSession, ExamStatus, SessionStatus, blank_answers, restore_answers,
)


class TestAnswers:
    """Test the fixed-length answers list."""

    def test_blank_answers(self):
        assert blank_answers(3) == [None, None, None]
        assert blank_answers(0) == []

    def test_restore_pads_and_truncates(self):
        assert restore_answers([1], 3) == [1, None, None]
        assert restore_answers([1, 2, 3, 0], 2) == [1, 2]
        assert restore_answers(None, 2) == [None, None]

    def test_restore_drops_bad_values(self):
        assert restore_answers([True, -1, "2", 2], 4) == [None, None, None, 2]

    def test_restore_drops_out_of_range_options(self):
        assert restore_answers([3, 4, 1], 3, option_counts=[4, 4, 2]) == [3, None, 1]

    def test_restore_pads_with_option_counts(self):
        assert restore_answers([1], 2, option_counts=[2, 2]) == [1, None]


class TestExamDefinition:
    """Test exam parsing."""

    def test_from_dict_defaults(self):
        exam = ExamDefinition.from_dict({
            "id": 7, "title": "Quiz", "time_limit": "45", "access_code": " abc ",
        })

        assert exam.id == "7"
        assert exam.access_code == "ABC"
        assert exam.max_violations == 5
        assert exam.status == ExamStatus.DRAFT
        assert exam.time_limit_seconds == 2700
        assert exam.accepts_examinees is False

    def test_validate(self, make_exam):
        assert make_exam().validate() == (True, "")
        assert make_exam(time_limit=0).validate()[0] is False
        assert make_exam(max_violations=-1).validate()[0] is False


class TestExamSession:
    """Test session records."""

    def test_round_trip(self):
        session = ExamSession(
            id="s1", exam_id="e1", student_name="Ada", student_email="ada@example.com",
            status=SessionStatus.IN_PROGRESS,
            started_at=datetime(2024, 5, 1, 9, 0, tzinfo=timezone.utc),
            total_questions=2, answers=[1, None], shuffle_seed=99
        )

        assert ExamSession.from_dict(session.to_dict()) == session

    def test_apply_patch(self):
        session = ExamSession(id="s1", exam_id="e1", student_name="Ada",
                              student_email="ada@example.com", total_questions=2,
                              answers=[None, None])

        session.apply_patch({
            "status": "submitted",
            "submitted_at": "2024-05-01T09:30:00+00:00",
            "score": 1,
            "answers": [0, 1],
        })

        assert session.status == SessionStatus.SUBMITTED
        assert session.is_terminal is True
        assert session.submitted_at.minute == 30
        assert session.answers == [0, 1]
        assert session.score == 1
