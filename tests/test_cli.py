"""
Tests for the terminal exam runner.

Drives ExamRunner end to end with scripted input.
"""

import json
from unittest.mock import Mock, patch

import pytest

from proctor.cli import ExamRunner, TerminalPresenter
from proctor.signals import ViolationType
from proctor.translations import TRANSLATIONS


@pytest.fixture
def bank_file(tmp_path):
    data = {
        "version": "1",
        "exams": [{
            "id": "exam-1",
            "title": "Algebra Quiz",
            "subject": "Mathematics",
            "time_limit": 10,
            "max_violations": 3,
            "show_results_immediately": True,
            "status": "active",
            "access_code": "ALG1",
            "questions": [
                {"id": f"q{i}", "question": f"Question {i}?", "options": ["A", "B", "C"],
                 "answer": i % 3, "order_index": i}
                for i in range(3)
            ],
        }],
    }
    path = tmp_path / "bank.json"
    path.write_text(json.dumps(data), encoding="utf-8")
    return path


@pytest.fixture
def config_file(tmp_path):
    path = tmp_path / "config.json"
    path.write_text(json.dumps({"data_dir": str(tmp_path / "data")}), encoding="utf-8")
    return path


def run_with_input(bank_file, config_file, lines):
    runner = ExamRunner()
    with patch("builtins.input", side_effect=lines):
        code = runner.run([
            "--bank", str(bank_file),
            "--code", "alg1",
            "--config", str(config_file),
            "--language", "en",
        ])
    return runner, code


class TestTranslations:
    """Test the message tables."""

    def test_languages_have_same_keys(self):
        assert set(TRANSLATIONS["en"]) == set(TRANSLATIONS["fr"])

    def test_every_violation_has_a_message(self):
        for violation in ViolationType:
            assert f"violation_{violation.value}" in TRANSLATIONS["en"]


class TestExamRunner:
    """Test the scripted end-to-end flow."""

    def test_answer_and_submit(self, tmp_path, bank_file, config_file, capsys):
        lines = [
            "Ada Lovelace", "ada@example.com", "",
            "start",
            "answer 1 1",
            "flag 3",
            "status",
            "submit", "y",
        ]

        runner, code = run_with_input(bank_file, config_file, lines)

        out = capsys.readouterr().out
        assert code == 0
        assert "Answer saved: question 1 -> option 1" in out
        assert "Exam submitted successfully." in out
        assert "TOTAL SCORE: 1 / 3" in out
        results = list((tmp_path / "data" / "results").glob("*.txt"))
        assert len(results) == 1
        assert runner.machine.session.score == 1

    def test_cancelled_submit_then_exit_keeps_session_open(self, tmp_path, bank_file, config_file, capsys):
        lines = [
            "Ada Lovelace", "ada@example.com", "",
            "start",
            "answer 2 2",
            "submit", "n",
            "exit",
        ]

        runner, code = run_with_input(bank_file, config_file, lines)

        out = capsys.readouterr().out
        assert code == 0
        assert "Submission cancelled" in out
        assert runner.machine.session.status.value == "in_progress"
        assert not (tmp_path / "data" / "results").exists()

    def test_bad_commands_do_not_end_the_exam(self, bank_file, config_file, capsys):
        lines = [
            "Ada Lovelace", "ada@example.com", "",
            "start",
            "dance",
            "answer x 1",
            "answer 9 1",
            "q0",
            "submit", "y",
        ]

        _, code = run_with_input(bank_file, config_file, lines)

        out = capsys.readouterr().out
        assert code == 0
        assert "Unknown command: 'dance'" in out
        assert "'x' is not a number." in out
        assert "Question 9 does not exist" in out

    def test_invalid_registration_is_prompted_again(self, bank_file, config_file, capsys):
        lines = [
            "Ada", "not-an-email", "",
            "Ada", "ada@example.com", "",
            "start",
            "submit", "y",
        ]

        _, code = run_with_input(bank_file, config_file, lines)

        assert code == 0
        assert "is not a valid email address" in capsys.readouterr().out

    def test_second_attempt_after_submit_is_refused(self, bank_file, config_file, capsys):
        run_with_input(bank_file, config_file, [
            "Ada", "ada@example.com", "", "start", "submit", "y",
        ])

        _, code = run_with_input(bank_file, config_file, [
            "Ada", "ada@example.com", "",
        ])

        assert code == 1
        assert "You have already submitted this exam." in capsys.readouterr().out

    def test_unknown_code(self, bank_file, config_file, capsys):
        runner = ExamRunner()

        code = runner.run(["--bank", str(bank_file), "--code", "NOPE",
                           "--config", str(config_file), "--language", "en"])

        assert code == 1
        assert "Exam not found" in capsys.readouterr().out

    def test_missing_bank(self, tmp_path, config_file, capsys):
        runner = ExamRunner()

        code = runner.run(["--bank", str(tmp_path / "nope.json"), "--code", "ALG1",
                           "--config", str(config_file), "--language", "en"])

        assert code == 1
        assert "not found" in capsys.readouterr().out


class TestTerminalPresenter:
    """Test presenter output."""

    def test_violation_notice(self, capsys):
        runner = ExamRunner()
        presenter = TerminalPresenter(runner, stream=Mock(isatty=Mock(return_value=False)))

        presenter.notify("violation_window_blur", count=2, max_violations=3)

        out = capsys.readouterr().out
        assert "Please keep focus on the exam window" in out
        assert "Violation 2/3 recorded." in out

    def test_fullscreen_uses_alternate_screen_on_tty(self):
        runner = ExamRunner()
        stream = Mock(isatty=Mock(return_value=True))
        presenter = TerminalPresenter(runner, stream=stream)

        presenter.request_fullscreen()
        presenter.exit_fullscreen()

        written = "".join(c.args[0] for c in stream.write.call_args_list)
        assert "\x1b[?1049h" in written
        assert "\x1b[?1049l" in written
        assert runner.signal_source.fullscreen is True
