#!/usr/bin/env python3
"""
Proctored Exam Runner CLI

Examinee-facing terminal application: loads an exam bank, resolves the exam
from its access code, registers (or resumes) the examinee and runs the timed
exam until submission or disqualification.
"""

import argparse
import asyncio
import getpass
import signal
import sys
from pathlib import Path
from typing import Optional

from .bank import Bank, load_bank
from .config_loader import load_config
from .errors import (
    ExamNotFound, FatalStoreFailure, InvalidTransition, TerminalConflict,
    TransientStoreFailure, ValidationError,
)
from .logging_config import configure_logging
from .models import RunnerConfig
from .results import write_results_file
from .session import ExamPhase, ExamSessionMachine, Presenter
from .signals import HostSignalBridge
from .store import FileSessionStore
from .translations import TRANSLATIONS

# Alternate screen buffer: the terminal's closest thing to fullscreen
ENTER_ALT_SCREEN = "\x1b[?1049h\x1b[H"
LEAVE_ALT_SCREEN = "\x1b[?1049l"


class TerminalPresenter(Presenter):
    """Prints machine notifications and toggles the alternate screen."""

    def __init__(self, runner: 'ExamRunner', stream=None):
        self.runner = runner
        self.stream = stream or sys.stdout
        self.fullscreen = False

    def _is_terminal(self) -> bool:
        return hasattr(self.stream, "isatty") and self.stream.isatty()

    def request_fullscreen(self):
        if self._is_terminal() and not self.fullscreen:
            self.stream.write(ENTER_ALT_SCREEN)
            self.stream.flush()
        self.fullscreen = True
        self.runner.signal_source.on_fullscreen_change(True)

    def exit_fullscreen(self):
        if self._is_terminal() and self.fullscreen:
            self.stream.write(LEAVE_ALT_SCREEN)
            self.stream.flush()
        self.fullscreen = False

    def notify(self, key: str, **kwargs):
        if key.startswith("violation_"):
            print("\n" + "!" * 60)
            print(f"⚠️  {self.runner._msg(key)}")
            print(self.runner._msg("violation_count", **kwargs))
            print("!" * 60)
            return
        if key == "finalize_failed":
            print(f"\n{self.runner._msg(key, **kwargs)}")
            return
        if key in ("auto_submitted", "disqualified"):
            print(f"\n{self.runner._msg(key)}")


class ExamRunner:
    """Main CLI application controller."""

    def __init__(self):
        self.language = "en"
        self.messages = TRANSLATIONS["en"]
        self.config: Optional[RunnerConfig] = None
        self.bank: Optional[Bank] = None
        self.store: Optional[FileSessionStore] = None
        self.machine: Optional[ExamSessionMachine] = None
        self.signal_source = HostSignalBridge()
        self.presenter = TerminalPresenter(self)

    def _msg(self, key: str, **kwargs) -> str:
        template = self.messages.get(key, key)
        return template.format(**kwargs)

    def _prompt_language(self) -> str:
        prompt = TRANSLATIONS["en"]["prompt_language"]
        while True:
            choice = input(prompt).strip().lower()
            if choice in ("en", "english", "e", "anglais"):
                return "en"
            if choice in ("fr", "french", "f", "français"):
                return "fr"
            print(TRANSLATIONS["en"]["invalid_language"])

    def _resolve_bank_path(self, bank_arg: str) -> Optional[Path]:
        """Accept a direct path, or a file name inside the banks/ folder."""
        direct_path = Path(bank_arg)
        if direct_path.exists():
            return direct_path

        if getattr(sys, 'frozen', False):
            exe_dir = Path(sys.executable).parent
        else:
            exe_dir = Path(__file__).parent.parent
        candidate = exe_dir / "banks" / bank_arg
        return candidate if candidate.exists() else None

    def _read_key(self, key_file: Optional[str], bank_name: str) -> Optional[str]:
        if key_file:
            return Path(key_file).read_text(encoding='utf-8').strip()
        try:
            key_input = getpass.getpass(self._msg("ask_enc_pass", bank=bank_name)).strip()
        except (KeyboardInterrupt, EOFError):
            print(f"\n{self._msg('enc_exit')}")
            return None
        if not key_input:
            print(self._msg("enc_error"))
            return None
        return key_input

    def run(self, argv=None) -> int:
        """Main application entry point."""
        parser = argparse.ArgumentParser(
            description="Proctored Exam Runner",
            formatter_class=argparse.RawDescriptionHelpFormatter
        )
        parser.add_argument(
            "--bank",
            required=True,
            help="Exam bank file (.json or encrypted .enc), a path or a name inside banks/"
        )
        parser.add_argument(
            "--code",
            help="Exam access code (prompted when omitted)"
        )
        parser.add_argument(
            "--config",
            help="Path to runner configuration file (default: config.json in executable directory)"
        )
        parser.add_argument(
            "--key-file",
            help="Fernet key file for an encrypted bank (otherwise the key or password is prompted)"
        )
        parser.add_argument(
            "--language",
            choices=["prompt", "en", "fr"],
            default=None,
            help="Interface language (default: from config)."
        )
        args = parser.parse_args(argv)

        try:
            self.config = load_config(Path(args.config) if args.config else None)
        except ValueError as e:
            print(self._msg("config_error", error=e))
            return 1
        configure_logging(self.config.log_level, Path(self.config.data_dir) / "runner.log")

        if args.language == "prompt":
            self.language = self._prompt_language()
        else:
            self.language = args.language or self.config.language
        self.messages = TRANSLATIONS[self.language]

        print(self._msg("header"))
        print(self._msg("title"))
        print(self._msg("header"))

        bank_path = self._resolve_bank_path(args.bank)
        if bank_path is None:
            print(self._msg("bank_missing", bank=args.bank, banks_dir="banks/"))
            return 1

        key_input = None
        if bank_path.suffix.lower() != '.json':
            key_input = self._read_key(args.key_file, bank_path.name)
            if key_input is None:
                return 1

        print(f"\n{self._msg('bank_loading')}")
        try:
            self.bank = load_bank(bank_path, key_input)
        except (OSError, ValueError) as e:
            print(self._msg("bank_error", error=e))
            return 1
        print(f"✓ {self._msg('bank_success', count=len(self.bank.exams))}")

        data_dir = Path(self.config.data_dir)
        self.store = FileSessionStore(self.bank, data_dir)
        self.machine = ExamSessionMachine(
            self.store,
            signal_source=self.signal_source,
            presenter=self.presenter,
            config=self.config,
            journal_dir=data_dir / "journals"
        )

        code = args.code
        if not code:
            try:
                code = input(self._msg("ask_code")).strip()
            except (KeyboardInterrupt, EOFError):
                return 1

        try:
            return asyncio.run(self.run_exam(code))
        except KeyboardInterrupt:
            if self.machine:
                self.machine.suspend()
            print(f"\n{self._msg('exit_message')}")
            return 1

    async def _ainput(self, prompt: str) -> str:
        """Read a line without blocking the countdown and the monitor."""
        return (await asyncio.to_thread(input, prompt)).strip()

    def _install_interrupt_handler(self):
        # Ctrl+C during the exam is reported as a blocked shortcut
        loop = asyncio.get_running_loop()
        try:
            loop.add_signal_handler(
                signal.SIGINT,
                lambda: self.signal_source.on_key("c", ctrl=True)
            )
        except (NotImplementedError, RuntimeError):
            pass

    def _remove_interrupt_handler(self):
        try:
            asyncio.get_running_loop().remove_signal_handler(signal.SIGINT)
        except (NotImplementedError, RuntimeError):
            pass

    async def run_exam(self, code: str) -> int:
        """Drive the state machine from access code to terminal state."""
        machine = self.machine

        try:
            await machine.initiate(code)
        except ExamNotFound as e:
            print(self._msg("not_found", error=e))
            return 1
        except TransientStoreFailure as e:
            print(self._msg("lookup_failed", error=e))
            return 1

        if not await self.register():
            return 1
        if not await self.show_instructions():
            return 1

        self._install_interrupt_handler()
        try:
            await self.command_loop()
        finally:
            self._remove_interrupt_handler()

        await machine.settle()
        return await self.finish()

    async def register(self) -> bool:
        machine = self.machine
        print("\n" + self._msg("header"))
        print(self._msg("reg_header", title=machine.exam.title))
        print(self._msg("header"))

        while machine.phase == ExamPhase.REGISTRATION:
            try:
                name = await self._ainput(self._msg("ask_name"))
                email = await self._ainput(self._msg("ask_email"))
                student_id = await self._ainput(self._msg("ask_student_id"))
            except EOFError:
                return False

            try:
                session = await machine.register(name, email, student_id)
            except ValidationError as e:
                print(self._msg("reg_validation", error=e))
                continue
            except TerminalConflict as e:
                key = "reg_terminal_disqualified" if e.status == "disqualified" else "reg_terminal_submitted"
                print(self._msg(key))
                print(self._msg("reg_terminal_contact"))
                return False
            except TransientStoreFailure as e:
                print(self._msg("reg_failed", error=e))
                continue

            if machine.resumed:
                answered = machine.submit_summary().answered
                print(f"\n✓ {self._msg('reg_resumed', name=session.student_name, answered=answered, total=machine.total_questions)}")
            else:
                print(f"\n✓ {self._msg('reg_success', name=session.student_name, email=session.student_email)}")
        return True

    async def show_instructions(self) -> bool:
        machine = self.machine
        exam = machine.exam
        print("\n" + self._msg("header"))
        print(self._msg("instr_header"))
        print(self._msg("header"))
        print(self._msg("instr_subject", subject=exam.subject))
        print(self._msg("instr_duration", minutes=exam.time_limit))
        print(self._msg("instr_questions", count=machine.total_questions))
        print(self._msg("instr_violations", max_violations=exam.max_violations))
        print()
        print(self._msg("instr_rules"))
        print()

        while machine.phase == ExamPhase.INSTRUCTIONS:
            try:
                answer = await self._ainput(self._msg("ask_start"))
            except EOFError:
                return False
            if answer.lower() != "start":
                continue
            try:
                await machine.begin_exam()
            except TransientStoreFailure as e:
                print(self._msg("start_failed", error=e))
                continue

        print(f"✓ {self._msg('exam_started', remaining=machine.countdown.format_remaining())}")
        print(self._msg("cmd_help"))
        self.cmd_show_question(machine.current_index)
        return True

    async def command_loop(self):
        """Main interactive command loop."""
        machine = self.machine
        while machine.phase == ExamPhase.EXAM and not machine.is_terminal:
            try:
                cmd_line = await self._ainput("exam> ")
            except EOFError:
                print(f"\n{self._msg('input_closed')}")
                machine.suspend()
                return

            # Time may have run out or a violation may have ended the exam
            if machine.phase != ExamPhase.EXAM or machine.is_terminal:
                print(self._msg("exam_over"))
                return
            if not cmd_line:
                continue

            parts = cmd_line.split()
            command = parts[0].lower()

            try:
                if command == 'help':
                    print(self._msg("cmd_help"))
                elif command.startswith('q') and command[1:].isdigit():
                    self.cmd_show_question(int(command[1:]) - 1)
                elif command == 'answer':
                    self.cmd_answer(parts[1:])
                elif command == 'flag':
                    self.cmd_flag(parts[1:])
                elif command == 'next':
                    machine.next_question()
                    self.cmd_show_question(machine.current_index)
                elif command == 'prev':
                    machine.previous_question()
                    self.cmd_show_question(machine.current_index)
                elif command == 'status':
                    self.cmd_status()
                elif command == 'time':
                    print(self._msg("cmd_time", remaining=machine.countdown.format_remaining()))
                elif command == 'submit':
                    await self.cmd_submit()
                elif command in ('exit', 'quit'):
                    machine.suspend()
                    print(self._msg("exit_message"))
                    return
                else:
                    print(self._msg("cmd_unknown", command=command))
            except (ValidationError, InvalidTransition) as e:
                print(self._msg("cmd_error", error=e))
            except FatalStoreFailure:
                # Handled by finish()
                return

    def _parse_number(self, value: str) -> Optional[int]:
        if not value.isdigit():
            print(self._msg("cmd_not_number", value=value))
            return None
        return int(value) - 1

    def cmd_show_question(self, index: int):
        machine = self.machine
        question = machine.go_to(index)
        selected = machine.answers[index]
        flag = self._msg("cmd_flag_marker") if index in machine.flagged else ""

        print()
        print(self._msg("cmd_question_header", number=index + 1, total=machine.total_questions, flag=flag))
        print(question.question)
        for idx, option in enumerate(question.options):
            marker = "(x)" if idx == selected else "( )"
            print(f"  {marker} {idx + 1}. {option}")
        print(self._msg("cmd_time", remaining=machine.countdown.format_remaining()))

    def cmd_answer(self, args):
        if len(args) != 2:
            print(self._msg("cmd_answer_usage"))
            return
        question_index = self._parse_number(args[0])
        option_index = self._parse_number(args[1])
        if question_index is None or option_index is None:
            return
        self.machine.select_answer(question_index, option_index)
        print(self._msg("cmd_answer_saved", number=question_index + 1, option=option_index + 1))

    def cmd_flag(self, args):
        if len(args) != 1:
            print(self._msg("cmd_flag_usage"))
            return
        question_index = self._parse_number(args[0])
        if question_index is None:
            return
        if self.machine.toggle_flag(question_index):
            print(self._msg("cmd_flagged", number=question_index + 1))
        else:
            print(self._msg("cmd_unflagged", number=question_index + 1))

    def cmd_status(self):
        machine = self.machine
        print()
        print(self._msg("cmd_status_header", student=machine.session.student_name))
        for i, answer in enumerate(machine.answers):
            if answer is None:
                state = self._msg("cmd_status_missing")
            else:
                state = self._msg("cmd_status_answered", option=answer + 1)
            flag = self._msg("cmd_flag_marker") if i in machine.flagged else ""
            print(self._msg("cmd_status_line", number=i + 1, state=state, flag=flag))

        summary = machine.submit_summary()
        print()
        print(self._msg(
            "cmd_status_total",
            answered=summary.answered,
            total=summary.total,
            flagged=summary.flagged,
            violations=machine.session.violation_count,
            max_violations=machine.exam.max_violations
        ))

    async def cmd_submit(self):
        summary = self.machine.submit_summary()
        print()
        print(self._msg("submit_summary", answered=summary.answered, total=summary.total))
        if summary.unanswered:
            print(self._msg("submit_unanswered", unanswered=summary.unanswered))

        try:
            confirm = (await self._ainput(self._msg("submit_confirm"))).lower()
        except EOFError:
            confirm = ""
        if confirm != 'y':
            print(self._msg("submit_cancel"))
            return

        if await self.machine.submit(auto=False):
            print(self._msg("submitted"))

    async def finish(self) -> int:
        """Report the terminal outcome, retrying a failed final save."""
        machine = self.machine

        while machine.phase == ExamPhase.FINALIZE_FAILED:
            try:
                retry = (await self._ainput(self._msg("finalize_retry"))).lower()
            except EOFError:
                retry = ""
            if retry != 'y':
                print(self._msg("finalize_abort"))
                return 2
            try:
                await machine.retry_finalize()
            except FatalStoreFailure:
                continue

        if machine.phase not in (ExamPhase.SUBMITTED, ExamPhase.DISQUALIFIED):
            # Left early; the session stays resumable
            return 0

        result = machine.result()
        results_path = Path(self.config.data_dir) / "results" / f"{result.session_id}.txt"
        write_results_file(result, results_path)

        print()
        # Disqualification was already announced by the presenter
        if machine.phase == ExamPhase.SUBMITTED:
            if machine.exam.show_results_immediately:
                print(result.render_text())
            else:
                print(self._msg("result_hidden"))
        print(self._msg("results_file", path=results_path))
        return 0 if machine.phase == ExamPhase.SUBMITTED else 1


def main():
    """Entry point for the exam runner."""
    runner = ExamRunner()
    sys.exit(runner.run())


if __name__ == "__main__":
    main()
