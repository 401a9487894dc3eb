#!/usr/bin/env python3
"""
verify_bank.py - Decrypt and validate an exam bank for inspection.

Usage:
    python tools/verify_bank.py --bank banks/spring.enc --key-file SPRING.key
    python tools/verify_bank.py --bank banks/spring.enc --password
    python tools/verify_bank.py --bank spring_exams.json --verbose
"""

import argparse
import getpass
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))
from proctor.bank import Bank, load_bank


def describe_bank(bank: Bank, verbose: bool = False):
    """Print a summary of every exam in the bank."""
    print("\n[SCHEMA] Bank Validation")
    print(f"{'=' * 60}")
    print(f"[OK] Version: {bank.version}")

    total_questions = 0
    for exam in bank.exams.values():
        questions = bank.questions_for(exam.id)
        total_questions += len(questions)
        print(f"\n[EXAM] {exam.title} ({exam.id})")
        print(f"  Access code: {exam.access_code}")
        print(f"  Status: {exam.status.value}")
        print(f"  Time limit: {exam.time_limit} minutes")
        print(f"  Max violations: {exam.max_violations}")
        print(f"  Shuffle questions/options: {exam.shuffle_questions}/{exam.shuffle_options}")
        print(f"  Questions: {len(questions)}")
        if verbose:
            for question in questions:
                print(f"    [{question.order_index}] {question.question} ({len(question.options)} options)")

    print(f"\n{'=' * 60}")
    print("[SUMMARY]")
    print(f"  Exams: {len(bank.exams)}")
    print(f"  Total questions: {total_questions}")


def main():
    parser = argparse.ArgumentParser(
        description="Validate exam bank schema and content.",
        formatter_class=argparse.RawDescriptionHelpFormatter
    )
    parser.add_argument("--bank", required=True, help="Path to bank file (.enc or .json)")
    parser.add_argument("--key-file", help="Encryption key file (for key-file encrypted banks)")
    parser.add_argument("--password", action="store_true",
                        help="Use password to decrypt (for password-encrypted banks)")
    parser.add_argument("--verbose", action="store_true", help="List every question")
    args = parser.parse_args()

    bank_path = Path(args.bank)
    key_input = None
    if args.key_file:
        key_input = Path(args.key_file).read_text(encoding='utf-8').strip()
    elif args.password:
        key_input = getpass.getpass("Enter decryption password: ")

    try:
        bank = load_bank(bank_path, key_input)
    except FileNotFoundError as e:
        print(f"[ERROR] File not found: {e}", file=sys.stderr)
        sys.exit(1)
    except ValueError as e:
        print(f"[ERROR] {e}", file=sys.stderr)
        sys.exit(1)

    describe_bank(bank, args.verbose)
    print("\n[OK] Bank validation PASSED")


if __name__ == "__main__":
    main()
