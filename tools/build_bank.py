#!/usr/bin/env python3
"""
build_bank.py - Validate and encrypt a plaintext JSON exam bank.

Usage with key file:
    python tools/build_bank.py --in spring_exams.json --out banks/spring.enc --key-file SPRING.key

Usage with password:
    python tools/build_bank.py --in spring_exams.json --out banks/spring.enc --password
"""

import argparse
import getpass
import hashlib
import json
import os
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))
from proctor.bank import Bank, SALT_LENGTH, derive_key_from_password, encrypt_bank_bytes

MIN_PASSWORD_LENGTH = 8


def build_bank(in_file: str, out_file: str, key: bytes, salt: bytes = None) -> str:
    """
    Validate a plaintext bank and write its encrypted form.

    Args:
        in_file: Plaintext JSON bank
        out_file: Destination of the encrypted bank
        key: Fernet key (from a key file or derived from a password)
        salt: Salt used to derive `key` from a password, stored in the output

    Returns:
        SHA256 checksum of the written file

    Raises:
        ValueError: If the bank is not valid JSON or fails validation
    """
    with open(in_file, 'rb') as f:
        plaintext = f.read()

    try:
        bank_data = json.loads(plaintext)
    except json.JSONDecodeError as e:
        raise ValueError(f"Invalid JSON in input file: {e}")

    try:
        bank = Bank.from_dict(bank_data)
    except (KeyError, TypeError) as e:
        raise ValueError(f"Malformed bank: missing or invalid field {e}")
    is_valid, errors = bank.validate()
    if not is_valid:
        raise ValueError("Bank validation failed:\n  - " + "\n  - ".join(errors))

    print("[OK] Input bank validated")
    print(f"  Version: {bank.version}")
    for exam in bank.exams.values():
        print(f"  {exam.access_code}: {exam.title} ({len(bank.questions_for(exam.id))} questions)")

    final_data = encrypt_bank_bytes(plaintext, key, salt)

    Path(out_file).parent.mkdir(parents=True, exist_ok=True)
    with open(out_file, 'wb') as f:
        f.write(final_data)

    return hashlib.sha256(final_data).hexdigest()


def _read_password() -> str:
    password = getpass.getpass("Enter encryption password: ")
    password_confirm = getpass.getpass("Confirm password: ")
    if password != password_confirm:
        raise ValueError("Passwords do not match")
    if len(password) < MIN_PASSWORD_LENGTH:
        raise ValueError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")
    return password


def main():
    parser = argparse.ArgumentParser(
        description="Validate and encrypt a plaintext JSON exam bank.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python tools/build_bank.py --in spring_exams.json --out banks/spring.enc --key-file SPRING.key
  python tools/build_bank.py --in spring_exams.json --out banks/spring.enc --password
        """
    )
    parser.add_argument("--in", dest="in_file", required=True, help="Input plaintext JSON bank")
    parser.add_argument("--out", required=True, help="Output encrypted bank file (.enc)")
    group = parser.add_mutually_exclusive_group(required=True)
    group.add_argument("--key-file", help="File containing the encryption key")
    group.add_argument("--password", action="store_true",
                       help="Use password-based encryption instead of a key file")
    args = parser.parse_args()

    try:
        if args.password:
            salt = os.urandom(SALT_LENGTH)
            key = derive_key_from_password(_read_password(), salt)
        else:
            salt = None
            key = Path(args.key_file).read_bytes().strip()

        checksum = build_bank(args.in_file, args.out, key, salt)
    except FileNotFoundError as e:
        print(f"[ERROR] File not found: {e}", file=sys.stderr)
        sys.exit(1)
    except ValueError as e:
        print(f"[ERROR] {e}", file=sys.stderr)
        sys.exit(1)

    print("\n[OK] Success: Bank encrypted")
    print(f"  Output: {args.out}")
    print(f"  Method: {'Password-based' if salt else 'Key file'}")
    print(f"  SHA256: {checksum}")


if __name__ == "__main__":
    main()
