#!/usr/bin/env python3
"""
keygen.py - Generate a Fernet key for encrypting exam banks.

Usage:
    python tools/keygen.py --out SPRING.key

Note: build_bank.py --password encrypts with a password instead.
"""

import argparse
import sys
from pathlib import Path

from cryptography.fernet import Fernet


def generate_key(output_file: str) -> bytes:
    """Generate a new Fernet key, save it and return it."""
    key = Fernet.generate_key()
    Path(output_file).parent.mkdir(parents=True, exist_ok=True)
    with open(output_file, 'wb') as f:
        f.write(key)
    return key


def main():
    parser = argparse.ArgumentParser(
        description="Generate a new Fernet encryption key for exam banks.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python tools/keygen.py --out SPRING.key

Security Notes:
  - Hand the key to supervisors separately from the encrypted bank
  - Never commit keys to version control
        """
    )
    parser.add_argument(
        "--out",
        required=True,
        help="Output file path for the key (e.g., SPRING.key)"
    )
    args = parser.parse_args()

    try:
        key = generate_key(args.out)
    except OSError as e:
        print(f"[ERROR] Error generating key: {e}", file=sys.stderr)
        sys.exit(1)

    print("[OK] Success: Encryption key generated")
    print(f"  Output: {args.out}")
    print(f"  Key (base64): {key.decode('utf-8')}")
    print("\n[!] SECURITY: Store this key securely. Never commit to version control.")


if __name__ == "__main__":
    main()
