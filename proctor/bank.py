"""
Exam bank loading.

A bank holds published exams and their questions. It is read either from
plain JSON or from a Fernet-encrypted file, using a key file or a password
(PBKDF2 with the salt stored after a SALT prefix).
"""

import base64
import json
from pathlib import Path
from typing import Dict, List, Optional, Tuple

from cryptography.fernet import Fernet, InvalidToken
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC

from .models import ExamDefinition, Question

SALT_PREFIX = b'SALT'
SALT_LENGTH = 16


def derive_key_from_password(password: str, salt: bytes) -> bytes:
    """Derive a Fernet key from a password using PBKDF2."""
    kdf = PBKDF2HMAC(
        algorithm=hashes.SHA256(),
        length=32,
        salt=salt,
        iterations=480000,  # OWASP recommendation for 2024
    )
    key_material = kdf.derive(password.encode('utf-8'))
    return base64.urlsafe_b64encode(key_material)


def is_password_protected(data: bytes) -> bool:
    return data.startswith(SALT_PREFIX)


def decrypt_bank_bytes(data: bytes, key_input: str) -> bytes:
    """
    Decrypt an encrypted bank.

    Args:
        data: Raw file content
        key_input: Password (for SALT-prefixed files) or base64 Fernet key

    Returns:
        The plaintext JSON bytes

    Raises:
        ValueError: If the key or password is wrong or the file is corrupted
    """
    if is_password_protected(data):
        start = len(SALT_PREFIX)
        salt = data[start:start + SALT_LENGTH]
        token = data[start + SALT_LENGTH:]
        key = derive_key_from_password(key_input, salt)
    else:
        token = data
        key = key_input.strip().encode('utf-8')

    try:
        return Fernet(key).decrypt(token)
    except (InvalidToken, ValueError) as e:
        raise ValueError("Decryption failed: invalid key/password or corrupted file") from e


def encrypt_bank_bytes(plaintext: bytes, key: bytes, salt: Optional[bytes] = None) -> bytes:
    """Encrypt bank JSON, prepending the salt for password-derived keys."""
    token = Fernet(key).encrypt(plaintext)
    if salt:
        return SALT_PREFIX + salt + token
    return token


class Bank:
    """Published exams indexed by id and access code."""

    def __init__(self, version: str, exams: List[ExamDefinition],
                 questions: Dict[str, List[Question]]):
        self.version = version
        self.exams = {exam.id: exam for exam in exams}
        self.questions = questions
        self._by_code = {exam.access_code: exam for exam in exams}

    def find_by_access_code(self, code: str) -> Optional[ExamDefinition]:
        return self._by_code.get(code.strip().upper())

    def questions_for(self, exam_id: str) -> List[Question]:
        return sorted(self.questions.get(exam_id, []), key=lambda q: q.order_index)

    @staticmethod
    def from_dict(data: dict) -> 'Bank':
        """Create a Bank from its JSON form."""
        exams = []
        questions: Dict[str, List[Question]] = {}
        for exam_data in data['exams']:
            exam = ExamDefinition.from_dict(exam_data)
            exams.append(exam)
            questions[exam.id] = [
                Question.from_dict(q, exam_id=exam.id)
                for q in exam_data.get('questions', [])
            ]
        return Bank(version=str(data.get('version', '1')), exams=exams, questions=questions)

    def validate(self) -> Tuple[bool, List[str]]:
        """
        Validate every exam and question in the bank.

        Returns:
            Tuple of (is_valid, list of error messages)
        """
        errors = []
        seen_codes = set()
        for exam in self.exams.values():
            ok, message = exam.validate()
            if not ok:
                errors.append(message)
            if exam.access_code in seen_codes:
                errors.append(f"Duplicate access code: {exam.access_code}")
            seen_codes.add(exam.access_code)

            exam_questions = self.questions.get(exam.id, [])
            if not exam_questions:
                errors.append(f"Exam '{exam.id}' has no questions")
            for question in exam_questions:
                ok, message = question.validate()
                if not ok:
                    errors.append(message)
        return not errors, errors


def load_bank(path: Path, key_input: Optional[str] = None) -> Bank:
    """
    Load a bank from disk.

    Plain `.json` files are read directly; anything else is treated as an
    encrypted bank and needs `key_input`.

    Raises:
        FileNotFoundError: If the bank file doesn't exist
        ValueError: If decryption, parsing or validation fails
    """
    raw = path.read_bytes()
    if path.suffix.lower() == '.json':
        plaintext = raw
    else:
        if not key_input:
            raise ValueError(f"Encrypted bank '{path.name}' requires a key or password")
        plaintext = decrypt_bank_bytes(raw, key_input)

    try:
        data = json.loads(plaintext)
    except json.JSONDecodeError as e:
        raise ValueError(f"Invalid JSON in bank file: {e}")

    try:
        bank = Bank.from_dict(data)
    except (KeyError, TypeError) as e:
        raise ValueError(f"Malformed bank file: missing or invalid field {e}")

    is_valid, errors = bank.validate()
    if not is_valid:
        raise ValueError("Invalid bank: " + "; ".join(errors))
    return bank
