"""
Tests for exam bank loading and encryption.
"""

import json
import os
from pathlib import Path

import pytest
from cryptography.fernet import Fernet

from proctor.bank import (
    Bank, SALT_LENGTH, decrypt_bank_bytes, derive_key_from_password,
    encrypt_bank_bytes, is_password_protected, load_bank,
)

SAMPLE_BANK = Path(__file__).parent.parent / "banks" / "sample_bank.json"


def bank_data(**exam_overrides):
    exam = {
        "id": "exam-1",
        "title": "Algebra Quiz",
        "time_limit": 10,
        "status": "active",
        "access_code": "alg1",
        "questions": [
            {"id": "q1", "question": "2+2?", "options": ["3", "4"], "answer": 1, "order_index": 1},
            {"id": "q0", "question": "1+1?", "options": ["2", "5"], "answer": 0, "order_index": 0},
        ],
    }
    exam.update(exam_overrides)
    return {"version": "3", "exams": [exam]}


class TestBankModel:
    """Test Bank parsing and validation."""

    def test_from_dict(self):
        bank = Bank.from_dict(bank_data())

        exam = bank.find_by_access_code("ALG1")
        assert exam.access_code == "ALG1"
        assert exam.max_violations == 5
        assert [q.id for q in bank.questions_for(exam.id)] == ["q0", "q1"]
        assert all(q.exam_id == "exam-1" for q in bank.questions_for(exam.id))

    def test_valid_bank(self):
        assert Bank.from_dict(bank_data()).validate() == (True, [])

    def test_exam_without_questions(self):
        ok, errors = Bank.from_dict(bank_data(questions=[])).validate()

        assert ok is False
        assert "has no questions" in errors[0]

    def test_answer_out_of_range(self):
        data = bank_data()
        data["exams"][0]["questions"][0]["answer"] = 5

        ok, errors = Bank.from_dict(data).validate()

        assert ok is False
        assert "out of range" in errors[0]

    def test_duplicate_access_codes(self):
        data = bank_data()
        second = dict(data["exams"][0], id="exam-2")
        data["exams"].append(second)

        ok, errors = Bank.from_dict(data).validate()

        assert ok is False
        assert any("Duplicate access code" in e for e in errors)

    def test_shipped_sample_bank_is_valid(self):
        bank = load_bank(SAMPLE_BANK)

        assert bank.find_by_access_code("NET101") is not None


class TestEncryption:
    """Test key-file and password encryption."""

    def test_key_round_trip(self):
        key = Fernet.generate_key()
        plaintext = json.dumps(bank_data()).encode("utf-8")

        encrypted = encrypt_bank_bytes(plaintext, key)

        assert not is_password_protected(encrypted)
        assert decrypt_bank_bytes(encrypted, key.decode("utf-8")) == plaintext

    def test_password_round_trip(self):
        salt = os.urandom(SALT_LENGTH)
        key = derive_key_from_password("correct horse", salt)
        plaintext = b'{"version": "1", "exams": []}'

        encrypted = encrypt_bank_bytes(plaintext, key, salt)

        assert is_password_protected(encrypted)
        assert decrypt_bank_bytes(encrypted, "correct horse") == plaintext

    def test_wrong_key_raises_value_error(self):
        encrypted = encrypt_bank_bytes(b"{}", Fernet.generate_key())

        with pytest.raises(ValueError):
            decrypt_bank_bytes(encrypted, Fernet.generate_key().decode("utf-8"))

    def test_malformed_key_raises_value_error(self):
        encrypted = encrypt_bank_bytes(b"{}", Fernet.generate_key())

        with pytest.raises(ValueError):
            decrypt_bank_bytes(encrypted, "not-a-key")


class TestLoadBank:
    """Test loading banks from disk."""

    def test_load_plain_json(self, tmp_path):
        path = tmp_path / "bank.json"
        path.write_text(json.dumps(bank_data()), encoding="utf-8")

        bank = load_bank(path)

        assert bank.version == "3"
        assert "exam-1" in bank.exams

    def test_load_encrypted(self, tmp_path):
        key = Fernet.generate_key()
        path = tmp_path / "bank.enc"
        path.write_bytes(encrypt_bank_bytes(json.dumps(bank_data()).encode("utf-8"), key))

        bank = load_bank(path, key.decode("utf-8"))

        assert bank.find_by_access_code("alg1").title == "Algebra Quiz"

    def test_encrypted_without_key(self, tmp_path):
        path = tmp_path / "bank.enc"
        path.write_bytes(encrypt_bank_bytes(b"{}", Fernet.generate_key()))

        with pytest.raises(ValueError):
            load_bank(path)

    def test_invalid_json(self, tmp_path):
        path = tmp_path / "bank.json"
        path.write_text("{oops", encoding="utf-8")

        with pytest.raises(ValueError, match="Invalid JSON"):
            load_bank(path)

    def test_missing_field(self, tmp_path):
        data = bank_data()
        del data["exams"][0]["title"]
        path = tmp_path / "bank.json"
        path.write_text(json.dumps(data), encoding="utf-8")

        with pytest.raises(ValueError, match="Malformed"):
            load_bank(path)

    def test_invalid_bank_is_rejected(self, tmp_path):
        path = tmp_path / "bank.json"
        path.write_text(json.dumps(bank_data(time_limit=0)), encoding="utf-8")

        with pytest.raises(ValueError, match="Invalid bank"):
            load_bank(path)

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_bank(tmp_path / "nope.json")
