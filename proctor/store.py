"""
Session Store Client

The persistence collaborator is reached through the async SessionStore
contract. FileSessionStore implements it with a loaded exam bank (read-only)
and one JSON record per session on disk.
"""

import asyncio
import json
import logging
import os
import threading
import uuid
from pathlib import Path
from typing import Any, Dict, List, Optional

from .bank import Bank
from .errors import StoreError
from .models import ExamDefinition, ExamSession, Question, SessionStatus, utcnow

logger = logging.getLogger(__name__)


class SessionStore:
    """Async contract consumed by the exam session state machine."""

    async def find_exam_by_access_code(self, code: str) -> Optional[ExamDefinition]:
        raise NotImplementedError

    async def list_questions(self, exam_id: str) -> List[Question]:
        """Questions of an exam, ordered by order_index."""
        raise NotImplementedError

    async def find_session_by_email(self, exam_id: str, email: str) -> Optional[ExamSession]:
        raise NotImplementedError

    async def create_session(self, fields: Dict[str, Any]) -> ExamSession:
        raise NotImplementedError

    async def update_session(self, session_id: str, patch: Dict[str, Any]) -> bool:
        """
        Apply `patch` to a session record. Returns False if it was not applied.

        Terminal records are never rewritten. A patch carrying the terminal
        status the record already holds returns True, so a retried terminal
        write whose acknowledgement was lost still counts as saved.
        """
        raise NotImplementedError


class FileSessionStore(SessionStore):
    """
    Session records as JSON files under `<data_dir>/sessions/`.

    Files are replaced atomically, so a crash mid-write leaves the previous
    record intact. Terminal records are never rewritten.
    """

    def __init__(self, bank: Bank, data_dir: Path):
        self.bank = bank
        self.sessions_dir = Path(data_dir) / "sessions"
        self.sessions_dir.mkdir(parents=True, exist_ok=True)
        self._lock = threading.Lock()

    # ===== EXAMS =====

    async def find_exam_by_access_code(self, code: str) -> Optional[ExamDefinition]:
        return self.bank.find_by_access_code(code)

    async def list_questions(self, exam_id: str) -> List[Question]:
        return self.bank.questions_for(exam_id)

    # ===== SESSIONS =====

    async def find_session_by_email(self, exam_id: str, email: str) -> Optional[ExamSession]:
        return await asyncio.to_thread(self._find_by_email, exam_id, email)

    async def create_session(self, fields: Dict[str, Any]) -> ExamSession:
        return await asyncio.to_thread(self._create, fields)

    async def update_session(self, session_id: str, patch: Dict[str, Any]) -> bool:
        return await asyncio.to_thread(self._update, session_id, patch)

    def get_session(self, session_id: str) -> Optional[ExamSession]:
        """Synchronous lookup by id, used by tools and tests."""
        path = self._path(session_id)
        if not path.exists():
            return None
        return ExamSession.from_dict(self._read(path))

    def list_sessions(self, exam_id: Optional[str] = None) -> List[ExamSession]:
        sessions = []
        for path in sorted(self.sessions_dir.glob("*.json")):
            record = self._read(path)
            if exam_id is None or record.get("exam_id") == exam_id:
                sessions.append(ExamSession.from_dict(record))
        return sessions

    # ===== FILE HELPERS =====

    def _path(self, session_id: str) -> Path:
        return self.sessions_dir / f"{session_id}.json"

    def _read(self, path: Path) -> Dict[str, Any]:
        try:
            with open(path, 'r', encoding='utf-8') as f:
                return json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise StoreError(f"Cannot read session record {path.name}: {e}") from e

    def _write(self, path: Path, record: Dict[str, Any]):
        tmp_path = path.with_suffix(".tmp")
        try:
            with open(tmp_path, 'w', encoding='utf-8') as f:
                json.dump(record, f, indent=2)
            os.replace(tmp_path, path)
        except OSError as e:
            raise StoreError(f"Cannot write session record {path.name}: {e}") from e

    def _find_by_email(self, exam_id: str, email: str) -> Optional[ExamSession]:
        email = email.strip().lower()
        with self._lock:
            matches = [
                record for record in (self._read(p) for p in self.sessions_dir.glob("*.json"))
                if record.get("exam_id") == exam_id and record.get("student_email") == email
            ]
        if not matches:
            return None
        # Prefer a live session over old terminal ones
        matches.sort(key=lambda r: (not SessionStatus(r["status"]).is_terminal, r.get("created_at") or ""))
        return ExamSession.from_dict(matches[-1])

    def _create(self, fields: Dict[str, Any]) -> ExamSession:
        existing = self._find_by_email(fields["exam_id"], fields["student_email"])
        if existing is not None:
            raise StoreError(
                f"Session already exists for {fields['student_email']} on exam {fields['exam_id']}"
            )

        record = dict(fields)
        record.setdefault("id", uuid.uuid4().hex)
        record.setdefault("status", SessionStatus.REGISTERED.value)
        record.setdefault("created_at", utcnow().isoformat())
        session = ExamSession.from_dict(record)

        with self._lock:
            self._write(self._path(session.id), session.to_dict())
        logger.info("Created session %s for %s", session.id, session.student_email)
        return session

    def _update(self, session_id: str, patch: Dict[str, Any]) -> bool:
        path = self._path(session_id)
        with self._lock:
            if not path.exists():
                logger.warning("Update for unknown session %s", session_id)
                return False

            record = self._read(path)
            status = SessionStatus(record["status"])
            if status.is_terminal:
                # A repeated terminal write whose first attempt landed
                if patch.get("status") == status.value:
                    logger.info("Session %s is already %s", session_id, status.value)
                    return True
                logger.warning("Refusing update to terminal session %s", session_id)
                return False

            record.update(patch)
            self._write(path, record)
        return True
