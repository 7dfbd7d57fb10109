"""
Storage for learned words and activity logs.

``SupabaseWordStore`` talks to the hosted database; ``JsonWordStore`` keeps the
same tables in a local JSON file for development and tests. Both raise
``StoreError`` on failure.
"""

import json
import logging
import os
import threading
import uuid
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import httpx
from postgrest.exceptions import APIError
from supabase import Client, create_client

from .errors import StoreError

logger = logging.getLogger(__name__)

WORDS_TABLE = "words_learned"
LEARNING_SESSIONS_TABLE = "word_learning_sessions"
STUDY_SESSIONS_TABLE = "study_sessions"
READING_ACTIVITIES_TABLE = "reading_activities"

WORD_COLUMNS = "id, student_id, word, definition, example_sentence, pronunciation, mastered, times_reviewed, last_reviewed_at, metadata"


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class WordStore(ABC):
    name = "abstract"

    @abstractmethod
    def get_word(self, student_id: str, word: str) -> Optional[Dict[str, Any]]:
        """Return the student's row for ``word`` or None."""

    @abstractmethod
    def upsert_word(self, row: Dict[str, Any]) -> None:
        """Insert or update on the (student_id, word) conflict key.

        Only the keys present in ``row`` are written on update.
        """

    @abstractmethod
    def update_word(self, row_id: str, fields: Dict[str, Any]) -> None:
        ...

    @abstractmethod
    def list_words(self, student_id: str) -> List[Dict[str, Any]]:
        """Rows for a student, most recently reviewed first."""

    @abstractmethod
    def insert_learning_session(self, student_id: str, word: str, status: str, payload: Any) -> None:
        ...

    @abstractmethod
    def insert_study_session(
        self,
        student_id: str,
        subject: str,
        duration_minutes: int,
        questions_answered: int,
        questions_correct: int,
    ) -> None:
        ...

    @abstractmethod
    def insert_reading_activity(
        self,
        student_id: str,
        passage_id: Optional[str],
        title: str,
        duration_minutes: int,
        comprehension_score: int,
        words_read: int,
    ) -> None:
        ...


class SupabaseWordStore(WordStore):
    name = "supabase"

    def __init__(self, client: Client):
        self.client = client

    @classmethod
    def from_credentials(cls, url: Optional[str], key: Optional[str]) -> "SupabaseWordStore":
        if not url or not key:
            raise StoreError(
                "Supabase credentials are not configured. Please set SUPABASE_URL and SUPABASE_SERVICE_ROLE_KEY."
            )
        return cls(create_client(url, key))

    def _execute(self, query, action: str):
        try:
            return query.execute()
        except APIError as e:
            raise StoreError(f"{action} failed: {e.message}", code=e.code) from e
        except httpx.HTTPError as e:
            raise StoreError(f"{action} failed: {e}") from e

    def get_word(self, student_id: str, word: str) -> Optional[Dict[str, Any]]:
        query = (
            self.client.table(WORDS_TABLE)
            .select(WORD_COLUMNS)
            .eq("student_id", student_id)
            .eq("word", word)
            .maybe_single()
        )
        try:
            response = self._execute(query, "Loading word")
        except StoreError as e:
            # older postgrest-py reports an empty maybe_single() as code 204
            if str(e.code) == "204":
                return None
            raise
        if response is None:
            return None
        return response.data or None

    def upsert_word(self, row: Dict[str, Any]) -> None:
        self._execute(
            self.client.table(WORDS_TABLE).upsert(row, on_conflict="student_id,word"),
            "Upserting word",
        )

    def update_word(self, row_id: str, fields: Dict[str, Any]) -> None:
        self._execute(
            self.client.table(WORDS_TABLE).update(fields).eq("id", row_id),
            "Updating word",
        )

    def list_words(self, student_id: str) -> List[Dict[str, Any]]:
        response = self._execute(
            self.client.table(WORDS_TABLE)
            .select(WORD_COLUMNS)
            .eq("student_id", student_id)
            .order("last_reviewed_at", desc=True),
            "Listing words",
        )
        return list(response.data or [])

    def insert_learning_session(self, student_id: str, word: str, status: str, payload: Any) -> None:
        self._execute(
            self.client.table(LEARNING_SESSIONS_TABLE).insert({
                "student_id": student_id,
                "word": word,
                "status": status,
                "payload": payload,
            }),
            "Logging word learning session",
        )

    def insert_study_session(self, student_id, subject, duration_minutes, questions_answered, questions_correct) -> None:
        now = utc_now_iso()
        self._execute(
            self.client.table(STUDY_SESSIONS_TABLE).insert({
                "student_id": student_id,
                "subject": subject,
                "duration_minutes": duration_minutes,
                "questions_answered": questions_answered,
                "questions_correct": questions_correct,
                "started_at": now,
                "ended_at": now,
            }),
            "Recording study session",
        )

    def insert_reading_activity(self, student_id, passage_id, title, duration_minutes, comprehension_score, words_read) -> None:
        self._execute(
            self.client.table(READING_ACTIVITIES_TABLE).insert({
                "student_id": student_id,
                "passage_id": passage_id,
                "title": title,
                "duration_minutes": duration_minutes,
                "comprehension_score": comprehension_score,
                "words_read": words_read,
            }),
            "Logging reading activity",
        )


class JsonWordStore(WordStore):
    """All tables in one JSON file: {"words_learned": [...], "study_sessions": [...], ...}."""

    name = "json"

    def __init__(self, path: str):
        self.path = path
        self._lock = threading.Lock()

    def _read_all(self) -> Dict[str, List[Dict[str, Any]]]:
        if not os.path.exists(self.path):
            return {}
        try:
            with open(self.path, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise StoreError(f"Could not read {self.path}: {e}") from e
        return data if isinstance(data, dict) else {}

    def _write_all(self, data: Dict[str, List[Dict[str, Any]]]) -> None:
        try:
            folder = os.path.dirname(self.path)
            if folder:
                os.makedirs(folder, exist_ok=True)
            with open(self.path, 'w', encoding='utf-8') as f:
                json.dump(data, f, ensure_ascii=False, indent=2)
        except OSError as e:
            raise StoreError(f"Could not write {self.path}: {e}") from e

    @staticmethod
    def _table(data: Dict[str, Any], name: str) -> List[Dict[str, Any]]:
        rows = data.get(name)
        if not isinstance(rows, list):
            rows = []
            data[name] = rows
        return rows

    def _insert(self, table: str, row: Dict[str, Any]) -> None:
        with self._lock:
            data = self._read_all()
            self._table(data, table).append({"id": uuid.uuid4().hex, "created_at": utc_now_iso(), **row})
            self._write_all(data)

    def get_word(self, student_id: str, word: str) -> Optional[Dict[str, Any]]:
        with self._lock:
            rows = self._table(self._read_all(), WORDS_TABLE)
        for row in rows:
            if row.get("student_id") == student_id and row.get("word") == word:
                return dict(row)
        return None

    def upsert_word(self, row: Dict[str, Any]) -> None:
        with self._lock:
            data = self._read_all()
            rows = self._table(data, WORDS_TABLE)
            for existing in rows:
                if existing.get("student_id") == row.get("student_id") and existing.get("word") == row.get("word"):
                    existing.update(row)
                    break
            else:
                rows.append({"id": uuid.uuid4().hex, **row})
            self._write_all(data)

    def update_word(self, row_id: str, fields: Dict[str, Any]) -> None:
        with self._lock:
            data = self._read_all()
            for existing in self._table(data, WORDS_TABLE):
                if existing.get("id") == row_id:
                    existing.update(fields)
                    break
            else:
                raise StoreError(f"No word row with id {row_id}")
            self._write_all(data)

    def list_words(self, student_id: str) -> List[Dict[str, Any]]:
        with self._lock:
            rows = self._table(self._read_all(), WORDS_TABLE)
        mine = [dict(r) for r in rows if r.get("student_id") == student_id]
        mine.sort(key=lambda r: r.get("last_reviewed_at") or "", reverse=True)
        return mine

    def insert_learning_session(self, student_id: str, word: str, status: str, payload: Any) -> None:
        self._insert(LEARNING_SESSIONS_TABLE, {
            "student_id": student_id,
            "word": word,
            "status": status,
            "payload": payload,
        })

    def insert_study_session(self, student_id, subject, duration_minutes, questions_answered, questions_correct) -> None:
        now = utc_now_iso()
        self._insert(STUDY_SESSIONS_TABLE, {
            "student_id": student_id,
            "subject": subject,
            "duration_minutes": duration_minutes,
            "questions_answered": questions_answered,
            "questions_correct": questions_correct,
            "started_at": now,
            "ended_at": now,
        })

    def insert_reading_activity(self, student_id, passage_id, title, duration_minutes, comprehension_score, words_read) -> None:
        self._insert(READING_ACTIVITIES_TABLE, {
            "student_id": student_id,
            "passage_id": passage_id,
            "title": title,
            "duration_minutes": duration_minutes,
            "comprehension_score": comprehension_score,
            "words_read": words_read,
        })

    def rows(self, table: str) -> List[Dict[str, Any]]:
        """Raw rows of a table."""
        with self._lock:
            return [dict(r) for r in self._table(self._read_all(), table)]


def build_store(settings) -> WordStore:
    if settings.word_store == "supabase":
        return SupabaseWordStore.from_credentials(settings.supabase_url, settings.supabase_key)
    logger.info(f"[Store] Using local JSON word store at {settings.word_store_file}")
    return JsonWordStore(settings.word_store_file)
