"""
Learned-word bookkeeping: resolving and saving words, review outcomes,
word bank logging, and reading sessions.
"""

import logging
import math
from typing import Any, Dict, List, Optional

from fastapi.concurrency import run_in_threadpool

from .errors import StoreError, WordNotFoundError
from .resolver import WordResolver
from .word_store import WordStore, utc_now_iso

logger = logging.getLogger(__name__)

MASTERED = "mastered"
NEEDS_REVIEW = "needs_review"

# (duration_minutes, questions_answered, questions_correct)
STUDY_SESSION_MASTERED = (3, 1, 1)
STUDY_SESSION_DEFAULT = (1, 0, 0)


def clean_word(word: Any) -> str:
    return str(word).strip().lower()


class ActivityLogger:
    """Best-effort activity logging.

    Inserts into the session tables are optional: when disabled nothing is
    written, and any failure (including a table that has not been migrated
    yet) is logged and dropped so it never affects the caller's response.
    """

    def __init__(self, store: WordStore, enabled: bool = True):
        self.store = store
        self.enabled = enabled

    def learning_session(self, student_id: str, word: str, status: str, payload: Any) -> bool:
        if not self.enabled:
            return False
        try:
            self.store.insert_learning_session(student_id, word, status, payload)
        except StoreError as e:
            logger.warning(f"[ActivityLog] Skipped word learning session for '{word}' (code={e.code}): {e}")
            return False
        return True

    def study_session(self, student_id: str, mastered: bool = False, subject: str = "Vocabulary") -> bool:
        if not self.enabled:
            return False
        duration, answered, correct = STUDY_SESSION_MASTERED if mastered else STUDY_SESSION_DEFAULT
        try:
            self.store.insert_study_session(student_id, subject, duration, answered, correct)
        except StoreError as e:
            logger.warning(f"[ActivityLog] Skipped {subject} study session (code={e.code}): {e}")
            return False
        return True


def _whole(value: Optional[float], minimum: int) -> int:
    """Round half up like the dashboard does; missing or non-finite values become ``minimum``."""
    if value is None or not math.isfinite(value):
        return minimum
    return max(int(math.floor(value + 0.5)), minimum)


def _row_to_api(row: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "word": row.get("word"),
        "definition": row.get("definition"),
        "exampleSentence": row.get("example_sentence"),
        "pronunciation": row.get("pronunciation"),
        "mastered": bool(row.get("mastered")),
        "timesReviewed": int(row.get("times_reviewed") or 0),
        "lastReviewedAt": row.get("last_reviewed_at"),
        "metadata": row.get("metadata") if isinstance(row.get("metadata"), dict) else {},
    }


class LearningService:
    def __init__(self, store: WordStore, resolver: WordResolver, activity: Optional[ActivityLogger] = None):
        self.store = store
        self.resolver = resolver
        self.activity = activity or ActivityLogger(store)

    async def learn_word(self, student_id: str, word: str) -> Dict[str, Any]:
        """Resolve ``word`` and count a review for the student.

        Raises:
            WordNotFoundError: no tier could describe the word.
            StoreError: the word could not be saved.
        """
        details = await self.resolver.resolve(word)
        if details is None:
            raise WordNotFoundError(word)

        existing = await run_in_threadpool(self.store.get_word, student_id, details.word)
        times_reviewed = int((existing or {}).get("times_reviewed") or 0) + 1
        mastered = bool((existing or {}).get("mastered"))
        previous_metadata = (existing or {}).get("metadata")
        metadata = dict(previous_metadata) if isinstance(previous_metadata, dict) else {}
        metadata.update(details.metadata())

        row: Dict[str, Any] = {
            "student_id": student_id,
            "word": details.word,
            "definition": details.definition,
            "example_sentence": details.example,
            "pronunciation": details.pronunciation,
            "times_reviewed": times_reviewed,
            "last_reviewed_at": utc_now_iso(),
            "metadata": metadata,
        }
        # mastered is never copied from the read
        if not existing:
            row["mastered"] = False
        await run_in_threadpool(self.store.upsert_word, row)

        await run_in_threadpool(self.activity.learning_session, student_id, details.word, "started", details.to_api())
        await run_in_threadpool(self.activity.study_session, student_id, False)

        return {
            **details.to_api(),
            "timesReviewed": times_reviewed,
            "alreadyMastered": mastered,
        }

    async def record_outcome(self, student_id: str, word: str, outcome: str) -> None:
        """Count another review; ``outcome == "mastered"`` sets mastery for good.

        Raises:
            WordNotFoundError: the student never looked this word up.
            StoreError: the row could not be read or updated.
        """
        word = clean_word(word)
        existing = await run_in_threadpool(self.store.get_word, student_id, word)
        if not existing:
            raise WordNotFoundError(word)

        is_mastered = outcome == MASTERED
        fields: Dict[str, Any] = {
            "times_reviewed": int(existing.get("times_reviewed") or 0) + 1,
            "last_reviewed_at": utc_now_iso(),
        }
        if is_mastered:
            fields["mastered"] = True
        await run_in_threadpool(self.store.update_word, existing["id"], fields)

        status = MASTERED if is_mastered else NEEDS_REVIEW
        await run_in_threadpool(self.activity.learning_session, student_id, word, status, {"outcome": outcome})
        await run_in_threadpool(self.activity.study_session, student_id, is_mastered)

    async def log_pronunciation(
        self,
        student_id: str,
        word: str,
        status: Optional[str] = None,
        mark_mastered: bool = False,
        payload: Optional[Dict[str, Any]] = None,
    ) -> None:
        """Word bank practice: count a review without looking the word up."""
        word = clean_word(word)
        status = status.strip() if isinstance(status, str) and status.strip() else "pronounced"
        existing = await run_in_threadpool(self.store.get_word, student_id, word)

        row: Dict[str, Any] = {
            "student_id": student_id,
            "word": word,
            "times_reviewed": int((existing or {}).get("times_reviewed") or 0) + 1,
            "last_reviewed_at": utc_now_iso(),
        }
        if mark_mastered:
            row["mastered"] = True
        if not existing:
            row.setdefault("mastered", False)
            row.update({"definition": None, "example_sentence": None, "pronunciation": None})
        await run_in_threadpool(self.store.upsert_word, row)

        await run_in_threadpool(
            self.activity.learning_session, student_id, word, status, payload or {"source": "pronunciation_tab"}
        )
        await run_in_threadpool(self.activity.study_session, student_id, False)

    async def list_words(self, student_id: str) -> List[Dict[str, Any]]:
        rows = await run_in_threadpool(self.store.list_words, student_id)
        return [_row_to_api(r) for r in rows]

    async def log_reading(
        self,
        student_id: str,
        title: str,
        passage_id: Optional[str] = None,
        duration_minutes: Optional[float] = None,
        comprehension_score: Optional[float] = None,
        words_read: Optional[float] = None,
        questions_answered: Optional[float] = None,
        questions_correct: Optional[float] = None,
    ) -> None:
        """Save a finished reading passage and its study session.

        Raises:
            StoreError: either insert failed.
        """
        duration = _whole(duration_minutes, 1)
        score = min(_whole(comprehension_score, 0), 100)
        await run_in_threadpool(
            self.store.insert_reading_activity,
            student_id,
            passage_id or None,
            title,
            duration,
            score,
            _whole(words_read, 0),
        )
        await run_in_threadpool(
            self.store.insert_study_session,
            student_id,
            "Reading",
            duration,
            _whole(questions_answered, 0),
            _whole(questions_correct, 0),
        )
