import asyncio
from unittest.mock import AsyncMock, Mock

import pytest

from moe.errors import StoreError, WordNotFoundError
from moe.fallback_words import generate_fallback
from moe.learning import ActivityLogger, LearningService, _whole
from moe.word_store import LEARNING_SESSIONS_TABLE, READING_ACTIVITIES_TABLE, STUDY_SESSIONS_TABLE, JsonWordStore


def _service(store, details=None, activity=None):
    resolver = Mock()
    resolver.resolve = AsyncMock(return_value=details)
    return LearningService(store, resolver, activity)


@pytest.mark.unit
def test_learn_word_creates_then_counts_reviews(json_store):
    service = _service(json_store, generate_fallback("cat"))

    first = asyncio.run(service.learn_word("s1", "cat"))
    second = asyncio.run(service.learn_word("s1", "cat"))

    assert first["timesReviewed"] == 1
    assert second["timesReviewed"] == 2
    assert second["alreadyMastered"] is False
    row = json_store.get_word("s1", "cat")
    assert row["times_reviewed"] == 2
    assert row["metadata"]["difficulty"] == "easy"
    assert row["example_sentence"] == first["example"]


@pytest.mark.unit
def test_learn_word_logs_activity(json_store):
    asyncio.run(_service(json_store, generate_fallback("cat")).learn_word("s1", "cat"))

    session = json_store.rows(LEARNING_SESSIONS_TABLE)[0]
    assert session["status"] == "started"
    assert session["payload"]["simpleDefinition"]
    study = json_store.rows(STUDY_SESSIONS_TABLE)[0]
    assert (study["subject"], study["duration_minutes"], study["questions_answered"]) == ("Vocabulary", 1, 0)


@pytest.mark.unit
def test_learn_word_unknown_raises(json_store):
    with pytest.raises(WordNotFoundError):
        asyncio.run(_service(json_store, None).learn_word("s1", "blorft"))
    assert json_store.list_words("s1") == []


@pytest.mark.unit
def test_learn_word_keeps_mastery(json_store):
    json_store.upsert_word({"student_id": "s1", "word": "cat", "mastered": True, "times_reviewed": 4,
                            "metadata": {"note": "kept"}})
    result = asyncio.run(_service(json_store, generate_fallback("cat")).learn_word("s1", "cat"))

    assert result["alreadyMastered"] is True
    assert result["timesReviewed"] == 5
    row = json_store.get_word("s1", "cat")
    assert row["mastered"] is True
    assert row["metadata"]["note"] == "kept"


@pytest.mark.unit
def test_mastery_is_sticky(json_store):
    service = _service(json_store, generate_fallback("cat"))
    asyncio.run(service.learn_word("s1", "cat"))
    asyncio.run(service.record_outcome("s1", "Cat", "mastered"))
    asyncio.run(service.record_outcome("s1", "cat", "needs_review"))

    row = json_store.get_word("s1", "cat")
    assert row["mastered"] is True
    assert row["times_reviewed"] == 3
    statuses = [s["status"] for s in json_store.rows(LEARNING_SESSIONS_TABLE)]
    assert statuses == ["started", "mastered", "needs_review"]
    durations = [s["duration_minutes"] for s in json_store.rows(STUDY_SESSIONS_TABLE)]
    assert durations == [1, 3, 1]


@pytest.mark.unit
def test_record_outcome_unknown_word(json_store):
    with pytest.raises(WordNotFoundError):
        asyncio.run(_service(json_store).record_outcome("s1", "cat", "mastered"))


@pytest.mark.unit
def test_log_pronunciation_defaults(json_store):
    service = _service(json_store)
    asyncio.run(service.log_pronunciation("s1", " Lion "))
    asyncio.run(service.log_pronunciation("s1", "lion", status="practiced", mark_mastered=True, payload={"score": 9}))

    row = json_store.get_word("s1", "lion")
    assert row["times_reviewed"] == 2
    assert row["mastered"] is True
    assert row["definition"] is None
    sessions = json_store.rows(LEARNING_SESSIONS_TABLE)
    assert sessions[0]["status"] == "pronounced"
    assert sessions[0]["payload"] == {"source": "pronunciation_tab"}
    assert sessions[1]["payload"] == {"score": 9}


@pytest.mark.unit
def test_list_words_api_shape(json_store):
    asyncio.run(_service(json_store, generate_fallback("cat")).learn_word("s1", "cat"))
    words = asyncio.run(_service(json_store).list_words("s1"))
    assert words[0]["word"] == "cat"
    assert words[0]["timesReviewed"] == 1
    assert words[0]["mastered"] is False
    assert "relatedWords" in words[0]["metadata"]


@pytest.mark.unit
def test_log_reading_clamps_values(json_store):
    asyncio.run(_service(json_store).log_reading(
        "s1", "The Fox", duration_minutes=0.2, comprehension_score=140.6, words_read=99.5,
        questions_answered=3, questions_correct=2,
    ))
    reading = json_store.rows(READING_ACTIVITIES_TABLE)[0]
    assert (reading["duration_minutes"], reading["comprehension_score"], reading["words_read"]) == (1, 100, 100)
    study = json_store.rows(STUDY_SESSIONS_TABLE)[0]
    assert study["subject"] == "Reading"
    assert (study["questions_answered"], study["questions_correct"]) == (3, 2)


@pytest.mark.unit
def test_log_reading_store_error_propagates():
    store = Mock()
    store.insert_reading_activity.side_effect = StoreError("down")
    with pytest.raises(StoreError):
        asyncio.run(_service(store).log_reading("s1", "The Fox"))


@pytest.mark.unit
@pytest.mark.parametrize("value,minimum,expected", [
    (None, 1, 1),
    (float("nan"), 0, 0),
    (2.5, 0, 3),
    (2.4, 0, 2),
    (-5, 0, 0),
])
def test_whole(value, minimum, expected):
    assert _whole(value, minimum) == expected


@pytest.mark.unit
def test_activity_logger_disabled_writes_nothing():
    store = Mock()
    activity = ActivityLogger(store, enabled=False)
    assert activity.learning_session("s1", "cat", "started", {}) is False
    assert activity.study_session("s1") is False
    store.insert_learning_session.assert_not_called()
    store.insert_study_session.assert_not_called()


@pytest.mark.unit
def test_activity_logger_swallows_store_errors():
    store = Mock()
    store.insert_learning_session.side_effect = StoreError("missing table", code="42P01")
    store.insert_study_session.side_effect = StoreError("missing table", code="42P01")
    activity = ActivityLogger(store)
    assert activity.learning_session("s1", "cat", "started", {}) is False
    assert activity.study_session("s1", mastered=True) is False
    store.insert_study_session.assert_called_once_with("s1", "Vocabulary", 3, 1, 1)


class StaleReadStore(JsonWordStore):
    """Returns the row as it was before another request marked it mastered."""

    def get_word(self, student_id, word):
        row = super().get_word(student_id, word)
        if row is not None:
            row["mastered"] = False
        return row


@pytest.mark.unit
def test_learn_word_does_not_overwrite_mastery_from_stale_read(tmp_path):
    store = StaleReadStore(str(tmp_path / "words_store.json"))
    store.upsert_word({"student_id": "s1", "word": "cat", "mastered": True, "times_reviewed": 2})

    asyncio.run(_service(store, generate_fallback("cat")).learn_word("s1", "cat"))

    row = JsonWordStore(store.path).get_word("s1", "cat")
    assert row["mastered"] is True
    assert row["times_reviewed"] == 3


@pytest.mark.unit
def test_outcome_and_word_bank_do_not_overwrite_mastery_from_stale_read(tmp_path):
    store = StaleReadStore(str(tmp_path / "words_store.json"))
    store.upsert_word({"student_id": "s1", "word": "cat", "mastered": True, "times_reviewed": 2})
    service = _service(store)

    asyncio.run(service.record_outcome("s1", "cat", "needs_review"))
    asyncio.run(service.log_pronunciation("s1", "cat"))

    row = JsonWordStore(store.path).get_word("s1", "cat")
    assert row["mastered"] is True
    assert row["times_reviewed"] == 4


@pytest.mark.unit
def test_new_rows_start_unmastered(json_store):
    asyncio.run(_service(json_store).log_pronunciation("s1", "owl"))
    assert json_store.get_word("s1", "owl")["mastered"] is False
