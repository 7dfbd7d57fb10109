"""Lookup against the free dictionary API (dictionaryapi.dev response shape)."""

import asyncio
import logging
from typing import Any, Dict, List, Optional
from urllib.parse import quote

import httpx
from pydantic import ValidationError

from .config import DEFAULT_DICTIONARY_API_URL
from .fallback_words import (
    build_fallback_related_words,
    build_memory_tip,
    determine_difficulty,
    simplify_definition,
)
from .schemas import RELATED_WORDS_MAX, WordDetails

logger = logging.getLogger(__name__)


def _as_list(value: Any) -> List:
    return value if isinstance(value, list) else []


def _as_dict(value: Any) -> Dict:
    return value if isinstance(value, dict) else {}


def _clean_words(values: Any) -> List[str]:
    return [v.strip() for v in _as_list(values) if isinstance(v, str) and v.strip()]


def parse_dictionary_entry(word: str, data: Any) -> Optional[WordDetails]:
    """Normalize a dictionary API payload into WordDetails.

    Returns None when the payload has no usable first definition.
    """
    entries = _as_list(data)
    if not entries:
        return None
    entry = _as_dict(entries[0])
    meanings = _as_list(entry.get("meanings"))
    meaning = _as_dict(meanings[0]) if meanings else {}
    definitions = [_as_dict(d) for d in _as_list(meaning.get("definitions"))]
    first = definitions[0] if definitions else {}
    definition = first.get("definition")
    if not isinstance(definition, str) or not definition.strip():
        return None
    definition = definition.strip()

    entry_word = entry.get("word")
    resolved = entry_word.strip().lower() if isinstance(entry_word, str) and entry_word.strip() else word

    phonetics = [_as_dict(p) for p in _as_list(entry.get("phonetics"))]
    pronunciation = entry.get("phonetic") if isinstance(entry.get("phonetic"), str) else ""
    if not pronunciation:
        pronunciation = next((p["text"] for p in phonetics if isinstance(p.get("text"), str) and p["text"]), word)
    audio_url = next((p["audio"] for p in phonetics if isinstance(p.get("audio"), str) and p["audio"]), None)

    example = first.get("example") if isinstance(first.get("example"), str) else ""
    if not example:
        example = next((d["example"] for d in definitions if isinstance(d.get("example"), str) and d["example"]), "")

    synonyms = _clean_words(meaning.get("synonyms")) or _clean_words(first.get("synonyms"))
    related = synonyms[:RELATED_WORDS_MAX] or build_fallback_related_words(word)

    return WordDetails(
        word=resolved,
        pronunciation=pronunciation,
        definition=definition,
        simple_definition=simplify_definition(definition),
        example=example,
        memory_tip=build_memory_tip(resolved),
        related_words=related,
        difficulty=determine_difficulty(word),
        audio_url=audio_url,
    )


class DictionaryClient:
    def __init__(
        self,
        base_url: str = DEFAULT_DICTIONARY_API_URL,
        timeout: float = 8.0,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.http_client = http_client

    def url_for(self, word: str) -> str:
        return f"{self.base_url}/{quote(word, safe='')}"

    async def _fetch(self, word: str) -> Optional[Any]:
        url = self.url_for(word)
        if self.http_client is not None:
            response = await self.http_client.get(url)
        else:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.get(url)
        if not response.is_success:
            logger.info(f"[Dictionary] No entry for '{word}' (HTTP {response.status_code})")
            return None
        return response.json()

    async def lookup(self, word: str) -> Optional[WordDetails]:
        """Return the word's details, or None when the dictionary cannot answer.

        Network errors, timeouts, bad JSON and odd payloads all count as "not found".
        """
        try:
            data = await asyncio.wait_for(self._fetch(word), timeout=self.timeout)
        except asyncio.TimeoutError:
            logger.warning(f"[Dictionary] Lookup for '{word}' timed out after {self.timeout}s")
            return None
        except (httpx.HTTPError, ValueError) as e:
            logger.warning(f"[Dictionary] Lookup for '{word}' failed: {e}")
            return None
        if data is None:
            return None
        try:
            return parse_dictionary_entry(word, data)
        except ValidationError as e:
            logger.warning(f"[Dictionary] Unusable entry for '{word}': {e}")
            return None
