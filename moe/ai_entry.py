"""Word details generated by the Groq model, with the offline fallback as a safety net."""

import asyncio
import json
import logging
import re
from typing import Any, Dict, Optional

from pydantic import ValidationError

from .fallback_words import (
    build_fallback_related_words,
    build_memory_tip,
    determine_difficulty,
    generate_fallback,
    simplify_definition,
)
from .groq_client import GroqClient, GroqError
from .schemas import DIFFICULTIES, RELATED_WORDS_MAX, WordDetails

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = (
    "You are Moe, a friendly vocabulary teacher for students aged 8-14. "
    "Always return STRICT JSON only (no markdown, no code fences, no prose)."
)

_JSON_OBJECT = re.compile(r"\{.*\}", re.DOTALL)


def build_prompt(word: str) -> str:
    return (
        f'Explain the English word "{word}" for a student aged 8-14.\n\n'
        "Return ONE JSON object with exactly these keys:\n"
        '  "word": the word in lowercase,\n'
        '  "pronunciation": the word split into syllables with hyphens (e.g. "el-e-phant"),\n'
        '  "definition": a clear full definition,\n'
        '  "simpleDefinition": a child-friendly definition of at most 140 characters,\n'
        '  "example": one short example sentence using the word,\n'
        '  "memoryTip": a short trick to remember the word,\n'
        '  "relatedWords": an array of up to 6 related words,\n'
        '  "difficulty": one of "easy", "medium", "advanced".\n'
    )


def strip_code_fences(content: str) -> str:
    """Remove a Markdown ```json ... ``` wrapper if the model added one."""
    text = content.strip()
    if text.startswith("```"):
        text = text.lstrip("`").strip()
        if text.lower().startswith("json"):
            text = text[4:].strip()
        if text.endswith("```"):
            text = text.rstrip("`").strip()
    return text


def parse_model_json(content: str) -> Optional[Dict[str, Any]]:
    """Parse the model output as a JSON object, tolerating fences and surrounding prose."""
    text = strip_code_fences(content)
    try:
        data = json.loads(text)
    except json.JSONDecodeError:
        match = _JSON_OBJECT.search(text)
        if not match:
            return None
        try:
            data = json.loads(match.group(0))
        except json.JSONDecodeError:
            return None
    return data if isinstance(data, dict) else None


def _text(value: Any) -> str:
    return value.strip() if isinstance(value, str) else ""


def normalize_ai_entry(word: str, data: Dict[str, Any]) -> WordDetails:
    """Backfill and clamp the model's fields into a valid WordDetails."""
    fallback = generate_fallback(word)
    resolved = _text(data.get("word")).lower() or word

    related = data.get("relatedWords")
    related = [r.strip() for r in related if isinstance(r, str) and r.strip()] if isinstance(related, list) else []
    related = related[:RELATED_WORDS_MAX] or build_fallback_related_words(resolved)

    difficulty = _text(data.get("difficulty")).lower()
    if difficulty not in DIFFICULTIES:
        difficulty = determine_difficulty(resolved)

    definition = _text(data.get("definition")) or fallback.definition
    simple = _text(data.get("simpleDefinition")) or definition

    return WordDetails(
        word=resolved,
        pronunciation=_text(data.get("pronunciation")) or fallback.pronunciation,
        definition=definition,
        simple_definition=simplify_definition(simple),
        example=_text(data.get("example")) or fallback.example,
        memory_tip=_text(data.get("memoryTip")) or build_memory_tip(resolved),
        related_words=related,
        difficulty=difficulty,
    )


class AIEntryGenerator:
    """Asks Groq for a word entry; never raises, falls back to ``generate_fallback``."""

    def __init__(self, groq: Optional[GroqClient], timeout: float = 8.0):
        self.groq = groq
        self.timeout = timeout

    async def _ask(self, word: str) -> str:
        messages = [
            {"role": "system", "content": SYSTEM_PROMPT},
            {"role": "user", "content": build_prompt(word)},
        ]
        return await self.groq.complete(messages, temperature=0.3, max_tokens=600, json_mode=True)

    async def generate(self, word: str) -> WordDetails:
        if self.groq is None or not self.groq.configured:
            logger.info(f"[AIEntry] Groq not configured; using fallback entry for '{word}'")
            return generate_fallback(word)
        try:
            content = await asyncio.wait_for(self._ask(word), timeout=self.timeout)
        except asyncio.TimeoutError:
            logger.warning(f"[AIEntry] Groq timed out after {self.timeout}s for '{word}'; using fallback entry")
            return generate_fallback(word)
        except GroqError as e:
            logger.warning(f"[AIEntry] Groq failed for '{word}': {e}; using fallback entry")
            return generate_fallback(word)

        data = parse_model_json(content)
        if data is None:
            logger.warning(f"[AIEntry] Could not parse model output for '{word}': {content[:200]!r}")
            return generate_fallback(word)
        try:
            return normalize_ai_entry(word, data)
        except ValidationError as e:
            logger.warning(f"[AIEntry] Model entry for '{word}' failed validation: {e}")
            return generate_fallback(word)
