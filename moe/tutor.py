"""Moe tutor features backed by Groq: practice sentences, chat and math help."""

import asyncio
import logging
import random
from typing import Dict, List, Optional

from .ai_entry import parse_model_json
from .errors import SolutionParseError, TutorUnavailableError
from .groq_client import GroqClient, GroqError
from .math_solver import build_math_prompt, normalize_math_solution
from .schemas import MathSolution

logger = logging.getLogger(__name__)

MAX_CHAT_HISTORY = 20

SENTENCE_PROMPT = (
    "Generate ONE simple, fun sentence for an 8-14 year old Sierra Leone student to practice reading.\n\n"
    "Requirements:\n"
    "- 6-12 words long\n"
    "- Use common, everyday words\n"
    "- Make it interesting or fun\n"
    "- Can be about animals, family, school, food, nature, or daily life\n"
    "- Appropriate for Sierra Leone context\n"
    "- NO punctuation at the end\n"
    "- Just return the sentence, nothing else\n\n"
    "Examples:\n"
    '"The big brown dog runs fast in the park"\n'
    '"My sister loves to eat rice and cassava leaves"\n'
    '"We play football every day after school"\n\n'
    "Generate ONE new sentence now:"
)

FALLBACK_SENTENCES = [
    "The big brown dog runs fast in the park",
    "My sister loves to eat rice and cassava leaves",
    "We play football every day after school",
    "The little goat jumped over the small wooden fence",
    "Grandma tells us stories when the moon is bright",
    "My friends and I sing songs on the way home",
    "The rain makes the mango trees look fresh and green",
    "Our teacher reads a new book to the class",
]

SYSTEM_PROMPTS: Dict[str, str] = {
    "homework": (
        "You are Moe, a friendly and patient AI tutor for Sierra Leone students aged 8-14. "
        "Help students with their homework in a simple, encouraging way. Explain math, science, "
        "reading, and other subjects clearly, breaking complex topics into small steps. "
        "For math, show step-by-step solutions and explain why each step is done. "
        "Use simple language and everyday examples from Sierra Leone, ask guiding questions, "
        "and celebrate effort. Keep responses concise. Your goal is to help them learn and "
        "build confidence, not just give them answers."
    ),
    "pronunciation": (
        "You are Moe, a friendly pronunciation teacher for Sierra Leone students aged 8-14. "
        "When a student types a word: break it into syllables (e.g. \"elephant\" -> \"el-e-phant\"), "
        "explain simply how to say it, give a simple definition, provide an example sentence, "
        "and mention words it sounds like. Keep it fun, simple, and encouraging."
    ),
}
DEFAULT_MODE = "homework"


def clean_sentence(text: str) -> str:
    sentence = text.strip().splitlines()[0].strip() if text.strip() else ""
    return sentence.strip('"\'').rstrip(".!?").strip()


def pick_fallback_sentence() -> str:
    return random.choice(FALLBACK_SENTENCES)


class Tutor:
    def __init__(self, groq: Optional[GroqClient], timeout: float = 15.0):
        self.groq = groq
        self.timeout = timeout

    async def generate_sentence(self) -> str:
        """A short reading practice sentence; a stock sentence when Groq can't help."""
        if self.groq is None or not self.groq.configured:
            return pick_fallback_sentence()
        try:
            text = await asyncio.wait_for(
                self.groq.complete([{"role": "user", "content": SENTENCE_PROMPT}], temperature=0.9, max_tokens=60),
                timeout=self.timeout,
            )
        except (GroqError, asyncio.TimeoutError) as e:
            logger.warning(f"[Tutor] Sentence generation failed: {e}; using a stock sentence")
            return pick_fallback_sentence()
        sentence = clean_sentence(text)
        return sentence or pick_fallback_sentence()

    async def chat(self, messages: List[Dict[str, str]], mode: Optional[str] = None) -> str:
        """Reply as Moe.

        Raises:
            TutorUnavailableError: Groq is not configured or did not answer.
        """
        if self.groq is None or not self.groq.configured:
            raise TutorUnavailableError("AI service not configured. Please add GROQ_API_KEY to environment variables.")
        system_prompt = SYSTEM_PROMPTS.get(mode or DEFAULT_MODE, SYSTEM_PROMPTS[DEFAULT_MODE])
        history = [m for m in messages if m.get("content", "").strip()][-MAX_CHAT_HISTORY:]
        try:
            return await asyncio.wait_for(
                self.groq.complete([{"role": "system", "content": system_prompt}, *history]),
                timeout=self.timeout,
            )
        except (GroqError, asyncio.TimeoutError) as e:
            logger.error(f"[Tutor] Chat failed: {e}")
            raise TutorUnavailableError(str(e)) from e

    async def solve_math(self, problem: str) -> MathSolution:
        """Work through ``problem`` step by step.

        Raises:
            TutorUnavailableError: Groq is not configured or did not answer.
            SolutionParseError: the reply was not a JSON object.
        """
        if self.groq is None or not self.groq.configured:
            raise TutorUnavailableError("AI service not configured. Please add GROQ_API_KEY to environment variables.")
        try:
            text = await asyncio.wait_for(
                self.groq.complete(
                    [{"role": "user", "content": build_math_prompt(problem)}], max_tokens=900, json_mode=True
                ),
                timeout=self.timeout,
            )
        except (GroqError, asyncio.TimeoutError) as e:
            logger.error(f"[Tutor] Math solution failed: {e}")
            raise TutorUnavailableError(str(e)) from e

        data = parse_model_json(text)
        if data is None:
            logger.warning(f"[Tutor] Could not parse math solution: {text[:200]!r}")
            raise SolutionParseError("Math solution was not a JSON object")
        return normalize_math_solution(data)
