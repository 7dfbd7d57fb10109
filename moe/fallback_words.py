"""
Fallback word details for when the dictionary and the Groq API are unavailable.
Everything here is deterministic and offline; the same word always produces
the same record.
"""

import re
from typing import Dict, List

from .schemas import SIMPLE_DEFINITION_MAX, WordDetails

# Related words by length tier: <=4 letters, <=7 letters, longer
FALLBACK_RELATED_WORDS: Dict[str, List[str]] = {
    "short": ["spell", "say", "use", "practice"],
    "medium": ["meaning", "practice", "sentence", "remember"],
    "long": ["definition", "study", "explain", "share"],
}

_VOWEL_GROUP = re.compile(r"[^aeiouy]*[aeiouy]+")


def _length_tier(word: str) -> str:
    if len(word) <= 4:
        return "short"
    if len(word) <= 7:
        return "medium"
    return "long"


def determine_difficulty(word: str) -> str:
    """easy for <=4 letters, medium for <=7, advanced otherwise."""
    tier = _length_tier(word)
    if tier == "short":
        return "easy"
    if tier == "medium":
        return "medium"
    return "advanced"


def build_fallback_related_words(word: str) -> List[str]:
    return list(FALLBACK_RELATED_WORDS[_length_tier(word)])


def build_memory_tip(word: str) -> str:
    base = word[:3]
    return f'Remember: "{word}" starts with "{base}" - say it slowly and clap the syllables to lock it in!'


def simplify_definition(definition: str) -> str:
    """Cut a definition down to a child-sized 140 characters."""
    text = (definition or "").strip()
    if len(text) > SIMPLE_DEFINITION_MAX:
        return f"{text[:SIMPLE_DEFINITION_MAX - 3]}..."
    return text


def split_syllables(word: str) -> str:
    """Rough hyphenated syllables: elephant -> e-le-phant.

    Returns the word unchanged when it has no vowel groups.
    """
    lowered = word.lower()
    groups = _VOWEL_GROUP.findall(lowered)
    if not groups:
        return word
    # trailing consonants belong to the last syllable
    consumed = sum(len(g) for g in groups)
    groups[-1] += lowered[consumed:]
    return "-".join(groups)


def generate_fallback(word: str) -> WordDetails:
    """Build a complete, generic record for ``word`` without any I/O."""
    word = word.strip().lower()
    title = word[:1].upper() + word[1:]
    return WordDetails(
        word=word,
        pronunciation=split_syllables(word),
        definition=f"{title} is a word you can learn, say, and use in your own sentences.",
        simple_definition=simplify_definition(f"{title} is a word to practice today."),
        example=f"I used the word {word} when I talked about school today.",
        memory_tip=build_memory_tip(word),
        related_words=build_fallback_related_words(word),
        difficulty=determine_difficulty(word),
    )
