from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

Difficulty = Literal["easy", "medium", "advanced"]
DIFFICULTIES = ("easy", "medium", "advanced")

SIMPLE_DEFINITION_MAX = 140
RELATED_WORDS_MAX = 6


class WordDetails(BaseModel):
    """Canonical record describing a vocabulary word.

    Serialized with camelCase keys (``simpleDefinition``, ``memoryTip``, ...);
    ``audioUrl`` is left out of the output when no source provided one.
    """

    model_config = ConfigDict(populate_by_name=True)

    word: str
    pronunciation: str
    definition: str
    simple_definition: str = Field(..., alias="simpleDefinition", max_length=SIMPLE_DEFINITION_MAX)
    example: str = ""
    memory_tip: str = Field(..., alias="memoryTip")
    related_words: List[str] = Field(..., alias="relatedWords", min_length=1, max_length=RELATED_WORDS_MAX)
    difficulty: Difficulty
    audio_url: Optional[str] = Field(None, alias="audioUrl")

    @field_validator("word")
    @classmethod
    def validate_word(cls, v: str) -> str:
        v = (v or "").strip().lower()
        if not v:
            raise ValueError("word must not be empty")
        return v

    def to_api(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)

    def metadata(self) -> Dict[str, Any]:
        """Fields stored in the ``metadata`` column of a learned word."""
        return {
            "simpleDefinition": self.simple_definition,
            "memoryTip": self.memory_tip,
            "relatedWords": list(self.related_words),
            "difficulty": self.difficulty,
            "audioUrl": self.audio_url,
        }


class _Request(BaseModel):
    model_config = ConfigDict(populate_by_name=True, coerce_numbers_to_str=True)


class LearnWordRequest(_Request):
    word: Optional[str] = None
    student_id: Optional[str] = Field(None, alias="studentId")


class WordOutcomeRequest(_Request):
    word: Optional[str] = None
    student_id: Optional[str] = Field(None, alias="studentId")
    outcome: Optional[str] = None


class WordBankRequest(_Request):
    word: Optional[str] = None
    student_id: Optional[str] = Field(None, alias="studentId")
    status: Optional[str] = None
    mark_mastered: bool = Field(False, alias="markMastered")
    payload: Optional[Dict[str, Any]] = None


class ReadingSessionRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    student_id: Optional[str] = Field(None, alias="studentId")
    passage_id: Optional[str] = Field(None, alias="passageId")
    title: Optional[str] = None
    duration_minutes: Optional[float] = Field(None, alias="durationMinutes")
    comprehension_score: Optional[float] = Field(None, alias="comprehensionScore")
    words_read: Optional[float] = Field(None, alias="wordsRead")
    questions_answered: Optional[float] = Field(None, alias="questionsAnswered")
    questions_correct: Optional[float] = Field(None, alias="questionsCorrect")


class ChatMessage(BaseModel):
    role: Literal["user", "assistant"]
    content: str


class ChatRequest(BaseModel):
    messages: List[ChatMessage] = Field(default_factory=list)
    mode: Optional[str] = None


class GenerateSentenceRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    student_id: Optional[str] = Field(None, alias="studentId")


MathDifficulty = Literal["easy", "medium", "hard"]


class MathStep(BaseModel):
    title: str
    explanation: str
    visual: str = ""
    tip: str


class PracticeProblem(BaseModel):
    question: str
    answer: str = ""
    hint: str


class MathSolution(BaseModel):
    """Step-by-step worked answer returned by ``POST /solve-math``."""

    model_config = ConfigDict(populate_by_name=True)

    question: str
    topic: str
    difficulty: MathDifficulty
    answer: str
    steps: List[MathStep] = Field(..., min_length=1)
    real_world_example: str = Field(..., alias="realWorldExample")
    practice_problems: List[PracticeProblem] = Field(..., alias="practiceProblems", min_length=1)
    encouragement: str

    def to_api(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True)


class SolveMathRequest(BaseModel):
    problem: Optional[Any] = None


class CompareChildrenRequest(BaseModel):
    children: Optional[List[Any]] = None
