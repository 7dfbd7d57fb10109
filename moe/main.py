import logging
from functools import lru_cache
from typing import Optional

from fastapi import Depends, FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from . import monitoring  # noqa: F401
from .ai_entry import AIEntryGenerator
from .config import Settings, get_settings
from .dictionary import DictionaryClient
from .errors import SolutionParseError, StoreError, TutorUnavailableError, WordNotFoundError
from .family_summary import compare_children
from .groq_client import GroqClient
from .learning import ActivityLogger, LearningService, clean_word
from .resolver import WordResolver
from .schemas import (
    ChatRequest,
    CompareChildrenRequest,
    GenerateSentenceRequest,
    LearnWordRequest,
    ReadingSessionRequest,
    SolveMathRequest,
    WordBankRequest,
    WordOutcomeRequest,
)
from .tutor import Tutor
from .word_store import WordStore, build_store

logger = logging.getLogger(__name__)

WORD_NOT_FOUND_MESSAGE = "Moe couldn't find that word yet. Try a different word or double-check the spelling."

app = FastAPI(title="Moe Word Learning Backend")

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"], allow_credentials=True,
    allow_methods=["*"], allow_headers=["*"],
)


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(status_code=exc.status_code, content={"error": exc.detail})


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    logger.info(f"Rejected body for {request.method} {request.url.path}: {exc.errors()}")
    return JSONResponse(status_code=400, content={"error": "Invalid request body"})


@lru_cache
def get_app_settings() -> Settings:
    return get_settings()


@lru_cache
def get_store() -> WordStore:
    return build_store(get_app_settings())


def _groq_client(settings: Settings, timeout: float) -> GroqClient:
    return GroqClient(
        api_key=settings.groq_api_key,
        model=settings.groq_model,
        api_url=settings.groq_api_url,
        timeout=timeout,
    )


@lru_cache
def get_learning_service() -> LearningService:
    settings = get_app_settings()
    store = get_store()
    resolver = WordResolver(
        DictionaryClient(settings.dictionary_api_url, timeout=settings.lookup_timeout_s),
        AIEntryGenerator(_groq_client(settings, settings.lookup_timeout_s), timeout=settings.lookup_timeout_s),
    )
    return LearningService(store, resolver, ActivityLogger(store, enabled=settings.activity_log_enabled))


@lru_cache
def get_tutor() -> Tutor:
    settings = get_app_settings()
    return Tutor(_groq_client(settings, 30.0), timeout=30.0)


@app.get("/health")
def health(settings: Settings = Depends(get_app_settings)):
    return {"ok": True, "store": settings.word_store, "groqConfigured": settings.groq_configured}


@app.post("/learn-word")
async def learn_word(req: LearnWordRequest, service: LearningService = Depends(get_learning_service)):
    if req.word is None or not req.student_id:
        raise HTTPException(status_code=400, detail="Missing word or studentId")
    word = clean_word(req.word)
    if not word:
        raise HTTPException(status_code=400, detail="Word cannot be empty")
    try:
        logger.info(f"[LearnWord] student={req.student_id} word={word}")
        details = await service.learn_word(req.student_id, word)
    except WordNotFoundError:
        raise HTTPException(status_code=404, detail=WORD_NOT_FOUND_MESSAGE)
    except StoreError as e:
        logger.error(f"[LearnWord] Failed to save '{word}' (code={e.code}): {e}")
        raise HTTPException(status_code=500, detail="Unable to save this word right now")
    except Exception as e:
        logger.error(f"[LearnWord] Error in learn-word POST: {e}")
        logger.exception(e)
        raise HTTPException(status_code=500, detail="Something went wrong fetching that word.")
    return {"wordDetails": details}


@app.patch("/learn-word")
async def update_learned_word(req: WordOutcomeRequest, service: LearningService = Depends(get_learning_service)):
    if not req.word or not req.student_id or not req.outcome:
        raise HTTPException(status_code=400, detail="Missing word, studentId, or outcome")
    try:
        await service.record_outcome(req.student_id, req.word, req.outcome)
    except WordNotFoundError:
        raise HTTPException(status_code=404, detail="Word not found for that student")
    except StoreError as e:
        logger.error(f"[LearnWord] Failed to update '{req.word}' (code={e.code}): {e}")
        raise HTTPException(status_code=500, detail="Unable to update this word right now")
    except Exception as e:
        logger.error(f"[LearnWord] Error in learn-word PATCH: {e}")
        logger.exception(e)
        raise HTTPException(status_code=500, detail="Something went wrong saving your progress.")
    return {"success": True}


@app.post("/word-bank")
async def log_word_bank(req: WordBankRequest, service: LearningService = Depends(get_learning_service)):
    if req.word is None or not req.student_id:
        raise HTTPException(status_code=400, detail="Missing word or studentId")
    if not clean_word(req.word):
        raise HTTPException(status_code=400, detail="Word cannot be empty")
    try:
        await service.log_pronunciation(req.student_id, req.word, req.status, req.mark_mastered, req.payload)
    except StoreError as e:
        logger.error(f"[WordBank] Failed to log '{req.word}' (code={e.code}): {e}")
        raise HTTPException(status_code=500, detail="Unable to save this word right now")
    return {"success": True}


@app.get("/word-bank/{student_id}")
async def list_word_bank(student_id: str, service: LearningService = Depends(get_learning_service)):
    try:
        words = await service.list_words(student_id)
    except StoreError as e:
        logger.error(f"[WordBank] Failed to list words for {student_id} (code={e.code}): {e}")
        raise HTTPException(status_code=500, detail="Unable to load your words right now")
    return {"words": words}


@app.post("/reading/log-session")
async def log_reading_session(req: ReadingSessionRequest, service: LearningService = Depends(get_learning_service)):
    if not req.student_id:
        raise HTTPException(status_code=400, detail="A valid studentId is required.")
    if not req.title:
        raise HTTPException(status_code=400, detail="A story title is required.")
    try:
        await service.log_reading(
            req.student_id,
            req.title,
            passage_id=req.passage_id,
            duration_minutes=req.duration_minutes,
            comprehension_score=req.comprehension_score,
            words_read=req.words_read,
            questions_answered=req.questions_answered,
            questions_correct=req.questions_correct,
        )
    except StoreError as e:
        logger.error(f"[Reading] Failed to log reading session (code={e.code}): {e}")
        raise HTTPException(status_code=500, detail="Unable to save reading activity right now.")
    return {"success": True}


@app.post("/generate-sentence")
async def generate_sentence(req: Optional[GenerateSentenceRequest] = None, tutor: Tutor = Depends(get_tutor)):
    if req and req.student_id:
        logger.info(f"[Tutor] Practice sentence for student={req.student_id}")
    sentence = await tutor.generate_sentence()
    return {"sentence": sentence}


@app.post("/chat")
async def chat(req: ChatRequest, tutor: Tutor = Depends(get_tutor)):
    try:
        reply = await tutor.chat([m.model_dump() for m in req.messages], req.mode)
    except TutorUnavailableError:
        raise HTTPException(status_code=502, detail="Sorry, I had trouble answering that. Please try again.")
    return {"reply": reply}


@app.post("/solve-math")
async def solve_math(req: SolveMathRequest, tutor: Tutor = Depends(get_tutor)):
    if not isinstance(req.problem, str) or not req.problem.strip():
        raise HTTPException(status_code=400, detail="Please provide a math problem to solve.")
    try:
        solution = await tutor.solve_math(req.problem.strip())
    except SolutionParseError:
        raise HTTPException(status_code=422, detail="Moe had trouble solving that. Try rephrasing the math question.")
    except TutorUnavailableError:
        raise HTTPException(status_code=500, detail="We couldn't solve that math question right now.")
    return {"solution": solution.to_api()}


@app.post("/ai-summary/compare-children")
def compare_children_summary(req: CompareChildrenRequest):
    return {"summary": compare_children(req.children or [])}
