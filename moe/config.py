import os
import logging
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv, find_dotenv

logger = logging.getLogger(__name__)

# Load environment from a shared .env (prefer project root), without overriding existing env
_ENV_PATH = find_dotenv(usecwd=True)
if _ENV_PATH and os.path.exists(_ENV_PATH):
    load_dotenv(_ENV_PATH, override=False)

DEFAULT_DICTIONARY_API_URL = "https://api.dictionaryapi.dev/api/v2/entries/en"
DEFAULT_GROQ_API_URL = "https://api.groq.com/openai/v1/chat/completions"
DEFAULT_GROQ_MODEL = "llama-3.1-70b-versatile"


def _env_float(name: str, default: float) -> float:
    try:
        value = float(os.getenv(name, str(default)))
    except (TypeError, ValueError):
        return default
    return value if value > 0 else default


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class Settings:
    supabase_url: Optional[str]
    supabase_key: Optional[str]
    word_store: str
    word_store_file: str
    groq_api_key: Optional[str]
    groq_model: str
    groq_api_url: str
    dictionary_api_url: str
    lookup_timeout_s: float
    activity_log_enabled: bool

    @property
    def supabase_configured(self) -> bool:
        return bool(self.supabase_url and self.supabase_key)

    @property
    def groq_configured(self) -> bool:
        return bool(self.groq_api_key)


def get_settings() -> Settings:
    """Read settings from the environment. Malformed numbers fall back to defaults."""
    supabase_url = os.getenv("SUPABASE_URL") or os.getenv("NEXT_PUBLIC_SUPABASE_URL")
    supabase_key = os.getenv("SUPABASE_SERVICE_ROLE_KEY")
    default_store = "supabase" if (supabase_url and supabase_key) else "json"
    word_store = (os.getenv("WORD_STORE") or default_store).strip().lower()
    if word_store not in ("supabase", "json"):
        logger.warning(f"[Config] Unknown WORD_STORE={word_store!r}; using {default_store}")
        word_store = default_store
    return Settings(
        supabase_url=supabase_url,
        supabase_key=supabase_key,
        word_store=word_store,
        word_store_file=os.getenv("WORD_STORE_FILE", os.path.join("data", "words_store.json")),
        groq_api_key=os.getenv("GROQ_API_KEY") or None,
        groq_model=os.getenv("GROQ_MODEL", DEFAULT_GROQ_MODEL),
        groq_api_url=os.getenv("GROQ_API_URL", DEFAULT_GROQ_API_URL),
        dictionary_api_url=os.getenv("DICTIONARY_API_URL", DEFAULT_DICTIONARY_API_URL).rstrip("/"),
        lookup_timeout_s=_env_float("LOOKUP_TIMEOUT_S", 8.0),
        activity_log_enabled=_env_bool("ACTIVITY_LOG_ENABLED", True),
    )
