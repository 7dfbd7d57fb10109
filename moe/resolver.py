import logging
import time
from typing import Optional

from .ai_entry import AIEntryGenerator
from .dictionary import DictionaryClient
from .monitoring import LookupMonitor, monitor as default_monitor
from .schemas import WordDetails

logger = logging.getLogger(__name__)


class WordResolver:
    """Finds word details: dictionary first, then the AI tier.

    Each tier runs once and to completion before the next one starts. The AI
    tier substitutes the offline fallback on its own failures, so ``resolve``
    only returns None when something unexpected blows up inside it.
    """

    def __init__(
        self,
        dictionary: DictionaryClient,
        ai_generator: AIEntryGenerator,
        monitor: Optional[LookupMonitor] = None,
    ):
        self.dictionary = dictionary
        self.ai_generator = ai_generator
        self.monitor = monitor or default_monitor

    async def resolve(self, word: str) -> Optional[WordDetails]:
        start = time.perf_counter()
        details = await self.dictionary.lookup(word)
        if details is not None:
            self._record("dictionary", word, start)
            return details

        start = time.perf_counter()
        try:
            details = await self.ai_generator.generate(word)
        except Exception:
            logger.exception(f"[Resolver] AI tier crashed for '{word}'")
            self.monitor.track_error("resolver_ai_tier")
            return None
        if details is None:
            logger.error(f"[Resolver] No tier produced details for '{word}'")
            self.monitor.track_error("resolver_not_found")
            return None
        self._record("ai", word, start)
        return details

    def _record(self, tier: str, word: str, start: float) -> None:
        elapsed_ms = (time.perf_counter() - start) * 1000
        logger.info(f"[Resolver] '{word}' resolved by {tier} tier in {elapsed_ms:.0f}ms")
        self.monitor.track_tier(tier)
        self.monitor.track_lookup_latency(tier, elapsed_ms)
