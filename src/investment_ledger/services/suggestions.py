import asyncio
from collections import OrderedDict
from collections.abc import Sequence
from dataclasses import dataclass
from functools import partial
from time import monotonic

from investment_ledger.domain.search import MAX_SUGGESTIONS, filter_suggestions, normalize_query
from investment_ledger.errors import ProviderUnavailable
from investment_ledger.integration.base import SuggestionProvider
from investment_ledger.logger import get_logger
from investment_ledger.models import Suggestion, SuggestionOutcome

logger = get_logger(__name__)

DEFAULT_TTL_SECONDS = 6 * 60 * 60.0
DEFAULT_MAX_ENTRIES = 1000
DEFAULT_RATE_LIMIT_TTL_SECONDS = 60.0


@dataclass
class CacheEntry:
    suggestions: list[Suggestion]
    written_at: float
    ttl: float
    rate_limited: bool = False


class SuggestionCache:
    """
    Security-name autocomplete with a TTL cache in front of the providers.

    Providers are consulted in priority order and the first non-empty answer
    wins. Concurrent lookups of the same normalized query share a single
    provider round trip: the first caller starts a task, later callers await
    that same task. Waiters are shielded, so a caller that gives up does not
    cancel the shared fetch, which still populates the cache.
    """

    def __init__(
        self,
        providers: Sequence[SuggestionProvider],
        *,
        ttl: float = DEFAULT_TTL_SECONDS,
        max_entries: int = DEFAULT_MAX_ENTRIES,
        cache_empty_results: bool = True,
        rate_limit_ttl: float = DEFAULT_RATE_LIMIT_TTL_SECONDS,
        max_results: int = MAX_SUGGESTIONS,
    ):
        self.providers = list(providers)
        self.ttl = ttl
        self.max_entries = max_entries
        self.cache_empty_results = cache_empty_results
        self.rate_limit_ttl = rate_limit_ttl
        self.max_results = max_results
        self._entries: OrderedDict[str, CacheEntry] = OrderedDict()
        self._inflight: dict[str, asyncio.Task[SuggestionOutcome]] = {}
        self._generation = 0

    @property
    def configured(self) -> bool:
        return any(provider.configured for provider in self.providers)

    def __len__(self) -> int:
        return len(self._entries)

    def inflight_count(self) -> int:
        return len(self._inflight)

    async def suggest(self, raw_query: str | None) -> SuggestionOutcome:
        key = normalize_query(raw_query)
        if not key:
            return SuggestionOutcome()
        if not self.configured:
            raise ProviderUnavailable()

        cached = self._lookup(key)
        if cached is not None:
            logger.debug("[SUGGEST] Cache hit for '%s'.", key)
            outcome = SuggestionOutcome(results=cached.suggestions, rate_limited=cached.rate_limited)
        else:
            outcome = await asyncio.shield(self._fetch_task(key))

        return SuggestionOutcome(
            results=filter_suggestions(key, outcome.results, self.max_results),
            rate_limited=outcome.rate_limited,
        )

    def clear(self) -> int:
        """Drop every cached result and forget in-flight fetches."""
        cleared = len(self._entries)
        self._entries.clear()
        self._inflight.clear()
        self._generation += 1
        logger.info("[SUGGEST] Cache cleared (%s entries).", cleared)
        return cleared

    async def aclose(self) -> None:
        for provider in self.providers:
            await provider.aclose()

    def _lookup(self, key: str) -> CacheEntry | None:
        entry = self._entries.get(key)
        if entry is None:
            return None
        if monotonic() - entry.written_at >= entry.ttl:
            del self._entries[key]
            logger.debug("[SUGGEST] Cache entry for '%s' expired.", key)
            return None
        self._entries.move_to_end(key)
        return entry

    def _fetch_task(self, key: str) -> asyncio.Task[SuggestionOutcome]:
        task = self._inflight.get(key)
        if task is not None:
            logger.debug("[SUGGEST] Joining in-flight lookup for '%s'.", key)
            return task
        task = asyncio.create_task(self._resolve(key, self._generation), name=f"suggest:{key}")
        self._inflight[key] = task
        task.add_done_callback(partial(self._release, key))
        return task

    def _release(self, key: str, task: asyncio.Task[SuggestionOutcome]) -> None:
        if self._inflight.get(key) is task:
            del self._inflight[key]

    async def _resolve(self, key: str, generation: int) -> SuggestionOutcome:
        suggestions: list[Suggestion] = []
        rate_limited = False
        for provider in self.providers:
            if not provider.configured:
                continue
            result = await provider.search(key)
            if result.suggestions:
                suggestions = result.suggestions
                rate_limited = False
                break
            rate_limited = rate_limited or result.rate_limited

        outcome = SuggestionOutcome(results=suggestions, rate_limited=rate_limited)
        if generation == self._generation:
            self._store(key, outcome)
        else:
            logger.debug("[SUGGEST] Discarding lookup for '%s' started before a cache clear.", key)
        return outcome

    def _store(self, key: str, outcome: SuggestionOutcome) -> None:
        if outcome.rate_limited:
            # Throttled outcomes expire sooner than regular results.
            ttl = min(self.ttl, self.rate_limit_ttl)
        elif not outcome.results and not self.cache_empty_results:
            return
        else:
            ttl = self.ttl
        if ttl <= 0:
            return
        self._entries[key] = CacheEntry(
            suggestions=list(outcome.results),
            written_at=monotonic(),
            ttl=ttl,
            rate_limited=outcome.rate_limited,
        )
        self._entries.move_to_end(key)
        while self.max_entries > 0 and len(self._entries) > self.max_entries:
            evicted, _ = self._entries.popitem(last=False)
            logger.debug("[SUGGEST] Evicted least recently used query '%s'.", evicted)
