import asyncio
from abc import ABC, abstractmethod
from dataclasses import dataclass, field

import httpx

from investment_ledger.logger import get_logger
from investment_ledger.models import Suggestion

logger = get_logger(__name__)

DEFAULT_TIMEOUT_SECONDS = 8.0


@dataclass
class ProviderResult:
    suggestions: list[Suggestion] = field(default_factory=list)
    rate_limited: bool = False


class SuggestionProvider(ABC):
    """A remote security-name lookup. Failures resolve to an empty result."""

    name: str = "provider"

    def __init__(
        self,
        base_url: str | None,
        client: httpx.AsyncClient | None = None,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
    ):
        self.base_url = (base_url or "").rstrip("/") or None
        self.timeout = timeout
        self._client = client
        self._owns_client = client is None
        self._client_lock = asyncio.Lock()

    @property
    def configured(self) -> bool:
        return bool(self.base_url)

    async def _get_client(self) -> httpx.AsyncClient:
        client = self._client
        if client is not None and not client.is_closed:
            return client

        async with self._client_lock:
            client = self._client
            if client is None or client.is_closed:
                client = httpx.AsyncClient()
                self._client = client
                self._owns_client = True
            return client

    async def aclose(self) -> None:
        if self._owns_client and self._client and not self._client.is_closed:
            await self._client.aclose()

    async def search(self, query: str) -> ProviderResult:
        if not self.configured:
            return ProviderResult()
        try:
            client = await self._get_client()
            result = await self._search(client, query)
        except Exception as exc:
            logger.warning("[SUGGEST] %s lookup failed for '%s': %s", self.name, query, exc)
            return ProviderResult()
        logger.debug(
            "[SUGGEST] %s returned %s candidate(s) for '%s'%s.",
            self.name,
            len(result.suggestions),
            query,
            " (rate limited)" if result.rate_limited else "",
        )
        return result

    @abstractmethod
    async def _search(self, client: httpx.AsyncClient, query: str) -> ProviderResult:
        """Query the remote service; may raise on transport or parse errors."""
