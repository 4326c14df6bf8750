import os
from typing import Any

import httpx

from investment_ledger.core import settings
from investment_ledger.integration.base import DEFAULT_TIMEOUT_SECONDS, ProviderResult, SuggestionProvider
from investment_ledger.logger import get_logger
from investment_ledger.models import Suggestion

logger = get_logger(__name__)

# Alpha Vantage answers throttled calls with HTTP 200 and one of these keys.
RATE_LIMIT_KEYS = ("Note", "Information")


class EquitySearchProvider(SuggestionProvider):
    """Listed-security search using Alpha Vantage SYMBOL_SEARCH."""

    name = "alphavantage"

    def __init__(
        self,
        api_key: str | None = None,
        base_url: str | None = None,
        client: httpx.AsyncClient | None = None,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
    ):
        super().__init__(
            base_url if base_url is not None else os.getenv(
                "ALPHA_VANTAGE_URL", settings.DEFAULT_ALPHA_VANTAGE_URL
            ),
            client=client,
            timeout=timeout,
        )
        self.api_key = api_key if api_key is not None else os.getenv("ALPHA_VANTAGE_API_KEY")

    @property
    def configured(self) -> bool:
        return bool(self.base_url and self.api_key)

    async def _search(self, client: httpx.AsyncClient, query: str) -> ProviderResult:
        response = await client.get(
            f"{self.base_url}/query",
            params={
                "function": "SYMBOL_SEARCH",
                "keywords": query,
                "apikey": self.api_key,
            },
            timeout=self.timeout,
        )
        if response.status_code == 429:
            logger.warning("[SUGGEST] Alpha Vantage rate limit reached (HTTP 429).")
            return ProviderResult(rate_limited=True)
        response.raise_for_status()
        payload = response.json()
        if not isinstance(payload, dict):
            raise ValueError(f"unexpected payload type {type(payload).__name__}")

        if any(key in payload for key in RATE_LIMIT_KEYS):
            logger.warning("[SUGGEST] Alpha Vantage rate limit reached.")
            return ProviderResult(rate_limited=True)
        if "Error Message" in payload:
            raise ValueError(payload["Error Message"])

        matches = payload.get("bestMatches") or []
        return ProviderResult(suggestions=[s for s in map(_to_suggestion, matches) if s])


def _to_suggestion(match: Any) -> Suggestion | None:
    if not isinstance(match, dict):
        return None
    symbol = str(match.get("1. symbol") or "").strip()
    name = str(match.get("2. name") or "").strip()
    if not symbol:
        return None
    return Suggestion(
        symbol=symbol,
        name=name or symbol,
        region=str(match.get("4. region") or ""),
        currency=str(match.get("8. currency") or ""),
        source="alphavantage",
    )
