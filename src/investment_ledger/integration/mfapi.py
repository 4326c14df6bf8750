import os
from typing import Any

import httpx

from investment_ledger.core import settings
from investment_ledger.integration.base import DEFAULT_TIMEOUT_SECONDS, ProviderResult, SuggestionProvider
from investment_ledger.models import Suggestion


class MutualFundProvider(SuggestionProvider):
    """Indian mutual fund scheme search backed by mfapi.in."""

    name = "mfapi"

    def __init__(
        self,
        base_url: str | None = None,
        client: httpx.AsyncClient | None = None,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
    ):
        super().__init__(
            base_url if base_url is not None else os.getenv("MFAPI_URL", settings.DEFAULT_MFAPI_URL),
            client=client,
            timeout=timeout,
        )

    async def _search(self, client: httpx.AsyncClient, query: str) -> ProviderResult:
        response = await client.get(
            f"{self.base_url}/mf/search",
            params={"q": query},
            timeout=self.timeout,
        )
        response.raise_for_status()
        payload = response.json()
        if not isinstance(payload, list):
            raise ValueError(f"unexpected payload type {type(payload).__name__}")
        return ProviderResult(suggestions=[s for s in map(_to_suggestion, payload) if s])


def _to_suggestion(scheme: Any) -> Suggestion | None:
    if not isinstance(scheme, dict):
        return None
    code = scheme.get("schemeCode")
    name = str(scheme.get("schemeName") or "").strip()
    if code is None or not name:
        return None
    return Suggestion(
        symbol=str(code),
        name=name,
        region="India",
        currency="INR",
        source="mfapi",
    )
