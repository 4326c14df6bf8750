from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException

from investment_ledger.api.dependencies import get_suggestions
from investment_ledger.api.schemas import SuggestionResponse
from investment_ledger.errors import ProviderUnavailable
from investment_ledger.services.suggestions import SuggestionCache

router = APIRouter(prefix="/api/suggestions", tags=["suggestions"])


@router.get("", response_model=SuggestionResponse)
async def get_suggestions_for_query(
    cache: Annotated[SuggestionCache, Depends(get_suggestions)],
    q: str = "",
) -> SuggestionResponse:
    try:
        outcome = await cache.suggest(q)
    except ProviderUnavailable as exc:
        raise HTTPException(status_code=503, detail=str(exc)) from exc
    return SuggestionResponse(results=outcome.results, rate_limited=outcome.rate_limited)


@router.post("/clear")
async def clear_suggestion_cache(
    cache: Annotated[SuggestionCache, Depends(get_suggestions)],
) -> dict[str, int | str]:
    cleared = cache.clear()
    return {"status": "cleared", "cleared": cleared}
