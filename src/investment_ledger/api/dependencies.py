from fastapi import HTTPException, Request

from investment_ledger.services.ledger import LedgerStore
from investment_ledger.services.suggestions import SuggestionCache


def get_store(request: Request) -> LedgerStore:
    store = getattr(request.app.state, "store", None)
    if not store:
        raise HTTPException(status_code=500, detail="Ledger not initialized")
    return store


def get_suggestions(request: Request) -> SuggestionCache:
    cache = getattr(request.app.state, "suggestions", None)
    if cache is None:
        raise HTTPException(status_code=503, detail="Suggestion channel unavailable")
    return cache
