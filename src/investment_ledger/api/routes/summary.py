import asyncio
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException

from investment_ledger.api.dependencies import get_store
from investment_ledger.domain.summary import compute_stats, summarize
from investment_ledger.errors import PersistenceError
from investment_ledger.models import Entry, LedgerStats, LedgerSummary
from investment_ledger.services.ledger import LedgerStore

router = APIRouter(prefix="/api", tags=["summary"])


async def _load_entries(store: LedgerStore) -> list[Entry]:
    try:
        return await asyncio.to_thread(store.load)
    except PersistenceError as exc:
        raise HTTPException(status_code=500, detail="Failed to load summary.") from exc


@router.get("/summary", response_model=LedgerSummary)
async def get_summary(
    store: Annotated[LedgerStore, Depends(get_store)],
) -> LedgerSummary:
    return summarize(await _load_entries(store))


@router.get("/stats", response_model=LedgerStats)
async def get_stats(
    store: Annotated[LedgerStore, Depends(get_store)],
) -> LedgerStats:
    return compute_stats(await _load_entries(store))
