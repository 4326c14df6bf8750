import asyncio
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException

from investment_ledger.api.dependencies import get_store
from investment_ledger.api.schemas import EntryCreate, EntryPatch
from investment_ledger.errors import NotFoundError, PersistenceError, ValidationError
from investment_ledger.logger import get_logger
from investment_ledger.models import Entry
from investment_ledger.services.ledger import LedgerStore

logger = get_logger(__name__)

router = APIRouter(prefix="/api/investments", tags=["investments"])


@router.get("", response_model=list[Entry])
async def list_investments(
    store: Annotated[LedgerStore, Depends(get_store)],
) -> list[Entry]:
    try:
        return await asyncio.to_thread(store.load)
    except PersistenceError as exc:
        raise HTTPException(status_code=500, detail="Failed to load investments.") from exc


@router.get("/{entry_id}", response_model=Entry)
async def get_investment(
    entry_id: str,
    store: Annotated[LedgerStore, Depends(get_store)],
) -> Entry:
    try:
        return await asyncio.to_thread(store.get, entry_id)
    except NotFoundError as exc:
        raise HTTPException(status_code=404, detail="Not found.") from exc
    except PersistenceError as exc:
        raise HTTPException(status_code=500, detail="Failed to load investments.") from exc


@router.post("", response_model=Entry, status_code=201)
async def add_investment(
    payload: EntryCreate,
    store: Annotated[LedgerStore, Depends(get_store)],
) -> Entry:
    try:
        return await asyncio.to_thread(store.add, payload.model_dump())
    except ValidationError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    except PersistenceError as exc:
        raise HTTPException(status_code=500, detail="Unable to add investment.") from exc


@router.put("/{entry_id}", response_model=Entry)
async def update_investment(
    entry_id: str,
    patch: EntryPatch,
    store: Annotated[LedgerStore, Depends(get_store)],
) -> Entry:
    try:
        return await asyncio.to_thread(store.update, entry_id, patch.model_dump(exclude_unset=True))
    except NotFoundError as exc:
        raise HTTPException(status_code=404, detail="Not found.") from exc
    except PersistenceError as exc:
        raise HTTPException(status_code=500, detail="Unable to update investment.") from exc


@router.delete("/{entry_id}")
async def delete_investment(
    entry_id: str,
    store: Annotated[LedgerStore, Depends(get_store)],
) -> dict[str, bool]:
    try:
        await asyncio.to_thread(store.delete, entry_id)
    except NotFoundError as exc:
        raise HTTPException(status_code=404, detail="Not found.") from exc
    except PersistenceError as exc:
        raise HTTPException(status_code=500, detail="Unable to delete investment.") from exc
    return {"ok": True}
