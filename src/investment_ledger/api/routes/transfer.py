import asyncio
import io
from typing import Annotated

from fastapi import APIRouter, Depends, File, HTTPException, UploadFile
from fastapi.responses import FileResponse

from investment_ledger.api.dependencies import get_store
from investment_ledger.api.schemas import ImportResponse
from investment_ledger.errors import PersistenceError
from investment_ledger.logger import get_logger
from investment_ledger.services.ledger import LedgerStore
from investment_ledger.storage.workbook import CORRUPT_WORKBOOK_ERRORS, read_workbook_rows

logger = get_logger(__name__)

router = APIRouter(prefix="/api", tags=["transfer"])

XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


@router.get("/export")
async def export_ledger(
    store: Annotated[LedgerStore, Depends(get_store)],
) -> FileResponse:
    try:
        await asyncio.to_thread(store.table.ensure)
    except PersistenceError as exc:
        raise HTTPException(status_code=500, detail="Export failed.") from exc
    return FileResponse(store.path, media_type=XLSX_MEDIA_TYPE, filename="investments.xlsx")


@router.post("/import", response_model=ImportResponse)
async def import_ledger(
    store: Annotated[LedgerStore, Depends(get_store)],
    file: Annotated[UploadFile | None, File()] = None,
) -> ImportResponse:
    if file is None:
        raise HTTPException(status_code=400, detail="File is required.")

    content = await file.read()
    try:
        rows = await asyncio.to_thread(read_workbook_rows, io.BytesIO(content))
    except CORRUPT_WORKBOOK_ERRORS as exc:
        logger.warning("[LEDGER] Rejected import '%s': %s", file.filename, exc)
        raise HTTPException(status_code=400, detail="File is not a readable .xlsx workbook.") from exc

    try:
        count = await asyncio.to_thread(store.import_replace, rows)
    except PersistenceError as exc:
        raise HTTPException(status_code=500, detail="Import failed.") from exc
    return ImportResponse(count=count)
