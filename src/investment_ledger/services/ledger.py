import threading
import uuid
from collections.abc import Callable, Iterable, Mapping, Sequence
from datetime import datetime, timezone
from typing import Any, TypeVar

from investment_ledger.domain.cells import cell_to_date, cell_to_number, cell_to_string, is_blank, try_number
from investment_ledger.errors import NotFoundError, ValidationError
from investment_ledger.logger import get_logger
from investment_ledger.models import CANONICAL_FIELDS, Entry
from investment_ledger.storage.workbook import WorkbookTable

logger = get_logger(__name__)

T = TypeVar("T")

MEANINGFUL_FIELDS = ("type", "category", "name", "amount", "date", "notes")
PATCHABLE_FIELDS = ("type", "category", "name", "direction", "amount", "date", "notes")


def utc_timestamp() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def new_entry_id() -> str:
    return str(uuid.uuid4())


def canonicalize_keys(raw: Mapping[str, Any]) -> dict[str, Any]:
    """Re-key a raw row by canonical field name, matching case-insensitively."""
    lowered = {str(key).strip().lower(): value for key, value in raw.items()}
    return {field: lowered.get(field.lower()) for field in CANONICAL_FIELDS}


def normalize_direction(value: Any) -> str:
    return "debit" if cell_to_string(value).strip().lower() == "debit" else "credit"


def coerce_entry(raw: Mapping[str, Any]) -> Entry:
    """Coerce an already-identified row into an Entry without inventing values."""
    row = canonicalize_keys(raw)
    return Entry(
        id=cell_to_string(row["id"]).strip(),
        type=cell_to_string(row["type"]).strip(),
        category=cell_to_string(row["category"]).strip(),
        name=cell_to_string(row["name"]).strip(),
        direction=normalize_direction(row["direction"]),
        amount=abs(cell_to_number(row["amount"])),
        date=cell_to_date(row["date"]),
        notes=cell_to_string(row["notes"]).strip(),
        created_at=cell_to_string(row["createdAt"]).strip(),
    )


def normalize_entry(raw: Mapping[str, Any]) -> Entry:
    """Coerce a row and fill in a fresh id and creation time where missing."""
    entry = coerce_entry(raw)
    updates: dict[str, str] = {}
    if not entry.id:
        updates["id"] = new_entry_id()
    if not entry.created_at:
        updates["created_at"] = utc_timestamp()
    return entry.model_copy(update=updates) if updates else entry


def validate_candidate(candidate: Mapping[str, Any]) -> None:
    row = canonicalize_keys(candidate)
    missing: list[str] = []
    if is_blank(row["type"]):
        missing.append("type")
    if try_number(row["amount"]) is None:
        missing.append("amount")
    if is_blank(row["date"]):
        missing.append("date")
    if missing:
        raise ValidationError("type, amount, and date are required.", fields=tuple(missing))


def is_blank_row(raw: Mapping[str, Any]) -> bool:
    """A row is blank when its text fields are empty and its amount is missing or zero."""
    row = canonicalize_keys(raw)
    if cell_to_number(row["amount"]) != 0:
        return False
    return all(is_blank(row[field]) for field in MEANINGFUL_FIELDS if field != "amount")


class LedgerStore:
    """
    Ordered table of ledger entries persisted as a single workbook.

    Every mutation re-reads the table, changes it in memory and rewrites the
    whole file. The read-modify-write cycle runs under one lock so concurrent
    callers in this process cannot overwrite each other's changes.
    """

    def __init__(self, table: WorkbookTable):
        self.table = table
        self._lock = threading.RLock()

    @classmethod
    def from_path(cls, path: str) -> "LedgerStore":
        return cls(WorkbookTable(path))

    @property
    def path(self) -> str:
        return self.table.path

    def load(self) -> list[Entry]:
        with self._lock:
            rows = self.table.read()
        entries = [coerce_entry(row) for row in rows]
        kept = [entry for entry in entries if entry.id]
        dropped = len(entries) - len(kept)
        if dropped:
            logger.warning("[LEDGER] Skipped %s row(s) without an id.", dropped)
        return kept

    def replace_all(self, entries: Iterable[Entry]) -> None:
        entries = list(entries)
        with self._lock:
            self.table.write(entry.to_row() for entry in entries)
        logger.debug("[LEDGER] Persisted %s entries to %s.", len(entries), self.path)

    def _mutate(self, change: Callable[[list[Entry]], T]) -> T:
        with self._lock:
            entries = self.load()
            result = change(entries)
            self.replace_all(entries)
            return result

    def get(self, entry_id: str) -> Entry:
        for entry in self.load():
            if entry.id == entry_id:
                return entry
        raise NotFoundError(entry_id)

    def add(self, candidate: Mapping[str, Any]) -> Entry:
        validate_candidate(candidate)
        entry = normalize_entry(candidate)

        def append(entries: list[Entry]) -> Entry:
            nonlocal entry
            if any(existing.id == entry.id for existing in entries):
                entry = entry.model_copy(update={"id": new_entry_id()})
            entries.append(entry)
            return entry

        created = self._mutate(append)
        logger.info("[LEDGER] Added entry %s (%s %s %.2f).", created.id, created.type, created.direction, created.amount)
        return created

    def update(self, entry_id: str, patch: Mapping[str, Any]) -> Entry:
        changes = {
            field: value
            for field, value in canonicalize_keys(patch).items()
            if field in PATCHABLE_FIELDS and value is not None
        }

        def apply(entries: list[Entry]) -> Entry:
            for index, existing in enumerate(entries):
                if existing.id != entry_id:
                    continue
                merged = {**existing.to_row(), **changes}
                updated = coerce_entry(merged).model_copy(
                    update={"id": existing.id, "created_at": existing.created_at}
                )
                entries[index] = updated
                return updated
            raise NotFoundError(entry_id)

        updated = self._mutate(apply)
        logger.info("[LEDGER] Updated entry %s (%s field(s)).", entry_id, len(changes))
        return updated

    def delete(self, entry_id: str) -> None:
        def remove(entries: list[Entry]) -> None:
            remaining = [entry for entry in entries if entry.id != entry_id]
            if len(remaining) == len(entries):
                raise NotFoundError(entry_id)
            entries[:] = remaining

        self._mutate(remove)
        logger.info("[LEDGER] Deleted entry %s.", entry_id)

    def import_replace(self, raw_rows: Sequence[Mapping[str, Any]]) -> int:
        """Replace the whole ledger with the non-blank rows of an import."""
        accepted: list[Entry] = []
        seen_ids: set[str] = set()
        for raw in raw_rows:
            if is_blank_row(raw):
                continue
            entry = normalize_entry(raw)
            if entry.id in seen_ids:
                entry = entry.model_copy(update={"id": new_entry_id()})
            seen_ids.add(entry.id)
            accepted.append(entry)

        with self._lock:
            self.replace_all(accepted)
        logger.info(
            "[LEDGER] Imported %s entries (%s blank row(s) skipped).",
            len(accepted),
            len(raw_rows) - len(accepted),
        )
        return len(accepted)
