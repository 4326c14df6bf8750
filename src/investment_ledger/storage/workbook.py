"""
Single-sheet xlsx table used as the ledger's durable store.

The header row names the columns; data rows are matched to the canonical
fields by case-insensitive header name, so column order and extra or
missing columns are tolerated. Writes always produce a complete workbook in
a temporary file that atomically replaces the previous one.
"""
import os
import tempfile
import zipfile
from collections.abc import Iterable, Mapping, Sequence
from datetime import datetime
from typing import IO, Any
from xml.etree.ElementTree import ParseError

from openpyxl import Workbook, load_workbook
from openpyxl.utils.exceptions import IllegalCharacterError, InvalidFileException

from investment_ledger.domain.cells import cell_to_string, strip_control_chars
from investment_ledger.errors import PersistenceError
from investment_ledger.logger import get_logger
from investment_ledger.models import CANONICAL_FIELDS

logger = get_logger(__name__)

SHEET_NAME = "Investments"

# Raised by openpyxl for files that are not readable xlsx packages.
CORRUPT_WORKBOOK_ERRORS = (
    zipfile.BadZipFile,
    InvalidFileException,
    ParseError,
    KeyError,
)

# Raised by openpyxl for cell values it cannot serialize.
UNWRITABLE_VALUE_ERRORS = (IllegalCharacterError, ValueError, TypeError)

RawRow = dict[str, Any]


def resolve_columns(header: Sequence[Any], fields: Sequence[str] = CANONICAL_FIELDS) -> dict[str, int]:
    """Map each canonical field to its column index; unmatched fields are omitted."""
    names = [cell_to_string(value).strip().lower() for value in header]
    if sum(1 for name in names if name) < 2:
        # No usable header: assume canonical column order.
        return {field: index for index, field in enumerate(fields)}

    columns: dict[str, int] = {}
    for field in fields:
        wanted = field.lower()
        for index, name in enumerate(names):
            if name == wanted:
                columns[field] = index
                break
    return columns


def rows_from_values(values: Iterable[Sequence[Any]]) -> list[RawRow]:
    """Turn raw sheet rows (header first) into dicts of raw cell values."""
    iterator = iter(values)
    header = next(iterator, None)
    if header is None:
        return []
    columns = resolve_columns(header)

    rows: list[RawRow] = []
    for row in iterator:
        if row is None or all(value is None for value in row):
            continue
        record: RawRow = {}
        for field, index in columns.items():
            record[field] = row[index] if index < len(row) else None
        rows.append(record)
    return rows


def read_workbook_rows(source: str | IO[bytes], sheet_name: str | None = None) -> list[RawRow]:
    """Read the named sheet (or the first one) of an xlsx file or stream."""
    workbook = load_workbook(source, read_only=True, data_only=True)
    try:
        if sheet_name and sheet_name in workbook.sheetnames:
            sheet = workbook[sheet_name]
        elif workbook.worksheets:
            sheet = workbook.worksheets[0]
        else:
            return []
        return rows_from_values(sheet.iter_rows(values_only=True))
    finally:
        workbook.close()


def build_workbook(rows: Iterable[Mapping[str, Any]], sheet_name: str = SHEET_NAME) -> Workbook:
    workbook = Workbook()
    sheet = workbook.active
    sheet.title = sheet_name
    sheet.append(list(CANONICAL_FIELDS))
    for row_index, row in enumerate(rows, start=2):
        for column_index, field in enumerate(CANONICAL_FIELDS, start=1):
            value = row.get(field)
            if isinstance(value, str):
                value = strip_control_chars(value)
            cell = sheet.cell(row=row_index, column=column_index, value="" if value is None else value)
            if isinstance(value, str) and value.startswith("="):
                # Free text must never be stored as a formula.
                cell.data_type = "s"
    return workbook


class WorkbookTable:
    def __init__(self, path: str, sheet_name: str = SHEET_NAME):
        self.path = path
        self.sheet_name = sheet_name

    @property
    def directory(self) -> str:
        return os.path.dirname(os.path.abspath(self.path))

    def ensure(self) -> None:
        """Create an empty table with the canonical header when no file exists."""
        if os.path.exists(self.path):
            return
        logger.info("[LEDGER] Initializing empty ledger at %s.", self.path)
        self.write([])

    def read(self) -> list[RawRow]:
        self.ensure()
        try:
            return read_workbook_rows(self.path, self.sheet_name)
        except CORRUPT_WORKBOOK_ERRORS as exc:
            self._quarantine(exc)
            return []
        except OSError as exc:
            logger.error("[LEDGER] Unable to read %s: %s", self.path, exc)
            raise PersistenceError("Unable to read ledger.", path=self.path) from exc

    def write(self, rows: Iterable[Mapping[str, Any]]) -> None:
        try:
            workbook = build_workbook(rows, self.sheet_name)
        except UNWRITABLE_VALUE_ERRORS as exc:
            logger.error("[LEDGER] Unable to build workbook for %s: %s", self.path, exc)
            raise PersistenceError("Unable to write ledger.", path=self.path) from exc

        try:
            os.makedirs(self.directory, exist_ok=True)
            fd, temp_path = tempfile.mkstemp(prefix=".ledger-", suffix=".xlsx", dir=self.directory)
            os.close(fd)
        except OSError as exc:
            logger.error("[LEDGER] Unable to prepare write for %s: %s", self.path, exc)
            raise PersistenceError("Unable to write ledger.", path=self.path) from exc

        try:
            workbook.save(temp_path)
            os.replace(temp_path, self.path)
        except (OSError, *UNWRITABLE_VALUE_ERRORS) as exc:
            logger.error("[LEDGER] Unable to write %s: %s", self.path, exc)
            raise PersistenceError("Unable to write ledger.", path=self.path) from exc
        finally:
            if os.path.exists(temp_path):
                os.remove(temp_path)

    def _quarantine(self, exc: Exception) -> None:
        stamp = datetime.now().strftime("%Y%m%d%H%M%S")
        target = f"{self.path}.corrupt-{stamp}"
        logger.error(
            "[LEDGER] Ledger file %s is unreadable (%s); moved to %s and starting empty.",
            self.path,
            exc,
            target,
        )
        try:
            os.replace(self.path, target)
        except OSError as move_exc:
            raise PersistenceError("Ledger file is corrupt and could not be moved aside.", path=self.path) from move_exc
        self.write([])
