class LedgerError(Exception):
    """Base exception for ledger and suggestion errors."""

    code: str = "LEDGER_ERROR"


class ValidationError(LedgerError):
    """A create request is missing required input."""

    code: str = "VALIDATION_ERROR"

    def __init__(self, message: str, fields: tuple[str, ...] = ()):
        self.fields = fields
        super().__init__(message)


class NotFoundError(LedgerError):
    """No entry with the given id exists."""

    code: str = "ENTRY_NOT_FOUND"

    def __init__(self, entry_id: str):
        self.entry_id = entry_id
        super().__init__(f"Entry not found: {entry_id}")


class PersistenceError(LedgerError):
    """The ledger workbook could not be read or written."""

    code: str = "PERSISTENCE_ERROR"

    def __init__(self, message: str, path: str | None = None):
        self.path = path
        super().__init__(message)


class ProviderUnavailable(LedgerError):
    """No suggestion provider is configured."""

    code: str = "SUGGESTION_CHANNEL_UNAVAILABLE"

    def __init__(self) -> None:
        super().__init__("Suggestion channel unavailable: no lookup provider is configured.")
