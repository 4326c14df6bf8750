from pydantic import BaseModel, ConfigDict, Field

from investment_ledger.models import Suggestion

# Amounts arrive from form inputs as either numbers or numeric strings.
AmountInput = float | str | None


class EntryCreate(BaseModel):
    type: str | None = None
    category: str | None = None
    name: str | None = None
    direction: str | None = None
    amount: AmountInput = None
    date: str | None = None
    notes: str | None = None


class EntryPatch(EntryCreate):
    pass


class SuggestionResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    results: list[Suggestion]
    rate_limited: bool = Field(default=False, alias="rateLimited")


class ImportResponse(BaseModel):
    ok: bool = True
    count: int
