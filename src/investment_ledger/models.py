from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

Direction = Literal["credit", "debit"]

CANONICAL_FIELDS: tuple[str, ...] = (
    "id",
    "type",
    "category",
    "name",
    "direction",
    "amount",
    "date",
    "notes",
    "createdAt",
)


class Entry(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str
    type: str = ""
    category: str = ""
    name: str = ""
    direction: Direction = "credit"
    amount: float = 0.0  # magnitude; sign comes from direction
    date: str = ""  # YYYY-MM-DD
    notes: str = ""
    created_at: str = Field(default="", alias="createdAt")

    @property
    def signed_amount(self) -> float:
        if self.direction == "debit":
            return -abs(self.amount)
        return self.amount

    def to_row(self) -> dict[str, str | float]:
        return self.model_dump(by_alias=True)


class Suggestion(BaseModel):
    symbol: str
    name: str
    region: str = ""
    currency: str = ""
    source: str

    @property
    def search_text(self) -> str:
        return f"{self.name} {self.symbol}".lower()


class SuggestionOutcome(BaseModel):
    results: list[Suggestion] = Field(default_factory=list)
    rate_limited: bool = False


class LedgerSummary(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    by_type: dict[str, float] = Field(default_factory=dict, alias="byType")
    by_category: dict[str, float] = Field(default_factory=dict, alias="byCategory")
    by_month: dict[str, float] = Field(default_factory=dict, alias="byMonth")


class LedgerStats(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    total: float = 0.0
    credits: float = 0.0
    debits: float = 0.0
    avg_monthly: float = Field(default=0.0, alias="avgMonthly")
    top_type: tuple[str, float] | None = Field(default=None, alias="topType")
    top_category: tuple[str, float] | None = Field(default=None, alias="topCategory")
    top_security: tuple[str, float] | None = Field(default=None, alias="topSecurity")
