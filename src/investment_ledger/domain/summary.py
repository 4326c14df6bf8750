from collections.abc import Iterable

from investment_ledger.models import Entry, LedgerStats, LedgerSummary

UNCATEGORIZED_TYPE = "Uncategorized"
UNSPECIFIED_CATEGORY = "Unspecified"
UNKNOWN_MONTH = "Unknown"
UNNAMED_SECURITY = "Unnamed"


def month_key(entry: Entry) -> str:
    return entry.date[:7] if entry.date else UNKNOWN_MONTH


def _accumulate(totals: dict[str, float], key: str, amount: float) -> None:
    totals[key] = totals.get(key, 0.0) + amount


def summarize(entries: Iterable[Entry]) -> LedgerSummary:
    """Signed sums per type, category and month. Consumers sort the keys."""
    by_type: dict[str, float] = {}
    by_category: dict[str, float] = {}
    by_month: dict[str, float] = {}

    for entry in entries:
        signed = entry.signed_amount
        _accumulate(by_type, entry.type or UNCATEGORIZED_TYPE, signed)
        _accumulate(by_category, entry.category or UNSPECIFIED_CATEGORY, signed)
        _accumulate(by_month, month_key(entry), signed)

    return LedgerSummary(by_type=by_type, by_category=by_category, by_month=by_month)


def _top(totals: dict[str, float]) -> tuple[str, float] | None:
    if not totals:
        return None
    # max() keeps the first key on ties, i.e. insertion order.
    return max(totals.items(), key=lambda item: item[1])


def compute_stats(entries: Iterable[Entry]) -> LedgerStats:
    entries = list(entries)
    credits = sum(entry.amount for entry in entries if entry.direction != "debit")
    debits = sum(entry.amount for entry in entries if entry.direction == "debit")
    total = sum(entry.signed_amount for entry in entries)
    months = {month_key(entry) for entry in entries}

    summary = summarize(entries)
    by_security: dict[str, float] = {}
    for entry in entries:
        _accumulate(by_security, entry.name or UNNAMED_SECURITY, entry.signed_amount)

    return LedgerStats(
        total=total,
        credits=credits,
        debits=debits,
        avg_monthly=total / len(months) if months else 0.0,
        top_type=_top(summary.by_type),
        top_category=_top(summary.by_category),
        top_security=_top(by_security),
    )
