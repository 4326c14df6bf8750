from investment_ledger.domain.summary import compute_stats, summarize
from investment_ledger.models import Entry


def _entry(entry_id: str, **fields) -> Entry:
    return Entry(id=entry_id, **fields)


def test_summarize_nets_credits_against_debits():
    entries = [
        _entry("1", type="Stocks", direction="credit", amount=100, date="2024-01-05"),
        _entry("2", type="Stocks", direction="debit", amount=40, date="2024-01-20"),
    ]

    summary = summarize(entries)

    assert summary.by_type == {"Stocks": 60}
    assert summary.by_month == {"2024-01": 60}


def test_summarize_uses_default_buckets():
    entries = [_entry("1", type="", category="", date="", amount=25)]

    summary = summarize(entries)

    assert summary.by_type == {"Uncategorized": 25}
    assert summary.by_category == {"Unspecified": 25}
    assert summary.by_month == {"Unknown": 25}


def test_summarize_empty_ledger():
    summary = summarize([])
    assert summary.model_dump(by_alias=True) == {"byType": {}, "byCategory": {}, "byMonth": {}}


def test_compute_stats():
    entries = [
        _entry("1", type="Gold", name="SGB", direction="credit", amount=500, date="2024-01-01"),
        _entry("2", type="Stocks", name="INFY", direction="credit", amount=300, date="2024-02-01"),
        _entry("3", type="Stocks", name="INFY", direction="debit", amount=100, date="2024-02-15"),
    ]

    stats = compute_stats(entries)

    assert stats.credits == 800
    assert stats.debits == 100
    assert stats.total == 700
    assert stats.avg_monthly == 350
    assert stats.top_type == ("Gold", 500)
    assert stats.top_category == ("Unspecified", 700)
    assert stats.top_security == ("SGB", 500)


def test_compute_stats_ties_keep_first_key():
    entries = [
        _entry("1", type="Bonds", amount=100, date="2024-01-01"),
        _entry("2", type="REITs", amount=100, date="2024-01-01"),
    ]

    assert compute_stats(entries).top_type == ("Bonds", 100)


def test_compute_stats_empty_ledger():
    stats = compute_stats([])
    assert stats.total == 0
    assert stats.avg_monthly == 0
    assert stats.top_type is None
