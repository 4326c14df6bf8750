import io
from collections.abc import Generator
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi.testclient import TestClient
from openpyxl import Workbook, load_workbook

from investment_ledger.app import app
from investment_ledger.errors import ProviderUnavailable
from investment_ledger.models import Suggestion, SuggestionOutcome
from investment_ledger.services.ledger import LedgerStore

client = TestClient(app)


def _swap_state(name: str, value: object) -> Generator[object, None, None]:
    had_value = hasattr(app.state, name)
    original = getattr(app.state, name, None)
    setattr(app.state, name, value)
    yield value
    if had_value:
        setattr(app.state, name, original)
    else:
        delattr(app.state, name)


@pytest.fixture
def store(tmp_path: Path) -> Generator[LedgerStore, None, None]:
    yield from _swap_state("store", LedgerStore.from_path(str(tmp_path / "investments.xlsx")))


@pytest.fixture
def mock_cache() -> Generator[MagicMock, None, None]:
    cache = MagicMock()
    cache.suggest = AsyncMock()
    yield from _swap_state("suggestions", cache)


def _post(**fields) -> dict:
    payload = {"type": "Stocks", "amount": 100, "date": "2024-01-10"}
    payload.update(fields)
    response = client.post("/api/investments", json=payload)
    assert response.status_code == 201
    return response.json()


def test_create_and_list(store: LedgerStore) -> None:
    created = _post(name="INFY", direction="debit")

    assert created["direction"] == "debit"
    assert created["createdAt"]
    response = client.get("/api/investments")
    assert response.status_code == 200
    assert response.json() == [created]


def test_create_validation_error(store: LedgerStore) -> None:
    response = client.post("/api/investments", json={"type": "", "date": "2024-01-01", "amount": 100})

    assert response.status_code == 400
    assert response.json()["detail"] == "type, amount, and date are required."


def test_create_with_control_characters_in_notes(store: LedgerStore) -> None:
    created = _post(notes="a\x01b")

    assert created["notes"] == "ab"
    assert client.get(f"/api/investments/{created['id']}").json() == created


def test_update_and_get(store: LedgerStore) -> None:
    created = _post()

    response = client.put(f"/api/investments/{created['id']}", json={"amount": "250.5", "notes": "top-up"})

    assert response.status_code == 200
    body = response.json()
    assert body["amount"] == 250.5
    assert body["notes"] == "top-up"
    assert body["createdAt"] == created["createdAt"]
    assert client.get(f"/api/investments/{created['id']}").json() == body


def test_update_and_delete_unknown_id(store: LedgerStore) -> None:
    assert client.put("/api/investments/nope", json={"amount": 1}).status_code == 404
    assert client.delete("/api/investments/nope").status_code == 404
    assert client.get("/api/investments/nope").status_code == 404


def test_delete(store: LedgerStore) -> None:
    created = _post()

    response = client.delete(f"/api/investments/{created['id']}")

    assert response.json() == {"ok": True}
    assert client.get("/api/investments").json() == []


def test_summary_and_stats(store: LedgerStore) -> None:
    _post(type="Stocks", amount=100, date="2024-01-10")
    _post(type="Stocks", amount=40, date="2024-02-01", direction="debit")

    summary = client.get("/api/summary").json()
    assert summary == {
        "byType": {"Stocks": 60},
        "byCategory": {"Unspecified": 60},
        "byMonth": {"2024-01": 100, "2024-02": -40},
    }

    stats = client.get("/api/stats").json()
    assert stats["total"] == 60
    assert stats["credits"] == 100
    assert stats["debits"] == 40
    assert stats["avgMonthly"] == 30
    assert stats["topType"] == ["Stocks", 60]


def test_import_replaces_ledger_and_export_downloads(store: LedgerStore) -> None:
    _post(name="Old entry")

    workbook = Workbook()
    sheet = workbook.active
    sheet.append(["Name", "Type", "Amount", "Date"])
    sheet.append(["SBI Bluechip Fund", "Equity Mutual Fund", 5000, "2024-01-05"])
    sheet.append([None, None, None, None])
    sheet.append(["Sovereign Gold Bond", "Gold", "2500", "2024-02-05"])
    buffer = io.BytesIO()
    workbook.save(buffer)

    response = client.post(
        "/api/import",
        files={"file": ("backup.xlsx", buffer.getvalue(), "application/octet-stream")},
    )

    assert response.status_code == 200
    assert response.json() == {"ok": True, "count": 2}
    names = [entry["name"] for entry in client.get("/api/investments").json()]
    assert names == ["SBI Bluechip Fund", "Sovereign Gold Bond"]

    exported = client.get("/api/export")
    assert exported.status_code == 200
    sheet = load_workbook(io.BytesIO(exported.content))["Investments"]
    assert sheet.max_row == 3


def test_import_requires_file(store: LedgerStore) -> None:
    assert client.post("/api/import").status_code == 400


def test_import_rejects_non_workbook(store: LedgerStore) -> None:
    response = client.post("/api/import", files={"file": ("notes.xlsx", b"plain text", "text/plain")})
    assert response.status_code == 400


def test_suggestions(mock_cache: MagicMock) -> None:
    mock_cache.suggest.return_value = SuggestionOutcome(
        results=[Suggestion(symbol="119598", name="SBI Bluechip Fund", region="India", currency="INR", source="mfapi")],
    )

    response = client.get("/api/suggestions", params={"q": "sbi blue"})

    assert response.status_code == 200
    assert response.json() == {
        "results": [
            {"symbol": "119598", "name": "SBI Bluechip Fund", "region": "India", "currency": "INR", "source": "mfapi"}
        ],
        "rateLimited": False,
    }
    mock_cache.suggest.assert_awaited_once_with("sbi blue")


def test_suggestions_unavailable(mock_cache: MagicMock) -> None:
    mock_cache.suggest.side_effect = ProviderUnavailable()

    response = client.get("/api/suggestions", params={"q": "sbi"})

    assert response.status_code == 503


def test_clear_suggestion_cache(mock_cache: MagicMock) -> None:
    mock_cache.clear.return_value = 3

    response = client.post("/api/suggestions/clear")

    assert response.json() == {"status": "cleared", "cleared": 3}


def test_health() -> None:
    assert client.get("/health").json() == {"status": "ok"}
