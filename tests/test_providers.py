from typing import Any
from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest

from investment_ledger.integration.alphavantage import EquitySearchProvider
from investment_ledger.integration.mfapi import MutualFundProvider


def _response(payload: Any, status_code: int = 200) -> MagicMock:
    response = MagicMock()
    response.status_code = status_code
    response.raise_for_status.return_value = None
    response.json.return_value = payload
    return response


def _client(*responses: Any) -> AsyncMock:
    client = AsyncMock()
    client.is_closed = False
    client.get = AsyncMock(side_effect=list(responses))
    return client


@pytest.mark.anyio
async def test_mfapi_maps_schemes() -> None:
    client = _client(_response([
        {"schemeCode": 119598, "schemeName": "SBI Bluechip Fund - Direct Plan - Growth"},
        {"schemeCode": None, "schemeName": "broken"},
    ]))
    provider = MutualFundProvider(base_url="http://mf.test", client=client)

    result = await provider.search("sbi bluechip")

    assert [s.symbol for s in result.suggestions] == ["119598"]
    assert result.suggestions[0].source == "mfapi"
    assert result.suggestions[0].currency == "INR"
    assert not result.rate_limited
    _, kwargs = client.get.call_args
    assert kwargs["params"] == {"q": "sbi bluechip"}


@pytest.mark.anyio
async def test_mfapi_errors_become_empty_results() -> None:
    client = _client(httpx.ConnectError("offline"))
    provider = MutualFundProvider(base_url="http://mf.test", client=client)

    result = await provider.search("hdfc")

    assert result.suggestions == []
    assert not result.rate_limited


@pytest.mark.anyio
async def test_mfapi_unexpected_payload_is_empty() -> None:
    provider = MutualFundProvider(base_url="http://mf.test", client=_client(_response({"oops": 1})))
    assert (await provider.search("x")).suggestions == []


@pytest.mark.anyio
async def test_alphavantage_maps_best_matches() -> None:
    client = _client(_response({
        "bestMatches": [
            {
                "1. symbol": "INFY.BSE",
                "2. name": "Infosys Limited",
                "4. region": "India/Bombay",
                "8. currency": "INR",
            }
        ]
    }))
    provider = EquitySearchProvider(api_key="demo", base_url="http://av.test", client=client)

    result = await provider.search("infosys")

    assert len(result.suggestions) == 1
    suggestion = result.suggestions[0]
    assert suggestion.symbol == "INFY.BSE"
    assert suggestion.region == "India/Bombay"
    assert suggestion.source == "alphavantage"
    _, kwargs = client.get.call_args
    assert kwargs["params"]["function"] == "SYMBOL_SEARCH"
    assert kwargs["params"]["apikey"] == "demo"


@pytest.mark.anyio
@pytest.mark.parametrize("key", ["Note", "Information"])
async def test_alphavantage_rate_limit_is_flagged(key: str) -> None:
    client = _client(_response({key: "Thank you for using Alpha Vantage! Our standard API rate limit is..."}))
    provider = EquitySearchProvider(api_key="demo", base_url="http://av.test", client=client)

    result = await provider.search("tcs")

    assert result.rate_limited
    assert result.suggestions == []


@pytest.mark.anyio
async def test_alphavantage_http_429_is_flagged() -> None:
    provider = EquitySearchProvider(
        api_key="demo", base_url="http://av.test", client=_client(_response({}, status_code=429))
    )
    assert (await provider.search("tcs")).rate_limited


def test_alphavantage_requires_api_key() -> None:
    assert not EquitySearchProvider(api_key="", base_url="http://av.test").configured
    assert EquitySearchProvider(api_key="k", base_url="http://av.test").configured


@pytest.mark.anyio
async def test_unconfigured_provider_does_not_call_out() -> None:
    client = _client()
    provider = EquitySearchProvider(api_key="", base_url="http://av.test", client=client)

    result = await provider.search("tcs")

    assert result.suggestions == []
    client.get.assert_not_called()


@pytest.mark.anyio
async def test_shared_client_is_not_closed_by_provider() -> None:
    client = _client()
    client.aclose = AsyncMock()
    provider = MutualFundProvider(base_url="http://mf.test", client=client)

    await provider.aclose()

    client.aclose.assert_not_awaited()
