"""Tests for feeds.taapi_client."""
import json
import logging

import httpx
import pytest

from feeds.taapi_client import TaapiClient, round_series, round_value


def _client(handler, max_attempts=3):
    return TaapiClient(
        base_url="https://taapi.test/",
        api_key="secret-key",
        max_attempts=max_attempts,
        backoff_base_ms=0,
        transport=httpx.MockTransport(handler),
    )


def test_round_value():
    assert round_value(1.234567) == 1.2346
    assert round_value(3) == 3.0
    assert round_value("1.5") is None
    assert round_value(None) is None
    assert round_value(True) is None
    assert round_value(float("nan")) is None


def test_rounding_is_idempotent():
    once = round_value(123.456789)
    assert round_value(once) == once


def test_round_series_passes_non_numeric_through():
    assert round_series([1.23456, "n/a", None]) == [1.2346, "n/a", None]


@pytest.mark.asyncio
async def test_fetch_value_sends_query_and_rounds():
    seen = {}

    def handler(request: httpx.Request):
        seen["path"] = request.url.path
        seen["params"] = dict(request.url.params)
        return httpx.Response(200, json={"value": 64.123456})

    value = await _client(handler).fetch_value("rsi", "BTC/USDT", "5m", {"period": 14})
    assert value == 64.1235
    assert seen["path"] == "/rsi"
    assert seen["params"]["secret"] == "secret-key"
    assert seen["params"]["exchange"] == "binance"
    assert seen["params"]["symbol"] == "BTC/USDT"
    assert seen["params"]["interval"] == "5m"
    assert seen["params"]["period"] == "14"


@pytest.mark.asyncio
async def test_fetch_value_500_returns_none_after_retries():
    calls = []

    def handler(request):
        calls.append(request)
        return httpx.Response(500, text="upstream down")

    assert await _client(handler).fetch_value("rsi", "BTC/USDT", "5m") is None
    assert len(calls) == 3


@pytest.mark.asyncio
async def test_fetch_value_recovers_on_retry():
    calls = []

    def handler(request):
        calls.append(request)
        if len(calls) == 1:
            return httpx.Response(429, text="rate limited")
        return httpx.Response(200, json={"value": 10})

    assert await _client(handler).fetch_value("ema", "ETH/USDT", "4h") == 10.0
    assert len(calls) == 2


@pytest.mark.asyncio
async def test_fetch_value_timeout_returns_none():
    def handler(request):
        raise httpx.ReadTimeout("timed out", request=request)

    assert await _client(handler, max_attempts=2).fetch_value("rsi", "BTC/USDT", "5m") is None


@pytest.mark.asyncio
async def test_fetch_value_malformed_body_returns_none():
    def handler(request):
        return httpx.Response(200, content=b"<html>not json</html>")

    assert await _client(handler, max_attempts=1).fetch_value("rsi", "BTC/USDT", "5m") is None


@pytest.mark.asyncio
async def test_fetch_value_missing_key_returns_none():
    def handler(request):
        return httpx.Response(200, json={"valueMACD": 1.0})

    assert await _client(handler).fetch_value("macd", "BTC/USDT", "5m") is None


@pytest.mark.asyncio
async def test_fetch_series():
    seen = {}

    def handler(request):
        seen["results"] = request.url.params.get("results")
        return httpx.Response(200, json={"value": [1.111111, 2.222222, "x"]})

    series = await _client(handler).fetch_series("rsi", "BTC/USDT", "5m", results=3)
    assert series == [1.1111, 2.2222, "x"]
    assert seen["results"] == "3"


@pytest.mark.asyncio
async def test_fetch_series_failure_and_wrong_shape_return_empty():
    def failing(request):
        return httpx.Response(503)

    def scalar(request):
        return httpx.Response(200, json={"value": 5.0})

    assert await _client(failing, max_attempts=1).fetch_series("rsi", "BTC/USDT", "5m") == []
    assert await _client(scalar).fetch_series("rsi", "BTC/USDT", "5m") == []


@pytest.mark.asyncio
async def test_get_historical_data_non_object_returns_empty_dict():
    def handler(request):
        return httpx.Response(200, json=[1, 2, 3])

    assert await _client(handler).get_historical_data("rsi", "BTC/USDT", "5m", 3) == {}


@pytest.mark.asyncio
async def test_fetch_indicator_drops_none_params_and_reports_errors():
    seen = {}

    def ok(request):
        seen.update(dict(request.url.params))
        return httpx.Response(200, json={"value": 55.5})

    result = await _client(ok).fetch_indicator("rsi", "BTC/USDT", "1h", period=7, backtrack=None)
    assert result == {"value": 55.5}
    assert seen["period"] == "7"
    assert "backtrack" not in seen

    def failing(request):
        return httpx.Response(400, json={"errors": ["bad"]})

    result = await _client(failing, max_attempts=1).fetch_indicator("rsi", "BTC/USDT", "1h")
    assert "error" in result


def test_round_value_rejects_infinity():
    assert round_value(float("inf")) is None
    assert round_value(float("-inf")) is None


def test_round_series_replaces_non_finite_with_none():
    assert round_series([1.0, float("inf"), float("nan")]) == [1.0, None, None]


def _app_log_text(caplog):
    """Messages and extra fields of our records; httpx request lines are quieted by setup_logging."""
    return "\n".join(
        f"{r.getMessage()} {r.__dict__}" for r in caplog.records if not r.name.startswith("httpx")
    )


@pytest.mark.asyncio
async def test_errors_never_expose_api_secret(caplog):
    def handler(request):
        return httpx.Response(401, json={"error": "invalid key"})

    client = TaapiClient(
        base_url="https://taapi.test/",
        api_key="SUPERSECRET123",
        max_attempts=1,
        transport=httpx.MockTransport(handler),
    )
    with caplog.at_level(logging.DEBUG):
        result = await client.fetch_indicator("rsi", "BTC/USDT", "1h")
        await client.fetch_value("rsi", "BTC/USDT", "1h")
        await client.get_historical_data("rsi", "BTC/USDT", "1h", 5)

    assert result == {"error": "rsi: HTTP 401"}
    assert "SUPERSECRET123" not in json.dumps(result)
    logged = _app_log_text(caplog)
    assert "SUPERSECRET123" not in logged
    assert "HTTP 401" in logged


@pytest.mark.asyncio
async def test_network_error_reports_type_only(caplog):
    def handler(request):
        raise httpx.ConnectError("connect failed", request=request)

    client = _client(handler, max_attempts=2)
    client.api_key = "SUPERSECRET123"
    with caplog.at_level(logging.DEBUG):
        result = await client.fetch_indicator("ema", "ETH/USDT", "4h")
    assert result == {"error": "ema: ConnectError"}
    assert "SUPERSECRET123" not in _app_log_text(caplog)
