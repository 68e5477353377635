"""TAAPI indicator gateway: bounded retries, rounded values, never raises."""
import logging
import math
import os
from typing import Any, Optional

import httpx

from shared.retry import retry

logger = logging.getLogger(__name__)

TAAPI_TIMEOUT_SECONDS = 10.0
EXCHANGE = "binance"


def round_value(value: Any, decimals: int = 4) -> Optional[float]:
    """Round a numeric value, returning None for anything non-numeric."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    if not math.isfinite(value):
        return None
    return round(float(value), decimals)


def round_series(values: list, decimals: int = 4) -> list:
    """Round numeric entries and pass others through unchanged.

    Infinite or NaN numbers become None so the series stays valid JSON.
    """
    out = []
    for v in values:
        if isinstance(v, float) and not math.isfinite(v):
            out.append(None)
            continue
        rounded = round_value(v, decimals)
        out.append(rounded if rounded is not None else v)
    return out


def describe_error(indicator: str, error: Exception) -> str:
    """Error text that never includes the request URL (it carries the API secret)."""
    if isinstance(error, httpx.HTTPStatusError):
        return f"{indicator}: HTTP {error.response.status_code}"
    return f"{indicator}: {type(error).__name__}"


class TaapiClient:
    """Reads technical indicators from TAAPI over HTTP.

    Every read degrades to a neutral value (None, [] or {}) on failure so a
    slow or rate-limited upstream never aborts a prediction cycle.
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        api_key: Optional[str] = None,
        timeout: float = TAAPI_TIMEOUT_SECONDS,
        max_attempts: int = 3,
        backoff_base_ms: float = 500,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        base = base_url or os.getenv("TAAPI_URL", "https://api.taapi.io/")
        if not base.endswith("/"):
            base += "/"
        self.base_url = base
        self.api_key = api_key if api_key is not None else os.getenv("TAAPI_API_KEY", "")
        self.timeout = timeout
        self.max_attempts = max_attempts
        self.backoff_base_ms = backoff_base_ms
        self._transport = transport

    async def _get(self, indicator: str, params: dict) -> Any:
        """GET one indicator with retry; returns the decoded JSON body."""
        query = {"secret": self.api_key, "exchange": EXCHANGE, **params}

        async def attempt():
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                resp = await client.get(f"{self.base_url}{indicator}", params=query)
                resp.raise_for_status()
                return resp.json()

        return await retry(
            attempt,
            max_attempts=self.max_attempts,
            backoff_base_ms=self.backoff_base_ms,
        )

    async def fetch_value(
        self,
        indicator: str,
        symbol: str,
        interval: str,
        params: Optional[dict] = None,
        key: str = "value",
    ) -> Optional[float]:
        """Latest value of `key`, rounded to 4 decimals, or None."""
        try:
            data = await self._get(
                indicator, {"symbol": symbol, "interval": interval, **(params or {})}
            )
        except Exception as e:
            logger.warning(
                f"TAAPI value fetch failed: {describe_error(indicator, e)}",
                extra={"indicator": indicator, "symbol": symbol, "interval": interval},
            )
            return None
        if not isinstance(data, dict):
            return None
        return round_value(data.get(key))

    async def fetch_series(
        self,
        indicator: str,
        symbol: str,
        interval: str,
        results: int = 10,
        params: Optional[dict] = None,
        key: str = "value",
    ) -> list:
        """Recent values of `key` (oldest first), or [] on any failure."""
        data = await self.get_historical_data(indicator, symbol, interval, results, params)
        raw = data.get(key)
        if not isinstance(raw, list):
            return []
        return round_series(raw)

    async def get_historical_data(
        self,
        indicator: str,
        symbol: str,
        interval: str,
        results: int,
        params: Optional[dict] = None,
    ) -> dict:
        """Raw response for a `results` request, or {} on failure."""
        try:
            data = await self._get(
                indicator,
                {"symbol": symbol, "interval": interval, "results": results, **(params or {})},
            )
        except Exception as e:
            logger.warning(
                f"TAAPI history fetch failed: {describe_error(indicator, e)}",
                extra={"indicator": indicator, "symbol": symbol, "interval": interval},
            )
            return {}
        return data if isinstance(data, dict) else {}

    async def fetch_indicator(
        self,
        indicator: str,
        symbol: str,
        interval: str,
        **params: Any,
    ) -> dict:
        """Ad-hoc read for LLM tool calls; failures come back as {"error": ...}."""
        query = {k: v for k, v in params.items() if v is not None}
        try:
            data = await self._get(indicator, {"symbol": symbol, "interval": interval, **query})
        except Exception as e:
            error = describe_error(indicator, e)
            logger.warning(
                f"TAAPI tool fetch failed: {error}",
                extra={"indicator": indicator, "symbol": symbol, "interval": interval},
            )
            return {"error": error}
        if isinstance(data, dict):
            return data
        return {"result": data}
