"""Polymarket market lookup via the Gamma API, plus CLOB price reads."""
import json
import logging
from typing import Any, Optional
from urllib.parse import quote

import httpx

from shared.schemas import MarketOutcome, UpDownMarket

logger = logging.getLogger(__name__)

GAMMA_BASE = "https://gamma-api.polymarket.com"
CLOB_BASE = "https://clob.polymarket.com"

# Event-title keywords used when listing without a slug
BTC_TITLE_KEYWORDS = ("btc", "bitcoin")


def parse_proxy_url(proxy: str) -> str:
    """Expand the compact `host:port:user:pass` form into a proxy URL.

    The password may itself contain ':'. Anything else is returned as is.
    """
    proxy = (proxy or "").strip()
    parts = proxy.split(":")
    if len(parts) >= 4 and "://" not in proxy:
        host, port, user = parts[0], parts[1], parts[2]
        password = ":".join(parts[3:])
        return f"http://{quote(user, safe='')}:{quote(password, safe='')}@{host}:{port}"
    return proxy


def _load_json_list(raw: Any) -> Optional[list]:
    if isinstance(raw, list):
        return raw
    if not isinstance(raw, str):
        return None
    try:
        value = json.loads(raw)
    except (json.JSONDecodeError, TypeError):
        return None
    return value if isinstance(value, list) else None


def _to_price(raw: Any) -> float:
    try:
        price = float(raw)
    except (TypeError, ValueError):
        return 0.0
    return price if price == price else 0.0


def parse_outcomes(outcomes_json: Any, prices_json: Any) -> list[MarketOutcome]:
    """Zip the JSON-encoded outcome labels and prices of a Gamma market.

    Returns [] when either field is missing or malformed, the lengths differ,
    or a price falls outside [0, 1].
    """
    if not outcomes_json or not prices_json:
        return []
    labels = _load_json_list(outcomes_json)
    prices = _load_json_list(prices_json)
    if labels is None or prices is None or len(labels) != len(prices):
        return []
    outcomes = [
        MarketOutcome(label=str(label), price=_to_price(price))
        for label, price in zip(labels, prices)
    ]
    if any(not 0.0 <= o.price <= 1.0 for o in outcomes):
        return []
    return outcomes


class GammaMarkets:
    """Reads Polymarket events from Gamma; optionally through an outbound proxy."""

    def __init__(
        self,
        proxy: Optional[str] = None,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.timeout = timeout
        self._transport = transport
        self.proxy_url = self._build_proxy(proxy)

    def _build_proxy(self, proxy: Optional[str]) -> Optional[str]:
        """Validate the proxy once; fall back to a direct connection if it is unusable."""
        if not proxy:
            return None
        url = parse_proxy_url(proxy)
        try:
            httpx.Proxy(url)
        except (ValueError, TypeError, httpx.InvalidURL) as e:
            logger.warning(f"Ignoring unusable proxy, connecting directly: {type(e).__name__}")
            return None
        logger.info("Using outbound proxy for Polymarket", extra={"proxy_host": url.rsplit("@", 1)[-1]})
        return url

    def _client(self) -> httpx.AsyncClient:
        kwargs: dict[str, Any] = {"timeout": self.timeout}
        if self._transport is not None:
            kwargs["transport"] = self._transport
        elif self.proxy_url:
            kwargs["proxy"] = self.proxy_url
        return httpx.AsyncClient(**kwargs)

    async def _fetch_events(
        self, slug: Optional[str], limit: int
    ) -> list[dict]:
        async with self._client() as client:
            if slug:
                resp = await client.get(f"{GAMMA_BASE}/events/slug/{quote(slug, safe='')}")
                if resp.status_code == 404:
                    return []
                resp.raise_for_status()
                event = resp.json()
                return [event] if isinstance(event, dict) and event else []

            resp = await client.get(
                f"{GAMMA_BASE}/events",
                params={"active": "true", "closed": "false", "limit": limit},
            )
            resp.raise_for_status()
            events = resp.json()
            return [e for e in events if isinstance(e, dict)] if isinstance(events, list) else []

    async def fetch_updown_markets(
        self,
        slug: Optional[str] = None,
        limit: int = 50,
        search_title: Optional[str] = None,
    ) -> list[UpDownMarket]:
        """Markets of the event `slug`, or of active BTC events when no slug is given.

        Markets whose outcomes/prices do not parse are skipped.
        """
        events = await self._fetch_events(slug, limit)

        results: list[UpDownMarket] = []
        for event in events:
            title = (event.get("title") or "").lower()
            if not slug:
                if not any(kw in title for kw in BTC_TITLE_KEYWORDS):
                    continue
                if search_title and search_title.lower() not in title:
                    continue

            for market in event.get("markets") or []:
                outcomes = parse_outcomes(market.get("outcomes"), market.get("outcomePrices"))
                if not outcomes:
                    logger.debug(
                        "Skipping market with unparseable outcomes",
                        extra={"market_id": market.get("id"), "event_slug": event.get("slug")},
                    )
                    continue
                token_ids = _load_json_list(market.get("clobTokenIds")) or []
                results.append(
                    UpDownMarket(
                        id=str(market.get("id") or event.get("id") or ""),
                        question=market.get("question") or event.get("title") or "",
                        slug=event.get("slug") or slug or "",
                        outcomes=outcomes,
                        clob_token_ids=[str(t) for t in token_ids],
                    )
                )

        logger.info(
            "Gamma lookup complete",
            extra={"slug": slug, "events": len(events), "markets": len(results)},
        )
        return results

    async def fetch_token_price(self, token_id: str, side: str = "buy") -> float:
        """Current CLOB price for one outcome token."""
        async with self._client() as client:
            resp = await client.get(
                f"{CLOB_BASE}/price",
                params={"token_id": token_id, "side": side},
            )
            resp.raise_for_status()
            return float(resp.json()["price"])

    async def fetch_order_book(self, token_id: str) -> dict:
        """CLOB bids/asks for one outcome token."""
        async with self._client() as client:
            resp = await client.get(f"{CLOB_BASE}/book", params={"token_id": token_id})
            resp.raise_for_status()
            data = resp.json()
        return {"bids": data.get("bids") or [], "asks": data.get("asks") or []}
