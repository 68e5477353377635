"""Test helpers shared across test files."""
import json
from typing import Optional

from shared.schemas import IndicatorBundle, MarketSection, MarketSnapshot


def mcr(content=None, tool_calls=None, parsed=None):
    """Build a mock chat-completions response body with one choice.

    `content` may be a dict (serialized to JSON) or a raw string.
    Short name (mock chat response) for compact test code.
    """
    if isinstance(content, dict):
        content = json.dumps(content)
    message = {"role": "assistant", "content": content if content is not None else ""}
    if tool_calls is not None:
        message["tool_calls"] = tool_calls
    if parsed is not None:
        message["parsed"] = parsed
    return {"id": "cmpl-test", "choices": [{"index": 0, "message": message}]}


def tool_call(call_id: str, arguments: dict, name: str = "fetch_taapi_indicator"):
    return {
        "id": call_id,
        "type": "function",
        "function": {"name": name, "arguments": json.dumps(arguments)},
    }


def updown_reply(slug: str, direction="UP", size_usd=10, max_loss_usd=10, edge_prob=0.6,
                 reasoning="Momentum is up."):
    return {
        "reasoning": reasoning,
        "decision": {
            "market_slug": slug,
            "direction": direction,
            "size_usd": size_usd,
            "max_loss_usd": max_loss_usd,
            "edge_prob": edge_prob,
        },
    }


def make_section(asset="BTC", current_price: Optional[float] = 100000.0, series_len=3):
    series = [float(i) for i in range(1, series_len + 1)]
    return MarketSection(
        asset=asset,
        current_price=current_price,
        timestamp="2026-02-10T02:30:05+00:00",
        intraday=IndicatorBundle(values={"rsi_14": series[-1] if series else None},
                                 series={"rsi_14": series}),
        long_term=IndicatorBundle(values={"ema_50": 99000.0}, series={}),
    )


def make_snapshot(slug="btc-updown-15m-1770690600", prices=(0.52, 0.48)):
    return MarketSnapshot(
        market_slug=slug,
        question="Bitcoin Up or Down?",
        outcomes=["Up", "Down"],
        outcome_prices=list(prices),
        clob_token_ids=["tok-up", "tok-down"],
    )
