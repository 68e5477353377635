"""Serialize aggregated market data into the LLM user message."""
import json
from typing import Any

from council.prompts import RETRY_INSTRUCTION, UPDOWN_REQUIREMENT
from shared.schemas import MarketSection

MAX_SERIES_POINTS = 10


def _trim_section(section: MarketSection, max_series: int) -> dict:
    data = section.model_dump()
    for bundle in ("intraday", "long_term"):
        series = data[bundle]["series"]
        for key, values in series.items():
            series[key] = values[-max_series:] if max_series > 0 else []
    return data


def build_user_context(
    market_data: list[MarketSection],
    assets: list[str],
    requirement: str = UPDOWN_REQUIREMENT,
    max_series: int = MAX_SERIES_POINTS,
) -> str:
    """One JSON document: market_data plus instructions. Series keep only the newest points."""
    payload = {
        "market_data": [_trim_section(s, max_series) for s in market_data],
        "instructions": {
            "assets": list(assets),
            "requirement": requirement,
        },
    }
    return json.dumps(payload)


def build_retry_context(original_context: Any) -> str:
    """Re-ask payload used after a reply that was not valid JSON."""
    if isinstance(original_context, str):
        try:
            original_context = json.loads(original_context)
        except json.JSONDecodeError:
            pass
    return json.dumps({
        "retry_instruction": RETRY_INSTRUCTION,
        "original_context": original_context,
    })
