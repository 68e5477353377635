"""Static registry of TAAPI indicators the aggregator can fetch."""
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Iterable, Optional

INTRADAY = "intraday"
LONG_TERM = "long_term"


@dataclass(frozen=True)
class IndicatorDefinition:
    """How to fetch one indicator from TAAPI.

    `multi_value_keys` maps TAAPI response keys to output ids for indicators
    that return several series from one call (e.g. bbands upper/middle/lower).
    """
    id: str
    taapi_indicator: str
    params: MappingProxyType = field(default_factory=lambda: MappingProxyType({}))
    value_key: Optional[str] = "value"
    fetch_series: bool = False
    multi_value_keys: tuple[tuple[str, str], ...] = ()
    timeframes: frozenset = frozenset({INTRADAY, LONG_TERM})

    @property
    def shape(self) -> str:
        if self.multi_value_keys:
            return "multi"
        return "series" if self.fetch_series else "single"

    @property
    def output_ids(self) -> list[str]:
        if self.multi_value_keys:
            return [output_id for _, output_id in self.multi_value_keys]
        return [self.id]


def _params(**kwargs) -> MappingProxyType:
    return MappingProxyType(dict(kwargs))


_DEFINITIONS = (
    IndicatorDefinition("ema_20", "ema", _params(period=20), fetch_series=True),
    IndicatorDefinition("ema_50", "ema", _params(period=50)),
    IndicatorDefinition("macd", "macd", value_key="valueMACD", fetch_series=True),
    IndicatorDefinition("rsi_7", "rsi", _params(period=7), fetch_series=True),
    IndicatorDefinition("rsi_14", "rsi", _params(period=14), fetch_series=True),
    IndicatorDefinition(
        "bbands",
        "bbands",
        _params(period=20),
        value_key=None,
        fetch_series=True,
        multi_value_keys=(
            ("valueUpperBand", "bbands_upper"),
            ("valueMiddleBand", "bbands_middle"),
            ("valueLowerBand", "bbands_lower"),
        ),
    ),
    IndicatorDefinition("atr_3", "atr", _params(period=3)),
    IndicatorDefinition("atr_14", "atr", _params(period=14)),
)

AVAILABLE_INDICATORS = MappingProxyType({d.id: d for d in _DEFINITIONS})

# Used when the caller selects nothing for a timeframe
DEFAULT_INTRADAY_INDICATOR_IDS = ("ema_20", "macd", "rsi_7", "rsi_14")
DEFAULT_LONG_TERM_INDICATOR_IDS = ("ema_20", "ema_50", "atr_3", "atr_14", "macd", "rsi_14")

_DEFAULTS = {
    INTRADAY: DEFAULT_INTRADAY_INDICATOR_IDS,
    LONG_TERM: DEFAULT_LONG_TERM_INDICATOR_IDS,
}


def get_indicator_by_id(indicator_id: str) -> Optional[IndicatorDefinition]:
    return AVAILABLE_INDICATORS.get(indicator_id)


def get_indicators_by_ids(ids: Iterable[str]) -> list[IndicatorDefinition]:
    """Resolve ids in order, silently dropping unknown ones."""
    return [AVAILABLE_INDICATORS[i] for i in ids if i in AVAILABLE_INDICATORS]


def resolve_indicator_ids(
    ids: Optional[Iterable[str]], timeframe_kind: str
) -> list[IndicatorDefinition]:
    """Definitions for the caller's ids, or the timeframe defaults when none given."""
    if timeframe_kind not in _DEFAULTS:
        raise ValueError(f"Unknown timeframe kind: {timeframe_kind}")
    selected = list(ids) if ids else []
    return get_indicators_by_ids(selected or _DEFAULTS[timeframe_kind])
