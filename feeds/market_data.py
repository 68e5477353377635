"""Gather intraday + long-term indicator bundles and price into MarketSections."""
import asyncio
import logging
from datetime import datetime, timezone
from typing import Iterable, Optional, Union

from feeds.indicator_catalog import (
    INTRADAY,
    LONG_TERM,
    IndicatorDefinition,
    resolve_indicator_ids,
)
from feeds.taapi_client import TaapiClient, round_value
from shared.schemas import IndicatorBundle, MarketSection
from shared.throttle import Throttle

logger = logging.getLogger(__name__)

# Bundle values are presented to the LLM at 2 decimals
BUNDLE_DECIMALS = 2


def _bundle_series(values: list) -> list[float]:
    """Round numeric entries to bundle precision, dropping the rest."""
    out = []
    for v in values:
        rounded = round_value(v, BUNDLE_DECIMALS)
        if rounded is not None:
            out.append(rounded)
    return out


def _last(values: list) -> Optional[float]:
    return round_value(values[-1], BUNDLE_DECIMALS) if values else None


def pair_symbol(asset: str) -> str:
    return f"{asset.upper()}/USDT"


class MarketDataAggregator:
    """Builds one MarketSection per asset from TAAPI reads.

    Within a bundle, calls run one after another paced by `throttle`; the
    intraday bundle, long-term bundle and price read of an asset run
    concurrently.
    """

    def __init__(self, taapi: TaapiClient, throttle: Optional[Throttle] = None):
        self.taapi = taapi
        self.throttle = throttle if throttle is not None else Throttle(1.0)

    async def get_current_market_data(
        self,
        asset: Union[str, Iterable[str]],
        intraday_timeframe: str = "5m",
        long_term_timeframe: str = "4h",
        series_results: int = 10,
        intraday_indicator_ids: Optional[list[str]] = None,
        long_term_indicator_ids: Optional[list[str]] = None,
    ) -> list[MarketSection]:
        """Fetch market data for each asset; assets that fail are left out."""
        assets = [asset] if isinstance(asset, str) else list(asset)
        intraday_defs = resolve_indicator_ids(intraday_indicator_ids, INTRADAY)
        long_term_defs = resolve_indicator_ids(long_term_indicator_ids, LONG_TERM)

        sections: list[MarketSection] = []
        for name in assets:
            try:
                section = await self.fetch_asset_market_data(
                    name,
                    intraday_timeframe,
                    long_term_timeframe,
                    series_results,
                    intraday_defs,
                    long_term_defs,
                )
            except Exception as e:
                logger.error(
                    f"Data gather error {name}: {e}",
                    extra={"asset": name},
                )
                continue
            sections.append(section)

        return sections

    async def fetch_asset_market_data(
        self,
        asset: str,
        intraday_timeframe: str,
        long_term_timeframe: str,
        series_results: int,
        intraday_defs: list[IndicatorDefinition],
        long_term_defs: list[IndicatorDefinition],
    ) -> MarketSection:
        intraday, long_term, current_price = await asyncio.gather(
            self.fetch_indicators_by_defs(asset, intraday_timeframe, series_results, intraday_defs),
            self.fetch_indicators_by_defs(asset, long_term_timeframe, series_results, long_term_defs),
            self.taapi.fetch_value("price", pair_symbol(asset), intraday_timeframe, {}, "value"),
        )
        logger.info(
            "Market data gathered",
            extra={
                "asset": asset,
                "current_price": current_price,
                "intraday_ids": len(intraday.values),
                "long_term_ids": len(long_term.values),
            },
        )
        return MarketSection(
            asset=asset,
            current_price=current_price,
            timestamp=datetime.now(timezone.utc).isoformat(),
            intraday=intraday,
            long_term=long_term,
        )

    async def fetch_indicators_by_defs(
        self,
        asset: str,
        timeframe: str,
        series_results: int,
        defs: list[IndicatorDefinition],
    ) -> IndicatorBundle:
        """Sequential, throttled reads for one timeframe."""
        bundle = IndicatorBundle()
        symbol = pair_symbol(asset)

        for d in defs:
            await self.throttle.wait()
            params = dict(d.params)

            if d.multi_value_keys:
                data = await self.taapi.get_historical_data(
                    d.taapi_indicator, symbol, timeframe, series_results, params
                )
                for response_key, output_id in d.multi_value_keys:
                    raw = data.get(response_key)
                    if isinstance(raw, list):
                        arr = [v if round_value(v) is not None else 0 for v in raw]
                    elif round_value(raw) is not None:
                        arr = [raw]
                    else:
                        arr = []
                    bundle.series[output_id] = _bundle_series(arr)
                    bundle.values[output_id] = _last(arr)

            elif d.fetch_series and d.value_key:
                arr = await self.taapi.fetch_series(
                    d.taapi_indicator, symbol, timeframe, series_results, params, d.value_key
                )
                bundle.series[d.id] = _bundle_series(arr)
                bundle.values[d.id] = _last(arr)

            elif d.value_key:
                value = await self.taapi.fetch_value(
                    d.taapi_indicator, symbol, timeframe, params, d.value_key
                )
                bundle.values[d.id] = round_value(value, BUNDLE_DECIMALS)

        return bundle
