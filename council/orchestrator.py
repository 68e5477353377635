"""Prediction orchestrator: market data -> current 15m market -> LLM decision."""
import asyncio
import logging
import time
from typing import Callable, Optional

from council.context_builder import build_user_context
from council.decision_engine import DecisionEngine
from council.prompts import TRADING_REQUIREMENT
from feeds.gamma_discovery import GammaMarkets
from feeds.market_data import MarketDataAggregator
from shared.errors import MarketNotFoundError
from shared.schemas import MarketSnapshot, PredictionResult, TradeDecisionOutput

logger = logging.getLogger(__name__)

WINDOW_SECONDS = 15 * 60


def compute_window_start(now: float) -> int:
    """Start (epoch seconds) of the 15-minute bucket containing `now`."""
    return (int(now) // WINDOW_SECONDS) * WINDOW_SECONDS


def compute_slug(asset: str, now: float) -> str:
    """Polymarket slug of the up/down market for the window containing `now`."""
    return f"{asset.lower()}-updown-15m-{compute_window_start(now)}"


class PredictionOrchestrator:
    """Runs one prediction cycle for one asset."""

    def __init__(
        self,
        aggregator: MarketDataAggregator,
        markets: GammaMarkets,
        engine: DecisionEngine,
        intraday_timeframe: str = "5m",
        long_term_timeframe: str = "4h",
        series_results: int = 10,
        intraday_indicator_ids: Optional[list[str]] = None,
        long_term_indicator_ids: Optional[list[str]] = None,
        clock: Callable[[], float] = time.time,
    ):
        self.aggregator = aggregator
        self.markets = markets
        self.engine = engine
        self.intraday_timeframe = intraday_timeframe
        self.long_term_timeframe = long_term_timeframe
        self.series_results = series_results
        self.intraday_indicator_ids = intraday_indicator_ids
        self.long_term_indicator_ids = long_term_indicator_ids
        self.clock = clock

    async def fetch_market(self, slug: str) -> MarketSnapshot:
        markets = await self.markets.fetch_updown_markets(slug=slug)
        if not markets:
            raise MarketNotFoundError(slug)
        return MarketSnapshot.from_market(markets[0])

    async def predict(self, symbol: str) -> PredictionResult:
        """End-to-end decision for the current 15-minute market of `symbol`.

        Raises MarketNotFoundError when the venue has no market for the
        window yet; LLM failures propagate from the decision engine.
        """
        asset = symbol.strip().upper()
        start = time.monotonic()

        market_data = await self.aggregator.get_current_market_data(
            asset,
            intraday_timeframe=self.intraday_timeframe,
            long_term_timeframe=self.long_term_timeframe,
            series_results=self.series_results,
            intraday_indicator_ids=self.intraday_indicator_ids,
            long_term_indicator_ids=self.long_term_indicator_ids,
        )

        slug = compute_slug(asset, self.clock())
        logger.info("Prediction: resolving market", extra={"asset": asset, "slug": slug})
        market = await self.fetch_market(slug)

        context = build_user_context(market_data, [asset])
        result = await self.engine.decide_updown(asset, market, context)

        logger.info(
            "Prediction complete",
            extra={
                "asset": asset,
                "slug": market.market_slug,
                "direction": result.decision.direction.value,
                "sections": len(market_data),
                "latency_ms": round((time.monotonic() - start) * 1000),
            },
        )
        return PredictionResult(market=market, market_data=market_data, result=result)

    async def decide_trades(self, symbols: list[str]) -> TradeDecisionOutput:
        """Multi-asset buy/sell/hold decisions; the model may pull extra indicators."""
        assets = [s.strip().upper() for s in symbols if s.strip()]
        if not assets:
            raise ValueError("At least one symbol is required")

        market_data = await self.aggregator.get_current_market_data(
            assets,
            intraday_timeframe=self.intraday_timeframe,
            long_term_timeframe=self.long_term_timeframe,
            series_results=self.series_results,
            intraday_indicator_ids=self.intraday_indicator_ids,
            long_term_indicator_ids=self.long_term_indicator_ids,
        )
        context = build_user_context(market_data, assets, requirement=TRADING_REQUIREMENT)
        return await self.engine.decide_trades(assets, context)

    async def quote(self, token_id: str) -> dict:
        """Live CLOB price and order book for one outcome token."""
        price, book = await asyncio.gather(
            self.markets.fetch_token_price(token_id),
            self.markets.fetch_order_book(token_id),
        )
        return {"token_id": token_id, "price": price, **book}
