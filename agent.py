"""Main entry point: wires all layers together and serves the API."""
import asyncio
import signal
from typing import Optional

from dotenv import load_dotenv

load_dotenv()

from shared.config import Config
from shared.llm_client import OpenRouterClient
from shared.logging import setup_logging
from shared.schemas import PredictionRecord
from shared.throttle import Throttle
from feeds.gamma_discovery import GammaMarkets
from feeds.market_data import MarketDataAggregator
from feeds.taapi_client import TaapiClient
from council.decision_engine import DecisionEngine
from council.orchestrator import PredictionOrchestrator
from execution.order_manager import OrderManager
from execution.polymarket_client import PolymarketClient
from storage.db import Database
from dashboard.main import app as api_app, set_database, set_orchestrator, set_order_manager_factory

logger = setup_logging("polymarket-updown-agent")


def build_orchestrator(config: Config) -> PredictionOrchestrator:
    taapi = TaapiClient(base_url=config.TAAPI_URL, api_key=config.TAAPI_API_KEY)
    aggregator = MarketDataAggregator(taapi, Throttle(config.INDICATOR_DELAY_SECONDS))
    llm = OpenRouterClient(
        base_url=config.OPENROUTER_BASE_URL,
        api_key=config.OPENROUTER_API_KEY,
        model=config.LLM_MODEL,
    )
    engine = DecisionEngine(llm, taapi=taapi, max_tool_rounds=config.MAX_TOOL_ROUNDS)
    return PredictionOrchestrator(
        aggregator=aggregator,
        markets=GammaMarkets(proxy=config.POLY_PROXY),
        engine=engine,
        intraday_timeframe=config.INTRADAY_TIMEFRAME,
        long_term_timeframe=config.LONG_TERM_TIMEFRAME,
        series_results=config.SERIES_RESULTS,
        intraday_indicator_ids=config.intraday_indicator_ids,
        long_term_indicator_ids=config.long_term_indicator_ids,
    )


class PredictionAgent:
    """Runs the HTTP API and, when configured, a periodic auto-predict loop."""

    def __init__(self, config: Config):
        self.config = config
        self._shutdown = asyncio.Event()
        self.db: Database | None = None
        self.orchestrator: PredictionOrchestrator | None = None
        self._order_manager: Optional[OrderManager] = None

    def _make_order_manager(self) -> OrderManager:
        client = PolymarketClient(
            self.config.POLYMARKET_PRIVATE_KEY,
            chain_id=self.config.POLYMARKET_CHAIN_ID,
        )
        return OrderManager(client)

    def order_manager(self) -> OrderManager:
        if self._order_manager is None:
            self._order_manager = self._make_order_manager()
        return self._order_manager

    async def start(self):
        """Initialize and run all components."""
        logger.info(
            "Starting prediction agent",
            extra={
                "model": self.config.LLM_MODEL,
                "auto_predict": self.config.AUTO_PREDICT_SYMBOL or None,
                "auto_place_bets": self.config.AUTO_PLACE_BETS,
            },
        )

        self.db = Database(self.config.DB_PATH)
        await self.db.init()
        self.orchestrator = build_orchestrator(self.config)

        set_database(self.db)
        set_orchestrator(self.orchestrator)
        set_order_manager_factory(self.order_manager)

        tasks = [asyncio.create_task(self._run_api(), name="api")]
        if self.config.auto_predict_enabled:
            tasks.append(asyncio.create_task(self._auto_predict_loop(), name="auto-predict"))

        logger.info("All components started")

        await self._shutdown.wait()

        logger.info("Shutting down...")
        for t in tasks:
            t.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        await self.db.close()
        logger.info("Shutdown complete")

    async def run_cycle(self, symbol: str) -> PredictionRecord:
        """One predict -> persist (-> bet) cycle."""
        prediction = await self.orchestrator.predict(symbol)
        record = await self.db.create_prediction(PredictionRecord.from_result(symbol, prediction))

        if self.config.AUTO_PLACE_BETS and self.config.can_place_bets:
            order = await self.order_manager().execute(prediction)
            if order is not None:
                logger.info("Auto bet submitted", extra={"prediction_id": record.id})
        return record

    async def _auto_predict_loop(self):
        """Predict the configured symbol every AUTO_PREDICT_INTERVAL_SECONDS."""
        symbol = self.config.AUTO_PREDICT_SYMBOL.strip().upper()
        interval = max(1, self.config.AUTO_PREDICT_INTERVAL_SECONDS)
        count = 0

        while not self._shutdown.is_set():
            try:
                record = await self.run_cycle(symbol)
                count += 1
                logger.info(
                    "Auto-predict cycle",
                    extra={
                        "symbol": symbol,
                        "count": count,
                        "market_slug": record.market_slug,
                        "direction": record.direction.value,
                    },
                )
            except Exception as e:
                logger.error(f"Auto-predict error: {e}", extra={"symbol": symbol})

            try:
                await asyncio.wait_for(self._shutdown.wait(), timeout=interval)
            except asyncio.TimeoutError:
                continue

    async def _run_api(self):
        """Run the FastAPI app."""
        import uvicorn
        config = uvicorn.Config(
            api_app,
            host="0.0.0.0",
            port=self.config.API_PORT,
            log_level="warning",
        )
        server = uvicorn.Server(config)
        logger.info(
            "API starting",
            extra={"port": self.config.API_PORT},
        )
        await server.serve()

    def shutdown(self):
        self._shutdown.set()


def main():
    config = Config.from_env()
    setup_logging("polymarket-updown-agent", config.LOG_LEVEL)

    agent = PredictionAgent(config)

    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)

    def handle_signal(sig, frame):
        logger.info(f"Received signal {sig}")
        agent.shutdown()

    signal.signal(signal.SIGINT, handle_signal)
    signal.signal(signal.SIGTERM, handle_signal)

    try:
        loop.run_until_complete(agent.start())
    except KeyboardInterrupt:
        agent.shutdown()
        loop.run_until_complete(asyncio.sleep(1))
    finally:
        loop.close()


if __name__ == "__main__":
    main()
