"""Tests for the agent's auto-predict cycle."""
import pytest
from unittest.mock import AsyncMock, MagicMock
from helpers import make_section, make_snapshot

from agent import PredictionAgent, build_orchestrator
from council.orchestrator import PredictionOrchestrator
from shared.config import Config
from shared.schemas import Decision, DecisionOutput, Direction, PredictionResult

SLUG = "btc-updown-15m-1770690600"


def _agent(**config):
    agent = PredictionAgent(Config(**config))
    prediction = PredictionResult(
        market=make_snapshot(SLUG),
        market_data=[make_section()],
        result=DecisionOutput(decision=Decision(market_slug=SLUG, direction=Direction.UP, size_usd=5)),
    )
    agent.orchestrator = MagicMock()
    agent.orchestrator.predict = AsyncMock(return_value=prediction)
    agent.db = MagicMock()
    agent.db.create_prediction = AsyncMock(side_effect=lambda r: r.model_copy(update={"id": "p1"}))
    agent._order_manager = MagicMock()
    agent._order_manager.execute = AsyncMock(return_value={"orderID": "o1"})
    return agent


@pytest.mark.asyncio
async def test_run_cycle_persists_without_betting_by_default():
    agent = _agent()
    record = await agent.run_cycle("BTC")
    assert record.id == "p1"
    assert record.direction == Direction.UP
    agent._order_manager.execute.assert_not_awaited()


@pytest.mark.asyncio
async def test_run_cycle_places_bet_when_enabled():
    agent = _agent(AUTO_PLACE_BETS=True, POLYMARKET_PRIVATE_KEY="0xkey")
    await agent.run_cycle("BTC")
    agent._order_manager.execute.assert_awaited_once()


@pytest.mark.asyncio
async def test_run_cycle_needs_key_to_bet():
    agent = _agent(AUTO_PLACE_BETS=True)
    await agent.run_cycle("BTC")
    agent._order_manager.execute.assert_not_awaited()


def test_build_orchestrator_wires_config():
    cfg = Config(LONG_TERM_INDICATORS="ema_50,atr_14", INTRADAY_TIMEFRAME="1m", MAX_TOOL_ROUNDS=5)
    orchestrator = build_orchestrator(cfg)
    assert isinstance(orchestrator, PredictionOrchestrator)
    assert orchestrator.intraday_timeframe == "1m"
    assert orchestrator.long_term_indicator_ids == ["ema_50", "atr_14"]
    assert orchestrator.intraday_indicator_ids is None
    assert orchestrator.engine.max_tool_rounds == 5
    assert orchestrator.markets.proxy_url is None
