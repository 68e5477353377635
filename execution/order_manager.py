"""Turn an up/down decision into a Polymarket order."""
import asyncio
import logging
from dataclasses import dataclass
from typing import Optional

from execution.polymarket_client import PolymarketClient
from shared.schemas import Direction, OrderSide, PredictionResult

logger = logging.getLogger(__name__)


@dataclass
class OrderPlan:
    token_id: str
    price: float
    size: float
    side: OrderSide
    outcome: str


def plan_order(prediction: PredictionResult) -> Optional[OrderPlan]:
    """Pick the outcome token for the decided direction and size the order in shares.

    Returns None for NO_BET, a zero size, or a market that cannot be traded.
    """
    decision = prediction.result.decision
    market = prediction.market
    if decision.direction == Direction.NO_BET or decision.size_usd <= 0:
        return None

    wanted = decision.direction.value.lower()
    labels = [o.strip().lower() for o in market.outcomes]
    if wanted in labels:
        index = labels.index(wanted)
    else:
        # Up/down markets list "Up" first
        index = 0 if decision.direction == Direction.UP else 1

    if index >= len(market.clob_token_ids) or index >= len(market.outcome_prices):
        logger.warning(
            "No token for decided outcome",
            extra={"market_slug": market.market_slug, "direction": decision.direction.value},
        )
        return None

    price = market.outcome_prices[index]
    if not 0.0 < price < 1.0:
        logger.warning(
            "Outcome price not tradable",
            extra={"market_slug": market.market_slug, "price": price},
        )
        return None

    return OrderPlan(
        token_id=market.clob_token_ids[index],
        price=price,
        size=round(decision.size_usd / price, 2),
        side=OrderSide.BUY,
        outcome=market.outcomes[index],
    )


class OrderManager:
    """Places bets for decided predictions."""

    def __init__(self, polymarket_client: PolymarketClient):
        self.client = polymarket_client

    async def place(self, token_id: str, price: float, size: float, side: OrderSide) -> dict:
        return await asyncio.to_thread(
            self.client.place_bet, token_id, price, size, side.value
        )

    async def execute(self, prediction: PredictionResult) -> Optional[dict]:
        """Submit the order for a prediction; None when there is nothing to bet."""
        plan = plan_order(prediction)
        if plan is None:
            return None

        resp = await self.place(plan.token_id, plan.price, plan.size, plan.side)
        logger.info(
            "Bet placed",
            extra={
                "market_slug": prediction.market.market_slug,
                "outcome": plan.outcome,
                "price": plan.price,
                "shares": plan.size,
                "size_usd": prediction.result.decision.size_usd,
            },
        )
        return resp
