"""Pydantic models for all data flowing through the prediction pipeline."""
from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field, model_validator


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class IndicatorBundle(BaseModel):
    """Latest values and recent series per indicator id for one timeframe."""
    values: dict[str, Optional[float]] = Field(default_factory=dict)
    series: dict[str, list[float]] = Field(default_factory=dict)


class MarketSection(BaseModel):
    """Indicator snapshot for a single asset, built fresh each cycle."""
    asset: str
    current_price: Optional[float] = None
    timestamp: str
    intraday: IndicatorBundle
    long_term: IndicatorBundle


class MarketOutcome(BaseModel):
    label: str
    price: float


class UpDownMarket(BaseModel):
    """A Gamma market whose outcomes and prices parsed cleanly."""
    id: str
    question: str
    slug: str
    outcomes: list[MarketOutcome]
    clob_token_ids: list[str] = Field(default_factory=list)


class MarketSnapshot(BaseModel):
    """The single up/down market handed to the decision engine."""
    market_slug: str
    question: str
    outcomes: list[str]
    outcome_prices: list[float]
    clob_token_ids: list[str] = Field(default_factory=list)

    @model_validator(mode="after")
    def _parallel_lists(self) -> "MarketSnapshot":
        if len(self.outcomes) != len(self.outcome_prices):
            raise ValueError("outcomes and outcome_prices must have the same length")
        for price in self.outcome_prices:
            if not 0.0 <= price <= 1.0:
                raise ValueError(f"outcome price {price} outside [0, 1]")
        return self

    @classmethod
    def from_market(cls, market: UpDownMarket) -> "MarketSnapshot":
        return cls(
            market_slug=market.slug,
            question=market.question,
            outcomes=[o.label for o in market.outcomes],
            outcome_prices=[o.price for o in market.outcomes],
            clob_token_ids=list(market.clob_token_ids),
        )


class Direction(str, Enum):
    UP = "UP"
    DOWN = "DOWN"
    NO_BET = "NO_BET"


class Decision(BaseModel):
    """Bet decision for one up/down market."""
    market_slug: str
    direction: Direction = Direction.NO_BET
    size_usd: float = Field(default=0.0, ge=0.0)
    max_loss_usd: float = Field(default=0.0, ge=0.0)
    edge_prob: float = Field(default=0.5, ge=0.0, le=1.0)


class DecisionOutput(BaseModel):
    """Parsed LLM output for the up/down path."""
    reasoning: str = ""
    decision: Decision


class TradeAction(str, Enum):
    BUY = "buy"
    SELL = "sell"
    HOLD = "hold"


class TradeDecision(BaseModel):
    """One per-asset decision from the multi-asset trading prompt."""
    asset: str
    action: TradeAction = TradeAction.HOLD
    allocation_usd: float = Field(default=0.0, ge=0.0)
    tp_price: Optional[float] = None
    sl_price: Optional[float] = None
    exit_plan: str = ""
    rationale: str = ""


class TradeDecisionOutput(BaseModel):
    reasoning: str = ""
    trade_decisions: list[TradeDecision] = Field(default_factory=list)
    tool_rounds: int = 0


class PredictionResult(BaseModel):
    """Everything one predict() cycle produced, ready to persist."""
    market: MarketSnapshot
    market_data: list[MarketSection]
    result: DecisionOutput


class PredictionRecord(BaseModel):
    """Persisted, append-only audit row."""
    id: Optional[str] = None
    symbol: str
    timestamp: datetime = Field(default_factory=utc_now)
    current_price: Optional[float] = None
    market_slug: str
    question: str
    outcomes: list[str]
    outcome_prices: list[float]
    clob_token_ids: list[str] = Field(default_factory=list)
    direction: Direction
    size_usd: float
    max_loss_usd: float
    edge_prob: float
    reasoning: str = ""

    @classmethod
    def from_result(cls, symbol: str, prediction: PredictionResult) -> "PredictionRecord":
        market = prediction.market
        decision = prediction.result.decision
        current_price = prediction.market_data[0].current_price if prediction.market_data else None
        return cls(
            symbol=symbol.upper(),
            current_price=current_price,
            market_slug=market.market_slug,
            question=market.question,
            outcomes=list(market.outcomes),
            outcome_prices=list(market.outcome_prices),
            clob_token_ids=list(market.clob_token_ids),
            direction=decision.direction,
            size_usd=decision.size_usd,
            max_loss_usd=decision.max_loss_usd,
            edge_prob=decision.edge_prob,
            reasoning=prediction.result.reasoning,
        )

    def to_history(self) -> dict:
        """Shape served by the history API."""
        return {
            "id": self.id,
            "symbol": self.symbol,
            "timestamp": self.timestamp.isoformat(),
            "current_price": self.current_price,
            "market": {
                "market_slug": self.market_slug,
                "question": self.question,
                "outcomes": self.outcomes,
                "outcomePrices": self.outcome_prices,
                "clobTokenIds": self.clob_token_ids,
            },
            "prediction": {
                "market_slug": self.market_slug,
                "direction": self.direction.value,
                "size_usd": self.size_usd,
                "max_loss_usd": self.max_loss_usd,
                "edge_prob": self.edge_prob,
            },
            "reasoning": self.reasoning,
        }


class OrderSide(str, Enum):
    BUY = "BUY"
    SELL = "SELL"


class PlaceBetRequest(BaseModel):
    """Order-placement request body."""
    token_id: str = Field(alias="tokenId", min_length=1)
    price: float = Field(gt=0.0, lt=1.0)
    size: float = Field(gt=0.0)
    side: OrderSide = OrderSide.BUY

    model_config = {"populate_by_name": True}
