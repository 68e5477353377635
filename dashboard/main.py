"""FastAPI surface: run predictions, browse history, place bets."""
import logging
import time
from typing import Callable, Optional

import httpx
from fastapi import Body, FastAPI, Query
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from council.orchestrator import WINDOW_SECONDS, PredictionOrchestrator, compute_slug, compute_window_start
from execution.order_manager import OrderManager
from shared.errors import LLMStructuralError, LLMTransportError, MarketNotFoundError
from shared.schemas import PlaceBetRequest, PredictionRecord
from storage.db import HISTORY_LIMIT, Database

logger = logging.getLogger(__name__)

app = FastAPI(title="Polymarket Up/Down Prediction API")

# Shared instances (set by agent.py)
_db: Database | None = None
_orchestrator: PredictionOrchestrator | None = None
_order_manager: OrderManager | None = None
_order_manager_factory: Optional[Callable[[], OrderManager]] = None


def set_database(db: Database):
    global _db
    _db = db


def set_orchestrator(orchestrator: PredictionOrchestrator):
    global _orchestrator
    _orchestrator = orchestrator


def set_order_manager_factory(factory: Optional[Callable[[], OrderManager]]):
    """The CLOB client is built on first use so the API starts without credentials."""
    global _order_manager, _order_manager_factory
    _order_manager = None
    _order_manager_factory = factory


def _get_db() -> Database:
    if _db is None:
        raise RuntimeError("Database not initialized")
    return _db


def _get_orchestrator() -> PredictionOrchestrator:
    if _orchestrator is None:
        raise RuntimeError("Orchestrator not initialized")
    return _orchestrator


def _get_order_manager() -> OrderManager:
    global _order_manager
    if _order_manager is None:
        if _order_manager_factory is None:
            raise RuntimeError("Order placement not configured")
        _order_manager = _order_manager_factory()
    return _order_manager


def _error(status: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status, content={"error": message})


@app.get("/api/predict")
async def api_predict(symbol: Optional[str] = Query(default=None)):
    symbol = (symbol or "").strip()
    if not symbol:
        return _error(400, "Missing required query parameter: symbol (e.g. ?symbol=BTC)")

    try:
        prediction = await _get_orchestrator().predict(symbol)
        record = await _get_db().create_prediction(
            PredictionRecord.from_result(symbol, prediction)
        )
    except MarketNotFoundError as e:
        logger.warning(f"[predict] {symbol}: {e}", extra={"slug": e.slug})
        return _error(404, str(e))
    except (LLMTransportError, LLMStructuralError) as e:
        logger.error(f"[predict] {symbol} LLM failure: {e}", extra={"error_type": type(e).__name__})
        return _error(502, str(e))
    except Exception as e:
        logger.exception(f"[predict] {symbol} failed: {e}")
        return _error(500, str(e))

    return record.to_history()


@app.get("/api/predictions")
async def api_predictions(
    market_slug: Optional[str] = Query(default=None),
    limit: int = Query(default=HISTORY_LIMIT, ge=1, le=HISTORY_LIMIT),
):
    try:
        slug = (market_slug or "").strip() or None
        records = await _get_db().get_predictions(market_slug=slug, limit=limit)
    except Exception as e:
        logger.exception(f"[predictions] failed: {e}")
        return _error(500, str(e))
    return [r.to_history() for r in records]


@app.post("/api/place-bet")
async def api_place_bet(body: Optional[dict] = Body(default=None)):
    try:
        request = PlaceBetRequest.model_validate(body or {})
    except ValidationError as e:
        fields = ", ".join(str(err["loc"][-1]) for err in e.errors())
        return _error(400, f"Missing or invalid fields: {fields}")

    try:
        order = await _get_order_manager().place(
            request.token_id, request.price, request.size, request.side
        )
    except Exception as e:
        logger.error(f"[place-bet] failed: {e}", extra={"token_id": request.token_id})
        return _error(500, str(e))

    return {"success": True, "order": order}


@app.get("/api/trade-decisions")
async def api_trade_decisions(symbols: Optional[str] = Query(default=None)):
    assets = [s for s in (symbols or "").split(",") if s.strip()]
    if not assets:
        return _error(400, "Missing required query parameter: symbols (e.g. ?symbols=BTC,ETH)")

    try:
        output = await _get_orchestrator().decide_trades(assets)
    except (LLMTransportError, LLMStructuralError) as e:
        logger.error(f"[trade-decisions] LLM failure: {e}", extra={"error_type": type(e).__name__})
        return _error(502, str(e))
    except Exception as e:
        logger.exception(f"[trade-decisions] failed: {e}")
        return _error(500, str(e))

    return output.model_dump(mode="json")


@app.get("/api/quote")
async def api_quote(token_id: Optional[str] = Query(default=None, alias="tokenId")):
    token_id = (token_id or "").strip()
    if not token_id:
        return _error(400, "Missing required query parameter: tokenId")

    try:
        return await _get_orchestrator().quote(token_id)
    except httpx.HTTPError as e:
        logger.warning(f"[quote] CLOB read failed: {type(e).__name__}", extra={"token_id": token_id})
        return _error(502, f"CLOB read failed for token {token_id}")
    except Exception as e:
        logger.exception(f"[quote] failed: {e}")
        return _error(500, str(e))


@app.get("/api/status")
async def api_status(symbol: str = Query(default="BTC")):
    now = time.time()
    start = compute_window_start(now)
    return {
        "status": "running",
        "symbol": symbol.upper(),
        "market_slug": compute_slug(symbol, now),
        "window_start": start,
        "window_end": start + WINDOW_SECONDS,
        "window_remaining_sec": max(0, start + WINDOW_SECONDS - int(now)),
    }
