"""Decision engine: schema-constrained LLM calls and total coercion of the reply."""
import json
import logging
import math
import time
from enum import Enum
from typing import Any, Optional

from council.context_builder import build_retry_context
from council.output_schemas import (
    FETCH_INDICATOR_TOOL,
    build_tools,
    build_trading_output_schema,
    build_updown_output_schema,
    json_schema_format,
)
from council.prompts import build_polymarket_updown_prompt, build_trading_system_prompt
from feeds.taapi_client import TaapiClient
from shared.errors import LLMStructuralError
from shared.llm_client import OpenRouterClient
from shared.schemas import (
    Decision,
    DecisionOutput,
    Direction,
    MarketSnapshot,
    TradeAction,
    TradeDecision,
    TradeDecisionOutput,
)

logger = logging.getLogger(__name__)

DEFAULT_EDGE_PROB = 0.5
FINAL_ANSWER_NUDGE = "Tool budget exhausted. Return the final JSON object now without calling tools."


class ConversationState(str, Enum):
    AWAITING_MODEL = "awaiting_model"
    EXECUTING_TOOL = "executing_tool"
    AWAITING_FINAL = "awaiting_final"


class _UnparseableContent(ValueError):
    pass


def _to_float(value: Any, default: float) -> float:
    """Best-effort numeric coercion; anything unusable becomes `default`."""
    if isinstance(value, bool) or value is None:
        return default
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        try:
            number = float(value.strip())
        except ValueError:
            return default
    else:
        return default
    return number if math.isfinite(number) else default


def _optional_float(value: Any) -> Optional[float]:
    number = _to_float(value, math.nan)
    return None if math.isnan(number) else number


def _text(value: Any) -> str:
    if value is None:
        return ""
    return value if isinstance(value, str) else str(value)


def coerce_decision(raw: dict, default_slug: str) -> Decision:
    """Map an untrusted decision object onto a valid Decision. Never raises."""
    slug = _text(raw.get("market_slug")).strip() or default_slug
    if slug != default_slug:
        logger.warning(
            "LLM decision slug mismatch, using requested market",
            extra={"returned_slug": slug, "market_slug": default_slug},
        )
        slug = default_slug

    direction_raw = _text(raw.get("direction")).strip().upper()
    try:
        direction = Direction(direction_raw)
    except ValueError:
        direction = Direction.NO_BET

    return Decision(
        market_slug=slug,
        direction=direction,
        size_usd=max(0.0, _to_float(raw.get("size_usd"), 0.0)),
        max_loss_usd=max(0.0, _to_float(raw.get("max_loss_usd"), 0.0)),
        edge_prob=min(1.0, max(0.0, _to_float(raw.get("edge_prob"), DEFAULT_EDGE_PROB))),
    )


def parse_updown_response(payload: dict, default_slug: str) -> DecisionOutput:
    """Decoded JSON reply -> DecisionOutput.

    Field-level sloppiness is coerced to safe defaults; a missing or
    non-object `decision` is a contract violation.
    """
    decision_raw = payload.get("decision")
    if not isinstance(decision_raw, dict):
        raise LLMStructuralError("Missing or invalid 'decision' field in LLM output")
    return DecisionOutput(
        reasoning=_text(payload.get("reasoning")),
        decision=coerce_decision(decision_raw, default_slug),
    )


def coerce_trade_decision(raw: Any, assets: list[str]) -> Optional[TradeDecision]:
    """One multi-asset item, or None when it names no known asset."""
    if not isinstance(raw, dict):
        return None
    by_upper = {a.upper(): a for a in assets}
    asset = by_upper.get(_text(raw.get("asset")).strip().upper())
    if asset is None:
        return None
    try:
        action = TradeAction(_text(raw.get("action")).strip().lower())
    except ValueError:
        action = TradeAction.HOLD
    return TradeDecision(
        asset=asset,
        action=action,
        allocation_usd=max(0.0, _to_float(raw.get("allocation_usd"), 0.0)),
        tp_price=_optional_float(raw.get("tp_price")),
        sl_price=_optional_float(raw.get("sl_price")),
        exit_plan=_text(raw.get("exit_plan")),
        rationale=_text(raw.get("rationale")),
    )


def parse_trading_response(payload: dict, assets: list[str]) -> TradeDecisionOutput:
    items = payload.get("trade_decisions")
    if not isinstance(items, list):
        raise LLMStructuralError("Missing or invalid 'trade_decisions' field in LLM output")
    decisions = [d for d in (coerce_trade_decision(i, assets) for i in items) if d is not None]
    return TradeDecisionOutput(reasoning=_text(payload.get("reasoning")), trade_decisions=decisions)


def first_message(response: dict) -> dict:
    """The assistant message of the first choice; structural error if absent."""
    choices = response.get("choices")
    if not isinstance(choices, list) or not choices or not isinstance(choices[0], dict):
        error = response.get("error")
        detail = f": {error.get('message')}" if isinstance(error, dict) else ""
        raise LLMStructuralError(f"Invalid LLM response: no choices{detail}")
    message = choices[0].get("message")
    if not isinstance(message, dict):
        raise LLMStructuralError("Invalid LLM response: message is missing or malformed")
    return message


def _strip_fences(text: str) -> str:
    text = text.strip()
    if text.startswith("```"):
        text = text.split("\n", 1)[1] if "\n" in text else text[3:]
        if text.rstrip().endswith("```"):
            text = text.rstrip()[:-3]
    return text.strip()


def load_message_payload(message: dict) -> dict:
    """Decode the final assistant message into a JSON object.

    Prefers a provider-parsed object; otherwise parses `content`.
    """
    content = message.get("content")
    if not isinstance(content, str):
        raise LLMStructuralError("Invalid LLM response: content is not a string")

    parsed = message.get("parsed")
    if isinstance(parsed, dict):
        return parsed

    try:
        payload = json.loads(_strip_fences(content) or "{}")
    except json.JSONDecodeError as e:
        raise _UnparseableContent(str(e)) from e
    if not isinstance(payload, dict):
        raise _UnparseableContent("top-level JSON value is not an object")
    return payload



def _valid_tool_calls(raw: Any) -> list[dict]:
    """Tool calls the loop can answer.

    Anything but a list means no tool calls. Entries that are not objects
    are dropped; a non-empty list with no usable entry is a contract violation.
    """
    if not raw or not isinstance(raw, list):
        return []
    calls = [c for c in raw if isinstance(c, dict)]
    if len(calls) < len(raw):
        logger.warning(
            "Dropping malformed tool calls",
            extra={"received": len(raw), "usable": len(calls)},
        )
    if not calls:
        raise LLMStructuralError("Invalid LLM response: tool_calls has no usable entries")
    return calls


class DecisionEngine:
    """Drives the chat-completions call and turns the reply into typed decisions."""

    def __init__(
        self,
        llm: OpenRouterClient,
        taapi: Optional[TaapiClient] = None,
        max_tool_rounds: int = 3,
    ):
        self.llm = llm
        self.taapi = taapi
        self.max_tool_rounds = max(0, max_tool_rounds)

    async def _final_payload(
        self,
        message: dict,
        system_prompt: str,
        context: str,
        response_format: dict,
    ) -> dict:
        """Decode the reply, re-asking once with a strict JSON-only instruction."""
        try:
            return load_message_payload(message)
        except _UnparseableContent as e:
            logger.warning(f"LLM reply was not valid JSON, retrying: {e}")

        retry_messages = [
            {"role": "system", "content": system_prompt},
            {"role": "user", "content": build_retry_context(context)},
        ]
        response = await self.llm.chat({"messages": retry_messages, "response_format": response_format})
        try:
            return load_message_payload(first_message(response))
        except _UnparseableContent as e:
            raise LLMStructuralError(f"LLM reply is not a JSON object after retry: {e}") from e

    async def decide_updown(
        self,
        asset: str,
        market: MarketSnapshot,
        context: str,
    ) -> DecisionOutput:
        """Decide UP / DOWN / NO_BET for a single Polymarket market.

        Raises LLMTransportError when the call fails and LLMStructuralError
        when the reply breaks the output contract.
        """
        system_prompt = build_polymarket_updown_prompt(
            market.market_slug, asset, market.outcomes, market.outcome_prices
        )
        response_format = json_schema_format(
            "polymarket_updown_decision", build_updown_output_schema()
        )
        messages = [
            {"role": "system", "content": system_prompt},
            {"role": "user", "content": context},
        ]

        start = time.monotonic()
        response = await self.llm.chat({"messages": messages, "response_format": response_format})
        payload = await self._final_payload(
            first_message(response), system_prompt, context, response_format
        )
        output = parse_updown_response(payload, market.market_slug)

        logger.info(
            "Up/down decision",
            extra={
                "asset": asset,
                "market_slug": market.market_slug,
                "direction": output.decision.direction.value,
                "size_usd": output.decision.size_usd,
                "edge_prob": output.decision.edge_prob,
                "latency_ms": round((time.monotonic() - start) * 1000),
            },
        )
        return output

    async def decide_trades(self, assets: list[str], context: str) -> TradeDecisionOutput:
        """Multi-asset decisions with optional indicator tool calls.

        The model may call fetch_taapi_indicator for at most
        `max_tool_rounds` round-trips; after that tools are withdrawn and
        a final answer is demanded.
        """
        system_prompt = build_trading_system_prompt(assets)
        response_format = json_schema_format("trade_decisions", build_trading_output_schema(assets))
        messages: list[dict] = [
            {"role": "system", "content": system_prompt},
            {"role": "user", "content": context},
        ]

        state = ConversationState.AWAITING_MODEL
        rounds = 0
        start = time.monotonic()

        while True:
            offer_tools = self.taapi is not None and state == ConversationState.AWAITING_MODEL
            payload: dict[str, Any] = {"messages": messages, "response_format": response_format}
            if offer_tools:
                payload["tools"] = build_tools()
                payload["tool_choice"] = "auto"

            response = await self.llm.chat(payload)
            message = first_message(response)
            tool_calls = _valid_tool_calls(message.get("tool_calls")) if offer_tools else []

            if not (offer_tools and tool_calls):
                break

            state = ConversationState.EXECUTING_TOOL
            messages.append({
                "role": "assistant",
                "content": message.get("content") or "",
                "tool_calls": tool_calls,
            })
            for call in tool_calls:
                messages.append(await self._execute_tool_call(call))
            rounds += 1

            if rounds >= self.max_tool_rounds:
                state = ConversationState.AWAITING_FINAL
                messages.append({"role": "user", "content": FINAL_ANSWER_NUDGE})
            else:
                state = ConversationState.AWAITING_MODEL

        final = await self._final_payload(message, system_prompt, context, response_format)
        output = parse_trading_response(final, assets)
        output.tool_rounds = rounds

        logger.info(
            "Trade decisions",
            extra={
                "assets": assets,
                "decisions": len(output.trade_decisions),
                "tool_rounds": rounds,
                "latency_ms": round((time.monotonic() - start) * 1000),
            },
        )
        return output

    async def _execute_tool_call(self, call: dict) -> dict:
        """Run one tool call against TAAPI and build the `tool` reply message."""
        function = call.get("function")
        if not isinstance(function, dict):
            function = {}
        name = function.get("name")
        if name != FETCH_INDICATOR_TOOL:
            result = {"error": f"Unknown tool: {name}"}
        else:
            result = await self._fetch_indicator_tool(function.get("arguments"))

        logger.info(
            "Tool call executed",
            extra={"tool": name, "tool_call_id": call.get("id"), "ok": "error" not in result},
        )
        return {
            "role": "tool",
            "tool_call_id": call.get("id"),
            "name": name or "",
            "content": json.dumps(result),
        }

    async def _fetch_indicator_tool(self, raw_arguments: Any) -> dict:
        try:
            args = json.loads(raw_arguments or "{}")
        except (json.JSONDecodeError, TypeError) as e:
            return {"error": f"Invalid tool arguments: {e}"}
        if not isinstance(args, dict):
            return {"error": "Tool arguments must be a JSON object"}
        if not all(args.get(k) for k in ("indicator", "symbol", "interval")):
            return {"error": "indicator, symbol and interval are required"}

        params: dict[str, Any] = {}
        other = args.get("other_params")
        if isinstance(other, dict):
            params.update({
                k: v for k, v in other.items()
                if k not in ("indicator", "symbol", "interval", "secret", "exchange")
            })
        for key in ("period", "backtrack"):
            if args.get(key) is not None:
                params[key] = args[key]

        return await self.taapi.fetch_indicator(
            str(args["indicator"]),
            str(args["symbol"]),
            str(args["interval"]),
            **params,
        )
