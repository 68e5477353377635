"""JSON Schemas for structured LLM output and the indicator tool definition."""
from council.prompts import TAAPI_TOOL_DESCRIPTION

FETCH_INDICATOR_TOOL = "fetch_taapi_indicator"


def build_updown_output_schema() -> dict:
    return {
        "type": "object",
        "properties": {
            "reasoning": {
                "type": "string",
                "description": "Step-by-step analysis of the TAAPI indicators and Polymarket pricing",
            },
            "decision": {
                "type": "object",
                "description": "Final bet decision for this Polymarket up/down market",
                "properties": {
                    "market_slug": {"type": "string"},
                    "direction": {"type": "string", "enum": ["UP", "DOWN", "NO_BET"]},
                    "size_usd": {"type": "number", "minimum": 0},
                    "max_loss_usd": {"type": "number", "minimum": 0},
                    "edge_prob": {"type": "number", "minimum": 0, "maximum": 1},
                },
                "required": ["market_slug", "direction", "size_usd", "max_loss_usd", "edge_prob"],
                "additionalProperties": False,
            },
        },
        "required": ["reasoning", "decision"],
        "additionalProperties": False,
    }


def build_trading_output_schema(assets: list[str]) -> dict:
    return {
        "type": "object",
        "properties": {
            "reasoning": {"type": "string"},
            "trade_decisions": {
                "type": "array",
                "minItems": 1,
                "items": {
                    "type": "object",
                    "properties": {
                        "asset": {"type": "string", "enum": list(assets)},
                        "action": {"type": "string", "enum": ["buy", "sell", "hold"]},
                        "allocation_usd": {"type": "number", "minimum": 0},
                        "tp_price": {"type": ["number", "null"]},
                        "sl_price": {"type": ["number", "null"]},
                        "exit_plan": {"type": "string"},
                        "rationale": {"type": "string"},
                    },
                    "required": [
                        "asset", "action", "allocation_usd", "tp_price",
                        "sl_price", "exit_plan", "rationale",
                    ],
                    "additionalProperties": False,
                },
            },
        },
        "required": ["reasoning", "trade_decisions"],
        "additionalProperties": False,
    }


def json_schema_format(name: str, schema: dict) -> dict:
    """Wrap a schema as an OpenAI-style strict `response_format`."""
    return {
        "type": "json_schema",
        "json_schema": {"name": name, "strict": True, "schema": schema},
    }


def build_tools() -> list[dict]:
    return [
        {
            "type": "function",
            "function": {
                "name": FETCH_INDICATOR_TOOL,
                "description": TAAPI_TOOL_DESCRIPTION,
                "parameters": {
                    "type": "object",
                    "properties": {
                        "indicator": {"type": "string", "description": "e.g. ema, rsi, macd, bbands, atr"},
                        "symbol": {"type": "string", "description": "Trading pair, e.g. BTC/USDT"},
                        "interval": {"type": "string", "description": "Candle interval, e.g. 5m, 4h"},
                        "period": {"type": "integer"},
                        "backtrack": {"type": "integer"},
                        "other_params": {
                            "type": "object",
                            "additionalProperties": {"type": ["string", "number", "boolean"]},
                        },
                    },
                    "required": ["indicator", "symbol", "interval"],
                    "additionalProperties": False,
                },
            },
        }
    ]
