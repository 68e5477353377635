"""Configuration management for polymarket-updown-agent."""
import os
from typing import Optional

from pydantic import BaseModel


def _first_env(*names: str) -> str:
    for name in names:
        value = os.getenv(name)
        if value:
            return value
    return ""


def _split_ids(raw: str) -> list[str]:
    return [s.strip() for s in raw.split(",") if s.strip()]


class Config(BaseModel):
    """Application configuration loaded from environment variables."""
    TAAPI_URL: str = "https://api.taapi.io/"
    TAAPI_API_KEY: str = ""
    OPENROUTER_BASE_URL: str = "https://openrouter.ai/api/v1/"
    OPENROUTER_API_KEY: str = ""
    LLM_MODEL: str = "openai/gpt-4o-mini"
    POLY_PROXY: str = ""
    POLYMARKET_PRIVATE_KEY: str = ""
    POLYMARKET_CHAIN_ID: int = 137
    DB_PATH: str = "data/predictions.db"
    API_PORT: int = 3000
    INDICATOR_DELAY_SECONDS: float = 1.0
    SERIES_RESULTS: int = 10
    INTRADAY_TIMEFRAME: str = "5m"
    LONG_TERM_TIMEFRAME: str = "4h"
    INTRADAY_INDICATORS: str = ""
    LONG_TERM_INDICATORS: str = ""
    MAX_TOOL_ROUNDS: int = 3
    AUTO_PREDICT_SYMBOL: str = ""
    AUTO_PREDICT_INTERVAL_SECONDS: int = 60
    AUTO_PLACE_BETS: bool = False
    LOG_LEVEL: str = "INFO"

    @classmethod
    def from_env(cls) -> "Config":
        """Load configuration from environment variables."""
        return cls(
            TAAPI_URL=os.getenv("TAAPI_URL", "https://api.taapi.io/"),
            TAAPI_API_KEY=os.getenv("TAAPI_API_KEY", ""),
            OPENROUTER_BASE_URL=os.getenv("OPENROUTER_BASE_URL", "https://openrouter.ai/api/v1/"),
            OPENROUTER_API_KEY=os.getenv("OPENROUTER_API_KEY", ""),
            LLM_MODEL=os.getenv("LLM_MODEL", "openai/gpt-4o-mini"),
            POLY_PROXY=_first_env("POLY_PROXY", "POLYMARKET_PROXY", "HTTPS_PROXY", "HTTP_PROXY"),
            POLYMARKET_PRIVATE_KEY=_first_env("POLYMARKET_PRIVATE_KEY", "PRIVATE_KEY"),
            POLYMARKET_CHAIN_ID=int(os.getenv("POLYMARKET_CHAIN_ID", "137")),
            DB_PATH=os.getenv("DB_PATH", "data/predictions.db"),
            API_PORT=int(os.getenv("API_PORT", os.getenv("PORT", "3000"))),
            INDICATOR_DELAY_SECONDS=float(os.getenv("INDICATOR_DELAY_SECONDS", "1.0")),
            SERIES_RESULTS=int(os.getenv("SERIES_RESULTS", "10")),
            INTRADAY_TIMEFRAME=os.getenv("INTRADAY_TIMEFRAME", "5m"),
            LONG_TERM_TIMEFRAME=os.getenv("LONG_TERM_TIMEFRAME", "4h"),
            INTRADAY_INDICATORS=os.getenv("INTRADAY_INDICATORS", ""),
            LONG_TERM_INDICATORS=os.getenv("LONG_TERM_INDICATORS", ""),
            MAX_TOOL_ROUNDS=int(os.getenv("MAX_TOOL_ROUNDS", "3")),
            AUTO_PREDICT_SYMBOL=os.getenv("AUTO_PREDICT_SYMBOL", ""),
            AUTO_PREDICT_INTERVAL_SECONDS=int(os.getenv("AUTO_PREDICT_INTERVAL_SECONDS", "60")),
            AUTO_PLACE_BETS=os.getenv("AUTO_PLACE_BETS", "false").lower() in ("1", "true", "yes"),
            LOG_LEVEL=os.getenv("LOG_LEVEL", "INFO"),
        )

    @property
    def intraday_indicator_ids(self) -> Optional[list[str]]:
        return _split_ids(self.INTRADAY_INDICATORS) or None

    @property
    def long_term_indicator_ids(self) -> Optional[list[str]]:
        return _split_ids(self.LONG_TERM_INDICATORS) or None

    @property
    def auto_predict_enabled(self) -> bool:
        return bool(self.AUTO_PREDICT_SYMBOL.strip())

    @property
    def can_place_bets(self) -> bool:
        return bool(self.POLYMARKET_PRIVATE_KEY)
