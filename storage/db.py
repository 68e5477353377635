"""Append-only prediction log in SQLite via aiosqlite."""
import json
import logging
import os
import uuid
from datetime import datetime
from typing import Optional

import aiosqlite

from shared.schemas import PredictionRecord
from storage.models import CREATE_PREDICTIONS_INDEX, CREATE_PREDICTIONS_TABLE

logger = logging.getLogger(__name__)

HISTORY_LIMIT = 200


class Database:
    """Async SQLite store for prediction records. Rows are never updated or deleted."""

    def __init__(self, db_path: str = "data/predictions.db"):
        self.db_path = db_path
        self._db: Optional[aiosqlite.Connection] = None

    async def init(self):
        """Open the database and create tables."""
        directory = os.path.dirname(self.db_path)
        if directory:
            os.makedirs(directory, exist_ok=True)
        self._db = await aiosqlite.connect(self.db_path)
        await self._db.execute(CREATE_PREDICTIONS_TABLE)
        await self._db.execute(CREATE_PREDICTIONS_INDEX)
        await self._db.commit()
        logger.info("Database initialized", extra={"path": self.db_path})

    async def close(self):
        if self._db:
            await self._db.close()
            self._db = None

    def _conn(self) -> aiosqlite.Connection:
        if self._db is None:
            raise RuntimeError("Database not initialized")
        return self._db

    async def create_prediction(self, record: PredictionRecord) -> PredictionRecord:
        """Insert a record and return it with its assigned id."""
        stored = record.model_copy(update={"id": record.id or uuid.uuid4().hex})
        db = self._conn()
        await db.execute(
            """INSERT INTO predictions
               (id, symbol, timestamp, current_price, market_slug, question,
                outcomes, outcome_prices, clob_token_ids, direction, size_usd,
                max_loss_usd, edge_prob, reasoning)
               VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)""",
            (
                stored.id, stored.symbol, stored.timestamp.isoformat(),
                stored.current_price, stored.market_slug, stored.question,
                json.dumps(stored.outcomes), json.dumps(stored.outcome_prices),
                json.dumps(stored.clob_token_ids), stored.direction.value,
                stored.size_usd, stored.max_loss_usd, stored.edge_prob,
                stored.reasoning,
            ),
        )
        await db.commit()
        logger.info(
            "Prediction stored",
            extra={"id": stored.id, "market_slug": stored.market_slug, "direction": stored.direction.value},
        )
        return stored

    async def get_predictions(
        self,
        market_slug: Optional[str] = None,
        limit: int = HISTORY_LIMIT,
    ) -> list[PredictionRecord]:
        """Most recent predictions first, optionally for a single market."""
        db = self._conn()
        if market_slug:
            cursor = await db.execute(
                "SELECT * FROM predictions WHERE market_slug = ? ORDER BY timestamp DESC LIMIT ?",
                (market_slug, limit),
            )
        else:
            cursor = await db.execute(
                "SELECT * FROM predictions ORDER BY timestamp DESC LIMIT ?", (limit,)
            )
        rows = await cursor.fetchall()
        columns = [d[0] for d in cursor.description]
        return [self._to_record(dict(zip(columns, row))) for row in rows]

    @staticmethod
    def _to_record(row: dict) -> PredictionRecord:
        return PredictionRecord(
            id=row["id"],
            symbol=row["symbol"],
            timestamp=datetime.fromisoformat(row["timestamp"]),
            current_price=row["current_price"],
            market_slug=row["market_slug"],
            question=row["question"],
            outcomes=json.loads(row["outcomes"]),
            outcome_prices=json.loads(row["outcome_prices"]),
            clob_token_ids=json.loads(row["clob_token_ids"] or "[]"),
            direction=row["direction"],
            size_usd=row["size_usd"],
            max_loss_usd=row["max_loss_usd"],
            edge_prob=row["edge_prob"],
            reasoning=row["reasoning"],
        )
