import json
import logging
from typing import Any, Dict, List

import asyncpg

from stress_core.models import (
    NewSensorReading,
    NewStressPrediction,
    ReadingWithPredictions,
    SensorReading,
    StressPrediction,
)
from stress_core.store import REQUIRED_TABLES, StoreError

logger = logging.getLogger("stress_api.database")

DRIVER_ERRORS = (asyncpg.PostgresError, asyncpg.InterfaceError, OSError)


class PostgresSensorStore:
    """SensorStore backed by an asyncpg pool. The service key is the role password."""

    def __init__(self, dsn: str, password: str):
        self.dsn = dsn
        self.password = password
        self.pool = None

    async def connect(self):
        if not self.pool:
            try:
                self.pool = await asyncpg.create_pool(dsn=self.dsn, password=self.password)
                logger.info("Connected to database")
            except DRIVER_ERRORS as e:
                logger.error("Database connection failed: %s", e)

    async def close(self):
        if self.pool:
            await self.pool.close()
            self.pool = None
            logger.info("Disconnected from database")

    async def insert_reading(self, reading: NewSensorReading) -> SensorReading:
        query = """
            INSERT INTO sensor_data (heart_rate, temperature, gsr_value, timestamp)
            VALUES ($1, $2, $3, $4)
            RETURNING id, heart_rate, temperature, gsr_value, timestamp, created_at
        """
        row = await self._fetch_one(
            query, reading.heart_rate, reading.temperature, reading.gsr_value, reading.timestamp
        )
        return _reading_from_row(row)

    async def insert_prediction(self, prediction: NewStressPrediction) -> StressPrediction:
        query = """
            INSERT INTO stress_predictions (sensor_data_id, stress_level, confidence, prediction_timestamp)
            VALUES ($1::uuid, $2, $3, $4)
            RETURNING id, sensor_data_id, stress_level, confidence, prediction_timestamp
        """
        row = await self._fetch_one(
            query,
            prediction.sensor_data_id,
            prediction.stress_level.value,
            prediction.confidence,
            prediction.prediction_timestamp,
        )
        return _prediction_from_row(row)

    async def recent_readings(self, limit: int) -> List[ReadingWithPredictions]:
        query = """
            SELECT s.id, s.heart_rate, s.temperature, s.gsr_value, s.timestamp, s.created_at,
                   COALESCE(
                       json_agg(
                           json_build_object(
                               'id', p.id,
                               'sensor_data_id', p.sensor_data_id,
                               'stress_level', p.stress_level,
                               'confidence', p.confidence,
                               'prediction_timestamp', p.prediction_timestamp
                           ) ORDER BY p.prediction_timestamp DESC
                       ) FILTER (WHERE p.id IS NOT NULL),
                       '[]'
                   ) AS stress_predictions
            FROM sensor_data s
            LEFT JOIN stress_predictions p ON p.sensor_data_id = s.id
            GROUP BY s.id
            ORDER BY s.timestamp DESC
            LIMIT $1
        """
        rows = await self._fetch_all(query, limit)

        result = []
        for row in rows:
            item = dict(row)
            predictions = item.pop("stress_predictions")
            if isinstance(predictions, str):
                predictions = json.loads(predictions)
            reading = _reading_from_row(item)
            result.append(
                ReadingWithPredictions(
                    **reading.model_dump(),
                    stress_predictions=[_prediction_from_row(p) for p in predictions],
                )
            )
        return result

    async def check_health(self) -> Dict[str, Any]:
        result = {"connected": False, "tables_exist": False, "missing_tables": [], "errors": []}
        if not self.pool:
            result["errors"].append("Database not ready")
            return result

        try:
            async with self.pool.acquire() as connection:
                await connection.fetchval("SELECT 1")
                result["connected"] = True
                for table in REQUIRED_TABLES:
                    exists = await connection.fetchval("SELECT to_regclass($1)", f"public.{table}")
                    if exists is None:
                        result["missing_tables"].append(table)
        except DRIVER_ERRORS as e:
            result["errors"].append(f"Connection failed: {e}")
            return result

        result["tables_exist"] = not result["missing_tables"]
        return result

    async def _fetch_one(self, query, *args):
        if not self.pool:
            raise StoreError("Database not ready")
        try:
            async with self.pool.acquire() as connection:
                row = await connection.fetchrow(query, *args)
        except DRIVER_ERRORS as e:
            raise StoreError(str(e)) from e
        if row is None:
            raise StoreError("Insert returned no row")
        return row

    async def _fetch_all(self, query, *args):
        if not self.pool:
            raise StoreError("Database not ready")
        try:
            async with self.pool.acquire() as connection:
                return await connection.fetch(query, *args)
        except DRIVER_ERRORS as e:
            raise StoreError(str(e)) from e


def _reading_from_row(row) -> SensorReading:
    return SensorReading(
        id=str(row["id"]),
        heart_rate=row["heart_rate"],
        temperature=row["temperature"],
        gsr_value=row["gsr_value"],
        timestamp=row["timestamp"],
        created_at=row["created_at"],
    )


def _prediction_from_row(row) -> StressPrediction:
    # json_agg rows carry ISO strings, pydantic parses those
    return StressPrediction(
        id=str(row["id"]),
        sensor_data_id=str(row["sensor_data_id"]),
        stress_level=row["stress_level"],
        confidence=row["confidence"],
        prediction_timestamp=row["prediction_timestamp"],
    )
