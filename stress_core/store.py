"""
Storage port for readings and predictions.

The ingestion service only talks to a SensorStore, so it runs the same against
Postgres (stress_api.database) and the in-memory store used for local runs and
tests.
"""
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List, Protocol

from stress_core.models import (
    NewSensorReading,
    NewStressPrediction,
    ReadingWithPredictions,
    SensorReading,
    StressPrediction,
)

REQUIRED_TABLES = ("sensor_data", "stress_predictions")


class StoreError(Exception):
    """A store rejected an operation. The message is safe to return to clients."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class SensorStore(Protocol):
    async def connect(self) -> None: ...

    async def close(self) -> None: ...

    async def insert_reading(self, reading: NewSensorReading) -> SensorReading: ...

    async def insert_prediction(self, prediction: NewStressPrediction) -> StressPrediction: ...

    async def recent_readings(self, limit: int) -> List[ReadingWithPredictions]: ...

    async def check_health(self) -> Dict[str, Any]: ...


class InMemorySensorStore:
    """Dict-backed store. Not shared between processes."""

    def __init__(self):
        self.readings: Dict[str, SensorReading] = {}
        self.predictions: Dict[str, StressPrediction] = {}

    async def connect(self) -> None:
        pass

    async def close(self) -> None:
        pass

    async def insert_reading(self, reading: NewSensorReading) -> SensorReading:
        row = SensorReading(
            id=str(uuid.uuid4()),
            created_at=datetime.now(timezone.utc),
            **reading.model_dump(),
        )
        self.readings[row.id] = row
        return row

    async def insert_prediction(self, prediction: NewStressPrediction) -> StressPrediction:
        if prediction.sensor_data_id not in self.readings:
            raise StoreError(
                f"sensor_data_id {prediction.sensor_data_id} does not reference a reading"
            )
        row = StressPrediction(id=str(uuid.uuid4()), **prediction.model_dump())
        self.predictions[row.id] = row
        return row

    async def recent_readings(self, limit: int) -> List[ReadingWithPredictions]:
        newest = sorted(self.readings.values(), key=lambda r: r.timestamp, reverse=True)[:limit]
        result = []
        for reading in newest:
            predictions = sorted(
                (p for p in self.predictions.values() if p.sensor_data_id == reading.id),
                key=lambda p: p.prediction_timestamp,
                reverse=True,
            )
            result.append(
                ReadingWithPredictions(**reading.model_dump(), stress_predictions=predictions)
            )
        return result

    async def check_health(self) -> Dict[str, Any]:
        return {
            "connected": True,
            "tables_exist": True,
            "missing_tables": [],
            "errors": [],
        }
