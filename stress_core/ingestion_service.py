import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Dict, Optional

from stress_core.business_logic import classify_stress
from stress_core.models import (
    NewSensorReading,
    NewStressPrediction,
    PredictionResult,
    SensorDataIn,
    SensorReading,
    StressPrediction,
)
from stress_core.store import SensorStore, StoreError

logger = logging.getLogger("stress_core.ingestion")

Notifier = Callable[[Dict[str, Any]], Awaitable[None]]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class IngestResult:
    """
    Outcome of one ingestion.

    The reading is the required part: an IngestResult only exists if it was
    stored. The prediction is always the computed value; prediction_record is
    the stored row, or None with prediction_error set when that write failed.
    """
    reading: SensorReading
    prediction: PredictionResult
    prediction_record: Optional[StressPrediction] = None
    prediction_error: Optional[str] = None

    @property
    def prediction_persisted(self) -> bool:
        return self.prediction_record is not None

    def to_response(self) -> Dict[str, Any]:
        return {
            "success": True,
            "data": self.reading.model_dump(mode="json"),
            "prediction": self.prediction.model_dump(mode="json"),
        }


class IngestionService:
    def __init__(
        self,
        store: SensorStore,
        notifier: Optional[Notifier] = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.store = store
        self.notifier = notifier
        self.clock = clock

    async def ingest(self, payload: Any) -> IngestResult:
        """
        Full pipeline: Parse -> Save reading -> Classify -> Save prediction -> Notify

        Raises InvalidReadingError before touching the store, and StoreError if the
        reading itself could not be saved. A failed prediction write is logged and
        reported on the result instead.
        """
        data = SensorDataIn.parse_payload(payload)

        # 1. Save the raw reading
        reading = await self.store.insert_reading(
            NewSensorReading(
                heart_rate=data.heart_rate,
                temperature=data.temperature,
                gsr_value=data.gsr_value,
                timestamp=data.timestamp or self.clock(),
            )
        )

        # 2. Classify from the parsed values
        prediction = classify_stress(data.heart_rate, data.temperature)
        result = IngestResult(reading=reading, prediction=prediction)

        # 3. Save the prediction, best effort
        try:
            result.prediction_record = await self.store.insert_prediction(
                NewStressPrediction(
                    sensor_data_id=reading.id,
                    stress_level=prediction.stress_level,
                    confidence=prediction.confidence,
                    prediction_timestamp=self.clock(),
                )
            )
        except StoreError as e:
            result.prediction_error = e.message
            logger.warning(
                "prediction insert failed reading_id=%s stress_level=%s error=%s",
                reading.id,
                prediction.stress_level.value,
                e.message,
            )

        # 4. Notify dashboards
        if self.notifier is not None:
            await self._notify(result)

        return result

    async def _notify(self, result: IngestResult) -> None:
        try:
            await self.notifier(result.to_response())
        except Exception:
            logger.exception("notifier failed reading_id=%s", result.reading.id)
