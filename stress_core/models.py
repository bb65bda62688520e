import math
from datetime import datetime, timezone
from enum import Enum
from typing import Any, List, Optional

from pydantic import BaseModel, TypeAdapter, ValidationError, field_validator

_DATETIME = TypeAdapter(datetime)


class InvalidReadingError(ValueError):
    """Raised when a sensor payload cannot be turned into a reading."""


class StressLevel(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


def _to_number(field: str, value: Any) -> float:
    # bool is an int subclass, a device sending true/false is a bug upstream
    if isinstance(value, bool) or not isinstance(value, (int, float, str)):
        raise ValueError(f"{field} must be a number")
    try:
        number = float(value.strip() if isinstance(value, str) else value)
    except OverflowError:
        raise ValueError(f"{field} must be a finite number") from None
    except ValueError:
        raise ValueError(f"{field} must be a number") from None
    if not math.isfinite(number):
        raise ValueError(f"{field} must be a finite number")
    return number


def _to_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class SensorDataIn(BaseModel):
    """
    Request body sent by the ESP32 (or the dashboard) for one sample.

    Numeric fields may arrive as numbers or as strings; they are coerced here so
    the rest of the pipeline only ever sees ints and floats.
    """
    heart_rate: int
    temperature: float
    gsr_value: Optional[float] = None
    timestamp: Optional[datetime] = None

    @field_validator("heart_rate", mode="before")
    @classmethod
    def _parse_heart_rate(cls, value):
        if isinstance(value, int) and not isinstance(value, bool):
            return value
        try:
            return int(_to_number("heart_rate", value))
        except ValueError:
            raise ValueError("heart_rate must be an integer") from None

    @field_validator("temperature", mode="before")
    @classmethod
    def _parse_temperature(cls, value):
        return _to_number("temperature", value)

    @field_validator("gsr_value", mode="before")
    @classmethod
    def _parse_gsr(cls, value):
        if value is None or (isinstance(value, str) and not value.strip()):
            return None
        return _to_number("gsr_value", value)

    @field_validator("timestamp", mode="before")
    @classmethod
    def _parse_timestamp(cls, value):
        # Unparsable timestamps fall back to ingestion time
        if isinstance(value, datetime):
            return _to_utc(value)
        if not isinstance(value, str) or not value.strip():
            return None
        try:
            return _to_utc(_DATETIME.validate_python(value.strip()))
        except ValidationError:
            return None

    @classmethod
    def parse_payload(cls, payload: Any) -> "SensorDataIn":
        """Validates a decoded JSON body, raising InvalidReadingError on failure."""
        try:
            return cls.model_validate(payload)
        except ValidationError as e:
            raise InvalidReadingError(_describe_errors(e)) from None


def _describe_errors(error: ValidationError) -> str:
    parts = []
    for item in error.errors():
        location = ".".join(str(part) for part in item["loc"]) or "body"
        parts.append(f"{location}: {item['msg']}")
    return "; ".join(parts)


class NewSensorReading(BaseModel):
    heart_rate: int
    temperature: float
    gsr_value: Optional[float] = None
    timestamp: datetime


class SensorReading(NewSensorReading):
    id: str
    created_at: Optional[datetime] = None


class NewStressPrediction(BaseModel):
    sensor_data_id: str
    stress_level: StressLevel
    confidence: float
    prediction_timestamp: datetime


class StressPrediction(NewStressPrediction):
    id: str


class PredictionResult(BaseModel):
    """Computed label for a reading, independent of whether it was stored."""
    stress_level: StressLevel
    confidence: float


class ReadingWithPredictions(SensorReading):
    # Newest first
    stress_predictions: List[StressPrediction] = []
