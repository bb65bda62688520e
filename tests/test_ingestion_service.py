from datetime import datetime, timezone
from unittest.mock import AsyncMock

import pytest

from stress_core.ingestion_service import IngestionService
from stress_core.models import InvalidReadingError, StressLevel
from stress_core.store import StoreError

NOW = datetime(2025, 3, 1, 9, 0, tzinfo=timezone.utc)


def fixed_clock():
    return NOW


@pytest.mark.asyncio
async def test_ingest_stores_reading_and_prediction(store):
    service = IngestionService(store, clock=fixed_clock)

    result = await service.ingest({"heart_rate": 101, "temperature": 37.0, "gsr_value": 5.5})

    assert result.reading.heart_rate == 101
    assert result.reading.gsr_value == 5.5
    assert result.prediction.stress_level == StressLevel.HIGH
    assert result.prediction.confidence == 0.92
    assert result.prediction_persisted
    assert result.prediction_record.sensor_data_id == result.reading.id
    assert result.prediction_record.prediction_timestamp == NOW
    assert list(store.readings) == [result.reading.id]
    assert len(store.predictions) == 1


@pytest.mark.asyncio
async def test_missing_timestamp_defaults_to_now(store):
    service = IngestionService(store, clock=fixed_clock)

    result = await service.ingest({"heart_rate": 70, "temperature": 36.5, "timestamp": "garbage"})

    assert result.reading.timestamp == NOW


@pytest.mark.asyncio
async def test_given_timestamp_is_kept(store):
    service = IngestionService(store, clock=fixed_clock)

    result = await service.ingest(
        {"heart_rate": 70, "temperature": 36.5, "timestamp": "2025-02-28T23:59:00Z"}
    )

    assert result.reading.timestamp == datetime(2025, 2, 28, 23, 59, tzinfo=timezone.utc)


@pytest.mark.asyncio
async def test_gsr_does_not_affect_classification(store):
    service = IngestionService(store)

    result = await service.ingest({"heart_rate": 70, "temperature": 36.5, "gsr_value": 50.0})

    assert result.prediction.stress_level == StressLevel.LOW


@pytest.mark.asyncio
async def test_invalid_payload_touches_nothing():
    store = AsyncMock()
    service = IngestionService(store)

    with pytest.raises(InvalidReadingError):
        await service.ingest({"heart_rate": "not-a-number", "temperature": 36.5})

    store.insert_reading.assert_not_called()
    store.insert_prediction.assert_not_called()


@pytest.mark.asyncio
async def test_reading_failure_propagates_and_skips_prediction(failing_reading_store):
    service = IngestionService(failing_reading_store)

    with pytest.raises(StoreError):
        await service.ingest({"heart_rate": 70, "temperature": 36.5})

    assert failing_reading_store.readings == {}
    assert failing_reading_store.predictions == {}


@pytest.mark.asyncio
async def test_prediction_failure_is_tolerated(failing_prediction_store, caplog):
    service = IngestionService(failing_prediction_store)

    with caplog.at_level("WARNING", logger="stress_core.ingestion"):
        result = await service.ingest({"heart_rate": 100, "temperature": 37.5})

    assert failing_prediction_store.prediction_attempts == 1
    assert not result.prediction_persisted
    assert result.prediction_error == 'relation "stress_predictions" does not exist'
    assert result.prediction.stress_level == StressLevel.MEDIUM
    assert result.to_response()["success"] is True
    assert result.to_response()["prediction"] == {"stress_level": "medium", "confidence": 0.88}
    assert list(failing_prediction_store.readings) == [result.reading.id]
    assert failing_prediction_store.predictions == {}
    assert f"reading_id={result.reading.id}" in caplog.text


@pytest.mark.asyncio
async def test_identical_payloads_create_distinct_readings(store):
    service = IngestionService(store)
    body = {"heart_rate": 72, "temperature": 36.6}

    first = await service.ingest(body)
    second = await service.ingest(body)

    assert first.reading.id != second.reading.id
    assert len(store.readings) == 2
    assert len(store.predictions) == 2


@pytest.mark.asyncio
async def test_notifier_receives_response_payload(store):
    notifier = AsyncMock()
    service = IngestionService(store, notifier=notifier)

    result = await service.ingest({"heart_rate": 85, "temperature": 36.5})

    notifier.assert_awaited_once_with(result.to_response())


@pytest.mark.asyncio
async def test_notifier_failure_does_not_fail_ingestion(store):
    notifier = AsyncMock(side_effect=ConnectionError("socket closed"))
    service = IngestionService(store, notifier=notifier)

    result = await service.ingest({"heart_rate": 85, "temperature": 36.5})

    assert result.reading.id in store.readings
