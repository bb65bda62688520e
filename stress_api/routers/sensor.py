"""
Sensor Router

Endpoint the ESP32 posts readings to, plus the read side the stress dashboard
polls for its charts.
"""
import logging
from typing import Optional

from fastapi import APIRouter, Query, Request
from fastapi.responses import JSONResponse, Response

from stress_core.business_logic import summarize_readings
from stress_core.models import InvalidReadingError
from stress_core.store import StoreError

logger = logging.getLogger("stress_api.sensor")

router = APIRouter()

ALL_METHODS = ["GET", "HEAD", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"]


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse({"error": message}, status_code=status_code)


@router.api_route("/receive-sensor-data", methods=ALL_METHODS)
async def receive_sensor_data(request: Request):
    """
    Stores one reading and its stress prediction.

    Request Body:
        - heart_rate: BPM, number or numeric string (required)
        - temperature: Celsius, number or numeric string (required)
        - gsr_value: microsiemens (optional)
        - timestamp: ISO-8601 (optional, defaults to now)
    """
    # Preflight never reaches the store
    if request.method == "OPTIONS":
        return Response(status_code=200)

    if request.method != "POST":
        return _error(405, "Method not allowed")

    try:
        try:
            payload = await request.json()
        except ValueError:
            return _error(400, "Request body must be valid JSON")

        service = request.app.state.ingestion_service
        try:
            result = await service.ingest(payload)
        except InvalidReadingError as e:
            return _error(400, str(e))
        except StoreError as e:
            logger.error("sensor data insert failed error=%s", e.message)
            return _error(400, e.message)

        return JSONResponse(result.to_response())

    except Exception as e:
        logger.exception("Error ingesting sensor data")
        return _error(500, str(e))


@router.get("/sensor-data")
async def get_sensor_data(
    request: Request,
    limit: Optional[int] = Query(default=None, ge=1, le=200)
):
    """
    Latest readings, newest first, each with its stress_predictions.

    Args:
        limit: Maximum number of readings (defaults to RECENT_READINGS_LIMIT)
    """
    store = request.app.state.store
    limit = limit or request.app.state.settings.recent_readings_limit
    try:
        readings = await store.recent_readings(limit)
    except StoreError as e:
        logger.error("sensor data query failed error=%s", e.message)
        return _error(503, e.message)

    return [reading.model_dump(mode="json") for reading in readings]


@router.get("/sensor-data/summary")
async def get_sensor_data_summary(
    request: Request,
    limit: Optional[int] = Query(default=None, ge=1, le=200)
):
    """Stress level counts and vital averages over the latest readings."""
    store = request.app.state.store
    limit = limit or request.app.state.settings.recent_readings_limit
    try:
        readings = await store.recent_readings(limit)
    except StoreError as e:
        logger.error("sensor data summary query failed error=%s", e.message)
        return _error(503, e.message)

    return summarize_readings(readings)
