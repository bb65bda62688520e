import pytest

from stress_api.database import PostgresSensorStore
from stress_core.models import NewSensorReading
from stress_core.store import StoreError


@pytest.mark.asyncio
async def test_insert_before_connect_is_store_error():
    store = PostgresSensorStore("postgresql://db/postgres", "secret")

    with pytest.raises(StoreError) as exc:
        await store.insert_reading(
            NewSensorReading(heart_rate=70, temperature=36.5, timestamp="2025-03-01T10:00:00Z")
        )

    assert exc.value.message == "Database not ready"


@pytest.mark.asyncio
async def test_health_before_connect_reports_disconnected():
    store = PostgresSensorStore("postgresql://db/postgres", "secret")

    health = await store.check_health()

    assert health["connected"] is False
    assert health["errors"] == ["Database not ready"]
