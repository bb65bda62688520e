import pytest
from fastapi.testclient import TestClient

from stress_api.config import Settings
from stress_api.main import create_app
from stress_core.store import InMemorySensorStore, StoreError


class FailingReadingStore(InMemorySensorStore):
    """Store whose reading insert is rejected, e.g. a schema mismatch."""

    async def insert_reading(self, reading):
        raise StoreError('column "heart_rate" is of type integer but expression is of type text')


class FailingPredictionStore(InMemorySensorStore):
    """Store that accepts readings but rejects every prediction insert."""

    def __init__(self):
        super().__init__()
        self.prediction_attempts = 0

    async def insert_prediction(self, prediction):
        self.prediction_attempts += 1
        raise StoreError('relation "stress_predictions" does not exist')


@pytest.fixture
def settings():
    return Settings(store_backend="memory")


@pytest.fixture
def store():
    return InMemorySensorStore()


@pytest.fixture
def failing_reading_store():
    return FailingReadingStore()


@pytest.fixture
def failing_prediction_store():
    return FailingPredictionStore()


@pytest.fixture
def make_client(settings):
    """Builds a TestClient around a fresh app using the given store."""
    def _make(store, notifier=None):
        app = create_app(settings=settings, store=store, notifier=notifier)
        return TestClient(app)
    return _make


@pytest.fixture
def client(make_client, store):
    with make_client(store) as test_client:
        yield test_client
