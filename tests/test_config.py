import pytest

from stress_api.config import ConfigurationError, Settings
from stress_api.database import PostgresSensorStore
from stress_api.main import build_store
from stress_core.store import InMemorySensorStore


def test_postgres_settings_from_env():
    settings = Settings.from_env({
        "STORE_URL": "postgresql://service_role@db.internal:5432/postgres",
        "STORE_SERVICE_KEY": "secret",
        "LOG_LEVEL": "debug",
        "PORT": "9000",
    })

    assert settings.store_backend == "postgres"
    assert settings.store_url == "postgresql://service_role@db.internal:5432/postgres"
    assert settings.store_key == "secret"
    assert settings.log_level == "DEBUG"
    assert settings.port == 9000
    assert settings.recent_readings_limit == 50


@pytest.mark.parametrize(
    "env, missing",
    [
        ({}, "STORE_URL, STORE_SERVICE_KEY"),
        ({"STORE_URL": "postgresql://db/postgres"}, "STORE_SERVICE_KEY"),
        ({"STORE_SERVICE_KEY": "secret", "STORE_URL": ""}, "STORE_URL"),
    ],
)
def test_postgres_requires_url_and_key(env, missing):
    with pytest.raises(ConfigurationError) as exc:
        Settings.from_env(env)

    assert str(exc.value) == f"Missing required environment: {missing}"


def test_memory_backend_needs_no_credentials():
    settings = Settings.from_env({"STORE_BACKEND": "Memory"})

    assert settings.store_backend == "memory"
    assert settings.store_url is None


def test_unknown_backend_is_rejected():
    with pytest.raises(ConfigurationError):
        Settings.from_env({"STORE_BACKEND": "sqlite"})


def test_bad_integer_setting_is_rejected():
    with pytest.raises(ConfigurationError) as exc:
        Settings.from_env({"STORE_BACKEND": "memory", "RECENT_READINGS_LIMIT": "fifty"})

    assert "RECENT_READINGS_LIMIT" in str(exc.value)


def test_build_store_follows_backend():
    assert isinstance(build_store(Settings(store_backend="memory")), InMemorySensorStore)

    store = build_store(Settings(store_url="postgresql://db/postgres", store_key="secret"))
    assert isinstance(store, PostgresSensorStore)
    assert store.pool is None
