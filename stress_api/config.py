import logging
import os
from dataclasses import dataclass
from typing import Mapping, Optional

from dotenv import load_dotenv

load_dotenv()

STORE_BACKENDS = ("postgres", "memory")
LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


class ConfigurationError(RuntimeError):
    """The process environment cannot produce a usable Settings."""


@dataclass(frozen=True)
class Settings:
    # Store Configuration
    store_backend: str = "postgres"
    store_url: Optional[str] = None
    store_key: Optional[str] = None

    # App Configuration
    log_level: str = "INFO"
    host: str = "0.0.0.0"
    port: int = 8000
    recent_readings_limit: int = 50

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "Settings":
        """
        Builds Settings from environment variables (after .env has been loaded).

        Raises ConfigurationError when the postgres backend lacks its URL or key,
        or when a value cannot be parsed.
        """
        env = os.environ if environ is None else environ

        backend = env.get("STORE_BACKEND", "postgres").strip().lower()
        if backend not in STORE_BACKENDS:
            raise ConfigurationError(
                f"STORE_BACKEND must be one of {', '.join(STORE_BACKENDS)}, got {backend!r}"
            )

        store_url = env.get("STORE_URL") or None
        store_key = env.get("STORE_SERVICE_KEY") or None
        if backend == "postgres":
            missing = [
                name for name, value in (("STORE_URL", store_url), ("STORE_SERVICE_KEY", store_key))
                if not value
            ]
            if missing:
                raise ConfigurationError(f"Missing required environment: {', '.join(missing)}")

        return cls(
            store_backend=backend,
            store_url=store_url,
            store_key=store_key,
            log_level=env.get("LOG_LEVEL", "INFO").upper(),
            host=env.get("HOST", "0.0.0.0"),
            port=_int_setting(env, "PORT", 8000),
            recent_readings_limit=_int_setting(env, "RECENT_READINGS_LIMIT", 50),
        )


def _int_setting(env: Mapping[str, str], name: str, default: int) -> int:
    raw = env.get(name)
    if raw is None or raw == "":
        return default
    try:
        return int(raw)
    except ValueError:
        raise ConfigurationError(f"{name} must be an integer, got {raw!r}") from None


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(level=level, format=LOG_FORMAT)
