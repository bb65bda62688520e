import logging
from contextlib import asynccontextmanager
from typing import Optional

import socketio
import uvicorn
from fastapi import FastAPI, Request
from fastapi.exception_handlers import http_exception_handler
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from stress_api.config import Settings, configure_logging
from stress_api.database import PostgresSensorStore
from stress_api.routers import sensor
from stress_api.socket_manager import broadcast_reading, sio
from stress_core.ingestion_service import IngestionService, Notifier
from stress_core.store import InMemorySensorStore, SensorStore

logger = logging.getLogger("stress_api")

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Headers": "authorization, x-client-info, apikey, content-type",
}


def build_store(settings: Settings) -> SensorStore:
    if settings.store_backend == "memory":
        logger.warning("Using in-memory store, readings are lost on restart")
        return InMemorySensorStore()
    return PostgresSensorStore(settings.store_url, settings.store_key)


def create_app(
    settings: Optional[Settings] = None,
    store: Optional[SensorStore] = None,
    notifier: Optional[Notifier] = broadcast_reading,
) -> FastAPI:
    settings = settings or Settings.from_env()
    configure_logging(settings.log_level)
    store = store or build_store(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        await store.connect()
        logger.info("Sensor API: store ready (%s)", settings.store_backend)
        yield
        await store.close()
        logger.info("Sensor API: store closed")

    app = FastAPI(title="Stress Sensor API", lifespan=lifespan)
    app.state.settings = settings
    app.state.store = store
    app.state.ingestion_service = IngestionService(store, notifier=notifier)

    @app.middleware("http")
    async def add_cors_headers(request: Request, call_next):
        response = await call_next(request)
        for name, value in CORS_HEADERS.items():
            response.headers.setdefault(name, value)
        return response

    @app.exception_handler(StarletteHTTPException)
    async def method_not_allowed(request: Request, exc: StarletteHTTPException):
        # Verbs the ingest route does not list get the same body as the ones it does
        if exc.status_code == 405:
            return JSONResponse({"error": "Method not allowed"}, status_code=405)
        return await http_exception_handler(request, exc)

    @app.get("/")
    async def root():
        return {"message": "Stress Sensor API is Running"}

    @app.get("/health")
    async def health():
        """Health check endpoint for Docker"""
        store_health = await store.check_health()
        healthy = store_health["connected"] and store_health["tables_exist"]
        return {"status": "healthy" if healthy else "unhealthy", "store": store_health}

    # Include Routers
    app.include_router(sensor.router, prefix="/api", tags=["Sensor"])

    return app


def create_socket_app(
    settings: Optional[Settings] = None,
    store: Optional[SensorStore] = None,
) -> socketio.ASGIApp:
    """FastAPI app wrapped with Socket.IO, served as one ASGI app."""
    return socketio.ASGIApp(sio, create_app(settings, store))


def run():
    settings = Settings.from_env()
    uvicorn.run(create_socket_app(settings), host=settings.host, port=settings.port)


if __name__ == "__main__":
    run()
