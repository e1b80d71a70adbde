"""Storage health utilities.

Provides `get_health` returning the connection state of a configuration
storage, and `create_health_router` exposing it as ``GET /health`` for
services that embed the storage in a FastAPI app.
"""
from datetime import datetime, timezone
import time

from fastapi import APIRouter

from configstore_lib.storage.base import ConfigurationStorage

# record process start time at import
_START_TIME = time.time()


def get_health(storage: ConfigurationStorage) -> dict:
    """Return a dict representing storage health.

    Fields:
    - status: 'ok' when connected, 'disconnected' otherwise
    - start_time: ISO 8601 UTC timestamp when the process started
    - uptime_seconds: integer seconds since start
    - connected: whether the storage serves commands and receives changes
    - listeners: number of active watch registrations, when known
    """
    now = time.time()
    uptime = int(now - _START_TIME)
    start_dt = datetime.fromtimestamp(_START_TIME, tz=timezone.utc)
    connected = storage.is_connected

    return {
        "status": "ok" if connected else "disconnected",
        "start_time": start_dt.isoformat(),
        "uptime_seconds": uptime,
        "connected": connected,
        "listeners": getattr(storage, "listener_count", None),
    }


def create_health_router(storage: ConfigurationStorage) -> APIRouter:
    router = APIRouter()

    @router.get("/health")
    def health():
        return get_health(storage)

    return router
