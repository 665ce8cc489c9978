# fusion/main.py
"""
FastAPI application entry point.
Includes security middleware, global error handlers, and all routers.
"""

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware
from starlette.middleware.base import BaseHTTPMiddleware
from fusion.routers import devices, connectors, events, health
from fusion.database import create_tables, SessionLocal
from fusion.config import settings
from fusion.models.connector import Connector
from fusion.services.device_query import fetch_devices_with_details
from fusion.services.device_store import device_store
from fusion.services.sync_scheduler import start_periodic_sync, stop_periodic_sync, run_sync_once
from fusion.utils.logger import get_logger
import time

logger = get_logger(__name__)

app = FastAPI(
    title="Fusion Device Sync API",
    description="Connector device sync and live device state for YoLink, Piko and Genea.",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
)

# ── CORS (dashboard runs on a different origin) ─────────────────────────────
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],   # Restrict to dashboard origin in production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ── API Key Middleware ───────────────────────────────────────────────────────
class APIKeyMiddleware(BaseHTTPMiddleware):
    """
    Optional lightweight API key auth.
    Health check and docs stay open. Set API_KEY in .env; leave empty to disable auth.
    """
    open_paths = {"/api/health", "/docs", "/redoc", "/openapi.json"}

    async def dispatch(self, request: Request, call_next):
        if request.url.path in self.open_paths or not settings.API_KEY:
            return await call_next(request)

        api_key = request.headers.get("X-API-Key") or request.query_params.get("api_key")
        if api_key != settings.API_KEY:
            return JSONResponse(
                status_code=status.HTTP_401_UNAUTHORIZED,
                content={"success": False, "error": "Invalid or missing API key"},
            )
        return await call_next(request)


if settings.API_KEY:
    app.add_middleware(APIKeyMiddleware)


# ── Request Timing Middleware ────────────────────────────────────────────────
@app.middleware("http")
async def log_requests(request: Request, call_next):
    start = time.time()
    response = await call_next(request)
    duration = round((time.time() - start) * 1000, 2)
    logger.debug(f"{request.method} {request.url.path} → {response.status_code} ({duration}ms)")
    return response


# ── Global Exception Handler ─────────────────────────────────────────────────
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    logger.error(f"Unhandled exception on {request.url.path}: {exc}", exc_info=True)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"success": False, "error": "Internal server error"},
    )


# ── Routers ──────────────────────────────────────────────────────────────────
app.include_router(devices.router,    prefix="/api", tags=["Devices"])
app.include_router(connectors.router, prefix="/api", tags=["Connectors"])
app.include_router(events.router,     prefix="/api", tags=["Live Events"])
app.include_router(health.router,     prefix="/api", tags=["Health"])


async def _load_store_from_db():
    """Seed the live state store from persisted rows so reads work before the first sync."""
    db = SessionLocal()
    try:
        device_store.set_connectors(db.query(Connector).all())
        device_store.set_device_states_from_sync(await fetch_devices_with_details(db))
    finally:
        db.close()


# ── Startup ───────────────────────────────────────────────────────────────────
@app.on_event("startup")
async def startup():
    logger.info("Fusion backend starting up...")
    create_tables()
    logger.info("Database tables ready")
    await _load_store_from_db()
    logger.info(f"Device state store loaded: {len(device_store.get().device_states)} devices")

    if settings.SYNC_ON_STARTUP:
        await run_sync_once()
    start_periodic_sync()
    logger.info("API docs at /docs")


@app.on_event("shutdown")
async def shutdown():
    logger.info("Fusion backend shutting down...")
    await stop_periodic_sync()
