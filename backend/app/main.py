"""
Staffing Analytics API v1.0
FastAPI backend serving facility analytics & forecasting reports over an
async PostgreSQL record store.
"""
import os
import logging
import time
from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from dotenv import load_dotenv

load_dotenv()

from app.services.logging_config import setup_logging
from app.services.middleware import RateLimitMiddleware, RequestTimingMiddleware, SecurityHeadersMiddleware
from app.services.perf_monitor import tracker as perf_tracker

_log_level = os.getenv("LOG_LEVEL", "INFO")
_json_logs = os.getenv("LOG_FORMAT", "json").lower() != "text"
setup_logging(level=_log_level, json_output=_json_logs)
logger = logging.getLogger("staffing-api")

# Record process start time for uptime calculation
_PROCESS_START = time.monotonic()

if not os.getenv("DATABASE_URL"):
    logger.warning("MISSING env var: DATABASE_URL — running in dev mode")

APP_VERSION = "1.0.0"


@asynccontextmanager
async def lifespan(app: FastAPI):
    from app.db import init_db, engine
    try:
        await init_db()
    except Exception as e:
        logger.warning(f"Table init skipped (OK if using Alembic): {e}")
    yield
    await engine.dispose()


app = FastAPI(
    title="Staffing Analytics API",
    version=APP_VERSION,
    description="Facility analytics, budget tracking and staffing-gap forecasting for the on-call staffing marketplace",
    lifespan=lifespan,
)

_cors_default = "http://localhost:3000,http://localhost:8000"
cors_origins = [o.strip() for o in os.getenv("CORS_ORIGINS", _cors_default).split(",") if o.strip()]

app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "PUT", "OPTIONS"],
    allow_headers=["Authorization", "Content-Type", "Accept", "X-Requested-With"],
)
app.add_middleware(SecurityHeadersMiddleware)
app.add_middleware(RateLimitMiddleware)
# Request timing + X-Request-ID must be outermost so it wraps all other middleware
app.add_middleware(RequestTimingMiddleware)

# Routers
from app.api.analytics_routes import router as analytics_router
from app.api.settings_routes import router as settings_router

app.include_router(analytics_router)
app.include_router(settings_router)


@app.get("/health")
async def health_check():
    return {
        "status": "active",
        "version": APP_VERSION,
        "db_configured": bool(os.getenv("DATABASE_URL")),
    }


@app.get("/metrics")
async def metrics():
    """
    Report pipeline metrics: throughput, average report duration, stage
    timings and failures. Sourced from the in-process PerformanceTracker.
    """
    snapshot = perf_tracker.get_metrics()
    return {
        "uptime_seconds": round(time.monotonic() - _PROCESS_START, 1),
        **snapshot,
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("app.main:app", host="0.0.0.0", port=8000, reload=True)
