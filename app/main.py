import asyncio
from contextlib import asynccontextmanager, suppress

from fastapi import FastAPI, Depends
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session
from sqlalchemy import text

from app.db.base import get_db
from app.core.config import settings
from app.core.logging import configure_logging
from app.routers import analytics as analytics_router
from app.routers import aggregates as aggregates_router
from app.services.cache import AnalyticsCache, run_periodic_cleanup
from app.core.errors import (
    PulseException,
    pulse_exception_handler,
    validation_exception_handler,
    unhandled_exception_handler,
)

configure_logging()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Sweep the analytics cache in the background while the app serves."""
    cleanup = asyncio.create_task(
        run_periodic_cleanup(app.state.analytics_cache, settings.ANALYTICS_CACHE_CLEANUP_SECONDS)
    )
    try:
        yield
    finally:
        cleanup.cancel()
        with suppress(asyncio.CancelledError):
            await cleanup


app = FastAPI(
    title="Team Pulse Analytics API",
    description=(
        "**Scoped analytics for weekly pulse check-ins and shoutouts**\n\n"
        "Every request is clamped to what the caller's role may see "
        "(organization, team or user) before any aggregation runs.\n\n"
        "All error responses follow the `{code, message, details}` envelope."
    ),
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

# --- Shared analytics cache (one per process) ---
app.state.analytics_cache = AnalyticsCache(default_ttl=settings.ANALYTICS_CACHE_TTL_SECONDS)

# --- CORS ---
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# --- Exception handlers (most specific first) ---
app.add_exception_handler(PulseException, pulse_exception_handler)
app.add_exception_handler(RequestValidationError, validation_exception_handler)
app.add_exception_handler(Exception, unhandled_exception_handler)

# --- Routers ---
app.include_router(analytics_router.router)
app.include_router(aggregates_router.router)


@app.get("/health", tags=["health"], summary="Health check")
def health(db: Session = Depends(get_db)):
    """
    Returns `{"status": "ok", "db": "ok"}` when both the API and the database
    are reachable. Returns HTTP 503 if the DB is down.
    """
    try:
        db.execute(text("SELECT 1"))
        db_status = "ok"
    except Exception:
        db_status = "unreachable"

    if db_status != "ok":
        return JSONResponse(
            status_code=503,
            content={"status": "error", "db": db_status},
        )
    return {
        "status": "ok",
        "db": "ok",
        "env": settings.APP_ENV,
        "cached_entries": len(app.state.analytics_cache),
    }
