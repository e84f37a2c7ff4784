from contextlib import asynccontextmanager
from datetime import datetime, timezone

import structlog
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from prometheus_fastapi_instrumentator import Instrumentator
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from yatra.api import itinerary, trips
from yatra.core.errors import ItineraryGenerationError
from yatra.core.log_config import configure_logging
from yatra.core.rate_limit import limiter
from yatra.core.settings import get_settings
from yatra.db.session import db_manager
from yatra.middleware.logging import RequestLoggingMiddleware

settings = get_settings()
configure_logging(settings)

logger = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Starting application...")
    try:
        await db_manager.initialize()
        if settings.DB_CREATE_TABLES:
            await db_manager.init_db()
    except Exception:
        logger.exception("Failed to initialize database manager")
        raise

    yield

    logger.info("Shutting down application...")
    try:
        await db_manager.close()
    except Exception as e:
        logger.error("database_cleanup_failed", error=str(e))


app = FastAPI(
    title="Yatra Itinerary API",
    description="Day-by-day travel itinerary generation for Indian trips",
    version="1.0.0",
    lifespan=lifespan
)

app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

app.add_middleware(RequestLoggingMiddleware)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

Instrumentator().instrument(app).expose(app, endpoint="/metrics")


@app.exception_handler(ItineraryGenerationError)
async def itinerary_error_handler(request: Request, exc: ItineraryGenerationError):
    log = logger.warning if exc.status_code < 500 else logger.error
    log(
        "itinerary_request_failed",
        code=exc.code,
        status_code=exc.status_code,
        detail=exc.detail,
        path=request.url.path,
    )
    headers = {"WWW-Authenticate": "Bearer"} if exc.status_code == 401 else None
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict(), headers=headers)


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    logger.error(
        "unhandled_exception",
        error=str(exc),
        error_type=type(exc).__name__,
        path=request.url.path,
        method=request.method,
        exc_info=True
    )
    return JSONResponse(
        status_code=500,
        content={"error": "Internal server error", "code": "internal_error"}
    )


@app.get("/")
def root():
    return {"status": "API active", "version": "1.0.0"}


@app.get("/health")
async def health_check_detailed():
    """Detailed health check endpoint"""
    db_health = await db_manager.health_check() if db_manager.engine else {"status": "unavailable"}
    db_status = db_health["status"]

    return {
        "status": "healthy" if db_status == "healthy" else "degraded",
        "version": "1.0.0",
        "components": {
            "database": db_status,
            "api": "healthy"
        },
        "timestamp": datetime.now(timezone.utc).isoformat()
    }


prefix = "/api/v1"

app.include_router(trips.router, prefix=prefix)
app.include_router(itinerary.router, prefix=prefix)
