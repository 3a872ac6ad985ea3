"""
Course Booking API - application entry point.

Coach-led courses paid for with credits:
- Append-only credit ledger; balances derived from grants and bookings
- Locked check-and-commit admission (no overbooking, no overdrawn credit)
- Compare-and-set cancellation
- Structured logging with request correlation, Prometheus metrics
- Optional Redis cache for coach usage reports
"""

from contextlib import asynccontextmanager
from fastapi import Depends, FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from coursebook.core.config import get_settings
from coursebook.core.exceptions import BookingDomainError, StoreUnavailable
from coursebook.core.logging import setup_logging, get_logger
from coursebook.core.metrics import metrics_endpoint
from coursebook.api.router import api_router
from coursebook.api.middleware import RequestLoggingMiddleware
from coursebook.db.session import Database, get_db, store_errors
from coursebook.services.cache_service import get_redis, close_redis, get_cache_stats

settings = get_settings()
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Owns the booking store's connection pool and the Redis client."""
    setup_logging()

    app.state.database = Database(settings.DATABASE_URL, settings)
    logger.info(
        "application_starting",
        app=settings.APP_NAME,
        version=settings.APP_VERSION,
        environment=settings.ENVIRONMENT,
        database=app.state.database.url.get_backend_name(),
        lock_timeout_ms=settings.DB_LOCK_TIMEOUT_MS,
    )

    if not await get_redis():
        logger.warning("redis_unavailable", message="Usage reports will not be cached")

    yield

    await close_redis()
    await app.state.database.dispose()
    logger.info("application_shutdown")


app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description="Credit ledger and concurrency-safe course booking admission",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(RequestLoggingMiddleware)

app.include_router(api_router)


@app.exception_handler(BookingDomainError)
async def booking_domain_error_handler(request: Request, exc: BookingDomainError) -> JSONResponse:
    """Render every ledger/admission failure as {status, code, message[, details]}."""
    headers = {}
    if exc.retryable:
        headers["Retry-After"] = str(settings.STORE_RETRY_AFTER_SECONDS)
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict(), headers=headers)


@app.get("/health", tags=["Health"])
async def health_check(db: AsyncSession = Depends(get_db)):
    """Reports 503 when the booking store cannot answer; Redis is informational only."""
    database_status = "connected"
    try:
        async with store_errors():
            await db.execute(text("SELECT 1"))
    except StoreUnavailable:
        database_status = "unavailable"

    body = {
        "status": "healthy" if database_status == "connected" else "degraded",
        "version": settings.APP_VERSION,
        "environment": settings.ENVIRONMENT,
        "database": database_status,
        "cache": await get_cache_stats(),
    }
    code = status.HTTP_200_OK if database_status == "connected" else status.HTTP_503_SERVICE_UNAVAILABLE
    return JSONResponse(status_code=code, content=body)


@app.get("/metrics", tags=["Health"], include_in_schema=False)
async def metrics():
    return metrics_endpoint()
