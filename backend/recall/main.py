from contextlib import asynccontextmanager
import logging
from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
import sentry_sdk
from slowapi.errors import RateLimitExceeded

from recall.config import get_settings
from recall.database import init_db
from recall.rate_limiter import limiter
from recall.api import reviews
from recall.services.errors import (
    RecallServiceError,
    InvalidQuality,
    ItemNotFound,
    OwnerNotFound,
    Contention,
    FlashcardParseError,
)

logger = logging.getLogger(__name__)

settings = get_settings()

ERROR_STATUS = {
    InvalidQuality: status.HTTP_422_UNPROCESSABLE_ENTITY,
    FlashcardParseError: status.HTTP_422_UNPROCESSABLE_ENTITY,
    ItemNotFound: status.HTTP_404_NOT_FOUND,
    OwnerNotFound: status.HTTP_404_NOT_FOUND,
    Contention: status.HTTP_409_CONFLICT,
}

# Initialize Sentry if DSN is provided
if settings.sentry_dsn:
    sentry_sdk.init(
        dsn=settings.sentry_dsn,
        environment=settings.environment,
        traces_sample_rate=0.1,
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler."""
    await init_db()
    logger.info("Database connection ready")
    yield


app = FastAPI(
    title="Recall API",
    description="Spaced-repetition review scheduling for learners",
    version="1.0.0",
    lifespan=lifespan,
    docs_url="/docs" if settings.environment == "development" else None,
    redoc_url="/redoc" if settings.environment == "development" else None,
    openapi_url="/openapi.json" if settings.environment == "development" else None,
)

app.state.limiter = limiter


@app.exception_handler(RateLimitExceeded)
async def rate_limit_handler(request: Request, exc: RateLimitExceeded):
    return JSONResponse(
        status_code=429,
        content={
            "detail": "Rate limit exceeded. Please slow down.",
            "retry_after": exc.detail,
        },
    )


@app.exception_handler(RecallServiceError)
async def recall_error_handler(request: Request, exc: RecallServiceError):
    status_code = ERROR_STATUS.get(type(exc), status.HTTP_400_BAD_REQUEST)
    if isinstance(exc, Contention):
        logger.warning(f"{request.method} {request.url.path}: {exc.message}")
    return JSONResponse(
        status_code=status_code,
        content={
            "detail": exc.message,
            "code": exc.code,
            "retryable": exc.retryable,
        },
    )


app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "DELETE", "OPTIONS"],
    allow_headers=["Authorization", "Content-Type", "Accept"],
)

app.include_router(reviews.router, prefix="/spaced-repetition", tags=["Spaced Repetition"])


@app.get("/health")
@limiter.exempt
async def health_check(request: Request):
    """Health check endpoint."""
    return {"status": "healthy", "version": "1.0.0"}
