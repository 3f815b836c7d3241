"""FastAPI application entry point."""

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Annotated

from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from src.api import auth, debts, reports, users
from src.api.dependencies import get_cache
from src.config import get_settings
from src.schemas.common import ApiResponse
from src.services.cache import DynamoDBCacheService, get_cache_service
from src.services.exceptions import DebtTrackerError

settings = get_settings()
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Handle application startup and shutdown events."""
    if settings.cache_bootstrap_on_startup:
        ready = await asyncio.to_thread(get_cache_service().ensure_initialized)
        if not ready:
            logger.warning("Cache table is not ready; requests will read from the database")
    yield


app = FastAPI(
    title="Debt Tracker API",
    description="Track money lent to and owed by other users",
    version="0.1.0",
    lifespan=lifespan,
)

# CORS middleware for development
if settings.is_development:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=[
            "http://localhost:3000",
            "http://localhost:5173",
        ],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )


@app.exception_handler(DebtTrackerError)
async def debt_tracker_error_handler(request: Request, exc: DebtTrackerError):
    return JSONResponse(
        status_code=exc.status_code,
        content=ApiResponse.fail(exc.message, exc.errors).model_dump(mode="json"),
    )


@app.exception_handler(RequestValidationError)
async def request_validation_error_handler(request: Request, exc: RequestValidationError):
    errors = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error["loc"] if part != "body")
        errors.append(f"{location}: {error['msg']}" if location else error["msg"])
    return JSONResponse(
        status_code=422,
        content=ApiResponse.fail("Validation failed", errors).model_dump(mode="json"),
    )


# Register routers
app.include_router(auth.router)
app.include_router(debts.router)
app.include_router(users.router)
app.include_router(reports.router)


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy", "environment": settings.environment}


@app.get("/health/cache")
def cache_health_check(cache: Annotated[DynamoDBCacheService, Depends(get_cache)]):
    """Entry count of the cache table; -1 means DynamoDB could not be scanned."""
    stats = cache.get_statistics()
    return {
        "status": "healthy" if stats.error is None else "degraded",
        "cache": stats.model_dump(mode="json"),
    }
