"""
FastAPI application setup and configuration
"""

from datetime import datetime, timezone
from typing import Callable, Optional

import structlog
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.api.schemas import ErrorResponse, HealthResponse
from app.api.v1.router import api_router
from app.core.config import settings
from app.core.errors import ChronosError, PathNotFoundError, PersistenceError, ProfileNotFoundError

logger = structlog.get_logger(__name__)


def create_app(lifespan: Optional[Callable] = None) -> FastAPI:
    """
    Create and configure the FastAPI application

    Args:
        lifespan: Optional lifespan context manager

    Returns:
        Configured FastAPI application
    """

    # Create FastAPI app
    app = FastAPI(
        title=settings.PROJECT_NAME,
        version=settings.API_VERSION,
        description="Daily reset and streak progression engine for habit paths",
        debug=settings.DEBUG,
        lifespan=lifespan
    )

    # Configure CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Include routers
    app.include_router(api_router, prefix=settings.API_V1_PREFIX)

    @app.get("/")
    async def root():
        return {
            "message": settings.PROJECT_NAME,
            "version": settings.API_VERSION,
            "features": [
                "Daily Chronos reset",
                "Path streaks and milestones",
                "Prestige level-ups",
                "Dawn summaries",
            ]
        }

    # Add exception handlers
    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        """Handle HTTP exceptions with structured error responses"""
        logger.warning("HTTP exception occurred",
                       status_code=exc.status_code,
                       detail=str(exc.detail),
                       path=request.url.path)

        return JSONResponse(
            status_code=exc.status_code,
            content=ErrorResponse(
                error=str(exc.detail),
                request_id=request.headers.get("X-Request-ID")
            ).model_dump()
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        """Handle request validation errors"""
        logger.warning("Validation error occurred",
                       errors=str(exc.errors()),
                       path=request.url.path)

        error_details = []
        for error in exc.errors():
            error_details.append({
                "type": error["type"],
                "message": error["msg"],
                "field": ".".join(str(loc) for loc in error["loc"])
            })

        return JSONResponse(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            content=ErrorResponse(
                error="Validation error",
                details=error_details,
                request_id=request.headers.get("X-Request-ID")
            ).model_dump()
        )

    @app.exception_handler(ChronosError)
    async def chronos_exception_handler(request: Request, exc: ChronosError):
        """Map domain errors to HTTP status codes"""
        if isinstance(exc, (PathNotFoundError, ProfileNotFoundError)):
            status_code = status.HTTP_404_NOT_FOUND
            error_code = "not_found"
        elif isinstance(exc, PersistenceError):
            status_code = status.HTTP_503_SERVICE_UNAVAILABLE
            error_code = "persistence_failed"
        else:
            status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
            error_code = "chronos_error"

        logger.warning("Domain error occurred",
                       error=str(exc),
                       error_code=error_code,
                       path=request.url.path)

        return JSONResponse(
            status_code=status_code,
            content=ErrorResponse(
                error=str(exc),
                error_code=error_code,
                request_id=request.headers.get("X-Request-ID")
            ).model_dump()
        )

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception):
        """Handle unexpected exceptions"""
        logger.error("Unexpected exception occurred",
                     exception=str(exc),
                     exception_type=type(exc).__name__,
                     path=request.url.path)

        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=ErrorResponse(
                error="Internal server error",
                request_id=request.headers.get("X-Request-ID")
            ).model_dump()
        )

    # Add middleware for request logging
    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        """Log all requests for monitoring and debugging"""
        logger.info("Request started",
                    method=request.method,
                    path=request.url.path,
                    query_params=dict(request.query_params),
                    client_ip=request.client.host if request.client else None)

        response = await call_next(request)

        logger.info("Request completed",
                    method=request.method,
                    path=request.url.path,
                    status_code=response.status_code)

        return response

    # Health check endpoint
    @app.get("/health", response_model=HealthResponse, tags=["health"])
    async def health_check():
        return HealthResponse(
            status="ok",
            timestamp=datetime.now(timezone.utc),
            services={
                "storage": settings.STORAGE_BACKEND,
                "dawn_summary_store": "redis" if settings.REDIS_URL else "memory",
            },
            version=settings.API_VERSION,
        )

    return app
