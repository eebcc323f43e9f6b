"""
Image Job Service - FastAPI Application Entry Point.

Orchestrates asynchronous image edit jobs against the fal.ai queue API.
"""
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.api.health import SERVICE_VERSION, router as health_router
from app.api.image_jobs import router as image_jobs_router
from app.core.config import get_settings
from app.core.logging import get_safe_logger, setup_logging
from app.schemas.response import ErrorDetail, ErrorResponse
from app.services.exceptions import ImageJobError, InvalidModelError


# Initialize logging first
setup_logging()
logger = get_safe_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Application lifespan handler.
    No background workers: the provider owns job state.
    """
    settings = get_settings()
    logger.info("Starting Image Job Service", model=settings.default_model)
    if not settings.fal_configured:
        # Keep serving health checks; job calls fail with PROVIDER_NOT_CONFIGURED.
        logger.warning("Provider credential missing", error_code="PROVIDER_NOT_CONFIGURED")

    yield

    logger.info("Shutting down Image Job Service")


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title="Image Job Service",
        description="Submit, poll and wait on queued image edit jobs",
        version=SERVICE_VERSION,
        docs_url="/docs" if settings.service_env == "dev" else None,
        redoc_url="/redoc" if settings.service_env == "dev" else None,
        openapi_url="/openapi.json" if settings.service_env == "dev" else None,
        lifespan=lifespan
    )

    # Register routes
    app.include_router(health_router)
    app.include_router(image_jobs_router)

    # Register exception handlers
    app.add_exception_handler(ImageJobError, image_job_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(Exception, generic_exception_handler)

    return app


def _error_response(status_code: int, detail: ErrorDetail) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(error=detail).model_dump(by_alias=True, exclude_none=True)
    )


async def image_job_exception_handler(
    request: Request,
    exc: ImageJobError
) -> JSONResponse:
    """
    Render configuration, validation and transport errors.
    Unsupported-model errors echo the allowlist so callers can self-correct.
    """
    logger.error(
        "Image job request failed",
        error_code=exc.error_code.value,
        method=request.method,
        path=request.url.path,
        status_code=exc.status_code
    )

    allowed_models = exc.allowed_models if isinstance(exc, InvalidModelError) else None
    return _error_response(
        exc.status_code,
        ErrorDetail(
            code=exc.error_code.value,
            message=exc.message,
            retryable=exc.retryable,
            allowed_models=allowed_models
        )
    )


async def validation_exception_handler(
    request: Request,
    exc: RequestValidationError
) -> JSONResponse:
    """
    Handle malformed bodies (wrong JSON types, out-of-range wait bounds).
    Field values are not echoed: they may contain signed image URLs.
    """
    logger.error(
        "Request validation failed",
        error_code="BAD_REQUEST",
        path=request.url.path,
        status_code=400
    )

    return _error_response(
        status.HTTP_400_BAD_REQUEST,
        ErrorDetail(
            code="BAD_REQUEST",
            message="Invalid request format",
            retryable=False
        )
    )


async def http_exception_handler(
    request: Request,
    exc: StarletteHTTPException
) -> JSONResponse:
    if exc.status_code == 404:
        error_code = "NOT_FOUND"
    elif exc.status_code < 500:
        error_code = "BAD_REQUEST"
    else:
        error_code = "INTERNAL_ERROR"

    logger.error(
        "HTTP exception",
        error_code=error_code,
        path=request.url.path,
        status_code=exc.status_code
    )

    return _error_response(
        exc.status_code,
        ErrorDetail(
            code=error_code,
            message=exc.detail if isinstance(exc.detail, str) else "Request failed",
            retryable=exc.status_code >= 500
        )
    )


async def generic_exception_handler(
    request: Request,
    exc: Exception
) -> JSONResponse:
    """Handle unexpected exceptions without echoing their text."""
    logger.error(
        "Unexpected error",
        error_code="INTERNAL_ERROR",
        path=request.url.path,
        exception_class=type(exc).__name__,
        status_code=500
    )

    return _error_response(
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        ErrorDetail(
            code="INTERNAL_ERROR",
            message="Internal server error",
            retryable=True
        )
    )


# Create the application instance
app = create_app()


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "app.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.service_env == "dev"
    )
