"""
Main FastAPI application entry point.
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator
from urllib.parse import urlencode

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse, RedirectResponse

from feedboard import __version__
from feedboard.core.config import settings
from feedboard.core.exceptions import (
    ActionDispatchError,
    AuthorizationError,
    ContentNotFoundError,
    ContentTypeConfigurationError,
    ContentValidationError,
    RenderingError,
    UnrecognizedContentTypeError,
)
from feedboard.core.logging import get_logger, setup_logging
from feedboard.db.redis import close_redis
from feedboard.db.session import check_db_health, close_db, init_db
from feedboard.schemas.content import ContentResponse, FeedSummary, ValidationErrorResponse

# Setup logging
setup_logging()
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Application lifespan events.
    Handles startup and shutdown tasks.
    """
    # Startup
    logger.info(
        "starting_application",
        app_name=settings.APP_NAME,
        environment=settings.APP_ENV,
        version=__version__,
    )

    if not settings.content_defaults().default_upload_type:
        # Every "new content" request will fail until this is fixed
        logger.critical("missing_default_content_type")

    await init_db()

    yield

    # Shutdown
    logger.info("shutting_down_application")

    await close_redis()
    await close_db()


# Create FastAPI application
app = FastAPI(
    title=settings.APP_NAME,
    description="Digital signage content service - Backend API",
    version=__version__,
    docs_url="/docs" if settings.DEBUG else None,
    redoc_url="/redoc" if settings.DEBUG else None,
    lifespan=lifespan,
)

# Add middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["ETag", "Last-Modified", "Content-Disposition", "Location"],
)

app.add_middleware(GZipMiddleware, minimum_size=1000)


# Health check endpoint
@app.get("/health", tags=["health"])
async def health_check() -> JSONResponse:
    """
    Health check endpoint for monitoring.
    Includes database connectivity check.
    """
    db_healthy = await check_db_health()

    return JSONResponse(
        status_code=200 if db_healthy else 503,
        content={
            "status": "healthy" if db_healthy else "unhealthy",
            "app_name": settings.APP_NAME,
            "environment": settings.APP_ENV,
            "version": __version__,
            "database": "connected" if db_healthy else "disconnected",
        }
    )


# Include API routers
from feedboard.api import api_router  # noqa: E402

app.include_router(api_router, prefix=settings.API_V1_PREFIX)


# ================================
# Domain Exception Handlers
# ================================

@app.exception_handler(ContentNotFoundError)
async def content_not_found_handler(request: Request, exc: ContentNotFoundError) -> RedirectResponse:
    """Stale content ids send the user back to browsing instead of a 404."""
    logger.info("content_not_found", content_id=exc.content_id, path=request.url.path)
    notice = urlencode({"notice": "The content you requested could not be found."})
    return RedirectResponse(
        url=f"{settings.BROWSE_PATH}?{notice}",
        status_code=status.HTTP_303_SEE_OTHER,
    )


@app.exception_handler(AuthorizationError)
async def authorization_error_handler(request: Request, exc: AuthorizationError) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_403_FORBIDDEN,
        content={"detail": f"You are not allowed to {exc.operation} this resource."},
    )


@app.exception_handler(ContentValidationError)
async def validation_error_handler(request: Request, exc: ContentValidationError) -> JSONResponse:
    body = ValidationErrorResponse(
        errors=exc.errors,
        content=ContentResponse.model_validate(exc.content) if exc.content is not None else None,
        feeds=[FeedSummary.model_validate(f) for f in exc.feeds],
    )
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content=body.model_dump(mode="json"),
    )


@app.exception_handler(UnrecognizedContentTypeError)
async def unrecognized_type_handler(
    request: Request, exc: UnrecognizedContentTypeError
) -> PlainTextResponse:
    logger.info("unrecognized_content_type", type_name=exc.type_name, path=request.url.path)
    return PlainTextResponse("Unrecognized content type.", status_code=status.HTTP_400_BAD_REQUEST)


@app.exception_handler(ActionDispatchError)
async def action_dispatch_error_handler(
    request: Request, exc: ActionDispatchError
) -> PlainTextResponse:
    return PlainTextResponse("Unable to perform action.", status_code=status.HTTP_400_BAD_REQUEST)


@app.exception_handler(ContentTypeConfigurationError)
async def configuration_error_handler(
    request: Request, exc: ContentTypeConfigurationError
) -> JSONResponse:
    logger.critical("content_type_configuration_error", error=str(exc), path=request.url.path)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "error": {
                "code": "configuration_error",
                "message": str(exc),
            }
        },
    )


@app.exception_handler(RenderingError)
async def rendering_error_handler(request: Request, exc: RenderingError) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "error": {
                "code": "rendering_failed",
                "message": f"Unable to render {exc.type_name} content.",
            }
        },
    )


# Global exception handler
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """
    Global exception handler for unhandled errors.
    """
    logger.error(
        "unhandled_exception",
        error=str(exc),
        path=request.url.path,
        method=request.method,
        exc_info=True,
    )

    return JSONResponse(
        status_code=500,
        content={
            "error": {
                "code": "internal_server_error",
                "message": "An unexpected error occurred. Please try again later.",
            }
        },
    )


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "feedboard.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.DEBUG,
        log_level=settings.LOG_LEVEL.lower(),
    )
