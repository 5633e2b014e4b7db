from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator, Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from ratekeeper.app.core.config import Settings, settings
from ratekeeper.app.core.logging import get_logger, setup_logging
from ratekeeper.app.middleware.rate_limit import RateLimitMiddleware
from ratekeeper.app.ratelimit import LimiterRegistry

HEALTH_PATH = "/health"


def create_app(
    app_settings: Optional[Settings] = None,
    registry: Optional[LimiterRegistry] = None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    The rate limiter registry is constructed here, once, and handed to the
    middleware by reference. The application lifespan starts its sweeper
    and stops it on shutdown.

    Args:
        app_settings: Settings to use (defaults to the global settings)
        registry: Pre-built registry, e.g. one with a custom clock in tests

    Returns:
        Configured FastAPI application instance
    """
    app_settings = app_settings or settings

    setup_logging(app_settings)
    logger = get_logger(__name__)

    if registry is None:
        # The lifespan starts the sweeper
        registry = LimiterRegistry(app_settings.rate_limit_config(), autostart=False)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        """Application lifespan context manager.

        Makes sure the sweeper is running on startup and stops it on shutdown.
        """
        registry.start()
        logger.info("Application startup complete")

        yield

        registry.shutdown()
        logger.info("Application shutdown complete")

    app = FastAPI(
        title="ratekeeper",
        description="Per-client token bucket admission control",
        version="0.1.0",
        lifespan=lifespan
    )
    app.state.rate_limiter = registry

    app.add_middleware(
        RateLimitMiddleware,
        registry=registry,
        exempt_paths=[HEALTH_PATH],
    )

    @app.get(HEALTH_PATH)
    async def health(request: Request) -> dict[str, Any]:
        """Health check endpoint with rate limiter status."""
        limiter: LimiterRegistry = request.app.state.rate_limiter
        sweeper_running = limiter.is_running
        status = "ok" if sweeper_running else "degraded"
        return {
            "status": status,
            "components": {
                "rate_limiter": {
                    "status": status,
                    "tracked_keys": len(limiter),
                    "sweeper_running": sweeper_running,
                }
            }
        }

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        """Global exception handler for unhandled exceptions.

        The traceback is logged server-side and never returned to the client.
        Debug mode adds the exception message to the response.
        """
        logger.exception(
            "Unhandled exception",
            extra={
                "path": request.url.path,
                "method": request.method,
                "exception_type": type(exc).__name__,
            }
        )

        content = {
            "error": "internal_error",
            "message": "Internal server error",
        }
        if app_settings.debug:
            content["message"] = str(exc)
            content["exception_type"] = type(exc).__name__
        return JSONResponse(status_code=500, content=content)

    return app


# Create the application instance
app = create_app()
