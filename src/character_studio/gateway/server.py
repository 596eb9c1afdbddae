"""
Character Studio Gateway - Main Server

This is the frontend-facing API:
- Firebase ID token verification on every business endpoint
- Character library / detail / creation (Firestore + Cloud Storage)
- Visualization generation and saving (Gemini)
- Simulated batch training with signed direct uploads
- Static file serving for the built web UI
"""

from contextlib import asynccontextmanager
from pathlib import Path
from typing import Optional

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import PlainTextResponse
from fastapi.staticfiles import StaticFiles
from loguru import logger
from starlette.exceptions import HTTPException

from .. import __version__
from ..config import Settings, get_settings, setup_logging
from .api.v1 import characters_router, training_router
from .container import StudioServices, build_services
from .core.exceptions import CompensationError, ConfigurationError, StudioException
from .schemas import HealthResponse


def _plain(status_code: int, message: str, headers: Optional[dict] = None) -> PlainTextResponse:
    return PlainTextResponse(message, status_code=status_code, headers=headers)


def _format_validation_error(exc: RequestValidationError) -> str:
    parts = []
    for error in exc.errors():
        location = ".".join(str(p) for p in error.get("loc", ()) if p != "body")
        parts.append(f"{location}: {error.get('msg')}" if location else str(error.get("msg")))
    return "Missing or invalid data: " + "; ".join(parts)


def register_exception_handlers(app: FastAPI) -> None:
    """Errors are returned as plain text with the mapped status code."""

    @app.exception_handler(StudioException)
    async def studio_exception_handler(request: Request, exc: StudioException):
        if isinstance(exc, CompensationError):
            logger.error(f"{request.url.path}: {exc.details}")
        elif exc.status_code >= 500:
            logger.error(f"{request.url.path}: {exc.message}")
        headers = {"WWW-Authenticate": "Bearer"} if exc.status_code == 401 else None
        return _plain(exc.status_code, exc.message, headers)

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        return _plain(status.HTTP_400_BAD_REQUEST, _format_validation_error(exc))

    @app.exception_handler(HTTPException)
    async def http_exception_handler(request: Request, exc: HTTPException):
        return _plain(exc.status_code, str(exc.detail), getattr(exc, "headers", None))

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception):
        logger.opt(exception=exc).error(f"Unhandled error on {request.url.path}")
        return _plain(status.HTTP_500_INTERNAL_SERVER_ERROR, "Internal Server Error")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events."""
    logger.info("Character Studio gateway started")
    yield
    await app.state.services.scheduler.shutdown()
    logger.info("Character Studio gateway shutting down")


def create_app(
    settings: Optional[Settings] = None,
    services: Optional[StudioServices] = None,
) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        settings: Configuration; read from the environment when omitted
        services: Prebuilt clients (tests inject fakes); built from settings when omitted
    """
    settings = settings or get_settings()
    if settings.AUTH_EMULATOR_BYPASS and settings.is_production:
        raise ConfigurationError("AUTH_EMULATOR_BYPASS cannot be enabled in production")

    app = FastAPI(
        title=settings.PROJECT_NAME,
        description="API gateway for Character Studio",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.services = services or build_services(settings)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_exception_handlers(app)

    @app.get("/health", response_model=HealthResponse, tags=["health"])
    @app.get("/api/health", response_model=HealthResponse, tags=["health"])
    async def health_check():
        """Health check endpoint."""
        return HealthResponse(version=__version__)

    app.include_router(characters_router)
    app.include_router(training_router)

    # Static files must be mounted last
    if settings.STATIC_DIR:
        web_dir = Path(settings.STATIC_DIR)
        if web_dir.is_dir():
            app.mount("/", StaticFiles(directory=str(web_dir), html=True), name="static")
            logger.info(f"Serving static files from {web_dir}")
        else:
            logger.warning(f"STATIC_DIR {web_dir} does not exist; not serving web UI")

    return app


# =============================================================================
# CLI Entry Point
# =============================================================================

def run(
    host: Optional[str] = None,
    port: Optional[int] = None,
    reload: bool = False,
):
    """Run the gateway with uvicorn."""
    import uvicorn

    settings = get_settings()
    setup_logging(settings.LOG_LEVEL)
    host = host or settings.HOST
    port = port or settings.PORT

    logger.info(f"Starting Character Studio gateway on {host}:{port}")
    uvicorn.run(
        "character_studio.gateway.server:create_app",
        factory=True,
        host=host,
        port=port,
        reload=reload,
    )


if __name__ == "__main__":
    run()
