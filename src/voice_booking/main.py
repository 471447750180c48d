"""
FastAPI application entry point.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from voice_booking import __version__
from voice_booking.calls.registry import SessionRegistry
from voice_booking.calls.router import router as calls_router
from voice_booking.config import get_settings
from voice_booking.dialogue.delegate import ResponseDelegate
from voice_booking.shared.exceptions import AppError, ConfigurationError, NotFoundError, ValidationError
from voice_booking.shared.logging import get_logger, setup_logging
from voice_booking.telephony.config import TelephonyConfig, get_telephony_config
from voice_booking.telephony.factory import create_telephony_provider
from voice_booking.telephony.interface import CallInitiationError, TelephonyProvider
from voice_booking.telephony.webhooks.handler import CallbackRouter, ResponseDelegateProtocol
from voice_booking.telephony.webhooks.router import router as telephony_webhooks_router

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager."""
    setup_logging()
    settings = get_settings()
    config: TelephonyConfig = app.state.telephony_config

    logger.info(
        "Application starting",
        extra={
            "env": settings.app_env,
            "telephony_provider": config.provider_type.value,
            "llm_provider": settings.llm_provider,
        },
    )
    if not config.is_configured:
        logger.warning("BASE_URL is not set. Carrier webhooks will not reach this server.")

    yield

    logger.info("Shutting down application")
    app.state.telephony_provider.close()
    logger.info("Application shutdown complete")


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


def create_app(
    telephony_config: TelephonyConfig | None = None,
    telephony_provider: TelephonyProvider | None = None,
    delegate: ResponseDelegateProtocol | None = None,
    registry: SessionRegistry | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    Collaborators default to what the environment configures; tests pass
    their own.
    """
    settings = get_settings()

    app = FastAPI(
        title="Voice Booking Agent API",
        description="Places phone calls to salons and books appointments by voice",
        version=__version__,
        lifespan=lifespan,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
    )

    config = telephony_config or get_telephony_config()
    app.state.telephony_config = config
    app.state.telephony_provider = telephony_provider or create_telephony_provider(config)
    app.state.registry = registry if registry is not None else SessionRegistry()
    app.state.delegate = delegate or ResponseDelegate(settings=settings)
    app.state.callback_router = CallbackRouter(app.state.registry, app.state.delegate)

    # Map domain exceptions to HTTP responses
    @app.exception_handler(ValidationError)
    async def _validation(_: Request, exc: ValidationError) -> JSONResponse:
        return _error(status.HTTP_400_BAD_REQUEST, exc.message)

    @app.exception_handler(NotFoundError)
    async def _not_found(_: Request, exc: NotFoundError) -> JSONResponse:
        return _error(status.HTTP_404_NOT_FOUND, exc.message)

    @app.exception_handler(ConfigurationError)
    async def _configuration(_: Request, exc: ConfigurationError) -> JSONResponse:
        logger.error("Configuration error", extra={"error": exc.message})
        return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, exc.message)

    @app.exception_handler(CallInitiationError)
    async def _call_initiation(_: Request, exc: CallInitiationError) -> JSONResponse:
        return _error(status.HTTP_502_BAD_GATEWAY, f"Failed to place call: {exc.message}")

    @app.exception_handler(AppError)
    async def _app_error(_: Request, exc: AppError) -> JSONResponse:
        logger.error("Unhandled application error", extra={"code": exc.code, "error": exc.message})
        return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, exc.message)

    # Malformed bodies get the same 400 envelope as missing fields.
    @app.exception_handler(RequestValidationError)
    async def _request_validation(_: Request, exc: RequestValidationError) -> JSONResponse:
        fields = sorted({str(error["loc"][-1]) for error in exc.errors() if error.get("loc")})
        message = "Invalid request body"
        if fields:
            message = f"{message}: {', '.join(fields)}"
        return _error(status.HTTP_400_BAD_REQUEST, message)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(calls_router)
    app.include_router(telephony_webhooks_router)

    @app.get("/health")
    async def health_check() -> dict[str, str]:
        return {"status": "healthy"}

    return app


app = create_app()
