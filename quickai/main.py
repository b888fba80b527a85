import logging
import os
from contextlib import asynccontextmanager
from typing import Optional

from dotenv import load_dotenv
from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException

load_dotenv()

from quickai.api import creations, generate, health
from quickai.api.deps import ServiceContainer, build_services
from quickai.core.config import settings, validate_config
from quickai.core.errors import (
    AppError,
    app_error_handler,
    http_error_handler,
    request_validation_handler,
    unhandled_exception_handler,
)
from quickai.core.logging import configure_logging
from quickai.core.middleware.request_id import RequestIdMiddleware
from quickai.core.validation import validate_env

logger = logging.getLogger("quickai")


def create_app(services: Optional[ServiceContainer] = None) -> FastAPI:
    """
    Build the API.

    Args:
        services: Pre-built collaborators. When omitted, the lifespan hook
            builds them from settings on startup.
    """
    configure_logging(settings.ENV)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if getattr(app.state, "services", None) is None:
            validate_env(settings_obj=settings)
            validate_config(strict=settings.CONFIG_STRICT, settings_obj=settings)
            app.state.services = build_services(settings)
        logger.info("Starting QuickAI backend...")
        try:
            yield
        finally:
            logger.info("Stopping QuickAI backend...")

    app = FastAPI(title="QuickAI - Backend", lifespan=lifespan)
    app.state.services = services

    app.add_middleware(RequestIdMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=[settings.CLIENT_URL],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(AppError, app_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(StarletteHTTPException, http_error_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)

    app.include_router(health.router)
    app.include_router(generate.router)
    app.include_router(creations.router)
    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("quickai.main:app", host="0.0.0.0", port=int(os.getenv("PORT", "3000")))
