"""HTTP endpoint for the meal analysis pipeline.

Single POST endpoint (mounted at ``/`` and ``/analyze``) plus the OPTIONS
preflight. ``CORSMiddleware`` allows any origin; pipeline errors become
``{"error": "<message>"}`` with the status of their error class.

Run:
    uvicorn meal_processor.api.app:app --port 8000
"""

from __future__ import annotations

import json
from typing import Any, Optional

import structlog
from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse

from meal_processor import __version__
from meal_processor.application.router import RequestRouter, TransportFactory
from meal_processor.config import Settings, load_settings
from meal_processor.domain.shared.errors import ProcessorError, ValidationError
from meal_processor.logging_config import configure_logging

logger = structlog.get_logger(__name__)

CORS_ALLOW_METHODS = ["POST", "OPTIONS"]
CORS_ALLOW_HEADERS = ["authorization", "x-client-info", "apikey", "content-type"]

# For responses produced outside CORSMiddleware (plain OPTIONS, unhandled errors).
CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Headers": ", ".join(CORS_ALLOW_HEADERS),
    "Access-Control-Allow-Methods": ", ".join(CORS_ALLOW_METHODS),
}

ANALYZE_PATHS = ("/", "/analyze")


def error_response(exc: ProcessorError) -> JSONResponse:
    return JSONResponse(status_code=exc.http_status, content={"error": exc.message})


def create_app(
    settings: Optional[Settings] = None,
    transport_factory: Optional[TransportFactory] = None,
) -> FastAPI:
    """
    Build the FastAPI application.

    Args:
        settings: Process configuration (loaded from the environment if None)
        transport_factory: Optional transport factory (for testing)

    Returns:
        Configured FastAPI app
    """
    settings = settings or load_settings()
    configure_logging(settings.log_level, settings.log_format)

    router = RequestRouter(settings, transport_factory=transport_factory)

    app = FastAPI(title="Meal Analysis Processor", version=__version__)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=CORS_ALLOW_METHODS,
        allow_headers=CORS_ALLOW_HEADERS,
    )

    async def preflight() -> PlainTextResponse:
        return PlainTextResponse("ok", headers=CORS_HEADERS)

    async def analyze(request: Request) -> JSONResponse:
        try:
            settings.require_api_key()
            try:
                body = await request.json()
            except (json.JSONDecodeError, UnicodeDecodeError) as exc:
                raise ValidationError("Request body must be valid JSON") from exc
            result = await router.handle(body)
        except ProcessorError as exc:
            return error_response(exc)
        return JSONResponse(status_code=status.HTTP_200_OK, content=result)

    for path in ANALYZE_PATHS:
        app.add_api_route(path, analyze, methods=["POST"], include_in_schema=path == "/")
        app.add_api_route(path, preflight, methods=["OPTIONS"], include_in_schema=False)

    @app.get("/health")
    async def health() -> dict[str, str]:
        return {"status": "ok"}

    @app.exception_handler(Exception)
    async def unhandled(_: Request, exc: Exception) -> JSONResponse:  # pragma: no cover
        logger.exception("unhandled_error", error=str(exc))
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"error": "Internal server error"},
            headers=CORS_HEADERS,
        )

    logger.info(
        "app_configured",
        model=settings.model,
        credential_configured=bool(settings.api_key),
        max_attempts=settings.max_attempts,
    )
    return app


app = create_app()
