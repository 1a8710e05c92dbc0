"""FastAPI application for the content cluster engine.

- Every request gets an id (X-Request-ID) and is logged with its timing
- Request bodies are logged at DEBUG with sensitive fields redacted
- Every error leaves as {"error", "code", "request_id"[, "details"]}
- Health endpoints at /health and /health/db
"""

import json
import logging
import time
import uuid
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from content_clusters.api.v1 import router as api_v1_router
from content_clusters.core.config import get_settings
from content_clusters.core.database import db_manager
from content_clusters.core.errors import ClusterEngineError
from content_clusters.core.logging import get_logger, setup_logging
from content_clusters.integrations.claude import (
    TextGenerationError,
    close_claude,
    init_claude,
)

setup_logging()
logger = get_logger(__name__)

SENSITIVE_FIELDS = frozenset({"password", "token", "secret", "api_key", "authorization"})
REDACTED = "****"

# Bodies of these methods are never logged
_BODYLESS_METHODS = frozenset({"GET", "HEAD", "OPTIONS", "DELETE"})


def sanitize_body(body: Any) -> Any:
    """Redact sensitive keys at any depth of a decoded JSON body."""
    if isinstance(body, list):
        return [sanitize_body(item) for item in body]
    if not isinstance(body, dict):
        return body
    return {
        key: REDACTED if key.lower() in SENSITIVE_FIELDS else sanitize_body(value)
        for key, value in body.items()
    }


def _request_id(request: Request) -> str:
    return getattr(request.state, "request_id", "unknown")


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Assigns a request id and logs each request with status and duration."""

    async def dispatch(self, request: Request, call_next: Any) -> Any:
        request_id = str(uuid.uuid4())
        request.state.request_id = request_id
        started = time.monotonic()
        base_extra = {
            "request_id": request_id,
            "method": request.method,
            "path": request.url.path,
        }
        logger.info("Request started", extra=base_extra)

        if request.method not in _BODYLESS_METHODS and logger.isEnabledFor(logging.DEBUG):
            await self._log_body(request, request_id)

        response = await call_next(request)
        response.headers["X-Request-ID"] = request_id

        extra = {
            **base_extra,
            "status_code": response.status_code,
            "duration_ms": round((time.monotonic() - started) * 1000, 2),
        }
        if response.status_code >= 500:
            logger.error("Request failed", extra=extra)
        elif response.status_code >= 400:
            logger.warning("Request rejected", extra=extra)
        else:
            logger.info("Request completed", extra=extra)
        return response

    @staticmethod
    async def _log_body(request: Request, request_id: str) -> None:
        raw = await request.body()
        if not raw:
            return
        try:
            body = sanitize_body(json.loads(raw))
        except json.JSONDecodeError:
            logger.debug(
                "Request body (non-JSON)",
                extra={"request_id": request_id, "body_length": len(raw)},
            )
            return
        logger.debug("Request body", extra={"request_id": request_id, "body": body})


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    settings = get_settings()
    logger.info(
        "Starting content cluster engine",
        extra={"version": settings.app_version, "environment": settings.environment},
    )
    db_manager.init_db()
    claude = await init_claude()
    if not claude.available:
        logger.warning(
            "Text generation unavailable: ANTHROPIC_API_KEY is not set; "
            "strategy generation and cluster builds will fail"
        )

    yield

    await close_claude()
    await db_manager.close()
    logger.info("Content cluster engine stopped")


def _error_response(
    request: Request,
    status_code: int,
    message: str,
    code: str,
    details: dict[str, Any] | None = None,
) -> JSONResponse:
    content: dict[str, Any] = {
        "error": message,
        "code": code,
        "request_id": _request_id(request),
    }
    if details:
        content["details"] = details
    return JSONResponse(status_code=status_code, content=content)


def register_exception_handlers(app: FastAPI) -> None:
    """Render every failure in the structured error format."""

    @app.exception_handler(RequestValidationError)
    async def handle_validation_error(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        message = "; ".join(
            f"{'.'.join(str(loc) for loc in err['loc'])}: {err['msg']}"
            for err in exc.errors()
        )
        logger.warning(
            "Validation error",
            extra={"request_id": _request_id(request), "errors": message},
        )
        return _error_response(
            request, status.HTTP_422_UNPROCESSABLE_ENTITY, message, "VALIDATION_ERROR"
        )

    @app.exception_handler(ClusterEngineError)
    async def handle_engine_error(
        request: Request, exc: ClusterEngineError
    ) -> JSONResponse:
        log = logger.error if exc.status_code >= 500 else logger.warning
        log(
            "Cluster engine error",
            extra={
                "request_id": _request_id(request),
                "code": exc.code,
                "error_message": exc.message,
            },
        )
        return _error_response(
            request, exc.status_code, exc.message, exc.code, exc.details()
        )

    @app.exception_handler(TextGenerationError)
    async def handle_text_generation_error(
        request: Request, exc: TextGenerationError
    ) -> JSONResponse:
        logger.error(
            "Text generation failed",
            extra={
                "request_id": _request_id(request),
                "error_message": str(exc),
                "upstream_status": exc.status_code,
                "upstream_request_id": exc.request_id,
            },
        )
        return _error_response(
            request,
            status.HTTP_502_BAD_GATEWAY,
            f"Text generation failed: {exc}",
            "TEXT_GENERATION_FAILED",
            {"retryable": True},
        )

    @app.exception_handler(Exception)
    async def handle_unexpected(request: Request, exc: Exception) -> JSONResponse:
        logger.error(
            "Unhandled exception",
            extra={
                "request_id": _request_id(request),
                "error_type": type(exc).__name__,
                "error_message": str(exc),
            },
            exc_info=True,
        )
        return _error_response(
            request,
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            "An internal error occurred. Please try again later.",
            "INTERNAL_ERROR",
        )


def create_app() -> FastAPI:
    settings = get_settings()
    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        docs_url="/docs" if settings.debug else None,
        redoc_url=None,
        lifespan=lifespan,
    )

    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=[settings.frontend_url] if settings.frontend_url else ["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    register_exception_handlers(app)

    @app.get("/health", tags=["Health"])
    async def health_check() -> dict[str, str]:
        return {"status": "ok"}

    @app.get("/health/db", tags=["Health"])
    async def database_health() -> dict[str, str | bool]:
        reachable = await db_manager.check_connection()
        return {"status": "ok" if reachable else "error", "database": reachable}

    app.include_router(api_v1_router, prefix="/api/v1")
    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "content_clusters.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
    )
