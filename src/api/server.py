# src/api/server.py — v2
"""FastAPI application: batch and streaming extraction endpoints.

Endpoints:
    POST /api/extract          batch JSON → JSON
    POST /api/extract/stream   Server-Sent Events
    POST /api/extract/upload   PDF/DOCX upload → text for a later extraction
    GET  /api/rate-limit       caller's current quota window
    GET  /health
"""

from __future__ import annotations

import logging
import uuid
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import Depends, FastAPI, File, Header, Request, UploadFile
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, StreamingResponse

from actionextractor.api.facade import Services, build_services, read_document
from actionextractor.api.models import (
    ErrorBody,
    ExtractRequestBody,
    HealthBody,
    RateLimitBody,
    UploadBody,
)
from actionextractor.api.sse import SSE_HEADERS, SSE_MEDIA_TYPE, stream_run
from actionextractor.config.settings import Settings
from actionextractor.core.errors import (
    INTERNAL_ERROR_MESSAGE,
    ErrorKind,
    PipelineError,
    RateLimitedError,
)
from actionextractor.logging.context import clear_context
from actionextractor.version import __version__

logger = logging.getLogger(__name__)


def create_app(settings: Settings | None = None, services: Services | None = None) -> FastAPI:
    """Build the HTTP application.

    Args:
        settings: Used to build services when ``services`` is None.
        services: Pre-wired services (tests inject fakes here). The app
            closes them on shutdown either way.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if getattr(app.state, "services", None) is None:
            app.state.services = build_services(settings)
        logger.info("actionextractor %s started", __version__)
        yield
        app.state.services.close()
        logger.info("actionextractor stopped")

    app = FastAPI(
        title="actionextractor",
        description="Turns videos, web pages and text into structured action plans",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.services = services
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    _register_exception_handlers(app)

    def get_services(request: Request) -> Services:
        return request.app.state.services

    async def get_user_id(request: Request, svc: Services = Depends(get_services)) -> str:
        return await svc.session_resolver.require_user(request)

    def get_request_id(x_request_id: Optional[str] = Header(None)) -> str:
        return x_request_id or str(uuid.uuid4())

    @app.get("/health", response_model=HealthBody)
    async def health():
        return HealthBody(version=__version__)

    @app.get("/api/rate-limit")
    async def rate_limit(
        user_id: str = Depends(get_user_id),
        svc: Services = Depends(get_services),
    ):
        decision = await svc.rate_limiter.snapshot(user_id)
        body = RateLimitBody.from_decision(decision)
        return JSONResponse(
            body.model_dump(mode="json", by_alias=True, exclude_none=True),
            headers=decision.headers(),
        )

    @app.post("/api/extract")
    async def extract(
        body: ExtractRequestBody,
        user_id: str = Depends(get_user_id),
        request_id: str = Depends(get_request_id),
        svc: Services = Depends(get_services),
    ):
        request = body.to_request(user_id)
        try:
            outcome = await svc.pipeline.run(request, request_id=request_id)
        finally:
            clear_context()
        return JSONResponse(outcome.to_payload())

    @app.post("/api/extract/stream")
    async def extract_stream(
        body: ExtractRequestBody,
        http_request: Request,
        user_id: str = Depends(get_user_id),
        request_id: str = Depends(get_request_id),
        svc: Services = Depends(get_services),
    ):
        request = body.to_request(user_id)
        # denial surfaces as a plain 429 before the stream opens
        precheck = await svc.pipeline.precheck(request)
        return StreamingResponse(
            stream_run(svc.pipeline, request, http_request, precheck=precheck, request_id=request_id),
            media_type=SSE_MEDIA_TYPE,
            headers=SSE_HEADERS,
        )

    @app.post("/api/extract/upload")
    async def extract_upload(
        file: UploadFile = File(...),
        user_id: str = Depends(get_user_id),
        svc: Services = Depends(get_services),
    ):
        data = await file.read()
        document = await read_document(svc.settings, file.filename or "file", data)
        logger.info("Upload from %s: %s (%d chars)", user_id, document.document_type.value,
                    document.char_count)
        return JSONResponse(UploadBody.from_document(document).model_dump(by_alias=True))

    return app


def _error_response(status_code: int, message: str, kind: ErrorKind) -> JSONResponse:
    body = ErrorBody(error=message, kind=kind.value)
    return JSONResponse(body.model_dump(by_alias=True), status_code=status_code)


def _register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(RateLimitedError)
    async def rate_limited_handler(request: Request, exc: RateLimitedError):
        body = RateLimitBody.from_decision(exc.decision, error=exc.message)
        return JSONResponse(
            body.model_dump(mode="json", by_alias=True, include={"error", "limit", "remaining", "reset_at"}),
            status_code=exc.http_status,
            headers=exc.decision.headers(),
        )

    @app.exception_handler(PipelineError)
    async def pipeline_error_handler(request: Request, exc: PipelineError):
        if exc.kind == ErrorKind.INTERNAL:
            logger.error("Internal pipeline error: %s", exc.message)
        else:
            logger.info("Request failed: %s (%s)", exc.message, exc.kind.value)
        return _error_response(exc.http_status, exc.message, exc.kind)

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        errors = exc.errors()
        message = errors[0].get("msg", "Invalid request body.") if errors else "Invalid request body."
        return _error_response(400, message, ErrorKind.VALIDATION)

    @app.exception_handler(Exception)
    async def unexpected_error_handler(request: Request, exc: Exception):
        logger.exception("Unhandled error on %s", request.url.path)
        return _error_response(500, INTERNAL_ERROR_MESSAGE, ErrorKind.INTERNAL)
