"""
api.py

WHAT THIS FILE IS FOR
---------------------
This module defines the FastAPI application entrypoint through which a
CI server drives the commit status publisher.

It is responsible for:
- Creating the FastAPI app instance (title/version/description)
- Registering middleware for correlation ID propagation (X-Correlation-Id)
- Defining standard error responses using a consistent schema:
    {code, message, subErrors, timestamp, correlationId}
- Registering exception handlers for:
    - RequestValidationError (400 VALIDATION_FAILED)
    - HTTPException passthrough (with standardized envelope)
- Exposing HTTP endpoints:
    - GET /health and /healthz
    - POST /api/v1/lifecycle-events
    - POST /api/v1/revision-status
    - POST /api/v1/revision-status/removed-build

CALL SEMANTICS
--------------
Each request is handled synchronously: the response is sent once the
GitLab call has completed or failed. Publish failures are recorded as
problems against the triggering build and answered with 502; benign
GitLab rejections are successes.

DESIGN INTENT
-------------
This file contains ONLY the HTTP layer:
- routing
- middleware
- exception handling
- response formatting

It must NOT contain:
- event -> status mapping
- GitLab URL or payload logic

Those responsibilities live in:
- commit_status/*
"""

from __future__ import annotations

import time
import uuid
from typing import Any, Optional

import structlog
from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from commit_status.dispatcher import dispatch_lifecycle_event
from commit_status.errors import HttpPublisherError, PublisherError
from commit_status.gitlab.publisher import GitLabPublisher
from commit_status.problems import PublisherProblems
from commit_status.utils.http_client import HttpClient
from commit_status.utils.settings import current_publisher_parameters, get_settings
from schemas.commit_status import RevisionStatus
from schemas.input_schema import (
    LifecycleEventRequest,
    RemovedBuildStatusRequest,
    RevisionStatusRequest,
)
from schemas.output_schema import (
    PublishEnvelope,
    PublishResult,
    RevisionStatusData,
    RevisionStatusEnvelope,
)

logger = structlog.get_logger(__name__)

settings = get_settings()
publisher = GitLabPublisher(
    current_publisher_parameters,
    HttpClient(timeout_seconds=settings.http_timeout_seconds),
)
problems = PublisherProblems()

app = FastAPI(
    title="Commit Status Publisher",
    version="1.0.0",
    description="Publishes CI build lifecycle events as GitLab commit statuses.",
)

CORRELATION_HEADER = settings.request_id_header


# -------------------------------------------------------------------
# Helpers
# -------------------------------------------------------------------
def _get_or_create_correlation_id(request: Request) -> str:
    incoming = request.headers.get(CORRELATION_HEADER)
    return incoming.strip() if incoming else f"corr_{uuid.uuid4().hex}"


def _correlation_id(request: Request) -> str:
    return getattr(request.state, "correlation_id", None) or f"corr_{uuid.uuid4().hex}"


def _std_error(
    *,
    code: str,
    message: str,
    correlation_id: str,
    http_status: int,
    sub_errors: Optional[list[dict[str, Any]]] = None,
) -> JSONResponse:
    payload = {
        "code": code,
        "message": message,
        "subErrors": sub_errors or [],
        "timestamp": int(time.time()),
        "correlationId": correlation_id,
    }
    return JSONResponse(
        status_code=http_status,
        content=payload,
        headers={CORRELATION_HEADER: correlation_id},
    )


def _publisher_failure(exc: PublisherError) -> HTTPException:
    detail: dict[str, Any] = {"code": "COMMIT_STATUS_PUBLISH_FAILED", "message": str(exc)}
    if isinstance(exc, HttpPublisherError):
        detail["code"] = "GITLAB_REJECTED"
        detail["remoteStatusCode"] = exc.status_code
    return HTTPException(status_code=502, detail=detail)


# -------------------------------------------------------------------
# Middleware
# -------------------------------------------------------------------
@app.middleware("http")
async def correlation_id_middleware(request: Request, call_next):
    correlation_id = _get_or_create_correlation_id(request)
    request.state.correlation_id = correlation_id
    structlog.contextvars.bind_contextvars(correlation_id=correlation_id)
    try:
        response = await call_next(request)
    finally:
        structlog.contextvars.unbind_contextvars("correlation_id")
    response.headers[CORRELATION_HEADER] = correlation_id
    return response


# -------------------------------------------------------------------
# Exception handlers
# -------------------------------------------------------------------
@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    correlation_id = _correlation_id(request)

    sub_errors: list[dict[str, Any]] = []
    for err in exc.errors():
        field = ".".join(str(x) for x in err.get("loc", []) if x != "body") or "body"
        sub_errors.append(
            {
                "field": field,
                "errors": [{"code": err.get("type"), "message": err.get("msg")}],
            }
        )

    logger.info(
        "request_validation_failed",
        correlation_id=correlation_id,
        error_count=len(sub_errors),
    )

    return _std_error(
        code="VALIDATION_FAILED",
        message="Validation failed",
        correlation_id=correlation_id,
        http_status=400,
        sub_errors=sub_errors,
    )


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException):
    correlation_id = _correlation_id(request)

    logger.warning(
        "http_exception",
        correlation_id=correlation_id,
        status_code=exc.status_code,
        detail=str(exc.detail),
    )

    message = str(exc.detail.get("message")) if isinstance(exc.detail, dict) else str(exc.detail)
    sub_errors: list[dict[str, Any]] = []

    if isinstance(exc.detail, dict) and exc.detail.get("code"):
        error: dict[str, Any] = {"code": exc.detail["code"], "message": message}
        if exc.detail.get("remoteStatusCode") is not None:
            error["remoteStatusCode"] = exc.detail["remoteStatusCode"]
        sub_errors.append({"field": "gitlab", "errors": [error]})

    return _std_error(
        code="BAD_GATEWAY" if exc.status_code >= 500 else "HTTP_ERROR",
        message=message,
        correlation_id=correlation_id,
        http_status=exc.status_code,
        sub_errors=sub_errors,
    )


# -------------------------------------------------------------------
# Endpoints
# -------------------------------------------------------------------
@app.get("/healthz")
@app.get("/health")
async def health():
    return {
        "status": "ok",
        "service": settings.service_name,
        "environment": settings.environment,
        "publisher": str(publisher),
    }


@app.post("/api/v1/lifecycle-events", response_model=PublishEnvelope)
def publish_lifecycle_event(payload: LifecycleEventRequest, request: Request) -> JSONResponse:
    correlation_id = _correlation_id(request)
    build_description = (
        payload.build.describe() if payload.build is not None else payload.promotion.describe()
    )

    try:
        handled = dispatch_lifecycle_event(
            publisher,
            payload.event,
            revision=payload.revision,
            promotion=payload.promotion,
            build=payload.build,
            task_info=payload.task_info,
            build_in_progress=payload.build_in_progress,
            user=payload.user,
            comment=payload.comment,
        )
    except PublisherError as exc:
        problems.report_problem(
            publisher.publisher_id,
            build_description,
            str(exc),
            status_code=getattr(exc, "status_code", None),
        )
        raise _publisher_failure(exc) from exc

    logger.info(
        "lifecycle_event_handled",
        correlation_id=correlation_id,
        lifecycle_event=payload.event.value,
        build=build_description,
        revision=payload.revision.revision,
        handled=handled,
    )

    envelope = PublishEnvelope(
        correlation_id=correlation_id,
        data=PublishResult(publisher=publisher.publisher_id, event=payload.event, handled=handled),
    )
    return JSONResponse(status_code=200, content=envelope.model_dump(mode="json", by_alias=True))


@app.post("/api/v1/revision-status", response_model=RevisionStatusEnvelope)
def revision_status(payload: RevisionStatusRequest, request: Request) -> JSONResponse:
    try:
        status = publisher.get_revision_status(payload.promotion, payload.revision)
    except PublisherError as exc:
        raise _publisher_failure(exc) from exc
    return _revision_status_response(status, _correlation_id(request))


@app.post("/api/v1/revision-status/removed-build", response_model=RevisionStatusEnvelope)
def removed_build_revision_status(payload: RemovedBuildStatusRequest, request: Request) -> JSONResponse:
    try:
        status = publisher.get_revision_status_for_removed_build(payload.removed_build, payload.revision)
    except PublisherError as exc:
        raise _publisher_failure(exc) from exc
    return _revision_status_response(status, _correlation_id(request))


def _revision_status_response(status: Optional[RevisionStatus], correlation_id: str) -> JSONResponse:
    envelope = RevisionStatusEnvelope(
        correlation_id=correlation_id,
        data=RevisionStatusData.from_revision_status(status) if status is not None else None,
    )
    return JSONResponse(status_code=200, content=envelope.model_dump(mode="json", by_alias=True))
