"""
commit_status/gitlab/response_classifier.py

WHAT THIS FILE IS FOR
---------------------
Decides whether a GitLab response is a failure.

GitLab keeps a small state machine per commit status and rejects
transitions that would not change anything, e.g.

    {"message": "Cannot transition status via :enqueue from :pending ..."}

These show up when lifecycle events are delivered twice or race each
other (two CI server threads publishing for the same revision). The
remote already shows the desired status, so they are absorbed and the
publish counts as a success.

Every other status >= 400 raises HttpPublisherError with the status
code, status text and raw body.

Reads (listing statuses) have no benign bodies: any >= 400 fails.
"""

from __future__ import annotations

from typing import Optional, Protocol

import structlog

from commit_status.errors import HttpPublisherError

logger = structlog.get_logger(__name__)

BENIGN_TRANSITION_MARKERS = (
    "Cannot transition status via :enqueue from :pending",
    "Cannot transition status via :enqueue from :running",
    "Cannot transition status via :run from :running",
)


class ResponseLike(Protocol):
    """The subset of requests.Response the classifier reads."""

    status_code: int
    reason: Optional[str]
    text: str


def is_benign_rejection(body: Optional[str]) -> bool:
    if not body:
        return False
    return any(marker in body for marker in BENIGN_TRANSITION_MARKERS)


def check_publish_response(response: ResponseLike) -> None:
    status_code = response.status_code
    if status_code < 400:
        return

    body = response.text or ""
    if is_benign_rejection(body):
        logger.info(
            "commit_status_benign_rejection",
            status_code=status_code,
            response_snippet=body[:500],
        )
        return

    raise HttpPublisherError(status_code, response.reason, body)


def check_query_response(response: ResponseLike) -> None:
    if response.status_code >= 400:
        raise HttpPublisherError(response.status_code, response.reason, response.text)
