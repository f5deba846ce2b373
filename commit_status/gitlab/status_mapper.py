"""
commit_status/gitlab/status_mapper.py

WHAT THIS FILE IS FOR
---------------------
This module defines the *single canonical rule* for mapping
build lifecycle events onto GitLab commit statuses, and back.

FORWARD MAPPING (event -> GitLab status)
----------------------------------------
Total, no failure mode for publishing events:

- QUEUED                                  -> pending
- REMOVED_FROM_QUEUE, promotion replaced  -> pending
- REMOVED_FROM_QUEUE, truly removed       -> canceled
- STARTED                                 -> running
- FINISHED, successful                    -> success
- FINISHED, unsuccessful                  -> failed
- FAILURE_DETECTED                        -> failed
- MARKED_AS_SUCCESSFUL, still in progress -> running
- MARKED_AS_SUCCESSFUL, finished          -> success
- INTERRUPTED                             -> canceled

COMMENTED is not published, so it has no status.

REVERSE MAPPING (GitLab status + description -> event)
------------------------------------------------------
Partial and lossy:

- pending  -> QUEUED
- canceled -> REMOVED_FROM_QUEUE only when the description carries the
              "Build removed from queue" marker. An interrupted build is
              also canceled and cannot be told apart from free text, so
              any other canceled status maps to None.
- running / success / failed -> None (reachable from several events)
- missing or unknown status -> None, logged as a warning

The canceled disambiguation is substring based on purpose: it must keep
matching statuses published by older versions of this publisher. Do not
extend marker matching to other statuses.

WHAT THIS FILE IS NOT FOR
-------------------------
This module MUST NOT:
- Perform HTTP calls
- Build payloads
- Raise on anything the remote returns
"""

from __future__ import annotations

from typing import Optional

import structlog

from schemas.commit_status import GitlabBuildStatus, LifecycleEvent

logger = structlog.get_logger(__name__)


class DefaultStatusMessages:
    BUILD_QUEUED = "Build queued"
    BUILD_REMOVED_FROM_QUEUE = "Build removed from queue"
    BUILD_STARTED = "Build started"
    BUILD_FINISHED = "Build finished"
    BUILD_FAILED = "Build failed"
    BUILD_MARKED_SUCCESSFUL = "Build marked as successful"
    BUILD_INTERRUPTED = "Build interrupted"


def to_gitlab_status(
    event: LifecycleEvent,
    *,
    successful: Optional[bool] = None,
    promotion_replaced: bool = False,
    build_in_progress: bool = False,
) -> GitlabBuildStatus:
    """
    Forward mapping.

    `successful` is only consulted for FINISHED, `promotion_replaced`
    for REMOVED_FROM_QUEUE and `build_in_progress` for
    MARKED_AS_SUCCESSFUL.
    """
    if event is LifecycleEvent.QUEUED:
        return GitlabBuildStatus.PENDING
    if event is LifecycleEvent.REMOVED_FROM_QUEUE:
        return GitlabBuildStatus.PENDING if promotion_replaced else GitlabBuildStatus.CANCELED
    if event is LifecycleEvent.STARTED:
        return GitlabBuildStatus.RUNNING
    if event is LifecycleEvent.FINISHED:
        if successful is None:
            raise ValueError("FINISHED requires the build outcome")
        return GitlabBuildStatus.SUCCESS if successful else GitlabBuildStatus.FAILED
    if event is LifecycleEvent.FAILURE_DETECTED:
        return GitlabBuildStatus.FAILED
    if event is LifecycleEvent.MARKED_AS_SUCCESSFUL:
        return GitlabBuildStatus.RUNNING if build_in_progress else GitlabBuildStatus.SUCCESS
    if event is LifecycleEvent.INTERRUPTED:
        return GitlabBuildStatus.CANCELED
    raise ValueError(f"No GitLab status is published for event {event.value}")


def to_lifecycle_event(
    status: Optional[str],
    description: Optional[str],
) -> Optional[LifecycleEvent]:
    """Reverse mapping; never raises."""
    if status is None:
        logger.warning("gitlab_status_missing", reason="related event can not be calculated")
        return None

    gitlab_status = GitlabBuildStatus.get_by_name(status)
    if gitlab_status is None:
        logger.warning("gitlab_status_unknown", status=status)
        return None

    if gitlab_status is GitlabBuildStatus.PENDING:
        return LifecycleEvent.QUEUED
    if gitlab_status is GitlabBuildStatus.CANCELED:
        if description and DefaultStatusMessages.BUILD_REMOVED_FROM_QUEUE in description:
            return LifecycleEvent.REMOVED_FROM_QUEUE
        logger.debug("gitlab_canceled_status_ambiguous", description=description)
        return None

    # running / success / failed
    return None
