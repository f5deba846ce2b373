"""
commit_status/dispatcher.py

Routes one lifecycle event to the matching publisher method.

Queue events (QUEUED, REMOVED_FROM_QUEUE) need the build promotion and
the additional task info; every other event needs the build. Missing
context is a caller bug and raises ValueError before the publisher is
touched.
"""

from __future__ import annotations

from typing import Optional

from commit_status.publisher_base import CommitStatusPublisher
from schemas.build_context import AdditionalTaskInfo, Build, BuildPromotion, BuildRevision
from schemas.commit_status import LifecycleEvent

QUEUE_EVENTS = frozenset({LifecycleEvent.QUEUED, LifecycleEvent.REMOVED_FROM_QUEUE})


def dispatch_lifecycle_event(
    publisher: CommitStatusPublisher,
    event: LifecycleEvent,
    *,
    revision: BuildRevision,
    promotion: Optional[BuildPromotion] = None,
    build: Optional[Build] = None,
    task_info: Optional[AdditionalTaskInfo] = None,
    build_in_progress: bool = False,
    user: Optional[str] = None,
    comment: Optional[str] = None,
) -> bool:
    if event in QUEUE_EVENTS:
        if promotion is None:
            raise ValueError(f"{event.value} requires a build promotion")
        info = task_info or AdditionalTaskInfo()
        if event is LifecycleEvent.QUEUED:
            return publisher.build_queued(promotion, revision, info)
        return publisher.build_removed_from_queue(promotion, revision, info)

    if build is None:
        raise ValueError(f"{event.value} requires a build")

    if event is LifecycleEvent.STARTED:
        return publisher.build_started(build, revision)
    if event is LifecycleEvent.FINISHED:
        return publisher.build_finished(build, revision)
    if event is LifecycleEvent.COMMENTED:
        return publisher.build_commented(build, revision, user, comment, build_in_progress)
    if event is LifecycleEvent.INTERRUPTED:
        return publisher.build_interrupted(build, revision)
    if event is LifecycleEvent.FAILURE_DETECTED:
        return publisher.build_failure_detected(build, revision)
    if event is LifecycleEvent.MARKED_AS_SUCCESSFUL:
        return publisher.build_marked_as_successful(build, revision, build_in_progress)
    raise ValueError(f"Unsupported lifecycle event {event!r}")
