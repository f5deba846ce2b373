"""
commit_status/fakes/mock_publisher.py

WHAT THIS FILE IS FOR
---------------------
A deterministic stand-in publisher used to validate the lifecycle
contract (which calls arrive, in which order, with which comments)
without a GitLab instance.

It records:
- events received, in arrival order
- comments, publishing contexts ("<build type> (<project>)") and
  target revisions for each publishing call
- the last comment author seen on a queue removal
- success / failure counters for finished builds

SYNCHRONIZATION
---------------
Tests can hold a lifecycle call before it is recorded:

    mock.set_event_to_wait(LifecycleEvent.STARTED)
    # a CI thread calling mock.build_started(...) now blocks ...
    mock.notify_waiting_event(LifecycleEvent.STARTED, delay_seconds=0.1)
    # ... until notified, or until wait_timeout_seconds elapses

A notification sent before the call starts waiting is not lost.

FAILURE INJECTION
-----------------
- should_throw_exception(): build_finished raises PublisherError
- should_report_error():   build_finished reports a problem instead

WHAT THIS FILE IS NOT FOR
-------------------------
This is not a production publisher and does not talk to any remote.
"""

from __future__ import annotations

import threading
import time
from typing import Dict, List, Optional, Set

import structlog

from commit_status.errors import PublisherError
from commit_status.gitlab.status_mapper import DefaultStatusMessages
from commit_status.problems import PublisherProblems
from commit_status.publisher_base import CommitStatusPublisher
from schemas.build_context import (
    AdditionalTaskInfo,
    Build,
    BuildPromotion,
    BuildRevision,
    BuildType,
    QueuedBuild,
)
from schemas.commit_status import LifecycleEvent, RevisionStatus

logger = structlog.get_logger(__name__)

PUBLISHER_ERROR = "Simulated publisher exception"


class MockPublisher(CommitStatusPublisher):
    def __init__(
        self,
        publisher_id: str = "mockPublisher",
        problems: Optional[PublisherProblems] = None,
        wait_timeout_seconds: float = 10.0,
    ):
        self.publisher_id = publisher_id
        self.problems = problems or PublisherProblems()
        self.wait_timeout_seconds = wait_timeout_seconds

        self._lock = threading.Lock()
        self._events_to_wait: Set[LifecycleEvent] = set()
        self._signals: Dict[LifecycleEvent, threading.Event] = {}

        self._should_throw_exception = False
        self._should_report_error = False
        self._failures_received = 0
        self._success_received = 0
        self._last_user: Optional[str] = None

        self._events_received: List[LifecycleEvent] = []
        self._publishing_builds: List[str] = []
        self._comments_received: List[Optional[str]] = []
        self._publishing_target_revisions: List[str] = []

    # ------------------------------------------------------------------ #
    # Snapshot reads
    # ------------------------------------------------------------------ #
    def events_received(self) -> List[LifecycleEvent]:
        with self._lock:
            return list(self._events_received)

    def comments_received(self) -> List[Optional[str]]:
        with self._lock:
            return list(self._comments_received)

    def publishing_builds(self) -> List[str]:
        with self._lock:
            return list(self._publishing_builds)

    def publishing_target_revisions(self) -> List[str]:
        with self._lock:
            return list(self._publishing_target_revisions)

    @property
    def last_comment(self) -> Optional[str]:
        with self._lock:
            return self._comments_received[-1] if self._comments_received else None

    @property
    def last_target_revision(self) -> Optional[str]:
        with self._lock:
            if not self._publishing_target_revisions:
                return None
            return self._publishing_target_revisions[-1]

    @property
    def last_user(self) -> Optional[str]:
        return self._last_user

    @property
    def success_received(self) -> int:
        return self._success_received

    def is_failure_received(self) -> bool:
        return self._failures_received > 0

    def is_success_received(self) -> bool:
        return self._success_received > 0

    # ------------------------------------------------------------------ #
    # Test controls
    # ------------------------------------------------------------------ #
    def should_throw_exception(self) -> None:
        self._should_throw_exception = True

    def should_report_error(self) -> None:
        self._should_report_error = True

    def set_event_to_wait(self, event: LifecycleEvent) -> None:
        with self._lock:
            self._events_to_wait.add(event)
            self._signals.setdefault(event, threading.Event())

    def notify_waiting_event(self, event: LifecycleEvent, delay_seconds: float = 0.0) -> None:
        with self._lock:
            signal = self._signals.get(event) if event in self._events_to_wait else None
        if signal is None:
            return
        if delay_seconds > 0:
            time.sleep(delay_seconds)
        signal.set()

    # ------------------------------------------------------------------ #
    # Lifecycle calls
    # ------------------------------------------------------------------ #
    def build_queued(
        self,
        promotion: BuildPromotion,
        revision: BuildRevision,
        task_info: AdditionalTaskInfo,
    ) -> bool:
        self._pretend_to_handle_event(LifecycleEvent.QUEUED)
        self._record_publishing(task_info.comment, promotion.build_type, promotion.build_type_external_id, revision)
        return True

    def build_removed_from_queue(
        self,
        promotion: BuildPromotion,
        revision: BuildRevision,
        task_info: AdditionalTaskInfo,
    ) -> bool:
        # Not recorded as an event: the queue removal only leaves its comment behind.
        self._record_publishing(task_info.comment, promotion.build_type, promotion.build_type_external_id, revision)
        self._last_user = task_info.comment_author
        return True

    def build_started(self, build: Build, revision: BuildRevision) -> bool:
        self._pretend_to_handle_event(LifecycleEvent.STARTED)
        self._record_publishing(
            DefaultStatusMessages.BUILD_STARTED, build.build_type, build.build_type_external_id, revision
        )
        return True

    def build_finished(self, build: Build, revision: BuildRevision) -> bool:
        self._pretend_to_handle_event(LifecycleEvent.FINISHED)
        self._record_publishing(
            DefaultStatusMessages.BUILD_FINISHED, build.build_type, build.build_type_external_id, revision
        )
        with self._lock:
            if build.successful:
                self._success_received += 1
            else:
                self._failures_received += 1

        if self._should_throw_exception:
            raise PublisherError(PUBLISHER_ERROR)
        if self._should_report_error:
            self.problems.report_problem(self.publisher_id, build.describe(), "My build")
        return True

    def build_commented(
        self,
        build: Build,
        revision: BuildRevision,
        user: Optional[str],
        comment: Optional[str],
        build_in_progress: bool,
    ) -> bool:
        self._pretend_to_handle_event(LifecycleEvent.COMMENTED)
        self._record_publishing(comment, build.build_type, build.build_type_external_id, revision)
        return True

    def build_interrupted(self, build: Build, revision: BuildRevision) -> bool:
        self._pretend_to_handle_event(LifecycleEvent.INTERRUPTED)
        return True

    def build_failure_detected(self, build: Build, revision: BuildRevision) -> bool:
        self._pretend_to_handle_event(LifecycleEvent.FAILURE_DETECTED)
        with self._lock:
            self._failures_received += 1
        return True

    def build_marked_as_successful(
        self,
        build: Build,
        revision: BuildRevision,
        build_in_progress: bool,
    ) -> bool:
        self._pretend_to_handle_event(LifecycleEvent.MARKED_AS_SUCCESSFUL)
        return super().build_marked_as_successful(build, revision, build_in_progress)

    # ------------------------------------------------------------------ #
    # Reconciliation
    # ------------------------------------------------------------------ #
    def get_revision_status(
        self,
        promotion: BuildPromotion,
        revision: BuildRevision,
    ) -> Optional[RevisionStatus]:
        with self._lock:
            if not self._events_received:
                return None
            last_event = self._events_received[-1]
            last_comment = self._comments_received[-1] if self._comments_received else None
            last_context = self._publishing_builds[-1] if self._publishing_builds else None

        context = prepare_context_name(promotion.build_type, promotion.build_type_external_id)
        return RevisionStatus(
            event=last_event,
            description=last_comment,
            is_current=context == last_context,
        )

    def get_revision_status_for_removed_build(
        self,
        removed_build: QueuedBuild,
        revision: BuildRevision,
    ) -> Optional[RevisionStatus]:
        return self.get_revision_status(removed_build.promotion, revision)

    # ------------------------------------------------------------------ #
    # Internal helpers
    # ------------------------------------------------------------------ #
    def _pretend_to_handle_event(self, event: LifecycleEvent) -> None:
        with self._lock:
            signal = self._signals.get(event) if event in self._events_to_wait else None

        if signal is not None:
            if not signal.wait(self.wait_timeout_seconds):
                logger.warning(
                    "mock_publisher_wait_timeout",
                    lifecycle_event=event.value,
                    timeout_seconds=self.wait_timeout_seconds,
                )
            signal.clear()

        with self._lock:
            self._events_received.append(event)

    def _record_publishing(
        self,
        comment: Optional[str],
        build_type: Optional[BuildType],
        external_id: str,
        revision: BuildRevision,
    ) -> None:
        with self._lock:
            self._comments_received.append(comment)
            self._publishing_builds.append(prepare_context_name(build_type, external_id))
            self._publishing_target_revisions.append(revision.revision)


def prepare_context_name(build_type: Optional[BuildType], external_id: str = "") -> str:
    if build_type is None:
        return external_id
    return f"{build_type.name} ({build_type.project_name})"
