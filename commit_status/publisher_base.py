"""
commit_status/publisher_base.py

The interface every commit status publisher implements.

A publisher receives one call per lifecycle event and reports on the
revisions of a single build configuration. Calls are synchronous: the
CI server thread raising the event is blocked until the call returns or
raises PublisherError.

Publishing methods return True when the event was handled and False
when the publisher does not react to that event. The defaults below
ignore every event; implementations override the ones they support.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Optional

from schemas.build_context import (
    AdditionalTaskInfo,
    Build,
    BuildPromotion,
    BuildRevision,
    QueuedBuild,
)
from schemas.commit_status import RevisionStatus


class CommitStatusPublisher(ABC):
    publisher_id: str = ""

    def build_queued(
        self,
        promotion: BuildPromotion,
        revision: BuildRevision,
        task_info: AdditionalTaskInfo,
    ) -> bool:
        return False

    def build_removed_from_queue(
        self,
        promotion: BuildPromotion,
        revision: BuildRevision,
        task_info: AdditionalTaskInfo,
    ) -> bool:
        return False

    def build_started(self, build: Build, revision: BuildRevision) -> bool:
        return False

    def build_finished(self, build: Build, revision: BuildRevision) -> bool:
        return False

    def build_commented(
        self,
        build: Build,
        revision: BuildRevision,
        user: Optional[str],
        comment: Optional[str],
        build_in_progress: bool,
    ) -> bool:
        return False

    def build_interrupted(self, build: Build, revision: BuildRevision) -> bool:
        return False

    def build_failure_detected(self, build: Build, revision: BuildRevision) -> bool:
        return False

    def build_marked_as_successful(
        self,
        build: Build,
        revision: BuildRevision,
        build_in_progress: bool,
    ) -> bool:
        return False

    @abstractmethod
    def get_revision_status(
        self,
        promotion: BuildPromotion,
        revision: BuildRevision,
    ) -> Optional[RevisionStatus]:
        """What we believe we last reported for `revision`; None means no opinion."""

    @abstractmethod
    def get_revision_status_for_removed_build(
        self,
        removed_build: QueuedBuild,
        revision: BuildRevision,
    ) -> Optional[RevisionStatus]:
        """Same as get_revision_status, for a build that has left the queue."""
