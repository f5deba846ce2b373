"""
commit_status/gitlab/publisher.py

WHAT THIS FILE IS FOR
---------------------
GitLabPublisher translates build lifecycle events into GitLab commit
statuses and reconciles them back.

CALL FLOW CONTEXT
-----------------
CI server event (or api.py)
  → GitLabPublisher.build_*()
      → status_mapper.to_gitlab_status()
      → message_builder.build_status_message()
      → GitLabApi.publish_status()
          → POST {api}/projects/{id}/statuses/{sha}
          → response_classifier.check_publish_response()

EVENT TABLE
-----------
build_queued               pending            comment (or "Build queued")
build_removed_from_queue   pending / canceled comment (or "Build removed from queue")
build_started              running            "Build started"
build_finished             success / failed   build status text
build_failure_detected     failed             build status text (best available)
build_marked_as_successful running / success  "Build marked as successful"
build_interrupted          canceled           build status text
build_commented            not published

STATE
-----
There is no local state. The status of a (commit, context) lives on
GitLab; every event is published, duplicates included, and GitLab's
rejections of no-op transitions are absorbed by the response classifier.

ERROR HANDLING RULES
--------------------
All failures raise PublisherError (HttpPublisherError for remote
rejections) to the caller. Configuration errors are raised before any
request is sent.
"""

from __future__ import annotations

from typing import Callable, Optional

import structlog

from commit_status.gitlab.gitlab_api import GitLabApi
from commit_status.gitlab.message_builder import build_status_message, serialize
from commit_status.gitlab.reconciler import RevisionStatusReconciler
from commit_status.gitlab.status_mapper import DefaultStatusMessages, to_gitlab_status
from commit_status.publisher_base import CommitStatusPublisher
from commit_status.utils.http_client import HttpClient
from commit_status.utils.settings import PublisherParameters
from schemas.build_context import (
    AdditionalTaskInfo,
    Build,
    BuildPromotion,
    BuildRevision,
    BuildType,
    QueuedBuild,
)
from schemas.commit_status import GitlabBuildStatus, LifecycleEvent, RevisionStatus

logger = structlog.get_logger(__name__)

GITLAB_PUBLISHER_ID = "gitlabStatusPublisher"


class GitLabPublisher(CommitStatusPublisher):
    publisher_id = GITLAB_PUBLISHER_ID

    def __init__(
        self,
        parameters: Callable[[], PublisherParameters],
        http: Optional[HttpClient] = None,
    ):
        self.api = GitLabApi(http or HttpClient(), parameters)
        self.reconciler = RevisionStatusReconciler(self.api)

    def __str__(self) -> str:
        return "GitLab"

    # ------------------------------------------------------------------ #
    # Queue events
    # ------------------------------------------------------------------ #
    def build_queued(
        self,
        promotion: BuildPromotion,
        revision: BuildRevision,
        task_info: AdditionalTaskInfo,
    ) -> bool:
        status = to_gitlab_status(LifecycleEvent.QUEUED)
        self._publish_promotion(
            promotion,
            revision,
            status,
            task_info.comment or DefaultStatusMessages.BUILD_QUEUED,
        )
        return True

    def build_removed_from_queue(
        self,
        promotion: BuildPromotion,
        revision: BuildRevision,
        task_info: AdditionalTaskInfo,
    ) -> bool:
        status = to_gitlab_status(
            LifecycleEvent.REMOVED_FROM_QUEUE,
            promotion_replaced=task_info.promotion_replaced,
        )
        self._publish_promotion(
            promotion,
            revision,
            status,
            task_info.comment or DefaultStatusMessages.BUILD_REMOVED_FROM_QUEUE,
        )
        return True

    # ------------------------------------------------------------------ #
    # Build events
    # ------------------------------------------------------------------ #
    def build_started(self, build: Build, revision: BuildRevision) -> bool:
        self._publish_build(
            build,
            revision,
            to_gitlab_status(LifecycleEvent.STARTED),
            DefaultStatusMessages.BUILD_STARTED,
        )
        return True

    def build_finished(self, build: Build, revision: BuildRevision) -> bool:
        status = to_gitlab_status(LifecycleEvent.FINISHED, successful=build.successful)
        fallback = (
            DefaultStatusMessages.BUILD_FINISHED
            if build.successful
            else DefaultStatusMessages.BUILD_FAILED
        )
        self._publish_build(build, revision, status, build.status_text or fallback)
        return True

    def build_failure_detected(self, build: Build, revision: BuildRevision) -> bool:
        # The build record is not final yet; its current status text is the best we have.
        self._publish_build(
            build,
            revision,
            to_gitlab_status(LifecycleEvent.FAILURE_DETECTED),
            build.status_text or DefaultStatusMessages.BUILD_FAILED,
        )
        return True

    def build_marked_as_successful(
        self,
        build: Build,
        revision: BuildRevision,
        build_in_progress: bool,
    ) -> bool:
        status = to_gitlab_status(
            LifecycleEvent.MARKED_AS_SUCCESSFUL,
            build_in_progress=build_in_progress,
        )
        self._publish_build(build, revision, status, DefaultStatusMessages.BUILD_MARKED_SUCCESSFUL)
        return True

    def build_interrupted(self, build: Build, revision: BuildRevision) -> bool:
        self._publish_build(
            build,
            revision,
            to_gitlab_status(LifecycleEvent.INTERRUPTED),
            build.status_text or DefaultStatusMessages.BUILD_INTERRUPTED,
        )
        return True

    # ------------------------------------------------------------------ #
    # Reconciliation
    # ------------------------------------------------------------------ #
    def get_revision_status(
        self,
        promotion: BuildPromotion,
        revision: BuildRevision,
    ) -> Optional[RevisionStatus]:
        return self.reconciler.get_revision_status(promotion, revision)

    def get_revision_status_for_removed_build(
        self,
        removed_build: QueuedBuild,
        revision: BuildRevision,
    ) -> Optional[RevisionStatus]:
        return self.reconciler.get_revision_status_for_removed_build(removed_build, revision)

    # ------------------------------------------------------------------ #
    # Internal helpers
    # ------------------------------------------------------------------ #
    def _publish_build(
        self,
        build: Build,
        revision: BuildRevision,
        status: GitlabBuildStatus,
        description: str,
    ) -> None:
        name = _build_name(build.build_type, build.build_type_external_id)
        message = build_status_message(status, name, revision, build.view_url, description)
        self.api.publish_status(revision, serialize(message), build.describe())

    def _publish_promotion(
        self,
        promotion: BuildPromotion,
        revision: BuildRevision,
        status: GitlabBuildStatus,
        description: str,
    ) -> None:
        name = _build_name(promotion.build_type, promotion.build_type_external_id)
        message = build_status_message(status, name, revision, promotion.view_url, description)
        self.api.publish_status(revision, serialize(message), promotion.describe())


def _build_name(build_type: Optional[BuildType], external_id: str) -> str:
    return build_type.full_name if build_type is not None else external_id
