"""
commit_status/gitlab/reconciler.py

Answers "what do we believe we last reported for this revision?".

The latest status GitLab holds for (commit, context) is fetched and
turned into a RevisionStatus:

- event:       reverse mapping of the remote status (often None)
- description: the description stored on the remote
- is_current:  remote target_url == view URL of the build being asked
               about. A newer build attempt overwrites target_url, so a
               mismatch means the status belongs to another attempt.
               There is no timestamp comparison.

No status on the remote means no opinion: None is returned, never a
default status.
"""

from __future__ import annotations

from typing import Optional

import structlog

from commit_status.gitlab.gitlab_api import GitLabApi
from commit_status.gitlab.status_mapper import to_lifecycle_event
from schemas.build_context import BuildPromotion, BuildRevision, BuildType, QueuedBuild
from schemas.commit_status import ReceivedCommitStatus, RevisionStatus

logger = structlog.get_logger(__name__)


class RevisionStatusReconciler:
    def __init__(self, api: GitLabApi):
        self.api = api

    def get_revision_status(
        self,
        promotion: BuildPromotion,
        revision: BuildRevision,
    ) -> Optional[RevisionStatus]:
        commit_status = self.latest_commit_status(revision, promotion.build_type)
        return self.revision_status(commit_status, promotion.view_url)

    def get_revision_status_for_removed_build(
        self,
        removed_build: QueuedBuild,
        revision: BuildRevision,
    ) -> Optional[RevisionStatus]:
        commit_status = self.latest_commit_status(revision, removed_build.build_type)
        return self.revision_status(commit_status, removed_build.view_url)

    def latest_commit_status(
        self,
        revision: BuildRevision,
        build_type: Optional[BuildType],
    ) -> Optional[ReceivedCommitStatus]:
        context_name = build_type.full_name if build_type is not None else None
        statuses = self.api.list_statuses(revision, context_name)
        if not statuses:
            logger.debug(
                "commit_status_not_found",
                revision=revision.revision,
                context=context_name,
            )
            return None
        # GitLab lists statuses newest first
        return statuses[0]

    @staticmethod
    def revision_status(
        commit_status: Optional[ReceivedCommitStatus],
        view_url: str,
    ) -> Optional[RevisionStatus]:
        if commit_status is None:
            return None
        return RevisionStatus(
            event=to_lifecycle_event(commit_status.status, commit_status.description),
            description=commit_status.description,
            is_current=commit_status.target_url == view_url,
        )
