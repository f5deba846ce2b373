# -------------------------------------------------------------------
# schemas/commit_status.py
#
# WHAT THIS FILE IS FOR
# --------------------
# This module defines the **commit status vocabulary** shared by the
# publisher, the reconciler and the HTTP intake:
#
# - LifecycleEvent: discrete occurrences in a build's life, as raised
#   by the CI server
# - GitlabBuildStatus: the status values GitLab stores per
#   (commit, context)
# - StatusMessage: the payload we POST to GitLab
# - ReceivedCommitStatus: one element of the array GitLab returns
#   when listing the statuses of a commit
# - RevisionStatus: what we believe we last reported for a revision
# - Repository: owner / name pair parsed from a VCS remote URL
#
# WIRE NAMING
# -----------
# StatusMessage and ReceivedCommitStatus mirror GitLab's own field
# names (snake_case, `state` on write, `status` on read). Do NOT add
# camelCase aliases here; GitLab will not understand them.
#
# WHAT THIS FILE IS NOT FOR
# ------------------------
# This module does NOT:
# - Map events to statuses (see commit_status/gitlab/status_mapper.py)
# - Perform HTTP calls
# - Hold any state between publish calls
# -------------------------------------------------------------------

from __future__ import annotations

from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class LifecycleEvent(str, Enum):
    QUEUED = "QUEUED"
    REMOVED_FROM_QUEUE = "REMOVED_FROM_QUEUE"
    STARTED = "STARTED"
    FINISHED = "FINISHED"
    COMMENTED = "COMMENTED"
    INTERRUPTED = "INTERRUPTED"
    FAILURE_DETECTED = "FAILURE_DETECTED"
    MARKED_AS_SUCCESSFUL = "MARKED_AS_SUCCESSFUL"


class GitlabBuildStatus(str, Enum):
    PENDING = "pending"
    RUNNING = "running"
    SUCCESS = "success"
    FAILED = "failed"
    CANCELED = "canceled"

    @classmethod
    def get_by_name(cls, name: Optional[str]) -> Optional["GitlabBuildStatus"]:
        """Case-insensitive lookup; unknown names yield None instead of raising."""
        if not name:
            return None
        try:
            return cls(name.strip().lower())
        except ValueError:
            return None


class Repository(BaseModel):
    """
    Owner / repository pair parsed from a VCS remote URL.

    `owner` may contain slash-separated subgroups (e.g. "group/sub").
    """

    model_config = ConfigDict(frozen=True)

    owner: str
    repository_name: str


class StatusMessage(BaseModel):
    """
    Payload published to POST /projects/:id/statuses/:sha.

    `ref` is omitted from the serialized body when it cannot be resolved
    to a branch or tag name.
    """

    state: GitlabBuildStatus
    description: str
    context: str = Field(..., description="Build name the status is recorded under")
    target_url: str
    ref: Optional[str] = None


class ReceivedCommitStatus(BaseModel):
    """
    One element of GET /projects/:id/repository/commits/:sha/statuses.

    GitLab returns many more fields; only the ones needed to reconcile
    are kept. All are optional because the remote vocabulary is not
    guaranteed to be stable.
    """

    model_config = ConfigDict(extra="ignore")

    status: Optional[str] = None
    description: Optional[str] = None
    target_url: Optional[str] = None
    name: Optional[str] = None


class RevisionStatus(BaseModel):
    """
    Result of reconciling a revision against its last published status.

    - event: the lifecycle event inferred from the remote status, or None
      when the remote status is not uniquely invertible
    - description: the description stored on the remote
    - is_current: True iff the remote target_url equals the view URL of
      the build (or queued build) being asked about
    """

    event: Optional[LifecycleEvent] = None
    description: Optional[str] = None
    is_current: bool = False
