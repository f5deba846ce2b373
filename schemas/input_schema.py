# -------------------------------------------------------------------
# schemas/input_schema.py
#
# WHAT THIS FILE IS FOR
# --------------------
# This module defines the **public request schemas** of the HTTP
# intake in api.py:
#
# - LifecycleEventRequest: one lifecycle event raised by the CI server
# - RevisionStatusRequest: "what did we last report for this revision
#   on behalf of this build promotion?"
# - RemovedBuildStatusRequest: the same question for a queued build
#   that has left the queue
#
# KEY DESIGN DECISION
# -------------------
# These schemas accept **both camelCase and snake_case** JSON field
# names (alias=camelCase + populate_by_name=True), like the build
# context models they embed.
#
# Which context an event needs is validated here so that the publisher
# never receives a half-filled call:
#   - QUEUED, REMOVED_FROM_QUEUE -> promotion
#   - every other event          -> build
#
# Any breaking change here is a **public API change**.
# -------------------------------------------------------------------

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from schemas.build_context import (
    AdditionalTaskInfo,
    Build,
    BuildPromotion,
    BuildRevision,
    QueuedBuild,
)
from schemas.commit_status import LifecycleEvent


class LifecycleEventRequest(BaseModel):
    """
    A lifecycle event to publish.

    Supports both snake_case and camelCase JSON field names.
    """

    model_config = ConfigDict(
        populate_by_name=True,
        json_schema_extra={
            "example": {
                "event": "STARTED",
                "revision": {
                    "root": {
                        "name": "backend",
                        "vcsName": "git",
                        "properties": {"url": "git@gitlab.example.com:group/backend.git"},
                    },
                    "revision": "abc123",
                    "vcsBranch": "refs/heads/main",
                },
                "build": {
                    "buildId": 42,
                    "buildType": {
                        "name": "Tests",
                        "fullName": "Backend :: Tests",
                        "externalId": "Backend_Tests",
                        "projectName": "Backend",
                    },
                    "viewUrl": "https://ci.example.com/build/42",
                },
            }
        },
    )

    event: LifecycleEvent
    revision: BuildRevision
    promotion: Optional[BuildPromotion] = None
    build: Optional[Build] = None
    task_info: Optional[AdditionalTaskInfo] = Field(None, alias="taskInfo")
    build_in_progress: bool = Field(
        False,
        alias="buildInProgress",
        description="MARKED_AS_SUCCESSFUL / COMMENTED: whether the build is still running",
    )
    user: Optional[str] = Field(None, description="COMMENTED: comment author")
    comment: Optional[str] = Field(None, description="COMMENTED: comment text")

    @model_validator(mode="after")
    def _check_event_context(self) -> "LifecycleEventRequest":
        if self.event in (LifecycleEvent.QUEUED, LifecycleEvent.REMOVED_FROM_QUEUE):
            if self.promotion is None:
                raise ValueError(f"promotion is required for {self.event.value}")
        elif self.build is None:
            raise ValueError(f"build is required for {self.event.value}")
        return self


class RevisionStatusRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    promotion: BuildPromotion
    revision: BuildRevision


class RemovedBuildStatusRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    removed_build: QueuedBuild = Field(..., alias="removedBuild")
    revision: BuildRevision
