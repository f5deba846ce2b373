# -------------------------------------------------------------------
# schemas/build_context.py
#
# WHAT THIS FILE IS FOR
# --------------------
# This module defines the **CI server context** handed to the
# publisher with every lifecycle call:
#
# - VcsRoot / BuildRevision: which repository and commit a status is
#   about, plus the branch ref the CI server built
# - BuildType: the build configuration (its full name becomes the
#   GitLab status context)
# - BuildPromotion / QueuedBuild / Build: the build in its various
#   stages, each carrying the "view URL" that links back to it
# - AdditionalTaskInfo: extra data for queue-related events
#
# The publisher never talks to the CI server itself. Whoever drives it
# (the HTTP intake in api.py, or a test) resolves these values first
# and passes them explicitly.
#
# KEY DESIGN DECISION
# -------------------
# Like the rest of the public request schemas, these models accept
# **both camelCase and snake_case** JSON field names
# (alias=camelCase + populate_by_name=True).
# -------------------------------------------------------------------

from __future__ import annotations

from typing import Dict, Optional

from pydantic import BaseModel, ConfigDict, Field


class _ContextModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class VcsRoot(_ContextModel):
    name: str = Field(..., description="Display name of the VCS root")
    vcs_name: str = Field("git", alias="vcsName", description="VCS system identifier")
    properties: Dict[str, str] = Field(default_factory=dict)

    def get_property(self, key: str) -> Optional[str]:
        return self.properties.get(key)


class BuildRevision(_ContextModel):
    root: VcsRoot
    revision: str = Field(..., min_length=1, description="Commit SHA")
    vcs_branch: Optional[str] = Field(
        None,
        alias="vcsBranch",
        description="Full branch ref, e.g. refs/heads/main",
    )


class BuildType(_ContextModel):
    name: str
    full_name: str = Field(..., alias="fullName")
    external_id: str = Field(..., alias="externalId")
    project_name: str = Field(..., alias="projectName")


class BuildPromotion(_ContextModel):
    promotion_id: int = Field(..., alias="promotionId")
    build_type: Optional[BuildType] = Field(None, alias="buildType")
    build_type_external_id: str = Field("", alias="buildTypeExternalId")
    view_url: str = Field(
        ...,
        alias="viewUrl",
        description="Build page if the promotion has started, queued build page otherwise",
    )

    def describe(self) -> str:
        return f"promotion #{self.promotion_id} ({self.build_type_external_id})"


class QueuedBuild(_ContextModel):
    item_id: str = Field(..., alias="itemId")
    promotion: BuildPromotion
    view_url: str = Field(..., alias="viewUrl", description="Queued build page")

    @property
    def build_type(self) -> Optional[BuildType]:
        return self.promotion.build_type


class Build(_ContextModel):
    build_id: int = Field(..., alias="buildId")
    build_type: Optional[BuildType] = Field(None, alias="buildType")
    build_type_external_id: str = Field("", alias="buildTypeExternalId")
    successful: bool = True
    status_text: str = Field("", alias="statusText")
    view_url: str = Field(..., alias="viewUrl")

    def describe(self) -> str:
        return f"build #{self.build_id} ({self.build_type_external_id})"


class AdditionalTaskInfo(_ContextModel):
    comment: Optional[str] = None
    comment_author: Optional[str] = Field(None, alias="commentAuthor")
    promotion_replaced: bool = Field(
        False,
        alias="promotionReplaced",
        description="True when the queued build was replaced by another one (e.g. a rebuild)",
    )
