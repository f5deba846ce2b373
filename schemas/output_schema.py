# -------------------------------------------------------------------
# schemas/output_schema.py
#
# WHAT THIS FILE IS FOR
# --------------------
# This module defines the **response schemas** of the HTTP intake.
#
# NAMING CONVENTION (IMPORTANT)
# -----------------------------
# Fields are snake_case in Python and serialized as camelCase via
# alias_generator=to_camel. Always dump with by_alias=True at the API
# boundary (api.py does this in one place).
#
# WHAT THIS FILE IS NOT FOR
# ------------------------
# This module does NOT:
# - Contain HTTP or FastAPI logic
# - Describe the GitLab wire format (see schemas/commit_status.py)
# - Handle error responses (api.py builds the error envelope)
# -------------------------------------------------------------------

from __future__ import annotations

from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from schemas.commit_status import LifecycleEvent, RevisionStatus


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class PublishResult(_CamelModel):
    """
    Outcome of one lifecycle event.

    handled=False means the publisher ignores that event (e.g. COMMENTED
    on GitLab); nothing was sent.
    """

    publisher: str
    event: LifecycleEvent
    handled: bool


class RevisionStatusData(_CamelModel):
    event: Optional[LifecycleEvent] = None
    description: Optional[str] = None
    is_current: bool = False

    @classmethod
    def from_revision_status(cls, status: RevisionStatus) -> "RevisionStatusData":
        return cls(
            event=status.event,
            description=status.description,
            is_current=status.is_current,
        )


class PublishEnvelope(_CamelModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="forbid")

    status: Literal["success", "error"] = "success"
    data: PublishResult
    correlation_id: Optional[str] = None


class RevisionStatusEnvelope(_CamelModel):
    """
    data is None when the remote holds no status for the revision:
    there is no opinion, not a default status.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="forbid")

    status: Literal["success", "error"] = "success"
    data: Optional[RevisionStatusData] = None
    correlation_id: Optional[str] = None
