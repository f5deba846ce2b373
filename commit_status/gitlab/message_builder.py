"""
commit_status/gitlab/message_builder.py

Assembles the payload for POST /projects/:id/statuses/:sha.

Ref normalization:
    refs/heads/<name> -> <name>
    refs/tags/<name>  -> <name>
    anything else     -> omitted

Pull/merge request refs (refs/merge-requests/4/head, refs/pull/1/head)
have no branch on the GitLab side; sending them would attach the status
to a ref that does not exist, so the field is left out instead.
"""

from __future__ import annotations

from typing import Any, Dict, Optional

from schemas.build_context import BuildRevision
from schemas.commit_status import GitlabBuildStatus, StatusMessage

REFS_HEADS = "refs/heads/"
REFS_TAGS = "refs/tags/"


def normalize_ref(ref: Optional[str]) -> Optional[str]:
    if not ref:
        return None
    for prefix in (REFS_HEADS, REFS_TAGS):
        if ref.startswith(prefix):
            return ref[len(prefix):] or None
    return None


def build_status_message(
    status: GitlabBuildStatus,
    name: str,
    revision: BuildRevision,
    target_url: str,
    description: str,
) -> StatusMessage:
    return StatusMessage(
        state=status,
        description=description,
        context=name,
        target_url=target_url,
        ref=normalize_ref(revision.vcs_branch),
    )


def serialize(message: StatusMessage) -> Dict[str, Any]:
    return message.model_dump(mode="json", exclude_none=True)
