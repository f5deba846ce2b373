"""
commit_status/gitlab/repository_parser.py

Extracts the GitLab project (owner + repository name) from a VCS root.

Supported remote shapes:
    git@gitlab.example.com:group/sub/project.git      (scp-like SSH)
    ssh://git@gitlab.example.com:2222/group/project.git
    https://gitlab.example.com/gitlab/group/project.git

Self-hosted instances mounted under a sub-path expose their API at
e.g. https://example.com/gitlab/api/v4; the path before `/api/v4` is the
path prefix and is removed from the repository path before splitting.
The last path segment is the repository name, everything before it is
the owner (a namespace that may contain subgroups).
"""

from __future__ import annotations

import re
from typing import Optional
from urllib.parse import quote, urlsplit

from schemas.build_context import VcsRoot
from schemas.commit_status import Repository

GIT_VCS_NAME = "git"
URL_PROPERTY = "url"

_SCP_LIKE = re.compile(r"^(?:[^@/\s]+@)?(?P<host>[^:/\s]+):(?P<path>[^\s]+)$")
_API_SUFFIX = re.compile(r"/api/v\d+/?$")


def parse_repository(root: VcsRoot, path_prefix: Optional[str]) -> Optional[Repository]:
    """
    Parse the repository of a VCS root.

    Roots of another VCS are not an error: None is returned silently.
    """
    if root.vcs_name != GIT_VCS_NAME:
        return None
    url = root.get_property(URL_PROPERTY)
    if url is None:
        return None
    return parse_repository_url(url, path_prefix)


def parse_repository_url(url: str, path_prefix: Optional[str] = None) -> Optional[Repository]:
    url = url.strip()
    path = _extract_path(url)
    if path is None:
        return None

    segments = [s for s in path.split("/") if s]
    # scp-like SSH remotes never carry the instance path prefix
    prefix = [s for s in (path_prefix or "").split("/") if s] if "://" in url else []
    if prefix and segments[: len(prefix)] == prefix:
        segments = segments[len(prefix):]

    if len(segments) < 2:
        return None

    name = segments[-1]
    if name.endswith(".git"):
        name = name[: -len(".git")]
    if not name:
        return None

    return Repository(owner="/".join(segments[:-1]), repository_name=name)


def get_path_prefix(api_url: Optional[str]) -> Optional[str]:
    """
    "https://example.com/gitlab/api/v4" -> "gitlab"
    "https://gitlab.example.com/api/v4" -> ""
    """
    if not api_url:
        return None
    parts = urlsplit(api_url.strip())
    if not parts.scheme or not parts.netloc:
        return None
    return _API_SUFFIX.sub("", parts.path).strip("/")


def get_projects_url(api_url: str, owner: str, repository_name: str) -> str:
    project_id = quote(f"{owner}/{repository_name}", safe="")
    return f"{api_url.rstrip('/')}/projects/{project_id}"


def _extract_path(url: str) -> Optional[str]:
    if "://" in url:
        parts = urlsplit(url)
        if not parts.netloc:
            return None
        return parts.path

    match = _SCP_LIKE.match(url)
    if match is None:
        return None
    return match.group("path")
