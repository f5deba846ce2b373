# tests/conftest.py
from __future__ import annotations

import json
import re
from typing import Any, Callable, Dict, List, Optional, Tuple
from urllib.parse import parse_qs, unquote, urlsplit

import pytest

from commit_status.utils.settings import PublisherParameters
from schemas.build_context import (
    AdditionalTaskInfo,
    Build,
    BuildPromotion,
    BuildRevision,
    BuildType,
    QueuedBuild,
    VcsRoot,
)

API_URL = "https://gitlab.example.com/api/v4"
TOKEN = "glpat-test-token"


class FakeResponse:
    """Mimics the parts of requests.Response the publisher reads."""

    def __init__(self, status_code: int, payload: Any = None, reason: str = "", text: Optional[str] = None):
        self.status_code = status_code
        self.reason = reason
        self._payload = payload
        self.text = text if text is not None else ("" if payload is None else json.dumps(payload))

    def json(self) -> Any:
        if self._payload is None:
            raise ValueError("No JSON body")
        return self._payload


class ScriptedHttpClient:
    """
    Returns queued responses in order and records every call.

    A queued Exception instance is raised instead of returned.
    """

    def __init__(self, *responses: Any):
        self.responses: List[Any] = list(responses)
        self.calls: List[Dict[str, Any]] = []

    def _next(self) -> Any:
        item = self.responses.pop(0) if self.responses else FakeResponse(201, {})
        if isinstance(item, Exception):
            raise item
        return item

    def get(self, url: str, headers: Optional[Dict[str, str]] = None, timeout_seconds: Any = None):
        self.calls.append({"method": "GET", "url": url, "headers": headers or {}})
        return self._next()

    def post_json(
        self,
        url: str,
        json_body: Dict[str, Any],
        headers: Optional[Dict[str, str]] = None,
        timeout_seconds: Any = None,
    ):
        self.calls.append({"method": "POST", "url": url, "headers": headers or {}, "json": json_body})
        return self._next()


class FakeGitLab:
    """
    In-memory GitLab commit status API.

    Keeps one record per (project, commit, context), newest first, and
    rejects no-op transitions the way GitLab does.
    """

    _POST_PATH = re.compile(r"/api/v4/projects/(?P<project>[^/]+)/statuses/(?P<sha>[^/]+)$")
    _GET_PATH = re.compile(
        r"/api/v4/projects/(?P<project>[^/]+)/repository/commits/(?P<sha>[^/]+)/statuses$"
    )

    def __init__(self, token: str = TOKEN):
        self.token = token
        self.records: Dict[Tuple[str, str], List[Dict[str, Any]]] = {}
        self.calls: List[Tuple[str, str]] = []

    def post_json(
        self,
        url: str,
        json_body: Dict[str, Any],
        headers: Optional[Dict[str, str]] = None,
        timeout_seconds: Any = None,
    ) -> FakeResponse:
        self.calls.append(("POST", url))
        if (headers or {}).get("PRIVATE-TOKEN") != self.token:
            return FakeResponse(401, {"message": "401 Unauthorized"}, reason="Unauthorized")

        match = self._POST_PATH.search(urlsplit(url).path)
        if match is None:
            return FakeResponse(404, {"message": "404 Not Found"}, reason="Not Found")

        key = (unquote(match.group("project")), match.group("sha"))
        statuses = self.records.setdefault(key, [])
        context = json_body["context"]
        state = json_body["state"]

        current = next((s for s in statuses if s["name"] == context), None)
        if current is not None:
            transition = self._rejected_transition(current["status"], state)
            if transition is not None:
                return FakeResponse(
                    400,
                    {"message": f"Cannot transition status via :{transition} from :{current['status']} "
                                f"(Reason(s): Status cannot transition via \"{transition}\".)"},
                    reason="Bad Request",
                )
            statuses.remove(current)

        record = {
            "status": state,
            "description": json_body.get("description"),
            "target_url": json_body.get("target_url"),
            "name": context,
            "ref": json_body.get("ref"),
        }
        statuses.insert(0, record)
        return FakeResponse(201, dict(record), reason="Created")

    def get(self, url: str, headers: Optional[Dict[str, str]] = None, timeout_seconds: Any = None) -> FakeResponse:
        self.calls.append(("GET", url))
        if (headers or {}).get("PRIVATE-TOKEN") != self.token:
            return FakeResponse(401, {"message": "401 Unauthorized"}, reason="Unauthorized")

        parts = urlsplit(url)
        match = self._GET_PATH.search(parts.path)
        if match is None:
            return FakeResponse(404, {"message": "404 Not Found"}, reason="Not Found")

        key = (unquote(match.group("project")), match.group("sha"))
        statuses = self.records.get(key, [])
        name = parse_qs(parts.query).get("name", [None])[0]
        if name is not None:
            statuses = [s for s in statuses if s["name"] == name]
        return FakeResponse(200, [dict(s) for s in statuses], reason="OK")

    def latest(self, project: str, sha: str, context: str) -> Optional[Dict[str, Any]]:
        return next((s for s in self.records.get((project, sha), []) if s["name"] == context), None)

    @staticmethod
    def _rejected_transition(current: str, requested: str) -> Optional[str]:
        if requested == "pending" and current in ("pending", "running"):
            return "enqueue"
        if requested == "running" and current == "running":
            return "run"
        return None


# -------------------------------------------------------------------
# Build context builders
# -------------------------------------------------------------------
def _revision(
    sha: str = "abc123",
    url: str = "git@gitlab.example.com:group/sub/project.git",
    branch: Optional[str] = "refs/heads/main",
    vcs_name: str = "git",
) -> BuildRevision:
    return BuildRevision(
        root=VcsRoot(name="project-root", vcs_name=vcs_name, properties={"url": url}),
        revision=sha,
        vcs_branch=branch,
    )


def _build_type() -> BuildType:
    return BuildType(
        name="Tests",
        full_name="Backend :: Tests",
        external_id="Backend_Tests",
        project_name="Backend",
    )


def _promotion(promotion_id: int = 7, view_url: str = "https://ci.example.com/queued/7") -> BuildPromotion:
    return BuildPromotion(
        promotion_id=promotion_id,
        build_type=_build_type(),
        build_type_external_id="Backend_Tests",
        view_url=view_url,
    )


def _build(
    build_id: int = 42,
    successful: bool = True,
    status_text: str = "Tests passed: 12",
    view_url: Optional[str] = None,
) -> Build:
    return Build(
        build_id=build_id,
        build_type=_build_type(),
        build_type_external_id="Backend_Tests",
        successful=successful,
        status_text=status_text,
        view_url=view_url or f"https://ci.example.com/build/{build_id}",
    )


def _queued_build(item_id: str = "7", view_url: str = "https://ci.example.com/queued/7") -> QueuedBuild:
    return QueuedBuild(item_id=item_id, promotion=_promotion(view_url=view_url), view_url=view_url)


@pytest.fixture
def make_revision() -> Callable[..., BuildRevision]:
    return _revision


@pytest.fixture
def make_build_type() -> Callable[..., BuildType]:
    return _build_type


@pytest.fixture
def make_promotion() -> Callable[..., BuildPromotion]:
    return _promotion


@pytest.fixture
def make_build() -> Callable[..., Build]:
    return _build


@pytest.fixture
def make_queued_build() -> Callable[..., QueuedBuild]:
    return _queued_build


@pytest.fixture
def task_info() -> AdditionalTaskInfo:
    return AdditionalTaskInfo(comment="Queued by alice", comment_author="alice")


@pytest.fixture
def parameters() -> Callable[[], PublisherParameters]:
    return lambda: PublisherParameters(gitlab_api_url=API_URL, gitlab_token=TOKEN)


@pytest.fixture
def fake_gitlab() -> FakeGitLab:
    return FakeGitLab()


@pytest.fixture
def scripted_http() -> Callable[..., ScriptedHttpClient]:
    return ScriptedHttpClient


@pytest.fixture
def fake_response() -> Callable[..., FakeResponse]:
    return FakeResponse
