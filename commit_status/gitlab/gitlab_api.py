"""
commit_status/gitlab/gitlab_api.py

WHAT THIS FILE IS FOR
---------------------
The two GitLab REST calls the publisher needs:

- POST {api}/projects/{owner%2Fname}/statuses/{sha}
      publish one commit status
- GET  {api}/projects/{owner%2Fname}/repository/commits/{sha}/statuses?name={context}
      list the statuses of a commit, newest first

Both resolve the project from the revision's VCS root and read the API
URL + token from the parameters provider *on every call*. Nothing is
cached between calls.

ERROR HANDLING RULES
--------------------
- Blank API URL                    -> PublisherError (nothing is sent)
- Unparsable repository URL        -> PublisherError (nothing is sent)
- requests.RequestException        -> PublisherError, chained
- Status >= 400 (minus benign ones on publish) -> HttpPublisherError
- Non-JSON / non-array list answer -> PublisherError

No retries are performed here.
"""

from __future__ import annotations

from typing import Any, Callable, Dict, List, Optional
from urllib.parse import urlencode

import requests
import structlog
from pydantic import ValidationError

from commit_status.errors import PublisherError
from commit_status.gitlab.repository_parser import (
    get_path_prefix,
    get_projects_url,
    parse_repository,
)
from commit_status.gitlab.response_classifier import check_publish_response, check_query_response
from commit_status.utils.http_client import HttpClient
from commit_status.utils.settings import PublisherParameters
from schemas.build_context import BuildRevision
from schemas.commit_status import ReceivedCommitStatus

logger = structlog.get_logger(__name__)

TOKEN_HEADER = "PRIVATE-TOKEN"

ParametersProvider = Callable[[], PublisherParameters]


class GitLabApi:
    def __init__(self, http: HttpClient, parameters: ParametersProvider):
        self.http = http
        self._parameters = parameters

    def publish_status(
        self,
        revision: BuildRevision,
        body: Dict[str, Any],
        build_description: str,
    ) -> None:
        params = self._require_api_url()
        url = f"{self._projects_url(params, revision)}/statuses/{revision.revision}"
        logger.debug("commit_status_request", url=url, message=body, build=build_description)

        try:
            response = self.http.post_json(url, body, headers=self._headers(params))
        except requests.RequestException as exc:
            raise PublisherError(
                f"Cannot publish status to GitLab for VCS root {revision.root.name}: {exc}"
            ) from exc

        check_publish_response(response)
        logger.info(
            "commit_status_published",
            url=url,
            state=body.get("state"),
            context=body.get("context"),
            build=build_description,
            status_code=response.status_code,
        )

    def list_statuses(
        self,
        revision: BuildRevision,
        context_name: Optional[str] = None,
    ) -> List[ReceivedCommitStatus]:
        params = self._require_api_url()
        url = f"{self._projects_url(params, revision)}/repository/commits/{revision.revision}/statuses"
        if context_name is not None:
            url += "?" + urlencode({"name": context_name})

        try:
            response = self.http.get(url, headers=self._headers(params))
        except requests.RequestException as exc:
            raise PublisherError(
                f"Cannot fetch statuses from GitLab for VCS root {revision.root.name}: {exc}"
            ) from exc

        check_query_response(response)

        try:
            data = response.json()
        except ValueError as exc:
            raise PublisherError(
                f"GitLab returned non-JSON statuses (status={response.status_code})"
            ) from exc

        if not isinstance(data, list):
            raise PublisherError(f"GitLab returned unexpected statuses payload: {type(data).__name__}")

        try:
            return [ReceivedCommitStatus.model_validate(item) for item in data]
        except ValidationError as exc:
            raise PublisherError(f"GitLab returned malformed statuses: {exc}") from exc

    # ------------------------------------------------------------------ #
    # Internal helpers
    # ------------------------------------------------------------------ #
    def _require_api_url(self) -> PublisherParameters:
        params = self._parameters()
        if not params.gitlab_api_url:
            raise PublisherError("Missing GitLab API URL parameter")
        return params

    def _projects_url(self, params: PublisherParameters, revision: BuildRevision) -> str:
        api_url = params.gitlab_api_url or ""
        repository = parse_repository(revision.root, get_path_prefix(api_url))
        if repository is None:
            raise PublisherError(f"Cannot parse repository URL from VCS root {revision.root.name}")
        return get_projects_url(api_url, repository.owner, repository.repository_name)

    @staticmethod
    def _headers(params: PublisherParameters) -> Dict[str, str]:
        return {
            "Content-Type": "application/json",
            TOKEN_HEADER: params.gitlab_token or "",
        }
