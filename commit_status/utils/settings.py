"""
commit_status/utils/settings.py

WHAT THIS FILE IS FOR
---------------------
This module defines the *single source of truth* for runtime configuration
of the commit status publisher.

It is responsible for:
- Defining all supported configuration fields (via Pydantic BaseSettings)
- Loading default values from parameters/parameters.yaml
- Overriding defaults with environment variables (COMMIT_STATUS_*)
- Exposing a cached Settings object to the application
- Producing the per-call PublisherParameters (GitLab API URL + token)

LOAD & PRECEDENCE MODEL
-----------------------
Configuration is loaded in the following order (last wins):

1) YAML defaults from:
       parameters/parameters.yaml
2) Environment variables:
       COMMIT_STATUS_*

GITLAB PARAMETERS
-----------------
`gitlab_api_url` and `gitlab_token` are deliberately NOT required here.
A missing API URL is a configuration error of the *publish call*
(reported against the build that triggered it), not a startup failure.
Publishers read them through a provider callable on every call.
`current_publisher_parameters` is that provider for the service: it
re-reads the environment each time, while `Settings.publisher_parameters`
is frozen to the cached Settings object.

WHAT THIS FILE IS NOT FOR
-------------------------
This module is NOT responsible for:
- HTTP calls
- Validating that the GitLab URL is reachable
- Caching tokens beyond the process-level Settings object
"""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, Optional

import structlog
import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = structlog.get_logger(__name__)

PARAMETERS_PATH = Path(__file__).resolve().parents[2] / "parameters" / "parameters.yaml"


class PublisherParameters(BaseModel):
    """
    Parameters a publisher needs for one call.

    The API URL is stored without a trailing slash so URL templates can
    append "/projects/..." directly.
    """

    gitlab_api_url: Optional[str] = None
    gitlab_token: Optional[str] = Field(default=None, repr=False)

    @field_validator("gitlab_api_url")
    @classmethod
    def _strip_trailing_slash(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        return value.strip().rstrip("/")


class Settings(BaseSettings):
    """
    Runtime settings for the commit status publisher.

    Load order / precedence:
        1) YAML defaults (parameters/parameters.yaml)
        2) Environment variables (COMMIT_STATUS_*), overriding YAML
    """

    model_config = SettingsConfigDict(
        env_prefix="COMMIT_STATUS_",
        extra="ignore",
    )

    # Service metadata
    service_name: str = "commit_status_publisher"
    environment: str = "local"
    log_level: str = "INFO"

    # GitLab API, e.g. https://gitlab.example.com/api/v4
    # or https://example.com/gitlab/api/v4 for instances under a sub-path.
    gitlab_api_url: Optional[str] = None
    gitlab_token: Optional[str] = Field(default=None, repr=False)

    # Outbound HTTP timeout for GitLab calls (no retries; see http_client.py)
    http_timeout_seconds: float = 30.0

    # Request tracing
    request_id_header: str = "X-Correlation-Id"

    def publisher_parameters(self) -> PublisherParameters:
        return PublisherParameters(
            gitlab_api_url=self.gitlab_api_url,
            gitlab_token=self.gitlab_token,
        )


@lru_cache(maxsize=1)
def _load_yaml_parameters() -> Dict[str, Any]:
    """
    Load base configuration from parameters/parameters.yaml.

    Cached to:
    - Avoid repeated disk I/O
    - Guarantee consistent config during process lifetime
    """
    if not PARAMETERS_PATH.exists():
        logger.warning("parameters_yaml_missing", expected=str(PARAMETERS_PATH))
        return {}

    try:
        with PARAMETERS_PATH.open("r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
        if not isinstance(data, dict):
            logger.warning(
                "parameters_yaml_not_dict",
                path=str(PARAMETERS_PATH),
                type=type(data).__name__,
            )
            return {}
        logger.info("parameters_yaml_loaded", path=str(PARAMETERS_PATH))
        return data
    except (OSError, yaml.YAMLError) as exc:
        logger.error("parameters_yaml_load_error", path=str(PARAMETERS_PATH), error=str(exc))
        return {}


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """
    Construct and return the final validated Settings object.

    Cached (singleton per process). Any code needing configuration should
    call this function, not instantiate Settings() directly.
    """
    # 1) YAML defaults
    yaml_data = _load_yaml_parameters()

    # 2) env overrides (partial)
    env_data = _env_overrides()
    logger.info("settings_loaded_env_only_partial", fields=list(env_data.keys()))

    # 3) merge + validate
    settings = Settings.model_validate({**yaml_data, **env_data})

    if not settings.gitlab_api_url:
        # Not fatal: every publish call will fail with a descriptive error instead.
        logger.warning("settings_gitlab_api_url_missing", yaml_path=str(PARAMETERS_PATH))

    logger.info(
        "settings_loaded",
        environment=settings.environment,
        service_name=settings.service_name,
        gitlab_api_url=settings.gitlab_api_url,
        has_gitlab_token=bool(settings.gitlab_token),
        http_timeout_seconds=settings.http_timeout_seconds,
    )

    return settings


def current_publisher_parameters() -> PublisherParameters:
    """
    GitLab parameters for one publish call.

    YAML defaults stay cached, the environment is re-read every time, so
    a rotated COMMIT_STATUS_GITLAB_TOKEN is used by the next request.
    """
    merged = {**_load_yaml_parameters(), **_env_overrides()}
    return PublisherParameters(
        gitlab_api_url=merged.get("gitlab_api_url"),
        gitlab_token=merged.get("gitlab_token"),
    )


def _env_overrides() -> Dict[str, Any]:
    try:
        return Settings().model_dump(exclude_unset=True)
    except ValidationError as exc:
        logger.warning("settings_env_validation_error", errors=exc.errors())
        return {}
