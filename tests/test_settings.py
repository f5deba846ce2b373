# tests/test_settings.py
from __future__ import annotations

from pathlib import Path

import pytest

import commit_status.utils.settings as settings_mod


@pytest.fixture
def isolated_settings(monkeypatch: pytest.MonkeyPatch, tmp_path: Path):
    """Point the loader at a temp YAML file and reset both caches around the test."""
    yaml_path = tmp_path / "parameters.yaml"
    monkeypatch.setattr(settings_mod, "PARAMETERS_PATH", yaml_path)
    for key in ("COMMIT_STATUS_GITLAB_API_URL", "COMMIT_STATUS_GITLAB_TOKEN", "COMMIT_STATUS_ENVIRONMENT"):
        monkeypatch.delenv(key, raising=False)
    settings_mod._load_yaml_parameters.cache_clear()
    settings_mod.get_settings.cache_clear()
    yield yaml_path
    settings_mod._load_yaml_parameters.cache_clear()
    settings_mod.get_settings.cache_clear()


def test_yaml_defaults_are_loaded(isolated_settings: Path) -> None:
    isolated_settings.write_text(
        "gitlab_api_url: https://example.com/gitlab/api/v4/\nenvironment: staging\n",
        encoding="utf-8",
    )

    settings = settings_mod.get_settings()

    assert settings.environment == "staging"
    assert settings.publisher_parameters().gitlab_api_url == "https://example.com/gitlab/api/v4"


def test_env_overrides_yaml(isolated_settings: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    isolated_settings.write_text("gitlab_api_url: https://yaml.example.com/api/v4\n", encoding="utf-8")
    monkeypatch.setenv("COMMIT_STATUS_GITLAB_API_URL", "https://env.example.com/api/v4")
    monkeypatch.setenv("COMMIT_STATUS_GITLAB_TOKEN", "secret")

    params = settings_mod.get_settings().publisher_parameters()

    assert params.gitlab_api_url == "https://env.example.com/api/v4"
    assert params.gitlab_token == "secret"
    assert "secret" not in repr(params)


def test_missing_yaml_and_url_is_not_fatal(isolated_settings: Path) -> None:
    settings = settings_mod.get_settings()

    assert settings.gitlab_api_url is None
    assert settings.publisher_parameters().gitlab_api_url is None


def test_non_mapping_yaml_is_ignored(isolated_settings: Path) -> None:
    isolated_settings.write_text("- just\n- a list\n", encoding="utf-8")

    assert settings_mod.get_settings().service_name == "commit_status_publisher"


def test_current_publisher_parameters_follow_env_changes(
    isolated_settings: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    isolated_settings.write_text("gitlab_api_url: https://yaml.example.com/api/v4/\n", encoding="utf-8")
    monkeypatch.setenv("COMMIT_STATUS_GITLAB_TOKEN", "first")

    first = settings_mod.current_publisher_parameters()
    monkeypatch.setenv("COMMIT_STATUS_GITLAB_TOKEN", "rotated")
    second = settings_mod.current_publisher_parameters()

    assert first.gitlab_token == "first"
    assert second.gitlab_token == "rotated"
    assert second.gitlab_api_url == "https://yaml.example.com/api/v4"
