# tests/test_reconciler.py
from __future__ import annotations

import pytest
import requests

from commit_status.errors import HttpPublisherError, PublisherError
from commit_status.gitlab.publisher import GitLabPublisher
from commit_status.gitlab.reconciler import RevisionStatusReconciler
from schemas.commit_status import LifecycleEvent, ReceivedCommitStatus

LIST_URL = (
    "https://gitlab.example.com/api/v4/projects/group%2Fsub%2Fproject"
    "/repository/commits/abc123/statuses"
)


def test_query_is_scoped_to_build_context(parameters, scripted_http, fake_response, make_promotion, make_revision) -> None:
    http = scripted_http(fake_response(200, []))
    GitLabPublisher(parameters, http).get_revision_status(make_promotion(), make_revision())

    call = http.calls[0]
    assert call["method"] == "GET"
    assert call["url"] == LIST_URL + "?name=Backend+%3A%3A+Tests"
    assert call["headers"]["PRIVATE-TOKEN"] == "glpat-test-token"


def test_query_without_build_type_is_not_filtered(
    parameters, scripted_http, fake_response, make_promotion, make_revision
) -> None:
    http = scripted_http(fake_response(200, []))
    promotion = make_promotion().model_copy(update={"build_type": None})

    GitLabPublisher(parameters, http).get_revision_status(promotion, make_revision())

    assert http.calls[0]["url"] == LIST_URL


def test_no_status_means_no_opinion(parameters, scripted_http, fake_response, make_promotion, make_revision) -> None:
    http = scripted_http(fake_response(200, []))
    assert GitLabPublisher(parameters, http).get_revision_status(make_promotion(), make_revision()) is None


def test_first_record_is_used(parameters, scripted_http, fake_response, make_promotion, make_revision) -> None:
    promotion = make_promotion(view_url="https://ci.example.com/build/2")
    http = scripted_http(
        fake_response(
            200,
            [
                {"status": "pending", "description": "Build queued", "target_url": "https://ci.example.com/build/2"},
                {"status": "success", "description": "old", "target_url": "https://ci.example.com/build/1"},
            ],
        )
    )

    status = GitLabPublisher(parameters, http).get_revision_status(promotion, make_revision())

    assert status.event is LifecycleEvent.QUEUED
    assert status.description == "Build queued"
    assert status.is_current is True


def test_is_current_distinguishes_build_attempts(
    parameters, fake_gitlab, make_build, make_promotion, make_revision
) -> None:
    publisher = GitLabPublisher(parameters, fake_gitlab)
    revision = make_revision()
    older, newer = make_build(build_id=1), make_build(build_id=2)

    publisher.build_finished(older, revision)
    publisher.build_finished(newer, revision)

    older_status = publisher.get_revision_status(make_promotion(view_url=older.view_url), revision)
    newer_status = publisher.get_revision_status(make_promotion(view_url=newer.view_url), revision)

    assert older_status.is_current is False
    assert newer_status.is_current is True
    assert older_status.description == newer_status.description


def test_removed_build_compares_queued_build_url(
    parameters, scripted_http, fake_response, make_queued_build, make_revision
) -> None:
    http = scripted_http(
        fake_response(
            200,
            [{"status": "canceled", "description": "Build removed from queue", "target_url": "https://ci.example.com/queued/9"}],
        )
    )

    status = GitLabPublisher(parameters, http).get_revision_status_for_removed_build(
        make_queued_build(view_url="https://ci.example.com/queued/7"), make_revision()
    )

    assert status.event is LifecycleEvent.REMOVED_FROM_QUEUE
    assert status.is_current is False


def test_unknown_remote_status_is_not_an_error(
    parameters, scripted_http, fake_response, make_promotion, make_revision
) -> None:
    http = scripted_http(
        fake_response(200, [{"status": "skipped", "description": "x", "target_url": "https://ci.example.com/queued/7"}])
    )

    status = GitLabPublisher(parameters, http).get_revision_status(make_promotion(), make_revision())

    assert status.event is None
    assert status.is_current is True


def test_query_rejection_is_raised(parameters, scripted_http, fake_response, make_promotion, make_revision) -> None:
    http = scripted_http(fake_response(404, text='{"message":"404 Project Not Found"}', reason="Not Found"))

    with pytest.raises(HttpPublisherError) as exc_info:
        GitLabPublisher(parameters, http).get_revision_status(make_promotion(), make_revision())
    assert exc_info.value.status_code == 404


def test_query_transport_failure_is_wrapped(parameters, scripted_http, make_promotion, make_revision) -> None:
    http = scripted_http(requests.Timeout("read timed out"))

    with pytest.raises(PublisherError) as exc_info:
        GitLabPublisher(parameters, http).get_revision_status(make_promotion(), make_revision())
    assert isinstance(exc_info.value.__cause__, requests.Timeout)


@pytest.mark.parametrize("payload", [{"message": "not a list"}, None])
def test_unexpected_payload_is_a_failure(
    parameters, scripted_http, fake_response, make_promotion, make_revision, payload
) -> None:
    http = scripted_http(fake_response(200, payload, text="" if payload is None else None))

    with pytest.raises(PublisherError):
        GitLabPublisher(parameters, http).get_revision_status(make_promotion(), make_revision())


def test_revision_status_from_record() -> None:
    record = ReceivedCommitStatus(status="pending", description="Build queued", target_url="u1")

    assert RevisionStatusReconciler.revision_status(None, "u1") is None
    status = RevisionStatusReconciler.revision_status(record, "u2")
    assert status.event is LifecycleEvent.QUEUED
    assert status.is_current is False
