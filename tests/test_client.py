"""Tests for the portal HTTP client, using a fake requests session."""

import pytest
import requests
from tenacity import wait_none

from src.remedial.client import RemedialClient
from src.remedial.config import RemedialConfig
from src.remedial.errors import AuthenticationError, PermanentError, RateLimitError, TransientError

INVALID_JSON = object()


class FakeResponse:
    def __init__(self, status_code=200, payload=None):
        self.status_code = status_code
        self.payload = payload if payload is not None else {}
        self.text = "" if payload is INVALID_JSON else str(payload)

    def json(self):
        if self.payload is INVALID_JSON:
            raise ValueError("Expecting value")
        return self.payload


class FakeSession:
    """Replays queued responses (or raises queued exceptions) and records requests."""

    def __init__(self, *outcomes):
        self.outcomes = list(outcomes)
        self.calls = []
        self.headers = {}
        self.closed = False

    def request(self, method, url, **kwargs):
        self.calls.append((method, url, kwargs))
        outcome = self.outcomes.pop(0)
        if isinstance(outcome, Exception):
            raise outcome
        return outcome

    def close(self):
        self.closed = True


@pytest.fixture
def portal_config() -> RemedialConfig:
    return RemedialConfig(_env_file=None, api_base_url="http://portal.test/", api_max_attempts=3)


def _client(config, *outcomes) -> tuple[RemedialClient, FakeSession]:
    session = FakeSession(*outcomes)
    return RemedialClient(config, session=session, wait=wait_none()), session


def test_fetch_window_config_unwraps_schedule(portal_config) -> None:
    record = {"startDate": "2025-01-06", "endDate": "2025-01-31"}
    client, session = _client(portal_config, FakeResponse(200, {"success": True, "schedule": record}))

    assert client.fetch_window_config() == record
    method, url, kwargs = session.calls[0]
    assert method == "GET"
    assert url == "http://portal.test/api/master_teacher/coordinator/remedial-schedule"
    assert kwargs["timeout"] == portal_config.api_timeout_seconds


def test_missing_window_is_none(portal_config) -> None:
    client, _ = _client(portal_config, FakeResponse(404, {"error": "not found"}))
    assert client.fetch_window_config() is None


def test_fetch_profile_and_quarter_schedule_params(portal_config) -> None:
    client, session = _client(
        portal_config,
        FakeResponse(200, {"coordinator": {"gradeLevel": "3"}, "activities": []}),
        FakeResponse(200, {"schedule": {"schoolYear": "2024-2025", "quarters": {}}}),
    )

    assert client.fetch_profile("42")["coordinator"] == {"gradeLevel": "3"}
    assert client.fetch_quarter_schedule("2024-2025") == {"schoolYear": "2024-2025", "quarters": {}}
    assert session.calls[0][2]["params"] == {"userId": "42"}
    assert session.calls[1][2]["params"] == {"school_year": "2024-2025"}


def test_transient_failures_are_retried(portal_config) -> None:
    client, session = _client(
        portal_config,
        FakeResponse(503),
        requests.ConnectionError("reset"),
        FakeResponse(200, {"Monday": "English"}),
    )
    assert client.fetch_weekly_subjects() == {"Monday": "English"}
    assert len(session.calls) == 3


def test_transient_failure_gives_up_after_max_attempts(portal_config) -> None:
    client, session = _client(portal_config, FakeResponse(502), FakeResponse(502), FakeResponse(502))
    with pytest.raises(TransientError):
        client.fetch_profile("42")
    assert len(session.calls) == 3


def test_rate_limit_is_transient(portal_config) -> None:
    client, session = _client(
        portal_config, FakeResponse(429), requests.Timeout("slow"), FakeResponse(429)
    )
    with pytest.raises(RateLimitError):
        client.fetch_profile("42")
    assert len(session.calls) == 3


@pytest.mark.parametrize(
    ("response", "error"),
    [
        (FakeResponse(401), AuthenticationError),
        (FakeResponse(403), AuthenticationError),
        (FakeResponse(400, {"error": "bad"}), PermanentError),
        (FakeResponse(404), PermanentError),
        (FakeResponse(200, INVALID_JSON), PermanentError),
    ],
)
def test_permanent_failures_are_not_retried(portal_config, response, error) -> None:
    client, session = _client(portal_config, response)
    with pytest.raises(error):
        client.fetch_profile("42")
    assert len(session.calls) == 1


def test_success_false_is_permanent(portal_config) -> None:
    client, _ = _client(portal_config, FakeResponse(200, {"success": False, "error": "Coordinator not found"}))
    with pytest.raises(PermanentError, match="Coordinator not found"):
        client.fetch_profile("42")


def test_submit_activities_body(portal_config) -> None:
    client, session = _client(portal_config, FakeResponse(200, {"success": True, "inserted": 1, "skipped": []}))
    payload = [{"title": "Phonics", "date": "2025-01-07T09:00:00"}]

    response = client.submit_activities(
        payload, grade_level="Grade 3", coordinator_id="7", coordinator_name="Ana", subject_fallback="English"
    )

    assert response["inserted"] == 1
    method, url, kwargs = session.calls[0]
    assert method == "POST"
    assert url.endswith("/api/master_teacher/coordinator/calendar/send")
    assert kwargs["json"] == {
        "gradeLevel": "Grade 3",
        "coordinatorId": "7",
        "coordinatorName": "Ana",
        "subjectFallback": "English",
        "activities": payload,
    }


def test_bearer_token_and_close() -> None:
    config = RemedialConfig(_env_file=None, api_token="secret")
    with RemedialClient(config, session=FakeSession()) as client:
        assert client.session.headers["Authorization"] == "Bearer secret"
    assert client.session.closed
