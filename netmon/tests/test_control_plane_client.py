import json

import pytest
import requests

from netmon.config import MonitorSettings
from netmon.control_plane import (
    ControlPlaneClient,
    ControlPlaneNotFoundError,
    ControlPlaneRequestError,
    ControlPlaneUnauthorizedError,
)


class _FakeResponse:
    def __init__(self, status_code: int = 200, body: bytes = b"") -> None:
        self.status_code = status_code
        self.content = body

    def json(self):
        return json.loads(self.content)


class _FakeSession:
    def __init__(self, response: _FakeResponse | None = None, error: Exception | None = None) -> None:
        self.response = response or _FakeResponse()
        self.error = error
        self.calls = []

    def request(self, method, url, **kwargs):
        self.calls.append((method, url, kwargs))
        if self.error is not None:
            raise self.error
        return self.response

    def close(self) -> None:
        return None


def _client(session: _FakeSession, token: str | None = "secret") -> ControlPlaneClient:
    return ControlPlaneClient(
        base_url="https://cp.example.com/api/v1/",
        token=token,
        timeout_seconds=5,
        session=session,
    )


def test_post_builds_url_and_auth_header():
    session = _FakeSession(_FakeResponse(200, b'{"ok": true}'))

    result = _client(session).request_json("POST", "/instances/inst-1/sslsplit/enable")

    assert result == {"ok": True}
    method, url, kwargs = session.calls[0]
    assert method == "POST"
    assert url == "https://cp.example.com/api/v1/instances/inst-1/sslsplit/enable"
    assert kwargs["headers"]["Authorization"] == "Bearer secret"
    assert kwargs["timeout"] == 5


def test_empty_body_returns_empty_mapping():
    session = _FakeSession(_FakeResponse(204, b""))

    assert _client(session, token=None).request_json("POST", "/instances/inst-1/sslsplit/disable") == {}
    assert "Authorization" not in session.calls[0][2]["headers"]


def test_query_params_skip_none_values():
    session = _FakeSession()

    _client(session).request_json("GET", "/instances", params={"project": "proj-1", "page": None})

    assert session.calls[0][1] == "https://cp.example.com/api/v1/instances?project=proj-1"


@pytest.mark.parametrize(
    ("status", "error_type"),
    [
        (404, ControlPlaneNotFoundError),
        (401, ControlPlaneUnauthorizedError),
        (403, ControlPlaneUnauthorizedError),
        (502, ControlPlaneRequestError),
    ],
)
def test_error_statuses_map_to_typed_errors(status, error_type):
    session = _FakeSession(_FakeResponse(status, b""))

    with pytest.raises(error_type):
        _client(session).request_json("POST", "/instances/inst-1/sslsplit/enable")


def test_network_failure_is_wrapped():
    session = _FakeSession(error=requests.ConnectionError("refused"))

    with pytest.raises(ControlPlaneRequestError):
        _client(session).request_json("POST", "/instances/inst-1/sslsplit/enable")


def test_invalid_json_is_reported():
    session = _FakeSession(_FakeResponse(200, b"<html>"))

    with pytest.raises(ControlPlaneRequestError):
        _client(session).request_json("GET", "/instances/inst-1")


def test_from_settings_uses_configured_base_url():
    settings = MonitorSettings(api_base_url="https://cp.example.com/api/v1", api_token="tok")
    client = ControlPlaneClient.from_settings(settings)
    session = _FakeSession()
    client._session = session

    client.request_json("POST", "/instances/inst-1/sslsplit/enable")

    assert session.calls[0][1] == "https://cp.example.com/api/v1/instances/inst-1/sslsplit/enable"
    assert session.calls[0][2]["headers"]["Authorization"] == "Bearer tok"
