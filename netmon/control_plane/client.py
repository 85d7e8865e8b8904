"""HTTP client for the instance control-plane API."""

from __future__ import annotations

import json
from typing import Any
from urllib.parse import urlencode, urljoin

import requests
from requests import Response

from netmon.config import MonitorSettings


class ControlPlaneError(Exception):
    """Base error for control-plane operations."""


class ControlPlaneNotFoundError(ControlPlaneError):
    """Raised when the control plane returns 404."""


class ControlPlaneUnauthorizedError(ControlPlaneError):
    """Raised when control-plane authentication fails."""


class ControlPlaneRequestError(ControlPlaneError):
    """Raised for unexpected control-plane failures."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class ControlPlaneClient:
    def __init__(
        self,
        *,
        base_url: str,
        token: str | None,
        timeout_seconds: int,
        session: requests.Session | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._token = token
        self._timeout_seconds = timeout_seconds
        self._session = session or requests.Session()

    @classmethod
    def from_settings(cls, settings: MonitorSettings) -> ControlPlaneClient:
        return cls(
            base_url=str(settings.api_base_url),
            token=settings.api_token,
            timeout_seconds=int(settings.request_timeout_seconds),
        )

    def request_json(
        self,
        method: str,
        path: str,
        *,
        params: dict[str, object] | None = None,
        json_body: dict[str, Any] | None = None,
    ) -> Any:
        """Perform a request and return the decoded JSON body (``{}`` when empty)."""

        response = self._request(method, path, params=params, json_body=json_body)
        if not response.content:
            return {}
        try:
            return response.json()
        except (json.JSONDecodeError, ValueError) as exc:
            raise ControlPlaneRequestError("Control plane returned invalid JSON.", response.status_code) from exc

    def close(self) -> None:
        self._session.close()

    def _request(
        self,
        method: str,
        path: str,
        *,
        params: dict[str, object] | None = None,
        json_body: dict[str, Any] | None = None,
    ) -> Response:
        url = self._build_url(path, params=params)
        try:
            response = self._session.request(
                method,
                url,
                headers=self._build_headers(),
                json=json_body,
                timeout=self._timeout_seconds,
            )
        except requests.RequestException as exc:
            raise ControlPlaneRequestError(str(exc)) from exc
        if response.status_code >= 400:
            self._raise_for_status(response)
        return response

    def _build_headers(self) -> dict[str, str]:
        headers = {"Accept": "application/json"}
        if self._token:
            headers["Authorization"] = f"Bearer {self._token}"
        return headers

    def _build_url(self, path: str, *, params: dict[str, object] | None = None) -> str:
        url = urljoin(f"{self._base_url}/", path.lstrip("/"))
        if params:
            query = urlencode({key: value for key, value in params.items() if value is not None})
            if query:
                return f"{url}?{query}"
        return url

    @staticmethod
    def _raise_for_status(response: Response) -> None:
        if response.status_code == 404:
            raise ControlPlaneNotFoundError("Control-plane resource not found.")
        if response.status_code in {401, 403}:
            raise ControlPlaneUnauthorizedError("Control-plane access denied.")
        raise ControlPlaneRequestError(
            f"Control-plane request failed with status {response.status_code}.", response.status_code
        )


__all__ = [
    "ControlPlaneClient",
    "ControlPlaneError",
    "ControlPlaneNotFoundError",
    "ControlPlaneUnauthorizedError",
    "ControlPlaneRequestError",
]
