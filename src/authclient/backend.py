from __future__ import annotations

import logging
from typing import Any, Dict, Mapping, Optional

import httpx


DEFAULT_BACKEND_URL = "http://localhost:3000"

logger = logging.getLogger(__name__)


class BackendError(RuntimeError):
    """Base error for the auth backend client."""


class NetworkFailure(BackendError):
    """The request could not complete (connection, DNS, timeout)."""


class BackendRejection(BackendError):
    """Backend answered with a non-success status."""

    def __init__(self, message: str, *, status_code: int) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class BackendClient:
    """
    Minimal client for the auth backend: `/login`, `/register` and `/user/me`.

    Notes
    - JSON request bodies; the bearer token is only sent to `/user/me`.
    - No credential validation happens here; the backend is the authority.
    - No retries. `login` and `register` are not idempotent, and a hung call
      is bounded by the per-request `timeout` instead.
    """

    def __init__(
        self,
        base_url: str = DEFAULT_BACKEND_URL,
        *,
        timeout: float = 15.0,
        client: Optional[httpx.Client] = None,
    ) -> None:
        if not base_url:
            raise ValueError("base_url is required")
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._owns_client = client is None
        self._client = client or httpx.Client(base_url=self._base_url, timeout=self._timeout)

    @property
    def base_url(self) -> str:
        return self._base_url

    def close(self) -> None:
        if self._owns_client:
            self._client.close()

    def __enter__(self) -> "BackendClient":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    # --------------- Public API ---------------
    def fetch_current_user(self, token: str) -> Dict[str, Any]:
        """
        Resolve `token` into the current user's record via GET /user/me.

        Returns the `user` object from the response body.
        Raises BackendRejection on a non-success status, BackendError on a
        malformed body and NetworkFailure when the request does not complete.
        """
        resp = self._request("GET", "/user/me", headers={"Authorization": f"Bearer {token}"})
        if not resp.is_success:
            raise self._rejection(resp)
        data = self._json(resp)
        user = data.get("user") if isinstance(data, dict) else None
        if not isinstance(user, dict):
            raise BackendError("Malformed /user/me response: missing user")
        return user

    def login(self, username: str, password: str) -> str:
        """Exchange credentials for a token via POST /login."""
        resp = self._request("POST", "/login", json_body={"username": username, "password": password})
        if not resp.is_success:
            raise self._rejection(resp)
        data = self._json(resp)
        token = data.get("token") if isinstance(data, dict) else None
        if not isinstance(token, str) or not token:
            raise BackendError("Malformed /login response: missing token")
        return token

    def register(self, user_data: Mapping[str, Any]) -> Any:
        """
        Create an account via POST /register.

        The success body is backend-defined; it is returned parsed when it is
        JSON and as None otherwise.
        """
        resp = self._request("POST", "/register", json_body=dict(user_data))
        if not resp.is_success:
            raise self._rejection(resp)
        if not resp.content:
            return None
        try:
            return resp.json()
        except ValueError:
            return None

    # --------------- Internal ---------------
    def _request(
        self,
        method: str,
        path: str,
        *,
        json_body: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None,
    ) -> httpx.Response:
        logger.debug("%s %s%s", method, self._base_url, path)
        try:
            resp = self._client.request(method, path, json=json_body, headers=headers)
        except (httpx.TimeoutException, httpx.TransportError) as exc:
            raise NetworkFailure(f"Network error contacting {self._base_url}: {exc}") from exc
        logger.debug("%s %s -> HTTP %s", method, path, resp.status_code)
        return resp

    @staticmethod
    def _json(resp: httpx.Response) -> Any:
        try:
            return resp.json()
        except ValueError as exc:  # JSON decode error
            raise BackendError(f"Failed to parse JSON from backend (HTTP {resp.status_code})") from exc

    @staticmethod
    def _rejection(resp: httpx.Response) -> BackendRejection:
        # Error bodies look like { message: "..." }
        message = None
        try:
            body = resp.json()
        except ValueError:
            body = None
        if isinstance(body, dict):
            raw = body.get("message")
            if isinstance(raw, str) and raw:
                message = raw
        if message is None:
            message = f"HTTP {resp.status_code} from backend"
        return BackendRejection(message, status_code=resp.status_code)


__all__ = [
    "BackendClient",
    "BackendError",
    "BackendRejection",
    "NetworkFailure",
    "DEFAULT_BACKEND_URL",
]
