from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional

from cryptography.fernet import Fernet

from .backend import DEFAULT_BACKEND_URL


# Environment variable names
ENV_BACKEND_URL = "AUTH_BACKEND_URL"
ENV_STORAGE_PATH = "AUTH_STORAGE_PATH"
ENV_FERNET_KEY = "AUTH_FERNET_KEY"
ENV_HTTP_TIMEOUT = "AUTH_HTTP_TIMEOUT"

# Fallback shared with the web front end's build config
FALLBACK_ENV_BACKEND_URL = "BACKEND_URL"

DEFAULT_STORAGE_PATH = Path(".cache") / "session.json"
DEFAULT_HTTP_TIMEOUT = 15.0


def _getenv(environ: Mapping[str, str], name: str, default: Optional[str] = None) -> Optional[str]:
    val = environ.get(name)
    return val if val not in (None, "") else default


@dataclass(frozen=True)
class Settings:
    """
    Runtime configuration for the auth client.

    Environment variables (all optional)
    - `AUTH_BACKEND_URL`:  backend origin (fallback `BACKEND_URL`, default http://localhost:3000)
    - `AUTH_STORAGE_PATH`: file holding the durable token slot (default .cache/session.json)
    - `AUTH_FERNET_KEY`:   urlsafe base64 Fernet key; encrypts the token file when set
    - `AUTH_HTTP_TIMEOUT`: per-request timeout in seconds (default 15)
    """

    backend_url: str = DEFAULT_BACKEND_URL
    storage_path: Path = DEFAULT_STORAGE_PATH
    fernet_key: Optional[str] = None
    http_timeout: float = DEFAULT_HTTP_TIMEOUT

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "Settings":
        env = os.environ if environ is None else environ
        backend_url = (
            _getenv(env, ENV_BACKEND_URL)
            or _getenv(env, FALLBACK_ENV_BACKEND_URL)
            or DEFAULT_BACKEND_URL
        )
        storage = _getenv(env, ENV_STORAGE_PATH)
        raw_timeout = _getenv(env, ENV_HTTP_TIMEOUT)
        timeout = DEFAULT_HTTP_TIMEOUT
        if raw_timeout is not None:
            try:
                timeout = float(raw_timeout)
            except ValueError:
                raise RuntimeError(f"Invalid configuration: {ENV_HTTP_TIMEOUT}={raw_timeout!r}") from None
            if timeout <= 0:
                raise RuntimeError(f"Invalid configuration: {ENV_HTTP_TIMEOUT} must be > 0")
        fernet_key = _getenv(env, ENV_FERNET_KEY)
        if fernet_key is not None:
            try:
                Fernet(fernet_key.encode("utf-8"))
            except ValueError:
                # Do not echo the key
                raise RuntimeError(f"Invalid configuration: {ENV_FERNET_KEY} is not a valid Fernet key") from None
        return cls(
            backend_url=backend_url.rstrip("/"),
            storage_path=Path(storage) if storage else DEFAULT_STORAGE_PATH,
            fernet_key=fernet_key,
            http_timeout=timeout,
        )


__all__ = ["Settings"]
