from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional, Protocol
from uuid import uuid4

from cryptography.fernet import Fernet, InvalidToken

from authclient.settings import Settings


TOKEN_KEY = "token"

logger = logging.getLogger(__name__)


class TokenStoreError(ValueError):
    """Raised when the durable token slot cannot be read or written."""


class TokenStore(Protocol):
    def get(self) -> Optional[str]: ...

    def set(self, token: str) -> None: ...

    def remove(self) -> None: ...


def _to_fernet(key: str | bytes) -> Fernet:
    """Construct a Fernet instance from a user-provided key.

    The key must be a URL-safe base64-encoded 32-byte key (str or bytes),
    as returned by `cryptography.fernet.Fernet.generate_key()`.
    """
    if isinstance(key, str):
        key_bytes = key.encode("utf-8")
    else:
        key_bytes = key
    return Fernet(key_bytes)


class MemoryTokenStore:
    """Process-local token slot. Nothing survives a restart."""

    def __init__(self, token: Optional[str] = None) -> None:
        self._token = token

    def get(self) -> Optional[str]:
        return self._token

    def set(self, token: str) -> None:
        self._token = token

    def remove(self) -> None:
        self._token = None


class FileTokenStore:
    """
    File-backed key-value storage holding the `"token"` slot.

    - The file is a JSON object of slots, e.g. `{"token": "abc123"}`; keys other
      than `"token"` are preserved across writes whatever their values are.
    - When a Fernet key is given, the whole JSON document is encrypted at rest.
    - Writes go to a temp file beside the target and are moved into place with
      `os.replace`, so readers never see a half-written file.
    - A missing file means no token. An unreadable one raises `TokenStoreError`.
    """

    def __init__(self, path: os.PathLike[str] | str, *, fernet_key: str | bytes | None = None) -> None:
        self._path = Path(path)
        self._fernet = _to_fernet(fernet_key) if fernet_key else None

    @classmethod
    def from_settings(cls, settings: Settings) -> "FileTokenStore":
        return cls(settings.storage_path, fernet_key=settings.fernet_key)

    @property
    def path(self) -> Path:
        return self._path

    # -------- Slot operations --------
    def get(self) -> Optional[str]:
        val = self._read().get(TOKEN_KEY)
        if val is not None and not isinstance(val, str):
            raise TokenStoreError(f"Token slot in {self._path} is not a string")
        return val or None

    def set(self, token: str) -> None:
        if not token:
            raise ValueError("token must be a non-empty string")
        data = self._read()
        data[TOKEN_KEY] = token
        self._write(data)

    def remove(self) -> None:
        data = self._read()
        if TOKEN_KEY not in data:
            return
        del data[TOKEN_KEY]
        self._write(data)

    # -------- File I/O --------
    def _read(self) -> Dict[str, Any]:
        try:
            raw = self._path.read_bytes()
        except FileNotFoundError:
            return {}
        except OSError as ex:
            raise TokenStoreError(f"Failed to read token storage at {self._path}") from ex

        if self._fernet is not None:
            try:
                raw = self._fernet.decrypt(raw)
            except InvalidToken as ex:
                raise TokenStoreError("Failed to decrypt token storage: invalid Fernet token") from ex

        try:
            data = json.loads(raw.decode("utf-8"))
        except (UnicodeDecodeError, ValueError) as ex:
            raise TokenStoreError(f"Failed to parse token storage at {self._path}") from ex
        if not isinstance(data, dict):
            raise TokenStoreError(f"Token storage at {self._path} is not a JSON object")
        return data

    def _write(self, data: Dict[str, Any]) -> None:
        payload = json.dumps(data, separators=(",", ":"), sort_keys=True).encode("utf-8")
        if self._fernet is not None:
            payload = self._fernet.encrypt(payload)

        tmp = self._path.with_name(f"{self._path.name}.tmp-{uuid4().hex}")
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            tmp.write_bytes(payload)
            os.replace(tmp, self._path)
        except OSError as ex:
            tmp.unlink(missing_ok=True)
            raise TokenStoreError(f"Failed to write token storage at {self._path}") from ex
        logger.debug("Token storage written to %s", self._path)


__all__ = [
    "FileTokenStore",
    "MemoryTokenStore",
    "TOKEN_KEY",
    "TokenStore",
    "TokenStoreError",
]
