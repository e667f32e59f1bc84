from __future__ import annotations

from pathlib import Path

import pytest

from cryptography.fernet import Fernet

from authclient.settings import DEFAULT_STORAGE_PATH, Settings


def test_defaults_when_env_empty():
    s = Settings.from_env({})
    assert s.backend_url == "http://localhost:3000"
    assert s.storage_path == DEFAULT_STORAGE_PATH
    assert s.fernet_key is None
    assert s.http_timeout == 15.0


def test_env_overrides():
    key = Fernet.generate_key().decode("ascii")
    s = Settings.from_env(
        {
            "AUTH_BACKEND_URL": "https://api.example.com/",
            "AUTH_STORAGE_PATH": "/tmp/tok.json",
            "AUTH_FERNET_KEY": key,
            "AUTH_HTTP_TIMEOUT": "2.5",
        }
    )
    assert s.backend_url == "https://api.example.com"
    assert s.storage_path == Path("/tmp/tok.json")
    assert s.fernet_key == key
    assert s.http_timeout == 2.5


def test_backend_url_fallback_and_blank_values():
    s = Settings.from_env({"AUTH_BACKEND_URL": "", "BACKEND_URL": "http://fallback:3000"})
    assert s.backend_url == "http://fallback:3000"


def test_reads_process_environment(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setenv("AUTH_BACKEND_URL", "http://from-env:3000")
    assert Settings.from_env().backend_url == "http://from-env:3000"


@pytest.mark.parametrize("raw", ["abc", "0", "-1"])
def test_invalid_timeout_raises(raw: str):
    with pytest.raises(RuntimeError, match="AUTH_HTTP_TIMEOUT"):
        Settings.from_env({"AUTH_HTTP_TIMEOUT": raw})


@pytest.mark.parametrize("raw", ["not-a-key", "A" * 43])
def test_invalid_fernet_key_raises(raw: str):
    with pytest.raises(RuntimeError, match="AUTH_FERNET_KEY") as ei:
        Settings.from_env({"AUTH_FERNET_KEY": raw})
    assert raw not in str(ei.value)
