from __future__ import annotations

import json
from pathlib import Path

import pytest
from cryptography.fernet import Fernet

from authclient.settings import Settings
from authstate.token_store import FileTokenStore, MemoryTokenStore, TokenStoreError


def test_memory_store_slot_lifecycle():
    store = MemoryTokenStore()
    assert store.get() is None
    store.set("abc123")
    assert store.get() == "abc123"
    store.remove()
    store.remove()
    assert store.get() is None


def test_file_store_missing_file_means_no_token(tmp_path: Path):
    store = FileTokenStore(tmp_path / "nested" / "session.json")
    assert store.get() is None
    # Removing from a missing file is a no-op and creates nothing
    store.remove()
    assert not store.path.exists()


def test_file_store_persists_across_instances(tmp_path: Path):
    path = tmp_path / "session.json"
    FileTokenStore(path).set("tok1")

    assert FileTokenStore(path).get() == "tok1"
    assert json.loads(path.read_text(encoding="utf-8")) == {"token": "tok1"}


def test_file_store_preserves_other_keys(tmp_path: Path):
    path = tmp_path / "session.json"
    others = {"theme": "dark", "prefs": {"lang": "en", "tabs": [1, 2]}, "n": 3, "beta": None}
    path.write_text(json.dumps(others), encoding="utf-8")
    store = FileTokenStore(path)

    store.set("tok1")
    assert json.loads(path.read_text(encoding="utf-8")) == {**others, "token": "tok1"}

    store.remove()
    assert json.loads(path.read_text(encoding="utf-8")) == others


def test_file_store_leaves_no_temp_files(tmp_path: Path):
    store = FileTokenStore(tmp_path / "session.json")
    store.set("a")
    store.set("b")
    assert sorted(p.name for p in tmp_path.iterdir()) == ["session.json"]


def test_file_store_encrypted_at_rest(tmp_path: Path):
    key = Fernet.generate_key()
    path = tmp_path / "session.json"
    FileTokenStore(path, fernet_key=key).set("secret-token")

    assert b"secret-token" not in path.read_bytes()
    assert FileTokenStore(path, fernet_key=key.decode("ascii")).get() == "secret-token"


def test_file_store_wrong_key_raises(tmp_path: Path):
    path = tmp_path / "session.json"
    FileTokenStore(path, fernet_key=Fernet.generate_key()).set("tok")

    with pytest.raises(TokenStoreError, match="decrypt"):
        FileTokenStore(path, fernet_key=Fernet.generate_key()).get()


def test_file_store_corrupt_json_raises(tmp_path: Path):
    path = tmp_path / "session.json"
    path.write_text("{not json", encoding="utf-8")

    with pytest.raises(TokenStoreError):
        FileTokenStore(path).get()


def test_file_store_rejects_empty_token(tmp_path: Path):
    with pytest.raises(ValueError):
        FileTokenStore(tmp_path / "session.json").set("")


def test_file_store_from_settings(tmp_path: Path):
    key = Fernet.generate_key().decode("ascii")
    settings = Settings(storage_path=tmp_path / "s.json", fernet_key=key)
    store = FileTokenStore.from_settings(settings)
    store.set("tok")

    assert store.path == tmp_path / "s.json"
    assert FileTokenStore(tmp_path / "s.json", fernet_key=key).get() == "tok"


def test_file_store_non_string_token_slot_raises(tmp_path: Path):
    path = tmp_path / "session.json"
    path.write_text(json.dumps({"token": 42}), encoding="utf-8")

    with pytest.raises(TokenStoreError, match="not a string"):
        FileTokenStore(path).get()
