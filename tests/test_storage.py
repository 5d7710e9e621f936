import json

import pytest

from workshop.config import SCHEMA_VERSION
from workshop.encryption import get_encryptor, load_key
from workshop.errors import StorageError
from workshop.storage import LocalStore


def test_values_survive_reopening(tmp_path, encryptor):
    path = str(tmp_path / "records.json")
    LocalStore(path, encryptor).set("users", [{"username": "ali"}])

    reopened = LocalStore(path, encryptor)
    assert reopened.get("users") == [{"username": "ali"}]
    assert reopened.enumerate_keys() == ["users"]


def test_file_is_encrypted_and_versioned(store, encryptor):
    store.set("theme", "dark")
    with open(store.path) as f:
        raw = f.read()
    assert "dark" not in raw
    document = json.loads(encryptor.decrypt(raw.encode()))
    assert document == {"schema_version": SCHEMA_VERSION, "keys": {"theme": "dark"}}


def test_get_returns_a_copy(store):
    store.set("jobs", [1, 2])
    store.get("jobs").append(3)
    assert store.get("jobs") == [1, 2]


def test_missing_key_returns_default(store):
    assert store.get("nope") is None
    assert store.get("nope", []) == []


def test_remove_and_contains(store):
    store.set("a", 1)
    assert "a" in store
    store.remove("a")
    assert "a" not in store
    assert store.enumerate_keys() == []


def test_corrupt_file_starts_fresh(tmp_path, encryptor):
    path = tmp_path / "records.json"
    path.write_text("not a fernet token")
    assert LocalStore(str(path), encryptor).enumerate_keys() == []


def test_unversioned_file_is_read_as_flat_mapping(tmp_path, encryptor):
    path = tmp_path / "records.json"
    path.write_text(encryptor.encrypt(json.dumps({"theme": "light"}).encode()).decode())
    assert LocalStore(str(path), encryptor).get("theme") == "light"


def test_newer_schema_is_rejected(tmp_path, encryptor):
    path = tmp_path / "records.json"
    document = {"schema_version": SCHEMA_VERSION + 1, "keys": {}}
    path.write_text(encryptor.encrypt(json.dumps(document).encode()).decode())
    with pytest.raises(StorageError):
        LocalStore(str(path), encryptor)


def test_failed_write_leaves_no_partial_change(tmp_path, encryptor):
    store = LocalStore(str(tmp_path / "missing-dir" / "records.json"), encryptor)
    with pytest.raises(StorageError):
        store.write({"a": 1, "b": 2})
    assert store.enumerate_keys() == []


def test_unserializable_value_is_rejected(store):
    with pytest.raises(StorageError):
        store.set("bad", object())
    assert "bad" not in store


def test_key_file_is_created_once(tmp_path):
    key_path = str(tmp_path / "secret.key")
    token = get_encryptor(key_path).encrypt(b"crown")
    assert load_key(key_path)
    assert get_encryptor(key_path).decrypt(token) == b"crown"
