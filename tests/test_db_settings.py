"""Tests for the API key settings store."""

import json

import pytest

from wastescan.db.scans import SCANS_KEY, ScanRepository
from wastescan.db.settings import SETTINGS_KEY, SettingsStore
from wastescan.db.store import MemoryStore
from wastescan.errors import PersistenceError
from wastescan.models import Scan


def test_unset_by_default():
    settings = SettingsStore(MemoryStore())
    assert settings.get() is None
    assert settings.exists() is False


def test_set_and_get():
    settings = SettingsStore(MemoryStore())
    settings.set("AIza-test")
    assert settings.get() == "AIza-test"
    assert settings.exists() is True


def test_clear_with_none_or_empty():
    settings = SettingsStore(MemoryStore())
    settings.set("key")
    settings.set(None)
    assert settings.get() is None
    settings.set("key")
    settings.set("")
    assert settings.exists() is False


def test_unrelated_keys_preserved():
    store = MemoryStore()
    store.write(SETTINGS_KEY, json.dumps({"geminiApiKey": None, "theme": "dark"}))
    SettingsStore(store).set("key")
    assert json.loads(store.read(SETTINGS_KEY)) == {"geminiApiKey": "key", "theme": "dark"}


def test_malformed_settings_read_as_unset():
    store = MemoryStore()
    store.write(SETTINGS_KEY, "[broken")
    assert SettingsStore(store).get() is None


def test_separate_namespace_from_scans():
    store = MemoryStore()
    repo = ScanRepository(store)
    repo.create(Scan(total_residual_kg=10))
    SettingsStore(store).set("key")
    assert len(json.loads(store.read(SCANS_KEY))["scans"]) == 1
    assert len(ScanRepository(store).list()) == 1


def test_write_failure_propagates():
    settings = SettingsStore(MemoryStore(quota_bytes=5))
    with pytest.raises(PersistenceError):
        settings.set("a-long-api-key")
