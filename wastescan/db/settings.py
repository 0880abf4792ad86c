"""Single-secret settings store (the AI service API key)."""

from __future__ import annotations

import json
import logging

from ..errors import PersistenceError
from .store import KeyValueStore

logger = logging.getLogger(__name__)

SETTINGS_KEY = "waste_scan_settings"


class SettingsStore:
    """Keeps the Gemini API key in its own namespace of the store.

    The key is not validated here; ``vision.verify_api_key`` does that.
    """

    def __init__(self, store: KeyValueStore, *, key: str = SETTINGS_KEY) -> None:
        self._store = store
        self._key = key

    def _load(self) -> dict:
        raw = self._store.read(self._key)
        if raw is None:
            return {"geminiApiKey": None}
        try:
            data = json.loads(raw)
        except ValueError as e:
            logger.warning("Stored settings are unreadable, using defaults: %s", e)
            return {"geminiApiKey": None}
        if not isinstance(data, dict):
            return {"geminiApiKey": None}
        return {"geminiApiKey": None, **data}

    def get(self) -> str | None:
        """Return the stored API key, or None when unset."""
        value = self._load().get("geminiApiKey")
        return value if isinstance(value, str) and value else None

    def set(self, value: str | None) -> None:
        """Store ``value``; None or an empty string clears the key.

        Raises:
            PersistenceError: If the store refused the write.
        """
        settings = self._load()
        settings["geminiApiKey"] = value or None
        try:
            self._store.write(self._key, json.dumps(settings))
        except PersistenceError:
            logger.warning("Settings were not saved", exc_info=True)
            raise

    def exists(self) -> bool:
        return self.get() is not None
