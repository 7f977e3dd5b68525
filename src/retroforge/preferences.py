"""Persisted preferences: API key, save path, and settings blobs.

:class:`PreferenceStore` is the key/value contract a host provides.
:class:`JsonFilePreferenceStore` is the implementation used by the CLI
and :class:`SettingsStorage` layers typed load/save on top of any store.
Corrupt or unparseable stored values always fall back to defaults.
"""

from __future__ import annotations

import json
import os
import threading
from abc import ABC, abstractmethod
from pathlib import Path

from pydantic import BaseModel, ValidationError

from retroforge.logging import get_logger
from retroforge.models import AnimationSettings, GenerationSettings, TextureImportSettings

logger = get_logger("preferences")

API_KEY_PREF_KEY = "RetroInputManager_ApiKey"
SAVE_PATH_PREF_KEY = "RetroInputManager_SavePath"
SETTINGS_PREF_KEY = "RetroSettingsStorage_Settings"
ANIMATION_SETTINGS_PREF_KEY = "RetroSettingsStorage_AnimationSettings"
TEXTURE_IMPORT_SETTINGS_PREF_KEY = "RetroSettingsStorage_TextureImportSettings"

DEFAULT_SAVE_PATH = "Assets/RetroImages"
PREFS_ENV_VAR = "RETROFORGE_PREFS"


def default_preferences_path() -> Path:
    """Preference file location (``$RETROFORGE_PREFS`` or the user config dir)."""
    override = os.environ.get(PREFS_ENV_VAR, "").strip()
    if override:
        return Path(override)
    return Path.home() / ".config" / "retroforge" / "preferences.json"


class PreferenceStore(ABC):
    """Abstract key/value store for string preferences."""

    @abstractmethod
    def get_string(self, key: str, default: str = "") -> str:
        """Return the stored value for *key*, or *default*."""

    @abstractmethod
    def set_string(self, key: str, value: str) -> None:
        """Store *value* under *key*."""


class JsonFilePreferenceStore(PreferenceStore):
    """Preference store backed by one JSON object on disk."""

    def __init__(self, path: str | Path | None = None) -> None:
        self.path = Path(path) if path is not None else default_preferences_path()
        self._lock = threading.RLock()

    def _read(self) -> dict[str, str]:
        if not self.path.is_file():
            return {}
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as exc:
            logger.warning("Ignoring unreadable preference file %s: %s", self.path, exc)
            return {}
        if not isinstance(data, dict):
            logger.warning("Ignoring preference file %s: not a JSON object", self.path)
            return {}
        return {str(k): v for k, v in data.items() if isinstance(v, str)}

    def _write(self, data: dict[str, str]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_name(
            f".{self.path.name}.tmp-{os.getpid()}-{threading.get_ident()}"
        )
        tmp_path.write_text(json.dumps(data, indent=2, sort_keys=True), encoding="utf-8")
        tmp_path.replace(self.path)

    def get_string(self, key: str, default: str = "") -> str:
        with self._lock:
            return self._read().get(key, default)

    def set_string(self, key: str, value: str) -> None:
        with self._lock:
            data = self._read()
            data[key] = value
            self._write(data)


class SettingsStorage:
    """Typed access to the preferences the generator persists."""

    def __init__(self, store: PreferenceStore) -> None:
        self._store = store

    # -- plain strings ------------------------------------------------------

    def get_api_key(self) -> str:
        return self._store.get_string(API_KEY_PREF_KEY, "")

    def set_api_key(self, api_key: str) -> None:
        self._store.set_string(API_KEY_PREF_KEY, api_key)

    def get_save_path(self) -> str:
        return self._store.get_string(SAVE_PATH_PREF_KEY, DEFAULT_SAVE_PATH)

    def set_save_path(self, path: str) -> None:
        self._store.set_string(SAVE_PATH_PREF_KEY, path)

    # -- JSON blobs ---------------------------------------------------------

    def _load_model(self, key: str, model: type[BaseModel]) -> BaseModel:
        raw = self._store.get_string(key, "")
        if not raw:
            return model()
        try:
            return model.model_validate_json(raw)
        except ValidationError as exc:
            logger.warning(
                "Stored %s is invalid, using defaults: %s", model.__name__, exc
            )
            return model()

    def load_settings(self) -> GenerationSettings:
        """Load image settings with the separately stored import settings applied."""
        settings = self._load_model(SETTINGS_PREF_KEY, GenerationSettings)
        assert isinstance(settings, GenerationSettings)
        return settings.model_copy(
            update={"texture_import": self.load_texture_import_settings()}
        )

    def save_settings(self, settings: GenerationSettings) -> None:
        self._store.set_string(
            SETTINGS_PREF_KEY, settings.model_dump_json(exclude={"texture_import"})
        )
        self.save_texture_import_settings(settings.texture_import)

    def load_animation_settings(self) -> AnimationSettings:
        settings = self._load_model(ANIMATION_SETTINGS_PREF_KEY, AnimationSettings)
        assert isinstance(settings, AnimationSettings)
        return settings

    def save_animation_settings(self, settings: AnimationSettings) -> None:
        self._store.set_string(ANIMATION_SETTINGS_PREF_KEY, settings.model_dump_json())

    def load_texture_import_settings(self) -> TextureImportSettings:
        settings = self._load_model(
            TEXTURE_IMPORT_SETTINGS_PREF_KEY, TextureImportSettings
        )
        assert isinstance(settings, TextureImportSettings)
        return settings

    def save_texture_import_settings(self, settings: TextureImportSettings) -> None:
        self._store.set_string(
            TEXTURE_IMPORT_SETTINGS_PREF_KEY, settings.model_dump_json()
        )
