from __future__ import annotations

import json
import os
import threading
from pathlib import Path
from typing import Any, Dict

from loguru import logger as log
from pydantic import ValidationError

from quantai.core.config import SETTINGS_VERSION, UserSettings
from quantai.core.errors import SettingsError


def _expand(path: str) -> str:
    return os.path.expandvars(os.path.expanduser(path))


def _migrate(data: Dict[str, Any]) -> Dict[str, Any]:
    version = int(data.get("version", 0) or 0)
    if version > SETTINGS_VERSION:
        raise SettingsError(f"settings version {version} is newer than supported {SETTINGS_VERSION}")
    if version == 0:
        # Unversioned dashboard blob: same keys, no version marker
        data = dict(data)
        data["version"] = SETTINGS_VERSION
    return data


class SettingsStore:
    """JSON-file store for UserSettings: read once at startup, written on every change.

    A missing file yields defaults. An unreadable or invalid blob is logged and
    replaced by defaults rather than failing startup.
    """

    def __init__(self, path: str = "~/.quantai/settings.json") -> None:
        self.path = Path(_expand(path))
        self._lock = threading.Lock()

    def load(self) -> UserSettings:
        if not self.path.exists():
            return UserSettings()
        try:
            with self.path.open("r", encoding="utf-8") as f:
                raw = json.load(f)
            if not isinstance(raw, dict):
                raise SettingsError("settings blob is not an object")
            return UserSettings.model_validate(_migrate(raw))
        except (OSError, ValueError, ValidationError, SettingsError) as e:
            log.warning(f"Failed to parse settings at {self.path}, using defaults: {e}")
            return UserSettings()

    def save(self, settings: UserSettings) -> None:
        with self._lock:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            tmp = self.path.with_suffix(self.path.suffix + ".tmp")
            with tmp.open("w", encoding="utf-8") as f:
                json.dump(settings.to_blob(), f, indent=2)
            os.replace(tmp, self.path)
        log.debug(f"Settings saved to {self.path}")
