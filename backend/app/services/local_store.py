"""
Local key/value persistence: one JSON document on disk holding opaque strings.

Holds the doctor/admin session record, the session provider's persisted
session, and the shell's preference flags. There is no schema versioning; a
file that cannot be read or parsed is treated as empty.
"""

import json
import logging
from pathlib import Path
from typing import Optional
from app.config import get_settings

logger = logging.getLogger(__name__)

THEMES = ("light", "dark")


class LocalStore:
    def __init__(self, path: str = None):
        self.path = Path(path or get_settings().local_store_path).expanduser()

    def _load(self) -> dict:
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return {}
        except (OSError, ValueError) as e:
            logger.warning("Local store %s unreadable, treating as empty: %s", self.path, e)
            return {}
        if not isinstance(data, dict):
            return {}
        return {k: v for k, v in data.items() if isinstance(v, str)}

    def _save(self, data: dict) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self.path.with_suffix(self.path.suffix + ".tmp")
        tmp.write_text(json.dumps(data, indent=2, sort_keys=True), encoding="utf-8")
        tmp.replace(self.path)

    def get(self, key: str) -> Optional[str]:
        return self._load().get(key)

    def set(self, key: str, value: str) -> None:
        data = self._load()
        data[key] = value
        self._save(data)

    def remove(self, key: str) -> None:
        data = self._load()
        if key in data:
            del data[key]
            self._save(data)


class Preferences:
    """Theme and first-run flags kept for the presentation shell."""

    def __init__(self, store: LocalStore):
        self.store = store
        settings = get_settings()
        self.theme_key = settings.theme_key
        self.onboarding_key = settings.onboarding_key
        self.profile_completed_key = settings.profile_completed_key

    def get_theme(self) -> str:
        theme = self.store.get(self.theme_key)
        return theme if theme in THEMES else "light"

    def set_theme(self, theme: str) -> None:
        if theme not in THEMES:
            raise ValueError(f"Unknown theme: {theme}")
        self.store.set(self.theme_key, theme)

    def onboarding_completed(self) -> bool:
        return self.store.get(self.onboarding_key) == "true"

    def mark_onboarding_completed(self) -> None:
        self.store.set(self.onboarding_key, "true")

    def profile_completed(self) -> bool:
        return self.store.get(self.profile_completed_key) == "true"

    def mark_profile_completed(self) -> None:
        self.store.set(self.profile_completed_key, "true")

    def as_dict(self) -> dict:
        return {
            "theme": self.get_theme(),
            "onboarding_completed": self.onboarding_completed(),
            "profile_completed": self.profile_completed(),
        }
