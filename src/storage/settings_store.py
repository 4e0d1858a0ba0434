from __future__ import annotations

import json
import logging
import os
from pathlib import Path

from planner_ai.models import AppSettings

logger = logging.getLogger(__name__)

SETTINGS_PATH = os.getenv("SETTINGS_PATH", "data/settings.json")


class SettingsStore:
    def __init__(self, path: str = SETTINGS_PATH):
        self.path = Path(path)

    def load(self) -> AppSettings:
        """
        Load settings from disk. Returns defaults if file is missing or invalid.
        """
        try:
            if not self.path.exists():
                return AppSettings()

            data = json.loads(self.path.read_text(encoding="utf-8"))
            return AppSettings(**data)
        except Exception as e:
            logger.error(f"Error loading settings: {e}")
            return AppSettings()

    def save(self, settings: AppSettings) -> bool:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self.path.write_text(
                json.dumps(settings.model_dump(mode="json"), ensure_ascii=False, indent=2),
                encoding="utf-8",
            )
        except OSError as e:
            logger.error(f"Failed to save settings: {e}")
            return False
        return True

    def reset(self) -> None:
        self.path.unlink(missing_ok=True)
