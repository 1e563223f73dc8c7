"""JSON settings file shared with the UI (holds the Apify access token)."""

from __future__ import annotations

import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)

APIFY_TOKEN_KEY = "apifyApiKey"


class SettingsStore:
    """Read/merge/write a flat JSON settings document."""

    def __init__(self, path: str | Path):
        self.path = Path(path)

    def load(self) -> dict[str, Any]:
        """Return the settings dict, or {} if the file is missing or unreadable."""
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return {}
        except (OSError, json.JSONDecodeError) as e:
            logger.warning("Could not read settings file %s: %s", self.path, e)
            return {}
        if not isinstance(data, dict):
            logger.warning("Settings file %s is not a JSON object, ignoring", self.path)
            return {}
        return data

    def update(self, changes: dict[str, Any]) -> dict[str, Any]:
        settings = {**self.load(), **changes, "updatedAt": datetime.now().isoformat()}
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps(settings, indent=2), encoding="utf-8")
        return settings

    def apify_token(self) -> str:
        token = self.load().get(APIFY_TOKEN_KEY) or ""
        return token.strip() if isinstance(token, str) else ""


def mask_secret(value: str) -> str:
    if not value:
        return ""
    if len(value) <= 8:
        return "*" * len(value)
    return value[:4] + "*" * (len(value) - 8) + value[-4:]
