import json
import os

from pennywise.logger import get_logger

logger = get_logger(__name__)

WEBHOOK_URL_KEY = "webhookUrl"


class PreferenceStore:
    """Small JSON key-value file for settings that live on this machine only."""

    def __init__(self, data_path: str = "preferences.json"):
        self.data_path = data_path
        self.values: dict[str, str] = {}
        self.load()

    def load(self) -> None:
        if not os.path.exists(self.data_path):
            self.values = {}
            return
        try:
            with open(self.data_path, encoding="utf-8") as f:
                loaded = json.load(f)
        except json.JSONDecodeError:
            logger.warning("[PREFS] %s is not valid JSON; starting empty.", self.data_path)
            loaded = {}
        self.values = {str(k): str(v) for k, v in loaded.items()} if isinstance(loaded, dict) else {}

    def save(self) -> None:
        with open(self.data_path, "w", encoding="utf-8") as f:
            json.dump(self.values, f, indent=2)

    def get(self, key: str) -> str | None:
        return self.values.get(key)

    def set(self, key: str, value: str | None) -> None:
        """Store `value`; an empty value removes the key."""
        if value:
            self.values[key] = value
        else:
            self.values.pop(key, None)
        self.save()

    @property
    def webhook_url(self) -> str | None:
        return self.get(WEBHOOK_URL_KEY)

    @webhook_url.setter
    def webhook_url(self, url: str | None) -> None:
        self.set(WEBHOOK_URL_KEY, (url or "").strip())
