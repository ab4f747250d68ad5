"""User display and notification preferences persisted as JSON."""

import json
import logging
from pathlib import Path
from typing import Any, Dict

from ..errors import ServiceError, ValidationError


logger = logging.getLogger(__name__)

THEMES = ("light", "dark", "white")
DEFAULT_VIEWS = ("dashboard", "fields", "tasks", "calendar")

DEFAULT_PREFERENCES: Dict[str, Any] = {
    "theme": "light",
    "dateFormat": "MM/dd/yyyy",
    "language": "en",
    "defaultView": "dashboard",
    "emailNotifications": True,
    "taskAssignmentNotifications": True,
    "deadlineReminders": True,
    "lifecycleAlerts": True,
    "reportNotifications": False,
}

_TRUE_VALUES = {"true", "yes", "on", "1"}
_FALSE_VALUES = {"false", "no", "off", "0"}


def coerce_preference(key: str, value: str) -> Any:
    """Convert a command-line string into the typed value for ``key``.

    Raises:
        ValidationError: For unknown keys or values outside the allowed set
    """
    if key not in DEFAULT_PREFERENCES:
        raise ValidationError(
            f"Unknown preference '{key}'. Known: {', '.join(DEFAULT_PREFERENCES)}"
        )

    if isinstance(DEFAULT_PREFERENCES[key], bool):
        lowered = value.strip().lower()
        if lowered in _TRUE_VALUES:
            return True
        if lowered in _FALSE_VALUES:
            return False
        raise ValidationError(f"Preference '{key}' expects true or false, got '{value}'")

    if key == "theme" and value not in THEMES:
        raise ValidationError(f"Theme must be one of: {', '.join(THEMES)}")
    if key == "defaultView" and value not in DEFAULT_VIEWS:
        raise ValidationError(f"Default view must be one of: {', '.join(DEFAULT_VIEWS)}")
    return value


class PreferenceStore:
    """Preferences stored in one JSON file and merged over the defaults."""

    def __init__(self, path: Path):
        self.path = Path(path)

    def get_preferences(self) -> Dict[str, Any]:
        """Stored values shallow-merged over the defaults.

        A missing or unreadable file yields the defaults.
        """
        preferences = dict(DEFAULT_PREFERENCES)
        if not self.path.exists():
            return preferences
        try:
            with open(self.path, "r") as f:
                stored = json.load(f)
        except (OSError, ValueError) as e:
            logger.error(f"Error loading preferences from {self.path}: {e}")
            return preferences
        if not isinstance(stored, dict):
            logger.error(f"Ignoring preferences file {self.path}: expected a JSON object")
            return preferences
        preferences.update(stored)
        return preferences

    def save_preferences(self, partial: Dict[str, Any]) -> Dict[str, Any]:
        """Merge ``partial`` into the current preferences and write them back."""
        unknown = sorted(set(partial) - set(DEFAULT_PREFERENCES))
        if unknown:
            logger.warning(f"Saving unrecognised preference keys: {', '.join(unknown)}")

        updated = self.get_preferences()
        updated.update(partial)
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.path, "w") as f:
                json.dump(updated, f, indent=2)
        except OSError as e:
            raise ServiceError(f"Error saving preferences to {self.path}: {e}") from e
        logger.debug(f"Preferences saved to {self.path}")
        return updated

    def reset_preferences(self) -> None:
        if self.path.exists():
            self.path.unlink()
            logger.info("Preferences reset to defaults")
