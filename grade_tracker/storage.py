import json
import logging
import os
import tempfile
from typing import Any, Dict, List, Optional

from grade_tracker.records import normalise_record
from grade_tracker.themes import DEFAULT_THEME, THEMES

logger = logging.getLogger(__name__)

DATA_KEY = "grade_tracker_data"
THEME_KEY = "current_theme"


class JsonStore:
    """
    Small key-value store kept as a single JSON object on disk.

    A missing file reads as empty. A file that cannot be read or parsed is
    logged and also read as empty; it is overwritten on the next `set`.
    """

    def __init__(self, path: str):
        self.path = path

    def _read(self) -> Dict[str, Any]:
        if not os.path.exists(self.path):
            return {}
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            logger.warning("Could not read %s, starting empty: %s", self.path, e)
            return {}
        if not isinstance(data, dict):
            logger.warning("Ignoring %s: expected a JSON object", self.path)
            return {}
        return data

    def get(self, key: str, default: Any = None) -> Any:
        return self._read().get(key, default)

    def set(self, key: str, value: Any) -> None:
        data = self._read()
        data[key] = value

        directory = os.path.dirname(os.path.abspath(self.path))
        fd, tmp_path = tempfile.mkstemp(dir=directory, suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=2, ensure_ascii=False)
            os.replace(tmp_path, self.path)
        except BaseException:
            if os.path.exists(tmp_path):
                os.remove(tmp_path)
            raise
        logger.debug("Saved %s to %s", key, self.path)


def load_years(store: JsonStore) -> List[dict]:
    return normalise_record(store.get(DATA_KEY, []))


def save_years(store: JsonStore, years: List[dict]) -> None:
    store.set(DATA_KEY, years)


def try_save_years(store: JsonStore, years: List[dict]) -> Optional[str]:
    """Save the record, returning the error message instead of raising when the write fails."""
    try:
        save_years(store, years)
    except OSError as e:
        logger.error("Saving to %s failed: %s", store.path, e)
        return str(e)
    return None


def load_theme(store: JsonStore) -> str:
    theme = store.get(THEME_KEY, DEFAULT_THEME)
    if theme not in THEMES:
        logger.info("Unknown theme %r, using %s", theme, DEFAULT_THEME)
        return DEFAULT_THEME
    return theme


def save_theme(store: JsonStore, theme: str) -> None:
    store.set(THEME_KEY, theme)
