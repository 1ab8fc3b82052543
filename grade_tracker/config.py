import logging
import os
from dataclasses import dataclass

DEFAULT_DATA_FILE = "grade_tracker_data.json"
DEFAULT_LOG_LEVEL = "WARNING"

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


@dataclass(frozen=True)
class Settings:
    data_file: str = DEFAULT_DATA_FILE
    log_level: str = DEFAULT_LOG_LEVEL


def load_settings(environ=None) -> Settings:
    env = os.environ if environ is None else environ
    return Settings(
        data_file=env.get("GRADE_TRACKER_DATA_FILE") or DEFAULT_DATA_FILE,
        log_level=(env.get("GRADE_TRACKER_LOG_LEVEL") or DEFAULT_LOG_LEVEL).upper(),
    )


def configure_logging(settings: Settings) -> None:
    # Streamlit reruns the script on every interaction; only attach a handler once
    root = logging.getLogger("grade_tracker")
    root.setLevel(getattr(logging, settings.log_level, logging.WARNING))
    if not root.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        root.addHandler(handler)
