from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv


def _env_str(key: str, default: Optional[str] = None) -> Optional[str]:
    v = os.getenv(key)
    if v is None:
        return default
    v = v.strip()
    return v if v else default


def _env_int(key: str, default: int) -> int:
    v = _env_str(key)
    if v is None:
        return default
    try:
        return int(v)
    except ValueError:
        return default


def _env_bool(key: str, default: bool) -> bool:
    v = _env_str(key)
    if v is None:
        return default
    return v.lower() in {"1", "true", "yes", "y", "on"}


@dataclass(frozen=True)
class Settings:
    # Logging
    log_level: str = "INFO"
    log_json: bool = True

    # Upload ceiling enforced before the engine runs
    max_upload_bytes: int = 10 * 1024 * 1024

    # Below this many non-empty responses the validator suggests collecting more data
    min_responses: int = 10

    # Optional JSON file overriding the built-in vocabulary tables
    vocabulary_path: Optional[str] = None

    @staticmethod
    def from_env() -> "Settings":
        # Read configuration from environment variables (and .env if present).
        load_dotenv()

        return Settings(
            log_level=_env_str("SURVEY_LOG_LEVEL", "INFO") or "INFO",
            log_json=_env_bool("SURVEY_LOG_JSON", True),
            max_upload_bytes=_env_int("SURVEY_MAX_UPLOAD_BYTES", 10 * 1024 * 1024),
            min_responses=_env_int("SURVEY_MIN_RESPONSES", 10),
            vocabulary_path=_env_str("SURVEY_VOCABULARY_PATH"),
        )
