"""
Centralized configuration for dayblocks.

Two layers:
- Module-level constants read from environment variables (deployment knobs).
- PlannerSettings, loaded from config/dayblocks.yaml, holding the tunables
  of the scheduling core (countdown length, change log depth, phrase sets).
"""

import logging
import os
from pathlib import Path

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator

from dayblocks import paths
from dayblocks.errors import SettingsError

logger = logging.getLogger(__name__)

# ============================================================
# Environment
# ============================================================

LOG_LEVEL: str = os.environ.get("DAYBLOCKS_LOG_LEVEL", "INFO")
"""Root log level passed to observability.configure_logging."""

LOG_JSON: str | None = os.environ.get("DAYBLOCKS_LOG_JSON")
"""Force JSON ("1") or human ("0") log lines. Unset = auto-detect from TTY."""

# ============================================================
# Core tunables (defaults mirror config/dayblocks.yaml)
# ============================================================

DEFAULT_COUNTDOWN_SECONDS = 15
DEFAULT_CHANGE_LOG_LIMIT = 5
DEFAULT_RECENTLY_MOVED_SECONDS = 2
SUPPORTED_RESOLUTIONS = (1, 3, 30)


class PhraseSettings(BaseModel):
    """Voice phrases per intent. Matching is case-insensitive, word-bounded."""

    done: list[str] = Field(
        default_factory=lambda: ["done", "finished", "all done", "completed", "complete"]
    )
    still_doing: list[str] = Field(
        default_factory=lambda: [
            "still doing",
            "still working",
            "continue",
            "keep going",
            "not yet",
            "need more time",
        ]
    )
    stick_to_plan: list[str] = Field(
        default_factory=lambda: [
            "stick to plan",
            "stick to the plan",
            "follow the plan",
            "next task",
            "move on",
        ]
    )
    instead_pattern: str = r"\bi did (?P<title>.+?) instead\b"


class MarkerSettings(BaseModel):
    """Titles written into blocks by the progress cascade."""

    interrupted_no_response: str = "Interrupted - No Response"
    interrupted_closed: str = "Interrupted - Closed"
    paused: str = "Paused - Previous Interruption"
    pushed_to_future: str = "(pushed to future)"
    interrupted_color: str = "bg-red-500"
    paused_color: str = "bg-gray-500"


class PlannerSettings(BaseModel):
    countdown_seconds: int = Field(default=DEFAULT_COUNTDOWN_SECONDS, ge=1)
    change_log_limit: int = Field(default=DEFAULT_CHANGE_LOG_LIMIT, ge=1)
    recently_moved_seconds: int = Field(default=DEFAULT_RECENTLY_MOVED_SECONDS, ge=0)
    default_resolution: int = 30
    phrases: PhraseSettings = Field(default_factory=PhraseSettings)
    markers: MarkerSettings = Field(default_factory=MarkerSettings)

    @field_validator("default_resolution")
    @classmethod
    def _supported_resolution(cls, value: int) -> int:
        if value not in SUPPORTED_RESOLUTIONS:
            raise ValueError(f"resolution must be one of {SUPPORTED_RESOLUTIONS}, got {value}")
        return value


def load_settings(config_path: Path | None = None, strict: bool = False) -> PlannerSettings:
    """
    Load PlannerSettings from YAML.

    Missing file -> defaults (warning). Unreadable or invalid file -> defaults
    (error log), or SettingsError when strict=True.
    """
    if config_path is None:
        config_path = paths.settings_path()

    if not config_path.exists():
        logger.warning("Settings file not found at %s, using defaults", config_path)
        return PlannerSettings()

    try:
        with open(config_path) as f:
            raw = yaml.safe_load(f) or {}
        if not isinstance(raw, dict):
            raise SettingsError(f"Settings root must be a mapping, got {type(raw).__name__}")
        return PlannerSettings.model_validate(raw)
    except (OSError, yaml.YAMLError, ValidationError, SettingsError) as exc:
        if strict:
            if isinstance(exc, SettingsError):
                raise
            raise SettingsError(f"Invalid settings file {config_path}: {exc}") from exc
        logger.error("Failed to load settings from %s: %s", config_path, exc)
        return PlannerSettings()
