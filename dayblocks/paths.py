from __future__ import annotations

import os
from pathlib import Path

APP_ENV_HOME = "DAYBLOCKS_HOME"
APP_ENV_CONFIG = "DAYBLOCKS_CONFIG"


def project_root() -> Path:
    """
    Repository/project root directory.
    Contains dayblocks/, config/, tests/.
    """
    return Path(__file__).parent.parent.resolve()


def app_home() -> Path:
    """
    User-writable home for dayblocks.
    Override with DAYBLOCKS_HOME.
    """
    if os.environ.get(APP_ENV_HOME):
        return Path(os.environ[APP_ENV_HOME]).expanduser().resolve()
    return (Path.home() / ".dayblocks").resolve()


def config_dir() -> Path:
    d = app_home() / "config"
    d.mkdir(parents=True, exist_ok=True)
    return d


def data_dir() -> Path:
    d = app_home() / "data"
    d.mkdir(parents=True, exist_ok=True)
    return d


def settings_path() -> Path:
    """
    Canonical settings file.

    Resolution order:
    1. DAYBLOCKS_CONFIG env var (explicit override)
    2. ~/.dayblocks/config/dayblocks.yaml, if present
    3. <project_root>/config/dayblocks.yaml (shipped defaults)
    """
    if os.environ.get(APP_ENV_CONFIG):
        return Path(os.environ[APP_ENV_CONFIG]).expanduser().resolve()
    user_file = app_home() / "config" / "dayblocks.yaml"
    if user_file.exists():
        return user_file
    return project_root() / "config" / "dayblocks.yaml"
