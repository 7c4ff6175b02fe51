"""Runtime settings for recipectl."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from recipectl import __version__

WORKSPACE_DIR = ".recipectl"
RECIPE_FILE = "recipes.yaml"


@dataclass(frozen=True)
class RuntimeSettings:
    home_dir: Path
    log_dir: Path
    cli_version: str = __version__

    @property
    def telemetry_log(self) -> Path:
        return self.log_dir / "telemetry.jsonl"


def _default_home_dir() -> Path:
    override = os.environ.get("RECIPECTL_HOME")
    if override:
        return Path(override).expanduser()
    return Path.home() / ".recipectl"


def load_settings() -> RuntimeSettings:
    base = _default_home_dir()
    return RuntimeSettings(home_dir=base, log_dir=base / "logs")


def workspace_recipe_file(root: Path) -> Path:
    return root / WORKSPACE_DIR / RECIPE_FILE


SETTINGS = load_settings()
