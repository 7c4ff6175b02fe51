from __future__ import annotations

import os
import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
SANDBOX_HOME = Path(os.environ.get("PYTEST_DEBUG_TEMPROOT", "/tmp/recipectl-pytest")).resolve() / "global-home"
os.environ.setdefault("RECIPECTL_HOME", str(SANDBOX_HOME))
os.environ["RECIPECTL_TELEMETRY"] = "1"
SANDBOX_HOME.mkdir(parents=True, exist_ok=True)
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

from recipectl.app.dispatch_service import DispatchService  # noqa: E402
from recipectl.app.recipe_book import RecipeBook  # noqa: E402
from recipectl.settings import RuntimeSettings  # noqa: E402


@pytest.fixture
def settings(tmp_path: Path) -> RuntimeSettings:
    home = tmp_path / "home"
    log_dir = home / "logs"
    log_dir.mkdir(parents=True, exist_ok=True)
    return RuntimeSettings(home_dir=home, log_dir=log_dir, cli_version="0.3.0")


@pytest.fixture
def workspace(tmp_path: Path) -> Path:
    root = tmp_path / "workspace"
    for name in ("cli", "service", "libs", "impl"):
        (root / name).mkdir(parents=True, exist_ok=True)
    return root


@pytest.fixture
def service(settings: RuntimeSettings, workspace: Path) -> DispatchService:
    return DispatchService(settings, RecipeBook.default(), workspace)
