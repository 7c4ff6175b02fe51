"""Packaged resources for recipectl."""

from __future__ import annotations

import json
from functools import lru_cache
from importlib import resources
from typing import Any

import yaml

__all__ = ["load_default_recipes", "load_schema"]


@lru_cache(maxsize=1)
def _default_recipes_text() -> str:
    return (resources.files(__name__) / "recipes.yaml").read_text("utf-8")


def load_default_recipes() -> dict[str, Any]:
    """Return the built-in recipe table shipped with the package."""

    return yaml.safe_load(_default_recipes_text()) or {}


@lru_cache(maxsize=None)
def load_schema(name: str) -> dict[str, Any]:
    resource = resources.files(__name__) / name
    with resource.open("r", encoding="utf-8") as handle:
        return json.load(handle)
