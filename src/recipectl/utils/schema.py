"""Schema helpers for recipe files and telemetry records."""

from __future__ import annotations

from functools import lru_cache
from typing import Any, Iterator, Tuple

from jsonschema import Draft202012Validator

from recipectl.resources import load_schema

RECIPES_SCHEMA = "recipes.schema.json"
TELEMETRY_SCHEMA = "telemetry.schema.json"


@lru_cache(maxsize=None)
def _validator(name: str) -> Draft202012Validator:
    return Draft202012Validator(load_schema(name))


def iter_schema_errors(payload: Any, schema: str = RECIPES_SCHEMA) -> Iterator[Tuple[str, str]]:
    """Yield (path, message) pairs for schema issues in the payload."""
    for error in _validator(schema).iter_errors(payload):
        path = ".".join(str(item) for item in error.absolute_path)
        yield path, error.message


def validate(payload: Any, schema: str) -> None:
    _validator(schema).validate(payload)


__all__ = ["RECIPES_SCHEMA", "TELEMETRY_SCHEMA", "iter_schema_errors", "validate"]
