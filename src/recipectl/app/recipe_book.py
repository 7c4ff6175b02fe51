"""Immutable alias -> recipe table, loaded once per process."""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from types import MappingProxyType
from typing import Any, Iterator, Mapping

from recipectl.utils.schema import RECIPES_SCHEMA, iter_schema_errors
from recipectl.domain import BuildTool, Recipe, RecipeConfigError, Rewrite, UnknownRecipeError, render
from recipectl.resources import load_default_recipes
from recipectl.settings import workspace_recipe_file


class RecipeBook:
    def __init__(self, recipes: Mapping[str, Recipe], tool: BuildTool, *, source: str = "<builtin>") -> None:
        self._recipes = MappingProxyType(dict(recipes))
        self._paths = MappingProxyType({alias: recipe.path for alias, recipe in recipes.items()})
        self._tool = tool
        self.source = source

    @classmethod
    def default(cls) -> "RecipeBook":
        return _builtin_book()

    @classmethod
    def load_from_file(cls, path: Path) -> "RecipeBook":
        import yaml  # lazy import to keep import cost low

        if not path.exists():
            raise RecipeConfigError(f"Recipe file missing: {path}")
        try:
            text = path.read_text("utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            raise RecipeConfigError(f"Recipe file {path} cannot be read: {exc}") from exc
        try:
            data = yaml.safe_load(text) or {}
        except yaml.YAMLError as exc:
            raise RecipeConfigError(f"Recipe file {path} is not valid YAML: {exc}") from exc
        return cls.from_payload(data, source=str(path))

    @classmethod
    def from_payload(cls, data: Any, *, source: str = "<builtin>") -> "RecipeBook":
        errors = [f"{where or '<root>'}: {message}" for where, message in iter_schema_errors(data, RECIPES_SCHEMA)]
        if errors:
            raise RecipeConfigError(f"Invalid recipe file {source}: " + "; ".join(errors))

        tool = BuildTool(
            name=data.get("build_tool", "cargo"),
            toolchain=data.get("toolchain", ""),
            offline_args=tuple(data.get("offline_args", ())),
        )
        recipes: dict[str, Recipe] = {}
        for alias, payload in data["recipes"].items():
            rules = tuple(_build_rule(raw) for raw in payload.get("rules", []))
            seen: set[str] = set()
            for rule in rules:
                if rule.match in seen:
                    raise RecipeConfigError(f"Recipe {alias} declares sub-command '{rule.match}' more than once")
                seen.add(rule.match)
            recipes[alias] = Recipe(
                alias=alias,
                package=payload["package"],
                path=payload.get("path", alias),
                help=payload.get("help", ""),
                default=payload.get("default"),
                rules=rules,
            )
        book = cls(recipes, tool, source=source)
        book._check_templates()
        return book

    @property
    def tool(self) -> BuildTool:
        return self._tool

    @property
    def paths(self) -> Mapping[str, str]:
        return self._paths

    def get(self, alias: str) -> Recipe:
        if alias not in self._recipes:
            raise UnknownRecipeError(alias, self.aliases())
        return self._recipes[alias]

    def aliases(self) -> tuple[str, ...]:
        return tuple(sorted(self._recipes))

    def __contains__(self, alias: object) -> bool:
        return alias in self._recipes

    def __iter__(self) -> Iterator[Recipe]:
        return iter(self._recipes[alias] for alias in self.aliases())

    def _check_templates(self) -> None:
        for recipe in self._recipes.values():
            context = recipe.context(self._tool, self._paths)
            for rule in recipe.rules:
                candidates = rule.templates() + ((rule.executable,) if rule.executable else ())
                for template in candidates:
                    try:
                        render(template, context)
                    except (AttributeError, KeyError, IndexError, TypeError, ValueError) as exc:
                        raise RecipeConfigError(
                            f"Recipe {recipe.alias} rule '{rule.match}' has a bad placeholder in {template!r}: {exc}"
                        ) from exc


def _build_rule(raw: dict[str, Any]) -> Rewrite:
    env = raw.get("env", {})
    return Rewrite(
        match=raw["match"],
        executable=raw.get("executable"),
        args=tuple(raw.get("args", ())),
        suffix=tuple(raw.get("suffix", ())),
        env=tuple(sorted(env.items())),
        offline=bool(raw.get("offline", False)),
        requires=tuple(raw.get("requires", ())),
    )


@lru_cache(maxsize=1)
def _builtin_book() -> RecipeBook:
    return RecipeBook.from_payload(load_default_recipes())


def load_book(root: Path, override: Path | None = None) -> RecipeBook:
    """Pick the recipe table for a workspace: explicit file, workspace file, or built-in."""

    if override is not None:
        return RecipeBook.load_from_file(override)
    candidate = workspace_recipe_file(root)
    if candidate.exists():
        return RecipeBook.load_from_file(candidate)
    return RecipeBook.default()


__all__ = ["RecipeBook", "load_book"]
