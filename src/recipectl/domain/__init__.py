"""Recipe domain exports."""

from .errors import (
    ChildSpawnError,
    DispatchError,
    EXIT_NOT_EXECUTABLE,
    EXIT_NOT_FOUND,
    EXIT_USAGE,
    MissingSubCommandError,
    RecipeConfigError,
    UnknownRecipeError,
)
from .recipe import PASSTHROUGH, BuildTool, Invocation, Passthrough, Recipe, Rewrite, Rule, render

__all__ = [
    "BuildTool",
    "ChildSpawnError",
    "DispatchError",
    "EXIT_NOT_EXECUTABLE",
    "EXIT_NOT_FOUND",
    "EXIT_USAGE",
    "Invocation",
    "MissingSubCommandError",
    "PASSTHROUGH",
    "Passthrough",
    "Recipe",
    "RecipeConfigError",
    "Rewrite",
    "Rule",
    "UnknownRecipeError",
    "render",
]
