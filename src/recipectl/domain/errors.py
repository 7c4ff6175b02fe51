"""Error taxonomy for recipe dispatch."""

from __future__ import annotations

EXIT_USAGE = 2
EXIT_NOT_EXECUTABLE = 126
EXIT_NOT_FOUND = 127


class DispatchError(RuntimeError):
    """Base error; ``exit_code`` is what the CLI exits with."""

    exit_code = 1


class UnknownRecipeError(DispatchError):
    """Raised when an alias is not present in the recipe table."""

    exit_code = EXIT_USAGE

    def __init__(self, alias: str, known: tuple[str, ...] = ()) -> None:
        self.alias = alias
        self.known = known
        message = f"Unknown recipe '{alias}'"
        if known:
            message += f" (available: {', '.join(known)})"
        super().__init__(message)


class MissingSubCommandError(DispatchError):
    """Raised when no sub-command is given and the recipe has no default."""

    exit_code = EXIT_USAGE


class RecipeConfigError(DispatchError):
    """Raised when a recipe file cannot be loaded or validated."""

    exit_code = EXIT_USAGE


class ChildSpawnError(DispatchError):
    """Raised when the resolved executable cannot be located or started."""

    def __init__(self, executable: str, reason: str, *, exit_code: int = EXIT_NOT_FOUND) -> None:
        self.executable = executable
        self.reason = reason
        self.exit_code = exit_code
        super().__init__(f"Cannot start '{executable}': {reason}")


__all__ = [
    "ChildSpawnError",
    "DispatchError",
    "EXIT_NOT_EXECUTABLE",
    "EXIT_NOT_FOUND",
    "EXIT_USAGE",
    "MissingSubCommandError",
    "RecipeConfigError",
    "UnknownRecipeError",
]
