"""Recipe table value objects and invocation resolution."""

from __future__ import annotations

import shlex
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping, Sequence, Union

PASSTHROUGH = "passthrough"


@dataclass(frozen=True)
class BuildTool:
    """Executable used by passthrough rules and by rewrites without their own executable."""

    name: str = "cargo"
    toolchain: str = ""
    offline_args: tuple[str, ...] = ()


@dataclass(frozen=True)
class Invocation:
    """Fully resolved child process: executable, arguments, environment and cwd."""

    executable: str
    args: tuple[str, ...]
    cwd: Path
    env: tuple[tuple[str, str], ...] = ()
    rule: str = PASSTHROUGH
    offline: bool = False
    requires: tuple[str, ...] = ()

    @property
    def argv(self) -> list[str]:
        return [self.executable, *self.args]

    @property
    def env_overrides(self) -> dict[str, str]:
        return dict(self.env)

    @property
    def command_line(self) -> str:
        prefix = " ".join(f"{name}={shlex.quote(value)}" for name, value in self.env)
        command = shlex.join(self.argv)
        return f"{prefix} {command}" if prefix else command

    def to_dict(self) -> dict[str, Any]:
        return {
            "executable": self.executable,
            "args": list(self.args),
            "cwd": self.cwd.as_posix(),
            "env": self.env_overrides,
            "rule": self.rule,
            "offline": self.offline,
            "requires": list(self.requires),
        }


def render(template: str, context: Mapping[str, Any]) -> str:
    """Expand ``{package}``-style placeholders; raises KeyError for unknown names."""

    return template.format_map(context)


@dataclass(frozen=True)
class Passthrough:
    """``<build-tool> <sub> --package <package> <trailing...>``"""

    def build(
        self,
        recipe: "Recipe",
        sub_command: str,
        trailing: Sequence[str],
        *,
        tool: BuildTool,
        root: Path,
        context: Mapping[str, Any],
    ) -> Invocation:
        args = (sub_command, "--package", recipe.package, *trailing)
        return Invocation(executable=tool.name, args=tuple(args), cwd=root)


@dataclass(frozen=True)
class Rewrite:
    """Special rule selected by an exact sub-command literal."""

    match: str
    executable: str | None = None
    args: tuple[str, ...] = ()
    suffix: tuple[str, ...] = ()
    env: tuple[tuple[str, str], ...] = ()
    offline: bool = False
    requires: tuple[str, ...] = ()

    def templates(self) -> tuple[str, ...]:
        return (*self.args, *self.suffix, *(value for _, value in self.env))

    def build(
        self,
        recipe: "Recipe",
        sub_command: str,
        trailing: Sequence[str],
        *,
        tool: BuildTool,
        root: Path,
        context: Mapping[str, Any],
    ) -> Invocation:
        head: list[str] = []
        if self.executable is None:
            executable = tool.name
            if self.offline and tool.toolchain:
                head.append(tool.toolchain)
        else:
            executable = render(self.executable, context)
        head.extend(render(arg, context) for arg in self.args)
        if self.offline and self.executable is None:
            head.extend(tool.offline_args)
        tail = [render(arg, context) for arg in self.suffix]
        env = tuple(sorted((name, render(value, context)) for name, value in self.env))
        return Invocation(
            executable=executable,
            args=(*head, *trailing, *tail),
            cwd=root,
            env=env,
            rule=self.match,
            offline=self.offline,
            requires=self.requires,
        )


Rule = Union[Passthrough, Rewrite]


@dataclass(frozen=True)
class Recipe:
    """Alias bound to one workspace package plus its special sub-commands."""

    alias: str
    package: str
    path: str
    help: str = ""
    default: str | None = None
    rules: tuple[Rewrite, ...] = ()
    passthrough: Passthrough = field(default_factory=Passthrough)

    def select(self, sub_command: str) -> Rule:
        for rule in self.rules:
            if rule.match == sub_command:
                return rule
        return self.passthrough

    def special_commands(self) -> tuple[str, ...]:
        return tuple(rule.match for rule in self.rules)

    def context(self, tool: BuildTool, paths: Mapping[str, str]) -> dict[str, Any]:
        return {
            "alias": self.alias,
            "package": self.package,
            "path": self.path,
            "build_tool": tool.name,
            "paths": dict(paths),
        }

    def resolve(
        self,
        sub_command: str,
        trailing: Sequence[str],
        *,
        tool: BuildTool,
        root: Path,
        paths: Mapping[str, str],
    ) -> Invocation:
        rule = self.select(sub_command)
        return rule.build(
            self,
            sub_command,
            tuple(trailing),
            tool=tool,
            root=root,
            context=self.context(tool, paths),
        )


__all__ = [
    "BuildTool",
    "Invocation",
    "PASSTHROUGH",
    "Passthrough",
    "Recipe",
    "Rewrite",
    "Rule",
    "render",
]
