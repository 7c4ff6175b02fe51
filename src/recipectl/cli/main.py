#!/usr/bin/env python3
"""Entry point for the recipectl CLI."""

from __future__ import annotations

import argparse
import json
import os
import sys
from pathlib import Path
from textwrap import dedent

from recipectl import __version__
from recipectl.app.dispatch_service import DispatchService
from recipectl.app.recipe_book import RecipeBook, load_book
from recipectl.domain import EXIT_USAGE, DispatchError
from recipectl.settings import SETTINGS
from recipectl.utils.telemetry import clear as telemetry_clear
from recipectl.utils.telemetry import recent_events
from recipectl.utils.telemetry import summarize as telemetry_summarize

TOP_LEVEL_COMMANDS = {"run", "list", "telemetry"}
GLOBAL_VALUE_OPTIONS = {"--root", "--recipes"}
RUN_FLAGS = {"--dry-run", "--json", "--quiet"}


HELP_OVERVIEW = dedent(
    """
    Run workspace recipes against the build tool.

    Usage:
      recipectl <recipe> [sub-command] [args...]
      recipectl run [--dry-run] [--json] [--quiet] <recipe> [sub-command] [args...]

    Built-in recipes:
      - cli ir | ir:now | build:now | <cargo verb>
      - service dev | stress | <cargo verb>
      - libs <cargo verb>
      - impl <cargo verb>

    Options for run must precede the recipe name; everything after the
    sub-command is forwarded untouched.
    """
)


def _default_root(path_arg: str | None) -> Path:
    if path_arg:
        return Path(path_arg).expanduser().resolve()
    return Path(os.getcwd())


def _load_book(args: argparse.Namespace, root: Path) -> RecipeBook:
    override = Path(args.recipes).expanduser() if getattr(args, "recipes", None) else None
    return load_book(root, override)


def _echo(command_line: str) -> None:
    print(command_line, file=sys.stderr, flush=True)


def _report_error(exc: Exception) -> None:
    print(f"recipectl: {exc}", file=sys.stderr)


def _normalise_exit_code(code: int) -> int:
    # Popen reports death-by-signal N as -N; shells report 128 + N.
    if code < 0:
        return 128 - code
    return code


def _run_cmd(args: argparse.Namespace) -> int:
    root = _default_root(args.root)
    extra = list(getattr(args, "extra", []) or [])
    try:
        book = _load_book(args, root)
        service = DispatchService(SETTINGS, book, root, echo=None if args.quiet else _echo)
        sub_command = args.sub_command
        if sub_command is None:
            sub_command = service.default_sub_command(args.recipe)
        if args.dry_run:
            invocation = service.resolve(args.recipe, sub_command, extra)
            if args.json:
                print(json.dumps(invocation.to_dict(), indent=2, ensure_ascii=False))
            else:
                print(invocation.command_line)
            return 0
        exit_code = service.dispatch(args.recipe, sub_command, extra)
    except DispatchError as exc:
        _report_error(exc)
        return exc.exit_code
    except ValueError as exc:
        _report_error(exc)
        return EXIT_USAGE
    return _normalise_exit_code(exit_code)


def _list_cmd(args: argparse.Namespace) -> int:
    root = _default_root(args.root)
    try:
        book = _load_book(args, root)
    except DispatchError as exc:
        _report_error(exc)
        return exc.exit_code
    if args.json:
        payload = {
            "source": book.source,
            "build_tool": book.tool.name,
            "recipes": [
                {
                    "alias": recipe.alias,
                    "package": recipe.package,
                    "path": recipe.path,
                    "help": recipe.help,
                    "default": recipe.default,
                    "commands": list(recipe.special_commands()),
                }
                for recipe in book
            ],
        }
        print(json.dumps(payload, indent=2, ensure_ascii=False))
        return 0
    for recipe in book:
        commands = ", ".join(recipe.special_commands()) or "-"
        default = f" (default: {recipe.default})" if recipe.default else ""
        print(f"{recipe.alias:<10} {recipe.package:<12} {commands}{default}")
        if recipe.help:
            print(f"{'':<10} {recipe.help}")
    return 0


def _telemetry_cmd(args: argparse.Namespace) -> int:
    if args.telemetry_command == "report":
        summary = telemetry_summarize(recent_events(SETTINGS, args.recent))
        print(json.dumps(summary, indent=2, ensure_ascii=False))
        return 0
    if args.telemetry_command == "clear":
        telemetry_clear(SETTINGS)
        print("Telemetry log cleared")
        return 0
    if args.telemetry_command == "tail":
        for evt in recent_events(SETTINGS, args.limit):
            print(json.dumps(evt, ensure_ascii=False))
        return 0
    print("Unsupported telemetry command", file=sys.stderr)
    return 2


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="recipectl",
        description=HELP_OVERVIEW,
        formatter_class=argparse.RawTextHelpFormatter,
    )
    parser.add_argument("--version", action="version", version=f"recipectl {__version__}")
    parser.add_argument("--root", help="Workspace root (default: current directory)")
    parser.add_argument("--recipes", help="Recipe file replacing the workspace/built-in table")

    sub = parser.add_subparsers(dest="command", required=True)

    # Only the recipe is parsed here; main() attaches the sub-command and its
    # arguments verbatim so that "--" and run-like flags reach the child.
    run_cmd = sub.add_parser(
        "run",
        help="Dispatch a recipe",
        usage="recipectl run [--dry-run] [--json] [--quiet] recipe [sub-command] [args...]",
    )
    run_cmd.add_argument("--dry-run", action="store_true", help="Print the resolved invocation without running it")
    run_cmd.add_argument("--json", action="store_true", help="With --dry-run, emit the invocation as JSON")
    run_cmd.add_argument("--quiet", action="store_true", help="Do not echo the command line to stderr")
    run_cmd.add_argument("recipe", help="Recipe alias (cli, service, libs, impl)")
    run_cmd.set_defaults(func=_run_cmd, sub_command=None, extra=[])

    list_cmd = sub.add_parser("list", help="List available recipes")
    list_cmd.add_argument("--json", action="store_true", help="Emit machine-readable JSON output")
    list_cmd.set_defaults(func=_list_cmd)

    telemetry_cmd = sub.add_parser("telemetry", help="Inspect local telemetry logs")
    telemetry_sub = telemetry_cmd.add_subparsers(dest="telemetry_command", required=True)

    telemetry_report = telemetry_sub.add_parser("report", help="Print aggregated telemetry stats")
    telemetry_report.add_argument("--recent", type=int, default=0, help="Only summarise the last N events")
    telemetry_report.set_defaults(func=_telemetry_cmd)

    telemetry_clear_cmd = telemetry_sub.add_parser("clear", help="Remove telemetry log file")
    telemetry_clear_cmd.set_defaults(func=_telemetry_cmd)

    telemetry_tail = telemetry_sub.add_parser("tail", help="Print last N telemetry events")
    telemetry_tail.add_argument("--limit", type=int, default=20)
    telemetry_tail.set_defaults(func=_telemetry_cmd)

    return parser


def _skip_global_options(argv: list[str]) -> int:
    index = 0
    while index < len(argv):
        token = argv[index]
        if token in GLOBAL_VALUE_OPTIONS:
            index += 2
        elif token.split("=", 1)[0] in GLOBAL_VALUE_OPTIONS:
            index += 1
        else:
            break
    return index


def _preprocess_argv(argv: list[str]) -> list[str]:
    """Expand ``recipectl <recipe> ...`` into ``recipectl run <recipe> ...``."""

    index = _skip_global_options(argv)
    if index >= len(argv):
        return argv
    candidate = argv[index]
    if candidate.startswith("-") or candidate in TOP_LEVEL_COMMANDS:
        return argv
    return [*argv[:index], "run", *argv[index:]]


def _split_run_argv(argv: list[str]) -> tuple[list[str], list[str] | None]:
    """Cut ``run`` arguments after the recipe alias.

    Returns the part argparse should see and the untouched tail
    (sub-command first), or ``None`` when there is no recipe to cut at.
    """

    index = _skip_global_options(argv)
    if index >= len(argv) or argv[index] != "run":
        return argv, None
    index += 1
    while index < len(argv) and argv[index] in RUN_FLAGS:
        index += 1
    if index >= len(argv) or argv[index].startswith("-"):
        return argv, None
    return argv[: index + 1], argv[index + 1 :]


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    raw_args = sys.argv[1:] if argv is None else argv
    head, tail = _split_run_argv(_preprocess_argv(list(raw_args)))
    args = parser.parse_args(head)
    if tail:
        args.sub_command, args.extra = tail[0], tail[1:]
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
