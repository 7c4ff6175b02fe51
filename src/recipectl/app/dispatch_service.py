"""Recipe dispatch: resolve (alias, sub-command, args) and run the result."""

from __future__ import annotations

import os
import shutil
import signal
import subprocess
import threading
import time
from pathlib import Path
from types import FrameType
from typing import Callable, Sequence

from recipectl.app.recipe_book import RecipeBook
from recipectl.domain import EXIT_NOT_EXECUTABLE, ChildSpawnError, DispatchError, Invocation, MissingSubCommandError
from recipectl.settings import RuntimeSettings
from recipectl.utils.telemetry import record_structured_event

FORWARDED_SIGNALS = tuple(
    getattr(signal, name) for name in ("SIGTERM", "SIGINT", "SIGHUP") if hasattr(signal, name)
)


class ChildSupervisor:
    """Relays termination signals to a running child until it exits.

    Handlers are only installed from the main thread; the previous handlers
    are restored on exit.
    """

    def __init__(self, process: subprocess.Popen, signals: Sequence[int] = FORWARDED_SIGNALS) -> None:
        self._process = process
        self._signals = tuple(signals)
        self._previous: dict[int, object] = {}
        self.forwarded: list[int] = []

    def __enter__(self) -> "ChildSupervisor":
        if threading.current_thread() is threading.main_thread():
            for signum in self._signals:
                self._previous[signum] = signal.signal(signum, self.forward)
        return self

    def __exit__(self, *exc_info: object) -> None:
        for signum, handler in self._previous.items():
            signal.signal(signum, handler)
        self._previous.clear()

    def forward(self, signum: int, frame: FrameType | None = None) -> None:
        if self._process.poll() is not None:
            return
        if signum == getattr(signal, "SIGINT", None) and self._shares_foreground_group():
            return  # the terminal already sent Ctrl-C to the child
        self.forwarded.append(signum)
        try:
            self._process.send_signal(signum)
        except ProcessLookupError:
            pass  # exited between poll() and send_signal()

    def _shares_foreground_group(self) -> bool:
        """True when the child sits in the terminal's foreground process group with us."""
        try:
            group = os.getpgrp()
            if os.getpgid(self._process.pid) != group:
                return False
            for fd in (0, 1, 2):
                if os.isatty(fd):
                    return os.tcgetpgrp(fd) == group
        except (AttributeError, OSError):
            return False
        return False

    def wait(self) -> int:
        return self._process.wait()


class DispatchService:
    def __init__(
        self,
        settings: RuntimeSettings,
        book: RecipeBook,
        root: Path,
        *,
        echo: Callable[[str], None] | None = None,
    ) -> None:
        self._settings = settings
        self._book = book
        self._root = root
        self._echo = echo

    @property
    def book(self) -> RecipeBook:
        return self._book

    def default_sub_command(self, alias: str) -> str:
        recipe = self._book.get(alias)
        if not recipe.default:
            raise MissingSubCommandError(f"Recipe {alias} has no default sub-command; pass one explicitly")
        return recipe.default

    def resolve(self, alias: str, sub_command: str, trailing: Sequence[str] = ()) -> Invocation:
        if not sub_command:
            raise ValueError("sub-command must be a non-empty string")
        recipe = self._book.get(alias)
        return recipe.resolve(
            sub_command,
            trailing,
            tool=self._book.tool,
            root=self._root,
            paths=self._book.paths,
        )

    def dispatch(self, alias: str, sub_command: str, trailing: Sequence[str] = (), *, dry_run: bool = False) -> int:
        payload: dict[str, object] = {"recipe": alias, "sub_command": sub_command}
        started = time.monotonic()
        try:
            invocation = self.resolve(alias, sub_command, trailing)
            payload.update(rule=invocation.rule, executable=invocation.executable, offline=invocation.offline)
            if dry_run:
                return 0
            self._preflight(invocation)
            if self._echo is not None:
                self._echo(invocation.command_line)
            exit_code = self._spawn(invocation)
        except DispatchError as exc:
            payload.update(error=type(exc).__name__, message=str(exc))
            record_structured_event(
                self._settings,
                "dispatch.error",
                payload=payload,
                level="error",
                status="error",
                component="dispatch",
            )
            raise
        payload["exit_code"] = exit_code
        record_structured_event(
            self._settings,
            "dispatch",
            payload=payload,
            status="ok" if exit_code == 0 else "fail",
            component="dispatch",
            duration_ms=(time.monotonic() - started) * 1000,
        )
        return exit_code

    def _preflight(self, invocation: Invocation) -> None:
        search_path = self._build_env(invocation).get("PATH")
        for tool in invocation.requires:
            if shutil.which(tool, path=search_path) is None:
                raise ChildSpawnError(tool, f"required by '{invocation.rule}' but not found on PATH")

    def _spawn(self, invocation: Invocation) -> int:
        env = self._build_env(invocation)
        try:
            process = subprocess.Popen(invocation.argv, cwd=invocation.cwd, env=env)
        except FileNotFoundError as exc:
            raise ChildSpawnError(invocation.executable, exc.strerror or str(exc)) from exc
        except PermissionError as exc:
            raise ChildSpawnError(
                invocation.executable, exc.strerror or str(exc), exit_code=EXIT_NOT_EXECUTABLE
            ) from exc
        except OSError as exc:
            raise ChildSpawnError(invocation.executable, exc.strerror or str(exc)) from exc
        with ChildSupervisor(process) as supervisor:
            return supervisor.wait()

    def _build_env(self, invocation: Invocation) -> dict[str, str]:
        env = os.environ.copy()
        env.update(invocation.env_overrides)
        return env


__all__ = ["ChildSupervisor", "DispatchService", "FORWARDED_SIGNALS"]
