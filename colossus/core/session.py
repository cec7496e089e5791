"""Launch spec composition and the one-shot spawn/exit handling of a session."""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Callable, Mapping, Optional, Protocol, Sequence

from loguru import logger

from colossus.core.launch_args import default_shell, resolve_command, resolve_working_directory

NOTICE_PREFIX = "[COLOSSUS]"
CHILD_TERM = "xterm-256color"


@dataclass(frozen=True, slots=True)
class LaunchSpec:
    argv: tuple[str, ...]
    working_directory: str

    def __post_init__(self) -> None:
        if not self.argv:
            raise ValueError("LaunchSpec.argv must name a program to execute")
        if not os.path.isabs(self.working_directory):
            raise ValueError(f"Working directory must be absolute: {self.working_directory!r}")


@dataclass(frozen=True, slots=True)
class SpawnOutcome:
    success: bool
    pid: Optional[int] = None
    error_message: Optional[str] = None

    @staticmethod
    def ok(pid: int) -> "SpawnOutcome":
        return SpawnOutcome(success=True, pid=int(pid))

    @staticmethod
    def failed(message: str) -> "SpawnOutcome":
        return SpawnOutcome(success=False, error_message=str(message))


class _Signal(Protocol):
    def connect(self, slot: Callable[..., object]) -> object: ...


class SpawnTarget(Protocol):
    childExited: _Signal

    def spawn_async(
        self,
        argv: Sequence[str],
        cwd: str,
        env: Mapping[str, str],
        callback: Callable[[SpawnOutcome], None],
    ) -> None: ...

    def feed_display(self, text: str) -> None: ...


def quote_argv_for_log(argv: Sequence[str]) -> str:
    return " ".join(f'"{arg}"' for arg in argv)


def spec_from_argv(
    argv: Sequence[str],
    environ: Mapping[str, str] | None = None,
    getcwd: Callable[[], str] = os.getcwd,
) -> tuple[LaunchSpec, bool]:
    """Resolve ``argv`` into a launch spec.

    The flag is True when an explicit command was requested.
    """
    env = os.environ if environ is None else environ
    command = resolve_command(argv, env)
    cwd = resolve_working_directory(argv, env, getcwd)
    if command is None:
        return LaunchSpec(argv=(default_shell(env),), working_directory=cwd), False
    return LaunchSpec(argv=tuple(command), working_directory=cwd), True


def child_environment(environ: Mapping[str, str] | None = None) -> dict[str, str]:
    env = dict(os.environ if environ is None else environ)
    env["TERM"] = CHILD_TERM
    return env


class SessionLauncher:
    """Starts the session's single child and ends the session when it exits."""

    def __init__(
        self,
        terminal: SpawnTarget,
        close_session: Callable[[], None],
        *,
        environ: Mapping[str, str] | None = None,
    ) -> None:
        self._terminal = terminal
        self._close_session = close_session
        self._environ = environ
        self._spec: LaunchSpec | None = None
        self._spawn_reported = False
        self._closed = False
        self._pid: int | None = None

    @property
    def spec(self) -> LaunchSpec | None:
        return self._spec

    @property
    def pid(self) -> int | None:
        return self._pid

    @property
    def closed(self) -> bool:
        return self._closed

    def launch(self, spec: LaunchSpec, *, explicit: bool = True) -> None:
        if self._spec is not None:
            raise RuntimeError("A session launches exactly one child")
        self._spec = spec
        if explicit:
            logger.info("exec requested: {}", quote_argv_for_log(spec.argv))
        else:
            logger.info("no exec requested: spawning default shell")
        logger.info("working directory: {}", spec.working_directory)

        self._terminal.childExited.connect(self._on_child_exited)
        self._terminal.spawn_async(
            list(spec.argv),
            spec.working_directory,
            child_environment(self._environ),
            self._on_spawn_finished,
        )

    def _on_spawn_finished(self, outcome: SpawnOutcome) -> None:
        if self._spawn_reported:
            logger.debug("Ignoring repeated spawn notification")
            return
        self._spawn_reported = True

        if not outcome.success:
            message = f"spawn failed: {outcome.error_message or 'unknown error'}"
            logger.error(message)
            if not self._closed:
                self._terminal.feed_display(f"\r\n{NOTICE_PREFIX} {message}\r\n")
            return

        self._pid = outcome.pid
        logger.info("spawn ok, pid={}", outcome.pid)

    def _on_child_exited(self, status: int = 0) -> None:
        if self._closed:
            return
        self._closed = True
        logger.info("child exited, status={}", status)
        self._close_session()


def window_title(title: str | None, app_name: str = "COLOSSUS") -> str:
    text = str(title or "").strip()
    return f"{app_name} — {text or 'Terminal'}"
