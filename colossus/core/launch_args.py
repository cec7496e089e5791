"""Startup argument interpretation: what to run and where to run it.

Both resolvers read the raw process argument list and must run before the Qt
application object exists, since Qt strips and rewrites some arguments.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Callable, Mapping, Sequence

from loguru import logger

from colossus.core.paths import FILE_URI_PREFIX, path_from_uri

EXECUTE_MARKERS: frozenset[str] = frozenset({"--", "-e", "--execute"})
CWD_FLAG = "--cwd"
FALLBACK_SHELL = "/bin/bash"
FILESYSTEM_ROOT = "/"


@dataclass(frozen=True, slots=True)
class ArgumentScan:
    cwd_value: str | None = None
    execute_index: int | None = None  # index of the marker in argv


def scan_arguments(argv: Sequence[str]) -> ArgumentScan:
    """Walk ``argv`` from index 1 until the first execute marker.

    ``--cwd VALUE`` consumes its value token, so a value is never mistaken for
    a marker. Only the first ``--cwd`` is kept.
    """
    cwd_value: str | None = None
    i = 1
    count = len(argv)
    while i < count:
        arg = str(argv[i])
        if arg in EXECUTE_MARKERS:
            return ArgumentScan(cwd_value=cwd_value, execute_index=i)
        if arg == CWD_FLAG:
            if i + 1 < count:
                value = str(argv[i + 1])
                if value in EXECUTE_MARKERS:
                    logger.debug("Treating {!r} after {} as a directory, not a command marker", value, CWD_FLAG)
                if cwd_value is None:
                    cwd_value = value
                i += 2
                continue
            logger.debug("Ignoring {} without a value", CWD_FLAG)
        elif arg.startswith(CWD_FLAG + "="):
            if cwd_value is None:
                cwd_value = arg.split("=", 1)[1]
        i += 1
    return ArgumentScan(cwd_value=cwd_value)


def default_shell(environ: Mapping[str, str] | None = None) -> str:
    env = os.environ if environ is None else environ
    shell = str(env.get("SHELL") or "").strip()
    return shell or FALLBACK_SHELL


def resolve_command(
    argv: Sequence[str],
    environ: Mapping[str, str] | None = None,
) -> tuple[str, ...] | None:
    """Return the explicitly requested argv, or ``None`` for the default shell.

    A single trailing token is a shell command line and runs through a login
    invocation of the user's shell; several trailing tokens are a literal
    program plus arguments.
    """
    scan = scan_arguments(argv)
    if scan.execute_index is None:
        return None
    trailing = tuple(str(arg) for arg in argv[scan.execute_index + 1:])
    if not trailing:
        return None
    if len(trailing) == 1:
        return (default_shell(environ), "-l", "-c", trailing[0])
    return trailing


def _existing_dir(path: str | None) -> str | None:
    if not path:
        return None
    try:
        if os.path.isdir(path):
            return os.path.abspath(path)
    except (OSError, ValueError):
        return None
    return None


def _directory_from_value(value: str) -> str | None:
    candidate: str | None = value.strip()
    if not candidate:
        return None
    if candidate.lower().startswith(FILE_URI_PREFIX):
        candidate = path_from_uri(candidate)
        if candidate is None:
            logger.warning("Could not decode {} value {!r}", CWD_FLAG, value)
            return None
    candidate = os.path.expanduser(candidate)
    try:
        if os.path.isfile(candidate):
            candidate = os.path.dirname(os.path.abspath(candidate))
    except (OSError, ValueError):
        return None
    resolved = _existing_dir(candidate)
    if resolved is None:
        logger.warning("{} {!r} is not an existing directory", CWD_FLAG, value)
    return resolved


def resolve_working_directory(
    argv: Sequence[str],
    environ: Mapping[str, str] | None = None,
    getcwd: Callable[[], str] = os.getcwd,
) -> str:
    """Pick the initial working directory for the session.

    Order: ``--cwd`` (file paths degrade to their directory), process cwd,
    ``$HOME``, filesystem root.
    """
    env = os.environ if environ is None else environ
    scan = scan_arguments(argv)
    if scan.cwd_value is not None:
        resolved = _directory_from_value(scan.cwd_value)
        if resolved is not None:
            return resolved

    try:
        resolved = _existing_dir(getcwd())
    except OSError as exc:
        logger.debug("Process working directory unavailable: {}", exc)
        resolved = None
    if resolved is not None:
        return resolved

    resolved = _existing_dir(str(env.get("HOME") or "").strip())
    if resolved is not None:
        return resolved

    logger.warning("No usable working directory, falling back to {}", FILESYSTEM_ROOT)
    return FILESYSTEM_ROOT
