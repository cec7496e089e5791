"""URI decoding and POSIX shell quoting for paths handed to the terminal."""

from __future__ import annotations

import os
from typing import Callable, Iterable

from loguru import logger
from PySide6.QtCore import QUrl

FILE_URI_PREFIX = "file://"


def path_from_uri(value: str) -> str | None:
    """Return a filesystem path for ``value``.

    ``file://`` URIs are scheme-stripped and percent-decoded; anything else is
    returned unchanged. A URI that cannot be decoded yields ``None``.
    """
    text = str(value or "")
    if not text.lower().startswith(FILE_URI_PREFIX):
        return text
    url = QUrl(text)
    if not url.isValid() or not url.isLocalFile():
        logger.debug("Could not decode file URI {!r}", text)
        return None
    local = str(url.toLocalFile() or "")
    if not local:
        logger.debug("File URI {!r} has no path", text)
        return None
    return local


def shell_quote(text: str) -> str:
    # Safe single-quote for POSIX shells
    return "'" + str(text).replace("'", "'\"'\"'") + "'"


def format_dropped_paths(
    uris: Iterable[str],
    exists: Callable[[str], bool] = os.path.exists,
) -> str:
    """Quote dropped URIs into text ready to be typed into the shell."""
    quoted: list[str] = []
    for uri in uris:
        local = path_from_uri(uri)
        if not local:
            logger.warning("Ignoring dropped item that is not a local path: {!r}", uri)
            continue
        if not exists(local):
            logger.warning("Ignoring dropped path that does not exist: {}", local)
            continue
        quoted.append(shell_quote(local))
    if not quoted:
        return ""
    return " ".join(quoted) + " "
