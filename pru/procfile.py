"""
Procfile parsing and validation.

A Procfile declares one process per line as ``key: command``. Lines whose
first non-blank character is ``#`` are comments; blank lines are ignored.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path

__all__ = [
    "ProcfileEntry",
    "Procfile",
    "ProcfileError",
    "ProcfileNotFound",
    "ProcfileUnreadable",
    "ParseError",
    "NoProcessesDefined",
    "parse",
    "valid",
    "load",
    "read_procfile",
]

logger = logging.getLogger(__name__)

SEPARATOR = ":"


class ProcfileError(Exception):
    """Base class for everything that can go wrong before a process is spawned."""


class ProcfileNotFound(ProcfileError):
    def __init__(self, path: Path) -> None:
        self.path = path
        super().__init__(f"Procfile does not exist: {path}")


class ProcfileUnreadable(ProcfileError):
    """The file exists but its contents are not UTF-8 text."""

    def __init__(self, path: Path, reason: str) -> None:
        self.path = path
        self.reason = reason
        super().__init__(f"Procfile is not valid UTF-8: {path} ({reason})")


class ParseError(ProcfileError, ValueError):
    """A retained line could not be split into ``key: command``.

    *line* is 1-based and counts every physical line of the file, including
    comments and blanks, so it points at the offending line in an editor.
    """

    def __init__(self, line: int, reason: str) -> None:
        self.line = line
        self.reason = reason
        super().__init__(f"line {line}: {reason}")


class NoProcessesDefined(ProcfileError):
    def __init__(self) -> None:
        super().__init__("no processes defined")


@dataclass(frozen=True)
class ProcfileEntry:
    key: str
    command: str


@dataclass(frozen=True)
class Procfile:
    entries: tuple[ProcfileEntry, ...] = ()

    @property
    def keys(self) -> list[str]:
        return [entry.key for entry in self.entries]

    def __len__(self) -> int:
        return len(self.entries)


def _is_ignored(line: str) -> bool:
    stripped = line.strip()
    return not stripped or stripped.startswith("#")


def _parse_entry(line: str, lineno: int) -> ProcfileEntry:
    key, sep, command = line.partition(SEPARATOR)
    if not sep:
        raise ParseError(lineno, "malformed entry: missing ':' separator")
    return ProcfileEntry(key=key.strip(), command=command.strip())


def parse(text: str) -> Procfile:
    """Return the :class:`Procfile` described by *text*.

    Only the first ``:`` on a line separates key from command, so commands
    may contain further colons (URLs, ``host:port`` pairs and so on).
    """
    entries = [
        _parse_entry(line, lineno)
        for lineno, line in enumerate(text.splitlines(), start=1)
        if not _is_ignored(line)
    ]
    logger.debug("event=parse entries=%d", len(entries))
    return Procfile(entries=tuple(entries))


def valid(procfile: Procfile) -> bool:
    return len(procfile.entries) > 0


def load(path: Path) -> str:
    """Read *path* fully.

    Any failure to open or read it is a :class:`ProcfileNotFound`; contents
    that do not decode as UTF-8 are a :class:`ProcfileUnreadable`.
    """
    path = Path(path)
    try:
        return path.read_text(encoding="utf-8")
    except UnicodeDecodeError as exc:
        logger.debug("event=load_failed path=%s error=%s", path, exc)
        raise ProcfileUnreadable(path, exc.reason) from exc
    except OSError as exc:
        logger.debug("event=load_failed path=%s error=%s", path, exc)
        raise ProcfileNotFound(path) from exc


def read_procfile(path: Path) -> Procfile:
    """Load, parse and validate the Procfile at *path*."""
    procfile = parse(load(path))
    if not valid(procfile):
        raise NoProcessesDefined()
    return procfile
