from __future__ import annotations

"""Shared types passed between the *pru* supervision components.

Having these types in a dedicated module avoids circular imports between
``multiplexer``, ``console`` and ``start``.
"""

import enum
from dataclasses import dataclass
from typing import Literal, Union

__all__ = [
    "StreamName",
    "OutputEvent",
    "ReaderResult",
    "ChannelItem",
    "StartState",
]

StreamName = Literal["stdout", "stderr"]


@dataclass(frozen=True)
class OutputEvent:
    """One complete line read from a child process.

    ``message`` never contains the line terminator. ``stream`` is kept for
    logging; both streams of a process render identically.
    """

    source_key: str
    message: str
    color: str
    stream: StreamName = "stdout"


@dataclass(frozen=True)
class ReaderResult:
    """Last item a line reader puts on the channel.

    * ``error`` is ``None`` when the stream simply reached end of input.
      Otherwise it holds a short reason suitable for displaying to a user.
    """

    source_key: str
    stream: StreamName
    color: str
    error: str | None = None


ChannelItem = Union[OutputEvent, ReaderResult]


class StartState(enum.Enum):
    IDLE = "idle"
    SPAWNING = "spawning"
    STREAMING = "streaming"
    DRAINING = "draining"
    STOPPED = "stopped"
