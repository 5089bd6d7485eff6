"""
Merge the output of many child processes into one event channel.

Every stream gets its own reader thread; all readers share a single bounded
queue whose only consumer is the console renderer. Lines of one stream keep
their order, lines of different streams arrive in whatever order the readers
complete them.
"""

from __future__ import annotations

import logging
import queue
import threading
from typing import IO

from pru.process_types import ChannelItem, OutputEvent, ReaderResult, StreamName
from pru.supervisor import SpawnedProcess

__all__ = ["CHANNEL_CAPACITY", "Multiplexer", "read_lines", "decode_line"]

logger = logging.getLogger(__name__)

# Maximum number of undelivered items; readers block once it is reached.
CHANNEL_CAPACITY = 1024


def decode_line(raw: bytes) -> str:
    line = raw.decode("utf-8", errors="replace")
    if line.endswith("\n"):
        line = line[:-1]
        if line.endswith("\r"):
            line = line[:-1]
    return line


def read_lines(
    key: str,
    color: str,
    stream_name: StreamName,
    stream: IO[bytes],
    channel: queue.Queue,
) -> None:
    """Put one :class:`OutputEvent` per line of *stream* on *channel*.

    A trailing fragment without a newline is still delivered once the stream
    ends. Whatever happens, exactly one :class:`ReaderResult` is put last.
    """
    error: str | None = None
    try:
        for raw in iter(stream.readline, b""):
            channel.put(OutputEvent(key, decode_line(raw), color, stream_name))
    except (OSError, ValueError) as exc:
        error = f"{stream_name} read failed: {exc}"
        logger.debug("event=read_failed key=%s stream=%s error=%s", key, stream_name, exc)
    finally:
        try:
            stream.close()
        except OSError as exc:
            logger.debug("event=close_failed key=%s stream=%s error=%s", key, stream_name, exc)
        channel.put(ReaderResult(key, stream_name, color, error))
        logger.debug("event=reader_done key=%s stream=%s", key, stream_name)


class Multiplexer:
    """Owns the shared channel and the reader threads feeding it."""

    def __init__(self, capacity: int = CHANNEL_CAPACITY) -> None:
        self.channel: queue.Queue[ChannelItem] = queue.Queue(maxsize=capacity)
        self._threads: list[threading.Thread] = []
        # Only touched by the consumer, which is the single thread calling receive().
        self._open_readers = 0

    @property
    def open_readers(self) -> int:
        """Readers whose :class:`ReaderResult` has not been received yet."""
        return self._open_readers

    @property
    def threads(self) -> list[threading.Thread]:
        return list(self._threads)

    def attach(self, process: SpawnedProcess, color: str) -> None:
        for stream_name, stream in (("stdout", process.stdout), ("stderr", process.stderr)):
            thread = threading.Thread(
                target=read_lines,
                args=(process.key, color, stream_name, stream, self.channel),
                name=f"pru-reader-{process.key}-{stream_name}",
                daemon=True,
            )
            self._open_readers += 1
            self._threads.append(thread)
            thread.start()
        logger.debug("event=attach key=%s pid=%s color=%s", process.key, process.pid, color)

    def receive(self, timeout: float | None = None) -> ChannelItem | None:
        """Next item from the channel, or ``None`` if *timeout* expires first."""
        try:
            item = self.channel.get(timeout=timeout)
        except queue.Empty:
            return None
        if isinstance(item, ReaderResult):
            self._open_readers -= 1
        return item

    def join(self, timeout: float) -> None:
        for thread in self._threads:
            thread.join(timeout=timeout)
