from __future__ import annotations

import logging
from collections.abc import Callable

from rich.console import Console
from rich.text import Text

from pru.multiplexer import Multiplexer
from pru.process_types import ChannelItem, OutputEvent, ReaderResult

__all__ = ["ConsoleRenderer", "POLL_INTERVAL"]

logger = logging.getLogger(__name__)

# How long the consumer blocks on the channel before re-checking its loop condition.
POLL_INTERVAL = 0.1

ERROR_STYLE = "red"


class ConsoleRenderer:
    """Single consumer of the event channel; prints ``<key> <message>`` lines.

    The key is styled with the event's color. Messages bypass rich entirely
    and are written to the console's file as they are, so tabs, carriage
    returns and escape sequences reach the terminal untouched.
    """

    def __init__(self, console: Console | None = None) -> None:
        self.console = console or Console(highlight=False)

    def _print_line(self, key: str, color: str, body: Text | str) -> None:
        self.console.print(Text(key, style=color), end=" ", soft_wrap=True, highlight=False)
        if isinstance(body, Text):
            self.console.print(body, soft_wrap=True, highlight=False)
            return
        self.console.file.write(f"{body}\n")
        self.console.file.flush()

    def render(self, event: ChannelItem) -> None:
        if isinstance(event, OutputEvent):
            self._print_line(event.source_key, event.color, event.message)
        elif isinstance(event, ReaderResult) and event.error is not None:
            self._print_line(
                event.source_key, event.color, Text(event.error, style=ERROR_STYLE)
            )

    def render_error(self, key: str, color: str, message: str) -> None:
        self._print_line(key, color, Text(message, style=ERROR_STYLE))

    def consume(
        self,
        multiplexer: Multiplexer,
        keep_going: Callable[[], bool],
        poll_interval: float = POLL_INTERVAL,
    ) -> int:
        """Receive and render until *keep_going* returns false; return the number of items handled."""
        handled = 0
        while keep_going():
            event = multiplexer.receive(timeout=poll_interval)
            if event is None:
                continue
            self.render(event)
            handled += 1
        logger.debug("event=consume_done handled=%d", handled)
        return handled
