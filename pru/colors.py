"""Color assignment for process names."""

from __future__ import annotations

__all__ = ["PALETTE", "color_for"]

# Ordered; process N gets PALETTE[N % len(PALETTE)]. Names are rich color names.
PALETTE: tuple[str, ...] = (
    "cyan",
    "yellow",
    "green",
    "magenta",
    "blue",
    "red",
    "bright_cyan",
    "bright_yellow",
    "bright_green",
    "bright_magenta",
    "bright_blue",
    "bright_red",
    "dark_orange",
    "purple",
    "turquoise2",
    "orange1",
)


def color_for(index: int) -> str:
    return PALETTE[index % len(PALETTE)]
