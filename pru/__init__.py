"""
pru: Run Procfile-based applications.

This package parses a Procfile, starts one shell per declared process and
prints their combined output as a single color-tagged stream.
"""

# Package metadata
__version__ = "0.1.0"

from .colors import PALETTE, color_for
from .procfile import (
    NoProcessesDefined,
    ParseError,
    Procfile,
    ProcfileEntry,
    ProcfileError,
    ProcfileNotFound,
    ProcfileUnreadable,
    load,
    parse,
    read_procfile,
    valid,
)
from .process_types import OutputEvent, ReaderResult, StartState
from .supervisor import SpawnError, Supervisor
from .multiplexer import CHANNEL_CAPACITY, Multiplexer
from .console import ConsoleRenderer
from .start import ProcfileRunner, start
from .check import check

# Public API
__all__ = [
    "PALETTE",
    "color_for",
    "NoProcessesDefined",
    "ParseError",
    "Procfile",
    "ProcfileEntry",
    "ProcfileError",
    "ProcfileNotFound",
    "ProcfileUnreadable",
    "load",
    "parse",
    "read_procfile",
    "valid",
    "OutputEvent",
    "ReaderResult",
    "StartState",
    "SpawnError",
    "Supervisor",
    "CHANNEL_CAPACITY",
    "Multiplexer",
    "ConsoleRenderer",
    "ProcfileRunner",
    "start",
    "check",
]
