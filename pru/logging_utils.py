from __future__ import annotations

import logging
import sys
from pathlib import Path

CLI_LOGGER_NAME = "pru.cli"


class CustomFormatter(logging.Formatter):
    regular = "\x1b[37;20m"
    grey = "\x1b[90;20m"
    yellow = "\x1b[33;20m"
    red = "\x1b[31;20m"
    bold_red = "\x1b[31;1m"
    reset = "\x1b[0m"
    format = "%(message)s"

    FORMATS = {
        logging.DEBUG: grey + format + reset,
        logging.INFO: grey + format + reset,
        logging.WARNING: yellow + format + reset,
        logging.ERROR: red + format + reset,
        logging.CRITICAL: bold_red + format + reset,
    }

    def format(self, record):
        log_fmt = self.FORMATS.get(record.levelno)
        formatter = logging.Formatter(log_fmt)
        return formatter.format(record)


class _CliOnlyFilter(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:  # noqa: D401 – simple predicate
        return record.name.startswith(CLI_LOGGER_NAME)


def setup_logging(verbosity: int, log_file: Path | None = None) -> Path | None:
    """Configure logging for the current *pru* invocation.

    A console handler on stderr is configured according to *verbosity*:

    * ``0`` – only the dedicated CLI logger, INFO and above.
    * ``1`` – INFO and above from *all* loggers.
    * ``2+`` – DEBUG from all loggers.

    When *log_file* is given, a file handler capturing *all* logs at DEBUG
    level is added as well. Returns *log_file*.
    """
    # We configure the root logger, so module loggers inherit this configuration.
    root_logger = logging.getLogger()

    # Avoid adding handlers multiple times if this function is called repeatedly,
    # which can happen during tests.
    if root_logger.hasHandlers():
        root_logger.handlers.clear()

    root_logger.setLevel(logging.DEBUG)

    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(
            logging.Formatter(
                "%(asctime)s | %(levelname)-8s | %(threadName)s | %(name)s | %(message)s"
            )
        )
        root_logger.addHandler(file_handler)

    console_handler = logging.StreamHandler(sys.stderr)

    if verbosity <= 0:
        console_handler.setLevel(logging.INFO)
        console_handler.addFilter(_CliOnlyFilter())
    elif verbosity == 1:
        console_handler.setLevel(logging.INFO)
    else:
        console_handler.setLevel(logging.DEBUG)

    if sys.stderr.isatty():
        console_handler.setFormatter(CustomFormatter())
    else:
        console_handler.setFormatter(logging.Formatter("%(message)s"))
    root_logger.addHandler(console_handler)

    return log_file


CLI_LOGGER = logging.getLogger(CLI_LOGGER_NAME)
