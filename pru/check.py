from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import TextIO

from pru.logging_utils import CLI_LOGGER
from pru.procfile import ProcfileError, read_procfile

__all__ = ["check"]

logger = logging.getLogger(__name__)


def check(procfile_path: Path, out: TextIO | None = None) -> int:
    """Validate the Procfile at *procfile_path* and summarise its process names.

    Returns the process exit status: 0 when the Procfile is usable, 1 otherwise.
    """
    out = out or sys.stdout
    logger.debug("check(procfile=%s) starting", procfile_path)

    try:
        procfile = read_procfile(procfile_path)
    except ProcfileError as exc:
        CLI_LOGGER.error("ERROR: %s", exc)
        return 1

    print(f"valid procfile detected ({', '.join(procfile.keys)})", file=out)
    return 0
