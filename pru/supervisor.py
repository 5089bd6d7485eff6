from __future__ import annotations

import logging
import os
import signal
import subprocess
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import IO

from pru.procfile import ProcfileEntry

__all__ = ["Supervisor", "SpawnedProcess", "SpawnError", "DEFAULT_SHUTDOWN_TIMEOUT"]

logger = logging.getLogger(__name__)

DEFAULT_SHUTDOWN_TIMEOUT = 5.0

# Grace period after SIGKILL before giving up on reaping a child.
_KILL_WAIT = 2.0


class SpawnError(RuntimeError):
    """The host could not start the shell for one Procfile entry."""

    def __init__(self, key: str, reason: str) -> None:
        self.key = key
        self.reason = reason
        super().__init__(f"failed to spawn: {reason}")


@dataclass
class SpawnedProcess:
    entry: ProcfileEntry
    proc: subprocess.Popen = field(repr=False)

    @property
    def key(self) -> str:
        return self.entry.key

    @property
    def pid(self) -> int:
        return self.proc.pid

    @property
    def stdout(self) -> IO[bytes]:
        return self.proc.stdout

    @property
    def stderr(self) -> IO[bytes]:
        return self.proc.stderr


class Supervisor:
    """Spawns one shell per Procfile entry.

    Children are never waited on or restarted while running; the only
    lifecycle operation is :meth:`terminate_all`, used when ``start`` shuts
    down.

    *environment* is for library callers: its variables are layered over
    the parent environment of every child. The ``start`` command leaves it
    unset, so children inherit pru's environment unchanged.
    """

    def __init__(
        self, root: Path = Path("."), environment: dict[str, str] | None = None
    ) -> None:
        self.root = Path(root)
        self.environment = environment
        self._processes: list[SpawnedProcess] = []

    @property
    def processes(self) -> list[SpawnedProcess]:
        return list(self._processes)

    def spawn(self, entry: ProcfileEntry) -> SpawnedProcess:
        logger.debug("event=spawn key=%s cmd=%s cwd=%s", entry.key, entry.command, self.root)
        try:
            proc = subprocess.Popen(  # noqa: S602 – Procfile commands are shell lines
                entry.command,
                shell=True,
                cwd=str(self.root),
                env={**os.environ, **(self.environment or {})},
                stdin=subprocess.DEVNULL,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                close_fds=True,
                # Own process group, so shutdown reaches everything the shell starts.
                start_new_session=True,
            )
        except OSError as exc:
            logger.debug("event=spawn_failed key=%s error=%s", entry.key, exc)
            raise SpawnError(entry.key, exc.strerror or str(exc)) from exc

        spawned = SpawnedProcess(entry=entry, proc=proc)
        self._processes.append(spawned)
        logger.info("Process %s started with pid %s", entry.key, proc.pid)
        return spawned

    def terminate_all(self, timeout: float = DEFAULT_SHUTDOWN_TIMEOUT) -> None:
        """SIGTERM every child's process group, then SIGKILL whatever outlives *timeout*."""
        live = [p for p in self._processes if p.proc.poll() is None]
        logger.debug("event=terminate_all live=%d timeout=%s", len(live), timeout)

        # An exited shell may leave background jobs holding the pipes open,
        # so every group is signalled, not only the live leaders.
        for spawned in self._processes:
            self._signal_group(spawned, signal.SIGTERM)

        deadline = time.monotonic() + timeout
        stragglers = []
        for spawned in live:
            remaining = max(0.0, deadline - time.monotonic())
            if not self._wait_for_exit(spawned.proc, remaining):
                stragglers.append(spawned)

        for spawned in stragglers:
            logger.warning("Escalated to SIGKILL for %s (pid %s)", spawned.key, spawned.pid)
            self._signal_group(spawned, signal.SIGKILL)
            if not self._wait_for_exit(spawned.proc, _KILL_WAIT):
                logger.error("event=kill_timeout key=%s pid=%s", spawned.key, spawned.pid)

        # Leftover group members of leaders that did exit in time.
        for spawned in self._processes:
            if spawned not in stragglers:
                self._signal_group(spawned, signal.SIGKILL)

        # Exit codes are only logged; they never become pru's own status.
        for spawned in self._processes:
            if spawned.proc.poll() is not None:
                logger.debug(
                    "event=exited key=%s pid=%s exit_code=%s",
                    spawned.key,
                    spawned.pid,
                    spawned.proc.returncode,
                )

    # ------------------ signal helpers ------------------

    @staticmethod
    def _signal_group(spawned: SpawnedProcess, sig: signal.Signals) -> None:
        try:
            # start_new_session makes the shell its group leader: pgid == pid.
            os.killpg(spawned.pid, sig)
            logger.debug("Sent %s to key=%s pid=%s", sig.name, spawned.key, spawned.pid)
        except (ProcessLookupError, PermissionError):
            # Already gone, or the group leader was reaped.
            pass

    @staticmethod
    def _wait_for_exit(proc: subprocess.Popen, timeout: float) -> bool:
        try:
            proc.wait(timeout=timeout)
            return True
        except subprocess.TimeoutExpired:
            return False
