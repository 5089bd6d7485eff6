from __future__ import annotations

import logging
import signal
import threading
import time
from pathlib import Path

from pru.colors import color_for
from pru.console import POLL_INTERVAL, ConsoleRenderer
from pru.logging_utils import CLI_LOGGER
from pru.multiplexer import CHANNEL_CAPACITY, Multiplexer
from pru.procfile import Procfile, ProcfileError, read_procfile
from pru.process_types import StartState
from pru.supervisor import DEFAULT_SHUTDOWN_TIMEOUT, SpawnError, Supervisor

__all__ = ["ProcfileRunner", "start"]

logger = logging.getLogger(__name__)

# Extra time, once termination has finished, granted to readers to flush what
# the children wrote before dying.
_DRAIN_GRACE = 2.0


class ProcfileRunner:
    """Runs every entry of a :class:`Procfile` and streams their output.

    The runner moves through ``IDLE -> SPAWNING -> STREAMING -> DRAINING ->
    STOPPED``. Streaming ends either when :meth:`request_stop` is called
    (from a signal handler, usually) or when every child has closed both of
    its output streams. Draining terminates the remaining children and
    renders whatever they wrote before going away.
    """

    def __init__(
        self,
        procfile: Procfile,
        root: Path = Path("."),
        renderer: ConsoleRenderer | None = None,
        shutdown_timeout: float = DEFAULT_SHUTDOWN_TIMEOUT,
        capacity: int = CHANNEL_CAPACITY,
        poll_interval: float = POLL_INTERVAL,
    ) -> None:
        self.procfile = procfile
        self.renderer = renderer or ConsoleRenderer()
        self.supervisor = Supervisor(root)
        self.multiplexer = Multiplexer(capacity)
        self.shutdown_timeout = shutdown_timeout
        self.poll_interval = poll_interval
        self.state = StartState.IDLE
        self._stop_evt = threading.Event()

    def request_stop(self) -> None:
        """Ask a streaming runner to shut down. Safe to call from a signal handler."""
        self._stop_evt.set()

    @property
    def stop_requested(self) -> bool:
        return self._stop_evt.is_set()

    def _transition(self, state: StartState) -> None:
        logger.debug("event=state from=%s to=%s", self.state.value, state.value)
        self.state = state

    def _spawn_all(self) -> int:
        spawned = 0
        for index, entry in enumerate(self.procfile.entries):
            if self.stop_requested:
                break
            color = color_for(index)
            try:
                process = self.supervisor.spawn(entry)
            except SpawnError as exc:
                self.renderer.render_error(entry.key, color, str(exc))
                continue
            self.multiplexer.attach(process, color)
            spawned += 1
        return spawned

    def _streaming(self) -> bool:
        return not self.stop_requested and self.multiplexer.open_readers > 0

    def run(self) -> int:
        """Run until stopped; return the exit status for the ``start`` command."""
        if self.state is not StartState.IDLE:
            raise RuntimeError("ProcfileRunner.run() can only be called once")

        self._transition(StartState.SPAWNING)
        spawned = self._spawn_all()
        if spawned == 0:
            self._transition(StartState.STOPPED)
            return 0 if self.stop_requested else 1

        self._transition(StartState.STREAMING)
        self.renderer.consume(self.multiplexer, self._streaming, self.poll_interval)

        self._transition(StartState.DRAINING)
        # Termination waits on the children while this thread keeps rendering;
        # a child writing on its way out must never block on a full channel.
        terminator = threading.Thread(
            target=self.supervisor.terminate_all,
            args=(self.shutdown_timeout,),
            name="pru-terminate",
            daemon=True,
        )
        terminator.start()
        deadline: float | None = None

        def _draining() -> bool:
            nonlocal deadline
            if terminator.is_alive():
                return True
            if deadline is None:
                deadline = time.monotonic() + _DRAIN_GRACE
            pending = self.multiplexer.open_readers > 0 or not self.multiplexer.channel.empty()
            return pending and time.monotonic() < deadline

        self.renderer.consume(self.multiplexer, _draining, self.poll_interval)
        terminator.join()
        if self.multiplexer.open_readers:
            logger.warning(
                "Gave up waiting for %d output stream(s) to close",
                self.multiplexer.open_readers,
            )

        self._transition(StartState.STOPPED)
        return 0


def start(
    procfile_path: Path,
    root: Path = Path("."),
    process: str | None = None,
    shutdown_timeout: float = DEFAULT_SHUTDOWN_TIMEOUT,
    renderer: ConsoleRenderer | None = None,
) -> int:
    """Start every process in the Procfile and stream their output to stdout.

    Parameters
    ----------
    procfile_path
        Path to the Procfile.
    root
        Working directory for the spawned commands.
    process
        Name of a single process to start. Accepted for CLI compatibility but
        not supported yet: all processes are started.
    shutdown_timeout
        Seconds children get to exit after SIGTERM before they are killed.
    renderer
        Where output goes; defaults to a :class:`ConsoleRenderer` on stdout.
    """
    logger.debug("start(procfile=%s, root=%s) starting", procfile_path, root)

    try:
        procfile = read_procfile(procfile_path)
    except ProcfileError as exc:
        CLI_LOGGER.error("ERROR: %s", exc)
        return 1

    root = Path(root)
    if not root.is_dir():
        CLI_LOGGER.error("ERROR: root directory does not exist: %s", root)
        return 1

    if process is not None:
        CLI_LOGGER.warning(
            "Starting a single process is not supported yet; starting all processes (asked for '%s')",
            process,
        )

    runner = ProcfileRunner(
        procfile, root=root, renderer=renderer, shutdown_timeout=shutdown_timeout
    )

    # ------------------------------------------------------------------
    # Ctrl+C / SIGTERM end the streaming phase instead of killing us, so the
    # children get shut down and their last lines rendered. Restore the
    # previous handlers before we leave this function.
    # ------------------------------------------------------------------

    def _request_stop(signum, frame):  # noqa: D401 – small handler
        logger.debug("Received signal %s, shutting down", signum)
        runner.request_stop()

    installed = threading.current_thread() is threading.main_thread()
    previous = {}
    if installed:
        for sig in (signal.SIGINT, signal.SIGTERM):
            previous[sig] = signal.getsignal(sig)
            signal.signal(sig, _request_stop)

    try:
        status = runner.run()
    finally:
        for sig, handler in previous.items():
            signal.signal(sig, handler)

    logger.debug("start(procfile=%s) finished status=%s", procfile_path, status)
    return status
