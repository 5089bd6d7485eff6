from __future__ import annotations

import os
import signal
import subprocess
import sys
import time
from pathlib import Path

__all__ = [
    "PROJECT_ROOT",
    "run_cli",
    "start_cli",
    "stop_run",
    "read_until",
]

PROJECT_ROOT = Path(__file__).resolve().parents[1]


def _cli_env() -> dict[str, str]:
    env = dict(os.environ)
    env["PYTHONPATH"] = os.pathsep.join(
        p for p in (str(PROJECT_ROOT), env.get("PYTHONPATH")) if p
    )
    return env


def run_cli(*args: str, timeout: float = 20.0) -> subprocess.CompletedProcess[str]:
    """Invoke the pru CLI synchronously and capture output."""
    cmd = [sys.executable, "-m", "pru", *args]
    return subprocess.run(
        cmd,
        text=True,
        capture_output=True,
        check=False,
        timeout=timeout,
        env=_cli_env(),
    )


def start_cli(*args: str) -> subprocess.Popen[str]:
    """Start `pru …` in a background process.

    Returns the *Popen* instance so callers can interrupt it with SIGINT.
    """
    cmd = [sys.executable, "-m", "pru", *args]
    return subprocess.Popen(
        cmd,
        text=True,
        stdout=subprocess.PIPE,
        stderr=subprocess.PIPE,
        start_new_session=True,
        env=_cli_env(),
    )


def read_until(proc: subprocess.Popen[str], needle: str, timeout: float = 10.0) -> list[str]:
    """Read stdout lines from *proc* until one contains *needle*; return the lines read."""
    deadline = time.time() + timeout
    lines: list[str] = []
    while time.time() < deadline:
        line = proc.stdout.readline()
        if not line:
            if proc.poll() is not None:
                break
            time.sleep(0.05)
            continue
        lines.append(line.rstrip("\n"))
        if needle in line:
            return lines
    raise AssertionError(f"{needle!r} not seen in output: {lines}")


def stop_run(proc: subprocess.Popen[str], timeout: float = 15.0) -> int:
    """Send SIGINT to *proc* and wait up to *timeout* seconds; return its exit code."""
    if proc.poll() is not None:
        return proc.returncode

    try:
        proc.send_signal(signal.SIGINT)
    except ProcessLookupError:
        # Process may have already exited
        pass

    try:
        return proc.wait(timeout=timeout)
    except subprocess.TimeoutExpired:
        # If it's still alive, force-kill the whole group.
        print(f"Process {proc.pid} did not exit after {timeout}s, killing.")
        try:
            os.killpg(os.getpgid(proc.pid), signal.SIGKILL)
        except (ProcessLookupError, PermissionError):
            proc.kill()
        proc.wait(timeout=5.0)
        raise
