import os
import time
from unittest.mock import patch

import pytest

from pru.procfile import ProcfileEntry
from pru.supervisor import SpawnError, Supervisor


def test_spawn_runs_command_through_shell(tmp_path):
    sup = Supervisor(tmp_path)
    spawned = sup.spawn(ProcfileEntry("a", "echo one two | tr ' ' '\\n'"))

    assert spawned.key == "a"
    assert spawned.stdout.read() == b"one\ntwo\n"
    assert spawned.proc.wait(timeout=5) == 0
    assert sup.processes == [spawned]


def test_stdout_and_stderr_are_separate(tmp_path):
    sup = Supervisor(tmp_path)
    spawned = sup.spawn(ProcfileEntry("a", "echo to-out; echo to-err 1>&2"))

    assert spawned.stdout.read() == b"to-out\n"
    assert spawned.stderr.read() == b"to-err\n"
    spawned.proc.wait(timeout=5)


def test_spawn_uses_root_as_working_directory(tmp_path):
    sup = Supervisor(tmp_path)
    spawned = sup.spawn(ProcfileEntry("pwd", "pwd"))
    out = spawned.stdout.read().decode().strip()
    spawned.proc.wait(timeout=5)
    assert os.path.realpath(out) == os.path.realpath(tmp_path)


def test_spawn_merges_environment(tmp_path):
    sup = Supervisor(tmp_path, environment={"PRU_TEST_VALUE": "hello"})
    spawned = sup.spawn(ProcfileEntry("env", "echo $PRU_TEST_VALUE"))
    assert spawned.stdout.read() == b"hello\n"
    spawned.proc.wait(timeout=5)


def test_stdin_is_not_inherited(tmp_path):
    sup = Supervisor(tmp_path)
    spawned = sup.spawn(ProcfileEntry("cat", "cat"))
    # cat reads /dev/null and exits immediately instead of waiting on a terminal.
    assert spawned.proc.wait(timeout=5) == 0


def test_spawn_failure_raises_spawn_error(tmp_path):
    sup = Supervisor(tmp_path / "does-not-exist")
    with pytest.raises(SpawnError) as excinfo:
        sup.spawn(ProcfileEntry("web", "./web"))
    assert excinfo.value.key == "web"
    assert str(excinfo.value).startswith("failed to spawn: ")
    assert sup.processes == []


def test_spawn_error_wraps_os_error(tmp_path):
    sup = Supervisor(tmp_path)
    with patch("pru.supervisor.subprocess.Popen", side_effect=PermissionError(13, "Permission denied")):
        with pytest.raises(SpawnError) as excinfo:
            sup.spawn(ProcfileEntry("web", "./web"))
    assert excinfo.value.reason == "Permission denied"
    assert isinstance(excinfo.value.__cause__, PermissionError)


@pytest.mark.timeout(20)
def test_terminate_all_stops_long_running_children(tmp_path):
    sup = Supervisor(tmp_path)
    a = sup.spawn(ProcfileEntry("a", "sleep 30"))
    b = sup.spawn(ProcfileEntry("b", "sleep 30 & wait"))

    started = time.monotonic()
    sup.terminate_all(timeout=5)
    assert time.monotonic() - started < 5

    assert a.proc.poll() is not None
    assert b.proc.poll() is not None
    # The background sleep held b's pipes; they must be closed now.
    assert b.stdout.read() == b""


@pytest.mark.timeout(20)
def test_terminate_all_escalates_to_sigkill(tmp_path):
    sup = Supervisor(tmp_path)
    stubborn = sup.spawn(ProcfileEntry("stubborn", "trap '' TERM; echo ready; sleep 30"))
    assert stubborn.stdout.readline() == b"ready\n"

    sup.terminate_all(timeout=0.5)

    assert stubborn.proc.poll() is not None
    assert stubborn.proc.returncode != 0


def test_terminate_all_with_exited_children(tmp_path):
    sup = Supervisor(tmp_path)
    spawned = sup.spawn(ProcfileEntry("done", "true"))
    spawned.proc.wait(timeout=5)

    sup.terminate_all(timeout=1)

    assert spawned.proc.returncode == 0
