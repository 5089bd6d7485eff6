import sys
import signal

import pytest


@pytest.fixture(autouse=True)
def _enforce_timeout(request):
    """Fail tests that run longer than the allowed time.

    Default timeout is 30 seconds unless a test is marked with
    ``@pytest.mark.timeout(N)`` specifying a custom limit.
    """

    marker = request.node.get_closest_marker("timeout")
    timeout = int(marker.args[0]) if marker and marker.args else 30

    # Skip if timeout is non-positive or SIGALRM unavailable (e.g. Windows).
    if timeout <= 0 or sys.platform.startswith("win"):
        yield
        return

    def _alarm_handler(signum, frame):  # noqa: D401 – signal handler
        pytest.fail(f"Test timed out after {timeout} seconds", pytrace=False)

    previous = signal.signal(signal.SIGALRM, _alarm_handler)  # type: ignore[arg-type]
    signal.alarm(timeout)

    try:
        yield
    finally:
        signal.alarm(0)
        signal.signal(signal.SIGALRM, previous)  # type: ignore[arg-type]


@pytest.fixture
def procfile_path(tmp_path):
    """Return a factory writing *contents* to a Procfile under *tmp_path*."""

    def _write(contents: str, name: str = "Procfile"):
        path = tmp_path / name
        path.write_text(contents, encoding="utf-8")
        return path

    return _write
