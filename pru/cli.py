from __future__ import annotations

import argparse
import os
import sys
from collections.abc import Sequence
from dataclasses import dataclass, field
from pathlib import Path

from pru import __version__
from pru.check import check
from pru.logging_utils import CLI_LOGGER, setup_logging
from pru.start import start
from pru.supervisor import DEFAULT_SHUTDOWN_TIMEOUT

ENV_PROCFILE = "PRU_PROCFILE"
ENV_ROOT = "PRU_ROOT"
ENV_SHUTDOWN_TIMEOUT = "PRU_SHUTDOWN_TIMEOUT"
ENV_LOG_FILE = "PRU_LOG_FILE"

NOT_YET_IMPLEMENTED = "Not yet implemented!"


def get_default_procfile() -> Path:
    """Return default Procfile path, honouring *PRU_PROCFILE*."""
    return Path(os.environ.get(ENV_PROCFILE) or "Procfile")


def get_default_root() -> Path:
    """Return default root directory, honouring *PRU_ROOT*."""
    return Path(os.environ.get(ENV_ROOT) or ".")


def get_default_shutdown_timeout() -> float:
    """Return default shutdown timeout, honouring *PRU_SHUTDOWN_TIMEOUT*."""

    if ENV_SHUTDOWN_TIMEOUT in os.environ:
        try:
            return float(os.environ[ENV_SHUTDOWN_TIMEOUT])
        except ValueError:
            pass  # fall through to hard-coded default

    return DEFAULT_SHUTDOWN_TIMEOUT


def get_default_log_file() -> Path | None:
    value = os.environ.get(ENV_LOG_FILE)
    return Path(value).expanduser() if value else None


# ---------------------------------------------------------------------------
# Actions – one per subcommand, produced by *parse_cli*
# ---------------------------------------------------------------------------


@dataclass
class Action:
    procfile: Path
    root: Path
    verbose: int = 0

    def run(self) -> int:  # pragma: no cover – overridden
        raise NotImplementedError


@dataclass
class CheckAction(Action):
    def run(self) -> int:
        return check(self.procfile)


@dataclass
class StartAction(Action):
    process: str | None = None
    timeout: float = DEFAULT_SHUTDOWN_TIMEOUT

    def run(self) -> int:
        return start(
            self.procfile,
            root=self.root,
            process=self.process,
            shutdown_timeout=self.timeout,
        )


@dataclass
class ExportAction(Action):
    format: str = ""
    location: Path | None = None

    def run(self) -> int:
        return not_yet_implemented()


@dataclass
class RunAction(Action):
    command: str = ""
    run_args: list[str] = field(default_factory=list)

    def run(self) -> int:
        return not_yet_implemented()


@dataclass
class VersionAction(Action):
    def run(self) -> int:
        print(f"pru {__version__}")
        return 0


def not_yet_implemented() -> int:
    CLI_LOGGER.warning(NOT_YET_IMPLEMENTED)
    return 0


# ---------------------------------------------------------------------------
# Argument parsing
# ---------------------------------------------------------------------------


def _add_common_args(parser: argparse.ArgumentParser, suppress: bool) -> None:
    """Options accepted both before and after the subcommand.

    On subparsers the defaults are suppressed so that a value given before the
    subcommand is not overwritten by the subparser's default.
    """

    def _default(value):
        return argparse.SUPPRESS if suppress else value

    parser.add_argument(
        "-f",
        "--procfile",
        type=Path,
        default=_default(get_default_procfile()),
        help="Path to your Procfile",
    )
    parser.add_argument(
        "-d",
        "--root",
        type=Path,
        default=_default(get_default_root()),
        help="Procfile directory; processes run with it as working directory",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="count",
        default=_default(0),
        help="Increase verbosity; you can use -vv for more",
    )
    parser.add_argument(
        "--log-file",
        type=Path,
        default=_default(get_default_log_file()),
        help="Also write a detailed debug log to this file",
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="pru", description="Run Procfile-based applications"
    )
    _add_common_args(parser, suppress=False)

    subparsers = parser.add_subparsers(dest="command")

    common = argparse.ArgumentParser(add_help=False)
    _add_common_args(common, suppress=True)

    subparsers.add_parser(
        "check", parents=[common], help="Validate your application's Procfile"
    )

    p_start = subparsers.add_parser(
        "start",
        parents=[common],
        help="Start the application (or a specific process)",
    )
    p_start.add_argument("process", nargs="?", help="Process to start")
    p_start.add_argument(
        "-t",
        "--timeout",
        type=float,
        default=get_default_shutdown_timeout(),
        help="Seconds to wait for processes to exit after SIGTERM before killing them",
    )

    p_export = subparsers.add_parser(
        "export",
        parents=[common],
        help="Export the application to another process management format",
    )
    p_export.add_argument("format", help="What format to export")
    p_export.add_argument("location", type=Path, help="Path to export the application to")

    p_run = subparsers.add_parser(
        "run",
        parents=[common],
        help="Run a command using your application's environment",
    )
    p_run.add_argument("program", help="Command to run")
    p_run.add_argument("args", nargs=argparse.REMAINDER, help="Args for the command")

    subparsers.add_parser("version", parents=[common], help="Display current version")

    return parser


def parse_cli(argv: Sequence[str] | None = None) -> tuple[Action, Path | None]:
    """Parse *argv* into an :class:`Action`, configuring logging on the way.

    Returns ``(action, log_path)``. Exits with status 1 after printing help
    when no subcommand is given.
    """
    parser = build_parser()
    args = parser.parse_args(argv)

    log_path = setup_logging(args.verbose, args.log_file)

    common = {"procfile": args.procfile, "root": args.root, "verbose": args.verbose}

    if args.command == "check":
        action: Action = CheckAction(**common)
    elif args.command == "start":
        action = StartAction(**common, process=args.process, timeout=args.timeout)
    elif args.command == "export":
        action = ExportAction(**common, format=args.format, location=args.location)
    elif args.command == "run":
        action = RunAction(**common, command=args.program, run_args=list(args.args))
    elif args.command == "version":
        action = VersionAction(**common)
    else:
        parser.print_help(sys.stderr)
        raise SystemExit(1)

    CLI_LOGGER.debug("Parsed action %s", action)
    return action, log_path


def cli(argv: Sequence[str] | None = None) -> None:
    action, log_path = parse_cli(argv)
    if log_path is not None:
        CLI_LOGGER.info("Verbose log written to %s", log_path)

    try:
        status = action.run()
    except KeyboardInterrupt:
        # Ctrl+C before *start* installed its own handlers.
        status = 130

    sys.exit(status)
