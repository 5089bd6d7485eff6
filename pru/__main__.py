"""
Entry point for the pru package.

This module serves as the main entry point when running `python -m pru`.
"""

import os
import sys

# Check for Unix-like system
if os.name != "posix":
    print(
        "Error: pru only supports Unix-like systems (Linux, macOS, BSD)",
        file=sys.stderr,
    )
    sys.exit(1)

from .cli import cli


def main():
    """Main entry point for the pru command."""
    cli()


if __name__ == "__main__":
    main()
