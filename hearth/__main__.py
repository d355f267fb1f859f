"""Entry point for running the CLI as a module.

Usage:
    python -m hearth [options] COMMAND
"""

import sys

from hearth.entrypoints.cli import main

if __name__ == "__main__":
    sys.exit(main())
