"""
Main entry point for running repocrypt as a module.

Usage:
    python -m repocrypt <command> [options]

git's filter and diff registrations invoke the tool this way.
"""

import sys

from .cli import main

if __name__ == "__main__":
    sys.exit(main())
