#!/usr/bin/env python3
"""
Script loop process executable.

This module is intentionally thin: it only hands control to the CLI and
turns its result into the process exit code.
"""

import sys

from scriptloop.cli import main

if __name__ == "__main__":
    sys.exit(main())
