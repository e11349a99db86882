"""Entry point for running calmmap as a module."""

import sys

from calmmap.cli import main

if __name__ == "__main__":
    sys.exit(main())
