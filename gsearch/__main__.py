"""Entry point for `python -m gsearch`."""

import sys

from gsearch.cli import main

if __name__ == "__main__":
    sys.exit(main())
