"""Entry point for ``python -m teddy_upgrader``."""

import sys

from teddy_upgrader.cli import main

if __name__ == "__main__":
    sys.exit(main())
