"""Entry point for ``python -m insiderloom``."""

import sys

from .cli import main

sys.exit(main())
