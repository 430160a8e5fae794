"""Allow running the package with ``python -m opinion_sim``."""

import sys

from .cli import main

sys.exit(main())
