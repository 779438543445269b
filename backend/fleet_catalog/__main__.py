"""Allow ``python -m fleet_catalog``."""

import sys

from .main import main

sys.exit(main())
