"""Allow ``python -m brandshift``."""

import sys

from brandshift.cli import main

sys.exit(main())
