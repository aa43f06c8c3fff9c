# SPDX-License-Identifier: MIT
"""Package entry point — run the checker via `python -m rulecheck`."""

import sys

from rulecheck.cli import main

if __name__ == "__main__":
    sys.exit(main())
