#!/usr/bin/env python3
"""Interactive console for the groups search connector.

Usage:
    python scripts/run_console.py [--config CONFIG_PATH] [--verbose]
"""

import sys

from groups_connector.console.menu import main

if __name__ == "__main__":
    sys.exit(main())
