#!/usr/bin/env python3
"""
Deploy a directory of static assets to object storage.

Thin wrapper around ``static_deploy.cli`` for running from a checkout
without installing the package.

Usage:
    python scripts/deploy.py
    python scripts/deploy.py -c .deploy.yaml --dry-run
"""

import sys
from pathlib import Path

# Add project root to path for imports (before other imports)
_project_root = Path(__file__).parent.parent
if str(_project_root) not in sys.path:
    sys.path.insert(0, str(_project_root))

from static_deploy.cli import main  # noqa: E402

if __name__ == "__main__":
    sys.exit(main())
