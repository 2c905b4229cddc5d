#!/usr/bin/env python3
"""
Record Reconciliation Tool

Runs the recordsync CLI from a source checkout without installing it.

Usage:
    ./scripts/reconcile.py run --config config.yaml
    ./scripts/reconcile.py run --config config.yaml --collection hulu.scope
    ./scripts/reconcile.py validate --config config.yaml
    ./scripts/reconcile.py list --config config.yaml
"""

import sys
from pathlib import Path

# Add repository root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from recordsync.cli import main  # noqa: E402

if __name__ == "__main__":
    sys.exit(main())
