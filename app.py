#!/usr/bin/env python3
"""
Fixed-Ratio Stress Harness - Main Application Entry Point.

============================================================
SINGLE ENTRYPOINT
============================================================
The one executable entry point for the harness.

- Starts the lifecycle controller and its engine
- Optionally runs demo workers against the simulated chain
- Stops every worker on SIGINT / SIGTERM

============================================================
USAGE
============================================================
Direct execution:
    python app.py --demo-workers 6 --duration 120

Environment-based configuration:
    STRESS_CHAIN_BACKEND=gateway python app.py

============================================================
"""

import sys
from pathlib import Path

# Add project root to path
PROJECT_ROOT = Path(__file__).parent.absolute()
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from lifecycle.cli import main


# ============================================================
# ENTRY POINT
# ============================================================

if __name__ == "__main__":
    sys.exit(main())
