#!/usr/bin/env python
"""
Launcher script for PCB Tracker.

Runs the command-line interface without installing the package.
"""

import sys
from pathlib import Path

# Make the src/ layout importable
project_root = Path(__file__).parent
sys.path.insert(0, str(project_root / "src"))

from pcb_tracker.main import main

if __name__ == "__main__":
    sys.exit(main())
