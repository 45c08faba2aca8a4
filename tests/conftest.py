"""Pytest configuration for the GLPC test suite."""

import sys
from pathlib import Path

# Add src directory to path for glpc imports
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))
