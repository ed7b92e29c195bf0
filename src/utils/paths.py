"""Centralized path definitions for the Glance application.

This module provides a single source of truth for all application paths,
preventing duplication and making path configuration easier to maintain.
Set ``GLANCE_HOME`` to relocate everything (used by the test suite).
"""

import os
from pathlib import Path

# Base application directory
GLANCE_DIR = Path(os.environ.get("GLANCE_HOME", Path.home() / ".glance"))

# Subdirectories
LOGS_DIR = GLANCE_DIR / "logs"

# Specific files
CONFIG_PATH = GLANCE_DIR / "config.json"
