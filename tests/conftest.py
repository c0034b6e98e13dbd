"""Shared test setup.

Settings are read at import time and exit without a JWT secret, so the
environment has to be prepared before any ``microlearn`` module loads.
"""

import os
import sys
from pathlib import Path

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

os.environ.setdefault("JWT_SECRET", "test-secret-that-is-at-least-32-characters-long")
os.environ.setdefault("DATABASE_PATH", ":memory:")
os.environ.setdefault("ADMIN_EMAILS", "admin@example.com")
