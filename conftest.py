"""
Root conftest.py - puts the project root on sys.path for pytest.

Tests and scripts import the engine as `src.*` (src.core.models,
src.portfolio.snapshots, ...) without installing the package first.
Fixtures live in tests/conftest.py.
"""

import sys
from pathlib import Path

project_root = Path(__file__).parent
if str(project_root) not in sys.path:
    sys.path.insert(0, str(project_root))
