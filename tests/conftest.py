"""Test configuration and fixtures."""
import sys
from pathlib import Path

import pytest

project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))
sys.path.insert(0, str(project_root / "tests"))

from shared.throttle import Throttle  # noqa: E402


@pytest.fixture
def no_throttle():
    """Throttle that never sleeps, so aggregator tests run without wall-clock delay."""
    return Throttle(0)
