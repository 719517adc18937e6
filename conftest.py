"""
Root pytest configuration.

Loaded before test collection so the packages under src/ import without
an editable install.
"""

import sys
from pathlib import Path

import pytest

SRC = str((Path(__file__).parent / "src").absolute())

if SRC in sys.path:
    sys.path.remove(SRC)
sys.path.insert(0, SRC)


@pytest.fixture(autouse=True)
def _reset_event_bus():
    """Drop handlers left on the process-wide event bus between tests."""
    yield
    from domain.event_bus import get_event_bus
    get_event_bus().clear()
