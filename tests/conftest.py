"""
Pytest configuration and shared fixtures.
"""

import random
import tempfile
from pathlib import Path

import pytest

from chuk_mcp_barbeat.core.time import TimeSignature


@pytest.fixture
def temp_dir() -> Path:
    """Create a temporary directory for test outputs."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def temp_midi_path(temp_dir: Path) -> Path:
    """Path for a temporary MIDI file."""
    return temp_dir / "test.mid"


@pytest.fixture
def rng() -> random.Random:
    """Seeded random source for reproducible velocity ranges."""
    return random.Random(42)


@pytest.fixture
def four_four() -> TimeSignature:
    return TimeSignature(4, 4)


@pytest.fixture
def six_eight() -> TimeSignature:
    return TimeSignature(6, 8)
