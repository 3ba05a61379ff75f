"""
Global pytest configuration and fixtures for SafeSignal testing.
"""
import copy
import tempfile
from pathlib import Path

import pytest

from safesignal.core.config import DEFAULT_CONFIG
from safesignal.core.storage import KeyValueStore
from safesignal.models.alert import Coordinate
from safesignal.services.signal.audio import AudioContext
from tests.mocks.signal_mocks import (
    ManualScheduler, MockLocationProvider, RecordingAudioOutput
)


@pytest.fixture
def temp_dir():
    """Create a temporary directory for test files."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def test_config():
    """Provide test configuration."""
    config = copy.deepcopy(DEFAULT_CONFIG)
    config['storage']['path'] = None
    config['logging'] = {
        "level": "DEBUG",
        "file": None,
        "console": False
    }
    return config


@pytest.fixture
def scheduler():
    """Manually advanced scheduler."""
    return ManualScheduler()


@pytest.fixture
def audio_context():
    """Audio context backed by a recording output."""
    RecordingAudioOutput.instances.clear()
    context = AudioContext(output_factory=RecordingAudioOutput)
    yield context
    context.close()


@pytest.fixture
def memory_store():
    """In-memory key-value store."""
    return KeyValueStore()


@pytest.fixture
def file_store(temp_dir):
    """JSON-file backed key-value store."""
    return KeyValueStore(str(temp_dir / "store.json"))


@pytest.fixture
def sample_coordinate():
    return Coordinate(12.34567, -1.23456, timestamp=100.0)


@pytest.fixture
def location_provider(sample_coordinate):
    return MockLocationProvider(fix=sample_coordinate)
