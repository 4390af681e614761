"""
Pytest fixtures for kernel_switching tests.
"""
import pytest
import sys
from pathlib import Path
import tempfile
import shutil

import numpy as np

# Add project root to path
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from kernel_switching.convolution import OverlapSaveConvolver
from kernel_switching.predictor import KernelSwitchPopPredictor


@pytest.fixture
def sample_rate():
    """Standard sample rate for tests."""
    return 44100


@pytest.fixture
def rng():
    """Seeded random generator so noise-based tests are repeatable."""
    return np.random.default_rng(42)


@pytest.fixture
def convolver():
    """Convolution engine with default settings."""
    return OverlapSaveConvolver()


@pytest.fixture
def predictor(sample_rate):
    """Pop predictor at the standard sample rate."""
    return KernelSwitchPopPredictor(sample_rate=sample_rate)


@pytest.fixture
def temp_dir():
    """Create temporary directory for test outputs."""
    tmp = tempfile.mkdtemp()
    yield tmp
    shutil.rmtree(tmp, ignore_errors=True)


@pytest.fixture
def temp_yaml_file(temp_dir):
    """Create temporary YAML file path for config tests."""
    return Path(temp_dir) / "test_settings.yaml"


@pytest.fixture
def project_config_dir():
    """Get the configs directory."""
    return PROJECT_ROOT / 'configs'
