"""
Test configuration and fixtures for RetinoForge.
"""
import os
import sys
from pathlib import Path

import pytest
import torch

ROOT = Path(__file__).resolve().parents[1]
FIXTURES = Path(__file__).resolve().parent / "fixtures"
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

os.environ.setdefault("OMP_NUM_THREADS", "1")
os.environ.setdefault("MKL_NUM_THREADS", "1")

try:
    torch.set_num_threads(1)
except RuntimeError:  # pragma: no cover - threads already configured
    pass

from retinoforge.config.schema import ExperimentParams, resolve_params  # noqa: E402
from retinoforge.core.pipeline import BarStimulusPipeline  # noqa: E402


SMALL_CONFIG = {
    "resolution": [80, 40],
    "sweep_duration": 4,
    "sampling_interval": 1,
    "scan_duration": 100,
    "motion_steps": 4,
}


@pytest.fixture
def small_config():
    """Small experiment: 40px frames, 4 steps/sweep, 4 motion steps, 2 cycles."""
    return dict(SMALL_CONFIG)


@pytest.fixture
def small_params(small_config):
    return ExperimentParams.from_dict(small_config)


@pytest.fixture
def small_resolved(small_params):
    return resolve_params(small_params)


@pytest.fixture(scope="session")
def small_stimulus():
    """Rendered small stimulus, shared across tests."""
    return BarStimulusPipeline.from_config(dict(SMALL_CONFIG)).run()


@pytest.fixture
def small_yaml():
    """Path to the small experiment YAML file (same values as SMALL_CONFIG)."""
    return FIXTURES / "small.yml"
