"""Pytest fixtures and test utilities for PhaseRec."""

import numpy as np
import pytest

from phaserec.utils import reference_structure


@pytest.fixture
def rng():
    """Seeded generator for reproducible test inputs."""
    return np.random.default_rng(1234)


@pytest.fixture
def checkerboard():
    """16x16 checkerboard, porosity 0.5."""
    return make_checkerboard((16, 16))


def make_checkerboard(shape):
    """Boolean checkerboard pattern of the given shape."""
    idx = np.indices(shape).sum(axis=0)
    return idx % 2 == 1


@pytest.fixture
def random_binary():
    """Factory for white-noise binary fields with a given solid fraction."""
    return make_random_binary


def make_random_binary(shape, solid_fraction: float = 0.3, seed: int = 0):
    """True with probability solid_fraction, independently per cell."""
    return np.random.default_rng(seed).random(shape) < solid_fraction


@pytest.fixture
def grf_reference():
    """Smooth 32x32 two-phase reference with porosity 0.4."""
    return reference_structure((32, 32), 0.4, psd_power=2.0, seed=7)
