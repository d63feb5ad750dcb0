"""
Utility functions for building reference microstructures.
"""

from typing import Optional, Sequence

import numpy as np
from scipy.fft import fftfreq, ifftn

from .reconstruction import threshold


def gaussian_random_field(
    shape: Sequence[int],
    psd_power: float = 1.5,
    anisotropy: Optional[Sequence[float]] = None,
    seed: int = 42,
) -> np.ndarray:
    """
    Generate an N-dimensional Gaussian Random Field using FFT.

    Args:
        shape: Shape of output, any number of dimensions
        psd_power: Power spectrum exponent (higher = smoother)
        anisotropy: Frequency scaling per axis, defaults to isotropic
        seed: Random seed

    Returns:
        Normalized field with zero mean and unit variance
    """
    shape = tuple(shape)
    if anisotropy is None:
        anisotropy = (1.0,) * len(shape)
    if len(anisotropy) != len(shape):
        raise ValueError(
            f"anisotropy has {len(anisotropy)} entries, shape has {len(shape)} axes"
        )

    rng = np.random.default_rng(seed)

    # Squared frequency magnitude on the full grid
    k2 = np.zeros(shape)
    for axis, (n, scale) in enumerate(zip(shape, anisotropy)):
        k = fftfreq(n) * scale
        view = [1] * len(shape)
        view[axis] = n
        k2 = k2 + k.reshape(view) ** 2
    k2.flat[0] = 1.0  # Avoid singularity

    amplitude = 1.0 / (k2 ** (psd_power / 2.0))
    amplitude.flat[0] = 0.0  # No mean component
    phase = rng.random(shape) * 2.0 * np.pi
    F = (np.cos(phase) + 1j * np.sin(phase)) * amplitude
    field = ifftn(F).real

    return (field - field.mean()) / (field.std() + 1e-12)


def reference_structure(
    shape: Sequence[int],
    target_porosity: float,
    psd_power: float = 1.5,
    anisotropy: Optional[Sequence[float]] = None,
    seed: int = 42,
) -> np.ndarray:
    """
    Binary GRF microstructure with the requested porosity.

    Returns:
        Boolean array where False = pore, True = solid
    """
    field = gaussian_random_field(shape, psd_power, anisotropy, seed)
    return threshold(field, target_porosity)


def measured_porosity(field: np.ndarray) -> float:
    """Fraction of False (pore) cells."""
    return float(1.0 - np.count_nonzero(field) / field.size)
