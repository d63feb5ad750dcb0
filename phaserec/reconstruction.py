"""
Phase-retrieval reconstruction of two-phase media from S2.

Given the unnormalized two-point correlation function of a binary field in
the frequency domain (s2ft), iterate:

    guess --rfftn--> replace |FT| with sqrt(s2ft) --> low-pass filter
          --irfftn--> threshold at target porosity --> new guess

until the normalized S2 residual stops improving.

Conventions:
    True  = solid / phase of interest
    False = pore (void)
    porosity = fraction of False cells

Frequency-domain arrays follow the scipy half-spectrum layout: the LAST
axis is halved to size[-1] // 2 + 1.

References:
    A. Cherkasov, A. Ananev, Adaptive phase-retrieval stochastic
    reconstruction with correlation functions: Three-dimensional images
    from two-dimensional cuts, Phys. Rev. E, 104, 3, 2021
"""

from __future__ import annotations

import itertools
import logging
import math
from typing import Callable, Optional, Sequence, Tuple, Union

import numpy as np
from scipy.fft import irfftn, rfftn

logger = logging.getLogger(__name__)

SeedLike = Union[int, np.random.Generator, None]
CostCallback = Callable[[int, float], None]


class ReconstructionError(ValueError):
    """Target correlation function does not describe a two-phase medium."""


# ---------------------------------------------------------------------------
# Building blocks
# ---------------------------------------------------------------------------


def threshold(field: np.ndarray, porosity: float) -> np.ndarray:
    """
    Convert a grayscale field to binary, preserving porosity.

    Cells strictly above the `porosity`-quantile become True, so roughly
    a (1 - porosity) fraction of the result is True.
    """
    cutoff = np.quantile(field.ravel(), porosity)
    return field > cutoff


def initial_guess(size: Tuple[int, ...], porosity: float, rng: np.random.Generator) -> np.ndarray:
    """White-noise binary field with the requested porosity."""
    return threshold(rng.random(size), porosity)


def two_point(field: np.ndarray) -> np.ndarray:
    """
    Unnormalized two-point correlation function of a binary field.

    The result is |rfftn(field)|^2 (power spectrum), which is the
    frequency-domain form of the autocorrelation. It can be passed
    directly to `phaserec`.
    """
    return np.abs(rfftn(field.astype(np.float64))) ** 2


def spatial_two_point(s2ft: np.ndarray, size: Sequence[int]) -> np.ndarray:
    """
    Normalized S2 map in real space.

    Entry [0, ..., 0] is the volume fraction of True cells; entry at
    offset r is the probability that two cells r apart are both True
    (periodic boundaries).
    """
    size = tuple(size)
    return irfftn(s2ft, s=size) / math.prod(size)


def porosity(s2ft: np.ndarray, size: Sequence[int]) -> float:
    """Porosity (fraction of False cells) implied by a correlation function."""
    s2 = spatial_two_point(s2ft, size)
    return float(1.0 - s2.flat[0])


def nan_to_zero(array: np.ndarray) -> np.ndarray:
    """Replace NaN entries with 0, leaving everything else untouched."""
    return np.where(np.isnan(array), 0, array)


def replace_abs(field: np.ndarray, s2ft: np.ndarray) -> np.ndarray:
    """
    Replace |FT(field)| with sqrt(s2ft), keeping the phase of FT(field).

    Bins where FT(field) vanishes have no phase; they are set to 0.
    """
    ft = rfftn(field.astype(np.float64))
    with np.errstate(divide="ignore", invalid="ignore"):
        repft = ft * np.sqrt(s2ft) / np.abs(ft)
    return nan_to_zero(repft)


def make_filter(size: Sequence[int], sigma: float) -> np.ndarray:
    """
    Gaussian low-pass filter in the frequency domain.

    The spatial kernel exp(-|k|^2 / 2 sigma^2) is sampled over offsets
    k in [-w, w]^N, w = (4 ceil(sigma) + 1) // 2, and wrapped around
    the periodic box so that its center sits at index 0 along every axis.
    Offsets that wrap onto the same cell (window wider than the box)
    accumulate.

    Args:
        size: Spatial shape of the field being filtered
        sigma: Standard deviation of the kernel in voxels

    Returns:
        Real, non-negative array in half-spectrum layout whose
        zero-frequency entry is 1.
    """
    if sigma <= 0:
        raise ValueError(f"sigma must be positive, got {sigma}")

    size = tuple(size)
    kernel = np.zeros(size, dtype=np.float64)

    width = 4 * math.ceil(sigma) + 1
    w = width // 2

    for offset in itertools.product(range(-w, w + 1), repeat=len(size)):
        idx = tuple(k % s for k, s in zip(offset, size))
        kernel[idx] += math.exp(-sum(k * k for k in offset) / (2.0 * sigma**2))

    kernel /= kernel.sum()

    # Kernel is symmetric under k -> -k, so its transform is real.
    # Truncating the Gaussian can leave tiny negative ripples.
    return np.maximum(rfftn(kernel).real, 0.0)


def _cost(s2ft: np.ndarray, recon: np.ndarray) -> float:
    """L2 norm of the S2 residual, scaled by the number of bins."""
    return float(np.linalg.norm(((s2ft - two_point(recon)) / s2ft.size).ravel()))


# ---------------------------------------------------------------------------
# Reconstruction loop
# ---------------------------------------------------------------------------


def phaserec(
    s2ft: np.ndarray,
    size: Optional[Sequence[int]] = None,
    *,
    radius: float = 0.6,
    maxsteps: int = 300,
    epsilon: float = 1e-5,
    noise: Optional[np.ndarray] = None,
    seed: SeedLike = None,
    callback: Optional[CostCallback] = None,
) -> Tuple[np.ndarray, float]:
    """
    Reconstruct a binary field from its two-point correlation function.

    Args:
        s2ft: Unnormalized two-point correlation in the frequency domain
              (see `two_point`). A boolean array is accepted too when
              `size` is omitted; it is then used as the reference field.
        size: Spatial shape of the field to reconstruct
        radius: Standard deviation of the low-pass filter (voxels)
        maxsteps: Maximal number of iterations
        epsilon: Minimal cost improvement per iteration. Smaller values
                 usually give better results; the default suits most cases.
        noise: Optional boolean initial approximation of shape `size`
        seed: Seed or Generator for the random initial guess
        callback: Called as callback(step, cost) after every iteration

    Returns:
        (field, cost): reconstructed boolean field and its cost, i.e. the
        S2 residual relative to that of the initial guess.

    Raises:
        ReconstructionError: If s2ft implies a porosity outside (0, 1)
        ValueError: If options or shapes are inconsistent
    """
    if size is None:
        if s2ft.dtype != np.bool_:
            raise ValueError("size is required when s2ft is a correlation function")
        return phaserec_field(
            s2ft,
            radius=radius,
            maxsteps=maxsteps,
            epsilon=epsilon,
            noise=noise,
            seed=seed,
            callback=callback,
        )

    size = tuple(int(s) for s in size)
    _validate_options(s2ft, size, radius, maxsteps, epsilon, noise)

    p = porosity(s2ft, size)
    if not (0.0 < p < 1.0):
        raise ReconstructionError(
            f"Correlation function implies porosity {p}, expected a value in (0, 1)"
        )

    if noise is None:
        recon = initial_guess(size, p, np.random.default_rng(seed))
    else:
        recon = np.asarray(noise, dtype=bool).copy()

    lowpass = make_filter(size, radius)
    initnorm = _cost(s2ft, recon)

    if initnorm == 0.0:
        logger.info("Initial guess already matches the target correlation")
        return recon, 0.0

    oldn = 1.0
    steps = 0

    for steps in range(1, maxsteps + 1):
        # Restore S2 magnitude, keep phase
        gray = replace_abs(recon, s2ft)
        gray = lowpass * gray
        # Back to a two-phase image
        candidate = threshold(irfftn(gray, s=size), p)

        n = _cost(s2ft, candidate) / initnorm

        if steps % 10 == 1:
            logger.info(f"Cost = {n}")

        if callback is not None:
            callback(steps, n)

        if n > oldn:
            break

        recon = candidate
        improvement = oldn - n
        oldn = n

        if improvement < epsilon:
            break

    logger.info(f"Reconstruction finished after {steps} steps, cost = {oldn}")
    return recon, oldn


def phaserec_field(
    field: np.ndarray,
    *,
    radius: float = 0.6,
    maxsteps: int = 300,
    epsilon: float = 1e-5,
    noise: Optional[np.ndarray] = None,
    seed: SeedLike = None,
    callback: Optional[CostCallback] = None,
) -> Tuple[np.ndarray, float]:
    """
    Reconstruct a binary `field` from its own correlation function.

    Equivalent to `phaserec(two_point(field), field.shape, ...)`.
    """
    field = np.asarray(field, dtype=bool)
    return phaserec(
        two_point(field),
        field.shape,
        radius=radius,
        maxsteps=maxsteps,
        epsilon=epsilon,
        noise=noise,
        seed=seed,
        callback=callback,
    )


def _validate_options(
    s2ft: np.ndarray,
    size: Tuple[int, ...],
    radius: float,
    maxsteps: int,
    epsilon: float,
    noise: Optional[np.ndarray],
) -> None:
    if any(s <= 0 for s in size):
        raise ValueError(f"size must contain positive integers, got {size}")

    expected = size[:-1] + (size[-1] // 2 + 1,)
    if s2ft.shape != expected:
        raise ValueError(
            f"s2ft has shape {s2ft.shape}, expected {expected} for size {size}"
        )

    if radius <= 0:
        raise ValueError(f"radius must be positive, got {radius}")

    if maxsteps < 0:
        raise ValueError(f"maxsteps must be non-negative, got {maxsteps}")

    if epsilon < 0:
        raise ValueError(f"epsilon must be non-negative, got {epsilon}")

    if noise is not None and tuple(np.shape(noise)) != size:
        raise ValueError(
            f"noise has shape {tuple(np.shape(noise))}, expected {size}"
        )
