"""
Loading and saving binary volumes and correlation functions.

Volumes:      .tif / .tiff (tifffile, uint8 0/255) or .npy
Correlations: .npy (frequency-domain s2ft as produced by two_point)
"""

from pathlib import Path
from typing import Union

import numpy as np
import tifffile

PathLike = Union[str, Path]

_TIFF_SUFFIXES = (".tif", ".tiff")


def load_binary_volume(path: PathLike) -> np.ndarray:
    """
    Read a two-phase image. Any non-zero voxel is True.

    Raises:
        FileNotFoundError: If path does not exist
        ValueError: If the file extension is not supported
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Volume file not found: {path}")

    suffix = path.suffix.lower()
    if suffix in _TIFF_SUFFIXES:
        data = tifffile.imread(path)
    elif suffix == ".npy":
        data = np.load(path)
    else:
        raise ValueError(f"Unsupported volume format '{suffix}' for {path}")

    return np.asarray(data) > 0


def save_binary_volume(path: PathLike, field: np.ndarray) -> Path:
    """Write a binary field; TIFF stacks are stored as 0/255 uint8."""
    path = Path(path)
    suffix = path.suffix.lower()
    volume = np.asarray(field, dtype=bool).astype(np.uint8)

    if suffix in _TIFF_SUFFIXES:
        tifffile.imwrite(path, volume * 255)
    elif suffix == ".npy":
        np.save(path, volume.astype(bool))
    else:
        raise ValueError(f"Unsupported volume format '{suffix}' for {path}")

    return path


def load_correlation(path: PathLike) -> np.ndarray:
    """Read a frequency-domain two-point correlation function."""
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Correlation file not found: {path}")
    if path.suffix.lower() != ".npy":
        raise ValueError(f"Correlation functions are stored as .npy, got {path}")
    return np.load(path).astype(np.float64)


def save_correlation(path: PathLike, s2ft: np.ndarray) -> Path:
    path = Path(path)
    if path.suffix.lower() != ".npy":
        raise ValueError(f"Correlation functions are stored as .npy, got {path}")
    np.save(path, np.asarray(s2ft, dtype=np.float64))
    return path
