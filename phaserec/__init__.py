"""
PhaseRec: stochastic reconstruction of two-phase media from two-point
correlation functions by iterative phase retrieval.
"""

from .reconstruction import (
    ReconstructionError,
    threshold,
    two_point,
    spatial_two_point,
    porosity,
    nan_to_zero,
    replace_abs,
    make_filter,
    phaserec,
    phaserec_field,
)
from .schema import RunConfig, load_run_config
from .pipeline import run_pipeline

__all__ = [
    # Core algorithm
    "ReconstructionError",
    "threshold",
    "two_point",
    "spatial_two_point",
    "porosity",
    "nan_to_zero",
    "replace_abs",
    "make_filter",
    "phaserec",
    "phaserec_field",
    # Config / batch
    "RunConfig",
    "load_run_config",
    "run_pipeline",
]
