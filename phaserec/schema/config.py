"""
Pydantic schema for reconstruction run configs (config.yaml).
Validates ranges per field and cross-field rules per reference source.
"""

from __future__ import annotations
from enum import Enum
from typing import List, Optional
from pydantic import BaseModel, Field, field_validator, model_validator
import yaml
from pathlib import Path


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------


class ReferenceSource(str, Enum):
    IMAGE = "image"  # binary TIFF / .npy volume
    CORRELATION = "correlation"  # precomputed s2ft (.npy)
    GRF = "grf"  # synthetic Gaussian random field


# ---------------------------------------------------------------------------
# Sub-models
# ---------------------------------------------------------------------------


class ReferenceConfig(BaseModel):
    source: ReferenceSource
    path: Optional[Path] = Field(
        None, description="Input file for image / correlation sources"
    )
    shape: Optional[List[int]] = Field(
        None, description="Field shape; required for correlation and grf"
    )

    # --- GRF only ---
    target_porosity: Optional[float] = Field(None, gt=0.0, lt=1.0)
    psd_power: float = Field(1.5, gt=0.0, description="Higher = smoother field")
    anisotropy: Optional[List[float]] = Field(
        None, description="Frequency scaling per axis, isotropic when unset"
    )

    @field_validator("shape")
    @classmethod
    def validate_shape(cls, v: Optional[List[int]]) -> Optional[List[int]]:
        if v is None:
            return v
        if not (1 <= len(v) <= 3):
            raise ValueError(f"shape must have 1 to 3 axes, got {v}")
        for i, dim in enumerate(v):
            if dim <= 0:
                raise ValueError(f"shape[{i}] must be positive integer, got {dim}")
        return v

    @field_validator("anisotropy")
    @classmethod
    def validate_anisotropy(cls, v: Optional[List[float]]) -> Optional[List[float]]:
        if v is not None and any(a <= 0.0 for a in v):
            raise ValueError(f"anisotropy factors must be positive, got {v}")
        return v

    @model_validator(mode="after")
    def validate_source_fields(self) -> ReferenceConfig:
        if self.source in (ReferenceSource.IMAGE, ReferenceSource.CORRELATION):
            if self.path is None:
                raise ValueError(f"reference.path is required for source '{self.source.value}'")

        if self.source in (ReferenceSource.CORRELATION, ReferenceSource.GRF):
            if self.shape is None:
                raise ValueError(f"reference.shape is required for source '{self.source.value}'")

        if self.source == ReferenceSource.GRF:
            if self.target_porosity is None:
                raise ValueError("reference.target_porosity is required for source 'grf'")
            if self.anisotropy is not None and len(self.anisotropy) != len(self.shape):
                raise ValueError(
                    f"anisotropy has {len(self.anisotropy)} entries but shape has "
                    f"{len(self.shape)} axes"
                )
        return self


class ReconstructionConfig(BaseModel):
    radius: float = Field(0.6, gt=0.0, description="Low-pass filter sigma in voxels")
    maxsteps: int = Field(300, ge=0)
    epsilon: float = Field(
        1e-5, ge=0.0, description="Minimal cost improvement per iteration"
    )


class OutputConfig(BaseModel):
    output_dir: Path = Path("output")
    save_images: bool = True
    save_correlation: bool = False


# ---------------------------------------------------------------------------
# Root config model
# ---------------------------------------------------------------------------


class RunConfig(BaseModel):

    # --- Metadata ---
    run_id: int = Field(0, ge=0)
    seed: int = Field(..., ge=0)
    num_samples: int = Field(1, ge=1)

    reference: ReferenceConfig
    reconstruction: ReconstructionConfig = Field(default_factory=ReconstructionConfig)
    output: OutputConfig = Field(default_factory=OutputConfig)

    @property
    def image_dir(self) -> Path:
        """Where reconstructed TIFF stacks go."""
        return self.output.output_dir / "tiff_stacks"


# ---------------------------------------------------------------------------
# Loader
# ---------------------------------------------------------------------------


def load_run_config(path: str | Path) -> RunConfig:
    """Load and validate a run config YAML. Raises ValidationError on any issue."""
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Configuration file not found: {path}")
    raw = yaml.safe_load(path.read_text())
    return RunConfig.model_validate(raw or {})
