from .config import (
    ReferenceSource,
    ReferenceConfig,
    ReconstructionConfig,
    OutputConfig,
    RunConfig,
    load_run_config,
)

__all__ = [
    # Enums
    "ReferenceSource",
    # Sub-models
    "ReferenceConfig",
    "ReconstructionConfig",
    "OutputConfig",
    # Root
    "RunConfig",
    "load_run_config",
]
