"""
Batch reconstruction pipeline.

Builds the target correlation once from the configured reference, then
runs num_samples independent reconstructions (seed + i), saving TIFF
stacks and a results table.
"""

import logging
import sys
from pathlib import Path
from typing import Tuple

import numpy as np
import pandas as pd
from tqdm import tqdm

from .io import load_binary_volume, load_correlation, save_binary_volume, save_correlation
from .reconstruction import ReconstructionError, phaserec, porosity, two_point
from .schema import ReferenceConfig, ReferenceSource, RunConfig
from .utils import measured_porosity, reference_structure

logger = logging.getLogger(__name__)


def setup_logging(level: int = logging.INFO) -> logging.Logger:
    root = logging.getLogger()
    root.setLevel(level)
    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(level)
    handler.setFormatter(
        logging.Formatter("%(asctime)s | %(levelname)s | %(message)s")
    )
    root.handlers.clear()
    root.addHandler(handler)
    return root


def build_target(reference: ReferenceConfig, seed: int) -> Tuple[np.ndarray, Tuple[int, ...]]:
    """
    Target correlation function and field shape for a reference config.

    Returns:
        (s2ft, size)
    """
    if reference.source == ReferenceSource.IMAGE:
        field = load_binary_volume(reference.path)
        logger.info(f"Loaded reference image {reference.path} with shape {field.shape}")
        return two_point(field), field.shape

    if reference.source == ReferenceSource.CORRELATION:
        size = tuple(reference.shape)
        s2ft = load_correlation(reference.path)
        logger.info(f"Loaded correlation function {reference.path} for shape {size}")
        return s2ft, size

    field = reference_structure(
        reference.shape,
        reference.target_porosity,
        psd_power=reference.psd_power,
        anisotropy=reference.anisotropy,
        seed=seed,
    )
    logger.info(
        f"Generated GRF reference with shape {field.shape}, "
        f"porosity {measured_porosity(field):.3f}"
    )
    return two_point(field), field.shape


def reconstruct_sample(
    sample_id: int,
    s2ft: np.ndarray,
    size: Tuple[int, ...],
    config: RunConfig,
) -> dict:
    """Run one reconstruction and describe it as a results row."""
    seed = config.seed + sample_id
    costs = []
    params = config.reconstruction

    recon, cost = phaserec(
        s2ft,
        size,
        radius=params.radius,
        maxsteps=params.maxsteps,
        epsilon=params.epsilon,
        seed=seed,
        callback=lambda step, n: costs.append(n),
    )

    row = {
        "id": sample_id,
        "seed_used": seed,
        "porosity_measured": measured_porosity(recon),
        "cost": cost,
        "steps": len(costs),
        "status": "success",
    }

    if config.output.save_images:
        filepath = config.image_dir / f"sample_{sample_id:04d}.tif"
        save_binary_volume(filepath, recon)
        row["tiff_path"] = str(filepath)

    return row


def run_pipeline(config: RunConfig) -> pd.DataFrame:
    """
    Reconstruct config.num_samples fields from one reference.

    Returns:
        DataFrame with one row per sample, also written to
        output_dir/final_results.csv
    """
    out_dir = Path(config.output.output_dir)
    out_dir.mkdir(parents=True, exist_ok=True)
    if config.output.save_images:
        config.image_dir.mkdir(parents=True, exist_ok=True)

    s2ft, size = build_target(config.reference, config.seed)
    target_porosity = porosity(s2ft, size)
    if not (0.0 < target_porosity < 1.0):
        raise ReconstructionError(
            f"Reference implies porosity {target_porosity}, expected a value in (0, 1)"
        )

    if config.output.save_correlation:
        save_correlation(out_dir / "target_s2ft.npy", s2ft)

    logger.info("--- Starting PhaseRec Reconstruction Pipeline ---")
    logger.info(f"Run ID: {config.run_id}")
    logger.info(f"Samples: {config.num_samples}")
    logger.info(f"Shape: {size}")
    logger.info(f"Target porosity: {target_porosity:.3f}")
    logger.info(f"Output: {out_dir}")

    results_list = []

    for i in tqdm(range(config.num_samples)):
        try:
            row = reconstruct_sample(i, s2ft, size, config)
        except Exception as e:
            logger.error(f"Error in sample {i}: {e}")
            row = {
                "id": i,
                "seed_used": config.seed + i,
                "status": "failed",
                "error_msg": str(e),
            }

        row["target_porosity"] = target_porosity
        results_list.append(row)

        if (i + 1) % max(1, config.num_samples // 10) == 0:
            df_partial = pd.DataFrame(results_list)
            df_partial.to_csv(out_dir / "results_partial.csv", index=False)

    df = pd.DataFrame(results_list)
    final_csv = out_dir / "final_results.csv"
    df.to_csv(final_csv, index=False)

    logger.info(f"Pipeline complete. Results saved to {final_csv}. {len(df)} records saved.")
    return df
