"""Tests for the batch reconstruction pipeline."""

import numpy as np
import pytest

from phaserec.io import load_binary_volume, save_binary_volume, save_correlation
from phaserec.pipeline import build_target, run_pipeline
from phaserec.reconstruction import ReconstructionError, porosity, two_point
from phaserec.schema import RunConfig


def make_config(tmp_path, reference, **overrides):
    data = {
        "seed": 3,
        "num_samples": 2,
        "reference": reference,
        "reconstruction": {"maxsteps": 20},
        "output": {"output_dir": str(tmp_path / "out")},
    }
    data.update(overrides)
    return RunConfig.model_validate(data)


class TestBuildTarget:
    """Tests for reference resolution."""

    def test_grf(self, tmp_path):
        config = make_config(
            tmp_path, {"source": "grf", "shape": [16, 12], "target_porosity": 0.3}
        )
        s2ft, size = build_target(config.reference, config.seed)
        assert size == (16, 12)
        assert s2ft.shape == (16, 7)
        assert porosity(s2ft, size) == pytest.approx(0.3, abs=1.0 / 192)

    def test_image(self, tmp_path, grf_reference):
        path = save_binary_volume(tmp_path / "ref.tif", grf_reference)
        config = make_config(tmp_path, {"source": "image", "path": str(path)})
        s2ft, size = build_target(config.reference, config.seed)
        assert size == grf_reference.shape
        np.testing.assert_allclose(s2ft, two_point(grf_reference))

    def test_correlation(self, tmp_path, grf_reference):
        path = save_correlation(tmp_path / "s2ft.npy", two_point(grf_reference))
        config = make_config(
            tmp_path,
            {"source": "correlation", "path": str(path), "shape": [32, 32]},
        )
        s2ft, size = build_target(config.reference, config.seed)
        assert size == (32, 32)
        np.testing.assert_array_equal(s2ft, two_point(grf_reference))


class TestRunPipeline:
    """End-to-end batch runs."""

    def test_grf_run(self, tmp_path):
        config = make_config(
            tmp_path,
            {"source": "grf", "shape": [16, 16], "target_porosity": 0.4},
            output={"output_dir": str(tmp_path / "out"), "save_correlation": True},
        )
        df = run_pipeline(config)

        assert len(df) == 2
        assert list(df["status"]) == ["success", "success"]
        assert list(df["seed_used"]) == [3, 4]
        assert (df["cost"] >= 0.0).all()
        assert (df["steps"] <= 20).all()
        np.testing.assert_allclose(
            df["porosity_measured"], df["target_porosity"], atol=2.0 / 256
        )

        out = tmp_path / "out"
        assert (out / "final_results.csv").exists()
        assert (out / "results_partial.csv").exists()
        assert (out / "target_s2ft.npy").exists()
        for tiff_path in df["tiff_path"]:
            assert load_binary_volume(tiff_path).shape == (16, 16)

    def test_images_disabled(self, tmp_path):
        config = make_config(
            tmp_path,
            {"source": "grf", "shape": [8, 8], "target_porosity": 0.5},
            num_samples=1,
            output={"output_dir": str(tmp_path / "out"), "save_images": False},
        )
        df = run_pipeline(config)
        assert "tiff_path" not in df.columns
        assert not (tmp_path / "out" / "tiff_stacks").exists()

    def test_failed_sample_recorded(self, tmp_path, grf_reference):
        """Shape mismatch fails each sample without aborting the batch."""
        path = save_correlation(tmp_path / "s2ft.npy", two_point(grf_reference))
        config = make_config(
            tmp_path,
            {"source": "correlation", "path": str(path), "shape": [32, 30]},
        )
        df = run_pipeline(config)
        assert list(df["status"]) == ["failed", "failed"]
        assert df["error_msg"].str.contains("s2ft").all()

    def test_degenerate_reference_rejected(self, tmp_path):
        path = save_binary_volume(tmp_path / "empty.tif", np.zeros((8, 8), dtype=bool))
        config = make_config(tmp_path, {"source": "image", "path": str(path)})
        with pytest.raises(ReconstructionError):
            run_pipeline(config)
