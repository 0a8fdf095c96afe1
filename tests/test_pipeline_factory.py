"""
Unit tests for metdownscale/pipeline_factory.py
"""

import pytest

from metdownscale.core.config import RunConfig
from metdownscale.pipeline_factory import create_pipeline, get_processing_steps
from metdownscale.processors import Debias, Export, OffsetCorrect
from metdownscale.processors.abc_data_processor import _PROCESSOR_REGISTRY


class TestGetProcessingSteps:
    """Tests for the mode dependent step selection."""

    def test_out_of_box(self):
        assert get_processing_steps(RunConfig()) == [
            "boundary_fill",
            "pass_through",
            "solar_disaggregate",
            "hourly_holds",
            "assemble",
        ]

    def test_downscaled(self):
        assert get_processing_steps(RunConfig(downscale=True)) == [
            "boundary_fill",
            "aggregate_daily",
            "debias",
            "redistribute",
            "spline_interpolate",
            "offset_correct",
            "solar_disaggregate",
            "hourly_holds",
            "assemble",
        ]

    def test_noise_uses_the_downscaled_steps(self):
        config = RunConfig(downscale=True, add_noise=True, ensemble_size=5)
        assert get_processing_steps(config) == get_processing_steps(
            RunConfig(downscale=True)
        )

    def test_export_only_when_writing(self, tmp_path):
        config = RunConfig(write_files=True, out_directory=str(tmp_path))
        steps = get_processing_steps(config)
        assert steps[-1] == "export"
        assert "export" not in get_processing_steps(RunConfig())

    def test_unregistered_step(self, monkeypatch):
        registry = dict(_PROCESSOR_REGISTRY)
        del registry["debias"]
        monkeypatch.setattr(
            "metdownscale.pipeline_factory._PROCESSOR_REGISTRY", registry
        )
        with pytest.raises(KeyError, match="debias"):
            get_processing_steps(RunConfig(downscale=True))


class TestCreatePipeline:
    """Tests for create_pipeline."""

    def test_fixed_inputs_are_handed_over(self, small_coefficients, observations):
        pipeline = create_pipeline(
            RunConfig(downscale=True),
            coefficients=small_coefficients,
            observations=observations,
        )
        steps = {type(step): step for step in pipeline.processing_pipeline}
        assert steps[Debias].coefficients is small_coefficients
        assert steps[OffsetCorrect].observations is observations

    def test_export_step(self, tmp_path):
        pipeline = create_pipeline(
            RunConfig(write_files=True, out_directory=str(tmp_path))
        )
        assert isinstance(pipeline.processing_pipeline[-1], Export)
        assert pipeline.step_names[-1] == "export"
