"""Integration tests for the end-to-end bar stimulus pipeline."""

import pytest
import torch

from retinoforge import (
    BarStimulusPipeline,
    ConfigurationError,
    ExperimentParams,
)


class TestSmallPipeline:
    """Run the small experiment through every stage."""

    def test_artifacts_consistent(self, small_stimulus):
        resolved = small_stimulus.resolved
        assert small_stimulus.images.shape[0] == resolved.library_size
        assert len(small_stimulus.sequence) == resolved.sequence_length
        assert len(small_stimulus.timing) == len(small_stimulus.sequence)
        assert small_stimulus.blank_index == resolved.library_size - 1

    def test_sequence_indices_valid(self, small_stimulus):
        seq = small_stimulus.sequence
        assert seq.min().item() >= 0
        assert seq.max().item() < small_stimulus.images.shape[0]

    def test_timing_covers_scan(self, small_stimulus):
        assert small_stimulus.total_duration == pytest.approx(100.0)
        assert small_stimulus.timing[0].item() == 0.0
        assert torch.all(small_stimulus.timing[1:] > small_stimulus.timing[:-1])

    def test_full_images(self, small_stimulus):
        full = small_stimulus.full_images()
        assert full.shape == (400, 40, 40)
        assert torch.equal(full[0], small_stimulus.images[small_stimulus.blank_index])
        assert torch.equal(full[8], small_stimulus.images[16])

    def test_summary(self, small_stimulus):
        summary = small_stimulus.summary()
        assert summary["num_images"] == 65
        assert summary["sequence_length"] == 400
        assert summary["num_cycles"] == 2

    def test_from_yaml(self, small_yaml):
        pipeline = BarStimulusPipeline.from_yaml(small_yaml)
        assert pipeline.resolved.steps_per_sweep == 4
        assert pipeline.resolved.params.sampling_interval == 1

    def test_verbose_banners(self, small_config, capsys):
        BarStimulusPipeline.from_config(small_config).run(verbose=True)
        out = capsys.readouterr().out
        assert "Creating images..." in out
        assert "done." in out


class TestBlankOnlyScan:
    """A scan shorter than one cycle plays the blank frame throughout."""

    def test_sequence_and_timing(self, small_config):
        stimulus = BarStimulusPipeline.from_config({**small_config, "scan_duration": 30}).run()
        assert stimulus.resolved.num_cycles == 0
        assert len(stimulus.sequence) == 120
        assert torch.all(stimulus.sequence == stimulus.blank_index)
        assert len(stimulus.timing) == 120
        assert stimulus.total_duration == pytest.approx(30.0)


class TestDefaultScenario:
    """Default timing on a downscaled screen: 20 steps/sweep, 8 motion steps."""

    @pytest.fixture(scope="class")
    def stimulus(self):
        return BarStimulusPipeline.from_config({"resolution": [192, 108]}).run()

    def test_library_size_matches_formula(self, stimulus):
        resolved = stimulus.resolved
        assert resolved.steps_per_sweep == 20
        frames_per_half_cycle = resolved.motion_steps * resolved.steps_per_sweep // 2
        assert stimulus.images.shape == (frames_per_half_cycle * 8 + 1, 108, 108)

    def test_sequence_and_timing(self, stimulus):
        assert len(stimulus.sequence) == 3360
        assert stimulus.total_duration == pytest.approx(336.0)
        assert stimulus.timing[1].item() == pytest.approx(0.1)

    def test_aperture_invariant(self, stimulus):
        from retinoforge.stimuli.checkerboard import coordinate_grid

        xx, yy = coordinate_grid(stimulus.resolved.outer_radius, 108)
        outside = torch.sqrt(xx ** 2 + yy ** 2) >= stimulus.resolved.outer_radius
        assert torch.all(stimulus.images[:, outside] == 128)


class TestPipelineErrors:

    def test_invalid_params_fail_before_rendering(self):
        with pytest.raises(ConfigurationError) as excinfo:
            BarStimulusPipeline(ExperimentParams(sampling_interval=0))
        assert excinfo.value.field == "sampling_interval"

    def test_missing_yaml(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            BarStimulusPipeline.from_yaml(tmp_path / "nope.yml")
