"""Integration tests for saving and loading generated stimuli."""

import pytest
import torch

from retinoforge.core.persistence import infer_format, load_stimulus, save_stimulus


def _assert_same(a, b):
    assert torch.equal(a.images, b.images)
    assert torch.equal(a.sequence, b.sequence)
    assert torch.equal(a.timing, b.timing)
    assert a.params == b.params
    assert a.blank_index == b.blank_index
    assert a.total_duration == pytest.approx(b.total_duration)


class TestPersistence:

    def test_infer_format(self):
        assert infer_format("bars.h5") == "hdf5"
        assert infer_format("bars.HDF5") == "hdf5"
        assert infer_format("bars.pt") == "pytorch"

    def test_pytorch_round_trip(self, small_stimulus, tmp_path):
        path = save_stimulus(small_stimulus, tmp_path / "out" / "bars.pt")
        assert path.exists()
        _assert_same(load_stimulus(path), small_stimulus)

    def test_hdf5_round_trip(self, small_stimulus, tmp_path):
        pytest.importorskip("h5py")
        path = save_stimulus(small_stimulus, tmp_path / "bars.h5")
        loaded = load_stimulus(path)
        _assert_same(loaded, small_stimulus)
        assert loaded.images.dtype == torch.uint8
        assert loaded.sequence.dtype == torch.int64

    def test_explicit_format_overrides_suffix(self, small_stimulus, tmp_path):
        pytest.importorskip("h5py")
        import h5py

        path = save_stimulus(small_stimulus, tmp_path / "bars.dat", save_format="hdf5")
        with h5py.File(path, "r") as f:
            assert f["stimulus/seq"].shape == (400,)

    def test_unknown_format(self, small_stimulus, tmp_path):
        with pytest.raises(ValueError, match="Unknown save_format"):
            save_stimulus(small_stimulus, tmp_path / "bars.mat", save_format="matlab")

    def test_load_missing(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_stimulus(tmp_path / "missing.pt")
