"""Unit tests for presentation sequence assembly."""

import pytest
import torch

from retinoforge.core.sequence import (
    CYCLE_TEMPLATE,
    BlankSegment,
    SequenceAssembler,
    SweepSegment,
    sweep_indices,
)


class TestCycleTemplate:
    """Tests for the declarative cycle template."""

    def test_segment_counts(self):
        sweeps = [s for s in CYCLE_TEMPLATE if isinstance(s, SweepSegment)]
        blanks = [s for s in CYCLE_TEMPLATE if isinstance(s, BlankSegment)]
        assert len(sweeps) == 8
        assert len(blanks) == 4

    def test_blank_placement(self):
        blank_positions = [
            i for i, s in enumerate(CYCLE_TEMPLATE) if isinstance(s, BlankSegment)
        ]
        assert blank_positions == [0, 3, 6, 9]

    def test_every_direction_once(self):
        """Test each block is played once forwards and once reversed."""
        pairs = {(s.block, s.reverse) for s in CYCLE_TEMPLATE if isinstance(s, SweepSegment)}
        assert pairs == {(b, r) for b in range(4) for r in (False, True)}

    def test_second_half_mirrors_first(self):
        first = [s for s in CYCLE_TEMPLATE[:6] if isinstance(s, SweepSegment)]
        second = [s for s in CYCLE_TEMPLATE[6:] if isinstance(s, SweepSegment)]
        assert [s.block for s in first] == [s.block for s in second]
        assert not any(s.reverse for s in first)
        assert all(s.reverse for s in second)


class TestSweepIndices:
    """Tests for sweep_indices function."""

    def test_forward_block(self):
        assert sweep_indices(2, 4).tolist() == [8, 9, 10, 11]

    def test_reverse_block(self):
        assert sweep_indices(1, 4, reverse=True).tolist() == [7, 6, 5, 4]

    def test_mirror_round_trip(self):
        forward = sweep_indices(3, 16)
        reversed_twice = torch.flip(sweep_indices(3, 16, reverse=True), dims=(0,))
        assert torch.equal(reversed_twice, forward)

    def test_negative_block(self):
        with pytest.raises(ValueError):
            sweep_indices(-1, 4)


class TestSequenceAssembler:
    """Tests for SequenceAssembler on the small experiment."""

    @pytest.fixture
    def assembler(self, small_resolved):
        return SequenceAssembler(small_resolved, blank_index=64)

    def test_cycle_length(self, assembler, small_resolved):
        cycle = assembler.cycle()
        assert len(cycle) == 8 * 16 + 4 * 8
        assert len(cycle) == small_resolved.cycle_length

    def test_cycle_layout(self, assembler):
        cycle = assembler.cycle()
        assert torch.all(cycle[:8] == 64)
        assert cycle[8:24].tolist() == list(range(16, 32))  # up-left
        assert cycle[24:40].tolist() == list(range(0, 16))  # left-right
        assert torch.all(cycle[40:48] == 64)
        assert cycle[48:64].tolist() == list(range(48, 64))  # up-right
        assert cycle[64:80].tolist() == list(range(32, 48))  # down
        assert torch.all(cycle[80:88] == 64)
        assert cycle[88:104].tolist() == list(range(31, 15, -1))  # down-right
        assert cycle[104:120].tolist() == list(range(15, -1, -1))  # right-left
        assert torch.all(cycle[120:128] == 64)
        assert cycle[128:144].tolist() == list(range(63, 47, -1))  # down-left
        assert cycle[144:160].tolist() == list(range(47, 31, -1))  # up

    def test_full_sequence(self, assembler, small_resolved):
        seq = assembler.assemble()
        assert seq.dtype == torch.int64
        assert len(seq) == 2 * 160 + 80
        assert len(seq) == small_resolved.sequence_length
        assert torch.equal(seq[:160], seq[160:320])
        assert torch.all(seq[320:] == 64)

    def test_indices_in_library(self, assembler, small_resolved):
        seq = assembler.assemble()
        assert seq.min().item() >= 0
        assert seq.max().item() < small_resolved.library_size

    def test_blank_count(self, assembler):
        seq = assembler.assemble()
        assert (seq == 64).sum().item() == 2 * 4 * 8 + 80

    def test_every_bar_frame_shown(self, assembler):
        seq = assembler.assemble()
        assert set(seq.tolist()) == set(range(65))

    def test_no_buffer_when_scan_fits_cycles(self, small_config):
        from retinoforge.config.schema import ExperimentParams, resolve_params

        resolved = resolve_params(ExperimentParams.from_dict({**small_config, "scan_duration": 80}))
        seq = SequenceAssembler(resolved, blank_index=64).assemble()
        assert resolved.buffer_length == 0
        assert len(seq) == 2 * 160

    def test_blank_only_when_scan_shorter_than_cycle(self, small_config):
        from retinoforge.config.schema import ExperimentParams, resolve_params

        resolved = resolve_params(ExperimentParams.from_dict({**small_config, "scan_duration": 30}))
        seq = SequenceAssembler(resolved, blank_index=64).assemble()
        assert resolved.num_cycles == 0
        assert seq.dtype == torch.int64
        assert len(seq) == 4 * 30
        assert torch.all(seq == 64)

    def test_custom_template(self, small_resolved):
        assembler = SequenceAssembler(
            small_resolved, blank_index=64, template=[SweepSegment(0), BlankSegment()]
        )
        cycle = assembler.cycle()
        assert cycle.tolist() == list(range(16)) + [64] * 8

    def test_unknown_segment(self, small_resolved):
        assembler = SequenceAssembler(small_resolved, blank_index=64, template=["blank"])
        with pytest.raises(TypeError):
            assembler.cycle()
