"""Tests for profiles, sequence weights and the hydrophobicity heuristic."""

from dataclasses import replace

import numpy as np
import pytest

from TKAlign.multialign.alignment import sequences_from_dict
from TKAlign.phylogene.tree_io import load_guide_tree
from TKAlign.seq_alignment.alphabet import Alpha, encode
from TKAlign.seq_alignment.profile import Profile, apply_hydrophobicity, build_profile
from TKAlign.seq_alignment.scoring import TermGaps
from TKAlign.seq_alignment.weights import (
    SeqWeight,
    clustalw_weights,
    henikoff_weights,
    normalize,
    row_weights,
)


class TestWeights:
    def test_normalize(self):
        assert normalize(np.array([1.0, 3.0])).tolist() == [0.25, 0.75]

    def test_normalize_zero_is_uniform(self):
        assert normalize(np.zeros(4)).tolist() == [0.25] * 4

    def test_henikoff_identical_rows(self):
        w = henikoff_weights(encode(["ACD", "ACD", "ACD"], Alpha.AMINO))
        assert np.allclose(w, 1 / 3)

    def test_henikoff_downweights_duplicates(self):
        w = henikoff_weights(encode(["ACD", "ACD", "WWW"], Alpha.AMINO))
        assert w[2] > w[0]
        assert w.sum() == pytest.approx(1.0)

    def test_clustalw(self):
        seqs = sequences_from_dict({"a": "M", "b": "K", "c": "V"})
        tree = load_guide_tree("((a:1,b:1):2,c:4);", seqs)
        w = clustalw_weights(tree)
        # a, b: 1 + 2/2 = 2 each; c: 4
        assert w[0] == pytest.approx(0.25)
        assert w[2] == pytest.approx(0.5)

    def test_row_weights_fallback(self):
        codes = encode(["AC", "AD"], Alpha.AMINO)
        assert row_weights([0, 1], codes, SeqWeight.NONE).tolist() == [0.5, 0.5]
        assert row_weights([0, 1], codes, SeqWeight.CLUSTALW, {0: 3.0, 1: 1.0}).tolist() == [0.75, 0.25]


class TestBuildProfile:
    def test_single_sequence(self, plain_scheme):
        prof = build_profile(["ACD"], None, plain_scheme)
        assert len(prof) == 3
        assert np.allclose(prof.occupancy, 1.0)
        assert np.allclose(prof.freqs.sum(axis=1), 1.0)
        assert prof.freqs[1, 1] == 1.0
        half = plain_scheme.gap_open / 2
        assert prof.gap_open.tolist() == pytest.approx([half / 2, half, half])
        assert prof.gap_close.tolist() == pytest.approx([half, half, half / 2])

    def test_full_terminal_gaps(self, plain_scheme):
        scheme = replace(plain_scheme, term_gaps=TermGaps.FULL)
        prof = build_profile(["ACD"], None, scheme)
        assert np.allclose(prof.gap_open, scheme.gap_open / 2)

    def test_occupancy_and_gap_starts(self, plain_scheme):
        prof = build_profile(["ACDE", "A--E"], None, plain_scheme)
        assert prof.occupancy.tolist() == pytest.approx([1.0, 0.5, 0.5, 1.0])
        half = plain_scheme.gap_open / 2
        # half of the rows already open a gap at column 1 and close one at column 2
        assert prof.gap_open[1] == pytest.approx(0.5 * half)
        assert prof.gap_close[2] == pytest.approx(0.5 * half)
        assert prof.gap_open[2] == pytest.approx(half)

    def test_weights_respected(self, plain_scheme):
        prof = build_profile(["A", "C"], [3.0, 1.0], plain_scheme)
        assert prof.freqs[0, 0] == pytest.approx(0.75)
        assert prof.freqs[0, 1] == pytest.approx(0.25)

    def test_unknown_symbols_not_counted(self, plain_scheme):
        prof = build_profile(["X"], None, plain_scheme)
        assert prof.occupancy[0] == 1.0
        assert prof.freqs[0].sum() == 0.0

    def test_position_access(self, plain_scheme):
        prof = build_profile(["AC"], None, plain_scheme)
        pos = prof[1]
        assert pos.occupancy == 1.0
        assert len(list(prof)) == 2


class TestMerge:
    def test_merge_along_path(self, plain_scheme):
        a = build_profile(["AC"], None, plain_scheme)
        b = build_profile(["A"], None, plain_scheme)
        merged = a.merge(b, ["M", "D"])
        assert len(merged) == 2
        assert merged.weight == 2.0
        assert merged.occupancy.tolist() == pytest.approx([1.0, 0.5])
        assert merged.freqs[0, 0] == pytest.approx(1.0)


class TestHydrophobicity:
    def make(self, plain_scheme, row):
        return build_profile([row], None, plain_scheme)

    def test_run_length_zero_is_noop(self, plain_scheme):
        prof = self.make(plain_scheme, "LLLLLLL")
        assert apply_hydrophobicity(prof, 0, 0.5) is prof

    def test_long_run_scaled(self, plain_scheme):
        prof = self.make(plain_scheme, "LLLLLL")
        out = apply_hydrophobicity(prof, 5, 0.5)
        assert np.allclose(out.gap_open, prof.gap_open * 2)
        assert np.allclose(out.gap_close, prof.gap_close * 2)

    def test_short_run_untouched(self, plain_scheme):
        prof = self.make(plain_scheme, "LLLLGLLLLL")
        out = apply_hydrophobicity(prof, 5, 0.5)
        assert np.allclose(out.gap_open[:5], prof.gap_open[:5])
        assert np.allclose(out.gap_open[5:], prof.gap_open[5:] * 2)

    def test_input_not_mutated(self, plain_scheme):
        prof = self.make(plain_scheme, "LLLLLL")
        before = prof.gap_open.copy()
        apply_hydrophobicity(prof, 5, 0.5)
        assert np.array_equal(prof.gap_open, before)

    def test_tightens_monotonically(self, plain_scheme):
        prof = self.make(plain_scheme, "MKVLAIFLVGGD")
        out = apply_hydrophobicity(prof, 3, 0.8)
        assert (out.gap_open <= prof.gap_open).all()
        assert (out.gap_close <= prof.gap_close).all()

    def test_attenuation_one_is_identity(self, plain_scheme):
        prof = self.make(plain_scheme, "LLLLLL")
        out = apply_hydrophobicity(prof, 5, 1.0)
        assert np.allclose(out.gap_open, prof.gap_open)

    def test_partially_occupied_column_breaks_run(self, plain_scheme):
        prof = build_profile(["LLLLLL", "LL-LLL"], None, plain_scheme)
        out = apply_hydrophobicity(prof, 3, 0.5)
        assert np.allclose(out.gap_open[:3], prof.gap_open[:3])
        assert np.allclose(out.gap_open[3:], prof.gap_open[3:] * 2)

    def test_applied_by_amino_schemes(self, amino_scheme, plain_scheme):
        with_hydro = build_profile(["LLLLLL"], None, amino_scheme)
        without = build_profile(["LLLLLL"], None, plain_scheme)
        assert (with_hydro.gap_open < without.gap_open).all()

    def test_empty_profile(self):
        empty = Profile(np.zeros((0, 20)), np.zeros(0), np.zeros(0), np.zeros(0))
        assert apply_hydrophobicity(empty, 5, 0.5) is empty
