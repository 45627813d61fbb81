"""Tests for alignment column statistics."""

import numpy as np
import pytest

from TKAlign.multialign.alignment import MSA
from TKAlign.multialign.analysis import conservation_scores, consensus, profile_counts, profile_frequencies
from TKAlign.seq_alignment.alphabet import AMINO_LETTERS, Alpha


class TestProfileCounts:
    def test_counts(self):
        msa = MSA([0, 1], ["a", "b"], ["AC", "A-"])
        counts, alph = profile_counts(msa, Alpha.AMINO)
        assert alph[-1] == "-"
        assert counts.shape == (2, 21)
        assert counts[0, 0] == 2
        assert counts[1, AMINO_LETTERS.index("C")] == 1
        assert counts[1, -1] == 1

    def test_frequencies(self):
        msa = MSA([0, 1, 2, 3], list("abcd"), ["A", "A", "C", "-"])
        freqs, _ = profile_frequencies(msa, Alpha.AMINO)
        assert freqs[0, 0] == pytest.approx(0.5)
        assert freqs[0, -1] == pytest.approx(0.25)
        assert freqs.sum() == pytest.approx(1.0)

    def test_nucleotide(self):
        counts, alph = profile_counts(MSA([0], ["a"], ["ACGT"]), Alpha.DNA)
        assert alph == ["A", "C", "G", "T", "-"]
        assert np.array_equal(counts[:, :4], np.eye(4))


class TestConsensus:
    def test_identical_rows(self, amino_scheme):
        msa = MSA([0, 1], ["a", "b"], ["MKV", "MKV"])
        assert consensus(msa, amino_scheme) == "MKV"

    def test_gap_column(self, amino_scheme):
        msa = MSA([0, 1], ["a", "b"], ["MK-", "MK-"])
        assert consensus(msa, amino_scheme) == "MK-"


class TestConservation:
    def test_conserved_beats_mixed(self, amino_scheme):
        msa = MSA([0, 1, 2], ["a", "b", "c"], ["WA", "WD", "WK"])
        scores = conservation_scores(msa, amino_scheme)
        assert scores[0] > scores[1]

    def test_gap_column_zero(self, amino_scheme):
        msa = MSA([0, 1], ["a", "b"], ["W-", "W-"])
        scores = conservation_scores(msa, amino_scheme)
        assert scores[1] == 0.0
        pm = amino_scheme.pair_matrix
        w = AMINO_LETTERS.index("W")
        assert scores[0] == pytest.approx(pm[w, w])
