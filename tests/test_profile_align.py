"""Tests for profile-profile dynamic programming."""

import numpy as np
import pytest

from TKAlign.exceptions import ConfigurationError
from TKAlign.seq_alignment.profile import build_profile
from TKAlign.seq_alignment.profile_align import EditOp, ProfileAlignment, align_profiles


def profile(rows, scheme):
    return build_profile(rows, None, scheme)


class TestProfileAlignment:
    def test_cigar(self):
        aln = ProfileAlignment(path=[EditOp.MATCH, EditOp.MATCH, EditOp.INSERT, EditOp.MATCH])
        assert aln.cigar == "2M1I1M"

    def test_cigar_empty(self):
        assert ProfileAlignment().cigar == ""


class TestAlignProfiles:
    def test_identical(self, amino_scheme):
        a = profile(["ACDEFG"], amino_scheme)
        result = align_profiles(a, a, amino_scheme)
        assert result.cigar == "6M"
        assert result.score > 0

    def test_substitution_stays_ungapped(self, amino_scheme):
        result = align_profiles(profile(["ACDEFG"], amino_scheme), profile(["ACDFFG"], amino_scheme), amino_scheme)
        assert result.cigar == "6M"

    def test_insertion(self, amino_scheme):
        result = align_profiles(profile(["CWPHY"], amino_scheme), profile(["CWPGGHY"], amino_scheme), amino_scheme)
        assert result.cigar == "3M2I2M"

    def test_deletion_is_symmetric(self, amino_scheme):
        result = align_profiles(profile(["CWPGGHY"], amino_scheme), profile(["CWPHY"], amino_scheme), amino_scheme)
        assert result.cigar == "3M2D2M"

    def test_path_covers_both_profiles(self, amino_scheme):
        a = profile(["MKVLAAGIW", "MKVLSAGIW"], amino_scheme)
        b = profile(["MKILAGIW"], amino_scheme)
        result = align_profiles(a, b, amino_scheme)
        assert sum(op != EditOp.INSERT for op in result.path) == len(a)
        assert sum(op != EditOp.DELETE for op in result.path) == len(b)
        assert len(result.profile) == len(result.path)

    def test_deterministic(self, amino_scheme):
        a = profile(["MKVLAAGIWDEK"], amino_scheme)
        b = profile(["MRVLGIWNEKR"], amino_scheme)
        first = align_profiles(a, b, amino_scheme)
        second = align_profiles(a, b, amino_scheme)
        assert first.path == second.path
        assert first.score == second.score

    def test_no_direct_gap_switch(self, amino_scheme):
        a = profile(["WWWAAA"], amino_scheme)
        b = profile(["WWWCCC"], amino_scheme)
        path = align_profiles(a, b, amino_scheme).path
        for prev, cur in zip(path, path[1:]):
            assert {prev, cur} != {EditOp.DELETE, EditOp.INSERT}

    def test_nucleotide(self, dna_scheme):
        result = align_profiles(profile(["ACGTACGT"], dna_scheme), profile(["ACGTCGT"], dna_scheme), dna_scheme)
        assert result.path.count(EditOp.DELETE) == 1
        assert result.path.count(EditOp.MATCH) == 7

    def test_empty_profile(self, amino_scheme):
        with pytest.raises(ConfigurationError):
            align_profiles(profile([""], amino_scheme), profile(["ACD"], amino_scheme), amino_scheme)

    def test_score_matches_gap_free_sum(self, plain_scheme):
        a = profile(["ACD"], plain_scheme)
        b = profile(["ACE"], plain_scheme)
        result = align_profiles(a, b, plain_scheme)
        expected = np.trace(plain_scheme.column_scores(a.freqs, a.occupancy, b.freqs, b.occupancy))
        assert result.cigar == "3M"
        assert result.score == pytest.approx(expected)
