"""Tests for alphabets and residue encoding."""

import numpy as np
import pytest

from TKAlign.exceptions import ConfigurationError
from TKAlign.seq_alignment.alphabet import (
    GAP_CODE,
    Alpha,
    encode,
    guess_alpha,
    hydrophobic_mask,
    resolve_alpha,
    strip_gaps,
    wildcard,
)


class TestGuessAlpha:
    def test_dna(self):
        assert guess_alpha(["ACGTACGTNN", "GGCCAATT"]) == Alpha.DNA

    def test_rna(self):
        assert guess_alpha(["ACGUACGUUU"]) == Alpha.RNA

    def test_amino(self):
        assert guess_alpha(["MKVLAAGIWDEKRSTQ"]) == Alpha.AMINO

    def test_gaps_ignored(self):
        assert guess_alpha(["AC--GT..ACGT"]) == Alpha.DNA

    def test_empty_defaults_to_amino(self):
        assert guess_alpha([]) == Alpha.AMINO


class TestResolveAlpha:
    def test_auto_guesses(self):
        assert resolve_alpha(Alpha.AUTO, ["ACGT"]) == Alpha.DNA

    def test_explicit_value_kept(self):
        assert resolve_alpha("amino", ["ACGT"]) == Alpha.AMINO

    def test_unknown_value(self):
        with pytest.raises(ConfigurationError):
            resolve_alpha("protein-ish", ["ACGT"])


class TestEncode:
    def test_letters_gaps_and_wildcard(self):
        codes = encode(["AC-X"], Alpha.AMINO)
        assert codes.shape == (1, 4)
        assert codes[0].tolist() == [0, 1, GAP_CODE, 20]

    def test_lowercase(self):
        assert encode(["acd"], Alpha.AMINO)[0].tolist() == [0, 1, 2]

    def test_u_and_t_interchangeable(self):
        assert encode(["ACGU"], Alpha.DNA).tolist() == encode(["ACGT"], Alpha.DNA).tolist()
        assert encode(["ACGT"], Alpha.RNA).tolist() == encode(["ACGU"], Alpha.RNA).tolist()

    def test_dot_is_gap(self):
        assert encode(["A.C"], Alpha.DNA)[0, 1] == GAP_CODE

    def test_no_rows(self):
        assert encode([], Alpha.DNA).shape == (0, 0)


class TestHelpers:
    def test_strip_gaps(self):
        assert strip_gaps("-A.C--D") == "ACD"

    def test_wildcard(self):
        assert wildcard(Alpha.AMINO) == "X"
        assert wildcard(Alpha.DNA) == "N"

    def test_hydrophobic_mask(self):
        mask = hydrophobic_mask(Alpha.AMINO)
        assert mask.dtype == np.bool_
        assert mask.sum() == 7
