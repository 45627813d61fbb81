"""Shared test fixtures for TKAlign tests."""

from dataclasses import replace

import pytest

from TKAlign.multialign.alignment import Sequence, sequences_from_dict
from TKAlign.seq_alignment.alphabet import Alpha
from TKAlign.seq_alignment.scoring import default_scheme


@pytest.fixture
def amino_scheme():
    """Default log-expectation scheme (hydrophobicity heuristic on)."""
    return default_scheme(Alpha.AMINO)


@pytest.fixture
def plain_scheme(amino_scheme):
    """Amino scheme with the hydrophobicity heuristic disabled."""
    return replace(amino_scheme, hydro_run_length=0)


@pytest.fixture
def dna_scheme():
    return default_scheme(Alpha.DNA)


@pytest.fixture
def substitution_pair():
    """Two sequences differing by one substitution."""
    return sequences_from_dict({"s1": "ACDEFG", "s2": "ACDFFG"})


@pytest.fixture
def insertion_trio():
    """Two 5-residue sequences and one carrying a 2-residue insertion."""
    return sequences_from_dict({"a": "CWPHY", "b": "CWPHY", "c": "CWPGGHY"})


@pytest.fixture
def protein_family():
    """Small related protein set."""
    return sequences_from_dict({
        "seq1": "MKVLAAGIWDEKRSTQ",
        "seq2": "MKVLSAGIWDEKRTQ",
        "seq3": "MRVLAAGVWDEKRSTQ",
        "seq4": "MKILAGIWNEKRSQ",
        "seq5": "MKVLAAGLWDEQRSTQ",
    })


@pytest.fixture
def dna_family():
    return sequences_from_dict({
        "d1": "ACGTACGTTAGC",
        "d2": "ACGTACGATAGC",
        "d3": "ACGACGTTAGC",
        "d4": "ACGTTCGTTAGCA",
    })


@pytest.fixture
def single_sequence():
    return [Sequence(0, "MKV", "only")]
