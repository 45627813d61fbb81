"""
Alphabets and residue encoding
- Amino / DNA / RNA letter sets in scoring-table order
- Alphabet guessing from residue statistics
- Vectorized symbol -> index encoding (gap = -1, wildcard = K)
"""

from __future__ import annotations
import logging
from enum import Enum
from functools import lru_cache
from typing import Iterable, List, Sequence, Union

import numpy as np

from ..exceptions import ConfigurationError

logger = logging.getLogger(__name__)


class Alpha(str, Enum):
    """Residue alphabet of a run."""
    AUTO = "auto"
    AMINO = "amino"
    DNA = "dna"
    RNA = "rna"


AMINO_LETTERS = "ACDEFGHIKLMNPQRSTVWY"
DNA_LETTERS = "ACGT"
RNA_LETTERS = "ACGU"

GAP = "-"
GAP_CHARS = "-."
GAP_CODE = -1

# Kyte-Doolittle positive residues
HYDROPHOBIC = "ACFILMV"

_NUCLEO_CHARS = set("ACGTUN")
_GUESS_SAMPLE = 100
_GUESS_NUCLEO_FRACTION = 0.95


def letters(alpha: Alpha) -> str:
    if alpha == Alpha.AMINO:
        return AMINO_LETTERS
    if alpha == Alpha.DNA:
        return DNA_LETTERS
    if alpha == Alpha.RNA:
        return RNA_LETTERS
    raise ConfigurationError(f"alphabet {alpha!r} has no letter set")


def wildcard(alpha: Alpha) -> str:
    return "X" if alpha == Alpha.AMINO else "N"


def guess_alpha(sequences: Iterable[str]) -> Alpha:
    """
    Guess the alphabet from the first non-gap symbols of each sequence.

    Up to 100 symbols are sampled per sequence. If at least 95% of them are
    nucleotide codes (ACGTUN) the input is DNA, or RNA when U outnumbers T;
    otherwise it is amino acid.
    """
    total = 0
    nucleo = 0
    t_count = 0
    u_count = 0
    for seq in sequences:
        taken = 0
        for ch in seq.upper():
            if ch in GAP_CHARS:
                continue
            total += 1
            if ch in _NUCLEO_CHARS:
                nucleo += 1
                if ch == "T":
                    t_count += 1
                elif ch == "U":
                    u_count += 1
            taken += 1
            if taken >= _GUESS_SAMPLE:
                break

    if total == 0:
        return Alpha.AMINO
    if nucleo / total >= _GUESS_NUCLEO_FRACTION:
        return Alpha.RNA if u_count > t_count else Alpha.DNA
    return Alpha.AMINO


def resolve_alpha(requested: Union[Alpha, str], sequences: Iterable[str]) -> Alpha:
    """Turn a configured alphabet into a concrete one, guessing when AUTO."""
    try:
        alpha = Alpha(requested)
    except ValueError:
        raise ConfigurationError(f"unrecognized alphabet: {requested!r}") from None
    if alpha == Alpha.AUTO:
        alpha = guess_alpha(sequences)
        logger.info("Guessed alphabet: %s", alpha.value)
    return alpha


@lru_cache(maxsize=None)
def translation_table(alpha: Alpha) -> np.ndarray:
    """256-entry lookup from byte value to letter index."""
    letter_set = letters(alpha)
    k = len(letter_set)
    table = np.full(256, k, dtype=np.int16)
    for i, ch in enumerate(letter_set):
        table[ord(ch)] = i
        table[ord(ch.lower())] = i
    if alpha in (Alpha.DNA, Alpha.RNA):
        # T and U are interchangeable in nucleotide input
        t_index = letter_set.index("T" if alpha == Alpha.DNA else "U")
        for ch in "TtUu":
            table[ord(ch)] = t_index
    for ch in GAP_CHARS:
        table[ord(ch)] = GAP_CODE
    table.setflags(write=False)
    return table


def encode(rows: Sequence[str], alpha: Alpha) -> np.ndarray:
    """
    Encode equal-length rows into an (N, L) int16 matrix.

    Letters map to their index in ``letters(alpha)``, gaps to -1 and every
    other symbol to the wildcard index ``len(letters(alpha))``.
    """
    table = translation_table(alpha)
    if not rows:
        return np.zeros((0, 0), dtype=np.int16)
    width = len(rows[0])
    out = np.empty((len(rows), width), dtype=np.int16)
    for i, row in enumerate(rows):
        raw = np.frombuffer(row.encode("ascii", errors="replace"), dtype=np.uint8)
        out[i] = table[raw]
    return out


def hydrophobic_mask(alpha: Alpha) -> np.ndarray:
    letter_set = letters(alpha)
    return np.array([ch in HYDROPHOBIC for ch in letter_set], dtype=bool)


def strip_gaps(row: str) -> str:
    return "".join(ch for ch in row if ch not in GAP_CHARS)


__all__: List[str] = [
    "Alpha",
    "AMINO_LETTERS",
    "DNA_LETTERS",
    "RNA_LETTERS",
    "GAP",
    "GAP_CHARS",
    "GAP_CODE",
    "HYDROPHOBIC",
    "letters",
    "wildcard",
    "guess_alpha",
    "resolve_alpha",
    "translation_table",
    "encode",
    "hydrophobic_mask",
    "strip_gaps",
]
