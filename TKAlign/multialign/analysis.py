"""
Column statistics of a finished alignment
- profile_counts / profile_frequencies : per-column residue and gap tallies
- consensus : per-column best-scoring letter
- conservation_scores : expected pair score within each column
"""

from __future__ import annotations
from typing import List, Tuple

import numpy as np

from ..seq_alignment.alphabet import GAP, GAP_CODE, Alpha, letters
from ..seq_alignment.scoring import ScoringScheme
from .alignment import MSA


def profile_counts(msa: MSA, alpha: Alpha) -> Tuple[np.ndarray, List[str]]:
    """
    Return an (L x K+1) count matrix and its symbol order.

    Columns follow ``letters(alpha)`` with the gap symbol last. Wildcard and
    unknown residues are counted in neither.
    """
    alph = list(letters(alpha)) + [GAP]
    k = len(alph) - 1
    codes = msa.encode(alpha)
    counts = np.zeros((msa.col_count, k + 1), dtype=np.float64)
    for x in range(k):
        counts[:, x] = (codes == x).sum(axis=0)
    counts[:, k] = (codes == GAP_CODE).sum(axis=0)
    return counts, alph


def profile_frequencies(msa: MSA, alpha: Alpha) -> Tuple[np.ndarray, List[str]]:
    """Counts of ``profile_counts`` divided by the column totals."""
    counts, alph = profile_counts(msa, alpha)
    total = counts.sum(axis=1, keepdims=True)
    freqs = np.divide(counts, total, out=np.zeros_like(counts), where=total > 0)
    return freqs, alph


def _letter_distribution(msa: MSA, scheme: ScoringScheme) -> Tuple[np.ndarray, np.ndarray]:
    counts, _ = profile_counts(msa, scheme.alpha)
    letter_counts = counts[:, :-1]
    present = letter_counts.sum(axis=1)
    dist = np.divide(
        letter_counts, present[:, None],
        out=np.zeros_like(letter_counts), where=present[:, None] > 0,
    )
    occupancy = present / max(msa.seq_count, 1)
    return dist, occupancy


def consensus(msa: MSA, scheme: ScoringScheme) -> str:
    """
    Consensus row: for each column the letter whose pair score against the
    column's letter distribution is highest; ``-`` where no letter occurs.
    """
    dist, occupancy = _letter_distribution(msa, scheme)
    k = scheme.size
    support = dist @ scheme.pair_matrix[:k, :k]
    best = np.argmax(support, axis=1)
    alph = scheme.letters
    return "".join(alph[b] if occ > 0 else GAP for b, occ in zip(best.tolist(), occupancy.tolist()))


def conservation_scores(msa: MSA, scheme: ScoringScheme) -> np.ndarray:
    """
    Expected pair score of two residues drawn from the same column, scaled
    by the squared occupancy. All-gap columns score 0.
    """
    dist, occupancy = _letter_distribution(msa, scheme)
    k = scheme.size
    pm = scheme.pair_matrix[:k, :k]
    return np.einsum("lk,km,lm->l", dist, pm, dist) * occupancy ** 2
