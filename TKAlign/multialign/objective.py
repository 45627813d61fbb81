"""
Alignment objective: weighted sum of pairs with affine gap scores.
"""

from __future__ import annotations
from typing import Optional, Sequence

import numpy as np

from ..seq_alignment.alphabet import GAP_CODE
from ..seq_alignment.scoring import ScoringScheme, TermGaps
from ..seq_alignment.weights import normalize
from .alignment import MSA


def _gap_runs_score(gapped: np.ndarray, gap_open: float, gap_extend: float, half_terminal: bool) -> float:
    if not gapped.any():
        return 0.0
    prev = np.concatenate(([False], gapped[:-1]))
    n_runs = int((gapped & ~prev).sum())
    n_cols = int(gapped.sum())
    score = n_runs * gap_open + (n_cols - n_runs) * gap_extend
    if half_terminal:
        # a terminal run is charged half of its outer open/close score
        score -= (int(gapped[0]) + int(gapped[-1])) * gap_open / 4.0
    return score


def objective_score(msa: MSA, scheme: ScoringScheme, weights: Optional[Sequence[float]] = None) -> float:
    """
    Sum over row pairs of ``w_i * w_j * score(i, j)``.

    ``score(i, j)`` adds the pair-matrix score of every column where both
    rows hold a residue and, on the pairwise projection (columns where both
    are gaps removed), ``gap_open`` per gap run plus ``gap_extend`` per
    further gap column.
    """
    codes = msa.encode(scheme.alpha)
    n_rows, n_cols = codes.shape
    if n_rows < 2 or n_cols == 0:
        return 0.0
    w = normalize(np.ones(n_rows) if weights is None else np.asarray(weights, dtype=np.float64))

    pm = scheme.pair_matrix
    k1 = pm.shape[0]
    gaps = codes == GAP_CODE

    counts = np.zeros((n_cols, k1), dtype=np.float64)
    for x in range(k1):
        counts[:, x] = w @ (codes == x).astype(np.float64)
    all_pairs = float(np.einsum("lk,km,lm->", counts, pm, counts))
    diag = np.diag(pm)
    safe = np.where(gaps, 0, codes)
    self_pairs = float(((w ** 2)[:, None] * np.where(gaps, 0.0, diag[safe])).sum())
    substitution = 0.5 * (all_pairs - self_pairs)

    half_terminal = scheme.term_gaps == TermGaps.HALF
    gap_total = 0.0
    for i in range(n_rows):
        gi = gaps[i]
        for j in range(i + 1, n_rows):
            gj = gaps[j]
            keep = ~(gi & gj)
            s = _gap_runs_score((gi & ~gj)[keep], scheme.gap_open, scheme.gap_extend, half_terminal)
            s += _gap_runs_score((gj & ~gi)[keep], scheme.gap_open, scheme.gap_extend, half_terminal)
            gap_total += w[i] * w[j] * s

    return substitution + gap_total
