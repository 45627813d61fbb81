"""
Sequence weighting
Down-weights over-represented sequences when building profiles.
"""

from __future__ import annotations
from enum import Enum
from typing import TYPE_CHECKING, Dict, Optional, Sequence

import numpy as np

from .alphabet import GAP_CODE

if TYPE_CHECKING:
    from ..phylogene.tree_builder import GuideTree


class SeqWeight(str, Enum):
    NONE = "none"
    HENIKOFF = "henikoff"
    CLUSTALW = "clustalw"


def normalize(weights: np.ndarray) -> np.ndarray:
    """Scale to sum 1; all-zero input becomes uniform."""
    weights = np.asarray(weights, dtype=np.float64)
    total = weights.sum()
    if weights.size == 0:
        return weights
    if total <= 0.0 or not np.isfinite(total):
        return np.full(weights.shape, 1.0 / weights.size)
    return weights / total


def henikoff_weights(codes: np.ndarray) -> np.ndarray:
    """Position-based weights (Henikoff & Henikoff 1994) of an encoded alignment."""
    n_rows, n_cols = codes.shape
    weights = np.zeros(n_rows, dtype=np.float64)
    for c in range(n_cols):
        col = codes[:, c]
        present = col[col != GAP_CODE]
        if present.size == 0:
            continue
        symbols, counts = np.unique(present, return_counts=True)
        per_symbol = dict(zip(symbols.tolist(), counts.tolist()))
        n_types = len(symbols)
        for r in range(n_rows):
            x = int(col[r])
            if x != GAP_CODE:
                weights[r] += 1.0 / (n_types * per_symbol[x])
    return normalize(weights)


def clustalw_weights(tree: "GuideTree") -> Dict[int, float]:
    """
    Tree-based weights as in ClustalW.

    Each edge's length is shared equally among the leaves below it; a
    leaf's weight is the sum of its shares on the path to the root.
    """
    below: Dict[int, int] = {}
    for node in tree.postorder():
        below[node.index] = 1 if node.is_leaf() else sum(below[c.index] for c in node.children)

    raw: Dict[int, float] = {}
    for leaf in tree.leaves():
        w = 0.0
        node = leaf
        while node.parent is not None:
            w += node.branch_length / below[node.index]
            node = node.parent
        raw[leaf.seq_id] = w

    ids = list(raw)
    normed = normalize(np.array([raw[i] for i in ids]))
    return dict(zip(ids, normed.tolist()))


def row_weights(
    ids: Sequence[int],
    codes: np.ndarray,
    method: SeqWeight,
    tree_weights: Optional[Dict[int, float]] = None,
) -> np.ndarray:
    """Weights for the rows of one (sub-)alignment, normalized to sum 1."""
    if method == SeqWeight.HENIKOFF:
        return henikoff_weights(codes)
    if method == SeqWeight.CLUSTALW and tree_weights:
        return normalize(np.array([tree_weights.get(i, 0.0) for i in ids]))
    return normalize(np.ones(len(ids)))
