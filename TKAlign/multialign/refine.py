"""
Iterative refinement of a finished alignment
- Pass 2: rebuild the guide tree from the alignment and realign
- Tree-dependent: split rows along each tree edge and realign the halves
- Horizontal: the same moves restricted to consecutive column windows
- Vertical: the same moves restricted to segments between anchor columns

A candidate replaces the current alignment only if it strictly improves
the objective, so the objective never decreases.
"""

from __future__ import annotations
import logging
from typing import TYPE_CHECKING, Dict, FrozenSet, List, Optional, Sequence as SequenceT, Tuple

import numpy as np

from ..phylogene.tree_builder import GuideTree, refit_tree
from ..phylogene.tree_utils import edge_splits, robinson_foulds
from ..seq_alignment.alphabet import GAP_CODE
from ..seq_alignment.scoring import ScoringScheme
from ..seq_alignment.weights import SeqWeight, clustalw_weights, henikoff_weights
from .alignment import MSA, Sequence, splice_columns
from .objective import objective_score
from .progressive import ProgressiveAligner

if TYPE_CHECKING:
    from ..config import AlignConfig

logger = logging.getLogger(__name__)


class Refiner:
    """Improves an alignment under a fixed scoring scheme and configuration."""

    def __init__(self, scheme: ScoringScheme, config: "AlignConfig", sequences: SequenceT[Sequence]):
        self.scheme = scheme
        self.config = config
        self.sequences = list(sequences)
        self.weighting = config.refine.seq_weight2
        self.aligner = ProgressiveAligner(scheme, self.weighting)
        self.attempted = 0
        self.accepted = 0
        self._weights: Optional[Dict[int, float]] = None

    # -------------------------
    # Objective
    # -------------------------
    def _prepare(self, tree: GuideTree, msa: MSA) -> None:
        """Fix the objective's sequence weights for the coming moves."""
        self.aligner.use_tree(tree)
        if self.weighting == SeqWeight.CLUSTALW:
            self._weights = clustalw_weights(tree)
        elif self.weighting == SeqWeight.HENIKOFF:
            w = henikoff_weights(msa.encode(self.scheme.alpha))
            self._weights = dict(zip(msa.ids, w.tolist()))
        else:
            self._weights = None

    def objective(self, msa: MSA) -> float:
        weights = None
        if self._weights is not None:
            weights = [self._weights[i] for i in msa.ids]
        return objective_score(msa, self.scheme, weights)

    # -------------------------
    # Moves
    # -------------------------
    def _realign_split(self, msa: MSA, side_a: FrozenSet[int], side_b: FrozenSet[int]) -> Optional[MSA]:
        left = msa.subset(side_a)
        right = msa.subset(side_b)
        if left.col_count == 0 or right.col_count == 0:
            return None
        return self.aligner.merge(left, right, self.aligner.profile_for(left), self.aligner.profile_for(right))

    def _try(self, current: MSA, score: float, candidate: Optional[MSA]) -> Tuple[MSA, float, bool]:
        if candidate is None:
            return current, score, False
        self.attempted += 1
        new_score = self.objective(candidate)
        if new_score > score:
            self.accepted += 1
            return candidate, new_score, True
        return current, score, False

    def refine_edges(self, msa: MSA, tree: GuideTree, score: float) -> Tuple[MSA, float]:
        """One tree-dependent pass over every edge of ``tree``."""
        for node, (below, above) in edge_splits(tree):
            msa, score, changed = self._try(msa, score, self._realign_split(msa, below, above))
            if changed:
                logger.debug("Edge above node %d improved objective to %.4f", node.index, score)
        return msa, score

    def _refine_window(self, msa: MSA, start: int, end: int, tree: GuideTree, score: float) -> Tuple[MSA, float, int]:
        for _, (below, above) in edge_splits(tree):
            realigned = self._realign_split(msa.columns(start, end), below, above)
            if realigned is None:
                continue
            candidate = splice_columns(msa, start, end, realigned)
            msa, score, changed = self._try(msa, score, candidate)
            if changed:
                end = start + realigned.col_count
                logger.debug("Window [%d, %d) improved objective to %.4f", start, end, score)
        return msa, score, end

    def refine_horizontal(self, msa: MSA, tree: GuideTree, score: float) -> Tuple[MSA, float]:
        """One pass over consecutive windows of ``window_size`` columns."""
        size = self.config.refine.window_size
        start = 0
        while start < msa.col_count:
            end = min(start + size, msa.col_count)
            msa, score, end = self._refine_window(msa, start, end, tree, score)
            start = end
        return msa, score

    def anchor_columns(self, msa: MSA) -> List[int]:
        """Columns meeting both the occupancy and the conservation thresholds."""
        rc = self.config.refine
        codes = msa.encode(self.scheme.alpha)
        n_rows = codes.shape[0]
        k = self.scheme.size
        occupancy = (codes != GAP_CODE).sum(axis=0) / n_rows
        top = np.zeros(codes.shape[1], dtype=np.float64)
        for x in range(k):
            top = np.maximum(top, (codes == x).sum(axis=0))
        conservation = top / n_rows
        mask = (occupancy >= rc.anchor_min_occupancy) & (conservation >= rc.anchor_min_conservation)
        return np.flatnonzero(mask).tolist()

    def refine_vertical(self, msa: MSA, tree: GuideTree, score: float) -> Tuple[MSA, float]:
        """Realign the gapped segments between anchor columns, anchors held fixed."""
        anchors = self.anchor_columns(msa)
        bounds = [-1] + anchors + [msa.col_count]
        segments = [(a + 1, b) for a, b in zip(bounds, bounds[1:]) if b - a > 1]
        # right to left, so splicing never shifts a segment still to be visited
        for start, end in reversed(segments):
            window = msa.columns(start, end)
            if not any("-" in r for r in window.rows):
                continue
            msa, score, _ = self._refine_window(msa, start, end, tree, score)
        return msa, score

    # -------------------------
    # Drivers
    # -------------------------
    def refine_tree(
        self,
        msa: MSA,
        tree: GuideTree,
        subtree_alignments: Optional[Dict[FrozenSet[int], MSA]] = None,
    ) -> Tuple[GuideTree, MSA]:
        """
        Pass 2: rebuild the guide tree from ``msa`` and realign along it.

        Subtrees whose leaf sets also occur in ``subtree_alignments`` are
        reused. The new tree is always returned; the realignment only if it
        improves the objective.
        """
        new_tree = refit_tree(msa, self.config, self.scheme.alpha)
        changed = robinson_foulds(tree, new_tree)
        logger.info("Pass-2 guide tree differs from pass 1 by %d splits", changed)
        self._prepare(new_tree, msa)
        if changed == 0:
            return new_tree, msa

        candidate = self.aligner.align(self.sequences, new_tree, reuse=subtree_alignments)
        msa, score, accepted = self._try(msa, self.objective(msa), candidate)
        logger.info("Pass-2 realignment %s (objective %.4f)", "accepted" if accepted else "rejected", score)
        return new_tree, msa

    def refine(self, msa: MSA, tree: GuideTree, iterations: int) -> MSA:
        """
        Run exactly ``iterations`` refinement rounds.

        Each round is a tree-dependent pass followed by a vertical pass when
        anchors are enabled, otherwise a horizontal pass.
        """
        self._prepare(tree, msa)
        score = self.objective(msa)
        for it in range(iterations):
            msa, score = self.refine_edges(msa, tree, score)
            if self.config.refine.anchors:
                msa, score = self.refine_vertical(msa, tree, score)
            else:
                msa, score = self.refine_horizontal(msa, tree, score)
            logger.info("Refinement round %d/%d: objective %.4f", it + 1, iterations, score)
        logger.info("Refinement accepted %d of %d moves", self.accepted, self.attempted)
        return msa
