"""
Progressive alignment along a guide tree
- Post-order traversal of the tree arena
- Leaf: one-row alignment and its degenerate profile
- Internal node: profile-profile DP of the two children, rows interleaved
  along the edit path, fresh profile built from the merged alignment
"""

from __future__ import annotations
import logging
from typing import Dict, FrozenSet, Optional, Sequence as SequenceT

from ..phylogene.tree_builder import GuideTree
from ..seq_alignment.profile import Profile, build_profile
from ..seq_alignment.profile_align import align_profiles
from ..seq_alignment.scoring import ScoringScheme
from ..seq_alignment.weights import SeqWeight, clustalw_weights, row_weights
from .alignment import MSA, Sequence, align_msas_given_path

logger = logging.getLogger(__name__)


class ProgressiveAligner:
    """
    Aligns sequences bottom-up along a guide tree.

    ``subtree_alignments`` maps the leaf-id set of every internal node
    aligned so far to its alignment; passing it back as ``reuse`` on a later
    call skips subtrees whose leaf sets are unchanged.
    """

    def __init__(self, scheme: ScoringScheme, weighting: SeqWeight = SeqWeight.CLUSTALW):
        self.scheme = scheme
        self.weighting = weighting
        self.subtree_alignments: Dict[FrozenSet[int], MSA] = {}
        self._tree_weights: Optional[Dict[int, float]] = None

    def use_tree(self, tree: GuideTree) -> None:
        """Take tree-based sequence weights from ``tree``."""
        if self.weighting == SeqWeight.CLUSTALW:
            self._tree_weights = clustalw_weights(tree)

    def profile_for(self, msa: MSA) -> Profile:
        """Weighted profile of an alignment under this aligner's scheme."""
        codes = msa.encode(self.scheme.alpha)
        weights = row_weights(msa.ids, codes, self.weighting, self._tree_weights)
        return build_profile(msa.rows, weights, self.scheme, codes=codes)

    def merge(self, left: MSA, right: MSA, left_profile: Profile, right_profile: Profile) -> MSA:
        result = align_profiles(left_profile, right_profile, self.scheme)
        return align_msas_given_path(left, right, result.path)

    def align(
        self,
        sequences: SequenceT[Sequence],
        tree: GuideTree,
        reuse: Optional[Dict[FrozenSet[int], MSA]] = None,
    ) -> MSA:
        """
        Align ``sequences`` following ``tree``.

        Parameters
        ----------
        sequences : sequence of Sequence
            Every leaf's ``seq_id`` must name one of them.
        tree : GuideTree
        reuse : dict, optional
            Alignments of leaf-id sets to take as-is instead of recomputing.

        Returns
        -------
        MSA
            Alignment of all sequences at the root.
        """
        by_id = {s.id: s for s in sequences}
        self.use_tree(tree)

        skip = set()
        if reuse:
            for node in reversed(tree.postorder()):
                if node.index in skip or (not node.is_leaf() and tree.leaf_ids(node) in reuse):
                    skip.update(c.index for c in node.children)

        node_msa: Dict[int, MSA] = {}
        node_profile: Dict[int, Profile] = {}
        reused = 0
        for node in tree.postorder():
            if node.index in skip:
                continue
            if node.is_leaf():
                msa = MSA.from_sequence(by_id[node.seq_id])
            else:
                key = tree.leaf_ids(node)
                if reuse is not None and key in reuse:
                    msa = reuse[key]
                    reused += 1
                else:
                    left, right = node.children
                    msa = self.merge(
                        node_msa[left.index],
                        node_msa[right.index],
                        node_profile[left.index],
                        node_profile[right.index],
                    )
                for child in node.children:
                    node_msa.pop(child.index, None)
                    node_profile.pop(child.index, None)
                self.subtree_alignments[key] = msa
            node_msa[node.index] = msa
            if node is not tree.root:
                node_profile[node.index] = self.profile_for(msa)

        if reused:
            logger.debug("Reused %d unchanged subtree alignments", reused)
        return node_msa[tree.root.index]
