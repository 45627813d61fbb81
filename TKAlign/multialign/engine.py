"""
Alignment pipeline
- Ingest and validate, resolve the alphabet, build the scoring scheme
- Pass 1: k-mer guide tree (or a caller-supplied tree) and progressive alignment
- Pass 2: guide tree refitted to the alignment, changed subtrees realigned
- Iterative refinement for the remaining rounds
"""

from __future__ import annotations
import asyncio
import logging
from dataclasses import dataclass
from functools import partial
from threading import Thread
from typing import Dict, Iterable, Optional, Union

from ..config import AlignConfig
from ..exceptions import AlignmentMemoryError
from ..phylogene.distances import KmerDistCalc
from ..phylogene.tree_builder import GuideTree, TreeNode, build_tree
from ..phylogene.tree_io import load_guide_tree, to_newick
from ..phylogene.tree_utils import get_tree_stats
from ..seq_alignment.alphabet import Alpha, resolve_alpha
from ..seq_alignment.scoring import ScoringScheme
from .alignment import MSA, Sequence, sequences_from_dict, validate_sequences
from .objective import objective_score
from .progressive import ProgressiveAligner
from .refine import Refiner

logger = logging.getLogger(__name__)


# -------------------------
# Result
# -------------------------
@dataclass
class MSAResult:
    msa: MSA
    tree: Optional[GuideTree]        # None for a single sequence
    alpha: Alpha
    score: float                     # objective of the final alignment

    @property
    def aligned(self) -> Dict[int, str]:
        """id -> aligned row"""
        return self.msa.to_dict()

    def by_name(self) -> Dict[str, str]:
        return self.msa.by_name()

    @property
    def newick(self) -> Optional[str]:
        return to_newick(self.tree) if self.tree is not None else None


def _log_tree_stats(stage: str, tree: GuideTree) -> None:
    stats = get_tree_stats(tree)
    logger.info(
        "%s guide tree: %d leaves, total branch length %.4f, max depth %.4f, ultrametric=%s",
        stage, stats["n_leaves"], stats["total_branch_length"], stats["max_depth"], stats["is_ultrametric"],
    )


# -------------------------
# Orchestrator
# -------------------------
def align(
    sequences: Iterable[Sequence],
    config: Optional[AlignConfig] = None,
    guide_tree: Union[str, TreeNode, GuideTree, None] = None,
) -> MSAResult:
    """
    Align a set of sequences.

    Parameters
    ----------
    sequences : iterable of Sequence
        Unaligned input; ids and names must be unique.
    config : AlignConfig, optional
        Defaults to ``AlignConfig()``.
    guide_tree : str, TreeNode or GuideTree, optional
        External guide tree, matched to the sequences by leaf label. When
        given it replaces the pass-1 tree and pass 2 is skipped.

    Returns
    -------
    MSAResult

    Raises
    ------
    InputError
        Empty or malformed input, or an invalid guide tree.
    ConfigurationError
        Inconsistent configuration.
    AlignmentMemoryError
        Memory ran out; ``best_alignment`` holds the best alignment so far.
    """
    config = config or AlignConfig()
    seqs = validate_sequences(sequences)
    alpha = resolve_alpha(config.scoring.alpha, (s.residues for s in seqs))
    scheme = ScoringScheme.from_config(config, alpha)
    alpha = scheme.alpha
    logger.info("Aligning %d sequences (%s, %s scoring)", len(seqs), alpha.value, scheme.ppscore.value)

    if len(seqs) == 1:
        return MSAResult(MSA.from_sequence(seqs[0]), None, alpha, 0.0)

    best: Optional[MSA] = None
    try:
        if guide_tree is not None:
            tree = load_guide_tree(guide_tree, seqs)
        else:
            tc = config.tree
            calc = KmerDistCalc(seqs, alpha, k=tc.kmer_length)
            tree = build_tree(calc, tc.cluster1, tc.root1, n_jobs=tc.n_jobs)
        _log_tree_stats("Pass 1", tree)

        aligner = ProgressiveAligner(scheme, config.refine.seq_weight1)
        best = aligner.align(seqs, tree)
        logger.info("Pass 1 complete: %d columns", best.col_count)

        rc = config.refine
        if rc.max_iters > 1 and len(seqs) > 2:
            refiner = Refiner(scheme, config, seqs)
            if guide_tree is None and rc.refine_tree:
                tree, best = refiner.refine_tree(best, tree, aligner.subtree_alignments)
                _log_tree_stats("Pass 2", tree)
            if rc.max_iters > 2:
                best = refiner.refine(best, tree, rc.max_iters - 2)
    except MemoryError as exc:
        logger.error("Out of memory during alignment")
        raise AlignmentMemoryError("out of memory during alignment", best_alignment=best) from exc

    return MSAResult(best, tree, alpha, objective_score(best, scheme))


# -------------------------
# Dict conveniences
# -------------------------
async def progressive_msa_async(
    sequences: Dict[str, str],
    config: Optional[AlignConfig] = None,
    guide_tree: Union[str, TreeNode, GuideTree, None] = None,
) -> MSAResult:
    """
    Align ``{name: residues}`` without blocking the running event loop.

    The alignment runs in the loop's default executor.
    """
    loop = asyncio.get_running_loop()
    job = partial(align, sequences_from_dict(sequences), config, guide_tree)
    return await loop.run_in_executor(None, job)


def progressive_msa(
    sequences: Dict[str, str],
    config: Optional[AlignConfig] = None,
    guide_tree: Union[str, TreeNode, GuideTree, None] = None,
) -> MSAResult:
    """
    Synchronous wrapper:
    - no running event loop: asyncio.run()
    - inside a running loop (e.g. Jupyter): run the coroutine on its own thread
    """
    try:
        asyncio.get_running_loop()
    except RuntimeError:
        return asyncio.run(progressive_msa_async(sequences, config, guide_tree))

    holder: Dict[str, object] = {}

    def runner():
        try:
            holder["res"] = asyncio.run(progressive_msa_async(sequences, config, guide_tree))
        except BaseException as exc:
            holder["err"] = exc

    t = Thread(target=runner, daemon=True)
    t.start(); t.join()
    if "err" in holder:
        raise holder["err"]
    return holder["res"]
