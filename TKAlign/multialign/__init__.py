"""
Multiple Alignment Module
Progressive alignment, iterative refinement and the end-to-end pipeline
"""

from .alignment import MSA, Sequence, sequences_from_dict, validate_sequences
from .objective import objective_score
from .progressive import ProgressiveAligner
from .refine import Refiner
from .engine import MSAResult, align, progressive_msa, progressive_msa_async
from .analysis import conservation_scores, consensus, profile_counts, profile_frequencies

__all__ = [
    "MSA",
    "Sequence",
    "sequences_from_dict",
    "validate_sequences",
    "objective_score",
    "ProgressiveAligner",
    "Refiner",
    "MSAResult",
    "align",
    "progressive_msa",
    "progressive_msa_async",
    "conservation_scores",
    "consensus",
    "profile_counts",
    "profile_frequencies",
]
