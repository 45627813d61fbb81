"""
TKAlign
Progressive multiple sequence alignment with iterative refinement
"""

from .config import AlignConfig, HydroConfig, RefineConfig, ScoringConfig, TreeConfig
from .exceptions import AlignmentMemoryError, ConfigurationError, InputError, TKAlignError
from .multialign import MSA, MSAResult, Sequence, align, progressive_msa, progressive_msa_async
from .seq_alignment import Alpha

__version__ = "0.1.0"

__all__ = [
    "AlignConfig",
    "HydroConfig",
    "RefineConfig",
    "ScoringConfig",
    "TreeConfig",
    "AlignmentMemoryError",
    "ConfigurationError",
    "InputError",
    "TKAlignError",
    "MSA",
    "MSAResult",
    "Sequence",
    "align",
    "progressive_msa",
    "progressive_msa_async",
    "Alpha",
]
