"""
Sequence Alignment Module
Provides alphabets, scoring tables, sequence weights, column profiles
and profile-profile alignment
"""

from .alphabet import Alpha, encode, guess_alpha, resolve_alpha
from .scoring import MatrixName, PPScore, ScoringScheme, TermGaps, default_scheme
from .weights import SeqWeight, clustalw_weights, henikoff_weights
from .profile import Profile, apply_hydrophobicity, build_profile
from .profile_align import EditOp, ProfileAlignment, align_profiles

__all__ = [
    "Alpha",
    "encode",
    "guess_alpha",
    "resolve_alpha",
    "MatrixName",
    "PPScore",
    "ScoringScheme",
    "TermGaps",
    "default_scheme",
    "SeqWeight",
    "clustalw_weights",
    "henikoff_weights",
    "Profile",
    "apply_hydrophobicity",
    "build_profile",
    "EditOp",
    "ProfileAlignment",
    "align_profiles",
]
