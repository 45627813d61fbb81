"""Configuration for TKAlign runs.

A single AlignConfig is built per run and handed explicitly to every
component; nothing is read from process-wide state.
"""

from __future__ import annotations

from pathlib import Path
from typing import Dict, Optional, Union

import yaml
from pydantic import BaseModel, Field, field_validator

from .phylogene.distances import DistanceMethod
from .phylogene.tree_builder import ClusterMethod, RootMethod
from .seq_alignment.alphabet import Alpha
from .seq_alignment.scoring import MatrixName, PPScore, TermGaps
from .seq_alignment.weights import SeqWeight


class ScoringConfig(BaseModel):
    """Alphabet, substitution table and gap scores."""

    alpha: Alpha = Field(default=Alpha.AUTO, description="Residue alphabet; auto guesses from input")
    ppscore: Optional[PPScore] = Field(
        default=None,
        description="Profile-profile scoring; default LE for amino, SPN for nucleotides",
    )
    matrix_name: MatrixName = Field(
        default=MatrixName.VTML240,
        description="Built-in amino sum-of-pairs table used with ppscore=sp",
    )
    user_matrix: Optional[Dict[str, Dict[str, float]]] = Field(
        default=None,
        description="Substitution matrix {a: {b: score}}; forces amino alphabet and SP scoring",
    )
    gap_open: Optional[float] = Field(default=None, description="Gap-open score (<= 0); table default if unset")
    gap_extend: Optional[float] = Field(default=None, description="Gap-extend score (<= 0); table default if unset")
    term_gaps: TermGaps = Field(default=TermGaps.HALF, description="Penalty applied to terminal gaps")

    @field_validator("gap_open", "gap_extend")
    @classmethod
    def _non_positive(cls, v: Optional[float]) -> Optional[float]:
        if v is not None and v > 0:
            raise ValueError("gap scores are penalties and must be <= 0")
        return v


class HydroConfig(BaseModel):
    """Hydrophobicity gap heuristic."""

    run_length: int = Field(default=5, ge=0, description="Minimum hydrophobic run; 0 disables")
    attenuation: float = Field(
        default=1.0 / 1.2,
        description="Gap scores in hydrophobic runs are divided by this factor (0 < a <= 1)",
    )

    @field_validator("attenuation")
    @classmethod
    def _attenuation_range(cls, v: float) -> float:
        if not 0.0 < v <= 1.0:
            raise ValueError("attenuation must be in (0, 1]")
        return v


class TreeConfig(BaseModel):
    """Guide tree construction for both passes."""

    distance1: DistanceMethod = Field(default=DistanceMethod.KMER, description="Pass-1 distance (unaligned)")
    distance2: DistanceMethod = Field(
        default=DistanceMethod.PCTID_KIMURA,
        description="Pass-2 distance (aligned rows)",
    )
    cluster1: ClusterMethod = Field(default=ClusterMethod.UPGMB)
    cluster2: ClusterMethod = Field(default=ClusterMethod.UPGMB)
    root1: RootMethod = Field(default=RootMethod.PSEUDO)
    root2: RootMethod = Field(default=RootMethod.PSEUDO)
    kmer_length: Optional[int] = Field(default=None, ge=1, description="k for k-mer distance; alphabet default")
    n_jobs: int = Field(default=1, ge=1, description="Threads used to fill distance matrices")

    @field_validator("distance1")
    @classmethod
    def _unaligned_distance(cls, v: DistanceMethod) -> DistanceMethod:
        if v != DistanceMethod.KMER:
            raise ValueError("pass-1 distance must be kmer (sequences are not aligned yet)")
        return v


class RefineConfig(BaseModel):
    """Iteration budget and refinement strategy."""

    max_iters: int = Field(default=16, ge=1, description="1 = progressive only; n > 2 gives n - 2 refinement rounds")
    refine_tree: bool = Field(default=True, description="Rebuild the guide tree from the first alignment")
    anchors: bool = Field(default=True, description="Vertical (anchor) refinement instead of horizontal")
    anchor_min_occupancy: float = Field(default=1.0, ge=0.0, le=1.0)
    anchor_min_conservation: float = Field(default=1.0, ge=0.0, le=1.0)
    window_size: int = Field(default=32, ge=2, description="Column window of horizontal refinement")
    seq_weight1: SeqWeight = Field(default=SeqWeight.CLUSTALW, description="Weights for progressive alignment")
    seq_weight2: SeqWeight = Field(default=SeqWeight.CLUSTALW, description="Weights for refinement")


class AlignConfig(BaseModel):
    """Complete configuration of one alignment run."""

    scoring: ScoringConfig = Field(default_factory=ScoringConfig)
    hydro: HydroConfig = Field(default_factory=HydroConfig)
    tree: TreeConfig = Field(default_factory=TreeConfig)
    refine: RefineConfig = Field(default_factory=RefineConfig)

    @classmethod
    def from_yaml(cls, path: Union[str, Path]) -> "AlignConfig":
        """Load configuration from a YAML file."""
        with open(path) as f:
            data = yaml.safe_load(f) or {}
        return cls(**data)

    def to_yaml(self, path: Union[str, Path]) -> None:
        """Save configuration to a YAML file."""
        with open(path, "w") as f:
            yaml.safe_dump(self.to_dict(), f, default_flow_style=False)

    def to_dict(self) -> dict:
        """Convert configuration to a plain dictionary."""
        return self.model_dump(mode="json")
