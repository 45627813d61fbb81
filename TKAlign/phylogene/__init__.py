"""
Phylogenetics Module
Distance estimators, guide-tree construction and Newick I/O
Plotting: TKAlign.phylogene.tree_plot
"""

from .distances import DistCalc, DistanceMethod, KmerDistCalc, MSADistCalc, distance_matrix
from .tree_builder import (
    ClusterMethod,
    GuideTree,
    NeighborJoining,
    RootMethod,
    TreeNode,
    UPGMA,
    build_tree,
    midpoint_root,
    refit_tree,
)
from .tree_io import load_guide_tree, parse_newick, to_newick
from .tree_utils import get_tree_stats, ladderize, robinson_foulds

__all__ = [
    "DistCalc",
    "DistanceMethod",
    "KmerDistCalc",
    "MSADistCalc",
    "distance_matrix",
    "ClusterMethod",
    "GuideTree",
    "NeighborJoining",
    "RootMethod",
    "TreeNode",
    "UPGMA",
    "build_tree",
    "midpoint_root",
    "refit_tree",
    "load_guide_tree",
    "parse_newick",
    "to_newick",
    "get_tree_stats",
    "ladderize",
    "robinson_foulds",
]
