"""
Utility functions for guide tree analysis
"""
from typing import Dict, FrozenSet, List, Set, Tuple

from .tree_builder import GuideTree, TreeNode

Split = Tuple[FrozenSet[int], FrozenSet[int]]


def edge_splits(tree: GuideTree) -> List[Tuple[TreeNode, Split]]:
    """
    Bipartitions of the sequence ids induced by cutting each edge.

    Every non-root node contributes the edge to its parent, in post-order.
    The root's two edges induce the same split, so only the first is
    listed.

    Returns:
        List of ``(node, (ids_below, ids_above))``.

    Example:
        >>> for node, (below, above) in edge_splits(tree):
        ...     print(sorted(below), sorted(above))
    """
    everything = tree.leaf_ids(tree.root)
    out: List[Tuple[TreeNode, Split]] = []
    skip = tree.root.children[-1] if len(tree.root.children) == 2 else None
    for node in tree.postorder():
        if node is tree.root or node is skip:
            continue
        below = tree.leaf_ids(node)
        above = everything - below
        if below and above:
            out.append((node, (below, above)))
    return out


def _normalized_splits(tree: GuideTree) -> Set[FrozenSet[int]]:
    splits = set()
    for _, (below, above) in edge_splits(tree):
        if len(below) < len(above) or (len(below) == len(above) and min(below) < min(above)):
            splits.add(below)
        else:
            splits.add(above)
    return splits


def robinson_foulds(tree1: GuideTree, tree2: GuideTree) -> int:
    """
    Robinson-Foulds distance: number of splits present in only one tree.

    Example:
        >>> robinson_foulds(tree, tree)
        0
    """
    return len(_normalized_splits(tree1) ^ _normalized_splits(tree2))


def ladderize(tree: GuideTree, reverse: bool = False) -> GuideTree:
    """
    Sort each node's children by number of descendant leaves.

    Returns a re-indexed copy; the input tree is left untouched.
    """
    tree = tree.copy()
    for node in tree.postorder():
        if not node.is_leaf():
            node.children.sort(key=lambda c: len(tree.leaf_ids(c)), reverse=reverse)
    return GuideTree(tree.root)


def get_tree_stats(tree: GuideTree, tolerance: float = 1e-6) -> Dict:
    """
    Calculate summary statistics of a guide tree

    Returns:
        Dict with n_leaves, n_internal_nodes, total_branch_length,
        max_depth and is_ultrametric.

    Example:
        >>> stats = get_tree_stats(tree)
        >>> print(f"Tree has {stats['n_leaves']} leaves")
    """
    depth: Dict[int, float] = {}
    for node in reversed(tree.postorder()):
        if node.parent is None:
            depth[node.index] = 0.0
        else:
            depth[node.index] = depth[node.parent.index] + node.branch_length

    leaf_depths = [depth[leaf.index] for leaf in tree.leaves()]
    total = sum(n.branch_length for n in tree.nodes if n is not tree.root)
    return {
        "n_leaves": len(leaf_depths),
        "n_internal_nodes": tree.node_count - len(leaf_depths),
        "total_branch_length": total,
        "max_depth": max(leaf_depths) if leaf_depths else 0.0,
        "is_ultrametric": (max(leaf_depths) - min(leaf_depths) < tolerance) if leaf_depths else True,
    }
