"""
Guide tree construction for progressive alignment
"""
from __future__ import annotations
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Dict, FrozenSet, List, Optional, Tuple, Type, TypeVar, Union

import numpy as np

from ..exceptions import ConfigurationError, InputError
from .distances import DistCalc, MSADistCalc, distance_matrix

if TYPE_CHECKING:
    from ..config import AlignConfig
    from ..multialign.alignment import MSA
    from ..seq_alignment.alphabet import Alpha

logger = logging.getLogger(__name__)

# weight of the mean in biased UPGMA linkage
UPGMB_MEAN_WEIGHT = 0.1


class ClusterMethod(str, Enum):
    UPGMA = "upgma"          # average linkage, size weighted
    UPGMA_MIN = "upgma_min"  # single linkage
    UPGMA_MAX = "upgma_max"  # complete linkage
    WPGMA = "wpgma"          # weighted (simple mean) linkage
    UPGMB = "upgmb"          # 0.1 * mean + 0.9 * min
    NJ = "nj"


class RootMethod(str, Enum):
    PSEUDO = "pseudo"        # root at the final join
    MIDPOINT = "midpoint"


E = TypeVar("E", bound=Enum)


def coerce_method(enum_type: Type[E], value: Union[E, str]) -> E:
    try:
        return enum_type(value)
    except ValueError:
        raise ConfigurationError(f"unknown {enum_type.__name__}: {value!r}") from None


# =========================
# Core tree data structure
# =========================
@dataclass(eq=False)
class TreeNode:
    """A node of a guide tree; leaves carry the sequence id they stand for."""
    name: Optional[str] = None
    branch_length: float = 0.0
    children: List["TreeNode"] = field(default_factory=list)
    parent: Optional["TreeNode"] = None
    seq_id: Optional[int] = None
    index: int = -1

    def is_leaf(self) -> bool:
        return len(self.children) == 0

    def get_leaves(self) -> List["TreeNode"]:
        out: List[TreeNode] = []
        stack = [self]
        while stack:
            node = stack.pop()
            if node.is_leaf():
                out.append(node)
            else:
                stack.extend(reversed(node.children))
        return out


class GuideTree:
    """
    Rooted tree over the input sequences.

    Nodes live in an arena (``nodes``) in post-order; ``node.index`` is the
    node's position in it, so per-node data (profiles, alignments) can be
    kept in plain index-keyed containers.
    """

    def __init__(self, root: TreeNode):
        self.root = root
        root.parent = None
        self.nodes: List[TreeNode] = []
        self._leaf_ids: Dict[int, FrozenSet[int]] = {}
        self._by_seq_id: Dict[int, TreeNode] = {}
        self._index()

    def _index(self) -> None:
        order: List[TreeNode] = []
        stack: List[Tuple[TreeNode, bool]] = [(self.root, False)]
        while stack:
            node, expanded = stack.pop()
            if expanded:
                order.append(node)
                continue
            stack.append((node, True))
            for child in reversed(node.children):
                child.parent = node
                stack.append((child, False))
        for i, node in enumerate(order):
            node.index = i
            if node.is_leaf():
                ids = frozenset([node.seq_id]) if node.seq_id is not None else frozenset()
                if node.seq_id is not None:
                    self._by_seq_id[node.seq_id] = node
            else:
                ids = frozenset().union(*(self._leaf_ids[c.index] for c in node.children))
            self._leaf_ids[i] = ids
        self.nodes = order

    @property
    def node_count(self) -> int:
        return len(self.nodes)

    @property
    def leaf_count(self) -> int:
        return sum(1 for n in self.nodes if n.is_leaf())

    def postorder(self) -> List[TreeNode]:
        return list(self.nodes)

    def leaves(self) -> List[TreeNode]:
        return [n for n in self.nodes if n.is_leaf()]

    def leaf_ids(self, node: Union[TreeNode, int]) -> FrozenSet[int]:
        idx = node if isinstance(node, int) else node.index
        return self._leaf_ids[idx]

    def node_for_id(self, seq_id: int) -> TreeNode:
        return self._by_seq_id[seq_id]

    def is_rooted(self) -> bool:
        return self.root.is_leaf() or len(self.root.children) == 2

    def is_binary(self) -> bool:
        return all(n.is_leaf() or len(n.children) == 2 for n in self.nodes)

    def copy(self) -> "GuideTree":
        clones: Dict[int, TreeNode] = {}
        for node in self.nodes:
            clones[node.index] = TreeNode(
                name=node.name,
                branch_length=node.branch_length,
                seq_id=node.seq_id,
                children=[clones[c.index] for c in node.children],
            )
        return GuideTree(clones[self.root.index])

    def to_newick(self) -> str:
        from .tree_io import to_newick
        return to_newick(self)

    def __repr__(self) -> str:
        return f"GuideTree(leaves={self.leaf_count}, nodes={self.node_count})"


# =========================
# UPGMA family (ultrametric)
# =========================
class UPGMA:
    """
    Agglomerative clustering with a selectable linkage.

    The closest pair of active clusters is joined at height d/2; ties go to
    the lowest (i, j) cluster-slot pair, and the joined cluster reuses slot i.
    """

    def __init__(
        self,
        distance_matrix: np.ndarray,
        taxa_names: List[str],
        ids: Optional[List[int]] = None,
        linkage: ClusterMethod = ClusterMethod.UPGMA,
    ):
        self.distance_matrix = np.asarray(distance_matrix, dtype=float).copy()
        self.taxa_names = list(taxa_names)
        self.ids = list(ids) if ids is not None else list(range(len(self.taxa_names)))
        self.n = len(self.taxa_names)
        if linkage == ClusterMethod.NJ:
            raise ConfigurationError("neighbor joining is not a UPGMA linkage")
        self.linkage = linkage

    def _linked(self, di: np.ndarray, dj: np.ndarray, si: int, sj: int) -> np.ndarray:
        if self.linkage == ClusterMethod.UPGMA:
            return (si * di + sj * dj) / (si + sj)
        if self.linkage == ClusterMethod.WPGMA:
            return (di + dj) / 2.0
        if self.linkage == ClusterMethod.UPGMA_MIN:
            return np.minimum(di, dj)
        if self.linkage == ClusterMethod.UPGMA_MAX:
            return np.maximum(di, dj)
        return UPGMB_MEAN_WEIGHT * (di + dj) / 2.0 + (1.0 - UPGMB_MEAN_WEIGHT) * np.minimum(di, dj)

    def build_tree(self) -> TreeNode:
        clusters: Dict[int, TreeNode] = {
            i: TreeNode(name=nm, seq_id=sid) for i, (nm, sid) in enumerate(zip(self.taxa_names, self.ids))
        }
        sizes = np.ones(self.n, dtype=np.int64)
        height = np.zeros(self.n, dtype=np.float64)
        active = np.ones(self.n, dtype=bool)

        D = self.distance_matrix.copy()
        # only the upper triangle is searched, so argmin yields the lowest (i, j)
        D[np.tril_indices(self.n)] = np.inf

        while len(clusters) > 1:
            flat = int(np.argmin(D))
            min_i, min_j = divmod(flat, self.n)
            min_val = D[min_i, min_j]

            new_h = min_val / 2.0
            node = TreeNode()
            clusters[min_i].branch_length = max(0.0, new_h - height[min_i])
            clusters[min_j].branch_length = max(0.0, new_h - height[min_j])
            clusters[min_i].parent = node
            clusters[min_j].parent = node
            node.children = [clusters[min_i], clusters[min_j]]

            active[min_i] = active[min_j] = False
            others = np.flatnonzero(active)
            active[min_i] = True
            if others.size:
                di = np.minimum(D[min_i, others], D[others, min_i])
                dj = np.minimum(D[min_j, others], D[others, min_j])
                new = self._linked(di, dj, sizes[min_i], sizes[min_j])
                # store in the upper triangle only
                lo = others < min_i
                D[others[lo], min_i] = new[lo]
                D[min_i, others[~lo]] = new[~lo]

            D[min_j, :] = np.inf
            D[:, min_j] = np.inf

            clusters[min_i] = node
            height[min_i] = new_h
            sizes[min_i] += sizes[min_j]
            del clusters[min_j]

        return next(iter(clusters.values()))


# =========================
# Neighbor-Joining (unrooted)
# =========================
class NeighborJoining:
    """
    Neighbor-Joining (Saitou & Nei 1987).

    Does not assume a molecular clock; the last two clusters are joined
    under a pseudo-root with the remaining distance split evenly.
    """

    def __init__(self, distance_matrix: np.ndarray, taxa_names: List[str], ids: Optional[List[int]] = None):
        self.distance_matrix = np.asarray(distance_matrix, dtype=float).copy()
        self.taxa_names = list(taxa_names)
        self.ids = list(ids) if ids is not None else list(range(len(self.taxa_names)))
        self.n = len(self.taxa_names)

    def build_tree(self) -> TreeNode:
        clusters: Dict[int, TreeNode] = {
            i: TreeNode(name=nm, seq_id=sid) for i, (nm, sid) in enumerate(zip(self.taxa_names, self.ids))
        }
        D = self.distance_matrix.copy()

        while len(clusters) > 2:
            ids = sorted(clusters)
            m = len(ids)
            sub = D[np.ix_(ids, ids)]
            row_sum = sub.sum(axis=1)

            q = (m - 2) * sub - row_sum[:, None] - row_sum[None, :]
            q[np.tril_indices(m)] = np.inf
            a_i, b_i = divmod(int(np.argmin(q)), m)
            i, j = ids[a_i], ids[b_i]

            dij = D[i, j]
            li = max(0.0, 0.5 * dij + (row_sum[a_i] - row_sum[b_i]) / (2 * (m - 2)))
            lj = max(0.0, dij - li)

            node = TreeNode()
            clusters[i].branch_length = li
            clusters[j].branch_length = lj
            clusters[i].parent = node
            clusters[j].parent = node
            node.children = [clusters[i], clusters[j]]

            for k in ids:
                if k == i or k == j:
                    continue
                new_dist = max(0.0, 0.5 * (D[i, k] + D[j, k] - dij))
                D[i, k] = new_dist
                D[k, i] = new_dist

            clusters[i] = node
            del clusters[j]

        if len(clusters) == 2:
            a, b = sorted(clusters)
            root = TreeNode()
            half = max(0.0, D[a, b] / 2.0)
            for idx in (a, b):
                clusters[idx].branch_length = half
                clusters[idx].parent = root
            root.children = [clusters[a], clusters[b]]
            return root

        return next(iter(clusters.values()))


# =========================
# Rooting
# =========================
def midpoint_root(tree: GuideTree) -> GuideTree:
    """
    Re-root at the midpoint of the longest leaf-to-leaf path.

    The current root is dissolved (its two edges become one) and a new root
    is placed on the edge holding the midpoint, so the node count is kept.
    """
    if tree.leaf_count < 3:
        return tree

    root = tree.root
    adj: Dict[int, List[Tuple[int, float]]] = {n.index: [] for n in tree.nodes if n is not root}
    for node in tree.nodes:
        if node is root or node.parent is root:
            continue
        adj[node.index].append((node.parent.index, node.branch_length))
        adj[node.parent.index].append((node.index, node.branch_length))
    c1, c2 = root.children
    joined = c1.branch_length + c2.branch_length
    adj[c1.index].append((c2.index, joined))
    adj[c2.index].append((c1.index, joined))

    def farthest(start: int) -> Tuple[int, Dict[int, float], Dict[int, int]]:
        dist = {start: 0.0}
        prev: Dict[int, int] = {}
        stack = [start]
        while stack:
            cur = stack.pop()
            for nb, bl in adj[cur]:
                if nb not in dist:
                    dist[nb] = dist[cur] + bl
                    prev[nb] = cur
                    stack.append(nb)
        leaves = [n.index for n in tree.leaves()]
        best = max(leaves, key=lambda x: (dist[x], -x))
        return best, dist, prev

    u, _, _ = farthest(tree.leaves()[0].index)
    v, dist, prev = farthest(u)
    if u == v or dist[v] <= 0.0:
        # every leaf sits at the same point; any root is a midpoint
        return tree
    half = dist[v] / 2.0

    path = [v]
    while path[-1] != u:
        path.append(prev[path[-1]])
    x, y, to_x, edge = u, v, 0.0, 0.0
    for far, near in zip(path, path[1:]):
        if dist[near] <= half <= dist[far]:
            x, y = near, far
            edge = dist[far] - dist[near]
            to_x = half - dist[near]
            break

    new_root = TreeNode()
    stack: List[Tuple[int, int, float, TreeNode]] = [(y, x, edge - to_x, new_root), (x, y, to_x, new_root)]
    while stack:
        idx, came_from, length, parent = stack.pop()
        src = tree.nodes[idx]
        node = TreeNode(name=src.name, seq_id=src.seq_id, branch_length=length, parent=parent)
        parent.children.append(node)
        for nb, bl in sorted(adj[idx], reverse=True):
            if nb != came_from:
                stack.append((nb, idx, bl, node))

    rooted = GuideTree(new_root)
    if rooted.leaf_ids(rooted.root) != tree.leaf_ids(tree.root) or rooted.leaf_count != tree.leaf_count:
        raise ValueError("midpoint rooting lost or duplicated leaves")
    return rooted


# =========================
# Entry points
# =========================
def build_tree(
    calc: DistCalc,
    cluster: Union[ClusterMethod, str] = ClusterMethod.UPGMB,
    root: Union[RootMethod, str] = RootMethod.PSEUDO,
    n_jobs: int = 1,
) -> GuideTree:
    """
    Cluster the objects of a distance source into a rooted binary tree.

    Parameters
    ----------
    calc : DistCalc
        Distance source; its ids and names label the leaves.
    cluster : ClusterMethod
        Linkage (UPGMA family) or neighbor joining.
    root : RootMethod
        PSEUDO keeps the final join as root; MIDPOINT re-roots.
    n_jobs : int
        Threads used to fill the distance matrix.

    Returns
    -------
    GuideTree
        2N - 1 nodes, leaves bijective with the source's ids.
    """
    cluster = coerce_method(ClusterMethod, cluster)
    root = coerce_method(RootMethod, root)
    n = calc.count
    if n == 0:
        raise InputError("cannot build a tree over zero sequences")

    names = [calc.get_name(i) for i in range(n)]
    ids = [calc.get_id(i) for i in range(n)]
    if n == 1:
        return GuideTree(TreeNode(name=names[0], seq_id=ids[0]))

    D = distance_matrix(calc, n_jobs=n_jobs)
    if cluster == ClusterMethod.NJ:
        top = NeighborJoining(D, names, ids).build_tree()
    else:
        top = UPGMA(D, names, ids, linkage=cluster).build_tree()

    tree = GuideTree(top)
    if root == RootMethod.MIDPOINT:
        tree = midpoint_root(tree)
    logger.info("Built %s guide tree over %d sequences (%s root)", cluster.value, n, root.value)
    return tree


def refit_tree(msa: "MSA", config: "AlignConfig", alpha: "Alpha") -> GuideTree:
    """Second-pass guide tree from the percent identity of an alignment's rows."""
    tc = config.tree
    calc = MSADistCalc(msa, tc.distance2, alpha)
    return build_tree(calc, tc.cluster2, tc.root2, n_jobs=tc.n_jobs)
