"""
Guide tree reading and writing (Newick format)
"""
from __future__ import annotations
import logging
from typing import TYPE_CHECKING, Dict, List, Optional, Sequence, Tuple, Union

from ..exceptions import InputError
from .tree_builder import GuideTree, TreeNode

if TYPE_CHECKING:
    from ..multialign.alignment import Sequence as Seq

logger = logging.getLogger(__name__)

_DELIMS = ":,();"


def _add_child(parent: TreeNode) -> TreeNode:
    child = TreeNode(parent=parent)
    parent.children.append(child)
    return child


def parse_newick(newick_str: str) -> TreeNode:
    """
    Parse a Newick string into a tree of TreeNode.

    Args:
        newick_str: Newick text, e.g. ``"((A:0.1,B:0.2):0.05,C:0.3);"``.
            Labels may be single-quoted; internal labels are kept.

    Returns:
        TreeNode: Root of the parsed tree (no sequence ids assigned).

    Raises:
        InputError: on unbalanced parentheses, bad branch lengths or
            trailing text.

    Example:
        >>> root = parse_newick("(A:0.1,B:0.2);")
        >>> root.children[0].name
        'A'
    """
    s = "".join(newick_str.split()) if "'" not in newick_str else newick_str.strip()
    s = s.rstrip(";")
    if not s:
        raise InputError("empty Newick string")

    def read_label(pos: int) -> Tuple[str, int]:
        if pos < len(s) and s[pos] == "'":
            end = s.find("'", pos + 1)
            if end < 0:
                raise InputError(f"unterminated quoted label at position {pos}")
            return s[pos + 1:end], end + 1
        end = pos
        while end < len(s) and s[end] not in _DELIMS:
            end += 1
        return s[pos:end].strip(), end

    def close_node(node: TreeNode, pos: int) -> int:
        label, pos = read_label(pos)
        node.name = label or None
        if pos < len(s) and s[pos] == ":":
            pos += 1
            end = pos
            while end < len(s) and s[end] not in ",()":
                end += 1
            try:
                node.branch_length = float(s[pos:end])
            except ValueError:
                raise InputError(f"bad branch length {s[pos:end]!r} in Newick string") from None
            pos = end
        return pos

    root = node = TreeNode()
    open_nodes: List[TreeNode] = []
    pos = 0
    done = False
    while not done:
        if pos < len(s) and s[pos] == "(":
            open_nodes.append(node)
            node = _add_child(node)
            pos += 1
            continue
        # node is complete up to its label; close it and any groups ending here
        while True:
            pos = close_node(node, pos)
            if not open_nodes:
                done = True
                break
            if pos >= len(s):
                raise InputError("unbalanced parentheses in Newick string")
            if s[pos] == ",":
                node = _add_child(open_nodes[-1])
                pos += 1
                break
            if s[pos] == ")":
                node = open_nodes.pop()
                pos += 1
                continue
            raise InputError(f"unexpected {s[pos]!r} at position {pos} in Newick string")

    if pos != len(s):
        raise InputError(f"trailing text after Newick tree: {s[pos:]!r}")
    root.parent = None
    return root


def to_newick(tree: Union[GuideTree, TreeNode], include_branch_lengths: bool = True) -> str:
    """
    Convert a tree to a Newick string (terminated by ``;``).

    Args:
        tree: GuideTree or root TreeNode.
        include_branch_lengths: Whether to write ``:length`` suffixes.
    """
    root = tree.root if isinstance(tree, GuideTree) else tree

    text: Dict[TreeNode, str] = {}
    stack: List[Tuple[TreeNode, bool]] = [(root, False)]
    while stack:
        node, expanded = stack.pop()
        if not expanded and not node.is_leaf():
            stack.append((node, True))
            stack.extend((child, False) for child in reversed(node.children))
            continue
        if node.is_leaf():
            out = _quote(node.name or "")
        else:
            out = "(" + ",".join(text.pop(child) for child in node.children) + ")"
        if include_branch_lengths and node is not root:
            out += f":{node.branch_length:.6f}"
        text[node] = out

    return text[root] + ";"


def _quote(name: str) -> str:
    if any(ch in name for ch in _DELIMS + " '"):
        return "'" + name.replace("'", "") + "'"
    return name


def load_guide_tree(
    tree: Union[str, TreeNode, GuideTree],
    sequences: Sequence["Seq"],
) -> GuideTree:
    """
    Validate an externally supplied tree against the input sequences.

    Args:
        tree: Newick text or an already parsed tree.
        sequences: The run's input sequences; leaves are matched by name.

    Returns:
        GuideTree: A fresh tree whose leaves carry the sequences' ids.

    Raises:
        InputError: if the tree is unrooted or not binary, its leaf count
            differs from the number of sequences, a label names no sequence,
            or a sequence is not reached by any leaf.
    """
    if isinstance(tree, str):
        root = parse_newick(tree)
    elif isinstance(tree, GuideTree):
        root = tree.root
    else:
        root = tree

    if not root.is_leaf() and len(root.children) != 2:
        raise InputError("guide tree must be rooted (binary root)")

    n_leaves = len(root.get_leaves())
    if n_leaves != len(sequences):
        raise InputError(f"guide tree has {n_leaves} leaves but there are {len(sequences)} sequences")

    by_name: Dict[str, int] = {s.name: s.id for s in sequences}
    seen: Dict[int, str] = {}
    copied: Optional[TreeNode] = None
    stack: List[Tuple[TreeNode, Optional[TreeNode]]] = [(root, None)]
    while stack:
        node, parent = stack.pop()
        if node.is_leaf():
            label = node.name or ""
            if label not in by_name:
                raise InputError(f"guide tree label {label!r} does not match any sequence")
            seq_id = by_name[label]
            if seq_id in seen:
                raise InputError(f"guide tree label {label!r} appears more than once")
            seen[seq_id] = label
            out = TreeNode(name=label, branch_length=node.branch_length, seq_id=seq_id)
        else:
            if len(node.children) != 2:
                raise InputError(f"guide tree must be binary; node has {len(node.children)} children")
            out = TreeNode(name=node.name, branch_length=node.branch_length)
            stack.extend((child, out) for child in reversed(node.children))
        if parent is None:
            copied = out
        else:
            out.parent = parent
            parent.children.append(out)

    guide = GuideTree(copied)
    missing = [s.name for s in sequences if s.id not in seen]
    if missing:
        raise InputError(f"sequence {missing[0]!r} not found in guide tree")
    logger.info("Loaded external guide tree with %d leaves", guide.leaf_count)
    return guide
