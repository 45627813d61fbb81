"""
Guide tree plotting (rectangular phylogram)
"""
import math
from typing import Dict, Optional, Tuple

import matplotlib.pyplot as plt

from .tree_builder import GuideTree
from .tree_utils import ladderize


def _scalebar_length(x: float) -> float:
    """Round length of 1, 2 or 5 times a power of ten."""
    if x <= 0 or math.isinf(x) or math.isnan(x):
        return 1.0
    k = math.floor(math.log10(x))
    f = x / (10 ** k)
    for step in (1.0, 2.0, 5.0):
        if f < step * 1.5:
            return step * (10 ** k)
    return 10.0 ** (k + 1)


def tree_coordinates(tree: GuideTree) -> Dict[int, Tuple[float, float]]:
    """
    Drawing coordinates keyed by node index.

    x is the summed branch length from the root; leaves get consecutive
    integer y in depth-first order and internal nodes sit at the mean y
    of their children.
    """
    coords: Dict[int, Tuple[float, float]] = {}
    x: Dict[int, float] = {}
    for node in reversed(tree.postorder()):
        x[node.index] = 0.0 if node.parent is None else x[node.parent.index] + max(node.branch_length, 0.0)
    y_next = 0
    for node in tree.postorder():
        if node.is_leaf():
            coords[node.index] = (x[node.index], float(y_next))
            y_next += 1
        else:
            ys = [coords[c.index][1] for c in node.children]
            coords[node.index] = (x[node.index], sum(ys) / len(ys))
    return coords


def plot_guide_tree(
    tree: GuideTree,
    figsize: Tuple[int, int] = (10, 8),
    show_branch_lengths: bool = False,
    font_size: int = 10,
    title: Optional[str] = None,
    scalebar: bool = True,
    pretty_order: bool = True,
    tip_padding: float = 0.02,
) -> plt.Figure:
    """
    Draw a guide tree as a rectangular phylogram.

    Sequence names are printed at the tips; axes are hidden. With
    ``pretty_order`` the tree is ladderized before drawing.
    """
    if pretty_order:
        tree = ladderize(tree)
    fig, ax = plt.subplots(figsize=figsize)
    coords = tree_coordinates(tree)

    for node in tree.postorder():
        x0, y0 = coords[node.index]
        for child in node.children:
            x1, y1 = coords[child.index]
            ax.plot([x0, x1], [y1, y1], "k-", lw=1.5)
            ax.plot([x0, x0], [y0, y1], "k-", lw=1.5)
            if show_branch_lengths and child.branch_length > 0:
                ax.text((x0 + x1) / 2.0, y1 + 0.2, f"{child.branch_length:.3f}",
                        ha="center", va="bottom", fontsize=font_size - 2)

    max_x = max(x for (x, _) in coords.values())
    span = max_x if max_x > 0 else 1.0
    leaves = tree.leaves()
    for leaf in leaves:
        lx, ly = coords[leaf.index]
        ax.text(lx + tip_padding * span, ly, leaf.name or str(leaf.seq_id),
                va="center", ha="left", fontsize=font_size)

    ax.set_xlim(-0.02 * span, span * (1.05 + tip_padding * 5))
    ymin, ymax = -0.5, len(leaves) - 0.5
    ax.set_ylim(ymin, ymax)
    ax.axis("off")

    if scalebar and max_x > 0:
        bar = _scalebar_length(max_x / 20.0)
        bx = max_x * 0.02
        by = ymin + 0.05 * (ymax - ymin)
        ax.plot([bx, bx + bar], [by, by], "k-", lw=2)
        ax.text(bx + bar / 2, by - 0.03 * (ymax - ymin), f"{bar:g}", ha="center", va="top", fontsize=font_size)

    if title:
        ax.set_title(title, fontsize=font_size + 2, fontweight="bold")
    fig.tight_layout()
    return fig
