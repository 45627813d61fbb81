"""Tests for tree utilities."""

import pytest

from TKAlign.multialign.alignment import sequences_from_dict
from TKAlign.phylogene.tree_io import load_guide_tree
from TKAlign.phylogene.tree_utils import edge_splits, get_tree_stats, ladderize, robinson_foulds


@pytest.fixture
def abcd():
    return sequences_from_dict({"A": "MKV", "B": "MKI", "C": "MRV", "D": "WWW"})


class TestEdgeSplits:
    def test_every_edge_once(self, abcd):
        tree = load_guide_tree("((A,B),(C,D));", abcd)
        splits = edge_splits(tree)
        # 6 edges, the two root edges induce the same split
        assert len(splits) == 5
        for _, (below, above) in splits:
            assert below | above == frozenset(range(4))
            assert not below & above

    def test_single_leaf(self):
        seqs = sequences_from_dict({"A": "MKV"})
        assert edge_splits(load_guide_tree("A;", seqs)) == []


class TestRobinsonFoulds:
    def test_identical(self, abcd):
        t = load_guide_tree("((A,B),(C,D));", abcd)
        assert robinson_foulds(t, t) == 0

    def test_rerooted_is_same(self, abcd):
        t1 = load_guide_tree("((A,B),(C,D));", abcd)
        t2 = load_guide_tree("(A,(B,(C,D)));", abcd)
        assert robinson_foulds(t1, t2) == 0

    def test_different(self, abcd):
        t1 = load_guide_tree("((A,B),(C,D));", abcd)
        t2 = load_guide_tree("((A,C),(B,D));", abcd)
        assert robinson_foulds(t1, t2) == 2


class TestLadderize:
    def test_does_not_mutate(self, abcd):
        tree = load_guide_tree("(((A,B),C),D);", abcd)
        before = tree.to_newick()
        out = ladderize(tree)
        assert tree.to_newick() == before
        assert out.root.children[0].is_leaf()

    def test_reverse(self, abcd):
        tree = load_guide_tree("(D,((A,B),C));", abcd)
        out = ladderize(tree, reverse=True)
        assert not out.root.children[0].is_leaf()


class TestTreeStats:
    def test_counts(self, abcd):
        stats = get_tree_stats(load_guide_tree("((A:1,B:1):1,(C:2,D:2):0);", abcd))
        assert stats["n_leaves"] == 4
        assert stats["n_internal_nodes"] == 3
        assert stats["total_branch_length"] == pytest.approx(7.0)
        assert stats["max_depth"] == pytest.approx(2.0)
        assert stats["is_ultrametric"]
