"""End-to-end tests of the alignment pipeline."""

import asyncio
import logging

import pytest

from TKAlign import AlignConfig, AlignmentMemoryError, InputError, MSA, align, progressive_msa, progressive_msa_async
from TKAlign.config import RefineConfig, ScoringConfig, TreeConfig
from TKAlign.multialign.alignment import sequences_from_dict
from TKAlign.multialign.progressive import ProgressiveAligner
from TKAlign.multialign.refine import Refiner
from TKAlign.seq_alignment.alphabet import AMINO_LETTERS, Alpha


class TestWorkedExamples:
    def test_single_substitution(self, substitution_pair):
        result = align(substitution_pair)
        assert result.by_name() == {"s1": "ACDEFG", "s2": "ACDFFG"}

    def test_insertion(self, insertion_trio):
        result = align(insertion_trio)
        assert result.msa.col_count == 7
        assert result.aligned[2] == "CWPGGHY"
        insert_cols = [i for i, ch in enumerate(result.aligned[2]) if ch == "G"]
        for sid in (0, 1):
            row = result.aligned[sid]
            assert [i for i, ch in enumerate(row) if ch == "-"] == insert_cols
            assert row == "CWP--HY"

    def test_single_sequence(self, single_sequence):
        result = align(single_sequence)
        assert result.aligned == {0: "MKV"}
        assert result.tree is None
        assert result.newick is None
        assert result.score == 0.0


class TestPipeline:
    def test_no_sequences(self):
        with pytest.raises(InputError, match="no sequences in input"):
            align([])

    def test_round_trip(self, protein_family):
        result = align(protein_family)
        result.msa.check_against(protein_family)
        assert result.alpha == Alpha.AMINO
        assert result.tree.node_count == 2 * len(protein_family) - 1
        assert result.newick.endswith(";")

    def test_nucleotide(self, dna_family):
        result = align(dna_family)
        assert result.alpha == Alpha.DNA
        result.msa.check_against(dna_family)

    def test_progressive_only(self, protein_family):
        config = AlignConfig(refine=RefineConfig(max_iters=1))
        result = align(protein_family, config)
        result.msa.check_against(protein_family)

    def test_horizontal_refinement(self, protein_family):
        config = AlignConfig(refine=RefineConfig(max_iters=4, anchors=False))
        align(protein_family, config).msa.check_against(protein_family)

    def test_refinement_not_worse_than_progressive(self, protein_family):
        def run(iters):
            config = AlignConfig(refine=RefineConfig(max_iters=iters, refine_tree=False, seq_weight2="none"))
            return align(protein_family, config)

        progressive, refined = run(1), run(4)
        assert refined.score >= progressive.score - 1e-9

    def test_unknown_residues_preserved(self):
        seqs = sequences_from_dict({"a": "MKVXBLAW", "b": "MKVLAW", "c": "MRVZLAW"})
        result = align(seqs)
        result.msa.check_against(seqs)

    def test_external_guide_tree(self, insertion_trio):
        result = align(insertion_trio, guide_tree="((a,b),c);")
        assert result.tree.leaf_count == 3
        assert "c" in result.newick
        result.msa.check_against(insertion_trio)

    def test_invalid_guide_tree(self, insertion_trio):
        with pytest.raises(InputError):
            align(insertion_trio, guide_tree="((a,b),z);")

    def test_user_matrix(self, protein_family):
        matrix = {a: {b: (4.0 if a == b else -1.0) for b in AMINO_LETTERS} for a in AMINO_LETTERS}
        config = AlignConfig(scoring=ScoringConfig(user_matrix=matrix))
        align(protein_family, config).msa.check_against(protein_family)

    def test_deterministic(self, protein_family):
        assert align(protein_family).aligned == align(protein_family).aligned



class TestSpecialCases:
    def test_single_sequence_is_not_aligned(self, single_sequence, monkeypatch):
        def boom(*args, **kwargs):
            raise AssertionError("profile alignment should not run")

        monkeypatch.setattr("TKAlign.multialign.progressive.align_profiles", boom)
        monkeypatch.setattr(ProgressiveAligner, "align", boom)
        result = align(single_sequence, AlignConfig(refine=RefineConfig(max_iters=16)))
        assert result.aligned == {0: "MKV"}

    def test_two_sequences_skip_refinement(self, substitution_pair, monkeypatch):
        created = []
        original_init = Refiner.__init__

        def spy(self, *args, **kwargs):
            created.append(args)
            original_init(self, *args, **kwargs)

        def boom(*args, **kwargs):
            raise AssertionError("refinement should not run")

        monkeypatch.setattr(Refiner, "__init__", spy)
        monkeypatch.setattr(Refiner, "refine", boom)
        monkeypatch.setattr(Refiner, "refine_tree", boom)
        result = align(substitution_pair, AlignConfig(refine=RefineConfig(max_iters=16)))
        assert created == []
        assert result.by_name() == {"s1": "ACDEFG", "s2": "ACDFFG"}

    def test_three_sequences_are_refined(self, insertion_trio, monkeypatch):
        created = []
        original_init = Refiner.__init__

        def spy(self, *args, **kwargs):
            created.append(args)
            original_init(self, *args, **kwargs)

        monkeypatch.setattr(Refiner, "__init__", spy)
        align(insertion_trio, AlignConfig(refine=RefineConfig(max_iters=16)))
        assert len(created) == 1


class TestMidpointRooting:
    def test_identical_sequences(self):
        seqs = sequences_from_dict({"x": "MKVLAW", "y": "MKVLAW", "z": "MKVLAW"})
        result = align(seqs, AlignConfig(tree=TreeConfig(root1="midpoint")))
        assert set(result.aligned.values()) == {"MKVLAW"}
        assert result.tree.leaf_ids(result.tree.root) == frozenset([0, 1, 2])

    def test_second_pass_midpoint(self):
        seqs = sequences_from_dict({"s0": "EPSFDDAPVL", "s1": "EPSFDKDAPVL", "s2": "EPSFDAPVL"})
        config = AlignConfig(tree=TreeConfig(cluster2="nj", root2="midpoint"))
        result = align(seqs, config)
        result.msa.check_against(seqs)
        assert result.tree.leaf_count == 3
        assert result.tree.is_binary()


class TestLogging:
    def test_tree_stats_logged(self, protein_family, caplog):
        caplog.set_level(logging.INFO, logger="TKAlign")
        align(protein_family)
        assert "Pass 1 guide tree: 5 leaves" in caplog.text
        assert "Pass 2 guide tree: 5 leaves" in caplog.text

class TestMemoryErrors:
    def test_before_any_alignment(self, protein_family, monkeypatch):
        def boom(self, *args, **kwargs):
            raise MemoryError

        monkeypatch.setattr(ProgressiveAligner, "align", boom)
        with pytest.raises(AlignmentMemoryError) as info:
            align(protein_family)
        assert info.value.best_alignment is None
        assert isinstance(info.value, MemoryError)

    def test_keeps_best_alignment(self, protein_family, monkeypatch):
        def boom(self, *args, **kwargs):
            raise MemoryError

        monkeypatch.setattr(Refiner, "refine", boom)
        with pytest.raises(AlignmentMemoryError) as info:
            align(protein_family)
        assert isinstance(info.value.best_alignment, MSA)
        info.value.best_alignment.check_against(protein_family)


class TestDictConveniences:
    def test_sync(self):
        result = progressive_msa({"x": "ACDEFG", "y": "ACDFFG"})
        assert result.by_name() == {"x": "ACDEFG", "y": "ACDFFG"}

    def test_async(self):
        result = asyncio.run(progressive_msa_async({"x": "MKVLA", "y": "MKVA"}))
        assert set(result.by_name()) == {"x", "y"}

    def test_sync_inside_running_loop(self):
        async def inner():
            return progressive_msa({"x": "MKVLA", "y": "MKVA"})

        result = asyncio.run(inner())
        assert result.msa.seq_count == 2

    def test_errors_propagate_from_thread(self):
        async def inner():
            return progressive_msa({})

        with pytest.raises(InputError):
            asyncio.run(inner())
