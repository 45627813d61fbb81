"""
Sequences and multiple sequence alignments
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Dict, Iterable, List, Mapping, Sequence as SequenceT

import numpy as np

from ..exceptions import InputError
from ..seq_alignment.alphabet import GAP, GAP_CHARS, Alpha, encode, strip_gaps


@dataclass(frozen=True)
class Sequence:
    """An input sequence; ``id`` is assigned at ingestion and kept to output."""
    id: int
    residues: str
    name: str

    def __len__(self) -> int:
        return len(self.residues)


def sequences_from_dict(seqs: Mapping[str, str]) -> List[Sequence]:
    """{name: residues} -> Sequences with ids in insertion order."""
    return [Sequence(i, residues, name) for i, (name, residues) in enumerate(seqs.items())]


def validate_sequences(sequences: Iterable[Sequence]) -> List[Sequence]:
    """
    Check an input set before alignment.

    Raises InputError for an empty set, duplicate ids or names, empty
    sequences, or residues containing gap symbols.
    """
    seqs = list(sequences)
    if not seqs:
        raise InputError("no sequences in input")
    ids = set()
    names = set()
    for s in seqs:
        if s.id in ids:
            raise InputError(f"duplicate sequence id {s.id}")
        if s.name in names:
            raise InputError(f"duplicate sequence name {s.name!r}")
        ids.add(s.id)
        names.add(s.name)
        if not s.residues:
            raise InputError(f"sequence {s.name!r} is empty")
        if any(ch in GAP_CHARS for ch in s.residues):
            raise InputError(f"sequence {s.name!r} contains gap symbols; input must be unaligned")
    return seqs


@dataclass
class MSA:
    """
    Rows of equal length, addressed by sequence id.

    Row order carries no meaning; ``row(id)`` and ``to_dict()`` are the
    stable accessors.
    """
    ids: List[int]
    names: List[str]
    rows: List[str]

    def __post_init__(self):
        if not (len(self.ids) == len(self.names) == len(self.rows)):
            raise ValueError("ids, names and rows must have the same length")
        if self.rows and len({len(r) for r in self.rows}) != 1:
            raise ValueError("alignment rows differ in length")

    @classmethod
    def from_sequence(cls, seq: Sequence) -> "MSA":
        return cls([seq.id], [seq.name], [seq.residues])

    @property
    def seq_count(self) -> int:
        return len(self.rows)

    @property
    def col_count(self) -> int:
        return len(self.rows[0]) if self.rows else 0

    def row(self, seq_id: int) -> str:
        return self.rows[self.ids.index(seq_id)]

    def ungapped(self, seq_id: int) -> str:
        return strip_gaps(self.row(seq_id))

    def to_dict(self) -> Dict[int, str]:
        return dict(zip(self.ids, self.rows))

    def by_name(self) -> Dict[str, str]:
        return dict(zip(self.names, self.rows))

    def encode(self, alpha: Alpha) -> np.ndarray:
        return encode(self.rows, alpha)

    def subset(self, seq_ids: Iterable[int], drop_gap_columns: bool = True) -> "MSA":
        """Rows of ``seq_ids`` (in this alignment's order), all-gap columns removed."""
        wanted = set(seq_ids)
        keep = [i for i, sid in enumerate(self.ids) if sid in wanted]
        sub = MSA([self.ids[i] for i in keep], [self.names[i] for i in keep], [self.rows[i] for i in keep])
        return sub.without_gap_columns() if drop_gap_columns else sub

    def columns(self, start: int, end: int) -> "MSA":
        """Column slice ``[start, end)`` of every row."""
        return MSA(list(self.ids), list(self.names), [r[start:end] for r in self.rows])

    def without_gap_columns(self) -> "MSA":
        if not self.rows:
            return self
        width = self.col_count
        keep = [c for c in range(width) if any(r[c] not in GAP_CHARS for r in self.rows)]
        if len(keep) == width:
            return self
        return MSA(list(self.ids), list(self.names), ["".join(r[c] for c in keep) for r in self.rows])

    def check_against(self, sequences: SequenceT[Sequence]) -> None:
        """Raise ValueError unless every input sequence round-trips through its row."""
        expected = {s.id: s.residues for s in sequences}
        if set(expected) != set(self.ids):
            raise ValueError("alignment ids do not match the input sequences")
        for sid, row in zip(self.ids, self.rows):
            if strip_gaps(row) != expected[sid]:
                raise ValueError(f"row for sequence {sid} does not reproduce its residues")


def align_msas_given_path(left: MSA, right: MSA, path: SequenceT[str]) -> MSA:
    """
    Interleave the rows of two alignments along an edit path.

    ``M`` takes a column from both, ``D`` a left column with gaps in the
    right rows, ``I`` gaps in the left rows with a right column.
    """
    cols_left: List[int] = []
    cols_right: List[int] = []
    il = ir = 0
    for op in path:
        if op == "M":
            cols_left.append(il)
            cols_right.append(ir)
            il += 1
            ir += 1
        elif op == "D":
            cols_left.append(il)
            cols_right.append(-1)
            il += 1
        else:
            cols_left.append(-1)
            cols_right.append(ir)
            ir += 1
    if il != left.col_count or ir != right.col_count:
        raise ValueError("edit path does not cover both alignments")

    rows = ["".join(r[c] if c >= 0 else GAP for c in cols_left) for r in left.rows]
    rows += ["".join(r[c] if c >= 0 else GAP for c in cols_right) for r in right.rows]
    return MSA(left.ids + right.ids, left.names + right.names, rows)


def splice_columns(msa: MSA, start: int, end: int, window: MSA) -> MSA:
    """Replace columns ``[start, end)`` of ``msa`` with the rows of ``window``."""
    by_id = window.to_dict()
    rows = [r[:start] + by_id[sid] + r[end:] for sid, r in zip(msa.ids, msa.rows)]
    return MSA(list(msa.ids), list(msa.names), rows)
