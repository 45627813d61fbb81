"""
Pairwise distance estimators for guide-tree construction.

- KmerDistCalc : unaligned sequences, fraction of shared k-mers
  (amino acids in a 6-class compressed alphabet)
- MSADistCalc  : rows of an existing alignment, percent identity with
  Kimura or log correction
- distance_matrix : dense symmetric matrix, optional thread pool
"""
from __future__ import annotations

import logging
import math
from abc import ABC, abstractmethod
from collections import Counter
from concurrent.futures import ThreadPoolExecutor
from enum import Enum
from typing import TYPE_CHECKING, List, Optional, Sequence, Union

import numpy as np

from ..exceptions import ConfigurationError
from ..seq_alignment.alphabet import Alpha, encode, letters

if TYPE_CHECKING:
    from ..multialign.alignment import MSA, Sequence as Seq

logger = logging.getLogger(__name__)


class DistanceMethod(str, Enum):
    KMER = "kmer"
    PCTID_KIMURA = "pctid_kimura"
    PCTID_LOG = "pctid_log"


# =========================
# Distance transforms
# =========================

MAX_KIMURA_DISTANCE = 10.0
MIN_LOG_PCTID = 0.05

_COMPRESSED_AMINO = ("AGPST", "C", "DENQ", "HKR", "ILMV", "FWY")


def kimura_distance(pct_id: Union[float, np.ndarray]) -> Union[float, np.ndarray]:
    """
    Kimura (1983) protein distance from fractional identity.

    d = -ln(1 - p - 0.2 p^2) with p = 1 - pct_id, capped at 10 where the
    logarithm diverges.
    """
    p = 1.0 - np.asarray(pct_id, dtype=np.float64)
    arg = 1.0 - p - 0.2 * p * p
    with np.errstate(divide="ignore", invalid="ignore"):
        d = np.where(arg > math.exp(-MAX_KIMURA_DISTANCE), -np.log(np.maximum(arg, 1e-300)), MAX_KIMURA_DISTANCE)
    d = np.maximum(d, 0.0)
    return float(d) if d.ndim == 0 else d


def log_distance(pct_id: Union[float, np.ndarray]) -> Union[float, np.ndarray]:
    """MAFFT-style distance: -ln(pct_id), identity floored at 0.05."""
    pid = np.maximum(np.asarray(pct_id, dtype=np.float64), MIN_LOG_PCTID)
    d = np.maximum(-np.log(pid), 0.0)
    return float(d) if d.ndim == 0 else d


# =========================
# Distance sources
# =========================

class DistCalc(ABC):
    """
    Source of pairwise distances between ``count`` objects.

    Distances are symmetric and non-negative; ``calc_dist_range(i)`` returns
    the distances from object ``i`` to every ``j < i``.
    """

    @property
    @abstractmethod
    def count(self) -> int:
        ...

    @abstractmethod
    def get_id(self, i: int) -> int:
        ...

    @abstractmethod
    def get_name(self, i: int) -> str:
        ...

    @abstractmethod
    def calc_dist_range(self, i: int) -> np.ndarray:
        ...


class KmerDistCalc(DistCalc):
    """
    k-mer distance between unaligned sequences.

    F is the number of shared k-mers (with multiplicity) divided by the
    number of k-mers in the shorter sequence; the distance is 1 - F.
    k-mers containing unknown symbols are ignored.
    """

    def __init__(self, sequences: Sequence["Seq"], alpha: Alpha, k: Optional[int] = None):
        self._ids = [s.id for s in sequences]
        self._names = [s.name for s in sequences]
        if alpha == Alpha.AMINO:
            self.k = k or 3
            classes = np.full(len(letters(alpha)) + 1, -1, dtype=np.int64)
            for cls, group in enumerate(_COMPRESSED_AMINO):
                for ch in group:
                    classes[letters(alpha).index(ch)] = cls
            base = len(_COMPRESSED_AMINO)
        else:
            self.k = k or 4
            classes = np.append(np.arange(len(letters(alpha)), dtype=np.int64), -1)
            base = len(letters(alpha))
        if self.k < 1:
            raise ConfigurationError(f"k-mer length must be positive, got {self.k}")

        self._profiles: List[Counter] = []
        self._totals: List[int] = []
        for seq in sequences:
            codes = encode([seq.residues], alpha)[0].astype(np.int64)
            reduced = classes[np.where(codes < 0, len(classes) - 1, codes)]
            self._profiles.append(self._count_kmers(reduced, base))
            self._totals.append(max(len(seq.residues) - self.k + 1, 0))

    def _count_kmers(self, reduced: np.ndarray, base: int) -> Counter:
        n = reduced.shape[0] - self.k + 1
        if n <= 0:
            return Counter()
        windows = np.lib.stride_tricks.sliding_window_view(reduced, self.k)
        valid = (windows >= 0).all(axis=1)
        weights = base ** np.arange(self.k - 1, -1, -1, dtype=np.int64)
        keys = windows[valid] @ weights
        return Counter(keys.tolist())

    @property
    def count(self) -> int:
        return len(self._ids)

    def get_id(self, i: int) -> int:
        return self._ids[i]

    def get_name(self, i: int) -> str:
        return self._names[i]

    def _distance(self, i: int, j: int) -> float:
        denom = min(self._totals[i], self._totals[j])
        if denom <= 0:
            return 1.0
        a, b = self._profiles[i], self._profiles[j]
        if len(b) < len(a):
            a, b = b, a
        shared = sum(min(c, b[key]) for key, c in a.items() if key in b)
        return float(min(max(1.0 - shared / denom, 0.0), 1.0))

    def calc_dist_range(self, i: int) -> np.ndarray:
        return np.array([self._distance(i, j) for j in range(i)], dtype=np.float64)


class MSADistCalc(DistCalc):
    """
    Distances between the rows of an alignment.

    Percent identity is taken over columns where both rows hold a letter
    (gaps and unknown symbols excluded), then corrected by ``transform``.
    """

    def __init__(self, msa: "MSA", transform: Union[DistanceMethod, str], alpha: Alpha):
        try:
            transform = DistanceMethod(transform)
        except ValueError:
            raise ConfigurationError(f"unknown distance transform: {transform!r}") from None
        if transform not in (DistanceMethod.PCTID_KIMURA, DistanceMethod.PCTID_LOG):
            raise ConfigurationError(f"invalid distance transform for aligned rows: {transform.value}")
        self.transform = transform
        self._ids = list(msa.ids)
        self._names = list(msa.names)
        codes = encode(msa.rows, alpha)
        self._codes = codes
        self._letter = (codes >= 0) & (codes < len(letters(alpha)))

    @property
    def count(self) -> int:
        return len(self._ids)

    def get_id(self, i: int) -> int:
        return self._ids[i]

    def get_name(self, i: int) -> str:
        return self._names[i]

    def pct_id_range(self, i: int) -> np.ndarray:
        both = self._letter[:i] & self._letter[i]
        same = (self._codes[:i] == self._codes[i]) & both
        n_both = both.sum(axis=1).astype(np.float64)
        n_same = same.sum(axis=1).astype(np.float64)
        return np.divide(n_same, n_both, out=np.zeros_like(n_same), where=n_both > 0)

    def calc_dist_range(self, i: int) -> np.ndarray:
        pid = self.pct_id_range(i)
        if self.transform == DistanceMethod.PCTID_KIMURA:
            return np.atleast_1d(kimura_distance(pid))
        return np.atleast_1d(log_distance(pid))


def distance_matrix(calc: DistCalc, n_jobs: int = 1) -> np.ndarray:
    """
    Dense symmetric distance matrix of a distance source.

    Parameters
    ----------
    calc : DistCalc
    n_jobs : int
        Worker threads used to compute rows; 1 computes serially.

    Returns
    -------
    ndarray (n, n)
        Zero diagonal.
    """
    n = calc.count
    D = np.zeros((n, n), dtype=np.float64)
    if n_jobs > 1 and n > 2:
        with ThreadPoolExecutor(max_workers=n_jobs) as ex:
            rows = list(ex.map(calc.calc_dist_range, range(n)))
    else:
        rows = [calc.calc_dist_range(i) for i in range(n)]
    for i, row in enumerate(rows):
        if i:
            D[i, :i] = row
            D[:i, i] = row
    logger.debug("Distance matrix %dx%d from %s", n, n, type(calc).__name__)
    return D

