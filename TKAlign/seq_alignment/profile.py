"""
Column profiles of (sub-)alignments
- Weighted residue frequencies and occupancy per column
- Position-specific gap-open / gap-close scores
- Hydrophobicity post-processing of gap scores
"""

from __future__ import annotations
from dataclasses import dataclass, replace
from typing import Iterator, NamedTuple, Optional, Sequence

import numpy as np

from .alphabet import GAP_CODE, Alpha, encode, hydrophobic_mask
from .scoring import ScoringScheme, TermGaps
from .weights import normalize

# occupancy above which a column counts as fully occupied
HYDRO_MIN_OCCUPANCY = 0.999


class ProfilePosition(NamedTuple):
    freqs: np.ndarray
    occupancy: float
    gap_open: float
    gap_close: float


@dataclass(eq=False)
class Profile:
    """
    Column-wise summary of one alignment snapshot.

    ``freqs`` is (L, K): the weighted letter distribution of each column
    (rows sum to 1, or 0 when the column holds no letters). ``occupancy`` is
    the weighted fraction of non-gap rows. ``gap_open`` / ``gap_close`` are
    scores (<= 0) charged when a gap run in the other profile starts /
    ends against the column. ``weight`` is the total weight of the rows the
    profile summarizes.
    """
    freqs: np.ndarray
    occupancy: np.ndarray
    gap_open: np.ndarray
    gap_close: np.ndarray
    weight: float = 1.0

    def __len__(self) -> int:
        return int(self.occupancy.shape[0])

    def __getitem__(self, col: int) -> ProfilePosition:
        return ProfilePosition(
            self.freqs[col],
            float(self.occupancy[col]),
            float(self.gap_open[col]),
            float(self.gap_close[col]),
        )

    def __iter__(self) -> Iterator[ProfilePosition]:
        for col in range(len(self)):
            yield self[col]

    def merge(self, other: "Profile", path: Sequence[str]) -> "Profile":
        """
        Combine two profiles along an edit path.

        Columns are weighted by each side's total row weight; a side that
        holds a gap in a path column contributes zero occupancy and no gap
        penalty there.
        """
        wa, wb = self.weight, other.weight
        total = wa + wb
        k = self.freqs.shape[1]
        n = len(path)
        freqs = np.zeros((n, k), dtype=np.float64)
        occ = np.zeros(n, dtype=np.float64)
        g_open = np.zeros(n, dtype=np.float64)
        g_close = np.zeros(n, dtype=np.float64)

        ia = ib = 0
        for col, op in enumerate(path):
            letters_mass = np.zeros(k, dtype=np.float64)
            mass = 0.0
            if op in ("M", "D"):
                letters_mass += wa * self.occupancy[ia] * self.freqs[ia]
                mass += wa * self.occupancy[ia]
                g_open[col] += wa * self.gap_open[ia]
                g_close[col] += wa * self.gap_close[ia]
                ia += 1
            if op in ("M", "I"):
                letters_mass += wb * other.occupancy[ib] * other.freqs[ib]
                mass += wb * other.occupancy[ib]
                g_open[col] += wb * other.gap_open[ib]
                g_close[col] += wb * other.gap_close[ib]
                ib += 1
            occ[col] = mass / total
            if letters_mass.sum() > 0.0:
                freqs[col] = letters_mass / letters_mass.sum()
        return Profile(freqs, occ, g_open / total, g_close / total, total)


def build_profile(
    rows: Sequence[str],
    weights: Optional[Sequence[float]],
    scheme: ScoringScheme,
    codes: Optional[np.ndarray] = None,
) -> Profile:
    """
    Build a profile from equal-length alignment rows.

    Parameters
    ----------
    rows : sequence of str
        Aligned rows (a single ungapped sequence is the degenerate case).
    weights : sequence of float or None
        Per-row weights; None means uniform. Normalized to sum 1.
    scheme : ScoringScheme
        Supplies the alphabet, base gap-open score and hydrophobicity settings.
    codes : ndarray, optional
        Pre-encoded rows, to avoid encoding twice.

    Returns
    -------
    Profile
    """
    if codes is None:
        codes = encode(rows, scheme.alpha)
    n_rows, n_cols = codes.shape
    w = normalize(np.ones(n_rows) if weights is None else np.asarray(weights, dtype=np.float64))

    k = scheme.size
    counts = np.zeros((n_cols, k), dtype=np.float64)
    for x in range(k):
        counts[:, x] = w @ (codes == x).astype(np.float64)

    gaps = codes == GAP_CODE
    occupancy = w @ (~gaps).astype(np.float64)
    letter_total = counts.sum(axis=1, keepdims=True)
    freqs = np.divide(counts, letter_total, out=np.zeros_like(counts), where=letter_total > 0.0)

    prev_gap = np.zeros_like(gaps)
    prev_gap[:, 1:] = gaps[:, :-1]
    next_gap = np.zeros_like(gaps)
    next_gap[:, :-1] = gaps[:, 1:]
    # existing gap runs starting / ending here make new gaps cheaper
    f_start = w @ (gaps & ~prev_gap).astype(np.float64)
    f_end = w @ (gaps & ~next_gap).astype(np.float64)

    half = scheme.gap_open / 2.0
    gap_open = (1.0 - f_start) * half
    gap_close = (1.0 - f_end) * half
    if scheme.term_gaps == TermGaps.HALF and n_cols > 0:
        gap_open[0] *= 0.5
        gap_close[-1] *= 0.5

    profile = Profile(freqs, occupancy, gap_open, gap_close, 1.0)
    if scheme.alpha == Alpha.AMINO and scheme.hydro_run_length > 0:
        profile = apply_hydrophobicity(profile, scheme.hydro_run_length, scheme.hydro_attenuation)
    return profile


def apply_hydrophobicity(
    profile: Profile,
    run_length: int,
    attenuation: float,
    alpha: Alpha = Alpha.AMINO,
) -> Profile:
    """
    Tighten gap scores inside hydrophobic runs.

    A column joins a run when its occupancy exceeds 0.999 and hydrophobic
    letters make up more than half of it. Once a run reaches
    ``run_length`` columns those columns are scaled, and so is every later
    column of the same run. Scaling divides the (negative) gap-open and
    gap-close scores by ``attenuation``. Returns a new profile; a run length
    of 0 returns the input unchanged.
    """
    if run_length <= 0 or len(profile) == 0:
        return profile

    mask = hydrophobic_mask(alpha)
    hydro_cols = (profile.occupancy > HYDRO_MIN_OCCUPANCY) & (profile.freqs[:, mask].sum(axis=1) > 0.5)
    factor = 1.0 / attenuation
    scale = np.ones(len(profile), dtype=np.float64)
    run = 0
    for col, hydro in enumerate(hydro_cols):
        if not hydro:
            run = 0
            continue
        run += 1
        if run == run_length:
            scale[col - run_length + 1: col + 1] = factor
        elif run > run_length:
            scale[col] = factor

    return replace(profile, gap_open=profile.gap_open * scale, gap_close=profile.gap_close * scale)
