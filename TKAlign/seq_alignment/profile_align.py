"""
Profile-profile alignment with position-specific affine gaps
- Three-state global DP (match / gap in right / gap in left)
- Deterministic tie-breaking: match, then gap-in-right, then gap-in-left;
  opening a gap is preferred over extending one
"""

from __future__ import annotations
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import List

from ..exceptions import ConfigurationError
from .profile import Profile
from .scoring import ScoringScheme

logger = logging.getLogger(__name__)

_NEG = float("-inf")

# traceback state codes
_M, _D, _I = 0, 1, 2


class EditOp(str, Enum):
    """One column of a profile-profile alignment."""
    MATCH = "M"     # column from both profiles
    DELETE = "D"    # left column, gap in right
    INSERT = "I"    # gap in left, right column


EditPath = List[EditOp]


@dataclass
class ProfileAlignment:
    """Result of aligning two profiles."""
    path: EditPath = field(default_factory=list)
    score: float = 0.0
    profile: Profile = None

    @property
    def cigar(self) -> str:
        """Run-length encoded edit path, e.g. ``3M2I4M``."""
        ops: list[tuple[str, int]] = []
        for op in self.path:
            if ops and ops[-1][0] == op.value:
                ops[-1] = (op.value, ops[-1][1] + 1)
            else:
                ops.append((op.value, 1))
        return "".join(f"{count}{op}" for op, count in ops)


def align_profiles(a: Profile, b: Profile, scheme: ScoringScheme) -> ProfileAlignment:
    """
    Globally align profile ``a`` (left) to profile ``b`` (right).

    A gap run in the right profile spanning left columns ``i..k`` scores
    ``a.gap_open[i] + a.gap_close[k] + extend * (k - i)``; gap runs in the
    left profile are scored symmetrically from ``b``. A gap run in one
    profile is never directly followed by a gap run in the other.

    Parameters
    ----------
    a, b : Profile
        Profiles with at least one column each.
    scheme : ScoringScheme
        Column scoring and gap-extend score.

    Returns
    -------
    ProfileAlignment
        Edit path, optimal score and the merged profile.
    """
    n, m = len(a), len(b)
    if n == 0 or m == 0:
        raise ConfigurationError(f"cannot align an empty profile (lengths {n} and {m})")

    S = scheme.column_scores(a.freqs, a.occupancy, b.freqs, b.occupancy).tolist()
    # 1-based copies so that index i refers to column i
    open_a = [0.0] + a.gap_open.tolist()
    close_a = [0.0] + a.gap_close.tolist()
    open_b = [0.0] + b.gap_open.tolist()
    close_b = [0.0] + b.gap_close.tolist()
    ext = float(scheme.gap_extend)

    tb_m = [bytearray(m + 1) for _ in range(n + 1)]
    tb_d = [bytearray(m + 1) for _ in range(n + 1)]
    tb_i = [bytearray(m + 1) for _ in range(n + 1)]

    # row 0: only leading gaps in the left profile
    M_prev = [_NEG] * (m + 1)
    D_prev = [_NEG] * (m + 1)
    I_prev = [_NEG] * (m + 1)
    M_prev[0] = 0.0
    for j in range(1, m + 1):
        opened = M_prev[j - 1] + open_b[j]
        extended = I_prev[j - 1] + ext
        if opened >= extended:
            I_prev[j] = opened
            tb_i[0][j] = _M
        else:
            I_prev[j] = extended
            tb_i[0][j] = _I

    for i in range(1, n + 1):
        M_cur = [_NEG] * (m + 1)
        D_cur = [_NEG] * (m + 1)
        I_cur = [_NEG] * (m + 1)
        row_s = S[i - 1]
        row_tb_m, row_tb_d, row_tb_i = tb_m[i], tb_d[i], tb_i[i]
        oa, ca_prev = open_a[i], close_a[i - 1]

        opened = M_prev[0] + oa
        extended = D_prev[0] + ext
        if opened >= extended:
            D_cur[0] = opened
            row_tb_d[0] = _M
        else:
            D_cur[0] = extended
            row_tb_d[0] = _D

        for j in range(1, m + 1):
            best = M_prev[j - 1]
            src = _M
            v = D_prev[j - 1] + ca_prev
            if v > best:
                best, src = v, _D
            v = I_prev[j - 1] + close_b[j - 1]
            if v > best:
                best, src = v, _I
            M_cur[j] = best + row_s[j - 1]
            row_tb_m[j] = src

            opened = M_prev[j] + oa
            extended = D_prev[j] + ext
            if opened >= extended:
                D_cur[j] = opened
                row_tb_d[j] = _M
            else:
                D_cur[j] = extended
                row_tb_d[j] = _D

            opened = M_cur[j - 1] + open_b[j]
            extended = I_cur[j - 1] + ext
            if opened >= extended:
                I_cur[j] = opened
                row_tb_i[j] = _M
            else:
                I_cur[j] = extended
                row_tb_i[j] = _I

        M_prev, D_prev, I_prev = M_cur, D_cur, I_cur

    score = M_prev[m]
    state = _M
    v = D_prev[m] + close_a[n]
    if v > score:
        score, state = v, _D
    v = I_prev[m] + close_b[m]
    if v > score:
        score, state = v, _I

    path: EditPath = []
    i, j = n, m
    while i > 0 or j > 0:
        if state == _M:
            path.append(EditOp.MATCH)
            state = tb_m[i][j]
            i -= 1
            j -= 1
        elif state == _D:
            path.append(EditOp.DELETE)
            state = tb_d[i][j]
            i -= 1
        else:
            path.append(EditOp.INSERT)
            state = tb_i[i][j]
            j -= 1
    path.reverse()

    logger.debug("Aligned profiles %d x %d -> %d columns, score %.3f", n, m, len(path), score)
    return ProfileAlignment(path=path, score=score, profile=a.merge(b, path))
