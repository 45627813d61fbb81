"""
Substitution tables and the profile-profile scoring scheme
- VTML200 log-expectation and VTML240 sum-of-pairs tables (amino)
- BLOSUM62 (amino) and a nucleotide sum-of-pairs table
- ScoringScheme: column-pair scores, gap scores and the pair matrix used
  by the alignment objective
"""

from __future__ import annotations
import logging
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Dict, Optional

import numpy as np

from ..exceptions import ConfigurationError
from .alphabet import AMINO_LETTERS, Alpha, letters

if TYPE_CHECKING:
    from ..config import AlignConfig

logger = logging.getLogger(__name__)


class PPScore(str, Enum):
    """Profile-profile column scoring."""
    LE = "le"       # log-expectation
    SP = "sp"       # sum of pairs, amino
    SPN = "spn"     # sum of pairs, nucleotide


class MatrixName(str, Enum):
    VTML240 = "vtml240"
    BLOSUM62 = "blosum62"


class TermGaps(str, Enum):
    HALF = "half"
    FULL = "full"


def _parse_table(text: str, order: str) -> np.ndarray:
    """Parse a whitespace table (header row of letters) into ``order`` order."""
    lines = [ln.split() for ln in text.strip().splitlines()]
    header = lines[0]
    k = len(order)
    mat = np.zeros((k, k), dtype=np.float64)
    for row in lines[1:]:
        a = row[0]
        if a not in order:
            continue
        for b, val in zip(header, row[1:]):
            if b in order:
                mat[order.index(a), order.index(b)] = float(val)
    return mat


# VTML200, expectation ratios
_VTML_LA = """
   A       C       D       E       F       G       H       I       K       L       M       N       P       Q       R       S       T       V       W       Y
A  2.25080 1.31180 0.82704 0.88740 0.55520 1.09860 0.71673 0.80805 0.81213 0.68712 0.79105 0.86777 0.99328 0.86644 0.72821 1.33924 1.20373 1.05956 0.38107 0.54373
C  1.31180 15.79469 0.39862 0.42329 0.49882 0.65541 0.67100 0.97185 0.46414 0.55673 0.90230 0.63236 0.54479 0.47895 0.56465 1.18490 0.99069 1.21604 0.28988 0.91338
D  0.82704 0.39862 4.18833 2.06850 0.25194 0.90937 1.01617 0.32860 1.03391 0.31300 0.42498 1.80888 0.81307 1.20043 0.63712 1.03001 0.88191 0.43557 0.26313 0.37947
E  0.88740 0.42329 2.06850 3.08354 0.33456 0.77183 0.94536 0.43151 1.35989 0.45579 0.53423 1.15745 0.82832 1.66752 0.84500 0.98693 0.88132 0.54047 0.24519 0.52025
F  0.55520 0.49882 0.25194 0.33456 6.08351 0.30140 1.02191 1.10969 0.37069 1.50587 1.41207 0.42850 0.41706 0.48113 0.41970 0.56867 0.57172 0.91256 2.02494 3.44675
G  1.09860 0.65541 0.90937 0.77183 0.30140 5.62829 0.64191 0.28432 0.67874 0.30549 0.37739 1.01012 0.60851 0.65996 0.63660 1.03448 0.68435 0.40728 0.36034 0.35679
H  0.71673 0.67100 1.01617 0.94536 1.02191 0.64191 6.05494 0.50783 1.03822 0.60887 0.55685 1.28619 0.72275 1.41503 1.24635 0.93344 0.83543 0.54817 0.81780 1.81552
I  0.80805 0.97185 0.32860 0.43151 1.10969 0.28432 0.50783 3.03766 0.49310 1.88886 1.75039 0.44246 0.44431 0.53213 0.48153 0.55603 0.88168 2.37367 0.68494 0.70035
K  0.81213 0.46414 1.03391 1.35989 0.37069 0.67874 1.03822 0.49310 2.72883 0.52739 0.68244 1.15671 0.82911 1.51333 2.33521 0.93858 0.92730 0.55467 0.39944 0.52549
L  0.68712 0.55673 0.31300 0.45579 1.50587 0.30549 0.60887 1.88886 0.52739 3.08540 2.14480 0.43539 0.53630 0.62771 0.53025 0.53468 0.69924 1.50372 0.82822 0.89854
M  0.79105 0.90230 0.42498 0.53423 1.41207 0.37739 0.55685 1.75039 0.68244 2.14480 4.04057 0.55603 0.48415 0.76770 0.66775 0.62409 0.87759 1.42742 0.52278 0.72067
N  0.86777 0.63236 1.80888 1.15745 0.42850 1.01012 1.28619 0.44246 1.15671 0.43539 0.55603 3.36000 0.69602 1.13490 0.98603 1.31366 1.11252 0.50603 0.35810 0.68349
P  0.99328 0.54479 0.81307 0.82832 0.41706 0.60851 0.72275 0.44431 0.82911 0.53630 0.48415 0.69602 7.24709 0.90276 0.74827 1.03719 0.83014 0.56795 0.37867 0.33127
Q  0.86644 0.47895 1.20043 1.66752 0.48113 0.65996 1.41503 0.53213 1.51333 0.62771 0.76770 1.13490 0.90276 2.86937 1.50116 0.99561 0.93103 0.61085 0.29926 0.51971
R  0.72821 0.56465 0.63712 0.84500 0.41970 0.63660 1.24635 0.48153 2.33521 0.53025 0.66775 0.98603 0.74827 1.50116 4.28698 0.84662 0.80673 0.51422 0.47569 0.59592
S  1.33924 1.18490 1.03001 0.98693 0.56867 1.03448 0.93344 0.55603 0.93858 0.53468 0.62409 1.31366 1.03719 0.99561 0.84662 2.13816 1.52911 0.67767 0.45129 0.66767
T  1.20373 0.99069 0.88191 0.88132 0.57172 0.68435 0.83543 0.88168 0.92730 0.69924 0.87759 1.11252 0.83014 0.93103 0.80673 1.52911 2.58221 0.98702 0.31541 0.57954
V  1.05956 1.21604 0.43557 0.54047 0.91256 0.40728 0.54817 2.37367 0.55467 1.50372 1.42742 0.50603 0.56795 0.61085 0.51422 0.67767 0.98702 2.65580 0.43419 0.63805
W  0.38107 0.28988 0.26313 0.24519 2.02494 0.36034 0.81780 0.68494 0.39944 0.82822 0.52278 0.35810 0.37867 0.29926 0.47569 0.45129 0.31541 0.43419 31.39564 2.51433
Y  0.54373 0.91338 0.37947 0.52025 3.44675 0.35679 1.81552 0.70035 0.52549 0.89854 0.72067 0.68349 0.33127 0.51971 0.59592 0.66767 0.57954 0.63805 2.51433 7.50693
"""

# VTML240, uncentred
_VTML_SP = """
    A    C    D    E    F    G    H    I    K    L    M    N    P    Q    R    S    T    V    W    Y
A   58   23  -12   -7  -44   10  -23  -14  -14  -27  -17   -8    1   -9  -22   23   15    5  -74  -45
C   23  224  -67  -63  -50  -30  -29    1  -56  -41   -6  -33  -44  -53  -43   15    2   18  -93   -6
D  -12  -67  111   59 -104   -4    4  -84    6  -88  -65   48  -13   18  -29    5   -7  -63 -105  -73
E   -7  -63   59   85  -83  -17   -1  -63   25  -60  -47   15  -12   40   -8    1   -7  -47 -108  -51
F  -44  -50 -104  -83  144  -93    4   12  -74   36   30  -64  -67  -56  -65  -43  -41   -3   63  104
G   10  -30   -4  -17  -93  140  -32  -95  -27  -91  -75    4  -36  -29  -32    5  -26  -68  -80  -79
H  -23  -29    4   -1    4  -32  137  -50    6  -37  -42   21  -23   27   19   -4  -12  -44  -13   48
I  -14    1  -84  -63   12  -95  -50   86  -53   53   47  -62  -60  -47  -55  -43   -8   69  -27  -24
K  -14  -56    6   25  -74  -27    6  -53   75  -48  -30   13  -12   34   68   -3   -4  -44  -71  -49
L  -27  -41  -88  -60   36  -91  -37   53  -48   88   62  -63  -48  -36  -48  -47  -25   36  -11   -4
M  -17   -6  -65  -47   30  -75  -42   47  -30   62  103  -45  -54  -21  -31  -35   -9   31  -46  -20
N   -8  -33   48   15  -64    4   21  -62   13  -63  -45   89  -25   12    2   22   10  -51  -79  -29
P    1  -44  -13  -12  -67  -36  -23  -60  -12  -48  -54  -25  160   -6  -20    5  -12  -42  -76  -83
Q   -9  -53   18   40  -56  -29   27  -47   34  -36  -21   12   -6   75   34    1   -4  -37  -92  -48
R  -22  -43  -29   -8  -65  -32   19  -55   68  -48  -31    2  -20   34  113  -10  -14  -49  -58  -39
S   23   15    5    1  -43    5   -4  -43   -3  -47  -35   22    5    1  -10   53   32  -28  -62  -31
T   15    2   -7   -7  -41  -26  -12   -8   -4  -25   -9   10  -12   -4  -14   32   68    0  -87  -40
V    5   18  -63  -47   -3  -68  -44   69  -44   36   31  -51  -42  -37  -49  -28    0   74  -61  -32
W  -74  -93 -105 -108   63  -80  -13  -27  -71  -11  -46  -79  -76  -92  -58  -62  -87  -61  289   81
Y  -45   -6  -73  -51  104  -79   48  -24  -49   -4  -20  -29  -83  -48  -39  -31  -40  -32   81  162
"""
VTML_SP_CENTER = 22.0

_BLOSUM62 = """
   A  R  N  D  C  Q  E  G  H  I  L  K  M  F  P  S  T  W  Y  V
A  4 -1 -2 -2  0 -1 -1  0 -2 -1 -1 -1 -1 -2 -1  1  0 -3 -2  0
R -1  5  0 -2 -3  1  0 -2  0 -3 -2  2 -1 -3 -2 -1 -1 -3 -2 -3
N -2  0  6  1 -3  0  0  0  1 -3 -3  0 -2 -3 -2  1  0 -4 -2 -3
D -2 -2  1  6 -3  0  2 -1 -1 -3 -4 -1 -3 -3 -1  0 -1 -4 -3 -3
C  0 -3 -3 -3  9 -3 -4 -3 -3 -1 -1 -3 -1 -2 -3 -1 -1 -2 -2 -1
Q -1  1  0  0 -3  5  2 -2  0 -3 -2  1  0 -3 -1  0 -1 -2 -1 -2
E -1  0  0  2 -4  2  5 -2  0 -3 -3  1 -2 -3 -1  0 -1 -3 -2 -2
G  0 -2  0 -1 -3 -2 -2  6 -2 -4 -4 -2 -3 -3 -2  0 -2 -2 -3 -3
H -2  0  1 -1 -3  0  0 -2  8 -3 -3 -1 -2 -1 -2 -1 -2 -2  2 -3
I -1 -3 -3 -3 -1 -3 -3 -4 -3  4  2 -3  1  0 -3 -2 -1 -3 -1  3
L -1 -2 -3 -4 -1 -2 -3 -4 -3  2  4 -2  2  0 -3 -2 -1 -2 -1  1
K -1  2  0 -1 -3  1  1 -2 -1 -3 -2  5 -1 -3 -1  0 -1 -3 -2 -2
M -1 -1 -2 -3 -1  0 -2 -3 -2  1  2 -1  5  0 -2 -1 -1 -1 -1  1
F -2 -3 -3 -3 -2 -3 -3 -3 -1  0  0 -3  0  6 -4 -2 -2  1  3 -1
P -1 -2 -2 -1 -3 -1 -1 -2 -2 -3 -3 -1 -2 -4  7 -1 -1 -4 -3 -2
S  1 -1  1  0 -1  0  0  0 -1 -2 -2  0 -1 -2 -1  4  1 -3 -2 -2
T  0 -1  0 -1 -1 -1 -1 -2 -2 -1 -1 -1 -1 -2 -1  1  5 -2 -2  0
W -3 -3 -4 -4 -2 -2 -3 -2 -2 -3 -2 -3 -1  1 -4 -3 -2 11  2 -3
Y -2 -2 -2 -3 -2 -1 -2 -3  2 -1 -1 -2 -1  3 -3 -2 -2  2  7 -1
V  0 -3 -3 -3 -1 -2 -2 -3 -3  3  1 -2  1 -1 -2 -2  0 -3 -1  4
"""

# transitions (A<->G, C<->T) score higher than transversions
_NUC_SP = """
     A     C     G     T
A  100  -100   -40  -100
C -100   100  -100   -40
G  -40  -100   100  -100
T -100   -40  -100   100
"""

VTML_LA = _parse_table(_VTML_LA, AMINO_LETTERS)
VTML_SP = _parse_table(_VTML_SP, AMINO_LETTERS) + VTML_SP_CENTER
BLOSUM62 = _parse_table(_BLOSUM62, AMINO_LETTERS)
NUC_SP = _parse_table(_NUC_SP, "ACGT")

# (gap_open, gap_extend) per table; scores, so both are <= 0
_GAP_DEFAULTS: Dict[str, tuple] = {
    "le": (-2.9, 0.0),
    "vtml240": (-1439.0, 0.0),
    "blosum62": (-10.0, -0.5),
    "spn": (-400.0, 0.0),
    "user": (-10.0, -0.5),
}


def matrix_from_mapping(mapping: Dict[str, Dict[str, float]]) -> np.ndarray:
    """Build a 20x20 amino table from a nested ``{a: {b: score}}`` mapping.

    Missing cells are filled from their symmetric counterpart; a pair absent
    in both directions is a configuration error.
    """
    upper = {a.upper(): {b.upper(): float(v) for b, v in row.items()} for a, row in mapping.items()}
    k = len(AMINO_LETTERS)
    mat = np.zeros((k, k), dtype=np.float64)
    for i, a in enumerate(AMINO_LETTERS):
        for j, b in enumerate(AMINO_LETTERS):
            if b in upper.get(a, {}):
                mat[i, j] = upper[a][b]
            elif a in upper.get(b, {}):
                mat[i, j] = upper[b][a]
            else:
                raise ConfigurationError(f"substitution matrix has no score for pair {a}/{b}")
    return mat


@dataclass(eq=False)
class ScoringScheme:
    """Everything needed to score profile columns and alignments for one run."""
    alpha: Alpha
    ppscore: PPScore
    matrix: np.ndarray
    gap_open: float
    gap_extend: float
    term_gaps: TermGaps = TermGaps.HALF
    hydro_run_length: int = 0
    hydro_attenuation: float = 1.0

    @property
    def letters(self) -> str:
        return letters(self.alpha)

    @property
    def size(self) -> int:
        return len(self.letters)

    @property
    def pair_matrix(self) -> np.ndarray:
        """(K+1)x(K+1) residue pair scores on the DP scale; wildcard row/col is 0."""
        k = self.size
        out = np.zeros((k + 1, k + 1), dtype=np.float64)
        if self.ppscore == PPScore.LE:
            out[:k, :k] = np.log(self.matrix)
        else:
            out[:k, :k] = self.matrix
        return out

    def column_scores(
        self,
        freqs_a: np.ndarray,
        occ_a: np.ndarray,
        freqs_b: np.ndarray,
        occ_b: np.ndarray,
    ) -> np.ndarray:
        """
        Score every column of profile A against every column of profile B.

        Parameters
        ----------
        freqs_a, freqs_b : ndarray (L, K)
            Letter distributions of the columns (rows sum to 1 or 0).
        occ_a, occ_b : ndarray (L,)
            Column occupancies.

        Returns
        -------
        ndarray (La, Lb)
            Expected pair score, weighted by both occupancies.
        """
        expected = freqs_a @ self.matrix @ freqs_b.T
        if self.ppscore == PPScore.LE:
            safe = np.where(expected > 0.0, expected, 1.0)
            expected = np.where(expected > 0.0, np.log(safe), 0.0)
        return expected * np.outer(occ_a, occ_b)

    @classmethod
    def from_config(cls, config: "AlignConfig", alpha: Alpha) -> "ScoringScheme":
        """Resolve tables and gap scores for ``alpha`` from a run configuration."""
        sc = config.scoring
        if sc.user_matrix is not None:
            if alpha != Alpha.AMINO:
                logger.warning("User substitution matrix forces amino alphabet (was %s)", alpha.value)
            alpha = Alpha.AMINO
            ppscore = PPScore.SP
            matrix = matrix_from_mapping(sc.user_matrix)
            gap_key = "user"
        elif alpha in (Alpha.DNA, Alpha.RNA):
            if sc.ppscore is not None and sc.ppscore != PPScore.SPN:
                logger.warning("Nucleotide input always uses %s scoring", PPScore.SPN.value)
            ppscore = PPScore.SPN
            matrix = NUC_SP
            gap_key = "spn"
        elif alpha == Alpha.AMINO:
            ppscore = sc.ppscore or PPScore.LE
            if ppscore == PPScore.SPN:
                raise ConfigurationError("nucleotide scoring requested for amino acid input")
            if ppscore == PPScore.LE:
                matrix = VTML_LA
                gap_key = "le"
            elif sc.matrix_name == MatrixName.BLOSUM62:
                matrix = BLOSUM62
                gap_key = "blosum62"
            else:
                matrix = VTML_SP
                gap_key = "vtml240"
        else:
            raise ConfigurationError(f"alphabet must be resolved before scoring, got {alpha!r}")

        default_open, default_extend = _GAP_DEFAULTS[gap_key]
        hydro = config.hydro
        return cls(
            alpha=alpha,
            ppscore=ppscore,
            matrix=matrix,
            gap_open=sc.gap_open if sc.gap_open is not None else default_open,
            gap_extend=sc.gap_extend if sc.gap_extend is not None else default_extend,
            term_gaps=sc.term_gaps,
            hydro_run_length=hydro.run_length if alpha == Alpha.AMINO else 0,
            hydro_attenuation=hydro.attenuation,
        )


def default_scheme(alpha: Alpha = Alpha.AMINO, ppscore: Optional[PPScore] = None) -> ScoringScheme:
    """Scheme with built-in defaults, for callers that have no AlignConfig."""
    from ..config import AlignConfig, ScoringConfig
    return ScoringScheme.from_config(AlignConfig(scoring=ScoringConfig(ppscore=ppscore)), alpha)
