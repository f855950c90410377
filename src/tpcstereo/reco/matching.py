from __future__ import annotations
from dataclasses import dataclass
from typing import List, Literal, Optional, Sequence

from .diagnostics import ReconDiagnostics
from .projections import Projection

Orientation = Literal["direct", "reversed"]

@dataclass(frozen=True, eq=False)
class MatchedPair:
    """
    One projection per stereo view whose line endpoints agree in time.

    a : view-A (induction-like) projection
    b : view-B (collection-like) projection
    orientation : "direct" (start<->start, end<->end) or "reversed"
    """
    a: Projection
    b: Projection
    orientation: Orientation

    @property
    def reversed(self) -> bool:
        return self.orientation == "reversed"


def match_orientation(p: Projection, q: Projection, tolerance: float) -> Optional[Orientation]:
    """
    Compare the fitted endpoint times of two projections.

    Direct is tested first, so a pair satisfying both predicates is direct.
    The predicate is symmetric in (p, q).
    """
    if abs(p.start_line - q.start_line) < tolerance and abs(p.end_line - q.end_line) < tolerance:
        return "direct"
    if abs(p.start_line - q.end_line) < tolerance and abs(p.end_line - q.start_line) < tolerance:
        return "reversed"
    return None


def match_projections(
    proj_a: Sequence[Projection],
    proj_b: Sequence[Projection],
    tolerance: float,
    *,
    exclusive: bool = False,
    diag: ReconDiagnostics | None = None,
    verbose: int = 1,
) -> List[MatchedPair]:
    """
    Exhaustive |A|x|B| search, view-B projections in the outer loop.

    Every satisfying combination is kept unless `exclusive`, in which case a
    projection already used by an earlier pair is skipped (first fit, not a
    global optimum).
    """
    pairs: List[MatchedPair] = []
    used_a: set[int] = set()
    used_b: set[int] = set()

    for ib, b in enumerate(proj_b):
        for ia, a in enumerate(proj_a):
            if exclusive and (ia in used_a or ib in used_b):
                continue
            orientation = match_orientation(a, b, tolerance)
            if orientation is None:
                continue
            pairs.append(MatchedPair(a=a, b=b, orientation=orientation))
            if diag is not None:
                if orientation == "direct":
                    diag.pairs_direct += 1
                else:
                    diag.pairs_reversed += 1
            if verbose >= 2:
                print(f"[match] cluster {a.cluster_index} (view {a.view}) <-> "
                      f"cluster {b.cluster_index} (view {b.view}): {orientation}")
            if exclusive:
                used_a.add(ia)
                used_b.add(ib)
    return pairs
