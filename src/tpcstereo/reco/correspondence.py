from __future__ import annotations
from dataclasses import dataclass
from typing import List
import math

import numpy as np

from tpcstereo.errors import NoHitCandidateError
from tpcstereo.physics.hits import Hit
from .diagnostics import ReconDiagnostics
from .geometry3d import PairGeometry, intersect_wires
from .matching import MatchedPair
from .params import StereoParams
from .projections import Projection


@dataclass(frozen=True, eq=False)
class SpacePoint3D:
    """3D position built from one view-A hit and one view-B hit."""
    xyz: np.ndarray
    hit_a: Hit
    hit_b: Hit

    @property
    def hits(self) -> tuple[Hit, Hit]:
        return self.hit_a, self.hit_b


def _best_candidate(
    w: float,
    t: float,
    d_min: float,
    other: Projection,
    origin: tuple[float, float],
    consumed: np.ndarray,
    params: StereoParams,
) -> int:
    """
    Index into `other.hits` of the unconsumed hit inside the time/wire gates
    whose distance to its own origin best matches `d_min`.
    """
    best = -1
    difference = math.inf
    for j in range(len(other.hits)):
        if consumed[j]:
            continue
        w2 = other.wires_cm[j]
        t2 = other.times_cm[j]
        if abs(t - t2) >= params.match_tolerance or abs(w - w2) >= params.wire_gate:
            continue
        d_max = math.hypot(t2 - origin[1], w2 - origin[0])
        if abs(d_max - d_min) < difference:
            difference = abs(d_max - d_min)
            best = j
    if best < 0:
        raise NoHitCandidateError(f"no hit within gates (w={w:.2f} cm, t={t:.2f} cm)")
    return best


def correspond_hits(
    pair: MatchedPair,
    geom: PairGeometry,
    params: StereoParams,
    diag: ReconDiagnostics | None = None,
    verbose: int = 1,
) -> List[SpacePoint3D]:
    """
    Pair hits of the two matched projections one by one and triangulate them.

    Walks the view with fewer hits (view B on ties); for each hit picks the
    nearest-in-progress unconsumed hit of the other view. Progress along the
    track is the distance to the view's origin, rescaled by the ratio of the
    two projection lengths. Each hit of the longer view is used at most once.
    A hit with no candidate yields no point.
    """
    a, b = pair.a, pair.b
    if len(b.hits) <= len(a.hits):
        short, long_ = b, a
        short_origin, long_origin = geom.origin_b, geom.origin_a
    else:
        short, long_ = a, b
        short_origin, long_origin = geom.origin_a, geom.origin_b

    len_a, len_b = a.length, b.length
    lo, hi = min(len_a, len_b), max(len_a, len_b)
    ratio = hi / lo if lo > 0 else 1.0

    consumed = np.zeros(len(long_.hits), dtype=bool)
    points: List[SpacePoint3D] = []

    for i, h in enumerate(short.hits):
        w = float(short.wires_cm[i])
        t = float(short.times_cm[i])
        d_min = ratio * math.hypot(t - short_origin[1], w - short_origin[0])
        try:
            j = _best_candidate(w, t, d_min, long_, long_origin, consumed, params)
        except NoHitCandidateError as exc:
            if diag is not None:
                diag.no_hit_candidate += 1
                diag.inc("no_hit_candidate")
            if verbose >= 2:
                print(f"[hits] cluster {short.cluster_index} hit on channel {h.channel}: {exc}")
            continue
        consumed[j] = True

        w2 = float(long_.wires_cm[j])
        t2 = float(long_.times_cm[j])
        if short is b:
            hit_a, hit_b = long_.hits[j], h
            wire_a, wire_b, time_b = w2, w, t
        else:
            hit_a, hit_b = h, long_.hits[j]
            wire_a, wire_b, time_b = w, w2, t2

        xyz = intersect_wires(time_b, wire_a, wire_b, params.stereo_angle, params.chamber_height)
        points.append(SpacePoint3D(xyz=xyz, hit_a=hit_a, hit_b=hit_b))

    if diag is not None:
        diag.spacepoints += len(points)
    return points
