# src/tpcstereo/reco/geometry3d.py
from __future__ import annotations
from dataclasses import dataclass
import math

import numpy as np

from tpcstereo.errors import ZeroLengthDirectionError
from .matching import MatchedPair


def intersect_wires(time_cm: float, wire_a_cm: float, wire_b_cm: float,
                    angle: float, height: float) -> np.ndarray:
    """
    3D point from one wire position per view and a common drift coordinate.

      X = drift coordinate
      Y = (wB - wA) / (2 sin(theta))
      Z = (wB + wA) / (2 cos(theta)) - (H/2) tan(theta)

    theta is the wire angle w.r.t. the vertical, H the chamber height.
    """
    y = (wire_b_cm - wire_a_cm) / (2.0 * math.sin(angle))
    z = (wire_b_cm + wire_a_cm) / (2.0 * math.cos(angle)) - 0.5 * height * math.tan(angle)
    return np.array([time_cm, y, z], dtype=np.float64)


@dataclass(frozen=True, eq=False)
class PairGeometry:
    """
    Resolved 3D segment of a matched pair.

    start.Z <= end.Z; origin_a / origin_b are the (wire_cm, line time_cm)
    of the 2D endpoints that produced `start`, one per view.
    """
    start: np.ndarray
    end: np.ndarray
    direction: np.ndarray
    origin_a: tuple[float, float]
    origin_b: tuple[float, float]

    @property
    def length(self) -> float:
        return float(np.linalg.norm(self.end - self.start))


def resolve_pair(pair: MatchedPair, angle: float, height: float) -> PairGeometry:
    """
    Build both 3D endpoints of a matched pair and its unit direction.

    The drift coordinate is taken from view B's fitted line. With a reversed
    match view A's endpoints are swapped before pairing.
    """
    a, b = pair.a, pair.b
    a_first = (a.start_wire, a.start_line)
    a_last = (a.end_wire, a.end_line)
    if pair.reversed:
        a_first, a_last = a_last, a_first
    b_first = (b.start_wire, b.start_line)
    b_last = (b.end_wire, b.end_line)

    xyz0 = intersect_wires(b_first[1], a_first[0], b_first[0], angle, height)
    xyz1 = intersect_wires(b_last[1], a_last[0], b_last[0], angle, height)

    # Ambiguous for backward-going tracks; smaller Z is taken as the start.
    if xyz0[2] <= xyz1[2]:
        start, end = xyz0, xyz1
        origin_a, origin_b = a_first, b_first
    else:
        start, end = xyz1, xyz0
        origin_a, origin_b = a_last, b_last

    d = end - start
    n = np.linalg.norm(d)
    if n == 0 or not np.isfinite(n):
        raise ZeroLengthDirectionError(
            f"clusters {a.cluster_index}/{b.cluster_index}: coincident 3D endpoints"
        )
    return PairGeometry(
        start=start,
        end=end,
        direction=d / n,
        origin_a=origin_a,
        origin_b=origin_b,
    )
