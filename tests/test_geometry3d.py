import math

import numpy as np
import pytest

from tpcstereo.errors import ZeroLengthDirectionError
from tpcstereo.reco.geometry3d import intersect_wires, resolve_pair
from tpcstereo.reco.matching import MatchedPair
from tpcstereo.reco.projections import Projection
from tpcstereo.sim.synth import wires_from_xyz

ANGLE = math.radians(30.0)
HEIGHT = 200.0


def _proj(view, w0, t0, w1, t1, index=0):
    slope = (t1 - t0) / (w1 - w0) if w1 != w0 else 0.0
    return Projection(
        view=view, intercept=t0 - slope * w0, slope=slope,
        start=(w0, t0), end=(w1, t1), start_line=t0, end_line=t1,
        cluster_index=index, hits=(),
        wires_cm=np.array([w0, w1]), times_cm=np.array([t0, t1]),
    )


def test_intersect_wires_formula():
    xyz = intersect_wires(3.0, 5.0, 9.0, ANGLE, HEIGHT)
    assert xyz[0] == 3.0
    assert xyz[1] == pytest.approx(4.0 / (2 * 0.5))
    assert xyz[2] == pytest.approx(14.0 / (2 * math.cos(ANGLE)) - 100.0 * math.tan(ANGLE))


def test_wires_from_xyz_inverts_intersection():
    wa, wb = wires_from_xyz([1.0, -3.0, 12.0], ANGLE, HEIGHT)
    assert intersect_wires(1.0, wa, wb, ANGLE, HEIGHT) == pytest.approx([1.0, -3.0, 12.0])


def test_direct_pair_geometry():
    a = _proj(0, 5.0, 1.0, 9.0, 2.0)
    b = _proj(1, 8.0, 1.1, 13.0, 2.1)
    g = resolve_pair(MatchedPair(a, b, "direct"), ANGLE, HEIGHT)
    assert g.start == pytest.approx(intersect_wires(1.1, 5.0, 8.0, ANGLE, HEIGHT))
    assert g.end == pytest.approx(intersect_wires(2.1, 9.0, 13.0, ANGLE, HEIGHT))
    assert np.linalg.norm(g.direction) == pytest.approx(1.0)
    assert g.origin_a == (5.0, 1.0) and g.origin_b == (8.0, 1.1)


def test_start_has_smaller_z():
    # reversed match where the first-built endpoint lies at larger Z
    a = _proj(0, 5.0, 1.0, 9.0, 2.0)
    b = _proj(1, 8.0, 2.0, 9.0, 1.0)
    g = resolve_pair(MatchedPair(a, b, "reversed"), ANGLE, HEIGHT)
    assert g.start[2] <= g.end[2]
    assert g.start[0] == pytest.approx(1.0)  # view-B time at its end wire
    assert g.origin_b == (9.0, 1.0)
    assert g.origin_a == (5.0, 1.0)
    assert g.direction == pytest.approx((g.end - g.start) / g.length)


def test_zero_length_is_discarded():
    a = _proj(0, 5.0, 1.0, 5.0, 1.0)
    b = _proj(1, 8.0, 1.0, 8.0, 1.0)
    with pytest.raises(ZeroLengthDirectionError):
        resolve_pair(MatchedPair(a, b, "direct"), ANGLE, HEIGHT)
