import math

import numpy as np
import pytest


def test_first_region_round_trip(context):
    _, conv, _ = context
    # 5 ticks after presampling: entirely inside the first field region
    raw_wire, raw_time = 17, conv.presampling_offset + 5.0
    assert 5.0 < conv.first_region_ticks

    w_cm, t_cm = conv.to_length_units(0, raw_wire, raw_time)
    assert math.isclose(t_cm, 5.0 * conv.first_region_velocity * conv.time_tick_us)

    w_back, t_back = conv.to_raw_units(0, w_cm, t_cm)
    assert abs(w_back - raw_wire) < 1e-9
    assert abs(t_back - raw_time) < 1e-9


def test_two_regime_differs_from_flat_conversion(context):
    _, conv, _ = context
    raw_time = conv.presampling_offset + 40.0  # straddles both regions
    t_cm = conv.time_to_cm(0, raw_time)

    expected = (40.0 - conv.first_region_ticks) * conv.time_pitch + conv.plane_pitch
    assert math.isclose(t_cm, expected, rel_tol=1e-12)

    flat = conv.flat_time_to_cm(0, raw_time)
    assert abs(t_cm - flat) > 1e-2

    # and the straddling case still inverts
    assert abs(conv.cm_to_time(0, t_cm) - raw_time) < 1e-9


def test_continuous_at_region_edge(context):
    _, conv, _ = context
    edge = conv.presampling_offset + conv.first_region_ticks
    below = conv.time_to_cm(0, edge - 1e-9)
    above = conv.time_to_cm(0, edge + 1e-9)
    assert abs(below - conv.first_region_length) < 1e-6
    assert abs(above - conv.first_region_length) < 1e-6


def test_boundary_view_loses_transit_time(context):
    _, conv, _ = context
    raw_time = conv.presampling_offset + 50.0
    t0 = conv.time_to_cm(0, raw_time)
    t1 = conv.time_to_cm(1, raw_time)
    assert 1 in conv.boundary_views and 0 not in conv.boundary_views
    assert math.isclose(t0 - t1, conv.boundary_ticks * conv.time_pitch, rel_tol=1e-9)


def test_view_offsets_applied(context):
    _, conv, _ = context
    assert math.isclose(conv.wire_to_cm(0, 10), (10 + 3.95) * 0.4)
    assert math.isclose(conv.wire_to_cm(1, 10), (10 + 1.84) * 0.4)


def test_hits_to_cm_matches_scalar(context, hit_factory):
    _, conv, _ = context
    hits = [hit_factory(0, w, 100 + 3 * w) for w in range(5)]
    wires, times = conv.hits_to_cm(hits)
    for h, w, t in zip(hits, wires, times):
        assert (w, t) == pytest.approx(conv.hit_to_cm(h))
    assert np.all(np.diff(wires) > 0)
