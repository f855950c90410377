from tpcstereo.geometry.wires import WireGeometry
from tpcstereo.errors import UnphysicalInputError
import numpy as np
import pytest

def test_channel_mapping():
    geo = WireGeometry.from_cfg([240, 240], 0.4, 0.4, 30.0, 40.0)
    assert geo.n_channels == 480
    assert geo.channel_to_wire(0) == (0, 0)
    assert geo.channel_to_wire(239) == (0, 239)
    assert geo.channel_to_wire(240) == (1, 0)
    assert geo.plane_wire_to_channel(1, 17) == 257
    assert abs(geo.stereo_angle - np.radians(30.0)) < 1e-12

def test_vectorised_matches_scalar():
    geo = WireGeometry.from_cfg([10, 20, 5], 0.3, 0.4, 45.0, 40.0)
    ch = np.array([0, 9, 10, 29, 30, 34])
    planes, wires = geo.channels_to_wires(ch)
    for c, p, w in zip(ch, planes, wires):
        assert geo.channel_to_wire(int(c)) == (int(p), int(w))

def test_unknown_channel_is_unphysical():
    geo = WireGeometry.from_cfg([4, 4], 0.4, 0.4, 30.0, 40.0)
    with pytest.raises(UnphysicalInputError):
        geo.channel_to_wire(8)
    with pytest.raises(UnphysicalInputError):
        geo.channels_to_wires(np.array([1, -1]))
    with pytest.raises(UnphysicalInputError):
        geo.plane_wire_to_channel(0, 4)

def test_hit_from_channel_fields():
    from dataclasses import fields
    from tpcstereo.physics.hits import Hit
    geo = WireGeometry.from_cfg([240, 240], 0.4, 0.4, 30.0, 40.0)
    h = Hit.from_channel(257, 101.5, geo)
    assert (h.plane, h.wire, h.view, h.peak_time) == (1, 17, 1, 101.5)
    assert [f.name for f in fields(Hit)] == ["channel", "peak_time", "plane", "wire"]
