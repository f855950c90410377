import pytest

from tpcstereo.config.load import config_from_mapping
from tpcstereo.physics.hits import Hit
from tpcstereo.reco.params import build_context


def make_cfg(**sections):
    data = {
        "run": {"diagnostics_level": 0, "progress": False},
        "io": {"input_path": "in.h5", "output_path": "out.h5"},
    }
    for key, val in sections.items():
        data.setdefault(key, {}).update(val)
    return config_from_mapping(data)


@pytest.fixture
def cfg():
    return make_cfg()


@pytest.fixture
def context(cfg):
    """(geometry, converter, params) for the default ArgoNeuT-like setup."""
    return build_context(cfg)


@pytest.fixture
def scenario_context():
    """30 degree stereo angle, 200 cm chamber, 0.4 cm wire pitch."""
    cfg = make_cfg(detector={"stereo_angle_deg": 30.0, "chamber_height_cm": 200.0, "wire_pitch_cm": 0.4})
    return build_context(cfg)


@pytest.fixture
def three_plane_context():
    """Three wire planes; only planes 0 and 1 take part in the stereo match."""
    return build_context(make_cfg(detector={"wires_per_plane": [240, 240, 240]}))


@pytest.fixture
def hit_factory(context):
    geometry = context[0]

    def _make(plane, wire, time):
        ch = geometry.plane_wire_to_channel(plane, wire)
        return Hit(channel=ch, peak_time=float(time), plane=plane, wire=wire)

    return _make


@pytest.fixture
def make_config():
    """Config factory; keyword arguments update the named sections."""
    return make_cfg
