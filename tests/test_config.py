import math

import pytest
from dataclasses import FrozenInstanceError

from pydantic import ValidationError

from tpcstereo.config.load import load_config, config_from_mapping
from tpcstereo.reco.params import build_context

TOML = """
[run]
diagnostics_level = 2
progress = false

[io]
input_path = "events.h5"
output_path = "tracks.h5"

[detector]
stereo_angle_deg = 30.0
chamber_height_cm = 200.0
wires_per_plane = [100, 100]

[detector.view_offsets]
0 = 1.5
1 = 2.5

[matching]
presampling_offset = 10.0
match_tolerance_samples = 4
vertex_window_length = 12.0
"""

def test_load_toml(tmp_path):
    p = tmp_path / "cfg.toml"
    p.write_text(TOML)
    cfg = load_config(p)
    assert cfg.run.diagnostics_level == 2
    assert cfg.detector.view_offsets == {0: 1.5, 1: 2.5}
    assert cfg.io.input_format == "hdf5_events"

    geometry, conv, params = build_context(cfg)
    assert geometry.n_channels == 200
    assert conv.presampling_offset == 10.0
    assert math.isclose(params.match_tolerance, 4 * conv.time_pitch)
    assert math.isclose(params.wire_gate, 50 * 0.4)
    assert params.vertex_window == 12.0
    assert params.views == (0, 1)

def test_diagnostics_level_validated():
    with pytest.raises(ValidationError):
        config_from_mapping({"run": {"diagnostics_level": 5},
                             "io": {"input_path": "a", "output_path": "b"}})

def test_views_must_exist_and_differ():
    with pytest.raises(ValidationError):
        config_from_mapping({"io": {"input_path": "a", "output_path": "b"},
                             "detector": {"view_a": 0, "view_b": 2}})
    with pytest.raises(ValidationError):
        config_from_mapping({"io": {"input_path": "a", "output_path": "b"},
                             "detector": {"view_a": 1, "view_b": 1}})

def test_stereo_angle_range():
    with pytest.raises(ValidationError):
        config_from_mapping({"io": {"input_path": "a", "output_path": "b"},
                             "detector": {"stereo_angle_deg": 0.0}})

def test_params_are_immutable(context):
    _, conv, params = context
    with pytest.raises(FrozenInstanceError):
        params.match_tolerance = 1.0
    with pytest.raises(FrozenInstanceError):
        conv.wire_pitch = 1.0
