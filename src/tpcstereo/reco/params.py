from __future__ import annotations
from dataclasses import dataclass

from tpcstereo.config.schemas import Config
from tpcstereo.geometry.wires import WireGeometry
from tpcstereo.physics.coordinates import CoordinateConverter


@dataclass(frozen=True)
class StereoParams:
    """
    Immutable parameters of one stereo reconstruction run.

    view_a / view_b     : induction-like / collection-like view indices
    stereo_angle        : wire angle w.r.t. the vertical [rad]
    chamber_height      : transverse extent [cm]
    match_tolerance     : cross-view time tolerance [cm]
    vertex_window       : vertex-consistency window [ticks]
    wire_gate           : max wire separation of corresponding hits [cm]
    exclusive_pairs     : allow each projection into at most one pair
    """
    view_a: int
    view_b: int
    stereo_angle: float
    chamber_height: float
    match_tolerance: float
    vertex_window: float
    wire_gate: float
    exclusive_pairs: bool = False

    @classmethod
    def from_config(
        cls,
        cfg: Config,
        geometry: WireGeometry,
        converter: CoordinateConverter,
    ) -> "StereoParams":
        m = cfg.matching
        return cls(
            view_a=int(cfg.detector.view_a),
            view_b=int(cfg.detector.view_b),
            stereo_angle=geometry.stereo_angle,
            chamber_height=geometry.chamber_height,
            match_tolerance=float(m.match_tolerance_samples) * converter.time_pitch,
            vertex_window=float(m.vertex_window_length),
            wire_gate=float(m.wire_gate_pitches) * geometry.wire_pitch,
            exclusive_pairs=bool(m.exclusive_pairs),
        )

    @property
    def views(self) -> tuple[int, int]:
        return self.view_a, self.view_b


def build_context(cfg: Config) -> tuple[WireGeometry, CoordinateConverter, StereoParams]:
    """Geometry, converter and parameters derived once from a validated Config."""
    det = cfg.detector
    geometry = WireGeometry.from_cfg(
        det.wires_per_plane,
        det.wire_pitch_cm,
        det.plane_pitch_cm,
        det.stereo_angle_deg,
        det.chamber_height_cm,
    )
    converter = CoordinateConverter.from_config(cfg, geometry)
    params = StereoParams.from_config(cfg, geometry, converter)
    return geometry, converter, params
