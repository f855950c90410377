# src/tpcstereo/physics/coordinates.py
from __future__ import annotations
from dataclasses import dataclass
from typing import Mapping, Sequence

import numpy as np

from tpcstereo.config.schemas import Config
from tpcstereo.geometry.wires import WireGeometry
from .hits import Hit


@dataclass(frozen=True)
class CoordinateConverter:
    """
    (wire index, drift ticks) -> (wire position [cm], drift coordinate [cm]).

    The drift coordinate is built in two field regimes: the first
    `first_region_ticks` of (offset-corrected) time are spent crossing the
    gap in front of the first readout plane at `first_region_velocity`;
    anything beyond that drifted in the bulk at `drift_velocity`.
    Views in `boundary_views` additionally lose `boundary_ticks` for the
    transit across the gap between readout planes.
    """
    wire_pitch: float
    plane_pitch: float
    view_offsets: Mapping[int, float]
    boundary_views: frozenset[int]
    time_tick_us: float
    presampling_offset: float
    drift_velocity: float
    first_region_velocity: float
    boundary_velocity: float

    @classmethod
    def from_config(cls, cfg: Config, geometry: WireGeometry | None = None) -> "CoordinateConverter":
        det, drift = cfg.detector, cfg.drift
        wire_pitch = geometry.wire_pitch if geometry is not None else det.wire_pitch_cm
        plane_pitch = geometry.plane_pitch if geometry is not None else det.plane_pitch_cm
        return cls(
            wire_pitch=float(wire_pitch),
            plane_pitch=float(plane_pitch),
            view_offsets={int(k): float(v) for k, v in det.view_offsets.items()},
            boundary_views=frozenset(int(v) for v in det.boundary_views),
            time_tick_us=float(drift.time_tick_us),
            presampling_offset=float(cfg.matching.presampling_offset),
            drift_velocity=float(drift.drift_velocity),
            first_region_velocity=float(drift.first_region_velocity),
            boundary_velocity=float(drift.boundary_velocity),
        )

    # -- derived constants --------------------------------------------------

    @property
    def time_pitch(self) -> float:
        """Bulk drift length per tick [cm]."""
        return self.drift_velocity * self.time_tick_us

    @property
    def first_region_ticks(self) -> float:
        return self.plane_pitch / self.first_region_velocity / self.time_tick_us

    @property
    def boundary_ticks(self) -> float:
        return self.plane_pitch / self.boundary_velocity / self.time_tick_us

    @property
    def first_region_length(self) -> float:
        return self.first_region_ticks * self.first_region_velocity * self.time_tick_us

    # -- forward ------------------------------------------------------------

    def wire_to_cm(self, view: int, raw_wire: float) -> float:
        return (raw_wire + self.view_offsets.get(view, 0.0)) * self.wire_pitch

    def reduced_ticks(self, view: int, raw_time: float) -> float:
        t = raw_time - self.presampling_offset
        if view in self.boundary_views:
            t -= self.boundary_ticks
        return t

    def time_to_cm(self, view: int, raw_time: float) -> float:
        t = self.reduced_ticks(view, raw_time)
        t_first = self.first_region_ticks
        if t > t_first:
            return (t - t_first) * self.time_pitch + self.first_region_length
        return t * self.first_region_velocity * self.time_tick_us

    def to_length_units(self, view: int, raw_wire: float, raw_time: float) -> tuple[float, float]:
        return self.wire_to_cm(view, raw_wire), self.time_to_cm(view, raw_time)

    def hit_to_cm(self, hit: Hit) -> tuple[float, float]:
        return self.to_length_units(hit.view, hit.wire, hit.peak_time)

    def hits_to_cm(self, hits: Sequence[Hit]) -> tuple[np.ndarray, np.ndarray]:
        """(wires_cm, times_cm) arrays in hit order."""
        wires = np.empty(len(hits), dtype=np.float64)
        times = np.empty(len(hits), dtype=np.float64)
        for i, h in enumerate(hits):
            wires[i], times[i] = self.hit_to_cm(h)
        return wires, times

    def flat_time_to_cm(self, view: int, raw_time: float) -> float:
        """Single-velocity conversion without the first-region correction."""
        return self.reduced_ticks(view, raw_time) * self.time_pitch

    # -- inverse ------------------------------------------------------------

    def cm_to_wire(self, view: int, wire_cm: float) -> float:
        return wire_cm / self.wire_pitch - self.view_offsets.get(view, 0.0)

    def cm_to_time(self, view: int, time_cm: float) -> float:
        if time_cm > self.first_region_length:
            t = (time_cm - self.first_region_length) / self.time_pitch + self.first_region_ticks
        else:
            t = time_cm / (self.first_region_velocity * self.time_tick_us)
        if view in self.boundary_views:
            t += self.boundary_ticks
        return t + self.presampling_offset

    def to_raw_units(self, view: int, wire_cm: float, time_cm: float) -> tuple[float, float]:
        return self.cm_to_wire(view, wire_cm), self.cm_to_time(view, time_cm)
