from __future__ import annotations
from dataclasses import dataclass
import math

import numpy as np

from tpcstereo.errors import UnphysicalInputError


@dataclass(frozen=True)
class WireGeometry:
    """
    Wire-plane geometry of a single drift volume.

    Channels are numbered plane by plane: plane 0 owns channels
    [0, n0), plane 1 owns [n0, n0+n1), and so on.

    wires_per_plane : wire count per plane (plane index == view index)
    wire_pitch      : perpendicular wire spacing [cm]
    plane_pitch     : spacing between consecutive wire planes [cm]
    stereo_angle    : wire angle w.r.t. the vertical [rad]
    chamber_height  : transverse (vertical) extent of the chamber [cm]
    """
    wires_per_plane: tuple[int, ...]
    wire_pitch: float
    plane_pitch: float
    stereo_angle: float
    chamber_height: float

    @classmethod
    def from_cfg(cls, wires_per_plane, wire_pitch_cm, plane_pitch_cm, stereo_angle_deg, chamber_height_cm):
        counts = tuple(int(n) for n in wires_per_plane)
        if not counts or any(n <= 0 for n in counts):
            raise ValueError(f"wires_per_plane must be non-empty and positive, got {counts}")
        return cls(
            wires_per_plane=counts,
            wire_pitch=float(wire_pitch_cm),
            plane_pitch=float(plane_pitch_cm),
            stereo_angle=math.radians(float(stereo_angle_deg)),
            chamber_height=float(chamber_height_cm),
        )

    @property
    def n_planes(self) -> int:
        return len(self.wires_per_plane)

    @property
    def n_channels(self) -> int:
        return int(sum(self.wires_per_plane))

    def _first_channel(self, plane: int) -> int:
        return int(sum(self.wires_per_plane[:plane]))

    def channel_to_wire(self, channel: int) -> tuple[int, int]:
        """Return (plane, wire) for a readout channel."""
        ch = int(channel)
        if ch < 0 or ch >= self.n_channels:
            raise UnphysicalInputError(
                f"Channel {channel} outside detector (0..{self.n_channels - 1})"
            )
        first = 0
        for plane, n in enumerate(self.wires_per_plane):
            if ch < first + n:
                return plane, ch - first
            first += n
        raise AssertionError("unreachable")

    def plane_wire_to_channel(self, plane: int, wire: int) -> int:
        if not 0 <= plane < self.n_planes:
            raise UnphysicalInputError(f"Plane {plane} does not exist")
        if not 0 <= wire < self.wires_per_plane[plane]:
            raise UnphysicalInputError(
                f"Wire {wire} outside plane {plane} (0..{self.wires_per_plane[plane] - 1})"
            )
        return self._first_channel(plane) + int(wire)

    def channels_to_wires(self, channels: np.ndarray) -> tuple[np.ndarray, np.ndarray]:
        """Vectorised channel_to_wire for adapter use."""
        ch = np.asarray(channels, dtype=np.int64)
        if ch.size and (ch.min() < 0 or ch.max() >= self.n_channels):
            bad = ch[(ch < 0) | (ch >= self.n_channels)][0]
            raise UnphysicalInputError(
                f"Channel {int(bad)} outside detector (0..{self.n_channels - 1})"
            )
        bounds = np.cumsum(self.wires_per_plane)
        planes = np.searchsorted(bounds, ch, side="right")
        starts = np.concatenate([[0], bounds[:-1]])
        wires = ch - starts[planes]
        return planes.astype(np.int32), wires.astype(np.int32)
