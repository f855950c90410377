from __future__ import annotations
from dataclasses import dataclass
from typing import Iterable, Optional

from tpcstereo.geometry.wires import WireGeometry

@dataclass(frozen=True, slots=True, eq=False)
class Hit:
    """
    Reconstructed ionization pulse on one wire.

    channel   : readout channel
    peak_time : drift time at the pulse maximum [ticks]
    plane     : wire plane (== view index)
    wire      : wire index within the plane

    Hits compare by identity: clusters and space points hold references into
    the event's hit collection, never copies.
    """
    channel: int
    peak_time: float
    plane: int
    wire: int

    @property
    def view(self) -> int:
        return self.plane

    @classmethod
    def from_channel(cls, channel: int, peak_time: float, geometry: WireGeometry) -> "Hit":
        plane, wire = geometry.channel_to_wire(channel)
        return cls(channel=int(channel), peak_time=float(peak_time), plane=plane, wire=wire)


@dataclass(frozen=True, slots=True)
class Vertex2D:
    """2D vertex hint in one view, raw units (wire index, ticks)."""
    view: int
    wire: float
    time: float


@dataclass(frozen=True, slots=True)
class Cluster2D:
    """
    Hits grouped upstream into one line-like object in a single view.

    hits are kept sorted by wire ascending (channel breaks ties).
    start_wire / start_time / dtdw are the upstream-recorded start position
    and slope in raw units; they seed the provisional line used by the
    vertex window.
    """
    view: int
    hits: tuple[Hit, ...]
    start_wire: float
    start_time: float
    dtdw: float
    index: int = -1

    @classmethod
    def from_hits(
        cls,
        view: int,
        hits: Iterable[Hit],
        *,
        index: int = -1,
        start_wire: Optional[float] = None,
        start_time: Optional[float] = None,
        dtdw: Optional[float] = None,
    ) -> "Cluster2D":
        ordered = tuple(sorted(hits, key=lambda h: (h.wire, h.channel)))
        first = ordered[0] if ordered else None
        last = ordered[-1] if ordered else None
        if start_wire is None:
            start_wire = float(first.wire) if first is not None else 0.0
        if start_time is None:
            start_time = float(first.peak_time) if first is not None else 0.0
        if dtdw is None:
            dtdw = 0.0
            if first is not None and last.wire != first.wire:
                dtdw = (last.peak_time - first.peak_time) / (last.wire - first.wire)
        return cls(
            view=int(view),
            hits=ordered,
            start_wire=float(start_wire),
            start_time=float(start_time),
            dtdw=float(dtdw),
            index=int(index),
        )

    def __len__(self) -> int:
        return len(self.hits)

    def time_at_wire(self, wire: float) -> float:
        """Provisional line t(w) from the recorded start and slope."""
        return self.start_time + self.dtdw * (wire - self.start_wire)
