from __future__ import annotations
import math
import numpy as np
from typing import List, Sequence

from ..geometry.wires import WireGeometry
from ..physics.coordinates import CoordinateConverter
from ..physics.events import Event
from ..physics.hits import Cluster2D, Hit
from ..reco.geometry3d import intersect_wires

def wires_from_xyz(xyz: Sequence[float], angle: float, height: float) -> tuple[float, float]:
    """
    Invert the stereo intersection: (wire_a_cm, wire_b_cm) for a 3D point.
    """
    _, y, z = (float(v) for v in xyz)
    s = 2.0 * math.cos(angle) * (z + 0.5 * height * math.tan(angle))
    d = 2.0 * math.sin(angle) * y
    return 0.5 * (s - d), 0.5 * (s + d)

def _view_hits(
    view: int,
    w0_cm: float,
    w1_cm: float,
    x0: float,
    x1: float,
    converter: CoordinateConverter,
    geometry: WireGeometry,
    time_sigma_ticks: float,
    rng: np.random.Generator,
) -> List[Hit]:
    """One hit per wire crossed by the projected segment."""
    n_wires = geometry.wires_per_plane[view]
    iw0 = int(round(converter.cm_to_wire(view, w0_cm)))
    iw1 = int(round(converter.cm_to_wire(view, w1_cm)))
    lo, hi = min(iw0, iw1), max(iw0, iw1)
    hits: List[Hit] = []
    for iw in range(lo, hi + 1):
        if not 0 <= iw < n_wires:
            continue
        w_cm = converter.wire_to_cm(view, iw)
        s = 0.0 if w1_cm == w0_cm else (w_cm - w0_cm) / (w1_cm - w0_cm)
        s = min(max(s, 0.0), 1.0)
        x = x0 + s * (x1 - x0)
        t = converter.cm_to_time(view, x)
        if time_sigma_ticks > 0:
            t += rng.normal(0.0, time_sigma_ticks)
        ch = geometry.plane_wire_to_channel(view, iw)
        hits.append(Hit(channel=ch, peak_time=float(t), plane=view, wire=iw))
    return hits

def synth_track_event(
    start_xyz: Sequence[float],
    end_xyz: Sequence[float],
    converter: CoordinateConverter,
    geometry: WireGeometry,
    views: tuple[int, int] = (0, 1),
    event_id: int = 0,
    time_sigma_ticks: float = 0.0,
    rng: np.random.Generator | None = None,
) -> Event:
    """
    Event with one straight track: a hit on every crossed wire of both
    stereo views and one cluster per view. Truth endpoints go to meta.
    """
    rng = rng or np.random.default_rng()
    angle, height = geometry.stereo_angle, geometry.chamber_height
    wa0, wb0 = wires_from_xyz(start_xyz, angle, height)
    wa1, wb1 = wires_from_xyz(end_xyz, angle, height)
    x0, x1 = float(start_xyz[0]), float(end_xyz[0])

    view_a, view_b = views
    hits_a = _view_hits(view_a, wa0, wa1, x0, x1, converter, geometry, time_sigma_ticks, rng)
    hits_b = _view_hits(view_b, wb0, wb1, x0, x1, converter, geometry, time_sigma_ticks, rng)

    clusters = []
    for view, hits in ((view_a, hits_a), (view_b, hits_b)):
        if hits:
            clusters.append(Cluster2D.from_hits(view, hits, index=len(clusters)))
    return Event(
        event_id=event_id,
        hits=hits_a + hits_b,
        clusters=clusters,
        meta={"truth_start": np.asarray(start_xyz, dtype=float),
              "truth_end": np.asarray(end_xyz, dtype=float)},
    )

def synth_events(
    n_events: int,
    converter: CoordinateConverter,
    geometry: WireGeometry,
    views: tuple[int, int] = (0, 1),
    max_drift_cm: float = 40.0,
    time_sigma_ticks: float = 0.0,
    rng: np.random.Generator | None = None,
) -> list[Event]:
    """
    Random straight tracks, endpoints drawn uniformly in (wire, drift) space
    of both views so that every track lies inside the wire planes.
    """
    rng = rng or np.random.default_rng()
    angle, height = geometry.stereo_angle, geometry.chamber_height
    view_a, view_b = views
    events: list[Event] = []
    for k in range(n_events):
        ends = []
        for _ in range(2):
            iwa = rng.uniform(0, geometry.wires_per_plane[view_a] - 1)
            iwb = rng.uniform(0, geometry.wires_per_plane[view_b] - 1)
            x = rng.uniform(1.0, max_drift_cm)
            ends.append(intersect_wires(
                x,
                converter.wire_to_cm(view_a, iwa),
                converter.wire_to_cm(view_b, iwb),
                angle,
                height,
            ))
        events.append(synth_track_event(
            ends[0], ends[1], converter, geometry,
            views=views, event_id=k, time_sigma_ticks=time_sigma_ticks, rng=rng,
        ))
    return events
