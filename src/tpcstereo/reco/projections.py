from __future__ import annotations
from dataclasses import dataclass
from typing import Dict, List, Optional
import math

import numpy as np

from tpcstereo.errors import DegenerateFitError
from tpcstereo.physics.coordinates import CoordinateConverter
from tpcstereo.physics.events import Event
from tpcstereo.physics.hits import Cluster2D, Hit, Vertex2D
from .diagnostics import ReconDiagnostics
from .params import StereoParams


@dataclass(frozen=True, eq=False)
class Projection:
    """
    Straight-line fit to one cluster in (wire [cm], time [cm]).

    start / end are the converted positions of the first and last hit in
    wire order; start_line / end_line are the fitted times at those wires.
    """
    view: int
    intercept: float
    slope: float
    start: tuple[float, float]
    end: tuple[float, float]
    start_line: float
    end_line: float
    cluster_index: int
    hits: tuple[Hit, ...]
    wires_cm: np.ndarray
    times_cm: np.ndarray

    @property
    def start_wire(self) -> float:
        return self.start[0]

    @property
    def end_wire(self) -> float:
        return self.end[0]

    @property
    def length(self) -> float:
        """Length of the fitted segment in its own view [cm]."""
        return math.hypot(self.end_line - self.start_line, self.end[0] - self.start[0])

    def line_time(self, wire_cm: float) -> float:
        return self.intercept + self.slope * wire_cm


def passes_vertex_window(cluster: Cluster2D, vertex: Optional[Vertex2D], window: float) -> bool:
    """
    Keep clusters whose provisional line passes within `window` ticks of the
    view's vertex hint. Clusters without a hint always pass.
    """
    if vertex is None:
        return True
    t_vtx = cluster.time_at_wire(vertex.wire)
    return abs(vertex.time - t_vtx) <= window


def fit_projection(
    cluster: Cluster2D,
    converter: CoordinateConverter,
    cluster_index: int | None = None,
) -> Projection:
    """Least-squares line t(w) through the cluster's converted hits."""
    index = cluster.index if cluster_index is None else cluster_index
    wires, times = converter.hits_to_cm(cluster.hits)
    if np.unique(wires).size < 2:
        raise DegenerateFitError(
            f"cluster {index} (view {cluster.view}) spans fewer than 2 distinct wires"
        )
    try:
        slope, intercept = np.polyfit(wires, times, 1)
    except np.linalg.LinAlgError as exc:
        raise DegenerateFitError(f"cluster {index}: singular fit ({exc})") from exc
    if not (np.isfinite(slope) and np.isfinite(intercept)):
        raise DegenerateFitError(f"cluster {index}: non-finite fit parameters")

    w0, w1 = float(wires[0]), float(wires[-1])
    return Projection(
        view=cluster.view,
        intercept=float(intercept),
        slope=float(slope),
        start=(w0, float(times[0])),
        end=(w1, float(times[-1])),
        start_line=float(intercept + slope * w0),
        end_line=float(intercept + slope * w1),
        cluster_index=index,
        hits=cluster.hits,
        wires_cm=wires,
        times_cm=times,
    )


def build_projections(
    event: Event,
    converter: CoordinateConverter,
    params: StereoParams,
    diag: ReconDiagnostics | None = None,
    verbose: int = 1,
) -> Dict[int, List[Projection]]:
    """
    Vertex-filter and fit every cluster of the two stereo views.

    Returns {view: [Projection, ...]} in cluster order. Clusters from other
    views are ignored; degenerate fits are reported and skipped.
    """
    diag = diag if diag is not None else ReconDiagnostics()
    out: Dict[int, List[Projection]] = {params.view_a: [], params.view_b: []}

    for pos, cl in enumerate(event.clusters):
        diag.clusters_in += 1
        if cl.view not in out:
            diag.clusters_other_view += 1
            continue

        vtx = event.vertex_for_view(cl.view)
        if not passes_vertex_window(cl, vtx, params.vertex_window):
            diag.vertex_rejected += 1
            if verbose >= 2:
                print(f"[fit] Event {event.event_id}: cluster {pos} (view {cl.view}) "
                      f"outside vertex window of {params.vertex_window} ticks")
            continue

        try:
            proj = fit_projection(cl, converter, cluster_index=pos)
        except DegenerateFitError as exc:
            diag.degenerate_fit += 1
            diag.inc("degenerate_fit")
            if verbose >= 1:
                print(f"[fit] Event {event.event_id}: {exc}; cluster skipped")
            continue

        out[cl.view].append(proj)

    diag.projections_a += len(out[params.view_a])
    diag.projections_b += len(out[params.view_b])
    return out
