# src/tpcstereo/physics/events.py
from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional
import math

from tpcstereo.errors import UnphysicalInputError
from .hits import Hit, Cluster2D, Vertex2D

@dataclass(slots=True)
class Event:
    """
    One readout's worth of input to the stereo reconstruction.

    hits     : the event's hit collection (owner of all Hit objects)
    clusters : upstream 2D clusters, each referencing hits from `hits`
    vertices : optional 2D vertex hints, at most one is used per view
    ingest_error : set by an adapter that could not build this event from
                   its source; raised by validate()
    """
    event_id: int
    hits: List[Hit] = field(default_factory=list)
    clusters: List[Cluster2D] = field(default_factory=list)
    vertices: List[Vertex2D] = field(default_factory=list)
    meta: Dict[str, Any] = field(default_factory=dict)
    ingest_error: Optional[UnphysicalInputError] = None

    def vertex_for_view(self, view: int) -> Optional[Vertex2D]:
        """First vertex hint recorded for `view`, or None."""
        for vtx in self.vertices:
            if vtx.view == view:
                return vtx
        return None

    def validate(self) -> None:
        """
        Raise UnphysicalInputError if clusters reference hits that do not
        belong to this event, mix views, or carry non-finite times.
        """
        if self.ingest_error is not None:
            raise self.ingest_error
        owned = {id(h) for h in self.hits}
        for h in self.hits:
            if not math.isfinite(h.peak_time):
                raise UnphysicalInputError(
                    f"Event {self.event_id}: hit on channel {h.channel} has non-finite peak time"
                )
        for pos, cl in enumerate(self.clusters):
            if not cl.hits:
                raise UnphysicalInputError(f"Event {self.event_id}: cluster {pos} has no hits")
            for h in cl.hits:
                if id(h) not in owned:
                    raise UnphysicalInputError(
                        f"Event {self.event_id}: cluster {pos} references a hit "
                        f"(channel {h.channel}) outside the event hit collection"
                    )
                if h.plane != cl.view:
                    raise UnphysicalInputError(
                        f"Event {self.event_id}: cluster {pos} in view {cl.view} "
                        f"contains a hit from plane {h.plane}"
                    )
        for vtx in self.vertices:
            if not (math.isfinite(vtx.wire) and math.isfinite(vtx.time)):
                raise UnphysicalInputError(f"Event {self.event_id}: non-finite vertex hint {vtx}")
