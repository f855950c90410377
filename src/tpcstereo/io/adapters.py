"""
tpcstereo.io.adapters

Readers that turn external hit/cluster sources into physics-layer events
(tpcstereo.physics.hits.{Hit,Cluster2D,Vertex2D}; tpcstereo.physics.events.Event)
for the stereo reconstruction.

Design goals
------------
- Keep I/O concerns isolated from the reconstruction.
- Resolve channels to (plane, wire) through the geometry on ingest; a
  channel the geometry does not know is an upstream contract violation,
  attached to that event as Event.ingest_error so a run can skip it.
- Stream events one at a time.

Entry points
------------
- class HDF5EventAdapter: ragged HDF5 files written by io.event_store.
- class TableAdapter: CSV/Parquet hit tables (one row per hit).
- class ROOTAdapter: flat ROOT trees with the same columns as the table.
- function make_adapter(kind, options, geometry): factory from [io].

Config (example)
----------------
[io]
input_path = "data/run42.csv"
input_format = "table"            # "hdf5_events" | "table" | "root"

[io.adapter]
vertices_path = "data/run42_vertices.csv"   # optional
tree = "hits"                               # ROOT only
vertex_tree = "vertices"                    # ROOT only, optional
"""
from __future__ import annotations
from pathlib import Path
from typing import Any, Dict, Iterator, List, Mapping, Optional
import math

import h5py
import numpy as np
import pandas as pd
import uproot

from tpcstereo.errors import UnphysicalInputError
from tpcstereo.geometry.wires import WireGeometry
from tpcstereo.physics.events import Event
from tpcstereo.physics.hits import Cluster2D, Hit, Vertex2D

HIT_COLUMNS = ("event", "channel", "peak_time")
VERTEX_COLUMNS = ("event", "view", "wire", "time")


def _opt(x: float) -> Optional[float]:
    x = float(x)
    return None if math.isnan(x) else x


def _check_ptr(path, name: str, ptr: np.ndarray, n: int, total: int) -> None:
    """CSR pointer array: shape (n+1,), starts at 0, non-decreasing, ends at `total`."""
    if ptr.shape != (n + 1,):
        raise UnphysicalInputError(f"{path}: {name} has shape {ptr.shape}, expected ({n + 1},)")
    if ptr[0] != 0 or ptr[-1] != total or np.any(np.diff(ptr) < 0):
        raise UnphysicalInputError(f"{path}: {name} is not a valid pointer array over {total} entries")


def _rejected(event_id: int, exc: UnphysicalInputError, source: str) -> Event:
    """Placeholder for an event the source could not provide; validate() raises `exc`."""
    return Event(event_id=event_id, meta={"source": source}, ingest_error=exc)


# ---------------------------------------------------------------------------
# Base adapter API
# ---------------------------------------------------------------------------

class BaseAdapter:
    """
    Abstract adapter interface.

    Yields Event objects with hits resolved against the wire geometry.
    """

    def __init__(self, geometry: WireGeometry) -> None:
        self.geometry = geometry

    def iter_events(self, path: str) -> Iterator[Event]:
        raise NotImplementedError


# ---------------------------------------------------------------------------
# HDF5 ragged adapter
# ---------------------------------------------------------------------------

class HDF5EventAdapter(BaseAdapter):
    """
    Read the CSR layout documented in io.event_store.write_events.

    Inconsistent pointer arrays make the whole file unreadable and raise
    UnphysicalInputError here. A defect confined to one event (unknown
    channel, cluster hit index out of range) is attached to that event as
    `ingest_error` and raised by Event.validate().
    """

    def iter_events(self, path: str) -> Iterator[Event]:
        with h5py.File(path, "r") as f:
            event_id = f["events/event_id"][...]
            hit_ptr = f["events/hit_ptr"][...]
            cluster_ptr = f["events/cluster_ptr"][...]
            vertex_ptr = f["events/vertex_ptr"][...]
            channel = f["hits/channel"][...]
            peak_time = f["hits/peak_time"][...]
            cl_view = f["clusters/view"][...]
            cl_hit_ptr = f["clusters/hit_ptr"][...]
            cl_hit_index = f["clusters/hit_index"][...]
            cl_start_wire = f["clusters/start_wire"][...]
            cl_start_time = f["clusters/start_time"][...]
            cl_dtdw = f["clusters/dtdw"][...]
            vx_view = f["vertices/view"][...]
            vx_wire = f["vertices/wire"][...]
            vx_time = f["vertices/time"][...]

        n = len(event_id)
        _check_ptr(path, "/events/hit_ptr", hit_ptr, n, len(channel))
        _check_ptr(path, "/events/cluster_ptr", cluster_ptr, n, len(cl_view))
        _check_ptr(path, "/events/vertex_ptr", vertex_ptr, n, len(vx_view))
        _check_ptr(path, "/clusters/hit_ptr", cl_hit_ptr, len(cl_view), len(cl_hit_index))
        if not (len(peak_time) == len(channel)
                and len(cl_start_wire) == len(cl_start_time) == len(cl_dtdw) == len(cl_view)
                and len(vx_wire) == len(vx_time) == len(vx_view)):
            raise UnphysicalInputError(f"{path}: per-hit/cluster/vertex column lengths disagree")

        for i, eid in enumerate(event_id):
            eid = int(eid)
            try:
                h0, h1 = int(hit_ptr[i]), int(hit_ptr[i + 1])
                planes, wires = self.geometry.channels_to_wires(channel[h0:h1])
                hits = [
                    Hit(channel=int(channel[k]), peak_time=float(peak_time[k]),
                        plane=int(p), wire=int(w))
                    for k, p, w in zip(range(h0, h1), planes, wires)
                ]

                clusters: List[Cluster2D] = []
                for c in range(int(cluster_ptr[i]), int(cluster_ptr[i + 1])):
                    idx = cl_hit_index[int(cl_hit_ptr[c]):int(cl_hit_ptr[c + 1])]
                    if idx.size and (idx.min() < 0 or idx.max() >= len(hits)):
                        raise UnphysicalInputError(
                            f"Event {eid}: cluster {len(clusters)} references hit "
                            f"index outside 0..{len(hits) - 1}"
                        )
                    clusters.append(Cluster2D.from_hits(
                        int(cl_view[c]),
                        [hits[int(k)] for k in idx],
                        index=len(clusters),
                        start_wire=_opt(cl_start_wire[c]),
                        start_time=_opt(cl_start_time[c]),
                        dtdw=_opt(cl_dtdw[c]),
                    ))
            except UnphysicalInputError as exc:
                yield _rejected(eid, exc, str(path))
                continue

            vertices = [
                Vertex2D(view=int(vx_view[v]), wire=float(vx_wire[v]), time=float(vx_time[v]))
                for v in range(int(vertex_ptr[i]), int(vertex_ptr[i + 1]))
            ]
            yield Event(event_id=eid, hits=hits, clusters=clusters, vertices=vertices,
                        meta={"source": str(path)})


# ---------------------------------------------------------------------------
# Table / ROOT adapters
# ---------------------------------------------------------------------------

def events_from_tables(
    hits: pd.DataFrame,
    geometry: WireGeometry,
    vertices: Optional[pd.DataFrame] = None,
    *,
    source: str = "",
) -> Iterator[Event]:
    """
    Group a one-row-per-hit table into events.

    Required hit columns: event, channel, peak_time. Optional: cluster
    (negative = unclustered). A cluster's view is the plane of its hits.
    Events with an unknown channel are yielded with `ingest_error` set.
    Optional vertex columns: event, view, wire, time.
    """
    missing = [c for c in HIT_COLUMNS if c not in hits.columns]
    if missing:
        raise UnphysicalInputError(f"{source or 'hit table'}: missing columns {missing}")
    if "cluster" not in hits.columns:
        hits = hits.assign(cluster=-1)

    vtx_groups: Dict[int, pd.DataFrame] = {}
    if vertices is not None and len(vertices):
        vmissing = [c for c in VERTEX_COLUMNS if c not in vertices.columns]
        if vmissing:
            raise UnphysicalInputError(f"vertex table: missing columns {vmissing}")
        vtx_groups = {int(k): g for k, g in vertices.groupby("event", sort=True)}

    for eid, grp in hits.groupby("event", sort=True):
        eid = int(eid)
        try:
            planes, wires = geometry.channels_to_wires(grp["channel"].to_numpy())
        except UnphysicalInputError as exc:
            yield _rejected(eid, exc, source)
            continue
        ev_hits = [
            Hit(channel=int(ch), peak_time=float(t), plane=int(p), wire=int(w))
            for ch, t, p, w in zip(grp["channel"].to_numpy(), grp["peak_time"].to_numpy(), planes, wires)
        ]

        cluster_ids = grp["cluster"].to_numpy()
        clusters: List[Cluster2D] = []
        for cid in sorted(set(int(c) for c in cluster_ids if c >= 0)):
            members = [ev_hits[k] for k in np.flatnonzero(cluster_ids == cid)]
            clusters.append(Cluster2D.from_hits(members[0].plane, members, index=len(clusters)))

        vertices_ev = []
        if eid in vtx_groups:
            for row in vtx_groups[eid].itertuples(index=False):
                vertices_ev.append(Vertex2D(view=int(row.view), wire=float(row.wire), time=float(row.time)))

        yield Event(event_id=eid, hits=ev_hits, clusters=clusters, vertices=vertices_ev,
                    meta={"source": source})


def _read_table(path: str | Path) -> pd.DataFrame:
    p = Path(path)
    suf = p.suffix.lower()
    if suf == ".csv":
        return pd.read_csv(p)
    if suf in (".parquet", ".pq"):
        return pd.read_parquet(p)
    raise ValueError(f"Unrecognized table input: {p.name} (expected .csv or .parquet)")


class TableAdapter(BaseAdapter):
    """CSV/Parquet hit tables, optional separate vertex table."""

    def __init__(self, geometry: WireGeometry, vertices_path: Optional[str] = None) -> None:
        super().__init__(geometry)
        self.vertices_path = vertices_path

    def iter_events(self, path: str) -> Iterator[Event]:
        hits = _read_table(path)
        vertices = _read_table(self.vertices_path) if self.vertices_path else None
        yield from events_from_tables(hits, self.geometry, vertices, source=str(path))


class ROOTAdapter(BaseAdapter):
    """
    Flat ROOT trees, one entry per hit, with branches event/channel/peak_time
    (and optionally cluster); an optional vertex tree with event/view/wire/time.
    """

    def __init__(
        self,
        geometry: WireGeometry,
        tree: str = "hits",
        vertex_tree: Optional[str] = None,
    ) -> None:
        super().__init__(geometry)
        self.tree = tree
        self.vertex_tree = vertex_tree

    def iter_events(self, path: str) -> Iterator[Event]:
        with uproot.open(path) as f:
            t = f[self.tree]
            branches = [b for b in (*HIT_COLUMNS, "cluster") if b in t.keys()]
            hits = t.arrays(branches, library="pd")
            vertices = None
            if self.vertex_tree is not None:
                vertices = f[self.vertex_tree].arrays(list(VERTEX_COLUMNS), library="pd")
        yield from events_from_tables(hits, self.geometry, vertices, source=str(path))


def make_adapter(kind: str, options: Mapping[str, Any], geometry: WireGeometry) -> BaseAdapter:
    """Factory keyed by [io].input_format with [io.adapter] options."""
    opts = dict(options or {})
    if kind == "hdf5_events":
        return HDF5EventAdapter(geometry)
    if kind == "table":
        return TableAdapter(geometry, vertices_path=opts.get("vertices_path"))
    if kind == "root":
        return ROOTAdapter(geometry, tree=opts.get("tree", "hits"), vertex_tree=opts.get("vertex_tree"))
    raise ValueError(f"Unknown input format: {kind}")
