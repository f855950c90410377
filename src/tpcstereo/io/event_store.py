from __future__ import annotations
from typing import Dict, Sequence
import h5py
import numpy as np
from datetime import datetime, timezone

from tpcstereo.errors import UnphysicalInputError
from tpcstereo.physics.events import Event

FORMAT_VERSION = "1.0"


def _flatten_events(events: Sequence[Event]) -> Dict[str, np.ndarray]:
    """
    Convert events into CSR-style ragged columns.

    Per-event pointers (N+1) index the flat hit/cluster/vertex arrays;
    cluster hit membership is stored as event-local hit indices behind a
    per-cluster pointer (K+1).
    """
    n = len(events)
    event_id = np.zeros(n, dtype=np.int64)
    hit_ptr = np.zeros(n + 1, dtype=np.int64)
    cluster_ptr = np.zeros(n + 1, dtype=np.int64)
    vertex_ptr = np.zeros(n + 1, dtype=np.int64)

    channel, peak_time = [], []
    cl_view, cl_hit_ptr, cl_hit_index = [], [0], []
    cl_start_wire, cl_start_time, cl_dtdw = [], [], []
    vx_view, vx_wire, vx_time = [], [], []

    for i, ev in enumerate(events):
        event_id[i] = int(ev.event_id)
        local = {id(h): k for k, h in enumerate(ev.hits)}
        for h in ev.hits:
            channel.append(int(h.channel))
            peak_time.append(float(h.peak_time))
        for pos, cl in enumerate(ev.clusters):
            for h in cl.hits:
                k = local.get(id(h))
                if k is None:
                    raise UnphysicalInputError(
                        f"Event {ev.event_id}: cluster {pos} references a hit outside the event"
                    )
                cl_hit_index.append(k)
            cl_hit_ptr.append(len(cl_hit_index))
            cl_view.append(int(cl.view))
            cl_start_wire.append(cl.start_wire)
            cl_start_time.append(cl.start_time)
            cl_dtdw.append(cl.dtdw)
        for vtx in ev.vertices:
            vx_view.append(int(vtx.view))
            vx_wire.append(float(vtx.wire))
            vx_time.append(float(vtx.time))
        hit_ptr[i + 1] = len(channel)
        cluster_ptr[i + 1] = len(cl_view)
        vertex_ptr[i + 1] = len(vx_view)

    return {
        "events/event_id": event_id,
        "events/hit_ptr": hit_ptr,
        "events/cluster_ptr": cluster_ptr,
        "events/vertex_ptr": vertex_ptr,
        "hits/channel": np.asarray(channel, dtype=np.int32),
        "hits/peak_time": np.asarray(peak_time, dtype=np.float64),
        "clusters/view": np.asarray(cl_view, dtype=np.int16),
        "clusters/hit_ptr": np.asarray(cl_hit_ptr, dtype=np.int64),
        "clusters/hit_index": np.asarray(cl_hit_index, dtype=np.int64),
        "clusters/start_wire": np.asarray(cl_start_wire, dtype=np.float64),
        "clusters/start_time": np.asarray(cl_start_time, dtype=np.float64),
        "clusters/dtdw": np.asarray(cl_dtdw, dtype=np.float64),
        "vertices/view": np.asarray(vx_view, dtype=np.int16),
        "vertices/wire": np.asarray(vx_wire, dtype=np.float64),
        "vertices/time": np.asarray(vx_time, dtype=np.float64),
    }


def write_events(path: str, events: Sequence[Event], *, source: str = "") -> None:
    """
    Write events to an HDF5 file readable by HDF5EventAdapter.

    Layout:

    /events/event_id     (N,)    int64
    /events/hit_ptr      (N+1,)  int64   CSR pointers into /hits
    /events/cluster_ptr  (N+1,)  int64   CSR pointers into /clusters
    /events/vertex_ptr   (N+1,)  int64   CSR pointers into /vertices
    /hits/channel        (M,)    int32
    /hits/peak_time      (M,)    float64 [ticks]
    /clusters/view       (K,)    int16
    /clusters/hit_ptr    (K+1,)  int64   CSR pointers into /clusters/hit_index
    /clusters/hit_index  (H,)    int64   event-local hit indices
    /clusters/start_wire, start_time, dtdw (K,) float64, NaN = not recorded
    /vertices/view, wire, time (V,)
    """
    cols = _flatten_events(events)
    with h5py.File(path, "w") as f:
        f.attrs["format_version"] = FORMAT_VERSION
        f.attrs["created_utc"] = datetime.now(timezone.utc).isoformat()
        f.attrs["software"] = "tpcstereo 0.1.0"
        f.attrs["source"] = source
        for key, arr in cols.items():
            f.create_dataset(key, data=arr)
