from __future__ import annotations
from typing import Any, Dict, List, Sequence
import h5py
import numpy as np
from datetime import datetime, timezone

from tpcstereo.config.load import json_dumps
from tpcstereo.physics.coordinates import CoordinateConverter
from tpcstereo.reco.diagnostics import ReconDiagnostics
from tpcstereo.reco.params import StereoParams
from tpcstereo.reco.tracks import Track3D

FORMAT_VERSION = "1.0"
_ORIENTATION_CODE = {"direct": 0, "reversed": 1}

_TRACK_KEYS = ("event_id", "track_id", "cluster_a", "cluster_b", "orientation",
               "start_xyz_cm", "end_xyz_cm", "direction", "point_ptr")
_POINT_KEYS = ("xyz_cm", "channel_a", "channel_b", "peak_time_a", "peak_time_b")


def write_init(
    path: str,
    config_text: str,
    converter: CoordinateConverter,
    params: StereoParams,
) -> h5py.File:
    f = h5py.File(path, "w")
    # Root attrs
    f.attrs["format_version"] = FORMAT_VERSION
    f.attrs["created_utc"] = datetime.now(timezone.utc).isoformat()
    f.attrs["software"] = "tpcstereo 0.1.0"
    f.attrs["config_text"] = config_text

    # /meta
    meta = f.create_group("meta")
    meta.attrs["view_a"] = params.view_a
    meta.attrs["view_b"] = params.view_b
    meta.attrs["stereo_angle_rad"] = params.stereo_angle
    meta.attrs["chamber_height_cm"] = params.chamber_height
    meta.attrs["match_tolerance_cm"] = params.match_tolerance
    meta.attrs["wire_gate_cm"] = params.wire_gate
    meta.attrs["vertex_window_ticks"] = params.vertex_window
    meta.attrs["wire_pitch_cm"] = converter.wire_pitch
    meta.attrs["time_pitch_cm"] = converter.time_pitch
    meta.attrs["presampling_offset"] = converter.presampling_offset
    return f


def write_tracks(f: h5py.File, tracks: Sequence[Track3D]) -> None:
    """
    Store tracks and their space points.

    Layout:

    /tracks/event_id      (T,)   int64
    /tracks/track_id      (T,)   int32   index within the event
    /tracks/cluster_a     (T,)   int32
    /tracks/cluster_b     (T,)   int32
    /tracks/orientation   (T,)   uint8   0=direct, 1=reversed
    /tracks/start_xyz_cm  (T,3)  float64
    /tracks/end_xyz_cm    (T,3)  float64
    /tracks/direction     (T,3)  float64 unit vectors
    /tracks/point_ptr     (T+1,) int64   CSR pointers into /spacepoints
    /spacepoints/xyz_cm   (P,3)  float64
    /spacepoints/channel_a, channel_b     (P,) int32
    /spacepoints/peak_time_a, peak_time_b (P,) float64
    """
    T = len(tracks)
    event_id = np.zeros(T, dtype=np.int64)
    track_id = np.zeros(T, dtype=np.int32)
    cl_a = np.zeros(T, dtype=np.int32)
    cl_b = np.zeros(T, dtype=np.int32)
    orient = np.zeros(T, dtype=np.uint8)
    start = np.zeros((T, 3), dtype=np.float64)
    end = np.zeros((T, 3), dtype=np.float64)
    direction = np.zeros((T, 3), dtype=np.float64)
    ptr = np.zeros(T + 1, dtype=np.int64)

    xyz: List[np.ndarray] = []
    ch_a, ch_b, t_a, t_b = [], [], [], []
    for i, trk in enumerate(tracks):
        event_id[i] = int(trk.meta.get("event_id", -1))
        track_id[i] = trk.track_id
        cl_a[i] = trk.cluster_a
        cl_b[i] = trk.cluster_b
        orient[i] = _ORIENTATION_CODE[trk.orientation]
        start[i] = trk.start
        end[i] = trk.end
        direction[i] = trk.direction
        for sp in trk.points:
            xyz.append(sp.xyz)
            ch_a.append(sp.hit_a.channel)
            ch_b.append(sp.hit_b.channel)
            t_a.append(sp.hit_a.peak_time)
            t_b.append(sp.hit_b.peak_time)
        ptr[i + 1] = len(xyz)

    cols = {
        "tracks/event_id": event_id,
        "tracks/track_id": track_id,
        "tracks/cluster_a": cl_a,
        "tracks/cluster_b": cl_b,
        "tracks/orientation": orient,
        "tracks/start_xyz_cm": start,
        "tracks/end_xyz_cm": end,
        "tracks/direction": direction,
        "tracks/point_ptr": ptr,
        "spacepoints/xyz_cm": np.stack(xyz, axis=0) if xyz else np.zeros((0, 3), dtype=np.float64),
        "spacepoints/channel_a": np.asarray(ch_a, dtype=np.int32),
        "spacepoints/channel_b": np.asarray(ch_b, dtype=np.int32),
        "spacepoints/peak_time_a": np.asarray(t_a, dtype=np.float64),
        "spacepoints/peak_time_b": np.asarray(t_b, dtype=np.float64),
    }
    for key, arr in cols.items():
        if key in f:
            del f[key]
        f.create_dataset(key, data=arr, compression="gzip" if arr.size else None)


def write_diagnostics(f: h5py.File, diag: ReconDiagnostics) -> None:
    grp = f.require_group("diagnostics")
    for k, v in diag.as_dict().items():
        grp.attrs[k] = int(v)
    grp.attrs["json"] = json_dumps(diag.as_dict())


def read_tracks(path: str) -> List[Dict[str, Any]]:
    """Return one dict per stored track, space points included as (N,3) arrays."""
    path = str(path)
    with h5py.File(path, "r") as f:
        if "tracks" not in f:
            raise KeyError(f"/tracks not found in {path}")
        tr = {k: f["tracks"][k][...] for k in _TRACK_KEYS}
        sp = {k: f["spacepoints"][k][...] for k in _POINT_KEYS}

    codes = {v: k for k, v in _ORIENTATION_CODE.items()}
    out: List[Dict[str, Any]] = []
    ptr = tr["point_ptr"]
    for i in range(len(tr["track_id"])):
        p0, p1 = int(ptr[i]), int(ptr[i + 1])
        out.append({
            "event_id": int(tr["event_id"][i]),
            "track_id": int(tr["track_id"][i]),
            "cluster_a": int(tr["cluster_a"][i]),
            "cluster_b": int(tr["cluster_b"][i]),
            "orientation": codes[int(tr["orientation"][i])],
            "start": tr["start_xyz_cm"][i],
            "end": tr["end_xyz_cm"][i],
            "direction": tr["direction"][i],
            "points": sp["xyz_cm"][p0:p1],
            "channels": np.stack([sp["channel_a"][p0:p1], sp["channel_b"][p0:p1]], axis=1),
        })
    return out
