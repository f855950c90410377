import numpy as np
import matplotlib.pyplot as plt
from pathlib import Path

from tpcstereo.io.track_store import read_tracks

def save_tracks_png(h5_path: str, out_png: str | None = None, event_id: int | None = None):
    """
    Render stored space points in the Z-X (top) and Z-Y (side) projections.

    event_id restricts the plot to one event; None draws every track.
    """
    h5_path = str(h5_path)
    tracks = read_tracks(h5_path)
    if event_id is not None:
        tracks = [t for t in tracks if t["event_id"] == event_id]

    if out_png is None:
        out_png = str(Path(h5_path).with_suffix(".png"))

    fig, (ax_x, ax_y) = plt.subplots(2, 1, sharex=True, figsize=(8, 6))
    for trk in tracks:
        pts = np.asarray(trk["points"])
        seg = np.stack([trk["start"], trk["end"]], axis=0)
        label = f"ev{trk['event_id']}/trk{trk['track_id']}"
        line, = ax_x.plot(seg[:, 2], seg[:, 0], "-", lw=0.8, label=label)
        ax_y.plot(seg[:, 2], seg[:, 1], "-", lw=0.8, color=line.get_color())
        if len(pts):
            ax_x.plot(pts[:, 2], pts[:, 0], ".", color=line.get_color())
            ax_y.plot(pts[:, 2], pts[:, 1], ".", color=line.get_color())

    ax_x.set_ylabel("X (drift) [cm]")
    ax_y.set_ylabel("Y [cm]")
    ax_y.set_xlabel("Z [cm]")
    title = Path(h5_path).name if event_id is None else f"{Path(h5_path).name} : event {event_id}"
    ax_x.set_title(title)
    if 0 < len(tracks) <= 10:
        ax_x.legend(fontsize="small")
    fig.tight_layout()
    fig.savefig(out_png, dpi=150)
    plt.close(fig)
    return out_png
