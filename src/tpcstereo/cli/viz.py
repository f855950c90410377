from __future__ import annotations

import typer
from typing import Optional

from tpcstereo.vis.hdf import save_tracks_png

app = typer.Typer(help="tpcstereo visualization tools")

@app.callback()
def _group():
    """Visualization commands for tpcstereo output files."""

@app.command("h5-to-png")
def h5_to_png(
    h5_path: str = typer.Argument(..., help="Path to HDF5 track file written by the pipeline"),
    event: Optional[int] = typer.Option(None, "--event", "-e", help="Only draw tracks of this event"),
    out: Optional[str] = typer.Option(None, "--out", "-o", help="Output PNG path (defaults to file.png)"),
):
    """Render stored tracks and space points to a PNG."""
    out_png = save_tracks_png(h5_path, out_png=out, event_id=event)
    typer.echo(f"Wrote {out_png}")

if __name__ == "__main__":
    app()
