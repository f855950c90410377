from __future__ import annotations

from itertools import islice
from pathlib import Path
from typing import Iterable, List, Optional
import typer
from tqdm import tqdm

from tpcstereo.config.load import load_config, snapshot_config_toml
from tpcstereo.config.schemas import Config
from tpcstereo.errors import UnphysicalInputError
from tpcstereo.io.adapters import make_adapter
from tpcstereo.io.track_store import write_init, write_tracks, write_diagnostics
from tpcstereo.physics.events import Event
from tpcstereo.reco.diagnostics import ReconDiagnostics
from tpcstereo.reco.params import build_context
from tpcstereo.reco.tracks import StereoReconstructor, Track3D
from tpcstereo.vis.hdf import save_tracks_png


def _iter_source_events(cfg: Config, geometry) -> Iterable[Event]:
    """
    Events from cfg.io.input_path via the adapter selected by
    cfg.io.input_format, truncated to cfg.run.max_events when set.
    """
    adapter = make_adapter(cfg.io.input_format, cfg.io.adapter, geometry)
    events = adapter.iter_events(str(cfg.io.input_path))
    if cfg.run.max_events is not None:
        events = islice(events, cfg.run.max_events)
    return events


def reconstruct_events(
    cfg: Config,
    events: Iterable[Event],
    reco: StereoReconstructor,
) -> List[Track3D]:
    """
    Reconstruct every event; malformed events abort unless
    [run].skip_failed_events is set.
    """
    diag_level = cfg.run.diagnostics_level
    tracks: List[Track3D] = []
    it = tqdm(events, desc="events", unit="ev", disable=not cfg.run.progress)
    for ev in it:
        try:
            tracks.extend(reco.process(ev))
        except UnphysicalInputError as exc:
            reco.diagnostics.failed_events += 1
            if not cfg.run.skip_failed_events:
                raise
            if diag_level >= 1:
                print(f"[pipeline] Skipping event {ev.event_id}: {exc}")
    return tracks


def run_from_config(cfg: Config, *, config_text: str = "") -> tuple[Path, ReconDiagnostics]:
    """
    Run the pipeline for an already-validated Config.

    Returns
    -------
    (path to written HDF5 file, accumulated diagnostics)
    """
    diag_level = cfg.run.diagnostics_level
    geometry, converter, params = build_context(cfg)

    if diag_level >= 1:
        print(f"[run] input={cfg.io.input_path} ({cfg.io.input_format}) -> output={cfg.io.output_path}")
        print(f"[run] views a={params.view_a} b={params.view_b} "
              f"tolerance={params.match_tolerance:.4f} cm wire_gate={params.wire_gate:.2f} cm")
    if diag_level >= 2:
        print(f"[run] time_pitch={converter.time_pitch:.5f} cm/tick "
              f"first_region={converter.first_region_ticks:.3f} ticks "
              f"boundary={converter.boundary_ticks:.3f} ticks")

    out_path = Path(cfg.io.output_path)
    out_path.parent.mkdir(parents=True, exist_ok=True)

    reco = StereoReconstructor(converter, params, verbose=diag_level)
    f = write_init(str(out_path), config_text, converter, params)
    try:
        tracks = reconstruct_events(cfg, _iter_source_events(cfg, geometry), reco)
        write_tracks(f, tracks)
        write_diagnostics(f, reco.diagnostics)
    finally:
        f.close()

    if diag_level >= 1:
        print(f"[pipeline] {reco.diagnostics.summary()}")
        for reason, n in sorted(reco.diagnostics.reasons.items()):
            print(f"[pipeline]   {reason}: {n}")

    if cfg.vis.export_png_on_write:
        try:
            out_png = save_tracks_png(str(out_path))
            if diag_level >= 1:
                print(f"[pipeline] Wrote PNG {out_png}")
        except (OSError, ValueError) as e:
            if diag_level >= 1:
                print(f"[pipeline] PNG export failed: {e!r}")

    return out_path, reco.diagnostics


def run_pipeline(
    cfg_path: str,
    *,
    input_path: Optional[str] = None,
    output_path: Optional[str] = None,
    diagnostics_level: Optional[int] = None,
    skip_failed_events: Optional[bool] = None,
) -> Path:
    """
    Orchestrate the full pipeline from a TOML config file.

    CLI flags override the corresponding [io]/[run] fields when not None.

    Parameters
    ----------
    cfg_path : str
        Path to TOML configuration file.

    Returns
    -------
    Path to written HDF5 file.
    """
    cfg = load_config(cfg_path)

    # ---- apply CLI overrides on top of TOML ----
    if input_path is not None:
        cfg.io.input_path = input_path
    if output_path is not None:
        cfg.io.output_path = output_path
    if diagnostics_level is not None:
        cfg.run.diagnostics_level = diagnostics_level
    if skip_failed_events is not None:
        cfg.run.skip_failed_events = skip_failed_events

    if cfg.run.diagnostics_level >= 1:
        print(f"[run] config = {cfg_path}")

    out_path, _ = run_from_config(cfg, config_text=snapshot_config_toml(cfg_path))
    return out_path


# ---------------------------------------------------------------------------
# Unified CLI entry point
# ---------------------------------------------------------------------------

app = typer.Typer(help="Stereo 3D track reconstruction (tpcstereo.pipelines.core)")


@app.command()
def main(
    cfg_path: str = typer.Argument(
        ...,
        help="Path to TOML config file",
    ),
    input_path: Optional[str] = typer.Option(
        None,
        "--input",
        "-i",
        help="Override [io].input_path",
    ),
    output_path: Optional[str] = typer.Option(
        None,
        "--output",
        "-o",
        help="Override [io].output_path",
    ),
    diagnostics_level: Optional[int] = typer.Option(
        None,
        "--diag",
        help="Override [run].diagnostics_level (0, 1 or 2)",
    ),
    skip_failed_events: Optional[bool] = typer.Option(
        None,
        "--skip-failed / --no-skip-failed",
        help="Skip events with malformed input instead of aborting; overrides [run].skip_failed_events",
    ),
):
    """
    Reconstruct 3D tracks for every event in the configured input.
    """
    out_path = run_pipeline(
        cfg_path,
        input_path=input_path,
        output_path=output_path,
        diagnostics_level=diagnostics_level,
        skip_failed_events=skip_failed_events,
    )
    typer.echo(str(out_path))


if __name__ == "__main__":
    app()
