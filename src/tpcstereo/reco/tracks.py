from __future__ import annotations
from dataclasses import dataclass, field
from typing import List

import numpy as np

from tpcstereo.errors import ZeroLengthDirectionError
from tpcstereo.physics.coordinates import CoordinateConverter
from tpcstereo.physics.events import Event
from .correspondence import SpacePoint3D, correspond_hits
from .diagnostics import ReconDiagnostics
from .geometry3d import resolve_pair
from .matching import Orientation, match_projections
from .params import StereoParams
from .projections import build_projections


@dataclass(eq=False)
class Track3D:
    """
    Output unit: space points of one matched pair plus its 3D segment.

    cluster_a / cluster_b index the contributing clusters in Event.clusters.
    """
    track_id: int
    points: List[SpacePoint3D]
    cluster_a: int
    cluster_b: int
    start: np.ndarray
    end: np.ndarray
    direction: np.ndarray
    orientation: Orientation
    meta: dict = field(default_factory=dict)

    @property
    def n_points(self) -> int:
        return len(self.points)

    def xyz(self) -> np.ndarray:
        """(N, 3) array of space-point positions."""
        if not self.points:
            return np.zeros((0, 3), dtype=np.float64)
        return np.stack([p.xyz for p in self.points], axis=0)


def reconstruct_event(
    event: Event,
    converter: CoordinateConverter,
    params: StereoParams,
    diag: ReconDiagnostics | None = None,
    verbose: int = 1,
) -> List[Track3D]:
    """
    Run the full stereo reconstruction on one event.

    validate -> fit projections -> match across views -> resolve 3D segment
    -> correspond hits -> emit Track3D. Zero-length pairs are discarded;
    UnphysicalInputError from validation propagates to the caller.
    """
    diag = diag if diag is not None else ReconDiagnostics()
    event.validate()
    diag.events += 1

    projections = build_projections(event, converter, params, diag=diag, verbose=verbose)
    pairs = match_projections(
        projections[params.view_a],
        projections[params.view_b],
        params.match_tolerance,
        exclusive=params.exclusive_pairs,
        diag=diag,
        verbose=verbose,
    )

    tracks: List[Track3D] = []
    for pair in pairs:
        try:
            geom = resolve_pair(pair, params.stereo_angle, params.chamber_height)
        except ZeroLengthDirectionError as exc:
            diag.zero_length += 1
            diag.inc("zero_length_direction")
            if verbose >= 1:
                print(f"[pair] Event {event.event_id}: {exc}; pair discarded")
            continue

        points = correspond_hits(pair, geom, params, diag=diag, verbose=verbose)
        tracks.append(Track3D(
            track_id=len(tracks),
            points=points,
            cluster_a=pair.a.cluster_index,
            cluster_b=pair.b.cluster_index,
            start=geom.start,
            end=geom.end,
            direction=geom.direction,
            orientation=pair.orientation,
            meta={"event_id": event.event_id},
        ))

    diag.tracks += len(tracks)
    if verbose >= 2:
        print(f"[event] {event.event_id}: {len(pairs)} pairs -> {len(tracks)} tracks, "
              f"{sum(t.n_points for t in tracks)} space points")
    return tracks


class StereoReconstructor:
    """
    Reusable per-run reconstructor.

    Holds the immutable converter/params and accumulates diagnostics across
    events; each call to `process` is independent of earlier events.
    """

    def __init__(self, converter: CoordinateConverter, params: StereoParams, verbose: int = 1):
        self.converter = converter
        self.params = params
        self.verbose = verbose
        self.diagnostics = ReconDiagnostics()

    def process(self, event: Event) -> List[Track3D]:
        local = ReconDiagnostics()
        try:
            return reconstruct_event(event, self.converter, self.params, diag=local, verbose=self.verbose)
        finally:
            self.diagnostics.merge(local)
