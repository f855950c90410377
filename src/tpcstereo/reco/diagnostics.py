from __future__ import annotations
from dataclasses import dataclass, field, fields
from typing import Dict

@dataclass
class ReconDiagnostics:
    events: int = 0
    failed_events: int = 0
    clusters_in: int = 0
    clusters_other_view: int = 0
    vertex_rejected: int = 0
    degenerate_fit: int = 0
    projections_a: int = 0
    projections_b: int = 0
    pairs_direct: int = 0
    pairs_reversed: int = 0
    zero_length: int = 0
    no_hit_candidate: int = 0
    spacepoints: int = 0
    tracks: int = 0
    reasons: Dict[str, int] = field(default_factory=dict)

    def inc(self, reason: str) -> None:
        self.reasons[reason] = self.reasons.get(reason, 0) + 1

    def merge(self, other: "ReconDiagnostics") -> None:
        for f in fields(self):
            if f.name == "reasons":
                continue
            setattr(self, f.name, getattr(self, f.name) + getattr(other, f.name))
        for k, v in other.reasons.items():
            self.reasons[k] = self.reasons.get(k, 0) + v

    def as_dict(self) -> Dict[str, int]:
        out = {f.name: getattr(self, f.name) for f in fields(self) if f.name != "reasons"}
        out.update({f"reason.{k}": v for k, v in sorted(self.reasons.items())})
        return out

    def summary(self) -> str:
        return (
            f"events={self.events} failed={self.failed_events} clusters={self.clusters_in} "
            f"projections(a/b)={self.projections_a}/{self.projections_b} "
            f"pairs(direct/reversed)={self.pairs_direct}/{self.pairs_reversed} "
            f"dropped(vertex/fit/zero-length)={self.vertex_rejected}/{self.degenerate_fit}/{self.zero_length} "
            f"unmatched_hits={self.no_hit_candidate} spacepoints={self.spacepoints} tracks={self.tracks}"
        )
