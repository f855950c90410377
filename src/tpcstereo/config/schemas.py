from __future__ import annotations
from pydantic import BaseModel, Field, field_validator, model_validator
from typing import Literal, Optional, Dict, List, Any

class RunCfg(BaseModel):
    """
    Global run controls.
    """

    # Diagnostics
    diagnostics_level: int = 1  # 0=off, 1=warnings+summary, 2=verbose

    # Execution
    progress: bool = True
    max_events: Optional[int] = None

    # If False, an event with malformed upstream input aborts the run
    skip_failed_events: bool = False

    @field_validator("diagnostics_level")
    def _diag_range(cls, v: int) -> int:
        if v not in (0, 1, 2):
            raise ValueError("diagnostics_level must be 0, 1, or 2")
        return v

class IOCfg(BaseModel):
    """
    I/O paths and input description.

    TOML:

    [io]
    input_path   = "..."
    input_format = "hdf5_events"   # "hdf5_events" | "table" | "root"
    output_path  = "..."
    """

    input_path: str
    input_format: Literal["hdf5_events", "table", "root"] = "hdf5_events"
    output_path: str

    # Adapter-specific sub-config, e.g. [io.adapter]
    adapter: Dict[str, Any] = Field(default_factory=dict)

class DetectorCfg(BaseModel):
    """
    Wire-plane geometry of the two stereo views.

    TOML:

    [detector]
    wire_pitch_cm     = 0.4
    plane_pitch_cm    = 0.4
    stereo_angle_deg  = 30.0      # wire angle w.r.t. the vertical
    chamber_height_cm = 40.0
    view_a = 0                    # induction-like view
    view_b = 1                    # collection-like view
    wires_per_plane = [240, 240]

    [detector.view_offsets]       # alignment offsets, units of wire pitch
    0 = 3.95
    1 = 1.84
    """

    wire_pitch_cm: float = 0.4
    plane_pitch_cm: float = 0.4
    stereo_angle_deg: float = 30.0
    chamber_height_cm: float = 40.0

    view_a: int = 0
    view_b: int = 1
    wires_per_plane: List[int] = [240, 240]

    view_offsets: Dict[int, float] = Field(default_factory=lambda: {0: 3.95, 1: 1.84})
    # Views read out downstream of the intermediate field boundary
    boundary_views: List[int] = [1]

    @field_validator("wire_pitch_cm", "plane_pitch_cm", "chamber_height_cm")
    def _positive(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("lengths must be positive")
        return v

    @field_validator("stereo_angle_deg")
    def _angle_range(cls, v: float) -> float:
        if not 0.0 < abs(v) < 90.0:
            raise ValueError("stereo_angle_deg must be strictly between 0 and 90 degrees")
        return v

    @model_validator(mode="after")
    def _views_exist(self) -> "DetectorCfg":
        n = len(self.wires_per_plane)
        for v in (self.view_a, self.view_b):
            if not 0 <= v < n:
                raise ValueError(f"view {v} not in wires_per_plane (have {n} planes)")
        if self.view_a == self.view_b:
            raise ValueError("view_a and view_b must differ")
        return self

class DriftCfg(BaseModel):
    """
    Drift-time sampling and per-region drift velocities [cm/us].

    first_region_velocity : between shield and first readout plane
    boundary_velocity     : between the first and second readout planes
    """

    time_tick_us: float = 0.198
    drift_velocity: float = 0.16
    first_region_velocity: float = 0.19
    boundary_velocity: float = 0.21

    @field_validator("time_tick_us", "drift_velocity", "first_region_velocity", "boundary_velocity")
    def _positive(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("drift parameters must be positive")
        return v

class MatchingCfg(BaseModel):
    presampling_offset: float = 60.0       # ticks
    match_tolerance_samples: float = 12.0  # multiples of one tick in length units
    vertex_window_length: float = 30.0     # ticks
    wire_gate_pitches: float = 50.0        # max stereo parallax, in wire pitches
    exclusive_pairs: bool = False          # first-fit: one pair per projection

    @field_validator("match_tolerance_samples", "vertex_window_length", "wire_gate_pitches")
    def _non_negative(cls, v: float) -> float:
        if v < 0:
            raise ValueError("matching windows must be non-negative")
        return v

class VisCfg(BaseModel):
    export_png_on_write: bool = False


class Config(BaseModel):
    """
    Top-level TOML configuration.
    """

    run: RunCfg = Field(default_factory=RunCfg)
    io: IOCfg
    detector: DetectorCfg = Field(default_factory=DetectorCfg)
    drift: DriftCfg = Field(default_factory=DriftCfg)
    matching: MatchingCfg = Field(default_factory=MatchingCfg)
    vis: VisCfg = Field(default_factory=VisCfg)
