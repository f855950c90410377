# src/tpcstereo/errors.py
from __future__ import annotations


class StereoRecoError(ValueError):
    """Base class for stereo reconstruction failures."""


class DegenerateFitError(StereoRecoError):
    """Cluster cannot be fit with a line (too few distinct wires, singular fit)."""


class ZeroLengthDirectionError(StereoRecoError):
    """Matched pair yields coincident 3D endpoints; no direction can be defined."""


class NoHitCandidateError(StereoRecoError):
    """No hit in the other view passes the time/wire gates."""


class UnphysicalInputError(StereoRecoError):
    """
    Malformed hit/cluster references from upstream.

    Unlike the other kinds this is not a geometric ambiguity: it fails the
    whole event.
    """
