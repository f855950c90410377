from __future__ import annotations
from .schemas import Config
from pathlib import Path
from typing import Any, Mapping
import json

try:
    import tomllib  # py311+
except ModuleNotFoundError:  # pragma: no cover
    import tomli as tomllib  # py<=310

def config_from_mapping(data: Mapping[str, Any]) -> Config:
    """Validate an already-parsed TOML/JSON mapping into a Config."""
    return Config(**dict(data))

def load_config(path: str | Path) -> Config:
    p = Path(path)
    data = tomllib.loads(p.read_text())
    return config_from_mapping(data)

def snapshot_config_toml(path: str | Path | None) -> str:
    """Return the raw TOML text for embedding in HDF5 metadata ('' if no file)."""
    if path is None:
        return ""
    return Path(path).read_text()

def json_dumps(obj) -> str:
    return json.dumps(obj, separators=(",", ":"), ensure_ascii=False, sort_keys=True)
