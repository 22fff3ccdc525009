from __future__ import annotations

import os
from pathlib import Path
from typing import Dict, Optional

import yaml


def _repo_root() -> Path:
    return Path(__file__).resolve().parents[2]


def _default_config_path() -> Path:
    return _repo_root() / "config" / "config.yaml"


def load_config(path: Optional[Path] = None) -> Dict[str, object]:
    explicit = path is not None
    if path is None:
        env_value = os.environ.get("DAYTRACK_CONFIG", "").strip()
        if env_value:
            path = Path(env_value).expanduser()
            explicit = True
        else:
            path = _default_config_path()
    if not path.exists():
        if explicit:
            raise FileNotFoundError(f"Config not found: {path}")
        return {}
    data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    if not isinstance(data, dict):
        raise ValueError("config.yaml must be a mapping at top level")
    return data


_CACHED: Optional[Dict[str, object]] = None


def get_config(path: Optional[Path] = None) -> Dict[str, object]:
    global _CACHED
    if _CACHED is None or path is not None:
        _CACHED = load_config(path)
    return _CACHED


def reset_config() -> None:
    global _CACHED
    _CACHED = None
