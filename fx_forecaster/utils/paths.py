"""Helpers for locating the project root and project-relative files."""
from __future__ import annotations

import os
from pathlib import Path
from typing import Optional


ROOT_MARKERS = ("pyproject.toml", "config.yaml", ".git")
DEFAULT_CONFIG_NAME = "config.yaml"


def find_project_root(start: Optional[Path] = None) -> Path:
    """Walk up from ``start`` (or the cwd) until a directory holding one of
    ROOT_MARKERS is found. FX_FORECASTER_ROOT overrides the search.
    """
    env_root = os.getenv("FX_FORECASTER_ROOT")
    if env_root:
        root = Path(env_root).expanduser().resolve()
        if root.exists():
            return root

    origin = Path(start).resolve() if start is not None else Path.cwd()
    for directory in [origin, *origin.parents]:
        if any((directory / marker).exists() for marker in ROOT_MARKERS):
            return directory
    return Path.cwd()


def resolve_project_path(path_str: str, root: Optional[Path] = None) -> Path:
    """Resolve ``path_str`` against the project root unless it is absolute."""
    path = Path(path_str).expanduser()
    if path.is_absolute():
        return path
    return ((root or find_project_root()) / path).resolve()


def locate_config_file(config_path: Optional[str], env_var: str) -> Path:
    """Pick the config file: an explicit ``config_path`` first, then
    ``env_var``, then ``config.yaml``. Relative paths missing from the cwd
    are looked up under the project root.
    """
    if config_path is None:
        override = os.getenv(env_var)
        if override:
            return Path(override).expanduser()
        config_path = DEFAULT_CONFIG_NAME
    candidate = Path(config_path).expanduser()
    if candidate.exists() or candidate.is_absolute():
        return candidate
    return find_project_root() / candidate.name
