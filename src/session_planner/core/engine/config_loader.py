"""
Engine constants loaded from YAML.

The package ships ``engine.yaml`` next to the exercise catalog.  A user may
drop a partial copy at ``~/.session-planner/engine.yaml``; its keys are
merged over the bundled ones section by section.

    from session_planner.core.engine.config_loader import config_section
    taus = config_section("recovery").get("time_constants_h", {})

A broken or missing file never stops the planner: lookups fall back to the
Python defaults in config.py and a warning names the ignored file.
"""

from __future__ import annotations

import importlib.resources
import os
import warnings
from functools import lru_cache
from pathlib import Path
from typing import Any

import yaml

CONFIG_DIRNAME = ".session-planner"
ENGINE_FILENAME = "engine.yaml"


def _read_mapping(path: Path) -> dict[str, Any]:
    try:
        with open(path, "r", encoding="utf-8") as fh:
            data = yaml.safe_load(fh)
    except (OSError, yaml.YAMLError) as exc:
        warnings.warn(f"session-planner: ignoring config file {path} ({exc})", stacklevel=2)
        return {}
    return data if isinstance(data, dict) else {}


def _merge_sections(base: dict, overlay: dict) -> dict:
    """Return a copy of *base* with *overlay* applied; nested dicts merge key by key."""
    merged = dict(base)
    for key, value in overlay.items():
        current = merged.get(key)
        if isinstance(value, dict) and isinstance(current, dict):
            merged[key] = _merge_sections(current, value)
        else:
            merged[key] = value
    return merged


def get_config_home() -> Path:
    """Per-user settings directory."""
    return Path(os.environ.get("HOME", "~")).expanduser() / CONFIG_DIRNAME


def get_bundled_yaml_path() -> Path | None:
    resource = importlib.resources.files("session_planner").joinpath(ENGINE_FILENAME)
    if resource.is_file():
        return Path(str(resource))
    fallback = Path(__file__).resolve().parents[2] / ENGINE_FILENAME
    return fallback if fallback.exists() else None


def get_user_yaml_path() -> Path | None:
    path = get_config_home() / ENGINE_FILENAME
    return path if path.exists() else None


@lru_cache(maxsize=1)
def load_model_config() -> dict[str, Any]:
    """
    Merged engine configuration: bundled file first, user overrides on top.

    Cached per process.  Tests that point HOME elsewhere must call
    ``load_model_config.cache_clear()``.
    """
    config: dict[str, Any] = {}
    for path in (get_bundled_yaml_path(), get_user_yaml_path()):
        if path is not None:
            config = _merge_sections(config, _read_mapping(path))
    return config


def config_section(name: str) -> dict[str, Any]:
    """Return one top-level section of the merged config, or {}."""
    section = load_model_config().get(name, {})
    return section if isinstance(section, dict) else {}
