"""Analysis configuration management.

Supports JSON and YAML config files for reproducible analyses.
Configuration is merged against ``DEFAULT_CONFIG`` so partial
overrides work seamlessly.

Functions
---------
load_config
    Load analysis config from a JSON or YAML file.
save_config
    Save analysis config to a JSON or YAML file.
get_default_config
    Independent copy of the defaults.
ingest_kwargs
    Keyword arguments for ``read_pressure_file`` from a config.
thresholds_from_config
    Event detection thresholds from a config.
event_cache_from_config
    Event cache sized from a config.
active_events_from_config
    Events near a playback time, using the configured window.
playback_kwargs
    Keyword arguments for ``Playback`` from a config.

Attributes
----------
DEFAULT_CONFIG : dict
    Default configuration values for all stages.
"""

import copy
import json
import logging
from pathlib import Path
from typing import Dict, Union

logger = logging.getLogger(__name__)


DEFAULT_CONFIG = {
    "ingest": {
        "header_row": 10,            # 1-based; rows above it are metadata
        "right_foot_offset": 99,
        "column_offset": 0,
        "time_column": "time",
    },
    "regions": {
        "overrides": {},             # {sensor_id: region_name}
    },
    "events": {
        "preset": "standard",
        "initial_contact": None,     # kPa, overrides the preset
        "toe_off": None,
        "active_window": 0.2,
        "cache_size": 16,
    },
    "scaling": {
        "top_fraction": 0.1,
        "cap_factor": 3.0,
    },
    "playback": {
        "speed": 1.0,
        "step": 0.1,
        "max_tick_delta": 0.1,
    },
    "filters": {
        "steps": [],
        "butterworth_cutoff": 10.0,
        "butterworth_order": 2,
        "median_kernel": 3,
        "noise_floor": 5.0,
    },
}


def get_default_config() -> dict:
    return copy.deepcopy(DEFAULT_CONFIG)


def load_config(path: Union[str, Path]) -> dict:
    """Load analysis config from a JSON or YAML file.

    The loaded configuration is merged against ``DEFAULT_CONFIG``
    so partial overrides work correctly.

    Parameters
    ----------
    path : str or Path
        Path to config file (``.json`` or ``.yaml``/``.yml``).

    Returns
    -------
    dict
        Merged configuration dictionary.

    Raises
    ------
    FileNotFoundError
        If the config file does not exist.
    ImportError
        If YAML is requested but ``pyyaml`` is not installed.
    ValueError
        If the file content is not a dict.
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")

    suffix = path.suffix.lower()

    if suffix in (".yaml", ".yml"):
        try:
            import yaml
        except ImportError:
            raise ImportError("PyYAML required for YAML configs: pip install pyyaml")
        with open(path) as f:
            cfg = yaml.safe_load(f)
    else:
        with open(path) as f:
            cfg = json.load(f)

    if not isinstance(cfg, dict):
        raise ValueError("Config must be a dict")

    unknown = set(cfg) - set(DEFAULT_CONFIG)
    if unknown:
        logger.warning(f"Unknown config section(s) ignored by the pipeline: {sorted(unknown)}")

    merged = _deep_merge(get_default_config(), cfg)
    logger.info(f"Loaded config from {path}")
    return merged


def save_config(config: dict, path: Union[str, Path]) -> str:
    """Save analysis config to a JSON or YAML file.

    Parameters
    ----------
    config : dict
        Configuration dictionary.
    path : str or Path
        Output file path (``.json`` or ``.yaml``/``.yml``).

    Returns
    -------
    str
        Path to the saved file.

    Raises
    ------
    ImportError
        If YAML is requested but ``pyyaml`` is not installed.
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    suffix = path.suffix.lower()

    if suffix in (".yaml", ".yml"):
        try:
            import yaml
        except ImportError:
            raise ImportError("PyYAML required for YAML configs: pip install pyyaml")
        with open(path, "w") as f:
            yaml.safe_dump(config, f, default_flow_style=False, sort_keys=False)
    else:
        with open(path, "w") as f:
            json.dump(config, f, indent=2, ensure_ascii=False)

    logger.info(f"Saved config to {path}")
    return str(path)


def _deep_merge(base: dict, override: dict) -> dict:
    """Recursively merge override into base."""
    result = base.copy()
    for k, v in override.items():
        if k in result and isinstance(result[k], dict) and isinstance(v, dict):
            result[k] = _deep_merge(result[k], v)
        else:
            result[k] = v
    return result


def ingest_kwargs(config: dict) -> dict:
    """Map the ``ingest``, ``regions`` and ``scaling`` sections to reader kwargs.

    Raises
    ------
    ValueError
        If ``header_row`` is below 1.
    """
    ing = config.get("ingest", {})
    header_row = int(ing.get("header_row", 10))
    if header_row < 1:
        raise ValueError(f"ingest.header_row must be >= 1, got {header_row}")
    overrides = config.get("regions", {}).get("overrides") or {}
    scaling = config.get("scaling", {})
    return {
        "metadata_rows": header_row - 1,
        "right_foot_offset": int(ing.get("right_foot_offset", 99)),
        "column_offset": int(ing.get("column_offset", 0)),
        "time_column": ing.get("time_column", "time"),
        "region_overrides": {int(k): v for k, v in overrides.items()} or None,
        "top_fraction": float(scaling.get("top_fraction", 0.1)),
        "cap_factor": float(scaling.get("cap_factor", 3.0)),
    }


def thresholds_from_config(config: dict) -> Dict[str, float]:
    """Resolve event thresholds from the ``events`` section."""
    from .events import get_thresholds

    ev = config.get("events", {})
    return get_thresholds(
        preset=ev.get("preset"),
        initial_contact=ev.get("initial_contact"),
        toe_off=ev.get("toe_off"),
    )


def event_cache_from_config(config: dict):
    """``EventCache`` sized by ``events.cache_size``."""
    from .events import EventCache

    size = config.get("events", {}).get("cache_size", 16)
    return EventCache(maxsize=int(size))


def active_events_from_config(config: dict, events: list, current_time: float) -> list:
    """Events within ``events.active_window`` seconds of *current_time*."""
    from .events import get_active_events

    window = float(config.get("events", {}).get("active_window", 0.2))
    if window < 0:
        raise ValueError(f"events.active_window must be >= 0, got {window}")
    return get_active_events(events, current_time, window=window)


def playback_kwargs(config: dict) -> dict:
    """Map the ``playback`` section to ``Playback`` keyword arguments.

    Raises
    ------
    ValueError
        If ``step`` or ``max_tick_delta`` is not positive.
    """
    pb = config.get("playback", {})
    kwargs = {
        "speed": float(pb.get("speed", 1.0)),
        "step": float(pb.get("step", 0.1)),
        "max_tick_delta": float(pb.get("max_tick_delta", 0.1)),
    }
    for key in ("step", "max_tick_delta"):
        if kwargs[key] <= 0:
            raise ValueError(f"playback.{key} must be positive, got {kwargs[key]}")
    return kwargs
