"""Region aggregation: raw sensor readings -> anatomical zones.

Each foot sole is partitioned into six regions (heel, medial and
lateral midfoot, forefoot, toes, hallux). For every time sample the
valid readings of a region give its peak (maximum) and mean pressure.

Missing, NaN, non-numeric or out-of-range cells are excluded from both
statistics. A region without any valid reading reports ``peak = 0`` and
``mean = 0`` with an empty ``raw`` list, so ``len(raw) == 0`` is how a
caller tells "no data" apart from a genuine zero load.

Functions
---------
resolve_regions
    Layer a sensor -> region override map on top of a partition.
validate_regions
    Check that a region set is a disjoint partition of valid sensors.
aggregate_row
    Aggregate one raw export row into per-foot region statistics.
aggregate_matrix
    Vectorized aggregation of a whole sample matrix.
region_averages
    Average region pressure over a portion of a recording.
"""

import logging
import math
from typing import Dict, List, Optional

import numpy as np

from .constants import (
    DEFAULT_REGIONS,
    N_SENSORS_PER_FOOT,
    PA_TO_KPA,
    REGION_NAMES,
    RIGHT_FOOT_OFFSET,
)

logger = logging.getLogger(__name__)


def validate_regions(regions: Dict[str, List[int]]) -> None:
    """Check that *regions* is a disjoint set of valid sensor indices.

    Raises
    ------
    ValueError
        If a sensor appears in two regions or lies outside
        ``1..N_SENSORS_PER_FOOT``.
    """
    seen = {}
    for name, sensors in regions.items():
        for s in sensors:
            if not 1 <= int(s) <= N_SENSORS_PER_FOOT:
                raise ValueError(
                    f"Sensor {s} in region '{name}' is outside 1..{N_SENSORS_PER_FOOT}"
                )
            if s in seen:
                raise ValueError(
                    f"Sensor {s} assigned to both '{seen[s]}' and '{name}'"
                )
            seen[s] = name


def resolve_regions(
    overrides: Optional[Dict[int, str]] = None,
    base: Optional[Dict[str, List[int]]] = None,
) -> Dict[str, List[int]]:
    """Build the effective region partition for one recording.

    Parameters
    ----------
    overrides : dict, optional
        ``{sensor_id: region_name}`` reassignments. Keys may be strings
        (as loaded from JSON/YAML config files).
    base : dict, optional
        Partition to start from (default ``DEFAULT_REGIONS``).

    Returns
    -------
    dict
        New ``{region_name: sorted sensor list}``; *base* is not modified.

    Raises
    ------
    ValueError
        If an override names an unknown region or an invalid sensor.
    """
    base = DEFAULT_REGIONS if base is None else base
    resolved = {name: sorted(int(s) for s in sensors) for name, sensors in base.items()}
    validate_regions(resolved)

    for sensor, region in (overrides or {}).items():
        sensor = int(sensor)
        if region not in resolved:
            raise ValueError(
                f"Unknown region '{region}'. Available: {', '.join(resolved)}"
            )
        if not 1 <= sensor <= N_SENSORS_PER_FOOT:
            raise ValueError(f"Sensor {sensor} is outside 1..{N_SENSORS_PER_FOOT}")
        for sensors in resolved.values():
            if sensor in sensors:
                sensors.remove(sensor)
        resolved[region].append(sensor)
        resolved[region].sort()

    if overrides:
        logger.debug(f"Resolved {len(overrides)} region override(s)")
    return resolved


def coerce_float(value) -> float:
    """Coerce a raw cell to float; anything unusable becomes NaN."""
    if value is None or isinstance(value, bool):
        return math.nan
    if isinstance(value, (int, float, np.integer, np.floating)):
        return float(value)
    try:
        return float(str(value).strip())
    except ValueError:
        return math.nan


def _empty_region() -> dict:
    return {"peak": 0.0, "mean": 0.0, "raw": []}


def aggregate_matrix(
    values: np.ndarray,
    regions: Optional[Dict[str, List[int]]] = None,
    right_foot_offset: int = RIGHT_FOOT_OFFSET,
    column_offset: int = 0,
) -> List[dict]:
    """Aggregate a matrix of raw readings into per-sample region statistics.

    Parameters
    ----------
    values : np.ndarray
        2-D float array ``(n_samples, n_columns)`` in source units (Pa),
        NaN for missing cells. Columns beyond the array width count as
        missing.
    regions : dict, optional
        Region partition (default ``DEFAULT_REGIONS``).
    right_foot_offset : int
        Column stride between a left sensor and its right counterpart.
    column_offset : int
        Column of sensor 0 (sensor ``k`` lives at ``k + column_offset``).

    Returns
    -------
    list of dict
        One ``{"left": {...}, "right": {...}}`` dict per row, each region
        holding ``peak``, ``mean`` (kPa) and ``raw`` (valid kPa values).
    """
    regions = DEFAULT_REGIONS if regions is None else regions
    values = np.asarray(values, dtype=float)
    if values.ndim != 2:
        raise ValueError(f"values must be 2-D, got shape {values.shape}")
    n_rows, n_cols = values.shape

    kpa = values / PA_TO_KPA
    kpa[~np.isfinite(kpa)] = np.nan
    # Negative readings are sensor noise below the zero baseline.
    kpa = np.where(kpa < 0, 0.0, kpa)

    out = [{"left": {}, "right": {}} for _ in range(n_rows)]
    for foot, offset in (("left", column_offset),
                         ("right", column_offset + right_foot_offset)):
        for name, sensors in regions.items():
            cols = [s + offset for s in sensors]
            sub = np.full((n_rows, len(cols)), np.nan)
            for j, c in enumerate(cols):
                if 0 <= c < n_cols:
                    sub[:, j] = kpa[:, c]

            valid = ~np.isnan(sub)
            counts = valid.sum(axis=1)
            filled = np.where(valid, sub, 0.0)
            peaks = np.where(valid, sub, -np.inf).max(axis=1) if len(cols) else np.zeros(n_rows)
            peaks = np.where(counts > 0, peaks, 0.0)
            with np.errstate(invalid="ignore", divide="ignore"):
                means = np.where(counts > 0, filled.sum(axis=1) / np.maximum(counts, 1), 0.0)
            # Float rounding can push the mean of equal values past the max.
            means = np.minimum(means, peaks)

            for i in range(n_rows):
                if counts[i] == 0:
                    out[i][foot][name] = _empty_region()
                    continue
                out[i][foot][name] = {
                    "peak": float(peaks[i]),
                    "mean": float(means[i]),
                    "raw": sub[i][valid[i]].tolist(),
                }
    return out


def aggregate_row(
    row,
    regions: Optional[Dict[str, List[int]]] = None,
    right_foot_offset: int = RIGHT_FOOT_OFFSET,
    column_offset: int = 0,
) -> dict:
    """Aggregate one raw export row into per-foot region statistics.

    Total function: malformed cells are excluded, never raised on.

    Parameters
    ----------
    row : sequence
        Raw cells of one export row (time column included).
    regions : dict, optional
        Region partition (default ``DEFAULT_REGIONS``).
    right_foot_offset : int
        Column stride between left and right sensor blocks (default 99).
    column_offset : int
        Column of sensor 0 (default 0, i.e. sensor ``k`` in column ``k``).

    Returns
    -------
    dict
        ``{"left": {region: {"peak", "mean", "raw"}}, "right": {...}}``.
    """
    cells = np.array([[coerce_float(v) for v in row]], dtype=float).reshape(1, -1)
    return aggregate_matrix(cells, regions, right_foot_offset, column_offset)[0]


def region_averages(
    recording: dict,
    mode: str = "peak",
    start_pct: float = 0.0,
    end_pct: float = 100.0,
) -> dict:
    """Average region pressure per foot over part of a recording.

    The window is given in percent of the sample count, inclusive of the
    end sample, so ``(0, 100)`` covers the whole recording.

    Parameters
    ----------
    recording : dict
        Processed recording.
    mode : {'peak', 'mean'}
        Which region statistic to average.
    start_pct, end_pct : float
        Window bounds in percent (0-100).

    Returns
    -------
    dict
        ``{"left": {region: kPa}, "right": {...}, "difference": {...},
        "n_samples": int}`` where difference is left minus right.
    """
    if mode not in ("peak", "mean"):
        raise ValueError(f"mode must be 'peak' or 'mean', got {mode!r}")
    if not 0 <= start_pct <= end_pct <= 100:
        raise ValueError("Window must satisfy 0 <= start_pct <= end_pct <= 100")

    samples = recording.get("samples", [])
    n = len(samples)
    start = int(np.floor(n * start_pct / 100.0))
    end = int(np.floor(n * end_pct / 100.0))
    subset = samples[start:end + 1]

    names = list(recording.get("regions") or REGION_NAMES)
    result = {"left": {}, "right": {}, "difference": {}, "n_samples": len(subset)}
    for name in names:
        for foot in ("left", "right"):
            vals = [s[foot].get(name, _empty_region())[mode] for s in subset]
            result[foot][name] = float(np.mean(vals)) if vals else 0.0
        result["difference"][name] = result["left"][name] - result["right"][name]
    return result
