"""Recording filters: pure ``recording -> recording`` transforms.

Each filter takes a processed recording and returns a new one (a copy
with a fresh ``recording_id``); the input is never modified. Filters
are meant for ``DatasetManager.apply_filter`` or the ``apply_filters``
pipeline.

Sensor-level filters operate on the valid readings of every region
(``raw``) and rebuild ``peak`` and ``mean`` from the filtered values,
so a filtered sample keeps ``peak == max(raw)`` and ``mean <= peak``.
Filtered pressures are clipped at zero. Scale bounds are recomputed.

    - crop_time: Keep samples inside a time window.
    - filter_noise_floor: Zero readings below a pressure floor.
    - filter_butterworth: Low-pass Butterworth (zero-phase via filtfilt).
      Ref: Winter DA. Biomechanics and Motor Control of Human Movement.
      4th ed. Wiley; 2009. Chapter 2.
    - filter_median: Median filter for spike removal.

Usage::

    rec = filter_butterworth(rec, cutoff=10.0, order=2)
    rec = apply_filters(rec, [
        {"type": "crop_time", "params": {"start": 1.0, "end": 20.0}},
        {"type": "median", "params": {"kernel_size": 3}},
    ])
"""

import logging
from typing import Callable, Dict, List, Optional

import numpy as np

from .constants import FEET
from .ingest import finalize_recording
from .schema import copy_recording

logger = logging.getLogger(__name__)


def _region_from_values(values: np.ndarray) -> dict:
    values = np.clip(np.asarray(values, dtype=float), 0.0, None)
    if values.size == 0:
        return {"peak": 0.0, "mean": 0.0, "raw": []}
    peak = float(values.max())
    return {
        "peak": peak,
        "mean": min(float(values.mean()), peak),
        "raw": values.tolist(),
    }


def _finish(recording: dict, name: str) -> dict:
    recording.setdefault("filters", []).append(name)
    return finalize_recording(recording)


def _sampling_rate(recording: dict) -> float:
    """Sampling rate from the median time step; 0 when undefined."""
    times = np.asarray(recording.get("time_points") or
                       [s["time"] for s in recording["samples"]], dtype=float)
    if times.size < 2:
        return 0.0
    dt = float(np.median(np.diff(times)))
    return 1.0 / dt if dt > 0 else 0.0


def _region_matrix(samples: List[dict], foot: str, region: str) -> Optional[np.ndarray]:
    """Stack a region's raw readings into ``(n_samples, n_sensors)``.

    Returns None when the number of valid readings varies between
    samples, since the columns would then not be the same sensors.
    """
    lengths = {len(s[foot][region]["raw"]) for s in samples}
    if len(lengths) != 1:
        return None
    width = lengths.pop()
    if width == 0:
        return np.zeros((len(samples), 0))
    return np.array([s[foot][region]["raw"] for s in samples], dtype=float)


def _apply_columns(recording: dict, func: Callable[[np.ndarray], np.ndarray], name: str) -> int:
    """Apply *func* column-wise to every region matrix, in place.

    Returns the number of regions that could not be filtered.
    """
    samples = recording["samples"]
    skipped = 0
    for foot in FEET:
        for region in recording.get("regions") or samples[0][foot].keys():
            if region not in samples[0][foot]:
                continue
            matrix = _region_matrix(samples, foot, region)
            if matrix is None:
                skipped += 1
                continue
            if matrix.shape[1]:
                matrix = func(matrix)
            for i, s in enumerate(samples):
                s[foot][region] = _region_from_values(matrix[i])
    if skipped:
        logger.warning(
            f"{name}: {skipped} region(s) left unfiltered "
            f"(sensor readings missing in some samples)"
        )
    return skipped


# ── Filters ──────────────────────────────────────────────────────────


def crop_time(recording: dict, start: Optional[float] = None, end: Optional[float] = None) -> dict:
    """Keep samples with ``start <= time <= end``.

    Raises
    ------
    ValueError
        If ``start > end`` or no sample falls in the window.
    """
    if start is not None and end is not None and start > end:
        raise ValueError(f"Crop start {start} is after end {end}")
    lo = -np.inf if start is None else float(start)
    hi = np.inf if end is None else float(end)
    out = copy_recording(recording)
    out["samples"] = [s for s in out["samples"] if lo <= s["time"] <= hi]
    if not out["samples"]:
        raise ValueError(f"No samples between {start} and {end}")
    logger.info(f"Cropped to {len(out['samples'])} of {len(recording['samples'])} samples")
    return _finish(out, f"crop_time({start}, {end})")


def filter_noise_floor(recording: dict, threshold: float = 5.0) -> dict:
    """Zero every sensor reading below *threshold* kPa."""
    if threshold < 0:
        raise ValueError(f"threshold must be non-negative, got {threshold}")
    out = copy_recording(recording)
    if out["samples"]:
        _apply_columns(out, lambda m: np.where(m < threshold, 0.0, m), "noise_floor")
    return _finish(out, f"noise_floor({threshold})")


def filter_butterworth(
    recording: dict,
    cutoff: float = 10.0,
    order: int = 2,
    fs: Optional[float] = None,
) -> dict:
    """Butterworth low-pass filter on every sensor (zero-phase via filtfilt).

    Parameters
    ----------
    recording : dict
        Processed recording.
    cutoff : float
        Cutoff frequency in Hz (default 10).
    order : int
        Filter order (default 2).
    fs : float, optional
        Sampling rate in Hz; estimated from the median time step if
        omitted.

    Raises
    ------
    ValueError
        If *cutoff* or *order* is not positive, or the sampling rate
        cannot be determined.
    """
    from scipy.signal import butter, filtfilt

    if cutoff <= 0 or order < 1:
        raise ValueError(f"Invalid Butterworth parameters: cutoff={cutoff}, order={order}")
    fs = float(fs) if fs else _sampling_rate(recording)
    if fs <= 0:
        raise ValueError("Cannot determine sampling rate (need two distinct time points)")

    nyq = 0.5 * fs
    normal = max(min(float(cutoff) / nyq, 0.99), 1e-6)
    b, a = butter(int(order), normal, btype="low", analog=False)
    padlen = 3 * max(len(a), len(b))

    out = copy_recording(recording)
    n = len(out["samples"])
    if n <= padlen:
        logger.warning(f"Butterworth skipped: {n} samples, need more than {padlen}")
    else:
        _apply_columns(out, lambda m: filtfilt(b, a, m, axis=0), "butterworth")
    return _finish(out, f"butterworth({cutoff}Hz, order {order})")


def filter_median(recording: dict, kernel_size: int = 3) -> dict:
    """Median filter on every sensor along time.

    Raises
    ------
    ValueError
        If *kernel_size* is not a positive odd integer.
    """
    from scipy.signal import medfilt

    if kernel_size < 1 or kernel_size % 2 == 0:
        raise ValueError(f"kernel_size must be a positive odd integer, got {kernel_size}")
    out = copy_recording(recording)
    if out["samples"]:
        _apply_columns(
            out,
            lambda m: np.column_stack([medfilt(m[:, j], kernel_size) for j in range(m.shape[1])]),
            "median",
        )
    return _finish(out, f"median({kernel_size})")


# ── Registry and pipeline ────────────────────────────────────────────

FILTERS: Dict[str, Callable] = {
    "crop_time": crop_time,
    "noise_floor": filter_noise_floor,
    "butterworth": filter_butterworth,
    "median": filter_median,
}


def list_filters() -> list:
    """Return available filter names."""
    return list(FILTERS.keys())


def apply_filters(recording: dict, steps: List[dict]) -> dict:
    """Apply a sequence of filters.

    Parameters
    ----------
    recording : dict
        Processed recording (not modified).
    steps : list of dict
        ``{"type": name, "params": {...}}`` entries, applied in order.
        A bare string is accepted as a step with default parameters.

    Raises
    ------
    ValueError
        If a step names an unknown filter.
    """
    out = recording
    for step in steps:
        if isinstance(step, str):
            step = {"type": step}
        name = step.get("type")
        func = FILTERS.get(name)
        if func is None:
            raise ValueError(f"Unknown filter: {name}. Available: {', '.join(FILTERS)}")
        out = func(out, **step.get("params", {}))
    if out is recording:
        out = copy_recording(recording)
    return out
