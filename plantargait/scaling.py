"""Display scaling: outlier-capped pressure maxima and colour mapping.

A handful of sensor glitches can produce isolated spikes far above any
real plantar load. Scaling colour maps by the raw maximum would then
compress every legitimate reading into the bottom of the range, so the
peak maximum is capped at a multiple of the mean of the top decile of
per-sample maxima.

Functions
---------
sample_maxima
    Per-sample maximum peak pressure across feet and regions.
capped_max
    Outlier-capped maximum of a sequence of per-sample maxima.
compute_scale_bounds
    Capped peak maximum and raw mean maximum of a recording.
pressure_color
    Blue -> green -> red colour for a pressure value.
"""

import logging
import math
from typing import List, Sequence

import numpy as np

logger = logging.getLogger(__name__)


def sample_maxima(samples: list, key: str = "peak") -> np.ndarray:
    """Maximum of *key* over both feet and all regions, per sample."""
    out = np.zeros(len(samples))
    for i, s in enumerate(samples):
        best = 0.0
        for foot in ("left", "right"):
            for region in s.get(foot, {}).values():
                v = region.get(key, 0.0)
                if v > best:
                    best = v
        out[i] = best
    return out


def capped_max(
    maxima: Sequence[float],
    top_fraction: float = 0.1,
    cap_factor: float = 3.0,
) -> float:
    """Outlier-capped maximum.

    Sorts the per-sample maxima in descending order, averages the top
    ``ceil(top_fraction * n)`` of them (at least one), and returns
    ``min(raw_max, average * cap_factor)``.

    Parameters
    ----------
    maxima : sequence of float
        Per-sample maximum pressures (kPa).
    top_fraction : float
        Fraction of samples forming the top group (default 0.1).
    cap_factor : float
        Multiplier applied to the top-group mean (default 3.0).

    Returns
    -------
    float
        Capped maximum; 0.0 for an empty sequence.
    """
    if not 0 < top_fraction <= 1:
        raise ValueError(f"top_fraction must be in (0, 1], got {top_fraction}")
    if cap_factor <= 0:
        raise ValueError(f"cap_factor must be positive, got {cap_factor}")

    arr = np.asarray(maxima, dtype=float)
    if arr.size == 0:
        return 0.0

    ordered = np.sort(arr)[::-1]
    n_top = max(1, math.ceil(top_fraction * arr.size))
    avg_top = float(np.mean(ordered[:n_top]))
    raw_max = float(ordered[0])
    return min(raw_max, avg_top * cap_factor)


def compute_scale_bounds(
    samples: List[dict],
    top_fraction: float = 0.1,
    cap_factor: float = 3.0,
) -> dict:
    """Compute the display maxima of a sample sequence.

    Returns
    -------
    dict
        ``max_peak_pressure`` (capped), ``max_peak_pressure_raw`` and
        ``max_mean_pressure`` (raw maximum of region means, not capped).
    """
    peaks = sample_maxima(samples, "peak")
    means = sample_maxima(samples, "mean")
    raw_max = float(peaks.max()) if peaks.size else 0.0
    capped = capped_max(peaks, top_fraction, cap_factor)
    if capped < raw_max:
        logger.debug(f"Peak scale capped at {capped:.1f} kPa (raw max {raw_max:.1f} kPa)")
    return {
        "max_peak_pressure": capped,
        "max_peak_pressure_raw": raw_max,
        "max_mean_pressure": float(means.max()) if means.size else 0.0,
    }


def pressure_color(pressure: float, max_pressure: float) -> str:
    """Map a pressure to an ``"rgb(r, g, b)"`` string.

    Blue at zero, green at half scale, red at full scale. The scale
    maximum is floored at 1 kPa and negative pressures count as zero.
    """
    safe_max = max(1.0, float(max_pressure))
    fraction = min(1.0, max(0.0, float(pressure)) / safe_max)

    if fraction < 0.5:
        t = fraction * 2
        r = int(math.floor(t * 255))
        g = int(math.floor(t * 255))
        b = int(math.floor(255 - t * 255))
    else:
        t = (fraction - 0.5) * 2
        r = 255
        g = int(math.floor(255 - t * 255))
        b = 0
    return f"rgb({r}, {g}, {b})"
