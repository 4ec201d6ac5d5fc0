"""Centre-of-pressure (COP) stance phases.

A stance phase runs from an initial contact to the next toe off of the
same foot. For every phase the COP trajectory is read from the force
block attached with ``ingest.attach_force`` (aligned by sample index).

COP axes follow the force export: X is the anterior-posterior axis and
Y the medial-lateral axis, both in mm.

Functions
---------
compute_stance_phases
    Build stance phases with COP trajectories and summary measures.
current_stance_phase
    Phase containing a given time, with the completion percentage.
"""

import logging
from typing import List, Optional

import numpy as np

from .constants import FEET, INITIAL_CONTACT, TOE_OFF

logger = logging.getLogger(__name__)

# Midstance window, in percent of stance.
MIDSTANCE_START_PCT = 20.0
MIDSTANCE_END_PCT = 50.0


def _phase(foot: str, times: np.ndarray, force: dict, start: int, end: int) -> Optional[dict]:
    t0, t1 = float(times[start]), float(times[end])
    duration = t1 - t0
    if duration <= 0:
        return None

    sl = slice(start, end + 1)
    x = np.asarray(force[f"{foot}_cop_x"][sl], dtype=float)
    y = np.asarray(force[f"{foot}_cop_y"][sl], dtype=float)
    f = np.asarray(force[f"{foot}_force"][sl], dtype=float)
    pct = (times[sl] - t0) / duration * 100.0

    valid = np.isfinite(x) & np.isfinite(y)
    if not valid.any():
        return None
    x, y, pct = x[valid], y[valid], pct[valid]
    f = np.where(np.isfinite(f[valid]), f[valid], 0.0)

    mid = (pct >= MIDSTANCE_START_PCT) & (pct <= MIDSTANCE_END_PCT)
    if mid.sum() > 1:
        dist = np.hypot(x[mid] - x[mid].mean(), y[mid] - y[mid].mean())
        variability = float(np.std(dist))
    else:
        variability = 0.0

    return {
        "foot": foot,
        "start_time": t0,
        "end_time": t1,
        "duration": duration,
        "cop_trajectory": [
            {"x": float(a), "y": float(b), "force": float(c), "percentage": int(round(p))}
            for a, b, c, p in zip(x, y, f, pct)
        ],
        "mean_cop_x": float(x.mean()),
        "mean_cop_y": float(y.mean()),
        "ap_range": float(x.max() - x.min()),
        "ml_range": float(y.max() - y.min()),
        "midstance_variability": variability,
    }


def compute_stance_phases(recording: dict, events: List[dict]) -> List[dict]:
    """Stance phases with COP trajectories for both feet.

    Parameters
    ----------
    recording : dict
        Processed recording with a ``force`` block.
    events : list of dict
        Output of ``detect_events(recording)``.

    Returns
    -------
    list of dict
        Phases sorted by start time. Each holds ``foot``,
        ``start_time``, ``end_time``, ``duration``, ``cop_trajectory``
        (``x``, ``y``, ``force``, ``percentage``), ``mean_cop_x``,
        ``mean_cop_y``, ``ap_range``, ``ml_range`` and
        ``midstance_variability`` (SD of the COP distance from its mean
        between 20% and 50% of stance).

    Raises
    ------
    ValueError
        If the recording has no force block.
    """
    force = recording.get("force")
    if not force:
        raise ValueError("Recording has no force/COP data. Attach a force export first.")

    times = np.asarray([s["time"] for s in recording["samples"]], dtype=float)
    phases = []
    for foot in FEET:
        ics = sorted((e for e in events if e["foot"] == foot and e["type"] == INITIAL_CONTACT),
                     key=lambda e: e["time"])
        tos = sorted((e for e in events if e["foot"] == foot and e["type"] == TOE_OFF),
                     key=lambda e: e["time"])
        to_times = np.array([e["time"] for e in tos])
        for ic in ics:
            j = np.searchsorted(to_times, ic["time"], side="right")
            if j >= len(tos):
                continue
            phase = _phase(foot, times, force, ic["index"], tos[j]["index"])
            if phase is not None:
                phases.append(phase)

    phases.sort(key=lambda p: (p["start_time"], p["foot"]))
    logger.info(f"Computed {len(phases)} stance phases")
    return phases


def current_stance_phase(phases: List[dict], time: float) -> Optional[dict]:
    """Phase containing *time* (bounds inclusive), or None.

    Returns
    -------
    dict or None
        ``{"phase": phase, "percentage": int, "position": point}`` where
        ``percentage`` is the rounded completion (0-100) and
        ``position`` the trajectory point closest to it.
    """
    for phase in phases:
        if phase["start_time"] <= time <= phase["end_time"]:
            pct = round((time - phase["start_time"]) / phase["duration"] * 100)
            pct = max(0, min(100, int(pct)))
            traj = phase["cop_trajectory"]
            position = min(traj, key=lambda p: abs(p["percentage"] - pct)) if traj else None
            return {"phase": phase, "percentage": pct, "position": position}
    return None
