"""Gait analysis: temporal parameters and left/right asymmetry.

Derives step, stride and stance times, cadence and asymmetry indices
from a detected event stream.

Definitions:
    - Step time: interval between consecutive initial contacts of
      opposite feet, attributed to the foot of the later contact.
    - Stride time: interval between consecutive initial contacts of the
      same foot.
    - Stance time: initial contact to the next toe off of the same foot.
      A contact with no later toe off contributes nothing.
    - Cadence: initial contacts per minute over the recording duration
      (last sample time minus first sample time).

Symmetry index formula:
    SI = |L - R| / (0.5 * (L + R)) * 100
    Ref: Robinson RO, Herzog W, Nigg BM. Use of force platform
    variables to quantify the effects of chiropractic manipulation
    on gait symmetry. J Manipulative Physiol Ther.
    1987;10(4):172-176.

Standard deviations are population values (divide by N); a side with
at most one value has SD 0.

Functions
---------
analyze_gait
    Compute all temporal parameters (main entry point).
step_times
stride_times
stance_times
    Individual parameter series per foot.
cadence
    Steps per minute.
classify_asymmetry
    Display band of an asymmetry percentage.
compare_recordings
    Side-by-side region pressure and parameter summary of recordings.
"""

import logging
from typing import Dict, List, Optional

import numpy as np

from .constants import (
    ASYMMETRY_BANDS,
    ASYMMETRY_HIGH,
    FEET,
    GAIT_PARAMETERS,
    INITIAL_CONTACT,
    TOE_OFF,
)

logger = logging.getLogger(__name__)


def _symmetry_index(left: float, right: float) -> float:
    """SI = |L - R| / (0.5 * (L + R)) * 100. Returns 0 if both are 0."""
    denom = 0.5 * (left + right)
    if denom == 0:
        return 0.0
    return abs(left - right) / denom * 100


def _summary(values: List[float]) -> dict:
    """``{"values", "avg", "std"}`` with population SD."""
    avg = float(np.mean(values)) if values else 0.0
    std = float(np.std(values)) if len(values) > 1 else 0.0
    return {"values": [float(v) for v in values], "avg": avg, "std": std}


def _initial_contacts(events: List[dict]) -> List[dict]:
    ics = [e for e in events if e["type"] == INITIAL_CONTACT]
    return sorted(ics, key=lambda e: e["time"])


def step_times(events: List[dict]) -> Dict[str, List[float]]:
    """Opposite-foot contact intervals, bucketed by the later contact's foot."""
    out = {foot: [] for foot in FEET}
    ics = _initial_contacts(events)
    for prev, cur in zip(ics, ics[1:]):
        if cur["foot"] != prev["foot"]:
            out[cur["foot"]].append(cur["time"] - prev["time"])
    return out


def stride_times(events: List[dict]) -> Dict[str, List[float]]:
    """Same-foot contact intervals."""
    out = {foot: [] for foot in FEET}
    ics = _initial_contacts(events)
    for foot in FEET:
        times = [e["time"] for e in ics if e["foot"] == foot]
        out[foot] = [b - a for a, b in zip(times, times[1:])]
    return out


def stance_times(events: List[dict]) -> Dict[str, List[float]]:
    """Contact to next same-foot toe off durations."""
    out = {foot: [] for foot in FEET}
    for foot in FEET:
        ic_times = sorted(e["time"] for e in events
                          if e["foot"] == foot and e["type"] == INITIAL_CONTACT)
        to_times = np.array(sorted(e["time"] for e in events
                                   if e["foot"] == foot and e["type"] == TOE_OFF))
        for t in ic_times:
            # first toe off strictly after the contact
            j = np.searchsorted(to_times, t, side="right")
            if j < len(to_times):
                out[foot].append(float(to_times[j] - t))
    return out


def cadence(n_initial_contacts: int, duration: float) -> float:
    """Steps per minute; 0 when the duration is not positive."""
    if duration <= 0:
        return 0.0
    return n_initial_contacts / duration * 60.0


def classify_asymmetry(percent: float) -> str:
    """Band label: ``<3`` Minimal, ``<6`` Low, ``<10`` Moderate, else High."""
    for bound, label in ASYMMETRY_BANDS:
        if percent < bound:
            return label
    return ASYMMETRY_HIGH


def _recording_duration(recording: Optional[dict]) -> float:
    if not recording:
        return 0.0
    times = recording.get("time_points") or [s["time"] for s in recording.get("samples", [])]
    if len(times) < 2:
        return 0.0
    return float(times[-1] - times[0])


def analyze_gait(
    events: List[dict],
    recording: Optional[dict] = None,
    duration: Optional[float] = None,
) -> dict:
    """Compute temporal gait parameters from an event list.

    Parameters
    ----------
    events : list of dict
        Output of ``detect_events()``.
    recording : dict, optional
        Source recording; its first-to-last sample time is the cadence
        duration.
    duration : float, optional
        Explicit duration in seconds, overriding *recording*.

    Returns
    -------
    dict
        ``step_time``, ``stride_time``, ``stance_time`` (each with
        ``left``/``right`` summaries, ``asymmetry_pct`` and
        ``asymmetry_level``), ``cadence_steps_per_min``,
        ``n_initial_contacts`` and ``duration_s``.

    Raises
    ------
    TypeError
        If *events* is not a list.
    """
    if not isinstance(events, (list, tuple)):
        raise TypeError("events must be a list")
    if duration is None:
        duration = _recording_duration(recording)

    series = {
        "step_time": step_times(events),
        "stride_time": stride_times(events),
        "stance_time": stance_times(events),
    }

    params = {}
    for name in GAIT_PARAMETERS:
        left = _summary(series[name]["left"])
        right = _summary(series[name]["right"])
        asym = _symmetry_index(left["avg"], right["avg"])
        params[name] = {
            "left": left,
            "right": right,
            "asymmetry_pct": asym,
            "asymmetry_level": classify_asymmetry(asym),
        }

    n_ic = sum(1 for e in events if e["type"] == INITIAL_CONTACT)
    params["cadence_steps_per_min"] = cadence(n_ic, duration)
    params["n_initial_contacts"] = n_ic
    params["duration_s"] = float(duration)

    logger.info(
        f"Gait parameters: cadence {params['cadence_steps_per_min']:.1f} steps/min, "
        f"stance asymmetry {params['stance_time']['asymmetry_pct']:.1f}%"
    )
    return params


def parameter_table(params: dict) -> List[dict]:
    """Flatten ``analyze_gait`` output into summary rows (one per parameter)."""
    rows = []
    for name in GAIT_PARAMETERS:
        p = params[name]
        rows.append({
            "parameter": name,
            "left_avg_s": round(p["left"]["avg"], 4),
            "left_std_s": round(p["left"]["std"], 4),
            "left_n": len(p["left"]["values"]),
            "right_avg_s": round(p["right"]["avg"], 4),
            "right_std_s": round(p["right"]["std"], 4),
            "right_n": len(p["right"]["values"]),
            "asymmetry_pct": round(p["asymmetry_pct"], 2),
            "asymmetry_level": p["asymmetry_level"],
        })
    rows.append({
        "parameter": "cadence_steps_per_min",
        "left_avg_s": None, "left_std_s": None, "left_n": None,
        "right_avg_s": None, "right_std_s": None, "right_n": None,
        "asymmetry_pct": None, "asymmetry_level": None,
        "value": round(params["cadence_steps_per_min"], 2),
    })
    return rows


def compare_recordings(
    recordings: List[dict],
    region: str = "heel",
    mode: str = "peak",
    thresholds: Optional[Dict[str, float]] = None,
    cache=None,
) -> List[dict]:
    """Compare several recordings side by side.

    For each recording, averages the chosen region statistic per foot
    over the whole recording and derives its gait parameters. Events
    come from *cache* (an ``EventCache``) when one is given.

    Returns
    -------
    list of dict
        One row per recording: ``label``, ``left``, ``right`` (kPa),
        ``stance_left_s``, ``stance_right_s``, ``cadence_steps_per_min``.
    """
    from .events import detect_events
    from .regions import region_averages
    from .schema import recording_label

    rows = []
    for i, rec in enumerate(recordings):
        averages = region_averages(rec, mode=mode)
        if region not in averages["left"]:
            raise ValueError(f"Unknown region: {region}")
        if cache is not None:
            events = cache.get(rec, thresholds)
        else:
            events = detect_events(rec, thresholds)
        params = analyze_gait(events, rec)
        rows.append({
            "label": recording_label(rec, i),
            "left": averages["left"][region],
            "right": averages["right"][region],
            "stance_left_s": params["stance_time"]["left"]["avg"],
            "stance_right_s": params["stance_time"]["right"]["avg"],
            "cadence_steps_per_min": params["cadence_steps_per_min"],
        })
    return rows
