"""Gait event detection from plantar pressure: initial contact (IC) and toe off (TO).

Both events are threshold crossings on region peak pressure, scanned
over time-ordered samples for each foot independently:

    - Initial contact: rising edge on heel peak pressure,
      ``heel[i-1] < ic_threshold <= heel[i]``.
    - Toe off: falling edge on ``max(toes, hallux)`` peak pressure,
      ``toe[i-1] >= to_threshold > toe[i]``.

The event is stamped with the time of sample ``i``. Detection is a pure
function of (samples, thresholds); callers that redraw often memoize it
with ``EventCache`` keyed on the recording identity and thresholds.

Threshold presets:
    - "standard" (default): IC 15 kPa, TO 10 kPa.
    - "legacy": IC 25 kPa, TO 20 kPa, the fixed values of the older
      event-analysis view. Kept selectable; results differ from
      "standard" on the same recording.

Functions
---------
detect_events
    Detect IC and TO events for both feet.
get_thresholds
    Resolve a preset name and overrides into a thresholds dict.
list_threshold_presets
    Available preset names.
get_active_events
    Events within a time window of the playback cursor.
validate_event_sequence
    Check ordering and uniqueness of an event list.
"""

import logging
from collections import OrderedDict
from typing import Dict, List, Optional, Union

import numpy as np

from .constants import (
    DEFAULT_THRESHOLD_PRESET,
    EVENT_TYPES,
    FEET,
    HEEL_REGIONS,
    INITIAL_CONTACT,
    THRESHOLD_PRESETS,
    TOE_OFF,
    TOE_REGIONS,
)

logger = logging.getLogger(__name__)

_FOOT_ORDER = {foot: i for i, foot in enumerate(FEET)}
_TYPE_ORDER = {t: i for i, t in enumerate(EVENT_TYPES)}


def list_threshold_presets() -> list:
    """Return available threshold preset names."""
    return list(THRESHOLD_PRESETS.keys())


def get_thresholds(
    preset: Optional[str] = None,
    initial_contact: Optional[float] = None,
    toe_off: Optional[float] = None,
) -> Dict[str, float]:
    """Resolve detection thresholds.

    Parameters
    ----------
    preset : str, optional
        Preset name (default ``"standard"``).
    initial_contact, toe_off : float, optional
        Overrides in kPa, applied on top of the preset.

    Returns
    -------
    dict
        ``{"initial_contact": kPa, "toe_off": kPa}``.

    Raises
    ------
    ValueError
        If *preset* is unknown or a threshold is negative.
    """
    preset = preset or DEFAULT_THRESHOLD_PRESET
    if preset not in THRESHOLD_PRESETS:
        available = ", ".join(THRESHOLD_PRESETS)
        raise ValueError(f"Unknown threshold preset: {preset}. Available: {available}")
    if preset != DEFAULT_THRESHOLD_PRESET:
        logger.info(
            f"Using '{preset}' thresholds; events will differ from the "
            f"'{DEFAULT_THRESHOLD_PRESET}' preset"
        )

    thresholds = dict(THRESHOLD_PRESETS[preset])
    if initial_contact is not None:
        thresholds["initial_contact"] = float(initial_contact)
    if toe_off is not None:
        thresholds["toe_off"] = float(toe_off)
    for key, value in thresholds.items():
        if value < 0:
            raise ValueError(f"Threshold '{key}' must be non-negative, got {value}")
    return thresholds


def _samples_of(data: Union[dict, list]) -> list:
    if isinstance(data, dict):
        return data.get("samples", [])
    if isinstance(data, (list, tuple)):
        return list(data)
    raise TypeError("data must be a recording dict or a list of samples")


def _region_peak_series(samples: list, foot: str, regions) -> np.ndarray:
    """Max peak over *regions* for one foot, per sample (0 if absent)."""
    out = np.zeros(len(samples))
    for i, s in enumerate(samples):
        zones = s.get(foot, {})
        out[i] = max((zones.get(r, {}).get("peak", 0.0) for r in regions), default=0.0)
    return out


def rising_crossings(series: np.ndarray, threshold: float) -> np.ndarray:
    """Indices ``i`` where ``series[i-1] < threshold <= series[i]``."""
    series = np.asarray(series, dtype=float)
    if series.size < 2:
        return np.array([], dtype=int)
    hits = (series[:-1] < threshold) & (series[1:] >= threshold)
    return np.nonzero(hits)[0] + 1


def falling_crossings(series: np.ndarray, threshold: float) -> np.ndarray:
    """Indices ``i`` where ``series[i-1] >= threshold > series[i]``."""
    series = np.asarray(series, dtype=float)
    if series.size < 2:
        return np.array([], dtype=int)
    hits = (series[:-1] >= threshold) & (series[1:] < threshold)
    return np.nonzero(hits)[0] + 1


def detect_events(
    data: Union[dict, list],
    thresholds: Optional[Dict[str, float]] = None,
) -> List[dict]:
    """Detect initial contact and toe off events for both feet.

    Parameters
    ----------
    data : dict or list
        Processed recording, or its list of samples, in time order.
    thresholds : dict, optional
        ``{"initial_contact": kPa, "toe_off": kPa}`` (default: the
        "standard" preset).

    Returns
    -------
    list of dict
        Events ``{"time", "index", "type", "foot"}`` sorted by time,
        then sample index, foot (left first) and type (IC first).
        Fewer than two samples give an empty list.

    Raises
    ------
    TypeError
        If *data* is neither a recording nor a sample list.
    """
    samples = _samples_of(data)
    if thresholds is None:
        thresholds = get_thresholds()
    ic = float(thresholds["initial_contact"])
    to = float(thresholds["toe_off"])

    if len(samples) < 2:
        return []

    times = [float(s["time"]) for s in samples]
    events = []
    for foot in FEET:
        heel = _region_peak_series(samples, foot, HEEL_REGIONS)
        toe = _region_peak_series(samples, foot, TOE_REGIONS)
        for idx in rising_crossings(heel, ic):
            events.append({"time": times[idx], "index": int(idx),
                           "type": INITIAL_CONTACT, "foot": foot})
        for idx in falling_crossings(toe, to):
            events.append({"time": times[idx], "index": int(idx),
                           "type": TOE_OFF, "foot": foot})

    events.sort(key=lambda e: (e["time"], e["index"],
                               _FOOT_ORDER[e["foot"]], _TYPE_ORDER[e["type"]]))

    n_ic = sum(1 for e in events if e["type"] == INITIAL_CONTACT)
    logger.debug(
        f"Detected {len(events)} events (IC={n_ic}, TO={len(events) - n_ic}) "
        f"with IC>={ic} kPa, TO<{to} kPa"
    )
    return events


def events_by_key(events: List[dict]) -> Dict[str, List[dict]]:
    """Group events into ``left_ic``, ``right_ic``, ``left_to``, ``right_to`` lists."""
    short = {INITIAL_CONTACT: "ic", TOE_OFF: "to"}
    grouped = {f"{foot}_{short[t]}": [] for foot in FEET for t in EVENT_TYPES}
    for ev in events:
        grouped[f"{ev['foot']}_{short[ev['type']]}"].append(ev)
    return grouped


def get_active_events(
    events: List[dict],
    current_time: float,
    window: float = 0.2,
) -> List[dict]:
    """Events whose time lies within *window* seconds of *current_time*."""
    return [ev for ev in events if abs(ev["time"] - current_time) <= window]


def validate_event_sequence(events: List[dict]) -> dict:
    """Check that an event list is a valid detector output.

    Returns
    -------
    dict
        ``{"valid": bool, "issues": [str, ...], "n_events": int}``.
        Issues cover unknown types/feet, time-order violations and
        duplicate (type, foot, index) triples.
    """
    issues = []
    seen = set()
    prev_time = None
    for i, ev in enumerate(events):
        if ev.get("type") not in EVENT_TYPES:
            issues.append(f"Event {i}: unknown type {ev.get('type')!r}")
        if ev.get("foot") not in FEET:
            issues.append(f"Event {i}: unknown foot {ev.get('foot')!r}")
        if prev_time is not None and ev["time"] < prev_time:
            issues.append(f"Event {i}: time {ev['time']} before previous {prev_time}")
        prev_time = ev["time"]
        key = (ev.get("type"), ev.get("foot"), ev.get("index", ev["time"]))
        if key in seen:
            issues.append(f"Event {i}: duplicate {key[0]} for {key[1]} at {key[2]}")
        seen.add(key)
    return {"valid": not issues, "issues": issues, "n_events": len(events)}


class EventCache:
    """Caller-side memoization of ``detect_events``.

    Entries are keyed on ``(recording_id, initial_contact, toe_off)``, so
    a filtered or reloaded recording (new identity) or a threshold change
    triggers a fresh scan. The oldest entry is evicted beyond *maxsize*.
    """

    def __init__(self, maxsize: int = 16):
        if maxsize < 1:
            raise ValueError("maxsize must be >= 1")
        self.maxsize = maxsize
        self._entries: "OrderedDict[tuple, List[dict]]" = OrderedDict()
        self.hits = 0
        self.misses = 0

    def __len__(self) -> int:
        return len(self._entries)

    @staticmethod
    def key(recording: dict, thresholds: Dict[str, float]) -> tuple:
        rid = recording.get("meta", {}).get("recording_id")
        if rid is None:
            raise ValueError("Recording has no meta.recording_id")
        return (rid, float(thresholds["initial_contact"]), float(thresholds["toe_off"]))

    def get(self, recording: dict, thresholds: Optional[Dict[str, float]] = None) -> List[dict]:
        """Cached events for *recording* and *thresholds*, detecting on a miss."""
        if thresholds is None:
            thresholds = get_thresholds()
        k = self.key(recording, thresholds)
        if k in self._entries:
            self.hits += 1
            self._entries.move_to_end(k)
            return [dict(ev) for ev in self._entries[k]]
        self.misses += 1
        events = detect_events(recording, thresholds)
        self._entries[k] = events
        if len(self._entries) > self.maxsize:
            self._entries.popitem(last=False)
        return [dict(ev) for ev in events]

    def clear(self) -> None:
        self._entries.clear()
