"""Loaded recordings and time-indexed lookup.

``DatasetManager`` owns every loaded recording. Each entry keeps a
working recording and a pristine copy captured at load time; filters
always produce a new working recording and ``reset()`` restores a fresh
copy of the pristine one. The two are never aliased.

Functions
---------
find_sample_index
    Binary search for the sample at or before a time.
find_sample
    Sample at or before a time (first sample if earlier, None if empty).

Classes
-------
DatasetManager
    Ordered collection of recordings with an active entry.
"""

import bisect
import logging
from typing import Callable, List, Optional

from .ingest import finalize_recording
from .schema import copy_recording, recording_label

logger = logging.getLogger(__name__)


def _time_points(recording: dict) -> list:
    times = recording.get("time_points")
    if times is None or len(times) != len(recording.get("samples", [])):
        times = [s["time"] for s in recording.get("samples", [])]
    return times


def find_sample_index(recording: dict, time: float) -> Optional[int]:
    """Index of the last sample with ``sample.time <= time``.

    Returns 0 when *time* precedes every sample and None for an empty
    recording. O(log n) over ``time_points``.
    """
    times = _time_points(recording)
    if not times:
        return None
    idx = bisect.bisect_right(times, time) - 1
    return max(idx, 0)


def find_sample(recording: Optional[dict], time: float) -> Optional[dict]:
    """Sample with the greatest time ``<= time`` (see ``find_sample_index``)."""
    if recording is None:
        return None
    idx = find_sample_index(recording, time)
    if idx is None:
        return None
    return recording["samples"][idx]


class DatasetManager:
    """Ordered list of recordings with one active entry.

    With no recordings the manager is in the "no data" condition:
    ``active`` is None and ``active_index`` is 0.
    """

    def __init__(self):
        self._datasets: List[dict] = []
        self._originals: List[dict] = []
        self.active_index = 0

    def __len__(self) -> int:
        return len(self._datasets)

    @property
    def datasets(self) -> List[dict]:
        """Working recordings, in load order (a new list; entries are shared)."""
        return list(self._datasets)

    @property
    def active(self) -> Optional[dict]:
        if not self._datasets:
            return None
        return self._datasets[self.active_index]

    @property
    def has_data(self) -> bool:
        return bool(self._datasets)

    def labels(self) -> List[str]:
        return [recording_label(rec, i) for i, rec in enumerate(self._datasets)]

    def _check_index(self, index: int) -> None:
        if not 0 <= index < len(self._datasets):
            raise IndexError(
                f"Dataset index {index} out of range (0..{len(self._datasets) - 1})"
            )

    def add(self, recording: dict) -> int:
        """Append *recording*, make it active and capture its pristine copy.

        Returns
        -------
        int
            Index of the new entry.
        """
        if not isinstance(recording, dict) or "samples" not in recording:
            raise TypeError("recording must be a processed recording dict")
        self._datasets.append(recording)
        self._originals.append(copy_recording(recording))
        self.active_index = len(self._datasets) - 1
        logger.info(
            f"Loaded dataset {self.active_index + 1}: "
            f"{len(recording['samples'])} samples"
        )
        return self.active_index

    def select(self, index: int) -> dict:
        """Make entry *index* active and return it."""
        self._check_index(index)
        self.active_index = index
        return self._datasets[index]

    def remove(self, index: int) -> None:
        """Remove entry *index*.

        Removing the active entry activates the previous one (or the
        first); removing an earlier entry keeps the same recording active.
        Removing the last remaining entry returns to "no data".
        """
        self._check_index(index)
        del self._datasets[index]
        del self._originals[index]

        if not self._datasets:
            self.active_index = 0
        elif index == self.active_index:
            self.active_index = max(0, index - 1)
        elif index < self.active_index:
            self.active_index -= 1
        logger.info(f"Removed dataset {index + 1}; {len(self._datasets)} remaining")

    def clear(self) -> None:
        self._datasets.clear()
        self._originals.clear()
        self.active_index = 0

    def apply_filter(self, func: Callable[..., dict], *args, **kwargs) -> dict:
        """Replace the active recording with ``func(copy, *args, **kwargs)``.

        *func* receives a deep copy of the active recording and must
        return a recording. Time points, duration and scale bounds of the
        result are recomputed from its samples. The pristine copy is
        untouched.

        Raises
        ------
        ValueError
            If no recording is loaded.
        TypeError
            If *func* does not return a recording dict.
        """
        if not self._datasets:
            raise ValueError("No dataset loaded")
        working = copy_recording(self._datasets[self.active_index])
        result = func(working, *args, **kwargs)
        if not isinstance(result, dict) or "samples" not in result:
            raise TypeError("Filter must return a recording dict")
        if result.get("meta", {}).get("recording_id") == \
                self._datasets[self.active_index].get("meta", {}).get("recording_id"):
            result = copy_recording(result)
        finalize_recording(result)
        self._datasets[self.active_index] = result
        name = getattr(func, "__name__", "filter")
        logger.info(f"Applied {name} to dataset {self.active_index + 1}")
        return result

    def reset(self) -> Optional[dict]:
        """Restore the active recording from its pristine copy."""
        if not self._datasets:
            return None
        restored = copy_recording(self._originals[self.active_index])
        self._datasets[self.active_index] = restored
        logger.info(f"Reset dataset {self.active_index + 1} to original data")
        return restored

    def original(self, index: Optional[int] = None) -> Optional[dict]:
        """Copy of the pristine recording of entry *index* (default: active)."""
        if not self._datasets:
            return None
        index = self.active_index if index is None else index
        self._check_index(index)
        return copy_recording(self._originals[index])

    def lookup(self, time: float) -> Optional[dict]:
        """Sample of the active recording at or before *time*."""
        return find_sample(self.active, time)
