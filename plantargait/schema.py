"""Pivot recording format for plantargait.

The processed recording is a plain dict flowing through every stage:
ingest -> filters -> events -> analysis -> export. It is treated as
immutable once created; transformations produce a new dict through
``copy_recording``.

Functions
---------
create_empty
    Create an empty recording structure.
copy_recording
    Deep copy with a fresh recording identity.
recordings_equal
    Deep equality ignoring recording identity.
set_participant
    Set participant metadata on a recording.
save_json
    Save a recording to JSON with numpy type conversion.
load_json
    Load and validate a recording JSON file.
"""

import copy
import json
import uuid
from pathlib import Path
from typing import Any, Optional, Union

import numpy as np

from .constants import RIGHT_FOOT_OFFSET


def _convert_numpy(obj: Any) -> Any:
    """Recursively convert numpy types to Python types for JSON serialization."""
    if isinstance(obj, (np.integer,)):
        return int(obj)
    if isinstance(obj, (np.floating,)):
        return float(obj)
    if isinstance(obj, np.ndarray):
        return obj.tolist()
    if isinstance(obj, dict):
        return {k: _convert_numpy(v) for k, v in obj.items()}
    if isinstance(obj, (list, tuple)):
        return [_convert_numpy(v) for v in obj]
    if isinstance(obj, np.bool_):
        return bool(obj)
    return obj


def new_recording_id() -> str:
    return uuid.uuid4().hex


def create_empty(
    file_name: str = "",
    participant_id: Optional[str] = None,
    regions: Optional[dict] = None,
    source: str = "pressure_insole",
) -> dict:
    """Create an empty recording structure.

    Parameters
    ----------
    file_name : str
        Name of the source export.
    participant_id : str, optional
        Participant identifier.
    regions : dict, optional
        Region partition used to build the samples.
    source : str
        Free-form source tag (default ``"pressure_insole"``).

    Returns
    -------
    dict
        Empty recording ready to be populated.
    """
    from . import __version__
    return {
        "plantargait_version": __version__,
        "meta": {
            "source": source,
            "file_name": str(file_name),
            "participant_id": participant_id,
            "recording_id": new_recording_id(),
            "n_samples": 0,
            "duration_s": 0.0,
            "skipped_rows": 0,
            "right_foot_offset": RIGHT_FOOT_OFFSET,
            "scaling": {"top_fraction": 0.1, "cap_factor": 3.0},
        },
        "regions": copy.deepcopy(regions) if regions is not None else None,
        "time_points": [],
        "samples": [],
        "max_peak_pressure": 0.0,
        "max_peak_pressure_raw": 0.0,
        "max_mean_pressure": 0.0,
        "force": None,
        "filters": [],
    }


def copy_recording(recording: dict) -> dict:
    """Deep copy *recording* and give the copy a new identity.

    The copy shares no mutable state with the source, so a working
    copy can be transformed while the source stays pristine.
    """
    dup = copy.deepcopy(recording)
    dup.setdefault("meta", {})["recording_id"] = new_recording_id()
    return dup


def _strip_identity(recording: dict) -> dict:
    stripped = dict(recording)
    meta = dict(stripped.get("meta") or {})
    meta.pop("recording_id", None)
    stripped["meta"] = meta
    return stripped


def recordings_equal(a: dict, b: dict) -> bool:
    """Deep equality of two recordings, ignoring ``recording_id``."""
    return _convert_numpy(_strip_identity(a)) == _convert_numpy(_strip_identity(b))


def set_participant(
    recording: dict,
    participant_id: Optional[str] = None,
    file_name: Optional[str] = None,
    **extra,
) -> dict:
    """Set identifying metadata on *recording* (returns it)."""
    meta = recording.setdefault("meta", {})
    if participant_id is not None:
        meta["participant_id"] = participant_id
    if file_name is not None:
        meta["file_name"] = file_name
    meta.update(extra)
    return recording


def recording_label(recording: dict, index: Optional[int] = None) -> str:
    """Human-readable label: participant, then file name, then position."""
    meta = recording.get("meta", {})
    if meta.get("participant_id"):
        return str(meta["participant_id"])
    if meta.get("file_name"):
        return str(meta["file_name"])
    return f"Dataset {index + 1}" if index is not None else "Dataset"


def save_json(recording: dict, path: Union[str, Path], indent: int = 2) -> None:
    """Save a recording to JSON.

    Parameters
    ----------
    recording : dict
        Recording dictionary.
    path : str or Path
        Output file path. Parent directories are created if needed.
    indent : int, optional
        JSON indentation level (default 2).
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    converted = _convert_numpy(recording)
    with open(path, "w") as f:
        json.dump(converted, f, indent=indent, ensure_ascii=False)


def load_json(path: Union[str, Path]) -> dict:
    """Load and validate a recording JSON file.

    Raises
    ------
    FileNotFoundError
        If the file does not exist.
    ValueError
        If the JSON content is not a valid recording.
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"File not found: {path}")

    with open(path) as f:
        data = json.load(f)

    if not isinstance(data, dict):
        raise ValueError("JSON root must be a dict")
    if "meta" not in data:
        raise ValueError("Missing 'meta' key in JSON")
    if "samples" not in data:
        raise ValueError("Missing 'samples' key in JSON")

    # time_points is derived; rebuild it if an older file lacks it
    if "time_points" not in data:
        data["time_points"] = [s["time"] for s in data["samples"]]
    return data
