"""Ingestion of pressure insole exports into the pivot recording.

Spreadsheet exports carry nine metadata rows, a header row and then one
row per time sample: a time column followed by the left-foot sensor
block and, 99 columns further, the right-foot block.

Error policy:
    - No time column in the header: ``ValueError``, nothing is produced.
    - Row without a usable time value: skipped and counted in
      ``meta["skipped_rows"]``.
    - Non-numeric sensor cell: excluded from that region's statistics.

Functions
---------
process_rows
    Build a recording from an already parsed header and rows.
read_pressure_file
    Read an ``.xlsx``/``.csv`` export and process it.
finalize_recording
    Recompute derived fields (time points, duration, scale bounds).
read_force_file
    Read a force / centre-of-pressure export.
attach_force
    Attach a force block to a recording (returns a new recording).
"""

import csv
import logging
import math
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Union

import numpy as np
import pandas as pd

from .constants import FORCE_COLUMN_KEYWORDS, METADATA_ROWS, RIGHT_FOOT_OFFSET
from .regions import coerce_float, aggregate_matrix, resolve_regions
from .scaling import compute_scale_bounds
from .schema import copy_recording, create_empty

logger = logging.getLogger(__name__)


def find_time_column(header: Sequence, keyword: str = "time") -> int:
    """Index of the first header cell containing *keyword* (case-insensitive).

    Raises
    ------
    ValueError
        If no header cell matches.
    """
    keyword = keyword.lower()
    for i, cell in enumerate(header):
        if cell is not None and keyword in str(cell).lower():
            return i
    raise ValueError(f"Time column not found in the data (no header containing '{keyword}')")


def finalize_recording(
    recording: dict,
    top_fraction: Optional[float] = None,
    cap_factor: Optional[float] = None,
) -> dict:
    """Recompute the derived fields of *recording* in place and return it.

    Scale parameters default to those stored in ``meta["scaling"]`` so
    that filtered recordings keep the settings they were loaded with.
    """
    samples = recording["samples"]
    recording["time_points"] = [s["time"] for s in samples]
    meta = recording.setdefault("meta", {})
    scaling = meta.setdefault("scaling", {"top_fraction": 0.1, "cap_factor": 3.0})
    if top_fraction is not None:
        scaling["top_fraction"] = float(top_fraction)
    if cap_factor is not None:
        scaling["cap_factor"] = float(cap_factor)
    top_fraction = scaling.get("top_fraction", 0.1)
    cap_factor = scaling.get("cap_factor", 3.0)
    meta["n_samples"] = len(samples)
    meta["duration_s"] = (
        round(samples[-1]["time"] - samples[0]["time"], 6) if len(samples) > 1 else 0.0
    )
    recording.update(compute_scale_bounds(samples, top_fraction, cap_factor))
    return recording


def process_rows(
    header: Sequence,
    rows: Sequence[Sequence],
    regions: Optional[Dict[str, List[int]]] = None,
    region_overrides: Optional[Dict[int, str]] = None,
    right_foot_offset: int = RIGHT_FOOT_OFFSET,
    column_offset: int = 0,
    time_column: str = "time",
    file_name: str = "",
    participant_id: Optional[str] = None,
    top_fraction: float = 0.1,
    cap_factor: float = 3.0,
) -> dict:
    """Build a processed recording from parsed export rows.

    Parameters
    ----------
    header : sequence
        Header row; the time column is the first cell containing
        *time_column*.
    rows : sequence of sequence
        Sample rows (metadata and header already removed).
    regions : dict, optional
        Base region partition (default ``DEFAULT_REGIONS``).
    region_overrides : dict, optional
        ``{sensor_id: region}`` reassignments, resolved once here.
    right_foot_offset : int
        Column stride of the right-foot block (default 99).
    column_offset : int
        Column of sensor 0 (default 0).
    time_column : str
        Header keyword identifying the time column.
    file_name, participant_id : str, optional
        Identifying metadata.
    top_fraction, cap_factor : float
        Outlier-cap parameters for ``max_peak_pressure``.

    Returns
    -------
    dict
        Processed recording with samples sorted by time.

    Raises
    ------
    ValueError
        If the header has no time column.
    """
    t_col = find_time_column(header, time_column)
    resolved = resolve_regions(region_overrides, regions)

    times = []
    kept = []
    skipped = 0
    for row in rows:
        cell = row[t_col] if t_col < len(row) else None
        t = coerce_float(cell)
        if math.isnan(t) or math.isinf(t):
            skipped += 1
            continue
        times.append(t)
        kept.append(row)

    if skipped:
        logger.warning(f"Skipped {skipped} row(s) without a time value")

    times_arr = np.asarray(times, dtype=float)
    order = np.argsort(times_arr, kind="stable")
    if len(times_arr) > 1 and np.any(np.diff(times_arr) < 0):
        logger.warning("Rows were not in time order; sorted by time")

    width = max((len(r) for r in kept), default=0)
    matrix = np.full((len(kept), width), np.nan)
    for i, idx in enumerate(order):
        row = kept[idx]
        matrix[i, :len(row)] = [coerce_float(v) for v in row]
    # The time column is not a sensor.
    if width > t_col:
        matrix[:, t_col] = np.nan

    feet = aggregate_matrix(matrix, resolved, right_foot_offset, column_offset)

    recording = create_empty(file_name=file_name, participant_id=participant_id,
                             regions=resolved)
    recording["meta"]["skipped_rows"] = skipped
    recording["meta"]["right_foot_offset"] = right_foot_offset
    recording["samples"] = [
        {"time": float(times_arr[idx]), "left": f["left"], "right": f["right"]}
        for idx, f in zip(order, feet)
    ]
    finalize_recording(recording, top_fraction, cap_factor)

    logger.info(
        f"Processed {len(recording['samples'])} samples "
        f"({recording['meta']['duration_s']:.2f}s, "
        f"max peak {recording['max_peak_pressure']:.1f} kPa)"
    )
    return recording


_PARSE_ERRORS = (csv.Error, pd.errors.ParserError, pd.errors.EmptyDataError)


def _read_csv(path: Path, **kwargs) -> pd.DataFrame:
    try:
        return pd.read_csv(path, sep=None, engine="python", **kwargs)
    except _PARSE_ERRORS as e:
        raise ValueError(f"Cannot parse {path.name}: {e}") from e


def _read_table(path: Path, skiprows: int) -> pd.DataFrame:
    suffix = path.suffix.lower()
    if suffix in (".xlsx", ".xlsm"):
        return pd.read_excel(path, header=None, skiprows=skiprows)
    if suffix in (".csv", ".txt"):
        return _read_csv(path, header=None, skiprows=skiprows)
    raise ValueError(f"Unsupported file type: {path.suffix}")


def read_pressure_file(
    path: Union[str, Path],
    metadata_rows: int = METADATA_ROWS,
    **kwargs,
) -> dict:
    """Read a pressure export and process it into a recording.

    Parameters
    ----------
    path : str or Path
        ``.xlsx`` (via openpyxl) or ``.csv`` export.
    metadata_rows : int
        Rows to skip before the header (default 9).
    **kwargs
        Forwarded to ``process_rows``.

    Raises
    ------
    FileNotFoundError
        If *path* does not exist.
    ValueError
        If the file type is unsupported, the file is empty, or the
        header has no time column.
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"File not found: {path}")

    logger.info(f"Reading pressure export {path.name}")
    df = _read_table(path, metadata_rows)
    if df.empty:
        raise ValueError(f"No data rows in {path.name}")

    table = df.astype(object).where(df.notna(), None).values.tolist()
    header, rows = table[0], table[1:]
    kwargs.setdefault("file_name", path.name)
    return process_rows(header, rows, **kwargs)


# ── Force / centre of pressure ───────────────────────────────────────


def _match_force_columns(columns: Sequence) -> Dict[str, str]:
    found = {}
    for key, words in FORCE_COLUMN_KEYWORDS.items():
        for col in columns:
            low = str(col).lower()
            if all(w in low for w in words) and col not in found.values():
                found[key] = col
                break
    return found


def read_force_file(path: Union[str, Path], skiprows: int = 0) -> dict:
    """Read a force / centre-of-pressure export.

    The export needs a header with columns for time, left/right force
    and left/right COP X/Y (matched case-insensitively by keyword).

    Returns
    -------
    dict
        ``{"time": [...], "left_force": [...], ..., "right_cop_y": [...]}``.

    Raises
    ------
    FileNotFoundError
        If *path* does not exist.
    ValueError
        If a required column is missing.
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"File not found: {path}")

    if path.suffix.lower() in (".csv", ".txt"):
        df = _read_csv(path, skiprows=skiprows)
    else:
        df = pd.read_excel(path, skiprows=skiprows)

    cols = _match_force_columns(df.columns)
    missing = [k for k in FORCE_COLUMN_KEYWORDS if k not in cols]
    if missing:
        raise ValueError(f"Force export is missing columns: {', '.join(missing)}")

    force = {}
    for key, col in cols.items():
        force[key] = pd.to_numeric(df[col], errors="coerce").astype(float).tolist()
    logger.info(f"Read {len(force['time'])} force samples from {path.name}")
    return force


def attach_force(recording: dict, force: dict) -> dict:
    """Return a copy of *recording* with a force/COP block attached.

    Alignment is by sample index: both series must have the same length.

    Raises
    ------
    ValueError
        If the sample counts differ or a column is missing.
    """
    missing = [k for k in FORCE_COLUMN_KEYWORDS if k not in force]
    if missing:
        raise ValueError(f"Force data is missing keys: {', '.join(missing)}")
    n = len(recording.get("samples", []))
    lengths = {k: len(force[k]) for k in FORCE_COLUMN_KEYWORDS}
    if any(v != n for v in lengths.values()):
        raise ValueError(
            f"Force data has {lengths['time']} samples, recording has {n}"
        )
    merged = copy_recording(recording)
    merged["force"] = {k: [float(v) for v in force[k]] for k in FORCE_COLUMN_KEYWORDS}
    return merged
