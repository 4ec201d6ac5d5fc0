"""Export recordings and analysis results.

Provides tabular views (pandas DataFrames) of a recording and writes
them to CSV files or a multi-tab Excel workbook.

Functions
---------
to_dataframe
    Convert pressure samples, events or parameters to DataFrames.
export_csv
    Export pressure, events and parameters to CSV files.
export_excel
    Export all data to a multi-tab Excel workbook (requires openpyxl).
sample_table
    Region table of a single sample.
export_sample
    Write a single sample's region table to Excel.
"""

import logging
from pathlib import Path
from typing import List, Optional

import pandas as pd

from .analysis import parameter_table
from .constants import EVENT_LABELS, FEET, REGION_LABELS

logger = logging.getLogger(__name__)


def _region_names(recording: dict) -> list:
    regions = recording.get("regions")
    if regions:
        return list(regions.keys())
    samples = recording.get("samples") or []
    return list(samples[0]["left"].keys()) if samples else []


def _pressure_df(recording: dict) -> pd.DataFrame:
    names = _region_names(recording)
    columns = ["time_s"] + [
        f"{foot}_{name}_{stat}"
        for foot in FEET for name in names for stat in ("peak", "mean")
    ]
    rows = []
    for s in recording.get("samples", []):
        row = {"time_s": s["time"]}
        for foot in FEET:
            for name in names:
                zone = s[foot].get(name, {})
                row[f"{foot}_{name}_peak"] = zone.get("peak", 0.0)
                row[f"{foot}_{name}_mean"] = zone.get("mean", 0.0)
        rows.append(row)
    return pd.DataFrame(rows, columns=columns)


def _events_df(events: Optional[List[dict]]) -> pd.DataFrame:
    columns = ["time_s", "sample_index", "foot", "type", "label"]
    rows = [{
        "time_s": ev["time"],
        "sample_index": ev.get("index"),
        "foot": ev["foot"],
        "type": ev["type"],
        "label": EVENT_LABELS.get(ev["type"], ev["type"]),
    } for ev in events or []]
    return pd.DataFrame(rows, columns=columns)


def _stance_df(phases: Optional[List[dict]]) -> pd.DataFrame:
    keys = ["foot", "start_time", "end_time", "duration", "mean_cop_x",
            "mean_cop_y", "ap_range", "ml_range", "midstance_variability"]
    return pd.DataFrame([{k: p[k] for k in keys} for p in phases or []], columns=keys)


def to_dataframe(
    recording: dict,
    what: str = "pressure",
    events: Optional[List[dict]] = None,
    params: Optional[dict] = None,
) -> "pd.DataFrame | dict":
    """Convert a recording (and its analysis) to pandas DataFrame(s).

    Parameters
    ----------
    recording : dict
        Processed recording.
    what : str, optional
        - ``"pressure"`` : one row per sample, ``<foot>_<region>_<stat>``
          columns.
        - ``"events"`` : gait events table (needs *events*).
        - ``"parameters"`` : gait parameter summary (needs *params*).
        - ``"all"`` : dict of the three DataFrames.
    events : list of dict, optional
        Output of ``detect_events()``.
    params : dict, optional
        Output of ``analyze_gait()``.

    Raises
    ------
    ValueError
        If *what* is not one of the recognized values.
    """
    valid_whats = ("pressure", "events", "parameters", "all")
    if what not in valid_whats:
        raise ValueError(f"what must be one of {valid_whats}, got {what!r}")

    def _params_df():
        return pd.DataFrame(parameter_table(params)) if params else pd.DataFrame()

    if what == "pressure":
        return _pressure_df(recording)
    if what == "events":
        return _events_df(events)
    if what == "parameters":
        return _params_df()
    return {
        "pressure": _pressure_df(recording),
        "events": _events_df(events),
        "parameters": _params_df(),
    }


# ── CSV export ───────────────────────────────────────────────────────


def export_csv(
    recording: dict,
    output_dir: str,
    events: Optional[List[dict]] = None,
    params: Optional[dict] = None,
    prefix: str = "",
) -> list:
    """Export a recording to CSV files.

    Writes ``<prefix>pressure.csv`` and, when given, ``<prefix>events.csv``
    and ``<prefix>parameters.csv``.

    Returns
    -------
    list of str
        Paths of the written files.
    """
    out = Path(output_dir)
    out.mkdir(parents=True, exist_ok=True)
    written = []

    path = out / f"{prefix}pressure.csv"
    _pressure_df(recording).to_csv(path, index=False)
    written.append(str(path))

    if events is not None:
        path = out / f"{prefix}events.csv"
        _events_df(events).to_csv(path, index=False)
        written.append(str(path))

    if params is not None:
        path = out / f"{prefix}parameters.csv"
        pd.DataFrame(parameter_table(params)).to_csv(path, index=False)
        written.append(str(path))

    logger.info(f"Exported {len(written)} CSV file(s) to {out}")
    return written


# ── Excel export ─────────────────────────────────────────────────────


def export_excel(
    recording: dict,
    output_path: str,
    events: Optional[List[dict]] = None,
    params: Optional[dict] = None,
    stance_phases: Optional[List[dict]] = None,
) -> str:
    """Export a recording to a multi-tab Excel workbook.

    Creates sheets: Pressure, Events, Summary and, when stance phases
    are given, StancePhases. Requires the ``openpyxl`` package.

    Returns
    -------
    str
        Path to the created file.

    Raises
    ------
    ImportError
        If ``openpyxl`` is not installed.
    TypeError
        If *recording* is not a dict.
    """
    if not isinstance(recording, dict):
        raise TypeError("recording must be a dict")
    try:
        import openpyxl  # noqa: F401
    except ImportError:
        raise ImportError(
            "openpyxl is required for Excel export: pip install openpyxl"
        )
    path = Path(output_path)
    path.parent.mkdir(parents=True, exist_ok=True)

    meta = recording.get("meta", {})
    with pd.ExcelWriter(path, engine="openpyxl") as writer:
        _pressure_df(recording).to_excel(writer, sheet_name="Pressure", index=False)
        _events_df(events).to_excel(writer, sheet_name="Events", index=False)

        summary = [
            {"key": "file_name", "value": meta.get("file_name")},
            {"key": "participant_id", "value": meta.get("participant_id")},
            {"key": "n_samples", "value": meta.get("n_samples")},
            {"key": "duration_s", "value": meta.get("duration_s")},
            {"key": "skipped_rows", "value": meta.get("skipped_rows")},
            {"key": "max_peak_pressure_kpa", "value": recording.get("max_peak_pressure")},
            {"key": "max_peak_pressure_raw_kpa", "value": recording.get("max_peak_pressure_raw")},
            {"key": "max_mean_pressure_kpa", "value": recording.get("max_mean_pressure")},
            {"key": "filters", "value": ", ".join(recording.get("filters") or [])},
        ]
        summary_df = pd.DataFrame(summary)
        summary_df.to_excel(writer, sheet_name="Summary", index=False)
        if params:
            pd.DataFrame(parameter_table(params)).to_excel(
                writer, sheet_name="Summary", index=False,
                startrow=len(summary_df) + 2,
            )

        if stance_phases is not None:
            _stance_df(stance_phases).to_excel(writer, sheet_name="StancePhases", index=False)

    logger.info(f"Exported Excel workbook: {path}")
    return str(path)


# ── Single sample ────────────────────────────────────────────────────


def sample_table(sample: dict) -> pd.DataFrame:
    """Region table of one sample: left/right peak and mean with differences (kPa)."""
    rows = []
    for name, zone in sample["left"].items():
        right = sample["right"].get(name, {"peak": 0.0, "mean": 0.0})
        rows.append({
            "Region": REGION_LABELS.get(name, name),
            "Left Peak (kPa)": round(zone["peak"], 2),
            "Right Peak (kPa)": round(right["peak"], 2),
            "Peak Diff (kPa)": round(zone["peak"] - right["peak"], 2),
            "Left Mean (kPa)": round(zone["mean"], 2),
            "Right Mean (kPa)": round(right["mean"], 2),
            "Mean Diff (kPa)": round(zone["mean"] - right["mean"], 2),
        })
    return pd.DataFrame(rows)


def export_sample(sample: dict, output_path: Optional[str] = None) -> str:
    """Write the region table of *sample* to an Excel file.

    The default file name is ``pressure_data_<time>s.xlsx``.

    Returns
    -------
    str
        Path to the created file.
    """
    path = Path(output_path or f"pressure_data_{sample['time']:.2f}s.xlsx")
    path.parent.mkdir(parents=True, exist_ok=True)
    with pd.ExcelWriter(path, engine="openpyxl") as writer:
        pd.DataFrame([{"Time (s)": round(sample["time"], 3)}]).to_excel(
            writer, sheet_name="Pressure Data", index=False,
        )
        sample_table(sample).to_excel(
            writer, sheet_name="Pressure Data", index=False, startrow=3,
        )
    logger.info(f"Exported sample at {sample['time']:.3f}s to {path}")
    return str(path)
