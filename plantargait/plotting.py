"""Pressure and gait event figures with matplotlib.

All functions return ``matplotlib.figure.Figure`` objects for saving or
display.

Functions
---------
plot_events
    Heel and toe pressure per foot with detected events and thresholds.
plot_region_averages
    Left/right average region pressure bars.
"""

import logging
from typing import Dict, List, Optional

import numpy as np
import matplotlib
if matplotlib.get_backend() == "":
    matplotlib.use("Agg")
import matplotlib.pyplot as plt

from .constants import FEET, HEEL_REGIONS, INITIAL_CONTACT, REGION_LABELS, TOE_OFF, TOE_REGIONS

logger = logging.getLogger(__name__)

# Color scheme
_COLORS = {
    "left": "#2171b5",       # blue
    "right": "#cb181d",      # red
    "left_light": "#6baed6",
    "right_light": "#fc9272",
    "ic": "#1a9850",         # green for IC
    "to": "#d73027",         # red-orange for TO
}


def plot_events(
    recording: dict,
    events: Optional[List[dict]] = None,
    thresholds: Optional[Dict[str, float]] = None,
    figsize: Optional[tuple] = None,
) -> plt.Figure:
    """Plot heel and toe peak pressure per foot with gait events.

    Parameters
    ----------
    recording : dict
        Processed recording.
    events : list of dict, optional
        Output of ``detect_events()``; detected with *thresholds* if
        omitted.
    thresholds : dict, optional
        Detection thresholds, drawn as dashed lines.
    figsize : tuple, optional
        Figure size ``(width, height)`` in inches.

    Returns
    -------
    matplotlib.figure.Figure

    Raises
    ------
    ValueError
        If the recording has no samples.
    """
    from .events import _region_peak_series, detect_events, get_thresholds

    samples = recording.get("samples")
    if not samples:
        raise ValueError("No samples in recording. Load a pressure export first.")
    if thresholds is None:
        thresholds = get_thresholds()
    if events is None:
        events = detect_events(recording, thresholds)
    if figsize is None:
        figsize = (12, 6)

    times = np.array([s["time"] for s in samples])
    fig, axes = plt.subplots(2, 1, figsize=figsize, sharex=True)

    for ax, foot in zip(axes, FEET):
        heel = _region_peak_series(samples, foot, HEEL_REGIONS)
        toe = _region_peak_series(samples, foot, TOE_REGIONS)
        ax.plot(times, heel, color=_COLORS[foot], linewidth=1, label="Heel")
        ax.plot(times, toe, color=_COLORS[f"{foot}_light"], linewidth=1, label="Toes/Hallux")
        ax.axhline(thresholds["initial_contact"], color=_COLORS["ic"],
                   linestyle="--", linewidth=0.8, alpha=0.7)
        ax.axhline(thresholds["toe_off"], color=_COLORS["to"],
                   linestyle="--", linewidth=0.8, alpha=0.7)

        ic = [e for e in events if e["foot"] == foot and e["type"] == INITIAL_CONTACT]
        to = [e for e in events if e["foot"] == foot and e["type"] == TOE_OFF]
        ax.scatter([e["time"] for e in ic], [heel[e["index"]] for e in ic],
                   marker="^", c=_COLORS["ic"], s=40, zorder=3, label=f"IC ({len(ic)})")
        ax.scatter([e["time"] for e in to], [toe[e["index"]] for e in to],
                   marker="v", c=_COLORS["to"], s=40, zorder=3, label=f"TO ({len(to)})")

        ax.set_ylabel(f"{foot.capitalize()} (kPa)")
        ax.legend(loc="upper right", fontsize=8, ncol=4)
        ax.grid(True, alpha=0.3)

    axes[-1].set_xlabel("Time (s)")
    axes[0].set_title("Gait Events")
    fig.tight_layout()
    return fig


def plot_region_averages(
    recording: dict,
    mode: str = "peak",
    start_pct: float = 0.0,
    end_pct: float = 100.0,
    figsize: Optional[tuple] = None,
) -> plt.Figure:
    """Grouped bars of average region pressure, left vs right.

    Parameters
    ----------
    recording : dict
        Processed recording.
    mode : {'peak', 'mean'}
        Region statistic to average.
    start_pct, end_pct : float
        Window in percent of the recording.
    figsize : tuple, optional
        Figure size ``(width, height)`` in inches.

    Returns
    -------
    matplotlib.figure.Figure
    """
    from .regions import region_averages

    averages = region_averages(recording, mode=mode, start_pct=start_pct, end_pct=end_pct)
    names = list(averages["left"].keys())
    if figsize is None:
        figsize = (10, 4)

    x = np.arange(len(names))
    width = 0.38
    fig, ax = plt.subplots(figsize=figsize)
    ax.bar(x - width / 2, [averages["left"][n] for n in names], width,
           color=_COLORS["left"], label="Left")
    ax.bar(x + width / 2, [averages["right"][n] for n in names], width,
           color=_COLORS["right"], label="Right")
    ax.set_xticks(x)
    ax.set_xticklabels([REGION_LABELS.get(n, n) for n in names], rotation=20)
    ax.set_ylabel(f"Average {mode} pressure (kPa)")
    ax.set_title(f"Region averages ({start_pct:g}-{end_pct:g}%)")
    ax.legend(fontsize=8)
    ax.grid(True, axis="y", alpha=0.3)
    fig.tight_layout()
    return fig
