"""plantargait -- Plantar pressure insole gait analysis toolkit.

Quick start::

    from plantargait import read_pressure_file, detect_events, analyze_gait
    rec = read_pressure_file("walk.xlsx")
    events = detect_events(rec)
    params = analyze_gait(events, rec)

Filtering and dataset state::

    from plantargait import DatasetManager, filter_butterworth
    manager = DatasetManager()
    manager.add(rec)
    manager.apply_filter(filter_butterworth, cutoff=10.0)
    sample = manager.lookup(1.25)

Playback::

    from plantargait import Playback
    player = Playback(rec, speed=2.0)
    player.play()
    player.tick(0.016)

Export::

    from plantargait import export_excel, to_dataframe
    export_excel(rec, "walk.xlsx", events, params)
    df = to_dataframe(rec, what="pressure")
"""

__version__ = "0.1.0"

from .regions import aggregate_row, aggregate_matrix, resolve_regions, region_averages
from .scaling import capped_max, compute_scale_bounds, pressure_color
from .schema import (
    create_empty,
    copy_recording,
    recordings_equal,
    set_participant,
    save_json,
    load_json,
)
from .ingest import (
    process_rows,
    read_pressure_file,
    read_force_file,
    attach_force,
)
from .events import (
    detect_events,
    get_thresholds,
    list_threshold_presets,
    get_active_events,
    validate_event_sequence,
    EventCache,
)
from .analysis import analyze_gait, classify_asymmetry, compare_recordings
from .dataset import DatasetManager, find_sample
from .playback import Playback
from .filters import (
    crop_time,
    filter_noise_floor,
    filter_butterworth,
    filter_median,
    apply_filters,
    list_filters,
)
from .cop import compute_stance_phases, current_stance_phase
from .export import export_csv, export_excel, export_sample, to_dataframe
from .plotting import plot_events, plot_region_averages
from .config import load_config, save_config, DEFAULT_CONFIG

__all__ = [
    # Core pipeline
    "read_pressure_file",
    "process_rows",
    "detect_events",
    "analyze_gait",
    # Regions and scaling
    "aggregate_row",
    "aggregate_matrix",
    "resolve_regions",
    "region_averages",
    "capped_max",
    "compute_scale_bounds",
    "pressure_color",
    # Events
    "get_thresholds",
    "list_threshold_presets",
    "get_active_events",
    "validate_event_sequence",
    "EventCache",
    # Analysis
    "classify_asymmetry",
    "compare_recordings",
    # State
    "DatasetManager",
    "find_sample",
    "Playback",
    # Filters
    "crop_time",
    "filter_noise_floor",
    "filter_butterworth",
    "filter_median",
    "apply_filters",
    "list_filters",
    # Force / COP
    "read_force_file",
    "attach_force",
    "compute_stance_phases",
    "current_stance_phase",
    # Export
    "export_csv",
    "export_excel",
    "export_sample",
    "to_dataframe",
    # Plotting
    "plot_events",
    "plot_region_averages",
    # I/O
    "create_empty",
    "copy_recording",
    "recordings_equal",
    "set_participant",
    "save_json",
    "load_json",
    # Config
    "load_config",
    "save_config",
    "DEFAULT_CONFIG",
]
