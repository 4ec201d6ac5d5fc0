"""Command-line interface for plantargait.

Provides subcommands for plantar pressure gait analysis:

    plantargait process walk.xlsx --output walk.json --force walk_cop.csv
    plantargait analyze walk.json --csv --excel --output-dir ./results
    plantargait batch data/*.xlsx --output-dir ./results --config config.yaml
    plantargait info walk.json
"""

import argparse
import logging
import sys
import time
from pathlib import Path
from importlib.metadata import version as pkg_version, PackageNotFoundError


def _get_version() -> str:
    """Return package version without importing the full plantargait package."""
    try:
        return pkg_version("plantargait")
    except PackageNotFoundError:
        return "0.0.0+local"


def _setup_logging(verbose: bool = False):
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )


def _load_cfg(path):
    from .config import get_default_config, load_config
    return load_config(path) if path else get_default_config()


def _thresholds(args, cfg):
    from .config import thresholds_from_config

    events = dict(cfg.get("events", {}))
    for key, attr in (("preset", "preset"), ("initial_contact", "ic"), ("toe_off", "to")):
        value = getattr(args, attr, None)
        if value is not None:
            events[key] = value
    return thresholds_from_config({"events": events})


def _filter_steps(args, cfg):
    steps = list(cfg.get("filters", {}).get("steps") or [])
    fcfg = cfg.get("filters", {})
    defaults = {
        "butterworth": {"cutoff": fcfg.get("butterworth_cutoff", 10.0),
                        "order": fcfg.get("butterworth_order", 2)},
        "median": {"kernel_size": fcfg.get("median_kernel", 3)},
        "noise_floor": {"threshold": fcfg.get("noise_floor", 5.0)},
    }
    for name in getattr(args, "filter", None) or []:
        steps.append({"type": name, "params": defaults.get(name, {})})
    return steps


def _process(path, args, cfg):
    from .config import ingest_kwargs
    from .filters import apply_filters
    from .ingest import attach_force, read_force_file, read_pressure_file

    recording = read_pressure_file(
        path,
        participant_id=getattr(args, "participant", None),
        **ingest_kwargs(cfg),
    )
    force_path = getattr(args, "force", None)
    if force_path:
        recording = attach_force(recording, read_force_file(force_path))
    steps = _filter_steps(args, cfg)
    if steps:
        recording = apply_filters(recording, steps)
    return recording


def _print_params(params):
    from .constants import GAIT_PARAMETERS

    print(f"  Cadence: {params['cadence_steps_per_min']:.1f} steps/min "
          f"({params['n_initial_contacts']} contacts in {params['duration_s']:.2f}s)")
    for name in GAIT_PARAMETERS:
        p = params[name]
        print(f"  {name.replace('_', ' ').capitalize()}: "
              f"L {p['left']['avg']:.3f} +/- {p['left']['std']:.3f} s, "
              f"R {p['right']['avg']:.3f} +/- {p['right']['std']:.3f} s, "
              f"asymmetry {p['asymmetry_pct']:.1f}% ({p['asymmetry_level']})")


def cmd_process(args):
    """Convert a pressure export to a plantargait JSON."""
    from .schema import save_json

    cfg = _load_cfg(args.config)
    t0 = time.time()
    recording = _process(args.input, args, cfg)
    elapsed = time.time() - t0

    meta = recording["meta"]
    print(f"Processed {meta['n_samples']} samples ({meta['duration_s']:.2f}s) in {elapsed:.1f}s")
    if meta.get("skipped_rows"):
        print(f"  Skipped {meta['skipped_rows']} row(s) without a time value")
    print(f"  Max peak pressure: {recording['max_peak_pressure']:.1f} kPa "
          f"(raw {recording['max_peak_pressure_raw']:.1f} kPa)")

    output = args.output or str(Path(args.input).with_suffix(".json"))
    save_json(recording, output)
    print(f"Saved to {output}")


def cmd_analyze(args):
    """Analyze a plantargait JSON: events -> parameters -> exports and plots."""
    from .analysis import analyze_gait
    from .events import detect_events, validate_event_sequence
    from .schema import load_json

    cfg = _load_cfg(args.config)
    recording = load_json(args.json_file)
    if not recording.get("samples"):
        print("Error: JSON has no samples.", file=sys.stderr)
        sys.exit(1)

    thresholds = _thresholds(args, cfg)
    events = detect_events(recording, thresholds)
    report = validate_event_sequence(events)
    n_ic = sum(1 for e in events if e["type"] == "initial_contact")
    print(f"Events: {len(events)} (IC {n_ic}, TO {len(events) - n_ic}) "
          f"at IC>={thresholds['initial_contact']:g} kPa, TO<{thresholds['toe_off']:g} kPa")
    for issue in report["issues"]:
        print(f"  !! {issue}")

    params = analyze_gait(events, recording)
    _print_params(params)

    phases = None
    if recording.get("force"):
        from .cop import compute_stance_phases
        phases = compute_stance_phases(recording, events)
        print(f"  Stance phases with COP: {len(phases)}")

    out_dir = Path(args.output_dir)
    if not args.no_plots:
        import matplotlib.pyplot as plt
        from .plotting import plot_events, plot_region_averages

        out_dir.mkdir(parents=True, exist_ok=True)
        fig = plot_events(recording, events, thresholds)
        fig.savefig(out_dir / "events.png", dpi=150, bbox_inches="tight")
        plt.close(fig)
        fig = plot_region_averages(recording)
        fig.savefig(out_dir / "region_averages.png", dpi=150, bbox_inches="tight")
        plt.close(fig)
        print(f"  Saved: events.png, region_averages.png in {out_dir}/")

    if args.csv:
        from .export import export_csv
        files = export_csv(recording, str(out_dir), events, params)
        print(f"  CSV: {len(files)} files exported")

    if args.excel:
        from .export import export_excel
        xlsx_path = str(out_dir / "plantar_analysis.xlsx")
        export_excel(recording, xlsx_path, events, params, phases)
        print(f"  Excel: {xlsx_path}")

    print("Done.")


def cmd_batch(args):
    """Process and analyze multiple pressure exports."""
    import glob as globmod

    from .analysis import analyze_gait, compare_recordings
    from .config import event_cache_from_config
    from .schema import save_json

    files = []
    for pattern in args.inputs:
        files.extend(globmod.glob(pattern))
    files = sorted(set(files))
    if not files:
        print("No files matched.")
        sys.exit(1)

    cfg = _load_cfg(args.config)
    thresholds = _thresholds(args, cfg)
    cache = event_cache_from_config(cfg)
    print(f"Batch processing {len(files)} files...")
    out_dir = Path(args.output_dir)
    out_dir.mkdir(parents=True, exist_ok=True)

    results = []
    recordings = []
    for i, filepath in enumerate(files):
        name = Path(filepath).stem
        print(f"\n[{i+1}/{len(files)}] {name}")
        t0 = time.time()
        try:
            recording = _process(filepath, args, cfg)
            save_json(recording, str(out_dir / f"{name}.json"))
            events = cache.get(recording, thresholds)
            params = analyze_gait(events, recording)
            elapsed = time.time() - t0
            print(f"  OK: {recording['meta']['n_samples']} samples, {len(events)} events "
                  f"in {elapsed:.1f}s")

            if args.csv:
                from .export import export_csv
                export_csv(recording, str(out_dir), events, params, prefix=f"{name}_")

            recordings.append(recording)
            results.append({"file": name, "status": "ok", "events": len(events),
                            "cadence": params["cadence_steps_per_min"]})
        except (ValueError, KeyError, OSError) as e:
            print(f"  ERROR: {e}")
            results.append({"file": name, "status": "error", "error": str(e)})

    if len(recordings) > 1:
        print("\nComparison (heel peak, kPa):")
        for row in compare_recordings(recordings, thresholds=thresholds, cache=cache):
            print(f"  {row['label']}: L {row['left']:.1f}, R {row['right']:.1f}, "
                  f"cadence {row['cadence_steps_per_min']:.1f}")

    ok = sum(1 for r in results if r["status"] == "ok")
    print(f"\nBatch complete: {ok}/{len(results)} succeeded")
    return results


def cmd_info(args):
    """Display info about a plantargait JSON file."""
    from .schema import load_json

    data = load_json(args.json_file)
    meta = data.get("meta", {})
    print(f"plantargait v{data.get('plantargait_version', '?')}")
    print(f"Source: {meta.get('file_name', '?')} ({meta.get('source', '?')})")
    if meta.get("participant_id"):
        print(f"Participant: {meta['participant_id']}")
    print(f"Samples: {meta.get('n_samples', len(data.get('samples', [])))}, "
          f"Duration: {meta.get('duration_s', '?')}s, "
          f"Skipped rows: {meta.get('skipped_rows', 0)}")
    print(f"Max peak: {data.get('max_peak_pressure', 0):.1f} kPa "
          f"(raw {data.get('max_peak_pressure_raw', 0):.1f}), "
          f"max mean: {data.get('max_mean_pressure', 0):.1f} kPa")
    regions = data.get("regions") or {}
    if regions:
        print("Regions: " + ", ".join(f"{k} ({len(v)})" for k, v in regions.items()))
    print(f"Filters: {data.get('filters') or 'none'}")
    print(f"Force/COP: {'yes' if data.get('force') else 'no'}")


def main(argv=None):
    parser = argparse.ArgumentParser(
        prog="plantargait",
        description="Plantar pressure insole gait analysis toolkit",
    )
    parser.add_argument("--version", action="version", version=f"plantargait {_get_version()}")
    parser.add_argument("-v", "--verbose", action="store_true", help="Verbose logging")

    sub = parser.add_subparsers(dest="command", help="Available commands")

    filter_names = ["butterworth", "median", "noise_floor"]

    # process
    p_proc = sub.add_parser("process", help="Convert a pressure export (.xlsx/.csv) to JSON")
    p_proc.add_argument("input", help="Path to pressure export")
    p_proc.add_argument("-o", "--output", help="Output JSON path (default: input.json)")
    p_proc.add_argument("--force", help="Force/COP export to attach")
    p_proc.add_argument("--participant", help="Participant identifier")
    p_proc.add_argument("--filter", action="append", choices=filter_names,
                        help="Filter to apply (repeatable)")
    p_proc.add_argument("--config", help="Config file (JSON/YAML)")
    p_proc.set_defaults(func=cmd_process)

    # analyze
    p_analyze = sub.add_parser("analyze", help="Analyze a plantargait JSON: events -> parameters")
    p_analyze.add_argument("json_file", help="Path to plantargait JSON file")
    p_analyze.add_argument("-o", "--output-dir", default=".", help="Output directory (default: .)")
    p_analyze.add_argument("--preset", choices=["standard", "legacy"],
                           help="Threshold preset (default: standard)")
    p_analyze.add_argument("--ic", type=float, help="Initial contact threshold, kPa")
    p_analyze.add_argument("--to", type=float, help="Toe off threshold, kPa")
    p_analyze.add_argument("--config", help="Config file (JSON/YAML)")
    p_analyze.add_argument("--no-plots", action="store_true", help="Skip plot generation")
    p_analyze.add_argument("--csv", action="store_true", help="Export CSV files")
    p_analyze.add_argument("--excel", action="store_true", help="Export Excel workbook")
    p_analyze.set_defaults(func=cmd_analyze)

    # batch
    p_batch = sub.add_parser("batch", help="Process and analyze multiple exports")
    p_batch.add_argument("inputs", nargs="+", help="Export file paths or glob patterns")
    p_batch.add_argument("-o", "--output-dir", default="./batch_output", help="Output directory")
    p_batch.add_argument("--preset", choices=["standard", "legacy"], help="Threshold preset")
    p_batch.add_argument("--filter", action="append", choices=filter_names,
                         help="Filter to apply (repeatable)")
    p_batch.add_argument("--config", help="Config file (JSON/YAML)")
    p_batch.add_argument("--csv", action="store_true", help="Also export CSV files")
    p_batch.set_defaults(func=cmd_batch)

    # info
    p_info = sub.add_parser("info", help="Show info about a plantargait JSON file")
    p_info.add_argument("json_file", help="Path to plantargait JSON file")
    p_info.set_defaults(func=cmd_info)

    args = parser.parse_args(argv)
    _setup_logging(args.verbose)

    if not args.command:
        parser.print_help()
        sys.exit(1)

    try:
        args.func(args)
    except FileNotFoundError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)
    except ImportError as e:
        print(f"Missing dependency: {e}", file=sys.stderr)
        sys.exit(1)
    except KeyboardInterrupt:
        print("\nInterrupted.", file=sys.stderr)
        sys.exit(130)


if __name__ == "__main__":
    main()
