"""Shared test fixtures for plantargait test suite.

Provides synthetic pressure export rows and recording generators
used across all test modules. Values are given in kPa and written
to rows in Pa, the unit of the insole exports.
"""

import numpy as np
import pytest

N_COLS = 1 + 2 * 99   # time column + left block + right block


def make_header():
    """Header row: ``Time`` then one label per sensor column."""
    return ["Time"] + [f"L{k}" for k in range(1, 100)] + [f"R{k}" for k in range(1, 100)]


def make_row(time, left=None, right=None):
    """One export row with every sensor of a region set to the same pressure.

    *left*/*right* map region names to kPa; unlisted sensors read 0.
    """
    from plantargait.constants import DEFAULT_REGIONS

    row = [time] + [0.0] * (N_COLS - 1)
    for offset, zones in ((0, left or {}), (99, right or {})):
        for region, kpa in zones.items():
            for sensor in DEFAULT_REGIONS[region]:
                row[sensor + offset] = kpa * 1000.0
    return row


def make_rows(samples):
    """Header and rows from ``[(time, left_zones, right_zones), ...]``."""
    return make_header(), [make_row(t, l, r) for t, l, r in samples]


def make_recording(times, left=None, right=None, **kwargs):
    """Recording from per-sample region series.

    Parameters
    ----------
    times : list of float
    left, right : dict
        ``{region: [kPa per sample]}``.
    """
    from plantargait.ingest import process_rows

    left = left or {}
    right = right or {}
    samples = []
    for i, t in enumerate(times):
        samples.append((
            t,
            {r: series[i] for r, series in left.items()},
            {r: series[i] for r, series in right.items()},
        ))
    header, rows = make_rows(samples)
    return process_rows(header, rows, **kwargs)


def make_walking_recording(duration=5.0, fs=100, heel_kpa=200.0, toe_kpa=150.0):
    """Recording simulating level walking with a 1 s stride.

    Per foot, the heel is loaded for the first 30% of each stride and
    the toes from 20% to 60%. The left stride starts at 0.1 s, the
    right one half a stride later (0.6 s). Initial contacts therefore
    fall at 0.1 + k s (left) and 0.6 + k s (right); toe offs 0.6 s
    after each contact.
    """
    n = int(round(duration * fs))
    period = fs
    times, left, right = [], {"heel": [], "toes": [], "hallux": []}, \
        {"heel": [], "toes": [], "hallux": []}
    for i in range(n):
        times.append(i / fs)
        for zones, start in ((left, int(0.1 * fs)), (right, int(0.6 * fs))):
            k = (i - start) % period
            heel = heel_kpa if k < 0.3 * period else 0.0
            toe = toe_kpa if 0.2 * period <= k < 0.6 * period else 0.0
            zones["heel"].append(heel)
            zones["toes"].append(toe)
            zones["hallux"].append(toe * 0.8)
    return make_recording(times, left, right, file_name="walk.xlsx")


@pytest.fixture
def walking_recording():
    return make_walking_recording()


@pytest.fixture
def heel_sequence_recording():
    """Left heel ``[5, 20, 30, 10, 25]`` kPa at ``t = 0..0.4``."""
    return make_recording(
        [0.0, 0.1, 0.2, 0.3, 0.4],
        left={"heel": [5.0, 20.0, 30.0, 10.0, 25.0]},
    )


@pytest.fixture
def lookup_recording():
    return make_recording([0.0, 0.5, 1.0, 1.5], left={"heel": [1.0, 2.0, 3.0, 4.0]})


def assert_sample_invariants(sample):
    for foot in ("left", "right"):
        for zone in sample[foot].values():
            assert zone["peak"] >= zone["mean"] >= 0
            if zone["raw"]:
                assert zone["peak"] == pytest.approx(max(zone["raw"]))
                assert zone["mean"] == pytest.approx(float(np.mean(zone["raw"])))
            else:
                assert zone["peak"] == 0 and zone["mean"] == 0


def write_export(path, rows, metadata_rows=9):
    """Write rows as an insole export: metadata block, header, samples."""
    import pandas as pd

    table = [[f"meta {i}"] for i in range(metadata_rows)] + [make_header()] + rows
    width = max(len(r) for r in table)
    df = pd.DataFrame([r + [None] * (width - len(r)) for r in table])
    if path.suffix == ".csv":
        df.to_csv(path, header=False, index=False)
    else:
        df.to_excel(path, header=False, index=False)
    return path


def walking_rows(duration=3.0, fs=100):
    """Export rows of ``make_walking_recording``'s gait pattern."""
    rec = make_walking_recording(duration=duration, fs=fs)
    return [
        make_row(s["time"],
                 left={r: s["left"][r]["peak"] for r in ("heel", "toes", "hallux")},
                 right={r: s["right"][r]["peak"] for r in ("heel", "toes", "hallux")})
        for s in rec["samples"]
    ]
