"""Tests for region partition handling and per-sample aggregation."""

import math

import numpy as np
import pytest

from conftest import assert_sample_invariants, make_header, make_recording, make_row


def test_default_partition_is_disjoint_and_leaves_sensor_26():
    from plantargait.constants import DEFAULT_REGIONS
    from plantargait.regions import validate_regions

    validate_regions(DEFAULT_REGIONS)
    assigned = [s for sensors in DEFAULT_REGIONS.values() for s in sensors]
    assert len(assigned) == len(set(assigned)) == 98
    assert 26 not in assigned
    assert len(DEFAULT_REGIONS["heel"]) == 25
    assert len(DEFAULT_REGIONS["hallux"]) == 5


def test_validate_regions_rejects_overlap():
    from plantargait.regions import validate_regions

    with pytest.raises(ValueError, match="overlap|more than one|assigned"):
        validate_regions({"a": [1, 2], "b": [2, 3]})


def test_validate_regions_rejects_out_of_range_sensor():
    from plantargait.regions import validate_regions

    with pytest.raises(ValueError):
        validate_regions({"a": [0, 1]})


def test_resolve_regions_moves_sensor_between_regions():
    from plantargait.constants import DEFAULT_REGIONS
    from plantargait.regions import resolve_regions

    resolved = resolve_regions({5: "forefoot", "26": "heel"})
    assert 5 not in resolved["heel"]
    assert 5 in resolved["forefoot"]
    assert 26 in resolved["heel"]
    # base untouched
    assert 5 in DEFAULT_REGIONS["heel"]


def test_resolve_regions_unknown_region():
    from plantargait.regions import resolve_regions

    with pytest.raises(ValueError, match="Unknown region"):
        resolve_regions({5: "ankle"})


def test_resolve_regions_bad_sensor():
    from plantargait.regions import resolve_regions

    with pytest.raises(ValueError):
        resolve_regions({120: "heel"})


def test_aggregate_row_converts_pa_to_kpa():
    from plantargait.regions import aggregate_row

    row = make_row(0.0, left={"heel": 120.0}, right={"forefoot": 80.0})
    out = aggregate_row(row)
    assert out["left"]["heel"]["peak"] == pytest.approx(120.0)
    assert out["left"]["heel"]["mean"] == pytest.approx(120.0)
    assert len(out["left"]["heel"]["raw"]) == 25
    assert out["right"]["forefoot"]["peak"] == pytest.approx(80.0)
    assert out["right"]["heel"]["peak"] == 0.0


def test_aggregate_row_excludes_non_numeric_cells():
    from plantargait.regions import aggregate_row

    row = make_row(0.0, left={"hallux": 10.0})
    row[83] = "n/a"
    row[84] = None
    row[90] = 40000.0
    out = aggregate_row(row)
    hallux = out["left"]["hallux"]
    assert len(hallux["raw"]) == 3
    assert hallux["peak"] == pytest.approx(40.0)
    assert hallux["mean"] == pytest.approx(20.0)


def test_aggregate_row_short_row_gives_empty_regions():
    from plantargait.regions import aggregate_row

    out = aggregate_row([0.0, 5000.0, 7000.0])
    assert out["left"]["heel"]["raw"] == [5.0, 7.0]
    assert out["right"]["heel"] == {"peak": 0.0, "mean": 0.0, "raw": []}


def test_aggregate_row_never_raises_on_garbage():
    from plantargait.regions import aggregate_row

    out = aggregate_row(["x", "y", None, float("nan"), float("inf"), True])
    for foot in ("left", "right"):
        for zone in out[foot].values():
            assert zone["peak"] >= zone["mean"] >= 0


def test_aggregate_row_clamps_negative_readings():
    from plantargait.regions import aggregate_row

    row = make_row(0.0)
    row[1] = -3000.0
    out = aggregate_row(row)
    assert min(out["left"]["heel"]["raw"]) == 0.0


def test_aggregate_row_is_idempotent():
    from plantargait.regions import aggregate_row

    row = make_row(0.3, left={"heel": 12.5, "toes": 3.0}, right={"hallux": 99.9})
    assert aggregate_row(row) == aggregate_row(list(row))


def test_aggregate_matrix_matches_row_version():
    from plantargait.regions import aggregate_matrix, aggregate_row

    rows = [make_row(t, left={"heel": 10.0 * t}, right={"toes": 3.3}) for t in range(4)]
    matrix = np.array(rows, dtype=float)
    batch = aggregate_matrix(matrix)
    for row, agg in zip(rows, batch):
        assert agg == aggregate_row(row)


def test_aggregate_matrix_requires_2d():
    from plantargait.regions import aggregate_matrix

    with pytest.raises(ValueError):
        aggregate_matrix(np.zeros(5))


def test_custom_offsets():
    from plantargait.regions import aggregate_row

    # sensor 1 at column 2, right block 10 columns later
    row = [0.0] * 20
    row[2] = 4000.0
    row[12] = 6000.0
    out = aggregate_row(row, regions={"heel": [1]}, right_foot_offset=10, column_offset=1)
    assert out["left"]["heel"]["peak"] == pytest.approx(4.0)
    assert out["right"]["heel"]["peak"] == pytest.approx(6.0)


def test_samples_respect_peak_mean_invariants(walking_recording):
    for sample in walking_recording["samples"][:50]:
        assert_sample_invariants(sample)


def test_coerce_float():
    from plantargait.regions import coerce_float

    assert coerce_float(" 1.5 ") == 1.5
    assert math.isnan(coerce_float(None))
    assert math.isnan(coerce_float(True))
    assert math.isnan(coerce_float("abc"))


def test_region_averages_window():
    from plantargait.regions import region_averages

    rec = make_recording([0.0, 0.1, 0.2, 0.3],
                         left={"heel": [10.0, 20.0, 30.0, 40.0]},
                         right={"heel": [5.0, 5.0, 5.0, 5.0]})
    full = region_averages(rec)
    assert full["left"]["heel"] == pytest.approx(25.0)
    assert full["difference"]["heel"] == pytest.approx(20.0)
    assert full["n_samples"] == 4

    first_half = region_averages(rec, start_pct=0, end_pct=50)
    assert first_half["left"]["heel"] < full["left"]["heel"]


def test_region_averages_bad_mode():
    from plantargait.regions import region_averages

    rec = make_recording([0.0], left={"heel": [1.0]})
    with pytest.raises(ValueError):
        region_averages(rec, mode="median")


def test_header_helper_width():
    assert len(make_header()) == 199
