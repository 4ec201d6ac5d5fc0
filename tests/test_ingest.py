"""Tests for ingestion of pressure exports and force files."""

import numpy as np
import pandas as pd
import pytest

from conftest import make_header, make_row, make_rows, write_export


def test_find_time_column_case_insensitive():
    from plantargait.ingest import find_time_column

    assert find_time_column(["Sensor", "TIME [s]", "x"]) == 1


def test_find_time_column_missing():
    from plantargait.ingest import find_time_column

    with pytest.raises(ValueError, match="Time column not found"):
        find_time_column(["a", "b"])


def test_process_rows_builds_recording():
    from plantargait.ingest import process_rows

    header, rows = make_rows([
        (0.0, {"heel": 10.0}, {}),
        (0.01, {"heel": 20.0}, {"toes": 5.0}),
    ])
    rec = process_rows(header, rows, file_name="walk.xlsx", participant_id="P01")
    assert rec["meta"]["n_samples"] == 2
    assert rec["meta"]["participant_id"] == "P01"
    assert rec["meta"]["duration_s"] == pytest.approx(0.01)
    assert rec["time_points"] == [0.0, 0.01]
    assert rec["samples"][1]["right"]["toes"]["peak"] == pytest.approx(5.0)
    assert rec["meta"]["recording_id"]


def test_process_rows_keeps_time_zero_and_skips_missing_times():
    from plantargait.ingest import process_rows

    header, rows = make_rows([
        (0.0, {"heel": 1.0}, {}),
        (None, {"heel": 2.0}, {}),
        ("", {"heel": 3.0}, {}),
        (0.02, {"heel": 4.0}, {}),
    ])
    rec = process_rows(header, rows)
    assert rec["time_points"] == [0.0, 0.02]
    assert rec["meta"]["skipped_rows"] == 2


def test_process_rows_without_time_column_raises():
    from plantargait.ingest import process_rows

    header = ["Stamp"] + make_header()[1:]
    with pytest.raises(ValueError, match="Time column not found"):
        process_rows(header, [make_row(0.0)])


def test_process_rows_sorts_unsorted_rows(caplog):
    from plantargait.ingest import process_rows

    header, rows = make_rows([
        (0.2, {"heel": 3.0}, {}),
        (0.0, {"heel": 1.0}, {}),
        (0.1, {"heel": 2.0}, {}),
    ])
    with caplog.at_level("WARNING"):
        rec = process_rows(header, rows)
    assert rec["time_points"] == [0.0, 0.1, 0.2]
    assert [s["left"]["heel"]["peak"] for s in rec["samples"]] == pytest.approx([1.0, 2.0, 3.0])
    assert "time order" in caplog.text


def test_process_rows_time_column_is_not_a_sensor():
    from plantargait.ingest import process_rows

    # With column_offset=-1, sensor 1 would read the time column.
    header, rows = make_rows([(5.0, {}, {})])
    rec = process_rows(header, rows, column_offset=-1, regions={"heel": [1, 2]})
    assert rec["samples"][0]["left"]["heel"]["raw"] == [0.0]


def test_process_rows_region_overrides():
    from plantargait.ingest import process_rows

    header, rows = make_rows([(0.0, {"heel": 50.0}, {})])
    rec = process_rows(header, rows, region_overrides={1: "forefoot"})
    assert 1 in rec["regions"]["forefoot"]
    assert rec["samples"][0]["left"]["forefoot"]["peak"] == pytest.approx(50.0)
    assert len(rec["samples"][0]["left"]["heel"]["raw"]) == 24


def test_process_rows_stores_scaling_parameters():
    from plantargait.ingest import process_rows

    header, rows = make_rows([(0.0, {"heel": 5.0}, {})])
    rec = process_rows(header, rows, top_fraction=0.2, cap_factor=2.0)
    assert rec["meta"]["scaling"] == {"top_fraction": 0.2, "cap_factor": 2.0}


def test_read_pressure_file_csv(tmp_path):
    from plantargait.ingest import read_pressure_file

    path = write_export(tmp_path / "walk.csv", [
        make_row(0.0, left={"heel": 10.0}),
        make_row(0.01, left={"heel": 30.0}),
    ])
    rec = read_pressure_file(path)
    assert rec["meta"]["file_name"] == "walk.csv"
    assert rec["meta"]["n_samples"] == 2
    assert rec["samples"][1]["left"]["heel"]["peak"] == pytest.approx(30.0)


def test_read_pressure_file_xlsx(tmp_path):
    pytest.importorskip("openpyxl")
    from plantargait.ingest import read_pressure_file

    path = write_export(tmp_path / "walk.xlsx", [
        make_row(0.0, right={"forefoot": 12.0}),
        make_row(0.01, right={"forefoot": 14.0}),
        make_row(0.02, right={"forefoot": 16.0}),
    ])
    rec = read_pressure_file(path, participant_id="P7")
    assert rec["meta"]["n_samples"] == 3
    assert rec["meta"]["participant_id"] == "P7"
    assert rec["samples"][2]["right"]["forefoot"]["mean"] == pytest.approx(16.0)


def test_read_pressure_file_missing(tmp_path):
    from plantargait.ingest import read_pressure_file

    with pytest.raises(FileNotFoundError):
        read_pressure_file(tmp_path / "nope.xlsx")


@pytest.mark.parametrize("suffix", [".dat", ".xls"])
def test_read_pressure_file_unsupported(tmp_path, suffix):
    from plantargait.ingest import read_pressure_file

    path = tmp_path / f"walk{suffix}"
    path.write_text("x")
    with pytest.raises(ValueError, match="Unsupported"):
        read_pressure_file(path)


def _force_frame(n):
    t = np.arange(n) / 100.0
    return pd.DataFrame({
        "Time": t,
        "Left Force (N)": np.full(n, 400.0),
        "Right Force (N)": np.full(n, 380.0),
        "Left COP X": np.linspace(0, 200, n),
        "Left COP Y": np.full(n, 10.0),
        "Right COP X": np.linspace(0, 190, n),
        "Right COP Y": np.full(n, -10.0),
    })


def test_read_force_file_and_attach(tmp_path, lookup_recording):
    from plantargait.ingest import attach_force, read_force_file

    path = tmp_path / "force.csv"
    _force_frame(4).to_csv(path, index=False)
    force = read_force_file(path)
    assert set(force) == {"time", "left_force", "right_force", "left_cop_x",
                          "left_cop_y", "right_cop_x", "right_cop_y"}

    merged = attach_force(lookup_recording, force)
    assert merged["force"]["left_force"] == [400.0] * 4
    assert lookup_recording["force"] is None
    assert merged["meta"]["recording_id"] != lookup_recording["meta"]["recording_id"]


def test_read_force_file_missing_columns(tmp_path):
    from plantargait.ingest import read_force_file

    path = tmp_path / "force.csv"
    _force_frame(3).drop(columns=["Right COP Y"]).to_csv(path, index=False)
    with pytest.raises(ValueError, match="right_cop_y"):
        read_force_file(path)


def test_attach_force_length_mismatch(tmp_path, lookup_recording):
    from plantargait.ingest import attach_force

    force = {k: list(v) for k, v in zip(
        ["time", "left_force", "right_force", "left_cop_x", "left_cop_y",
         "right_cop_x", "right_cop_y"],
        [[0.0, 0.1]] * 7,
    )}
    with pytest.raises(ValueError, match="samples"):
        attach_force(lookup_recording, force)


@pytest.mark.parametrize("content", ["no,time,here\n", ""])
def test_read_pressure_file_unparseable_csv(tmp_path, content):
    from plantargait.ingest import read_pressure_file

    path = tmp_path / "short.csv"
    path.write_text(content)
    with pytest.raises(ValueError):
        read_pressure_file(path)


def test_read_force_file_unparseable_csv(tmp_path):
    from plantargait.ingest import read_force_file

    path = tmp_path / "force.csv"
    path.write_text("")
    with pytest.raises(ValueError, match="Cannot parse"):
        read_force_file(path)
