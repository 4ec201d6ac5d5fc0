"""Tests for CLI commands, parsing and error handling."""

import json

import pytest

from conftest import walking_rows, write_export


@pytest.fixture
def export_csv_file(tmp_path):
    return write_export(tmp_path / "walk.csv", walking_rows(duration=3.0))


def test_main_without_command_exits_1(monkeypatch):
    from plantargait import cli

    monkeypatch.setattr("sys.argv", ["plantargait"])
    with pytest.raises(SystemExit) as e:
        cli.main()
    assert e.value.code == 1


@pytest.mark.parametrize("exc,code", [
    (FileNotFoundError("missing"), 1),
    (ValueError("bad value"), 1),
    (ImportError("missing dep"), 1),
    (KeyboardInterrupt(), 130),
])
def test_main_maps_errors_to_exit_codes(monkeypatch, exc, code):
    from plantargait import cli

    def _boom(_):
        raise exc

    monkeypatch.setattr(cli, "cmd_info", _boom)
    monkeypatch.setattr("sys.argv", ["plantargait", "info", "x.json"])
    with pytest.raises(SystemExit) as e:
        cli.main()
    assert e.value.code == code


def test_version_flag(capsys):
    from plantargait import cli

    with pytest.raises(SystemExit) as e:
        cli.main(["--version"])
    assert e.value.code == 0
    assert "plantargait" in capsys.readouterr().out


def test_process_then_info(tmp_path, export_csv_file, capsys):
    from plantargait import cli

    out_json = tmp_path / "walk.json"
    cli.main(["process", str(export_csv_file), "-o", str(out_json), "--participant", "P1"])
    data = json.loads(out_json.read_text())
    assert data["meta"]["n_samples"] == 300
    assert data["meta"]["participant_id"] == "P1"

    cli.main(["info", str(out_json)])
    out = capsys.readouterr().out
    assert "Samples: 300" in out
    assert "Participant: P1" in out


def test_process_with_filter(tmp_path, export_csv_file):
    pytest.importorskip("scipy")
    from plantargait import cli

    out_json = tmp_path / "walk.json"
    cli.main(["process", str(export_csv_file), "-o", str(out_json), "--filter", "median"])
    data = json.loads(out_json.read_text())
    assert data["filters"] == ["median(3)"]


def test_analyze_csv_without_plots(tmp_path, export_csv_file, capsys):
    from plantargait import cli

    out_json = tmp_path / "walk.json"
    cli.main(["process", str(export_csv_file), "-o", str(out_json)])
    out_dir = tmp_path / "results"
    cli.main(["analyze", str(out_json), "-o", str(out_dir), "--no-plots", "--csv"])
    out = capsys.readouterr().out
    assert "Events: 12" in out
    assert "Cadence" in out
    assert (out_dir / "events.csv").exists()
    assert (out_dir / "parameters.csv").exists()


def test_analyze_with_plots(tmp_path, export_csv_file):
    pytest.importorskip("matplotlib")
    from plantargait import cli

    out_json = tmp_path / "walk.json"
    cli.main(["process", str(export_csv_file), "-o", str(out_json)])
    cli.main(["analyze", str(out_json), "-o", str(tmp_path), "--preset", "legacy"])
    assert (tmp_path / "events.png").exists()
    assert (tmp_path / "region_averages.png").exists()


def test_analyze_bad_threshold_exits_1(tmp_path, export_csv_file):
    from plantargait import cli

    out_json = tmp_path / "walk.json"
    cli.main(["process", str(export_csv_file), "-o", str(out_json)])
    with pytest.raises(SystemExit) as e:
        cli.main(["analyze", str(out_json), "--no-plots", "--ic", "-5"])
    assert e.value.code == 1


def test_batch(tmp_path, export_csv_file, capsys):
    from plantargait import cli

    second = write_export(tmp_path / "walk2.csv", walking_rows(duration=2.0))
    broken = tmp_path / "broken.csv"
    broken.write_text("no,time,here\n")
    out_dir = tmp_path / "batch"
    cli.main(["batch", str(export_csv_file), str(second), str(broken), "-o", str(out_dir)])
    out = capsys.readouterr().out
    assert "Batch complete: 2/3 succeeded" in out
    assert "Comparison" in out
    assert (out_dir / "walk.json").exists()


def test_batch_no_files(tmp_path):
    from plantargait import cli

    with pytest.raises(SystemExit) as e:
        cli.main(["batch", str(tmp_path / "*.xlsx")])
    assert e.value.code == 1


def test_info_missing_file_exits_1(tmp_path):
    from plantargait import cli

    with pytest.raises(SystemExit) as e:
        cli.main(["info", str(tmp_path / "missing.json")])
    assert e.value.code == 1


def test_process_unparseable_export_exits_1(tmp_path):
    from plantargait import cli

    short = tmp_path / "short.csv"
    short.write_text("no,time,here\n")
    with pytest.raises(SystemExit) as e:
        cli.main(["process", str(short), "-o", str(tmp_path / "short.json")])
    assert e.value.code == 1
