"""Tests for the recording structure and JSON I/O."""

import json

import numpy as np
import pytest


def test_create_empty_structure():
    from plantargait import __version__
    from plantargait.schema import create_empty

    rec = create_empty("walk.xlsx", participant_id="P1")
    assert rec["plantargait_version"] == __version__
    assert rec["meta"]["file_name"] == "walk.xlsx"
    assert rec["meta"]["participant_id"] == "P1"
    assert len(rec["meta"]["recording_id"]) == 32
    assert rec["samples"] == [] and rec["filters"] == []
    assert rec["force"] is None


def test_copy_recording_is_deep_with_new_identity(heel_sequence_recording):
    from plantargait.schema import copy_recording, recordings_equal

    dup = copy_recording(heel_sequence_recording)
    assert dup["meta"]["recording_id"] != heel_sequence_recording["meta"]["recording_id"]
    assert recordings_equal(dup, heel_sequence_recording)
    dup["samples"][0]["left"]["heel"]["peak"] = 123.0
    assert heel_sequence_recording["samples"][0]["left"]["heel"]["peak"] == pytest.approx(5.0)
    assert not recordings_equal(dup, heel_sequence_recording)


def test_set_participant_and_label(heel_sequence_recording):
    from plantargait.schema import recording_label, set_participant

    rec = set_participant(heel_sequence_recording, file_name="a.xlsx", session="pre")
    assert recording_label(rec, 0) == "a.xlsx"
    assert rec["meta"]["session"] == "pre"
    set_participant(rec, "P9")
    assert recording_label(rec) == "P9"
    rec["meta"]["participant_id"] = None
    rec["meta"]["file_name"] = ""
    assert recording_label(rec, 2) == "Dataset 3"


def test_save_and_load_json(tmp_path, walking_recording):
    from plantargait.schema import load_json, recordings_equal, save_json

    walking_recording["extra"] = {"arr": np.arange(3), "f": np.float32(1.5)}
    path = tmp_path / "sub" / "walk.json"
    save_json(walking_recording, path)
    loaded = load_json(path)
    assert loaded["extra"] == {"arr": [0, 1, 2], "f": 1.5}
    del walking_recording["extra"], loaded["extra"]
    assert recordings_equal(loaded, walking_recording)
    assert loaded["meta"]["recording_id"] == walking_recording["meta"]["recording_id"]


def test_load_json_rebuilds_time_points(tmp_path, heel_sequence_recording):
    from plantargait.schema import load_json, save_json

    rec = dict(heel_sequence_recording)
    del rec["time_points"]
    path = tmp_path / "rec.json"
    save_json(rec, path)
    assert load_json(path)["time_points"] == [0.0, 0.1, 0.2, 0.3, 0.4]


@pytest.mark.parametrize("content,match", [
    ([1, 2], "dict"),
    ({"samples": []}, "meta"),
    ({"meta": {}}, "samples"),
])
def test_load_json_validation(tmp_path, content, match):
    from plantargait.schema import load_json

    path = tmp_path / "bad.json"
    path.write_text(json.dumps(content))
    with pytest.raises(ValueError, match=match):
        load_json(path)


def test_load_json_missing(tmp_path):
    from plantargait.schema import load_json

    with pytest.raises(FileNotFoundError):
        load_json(tmp_path / "none.json")
