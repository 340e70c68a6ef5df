"""Tests for loading observation logs."""

import json

import pytest

from runlens.loader import LogFormatError, from_records, load_run


def test_load_trainer_state(temp_trainer_state):
    run = load_run(temp_trainer_state)
    assert len(run.log_history) == 301
    assert run.global_step == 300
    assert run.max_steps == 600
    assert run.num_train_epochs == 1
    assert run.progress == pytest.approx(50.0)
    assert run.source == str(temp_trainer_state)


def test_describe_progress(temp_trainer_state):
    run = load_run(temp_trainer_state)
    assert run.describe_progress() == "Epoch 0.5000 of 1 | Step 300 of 600 (50.0%)"


def test_load_jsonl_normalizes_step(temp_jsonl_log):
    run = load_run(temp_jsonl_log)
    # Malformed trailing line is skipped
    assert len(run.log_history) == 101
    assert run.log_history[1]["step"] == 10
    assert "_step" not in run.log_history[1]
    assert run.global_step == 1000
    assert run.progress is None


def test_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_run(tmp_path / "nope.json")


def test_invalid_json(tmp_path):
    path = tmp_path / "trainer_state.json"
    path.write_text("{broken")
    with pytest.raises(LogFormatError):
        load_run(path)


def test_missing_log_history(tmp_path):
    path = tmp_path / "trainer_state.json"
    path.write_text(json.dumps({"global_step": 3}))
    with pytest.raises(LogFormatError, match="log_history"):
        load_run(path)


def test_empty_log_history(tmp_path):
    path = tmp_path / "trainer_state.json"
    path.write_text(json.dumps({"log_history": []}))
    with pytest.raises(LogFormatError, match="No records"):
        load_run(path)


def test_from_records_fills_missing_steps():
    records = [{"loss": 1.0}, {"step": 7, "loss": 0.5}, "garbage"]
    run = from_records(records)
    assert [r["step"] for r in run.log_history] == [0, 7]
    assert run.global_step == 7
    # Input records are not modified
    assert records[0] == {"loss": 1.0}
