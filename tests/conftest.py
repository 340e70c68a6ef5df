"""Pytest fixtures for runlens tests."""

import json
import math
import tempfile
from pathlib import Path

import pytest


def make_grpo_log(num_records: int = 1500) -> list[dict]:
    """A GRPO-style log: loss falls, rewards rise, eval-ish records interleaved."""
    records = []
    for i in range(num_records):
        frac = i / (num_records - 1)
        record = {
            "step": i + 1,
            "loss": 2.0 - 1.5 * frac,
            "reward": 0.2 + 0.6 * frac,
            "reward_std": 0.1,
            "kl": 0.01 + 0.02 * frac,
            "grad_norm": 1.0 + 0.1 * math.sin(i),
            "learning_rate": 1e-5 * (1 - frac) + 1e-7,
            "completions/mean_length": 200 + 100 * frac,
            "completions/max_length": 400 + 100 * frac,
            "completions/min_length": 50 + 10 * frac,
            "rewards/format/mean": 0.5 + 0.4 * frac,
            "rewards/format/std": 0.05,
            "rewards/accuracy/mean": 0.1 + 0.5 * frac,
        }
        records.append(record)
    return records


@pytest.fixture
def grpo_log():
    """In-memory GRPO-style observation log."""
    return make_grpo_log()


@pytest.fixture
def temp_trainer_state():
    """Create a temporary trainer_state.json with a mixed train/eval log."""
    with tempfile.TemporaryDirectory() as tmpdir:
        path = Path(tmpdir) / "trainer_state.json"
        log_history = make_grpo_log(300)
        # Eval records carry no training metrics
        log_history.insert(100, {"step": 100, "eval_loss": 1.2})
        with open(path, "w") as f:
            json.dump({
                "global_step": 300,
                "max_steps": 600,
                "epoch": 0.5,
                "num_train_epochs": 1,
                "log_history": log_history,
            }, f)

        yield path


@pytest.fixture
def temp_jsonl_log():
    """Create a temporary JSONL log with one malformed line."""
    with tempfile.TemporaryDirectory() as tmpdir:
        logs_dir = Path(tmpdir) / "logs"
        logs_dir.mkdir()
        path = logs_dir / "training.jsonl"

        with open(path, "w") as f:
            for step in range(0, 1001, 10):
                f.write(json.dumps({
                    "_step": step,
                    "loss": 1.0 - (step / 1000) * 0.7,
                    "grad_norm": 0.5,
                }) + "\n")
            f.write("{not json\n")

        yield path


@pytest.fixture
def temp_config_file():
    """Create a temporary runlens.json config file."""
    with tempfile.TemporaryDirectory() as tmpdir:
        config_path = Path(tmpdir) / "runlens.json"
        with open(config_path, "w") as f:
            json.dump({
                "smoothing_level": 0.6,
                "decimation_threshold": 200,
                "sparkline_width": 12,
                "logs_dir": "runs",
                "unknown_key": True,
            }, f)

        yield config_path
