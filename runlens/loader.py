"""
Loading observation logs from disk.

Supports Hugging Face `trainer_state.json` files (a `log_history` list plus
run metadata) and JSONL logs with one record per line.
"""

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from .display import calculate_progress
from .series import STEP_KEY

logger = logging.getLogger(__name__)


class LogFormatError(ValueError):
    """Raised when a file cannot be read as an observation log."""


@dataclass
class TrainingRun:
    """An observation log plus the run metadata that comes with it."""
    log_history: list[dict] = field(default_factory=list)
    global_step: int = 0
    max_steps: Optional[int] = None
    epoch: Optional[float] = None
    num_train_epochs: Optional[float] = None
    source: str = ""

    @property
    def progress(self) -> Optional[float]:
        """Percent of max_steps reached, or None if unknown."""
        return calculate_progress(self.global_step, self.max_steps)

    def describe_progress(self) -> str:
        """One-line 'Epoch x of y | Step a of b' description."""
        epoch = f"{self.epoch:.4f}" if self.epoch is not None else "0"
        total_epochs = self.num_train_epochs if self.num_train_epochs is not None else 0
        total_steps = f"{self.max_steps:,}" if self.max_steps else "?"
        line = f"Epoch {epoch} of {total_epochs} | Step {self.global_step:,} of {total_steps}"
        progress = self.progress
        if progress is not None:
            line += f" ({progress:.1f}%)"
        return line


def _normalize_records(records: list) -> list[dict]:
    """Keep dict records and make sure each has a `step`."""
    normalized = []
    for index, record in enumerate(records):
        if not isinstance(record, dict):
            logger.debug("Skipping non-object record at index %d", index)
            continue
        if STEP_KEY not in record:
            record = dict(record)
            record[STEP_KEY] = record.pop("_step", index)
        normalized.append(record)
    return normalized


def from_records(
    records: list,
    max_steps: Optional[int] = None,
    epoch: Optional[float] = None,
    num_train_epochs: Optional[float] = None,
    global_step: Optional[int] = None,
    source: str = "<memory>",
) -> TrainingRun:
    """Build a TrainingRun from in-memory records."""
    log_history = _normalize_records(records)
    if global_step is None:
        global_step = log_history[-1].get(STEP_KEY, 0) if log_history else 0
    return TrainingRun(
        log_history=log_history,
        global_step=global_step,
        max_steps=max_steps,
        epoch=epoch,
        num_train_epochs=num_train_epochs,
        source=source,
    )


def parse_jsonl(path: Path) -> list[dict]:
    """Parse a JSONL file, skipping malformed lines."""
    records = []
    with open(path) as f:
        for line_num, line in enumerate(f, 1):
            line = line.strip()
            if not line:
                continue
            try:
                records.append(json.loads(line))
            except json.JSONDecodeError:
                logger.debug("Skipping malformed line %d in %s", line_num, path)
                continue
    return records


def load_trainer_state(path: Path) -> TrainingRun:
    """Load a trainer_state.json file."""
    try:
        with open(path) as f:
            data = json.load(f)
    except json.JSONDecodeError as e:
        raise LogFormatError(f"Error parsing JSON file {path}: {e}") from e

    if not isinstance(data, dict) or not isinstance(data.get("log_history"), list):
        raise LogFormatError(f"{path} has no 'log_history' list")

    return from_records(
        data["log_history"],
        max_steps=data.get("max_steps"),
        epoch=data.get("epoch"),
        num_train_epochs=data.get("num_train_epochs"),
        global_step=data.get("global_step"),
        source=str(path),
    )


def load_run(path) -> TrainingRun:
    """
    Load a run from a trainer_state.json or JSONL file.

    Raises:
        FileNotFoundError: If the file does not exist
        LogFormatError: If the file holds no usable records
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"No such log file: {path}")

    if path.suffix == ".jsonl":
        run = from_records(parse_jsonl(path), source=str(path))
    else:
        run = load_trainer_state(path)

    if not run.log_history:
        raise LogFormatError(f"No records in {path}")

    logger.debug("Loaded %d records from %s", len(run.log_history), path)
    return run
