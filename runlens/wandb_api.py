"""
Optional W&B API support for Runlens.

Fetches a run's full history from the W&B cloud and turns it into an
observation log, so it can be analyzed exactly like a local
trainer_state.json. Requires the `wandb` package.

Usage:
    from runlens.wandb_api import WandbAPIClient, WANDB_API_AVAILABLE

    if WANDB_API_AVAILABLE:
        client = WandbAPIClient("my-project")
        run = client.fetch_run("abc123")
    else:
        print("W&B API support requires: pip install wandb")
"""

import logging
import math
from typing import Optional

from .loader import LogFormatError, TrainingRun, from_records

logger = logging.getLogger(__name__)

# Try to import wandb - make it optional
WANDB_API_AVAILABLE = False
_wandb_error_message = ""

try:
    from wandb.apis.public import Api

    WANDB_API_AVAILABLE = True
except ImportError as e:
    _wandb_error_message = str(e)
    Api = None  # type: ignore

# Prefixes the HF/TRL W&B integration adds to trainer metrics
STRIPPED_PREFIXES = ("train/",)


def _normalize_key(key: str) -> str:
    for prefix in STRIPPED_PREFIXES:
        if key.startswith(prefix):
            return key[len(prefix):]
    return key


def history_row_to_record(row: dict) -> Optional[dict]:
    """
    Convert one W&B history row to an observation log record.

    Internal keys (leading underscore) are dropped except `_step`, and
    NaN placeholders W&B uses for unlogged metrics are treated as absent.
    Rows without a step are skipped.
    """
    step = row.get("train/global_step", row.get("_step"))
    if step is None:
        return None

    record = {"step": int(step)}
    for key, value in row.items():
        if key.startswith("_") or key == "train/global_step":
            continue
        if value is None or (isinstance(value, float) and math.isnan(value)):
            continue
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            record[_normalize_key(key)] = value
    return record


class WandbAPIClient:
    """Client for loading W&B run histories via the cloud API."""

    def __init__(self, project: str, entity: Optional[str] = None, api=None):
        """
        Initialize W&B API client.

        Args:
            project: W&B project name
            entity: W&B entity (username or team). If None, uses default entity.
            api: Pre-built API object (defaults to wandb.Api())

        Raises:
            ImportError: If wandb is not installed and no api was given
        """
        if api is None:
            if not WANDB_API_AVAILABLE:
                raise ImportError(
                    "W&B API support requires the wandb package. "
                    "Install with: pip install wandb\n"
                    f"Original error: {_wandb_error_message}"
                )
            api = Api()

        self.api = api
        self.project = project
        self.entity = entity or self.api.default_entity
        self.project_path = f"{self.entity}/{project}"
        self._run_cache: dict[str, TrainingRun] = {}

    def fetch_run(self, run_id: str) -> TrainingRun:
        """
        Load a run's full, unsampled history.

        Raises:
            LogFormatError: If the run has no usable history rows
        """
        if run_id in self._run_cache:
            return self._run_cache[run_id]

        run = self.api.run(f"{self.project_path}/{run_id}")
        records = []
        for row in run.scan_history():
            record = history_row_to_record(row)
            if record is not None:
                records.append(record)

        if not records:
            raise LogFormatError(f"W&B run {run_id} has no history")

        summary = dict(run.summary) if run.summary else {}
        config = dict(run.config) if run.config else {}
        max_steps = config.get("max_steps")
        training = from_records(
            records,
            max_steps=max_steps if isinstance(max_steps, int) and max_steps > 0 else None,
            epoch=summary.get("train/epoch"),
            num_train_epochs=config.get("num_train_epochs"),
            global_step=summary.get("train/global_step"),
            source=f"wandb:{self.project_path}/{run_id}",
        )
        logger.debug("Fetched %d history rows for %s", len(records), run_id)
        self._run_cache[run_id] = training
        return training


def check_wandb_api_available() -> tuple[bool, str]:
    """
    Check if W&B API is available.

    Returns:
        Tuple of (is_available, message)
    """
    if WANDB_API_AVAILABLE:
        return True, "W&B API support is available"
    return False, (
        "W&B API support requires the wandb package.\n"
        "Install with: pip install wandb"
    )
