"""
Configuration for Runlens.

Settings live in an optional `runlens.json` at the project root:

    {
        "smoothing_level": 0.3,
        "decimation_threshold": 1000,
        "reward_scan_limit": 10,
        "sparkline_width": 20,
        "logs_dir": "logs"
    }
"""

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from .decimation import DEFAULT_THRESHOLD, MIN_THRESHOLD
from .series import DEFAULT_REWARD_SCAN_LIMIT

logger = logging.getLogger(__name__)

CONFIG_FILENAME = "runlens.json"


class ConfigError(ValueError):
    """Raised for unreadable or invalid configuration files."""


@dataclass
class RunlensConfig:
    """Analysis settings."""
    smoothing_level: float = 0.3
    decimation_threshold: int = DEFAULT_THRESHOLD
    reward_scan_limit: int = DEFAULT_REWARD_SCAN_LIMIT
    sparkline_width: int = 20
    logs_dir: Path = field(default_factory=lambda: Path("logs"))

    def __post_init__(self):
        self.smoothing_level = min(1.0, max(0.0, float(self.smoothing_level)))
        if self.decimation_threshold < MIN_THRESHOLD:
            raise ConfigError(
                f"decimation_threshold must be at least {MIN_THRESHOLD}, "
                f"got {self.decimation_threshold}"
            )
        self.logs_dir = Path(self.logs_dir)

    @classmethod
    def from_dict(cls, data: dict, base_dir: Optional[Path] = None) -> "RunlensConfig":
        """Build a config from a dict, ignoring unknown keys."""
        kwargs = {}
        try:
            if "smoothing_level" in data:
                kwargs["smoothing_level"] = float(data["smoothing_level"])
            if "decimation_threshold" in data:
                kwargs["decimation_threshold"] = int(data["decimation_threshold"])
            if "reward_scan_limit" in data:
                kwargs["reward_scan_limit"] = int(data["reward_scan_limit"])
            if "sparkline_width" in data:
                kwargs["sparkline_width"] = int(data["sparkline_width"])
        except (TypeError, ValueError) as e:
            raise ConfigError(f"Invalid config value: {e}") from e

        if "logs_dir" in data:
            logs_dir = Path(data["logs_dir"])
            if base_dir and not logs_dir.is_absolute():
                logs_dir = base_dir / logs_dir
            kwargs["logs_dir"] = logs_dir

        return cls(**kwargs)

    def to_dict(self) -> dict:
        return {
            "smoothing_level": self.smoothing_level,
            "decimation_threshold": self.decimation_threshold,
            "reward_scan_limit": self.reward_scan_limit,
            "sparkline_width": self.sparkline_width,
            "logs_dir": str(self.logs_dir),
        }

    @classmethod
    def load(cls, path: Path) -> "RunlensConfig":
        """Load config from a JSON file."""
        path = Path(path)
        try:
            with open(path) as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            raise ConfigError(f"Error parsing {path}: {e}") from e
        if not isinstance(data, dict):
            raise ConfigError(f"{path} must contain a JSON object")
        return cls.from_dict(data, base_dir=path.parent)

    def save(self, path: Path):
        """Write config to a JSON file."""
        with open(path, "w") as f:
            json.dump(self.to_dict(), f, indent=2)
            f.write("\n")

    @classmethod
    def auto_detect(cls, project_root: Optional[Path] = None) -> "RunlensConfig":
        """
        Load runlens.json from the project root if present, else defaults.

        An invalid file is reported and ignored.
        """
        root = Path(project_root) if project_root else Path.cwd()
        config_path = root / CONFIG_FILENAME
        if config_path.exists():
            try:
                return cls.load(config_path)
            except ConfigError as e:
                logger.warning("Ignoring invalid %s: %s", config_path, e)
        return cls(logs_dir=root / "logs")
