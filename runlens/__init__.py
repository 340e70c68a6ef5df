"""
Runlens: smoothed curves, statistics and insights for ML training logs.

Turns a sparse, multi-metric observation log (e.g. a Hugging Face
trainer_state.json) into smoothed and decimated plot series, summary
statistics, change cards and rule-based training insights.
"""

__version__ = "0.1.0"

from .charts import ChartData, build_chart
from .config import ConfigError, RunlensConfig
from .core import RunAnalyzer
from .decimation import decimate_aligned, decimate_lttb, lttb_indices
from .display import DisplayStat, build_display_stats, calculate_progress
from .insights import Insight, InsightType, format_insights, generate_insights
from .loader import LogFormatError, TrainingRun, from_records, load_run
from .series import (
    MetricDescriptor,
    discover_metrics,
    discover_reward_metrics,
    extract_series,
)
from .smoothing import gaussian_smooth, smoothed_limits
from .sparklines import sparkline
from .stats import AdvancedStats, SeriesStats, calculate_improvement, calculate_stats

# W&B support is optional - import separately
# from .wandb_api import WandbAPIClient, WANDB_API_AVAILABLE

__all__ = [
    # Core
    "RunAnalyzer",
    "RunlensConfig",
    "ConfigError",
    # Loading
    "TrainingRun",
    "LogFormatError",
    "load_run",
    "from_records",
    # Series
    "MetricDescriptor",
    "discover_metrics",
    "discover_reward_metrics",
    "extract_series",
    # Smoothing and decimation
    "gaussian_smooth",
    "smoothed_limits",
    "lttb_indices",
    "decimate_lttb",
    "decimate_aligned",
    # Statistics and insights
    "SeriesStats",
    "AdvancedStats",
    "calculate_stats",
    "calculate_improvement",
    "Insight",
    "InsightType",
    "generate_insights",
    "format_insights",
    "DisplayStat",
    "build_display_stats",
    "calculate_progress",
    # Rendering
    "ChartData",
    "build_chart",
    "sparkline",
]
