"""
Core analysis logic for Runlens.

Provides the RunAnalyzer class that binds one loaded run to the pipeline:
- Series extraction and metric discovery
- Gaussian smoothing at the configured level
- Decimated chart payloads
- Summary statistics, insights and change cards
- Compact text output for terminals and LLM context windows

Derived results are memoized. Keys include the smoothing level and
decimation threshold, so changing either just selects new cache entries.
Smoothed series and charts are kept for the MAX_CACHED_LEVELS most recently
selected smoothing levels.
"""

import logging
from typing import Optional

from .charts import CHART_NAMES, ChartData, build_chart
from .config import RunlensConfig
from .decimation import MIN_THRESHOLD, decimate_aligned
from .display import DisplayStat, build_display_stats, format_metric_value
from .insights import Insight, format_insights, generate_insights
from .loader import TrainingRun
from .series import (
    MetricDescriptor,
    discover_metrics,
    extract_columns,
    extract_series,
    split_series,
    to_table,
)
from .smoothing import gaussian_smooth
from .sparklines import format_metric_with_spark, sparkline
from .stats import AdvancedStats, SeriesStats, calculate_advanced_stats, calculate_stats

logger = logging.getLogger(__name__)

# Smoothing levels whose smoothed series and charts stay cached
MAX_CACHED_LEVELS = 4
LEVEL_KEYED = ("smoothed", "chart")


class RunAnalyzer:
    """
    Analyzer for a single training run.

    The run's log is treated as immutable; build a new analyzer for a new log.
    """

    def __init__(self, run: TrainingRun, config: Optional[RunlensConfig] = None):
        """
        Args:
            run: Loaded training run
            config: RunlensConfig instance. If None, defaults are used.
        """
        self.run = run
        self.config = config or RunlensConfig()
        self._smoothing_level = self.config.smoothing_level
        self._decimation_threshold = self.config.decimation_threshold
        self._cache: dict[tuple, object] = {}
        self._levels = [self._smoothing_level]  # least recently used first

    @property
    def log_history(self) -> list[dict]:
        return self.run.log_history

    @property
    def smoothing_level(self) -> float:
        return self._smoothing_level

    @smoothing_level.setter
    def smoothing_level(self, level: float):
        if not 0 <= level <= 1:
            raise ValueError(f"smoothing level must be in [0, 1], got {level}")
        self._smoothing_level = level
        if level in self._levels:
            self._levels.remove(level)
        self._levels.append(level)
        if len(self._levels) > MAX_CACHED_LEVELS:
            self._evict_level(self._levels.pop(0))

    @property
    def decimation_threshold(self) -> int:
        return self._decimation_threshold

    @decimation_threshold.setter
    def decimation_threshold(self, threshold: int):
        if threshold < MIN_THRESHOLD:
            raise ValueError(f"threshold must be at least {MIN_THRESHOLD}, got {threshold}")
        self._decimation_threshold = threshold

    def _evict_level(self, level: float):
        stale = [k for k in self._cache if k[0] in LEVEL_KEYED and k[2] == level]
        for key in stale:
            del self._cache[key]
        logger.debug("Evicted %d cache entries for smoothing level %s", len(stale), level)

    def _memo(self, key: tuple, compute):
        if key not in self._cache:
            logger.debug("Computing %s", key)
            self._cache[key] = compute()
        return self._cache[key]

    # ==================== Series ====================

    def discovered_metrics(self) -> list[MetricDescriptor]:
        """Metrics present in this run, fixed scalars first."""
        return self._memo(
            ("metrics",),
            lambda: discover_metrics(self.log_history, self.config.reward_scan_limit),
        )

    def series(self, key: str) -> list[tuple[int, float]]:
        """(step, value) pairs for one metric."""
        return self._memo(("series", key), lambda: extract_series(self.log_history, key))

    def smoothed(self, key: str) -> list[float]:
        """Smoothed values for one metric at the current smoothing level."""
        level = self._smoothing_level
        return self._memo(
            ("smoothed", key, level),
            lambda: gaussian_smooth(split_series(self.series(key))[1], level),
        )

    def stats(self, key: str) -> Optional[SeriesStats]:
        return self._memo(("stats", key), lambda: calculate_stats(split_series(self.series(key))[1]))

    def table(self, key: str) -> dict:
        """Full-resolution {columns, rows} projection of one metric."""
        def compute():
            steps, columns = extract_columns(self.log_history, [key])
            return to_table(steps, columns)
        return self._memo(("table", key), compute)

    # ==================== Summaries ====================

    def advanced_stats(self) -> AdvancedStats:
        return self._memo(("advanced",), lambda: calculate_advanced_stats(self.log_history))

    def insights(self) -> list[Insight]:
        return self._memo(("insights",), lambda: generate_insights(self.advanced_stats()))

    def display_stats(self) -> list[DisplayStat]:
        return self._memo(
            ("display",),
            lambda: build_display_stats(
                self.log_history, self.advanced_stats(), self.config.reward_scan_limit
            ),
        )

    # ==================== Charts ====================

    def chart(self, name: str) -> Optional[ChartData]:
        """Render payload for one chart, or None if the run lacks its metric."""
        level = self._smoothing_level
        threshold = self._decimation_threshold
        return self._memo(
            ("chart", name, level, threshold),
            lambda: build_chart(
                self.log_history, name, level, threshold, self.config.reward_scan_limit
            ),
        )

    def charts(self) -> dict[str, ChartData]:
        """All charts this run has data for, in dashboard order."""
        result = {}
        for name in CHART_NAMES:
            chart = self.chart(name)
            if chart is not None:
                result[name] = chart
        return result

    # ==================== Text Output ====================

    def summarize(self) -> str:
        """Generate a compact summary of the run."""
        run = self.run
        lines = ["=== Training Run Summary ==="]
        if run.source:
            lines.append(f"Source: {run.source}")
        lines.append(f"Records: {len(self.log_history):,} | {run.describe_progress()}")
        lines.append(f"Smoothing: {self._smoothing_level:.2f}")
        lines.append("")

        cards = self.display_stats()
        if cards:
            lines.append("CHANGES:")
            for card in cards:
                lines.append(f"  {card.label:<24} {card.formatted:>9}  ({card.tone})")
            lines.append("")

        metrics = self.discovered_metrics()
        if metrics:
            lines.append("TRENDS (smoothed):")
            for metric in metrics:
                spark_line = format_metric_with_spark(
                    metric.key, self.smoothed(metric.key), width=self.config.sparkline_width
                )
                lines.append(f"  {spark_line}")
            lines.append("")

        lines.append(format_insights(self.insights()))
        lines.append("")

        stats_block = self.format_stats([m.key for m in self.discovered_metrics()])
        lines.append(stats_block)
        return "\n".join(lines)

    def format_insights(self, compact: bool = False) -> str:
        return format_insights(self.insights(), compact=compact)

    def format_stats(self, keys: list[str]) -> str:
        """Per-metric statistics table with a smoothed sparkline."""
        lines = [f"{'Metric':<28} {'Mean':>10} {'Std':>10} {'Min':>10} {'Max':>10} {'Median':>10}  Trend"]
        lines.append("-" * 100)
        names = {m.key: m.display_name for m in self.discovered_metrics()}

        for key in keys:
            stats = self.stats(key)
            if stats is None:
                lines.append(f"{key[:28]:<28} {'--':>10} {'--':>10} {'--':>10} {'--':>10} {'--':>10}")
                continue
            label = names.get(key, key)

            def fmt(v):
                return format_metric_value(v, label)

            spark = sparkline(self.smoothed(key), width=self.config.sparkline_width)
            lines.append(
                f"{key[:28]:<28} {fmt(stats.mean):>10} {fmt(stats.std_dev):>10} "
                f"{fmt(stats.min):>10} {fmt(stats.max):>10} {fmt(stats.median):>10}  {spark}"
            )
        return "\n".join(lines)

    def format_keys(self) -> str:
        """List discovered metrics and their point counts."""
        metrics = self.discovered_metrics()
        if not metrics:
            return "No known metrics found"
        lines = ["Available metrics:"]
        for metric in metrics:
            count = len(self.series(metric.key))
            extra = f" (+ {metric.std_key})" if metric.std_key else ""
            lines.append(f"  {metric.key:<32} {count:>8,} points  {metric.display_name}{extra}")
        return "\n".join(lines)

    def format_series_csv(self, key: str) -> str:
        """Decimated raw + smoothed series as CSV."""
        steps, values = split_series(self.series(key))
        if not steps:
            return f"No data for key: {key}"

        datasets = {"raw": values, "smoothed": self.smoothed(key)}
        decimated, labels = decimate_aligned(datasets, steps, "raw", self._decimation_threshold)

        rows = [f"step,{key},{key}_smoothed"]
        for i, step in enumerate(labels):
            rows.append(f"{step},{decimated['raw'][i]:.6g},{decimated['smoothed'][i]:.6g}")
        return "\n".join(rows)

    def format_table_csv(self, key: str) -> str:
        """Full-resolution table of one metric as CSV."""
        table = self.table(key)
        if not table["rows"]:
            return f"No data for key: {key}"
        rows = ["step," + ",".join(table["columns"])]
        for row in table["rows"]:
            values = [
                "" if row["values"][col] is None else f"{row['values'][col]:.6g}"
                for col in table["columns"]
            ]
            rows.append(f"{row['step']}," + ",".join(values))
        return "\n".join(rows)
