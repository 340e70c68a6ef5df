#!/usr/bin/env python3
"""
Command-line interface for Runlens.

Usage:
    runlens summary trainer_state.json       # Full summary (changes, insights, stats)
    runlens insights trainer_state.json      # Training health insights
    runlens stats FILE -k loss,reward        # Per-metric statistics
    runlens keys FILE                        # List discovered metrics
    runlens series FILE -k loss              # Decimated raw + smoothed CSV
    runlens table FILE -k loss               # Full-resolution CSV
    runlens wandb RUN_ID --project P         # Summarize a W&B cloud run
    runlens init                             # Create runlens.json config
"""

import argparse
import logging
import sys
from pathlib import Path

from .config import CONFIG_FILENAME, ConfigError, RunlensConfig
from .core import RunAnalyzer
from .loader import LogFormatError, load_run


def _resolve_file(config: RunlensConfig, name: str) -> Path:
    path = Path(name)
    if not path.exists() and (config.logs_dir / name).exists():
        path = config.logs_dir / name
    return path


def _analyzer(config: RunlensConfig, args) -> RunAnalyzer:
    run = load_run(_resolve_file(config, args.file))
    analyzer = RunAnalyzer(run, config)
    if args.smoothing is not None:
        analyzer.smoothing_level = args.smoothing
    return analyzer


def _keys(args) -> list[str]:
    return [k.strip() for k in args.keys.split(",") if k.strip()]


def cmd_summary(config: RunlensConfig, args):
    """Summarize a run."""
    print(_analyzer(config, args).summarize())


def cmd_insights(config: RunlensConfig, args):
    """Show training insights."""
    print(_analyzer(config, args).format_insights(compact=args.compact))


def cmd_stats(config: RunlensConfig, args):
    """Show per-metric statistics."""
    analyzer = _analyzer(config, args)
    if args.keys:
        keys = _keys(args)
    else:
        keys = [m.key for m in analyzer.discovered_metrics()]
        print(f"(auto-detected keys: {', '.join(keys)})\n")
    print(analyzer.format_stats(keys))


def cmd_keys(config: RunlensConfig, args):
    """List discovered metrics."""
    print(_analyzer(config, args).format_keys())


def cmd_series(config: RunlensConfig, args):
    """Print a decimated raw + smoothed series."""
    analyzer = _analyzer(config, args)
    if args.threshold is not None:
        analyzer.decimation_threshold = args.threshold
    print(analyzer.format_series_csv(args.keys))


def cmd_table(config: RunlensConfig, args):
    """Print a full-resolution series."""
    print(_analyzer(config, args).format_table_csv(args.keys))


def cmd_wandb(config: RunlensConfig, args):
    """Fetch a run from the W&B cloud and summarize it."""
    from .wandb_api import WandbAPIClient

    client = WandbAPIClient(args.project, entity=args.entity)
    analyzer = RunAnalyzer(client.fetch_run(args.run_id), config)
    if args.smoothing is not None:
        analyzer.smoothing_level = args.smoothing
    print(analyzer.summarize())


def cmd_init(config: RunlensConfig, args):
    """Initialize runlens.json configuration."""
    config_path = Path(CONFIG_FILENAME)
    if config_path.exists() and not args.force:
        print(f"{CONFIG_FILENAME} already exists. Use --force to overwrite.")
        return

    RunlensConfig(logs_dir=Path("logs")).save(config_path)
    print(f"Created {config_path}")
    print("Edit this file to change smoothing and decimation defaults.")


def _smoothing_level(value: str) -> float:
    level = float(value)
    if not 0 <= level <= 1:
        raise argparse.ArgumentTypeError("smoothing must be between 0 and 1")
    return level


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="runlens",
        description="Runlens: smoothed curves, statistics and insights for training logs",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  runlens summary trainer_state.json      # Summarize a HF trainer state
  runlens -s 0.6 summary train.jsonl      # Heavier smoothing
  runlens series train.jsonl -k loss      # Plot-ready CSV
  runlens wandb abc123 --project grpo     # Summarize a W&B run
        """
    )
    parser.add_argument("-s", "--smoothing", type=_smoothing_level,
                        help="Smoothing level 0-1 (default from config)")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")

    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    p_summary = subparsers.add_parser("summary", help="Summarize a run")
    p_summary.add_argument("file", help="trainer_state.json or .jsonl log")

    p_insights = subparsers.add_parser("insights", help="Show training insights")
    p_insights.add_argument("file", help="trainer_state.json or .jsonl log")
    p_insights.add_argument("-c", "--compact", action="store_true", help="Headlines only")

    p_stats = subparsers.add_parser("stats", help="Per-metric statistics")
    p_stats.add_argument("file", help="trainer_state.json or .jsonl log")
    p_stats.add_argument("-k", "--keys", help="Comma-separated metric keys (auto-detects if omitted)")

    p_keys = subparsers.add_parser("keys", help="List discovered metrics")
    p_keys.add_argument("file", help="trainer_state.json or .jsonl log")

    p_series = subparsers.add_parser("series", help="Decimated raw + smoothed series (CSV)")
    p_series.add_argument("file", help="trainer_state.json or .jsonl log")
    p_series.add_argument("-k", "--keys", required=True, help="Metric key")
    p_series.add_argument("-n", "--threshold", type=int, help="Max points (default from config)")

    p_table = subparsers.add_parser("table", help="Full-resolution series (CSV)")
    p_table.add_argument("file", help="trainer_state.json or .jsonl log")
    p_table.add_argument("-k", "--keys", required=True, help="Metric key")

    p_wandb = subparsers.add_parser("wandb", help="Summarize a W&B cloud run")
    p_wandb.add_argument("run_id", help="W&B run ID")
    p_wandb.add_argument("--project", required=True, help="W&B project")
    p_wandb.add_argument("--entity", help="W&B entity (default: API default)")

    p_init = subparsers.add_parser("init", help="Initialize configuration")
    p_init.add_argument("--force", action="store_true", help="Overwrite existing config")

    return parser


def main(argv=None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 0

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    config = RunlensConfig.auto_detect()

    commands = {
        "summary": cmd_summary,
        "insights": cmd_insights,
        "stats": cmd_stats,
        "keys": cmd_keys,
        "series": cmd_series,
        "table": cmd_table,
        "wandb": cmd_wandb,
        "init": cmd_init,
    }

    try:
        commands[args.command](config, args)
    except (FileNotFoundError, LogFormatError, ConfigError, ImportError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2
    return 0


if __name__ == "__main__":
    sys.exit(main())
