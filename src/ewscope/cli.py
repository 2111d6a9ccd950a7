"""ewscope CLI.

Loads a close-price series from CSV, runs the single-degree analyzer (or the
multi-degree analyzer when --higher/--lower ask for supporting degrees) and
prints a text report or JSON.

Config layering: defaults < --config file < EWSCOPE_* env < CLI flags.
"""

from __future__ import annotations

import argparse
import json
import os
from pathlib import Path
from typing import Any, Dict, Optional, Sequence

import pandas as pd

from ewscope.config import ConfigError, load_config
from ewscope.data.types import BarSeries
from ewscope.errors import EwscopeError
from ewscope.ew.core.model import Degree
from ewscope.ew.core.options import WaveOptions
from ewscope.ew.detectors.analyzer import WaveAnalyzer
from ewscope.ew.detectors.multidegree import MultiDegreeAnalyzer, MultiDegreeResult
from ewscope.logging import LogConfig, get_logger, setup_logging
from ewscope.reporting.render import analysis_to_dict, multi_degree_to_dict, render_analysis, render_multi_degree

log = get_logger("ewscope.cli")


def _ensure_dir(p: str) -> None:
    Path(p).parent.mkdir(parents=True, exist_ok=True)


def load_csv(path: str, time_col: str = "", price_col: str = "close") -> BarSeries:
    """Read a CSV into a BarSeries; `time_col` becomes a DatetimeIndex when given."""
    df = pd.read_csv(path)
    if price_col not in df.columns:
        raise ValueError(f"column '{price_col}' not found in {path}")
    if price_col != "close":
        df = df.rename(columns={price_col: "close"})
    if time_col:
        if time_col not in df.columns:
            raise ValueError(f"time column '{time_col}' not found in {path}")
        df[time_col] = pd.to_datetime(df[time_col], utc=True)
        df = df.set_index(time_col).sort_index()
    df["close"] = pd.to_numeric(df["close"], errors="coerce")
    series = BarSeries(df)
    series.validate()
    return series


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="ewscope", description="Elliott Wave scenario analysis")

    # data
    p.add_argument("--csv", required=True, help="CSV file with a close column")
    p.add_argument("--time_col", default="", help="Optional timestamp column")
    p.add_argument("--price_col", default="close")
    p.add_argument("--index", type=int, default=None, help="Bar to analyze (default: last)")

    # analysis (None keeps the config value)
    p.add_argument("--degree", default=None, help="Degree name, e.g. minor, intermediate")
    p.add_argument("--window", type=int, default=None)
    p.add_argument("--higher", type=int, default=None, help="Coarser degrees for cross-validation")
    p.add_argument("--lower", type=int, default=None, help="Finer degrees for cross-validation")
    p.add_argument("--min_confidence", type=float, default=None)
    p.add_argument("--max_scenarios", type=int, default=None)
    p.add_argument("--single", action="store_true", help="Skip multi-degree analysis")

    # output
    p.add_argument("--format", default="compact", help="compact|pretty")
    p.add_argument("--markdown", action="store_true")
    p.add_argument("--json", action="store_true", help="Print JSON instead of text")
    p.add_argument("--export", default="", help="Write the JSON report to this path")

    # logging/config
    p.add_argument("--config", default=os.environ.get("EWSCOPE_CONFIG", ""))
    p.add_argument("--log_level", default=os.environ.get("EWSCOPE_LOG_LEVEL", ""))

    return p


def options_from_args(cfg: Dict[str, Any], args: argparse.Namespace) -> WaveOptions:
    opts = WaveOptions.from_config(cfg)
    return opts.with_overrides(
        degree=Degree.parse(args.degree) if args.degree else None,
        window=args.window,
        higher_degrees=args.higher,
        lower_degrees=args.lower,
        min_confidence=args.min_confidence,
        max_scenarios=args.max_scenarios,
    )


def run(series: BarSeries, opts: WaveOptions, *, single: bool = False, index: Optional[int] = None):
    """Analysis result for `series`: multi-degree unless disabled or a bar index is pinned."""
    if single or index is not None or (opts.higher_degrees == 0 and opts.lower_degrees == 0):
        return WaveAnalyzer.from_options(opts).analyze(series, index)

    def runner(selected: BarSeries, degree: Degree):
        return WaveAnalyzer.from_options(opts, degree).analyze(selected)

    md = MultiDegreeAnalyzer(
        opts.degree,
        higher_degrees=opts.higher_degrees,
        lower_degrees=opts.lower_degrees,
        analysis_runner=runner,
        base_confidence_weight=opts.base_confidence_weight,
    )
    return md.analyze(series)


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    try:
        cfg = load_config(defaults={}, file_path=args.config or None)
    except (ConfigError, FileNotFoundError) as e:
        setup_logging(LogConfig(level=args.log_level or "info"))
        log.error("config load failed: %s", e)
        return 2

    log_cfg = LogConfig.from_dict(cfg.get("logging") or {})
    if args.log_level:
        log_cfg = LogConfig(level=args.log_level, json=log_cfg.json, to_file=log_cfg.to_file, utc=log_cfg.utc)
    setup_logging(log_cfg)

    try:
        opts = options_from_args(cfg, args)
        series = load_csv(args.csv, time_col=args.time_col, price_col=args.price_col)
        result = run(series, opts, single=args.single, index=args.index)
    except (OSError, ValueError, EwscopeError) as e:
        log.error("analysis failed: %s", e)
        return 1

    if isinstance(result, MultiDegreeResult):
        payload = multi_degree_to_dict(result)
        text = render_multi_degree(result, fmt=args.format, markdown=args.markdown)
    else:
        payload = analysis_to_dict(result)
        text = render_analysis(result, fmt=args.format, markdown=args.markdown)
    log.info("analysis complete", extra={"csv": args.csv, "bars": len(series), "degree": opts.degree.name})

    if args.json:
        print(json.dumps(payload, ensure_ascii=False, indent=2))
    else:
        print(text)

    if args.export:
        _ensure_dir(args.export)
        with open(args.export, "w", encoding="utf-8") as f:
            json.dump(payload, f, ensure_ascii=False, indent=2)

    return 0


if __name__ == "__main__":
    raise SystemExit(main())
