"""
Health Correlation Analysis - Command Line Runner
==================================================
Standalone orchestrator over exported CSV / JSON files:
  1. Load Whoop / StrongLifts CSV exports (type detected from headers)
     and optional JSON source files
  2. Align everything into one record per calendar date
  3. Correlations, rule-based insights, notifications, health score
  4. Optional AI narrative
  5. Write the report JSON

Usage:
    python run_analysis.py physiological_cycles.csv sleeps.csv workouts.csv
    python run_analysis.py exports/*.csv --nutrition meals.json --ai
    python run_analysis.py exports/*.csv --out report.json
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from collections import defaultdict
from pathlib import Path
from typing import Dict, List

from dotenv import load_dotenv

load_dotenv()

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s  %(levelname)-8s  %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
log = logging.getLogger("run_analysis")

from pipeline.analysis_pipeline import SOURCE_KEYS, run_analysis
from whoop_export import ALIGNER_KIND, parse_export


def load_exports(paths: List[Path]) -> Dict[str, list]:
    """Parse every CSV export and bucket its records by source kind."""
    sources: Dict[str, list] = defaultdict(list)
    for path in paths:
        result = parse_export(path.read_text(encoding="utf-8-sig"))
        if result.data_type == "unknown":
            log.warning("Skipping %s: export type not recognised", path.name)
            continue
        log.info("Loaded %s: %s, %d rows (%d skipped)",
                 path.name, result.data_type, len(result.records), result.rows_skipped)
        sources[ALIGNER_KIND[result.data_type]].extend(result.records)
    return dict(sources)


def load_json_source(path: Path) -> list:
    with open(path, encoding="utf-8") as fh:
        rows = json.load(fh)
    if not isinstance(rows, list):
        raise ValueError(f"{path} must contain a JSON list of records")
    return rows


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(
        description="Correlation and insight analysis over health exports")
    parser.add_argument("exports", nargs="*", type=Path,
                        help="Whoop / StrongLifts CSV export files")
    for key in SOURCE_KEYS:
        parser.add_argument(f"--{key}", type=Path, default=None,
                            help=f"JSON list of {key} records")
    parser.add_argument("--ai", action="store_true",
                        help="Request the AI narrative (needs OPENAI_API_KEY)")
    parser.add_argument("--min-abs", type=float, default=None,
                        help="Override MIN_ABS_CORRELATION")
    parser.add_argument("--notable-min-abs", type=float, default=None,
                        help="Override NOTABLE_MIN_ABS_CORRELATION")
    parser.add_argument("--top-n", type=int, default=None,
                        help="Override NOTABLE_TOP_N")
    parser.add_argument("--out", type=Path, default=None,
                        help="Write the report JSON here (default: stdout)")
    args = parser.parse_args(argv)

    try:
        sources = load_exports(args.exports)
        for key in SOURCE_KEYS:
            path = getattr(args, key)
            if path is not None:
                sources.setdefault(key, []).extend(load_json_source(path))
    except (OSError, ValueError) as e:
        log.error("Failed to load input: %s", e)
        return 1

    if not sources:
        log.error("No usable input records.")
        return 1

    report = run_analysis(skip_ai=not args.ai, min_abs_correlation=args.min_abs,
                          notable_min_abs=args.notable_min_abs, top_n=args.top_n, **sources)
    text = json.dumps(report, indent=2, ensure_ascii=False, default=str)
    if args.out:
        args.out.write_text(text, encoding="utf-8")
        log.info("Report written to %s", args.out)
    else:
        print(text)
    return 0 if report["analysis_status"] == "success" else 2


if __name__ == "__main__":
    sys.exit(main())
