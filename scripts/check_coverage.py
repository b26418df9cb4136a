#!/usr/bin/env python3
"""
Enforce per-file coverage minimums for the cycle engine and state store.

Usage:
    pytest --cov=pomodoro_timer
    python scripts/check_coverage.py [--data-file .coverage]

Exit codes:
    0 - All coverage thresholds met
    1 - One or more thresholds not met
    2 - Coverage data not found or unreadable
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

import coverage
from coverage.exceptions import CoverageException

FILE_THRESHOLDS: dict[str, float] = {
    "src/pomodoro_timer/engine.py": 95.0,
    "src/pomodoro_timer/store.py": 95.0,
    "src/pomodoro_timer/models.py": 90.0,
}


def measured_percentages(data_file: Path) -> dict[str, float]:
    """Return statement coverage per measured file.

    Raises:
        CoverageException: If the data file cannot be loaded
    """
    cov = coverage.Coverage(data_file=str(data_file))
    cov.load()

    percentages: dict[str, float] = {}
    for filename in cov.get_data().measured_files():
        _, statements, _, missing, _ = cov.analysis2(filename)
        if statements:
            percentages[filename] = (len(statements) - len(missing)) / len(statements) * 100.0
        else:
            percentages[filename] = 100.0
    return percentages


def _lookup(percentages: dict[str, float], relative: str) -> float | None:
    absolute = str(Path(relative).resolve())
    for filename, pct in percentages.items():
        if filename == absolute or filename.endswith(relative):
            return pct
    return None


def check_thresholds(percentages: dict[str, float]) -> list[str]:
    """Return one failure line per file below (or missing from) its threshold."""
    failures: list[str] = []
    for relative, threshold in FILE_THRESHOLDS.items():
        pct = _lookup(percentages, relative)
        if pct is None:
            failures.append(f"{relative}: not found in coverage data")
        elif pct < threshold:
            failures.append(f"{relative}: {pct:.2f}% < {threshold:.2f}%")
        else:
            print(f"✅ {relative}: {pct:.2f}% (threshold {threshold:.2f}%)")
    return failures


def main() -> int:
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[1])
    parser.add_argument("--data-file", type=Path, default=Path(".coverage"))
    args = parser.parse_args()

    if not args.data_file.exists():
        print("Error: No coverage data found. Run pytest with --cov first.", file=sys.stderr)
        return 2

    try:
        percentages = measured_percentages(args.data_file)
    except CoverageException as err:
        print(f"Error loading coverage data: {err}", file=sys.stderr)
        return 2

    failures = check_thresholds(percentages)
    for line in failures:
        print(f"❌ {line}")

    if failures:
        print("❌ Some per-file coverage thresholds not met")
        return 1
    print("✅ All per-file coverage thresholds met!")
    return 0


if __name__ == "__main__":
    sys.exit(main())
