"""
Report fragment-level deltas across a directory of TVA metadata snapshots.

Usage:
    tva-delta [directory] [pattern]

Defaults:
    directory: .
    pattern:   ????????T??????Z_*.xml
"""

import argparse
import sys
from dataclasses import dataclass
from pathlib import Path

from .console import BOLD, RESET, error, log
from .delta import DEFAULT_REPORT_SUFFIX, Classification, DeltaEngine, RunSummary
from .fragments import InvalidExpirationError
from .snapshots import DuplicatePolicy, SnapshotCache, SnapshotError

DEFAULT_DIRECTORY = "."
DEFAULT_PATTERN = "????????T??????Z_*.xml"


@dataclass
class DeltaConfig:
    """Settings for one run."""

    directory: Path
    pattern: str = DEFAULT_PATTERN
    report_suffix: str = DEFAULT_REPORT_SUFFIX
    on_duplicate: DuplicatePolicy = DuplicatePolicy.REJECT
    jobs: int = 1
    verbose: bool = False


def find_snapshot_files(directory: Path, pattern: str) -> list[Path]:
    """Regular files in ``directory`` whose names match ``pattern``."""
    return [p for p in directory.glob(pattern) if p.is_file()]


def report_suffix(value: str) -> str:
    """Argparse type for a report extension; the leading dot is optional."""
    suffix = value if value.startswith(".") else "." + value
    if suffix == "." or "/" in suffix or "\\" in suffix or suffix.endswith("."):
        raise argparse.ArgumentTypeError(f"invalid report suffix: {value!r}")
    return suffix


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="tva-delta",
        description="Report created, deleted and changed fragments across TVA metadata snapshots.",
    )
    parser.add_argument(
        "directory",
        nargs="?",
        default=DEFAULT_DIRECTORY,
        help=f"Directory containing snapshot files (default: {DEFAULT_DIRECTORY})",
    )
    parser.add_argument(
        "pattern",
        nargs="?",
        default=DEFAULT_PATTERN,
        help=f"File name pattern of snapshot files (default: {DEFAULT_PATTERN})",
    )
    parser.add_argument(
        "--report-suffix",
        type=report_suffix,
        default=DEFAULT_REPORT_SUFFIX,
        help=f"Extension of the report written next to each snapshot (default: {DEFAULT_REPORT_SUFFIX})",
    )
    parser.add_argument(
        "--on-duplicate",
        choices=[p.value for p in DuplicatePolicy],
        default=DuplicatePolicy.REJECT.value,
        help="How to handle two fragments with the same identity in one file (default: reject)",
    )
    parser.add_argument(
        "-j", "--jobs",
        type=int,
        default=1,
        help="Threads used to parse snapshot files (default: 1)",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Show the classification of every fragment",
    )
    return parser


def parse_config(argv: list[str] | None = None) -> DeltaConfig:
    args = build_parser().parse_args(argv)
    return DeltaConfig(
        directory=Path(args.directory),
        pattern=args.pattern,
        report_suffix=args.report_suffix,
        on_duplicate=DuplicatePolicy(args.on_duplicate),
        jobs=max(1, args.jobs),
        verbose=args.verbose,
    )


def print_summary(summary: RunSummary) -> None:
    """Print run totals."""
    log("=" * 60)
    log(f"{BOLD}DELTA SUMMARY{RESET}")
    log("=" * 60)
    log(f"Snapshots read:    {summary.snapshots}")
    log(f"Reports written:   {summary.reports}")
    log(f"Without partner:   {summary.skipped}")
    log("-" * 40)
    log(f"  Created:         {summary.counts[Classification.CREATED]}")
    log(f"  Deleted:         {summary.counts[Classification.DELETED]}")
    log(f"  Identical:       {summary.counts[Classification.IDENTICAL]}")
    log(f"  Changed:         {summary.counts[Classification.CHANGED]}")
    log("=" * 60)


def run(config: DeltaConfig) -> int:
    """Run a delta over the configured directory, returning an exit code."""
    if not config.directory.is_dir():
        error(f"{config.directory} is not a directory")
        return 1

    files = find_snapshot_files(config.directory, config.pattern)
    if not files:
        log(f"No files matching {config.pattern} in {config.directory}")

    cache = SnapshotCache(config.on_duplicate)
    engine = DeltaEngine(cache, report_suffix=config.report_suffix, verbose=config.verbose)
    try:
        if config.jobs > 1:
            cache.preload(files, jobs=config.jobs)
        summary = engine.run(files)
    except (SnapshotError, InvalidExpirationError) as e:
        # Any bad input aborts the whole run
        error(str(e))
        return 1

    print_summary(summary)
    return 0


def main(argv: list[str] | None = None) -> int:
    return run(parse_config(argv))


if __name__ == "__main__":
    sys.exit(main())
