"""
Temporal delta between metadata snapshots.

Snapshots are visited newest first. Each fragment of the current snapshot is
matched with its nearest prior version (the first older snapshot that holds
the same identity) and classified as created, deleted, identical or changed.
"""

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Iterable, Iterator, Sequence

from .console import BOLD, RESET, log
from .equality import compare
from .paths import render_path
from .snapshots import Fragment, Snapshot, SnapshotCache

DEFAULT_REPORT_SUFFIX = ".log"


class Classification(Enum):
    CREATED = "created"
    DELETED = "deleted"
    IDENTICAL = "identical"
    CHANGED = "changed"


@dataclass
class FragmentDelta:
    """Outcome for one fragment of the current snapshot."""

    fragment: Fragment
    prior: Fragment | None
    classification: Classification
    differences: list[tuple[str, str]] = field(default_factory=list)  # (location, message)

    def header(self) -> str:
        return f'<{self.fragment.local_name} ..id="{self.fragment.identity}">'

    def lines(self) -> list[str]:
        """Report lines for this fragment, ending with a blank separator."""
        lines = [self.header()]
        if self.classification is Classification.CREATED:
            lines.append("Created in this diff")
        elif self.classification is Classification.DELETED:
            lines.append("Deleted in this diff")
        elif self.classification is Classification.IDENTICAL:
            lines.append("Identical")
        else:
            lines.extend(f"{location}: {message}" for location, message in self.differences)
        lines.append("")
        return lines


def older_snapshots(current: Snapshot, snapshots: Iterable[Snapshot]) -> list[Snapshot]:
    """Snapshots strictly older than ``current``, order preserved."""
    return [s for s in snapshots if s.timestamp < current.timestamp]


def find_prior(identity: str, older: Iterable[Snapshot]) -> Fragment | None:
    """First fragment with ``identity`` in ``older``, nearest snapshot first."""
    for snapshot in older:
        fragment = snapshot.get(identity)
        if fragment is not None:
            return fragment
    return None


def classify(current: Fragment, prior: Fragment | None) -> FragmentDelta:
    """Classify a fragment against its nearest prior version.

    A prior version that had already expired in its own snapshot counts as
    absent, so the fragment is reported as created again.
    """
    if prior is None or prior.is_expired():
        return FragmentDelta(current, prior, Classification.CREATED)
    if current.is_expired():
        return FragmentDelta(current, prior, Classification.DELETED)

    differences = [
        (render_path(d.node, current.element, prior.element), d.message)
        for d in compare(current.element, prior.element)
    ]
    if not differences:
        return FragmentDelta(current, prior, Classification.IDENTICAL)
    return FragmentDelta(current, prior, Classification.CHANGED, differences)


@dataclass
class RunSummary:
    """Counts gathered over one run."""

    snapshots: int = 0
    reports: int = 0
    skipped: int = 0
    counts: dict[Classification, int] = field(
        default_factory=lambda: {c: 0 for c in Classification}
    )
    report_paths: list[Path] = field(default_factory=list)

    def record(self, delta: FragmentDelta) -> None:
        self.counts[delta.classification] += 1


def report_path(path: Path, suffix: str = DEFAULT_REPORT_SUFFIX) -> Path:
    """Report file for a snapshot: same name, report extension."""
    return Path(path).with_suffix(suffix)


class DeltaEngine:
    """Drive snapshot comparisons and write one report per snapshot."""

    def __init__(
        self,
        cache: SnapshotCache,
        report_suffix: str = DEFAULT_REPORT_SUFFIX,
        verbose: bool = False,
    ):
        self.cache = cache
        self.report_suffix = report_suffix
        self.verbose = verbose

    @staticmethod
    def order(paths: Iterable[Path]) -> list[Path]:
        """Newest first, by file name.

        File names start with a sortable timestamp, so descending name order
        is reverse chronological order.
        """
        return sorted((Path(p) for p in paths), key=lambda p: p.name, reverse=True)

    def analyse(self, current: Snapshot, older: Sequence[Snapshot]) -> Iterator[FragmentDelta]:
        """Classify every fragment of ``current``, in document order."""
        for identity, fragment in current.fragments.items():
            yield classify(fragment, find_prior(identity, older))

    def run(self, paths: Iterable[Path]) -> RunSummary:
        """Analyse every snapshot that has an older partner.

        Reports are appended one fragment at a time, so a failure part way
        through leaves a partial report behind.
        """
        ordered = self.order(paths)
        snapshots = [self.cache.get(p) for p in ordered]
        summary = RunSummary(snapshots=len(snapshots))

        for current in snapshots:
            older = older_snapshots(current, snapshots)
            if not older:
                summary.skipped += 1
                continue

            out_path = report_path(current.path, self.report_suffix)
            out_path.write_text(f"Analysis for {current.path}\n", encoding="utf-8")
            for delta in self.analyse(current, older):
                with open(out_path, "a", encoding="utf-8") as out:
                    out.write("\n".join(delta.lines()) + "\n")
                summary.record(delta)
                if self.verbose:
                    log(f"  {delta.classification.value:<9} {delta.header()}")

            summary.reports += 1
            summary.report_paths.append(out_path)
            log(f"Wrote {BOLD}{out_path.name}{RESET}")

        return summary
