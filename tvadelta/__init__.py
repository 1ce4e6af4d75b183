"""Fragment-level deltas between TV Anytime metadata snapshots."""

from .delta import Classification, DeltaEngine, FragmentDelta, RunSummary, classify, find_prior
from .equality import Attribute, Divergence, Text, are_equal, compare, compare_strings, parse_xml
from .fragments import InvalidExpirationError, fragment_id, identity, is_fragment
from .paths import render_path
from .snapshots import (
    DuplicateFragmentError,
    DuplicatePolicy,
    Fragment,
    Snapshot,
    SnapshotCache,
    SnapshotError,
    build_snapshot,
)

__all__ = [
    "Attribute",
    "Classification",
    "DeltaEngine",
    "Divergence",
    "DuplicateFragmentError",
    "DuplicatePolicy",
    "Fragment",
    "FragmentDelta",
    "InvalidExpirationError",
    "RunSummary",
    "Snapshot",
    "SnapshotCache",
    "SnapshotError",
    "Text",
    "are_equal",
    "build_snapshot",
    "classify",
    "compare",
    "compare_strings",
    "find_prior",
    "fragment_id",
    "identity",
    "is_fragment",
    "parse_xml",
    "render_path",
]
