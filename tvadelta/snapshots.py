"""
Snapshot building and caching.

A snapshot is the set of fragments found in one metadata document, stamped
with the document's last-modification time.
"""

import threading
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from types import MappingProxyType
from typing import Iterable, Mapping

from lxml import etree

from .console import log, warn
from .equality import xml_parser
from .fragments import expiration, fragment_id, is_expired, local_name


class SnapshotError(Exception):
    """Raised when a document cannot be turned into a snapshot."""


class DuplicateFragmentError(SnapshotError):
    """Raised when two fragments in one document share an identity."""

    def __init__(self, identity: str, path: Path):
        super().__init__(f"Duplicate fragment identity '{identity}' in {path}")
        self.identity = identity
        self.path = path


class DuplicatePolicy(Enum):
    """What to do when two fragments in one document share an identity."""

    REJECT = "reject"
    KEEP_FIRST = "keep-first"
    KEEP_LAST = "keep-last"


@dataclass(frozen=True)
class Fragment:
    """An addressable element within a snapshot."""

    identity: str
    element: etree._Element
    timestamp: datetime  # Owning snapshot's timestamp
    expires: datetime | None = None

    @property
    def local_name(self) -> str:
        return local_name(self.element)

    def is_expired(self, at: datetime | None = None) -> bool:
        """Check expiration, by default as of the owning snapshot's time."""
        return is_expired(self.expires, self.timestamp if at is None else at)


@dataclass(frozen=True)
class Snapshot:
    """Fragments of one document, keyed by identity in document order."""

    path: Path
    timestamp: datetime
    fragments: Mapping[str, Fragment] = field(default_factory=dict)

    def __contains__(self, identity: str) -> bool:
        return identity in self.fragments

    def get(self, identity: str) -> Fragment | None:
        return self.fragments.get(identity)

    def __len__(self) -> int:
        return len(self.fragments)


def file_timestamp(path: Path) -> datetime:
    """Last-modification time of a file as an aware UTC datetime."""
    return datetime.fromtimestamp(path.stat().st_mtime, tz=timezone.utc)


def parse_document(path: Path) -> etree._Element:
    """Parse an XML document, returning its root element."""
    parser = xml_parser()
    try:
        return etree.parse(str(path), parser).getroot()
    except etree.XMLSyntaxError as e:
        raise SnapshotError(f"Failed to parse {path}: {e}") from e
    except OSError as e:
        raise SnapshotError(f"Failed to read {path}: {e}") from e


def build_snapshot(path: Path, policy: DuplicatePolicy = DuplicatePolicy.REJECT) -> Snapshot:
    """Parse a document and collect every fragment it contains.

    All descendants are examined, not only the root's children, since TVA
    tables nest fragments several levels deep.
    """
    path = Path(path)
    timestamp = file_timestamp(path)
    root = parse_document(path)

    fragments: dict[str, Fragment] = {}
    for element in root.iter():
        identity = fragment_id(element)
        if identity is None:
            continue
        if identity in fragments:
            if policy is DuplicatePolicy.REJECT:
                raise DuplicateFragmentError(identity, path)
            warn(f"Duplicate fragment '{identity}' in {path.name}, {policy.value}")
            if policy is DuplicatePolicy.KEEP_FIRST:
                continue
            # Keep last: drop the earlier entry so document order follows the winner
            del fragments[identity]
        fragments[identity] = Fragment(
            identity=identity,
            element=element,
            timestamp=timestamp,
            expires=expiration(element),
        )

    log(f"Read {path.name}")
    return Snapshot(path=path, timestamp=timestamp, fragments=MappingProxyType(fragments))


class SnapshotCache:
    """Snapshots by file path, built once and kept for the cache's lifetime.

    Entries are inserted once and never invalidated; a run works on a fixed
    set of files. Insertion is guarded so that concurrent loaders parse each
    file at most once.
    """

    def __init__(self, policy: DuplicatePolicy = DuplicatePolicy.REJECT):
        self.policy = policy
        self._snapshots: dict[Path, Snapshot] = {}
        self._lock = threading.Lock()
        self._loading: dict[Path, threading.Lock] = {}

    @staticmethod
    def _key(path: Path) -> Path:
        return Path(path).resolve()

    def __contains__(self, path: Path) -> bool:
        return self._key(path) in self._snapshots

    def __len__(self) -> int:
        return len(self._snapshots)

    def get(self, path: Path) -> Snapshot:
        """Return the snapshot for ``path``, building it on first use."""
        key = self._key(path)
        with self._lock:
            snapshot = self._snapshots.get(key)
            if snapshot is not None:
                return snapshot
            file_lock = self._loading.setdefault(key, threading.Lock())

        with file_lock:
            with self._lock:
                snapshot = self._snapshots.get(key)
            if snapshot is not None:
                return snapshot
            snapshot = build_snapshot(Path(path), self.policy)
            with self._lock:
                self._snapshots[key] = snapshot
                self._loading.pop(key, None)
            return snapshot

    def preload(self, paths: Iterable[Path], jobs: int = 1) -> list[Snapshot]:
        """Build snapshots for all paths, optionally on a thread pool.

        The first failure is re-raised once all submitted work has finished.
        """
        paths = list(paths)
        if jobs <= 1:
            return [self.get(p) for p in paths]
        with ThreadPoolExecutor(max_workers=jobs) as executor:
            futures = [executor.submit(self.get, p) for p in paths]
            return [future.result() for future in futures]
