import os
from datetime import datetime, timezone
from pathlib import Path

import pytest

TVA = "urn:tva:metadata:2010"


def tva_document(body: str) -> str:
    """Wrap fragment markup in a minimal TVAMain document."""
    return (
        f'<TVAMain xmlns="{TVA}">'
        "<ProgramDescription><ProgramInformationTable>"
        f"{body}"
        "</ProgramInformationTable></ProgramDescription>"
        "</TVAMain>"
    )


def epoch(year: int, month: int, day: int, hour: int = 0) -> float:
    return datetime(year, month, day, hour, tzinfo=timezone.utc).timestamp()


@pytest.fixture
def write_snapshot(tmp_path: Path):
    """Write a snapshot file with a given modification time."""

    def write(name: str, body: str, mtime: float, raw: bool = False) -> Path:
        path = tmp_path / name
        path.write_text(body if raw else tva_document(body), encoding="utf-8")
        os.utime(path, (mtime, mtime))
        return path

    return write
