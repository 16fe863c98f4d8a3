"""Export strategy contract shared by every archive format."""

import posixpath
from pathlib import Path
from typing import Container, List, Protocol, runtime_checkable

from models import Collection, ExportStats


@runtime_checkable
class Exporter(Protocol):
    """An archive format: turns an ordered list of collections into one archive file."""

    stats: ExportStats

    def export(self, collections: List[Collection]) -> Path:
        """
        Build and finalize the archive.

        Returns:
            Path of the temporary archive file; the caller owns its cleanup
        """
        ...


def unique_entry_name(name: str, taken: Container[str]) -> str:
    """
    Make an entry name unique among names already used in an archive.

    The archive silently overwrites on collision, so exporters run every
    name they write through this first. "Notes.md" becomes "Notes-1.md",
    then "Notes-2.md" and so on.

    Args:
        name: Desired slash-separated entry name
        taken: Names already written

    Returns:
        The name itself, or the first free suffixed variant
    """
    if name not in taken:
        return name

    folder, filename = posixpath.split(name)
    stem, ext = posixpath.splitext(filename)
    counter = 1
    while True:
        candidate = posixpath.join(folder, f"{stem}-{counter}{ext}")
        if candidate not in taken:
            return candidate
        counter += 1
