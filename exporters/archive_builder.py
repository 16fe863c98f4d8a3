"""In-memory ZIP archive builder finalized into a temporary file."""

import logging
import os
import tempfile
import zipfile
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Dict, List, Optional, Union

logger = logging.getLogger('kb_exporter.exporters.archive_builder')

# Entries without an explicit date get a fixed one so identical input gives identical bytes
DEFAULT_ENTRY_DATE = (1980, 1, 1, 0, 0, 0)


class ArchiveError(Exception):
    """Raised for invalid archive operations or when finalizing fails."""
    pass


@dataclass
class ArchiveEntry:
    """A single named entry waiting to be written."""

    name: str
    data: bytes
    is_dir: bool = False
    date: Optional[datetime] = None
    comment: Optional[str] = None


class ArchiveBuilder:
    """
    Accumulates named entries and serializes them into one ZIP file.

    Adding an entry under a name that already exists replaces its content
    (last write wins) while keeping its original position. There is no
    removal operation. The archive can be finalized exactly once.
    """

    def __init__(self, compression: int = zipfile.ZIP_DEFLATED):
        self.compression = compression
        self._entries: Dict[str, ArchiveEntry] = {}
        self._finalized = False

    def add_entry(
        self,
        name: str,
        data: Union[bytes, str],
        create_folders: bool = False,
        date: Optional[datetime] = None,
        comment: Optional[str] = None
    ) -> None:
        """
        Add or overwrite a named entry.

        Args:
            name: Slash-separated entry name
            data: Entry content; strings are stored UTF-8 encoded
            create_folders: Materialize each parent folder as its own entry
            date: Optional modification time stored for the entry
            comment: Optional per-entry ZIP comment
        """
        if self._finalized:
            raise ArchiveError("Cannot add entries to a finalized archive")

        name = name.lstrip('/')
        if not name or name.endswith('/'):
            raise ArchiveError(f"Invalid archive entry name: {name!r}")

        if isinstance(data, str):
            data = data.encode('utf-8')

        if create_folders:
            parts = name.split('/')[:-1]
            for depth in range(1, len(parts) + 1):
                folder = '/'.join(parts[:depth]) + '/'
                if folder not in self._entries:
                    self._entries[folder] = ArchiveEntry(name=folder, data=b'', is_dir=True)

        if name in self._entries:
            logger.debug(f"Overwriting archive entry: {name}")

        self._entries[name] = ArchiveEntry(name=name, data=data, date=date, comment=comment)

    def names(self, include_folders: bool = False) -> List[str]:
        """Entry names in insertion order."""
        return [
            entry.name for entry in self._entries.values()
            if include_folders or not entry.is_dir
        ]

    def read(self, name: str) -> bytes:
        """Return the current content of an entry."""
        try:
            return self._entries[name].data
        except KeyError:
            raise KeyError(f"No archive entry named {name!r}") from None

    def __contains__(self, name: str) -> bool:
        return name in self._entries and not self._entries[name].is_dir

    def __len__(self) -> int:
        return len(self.names())

    @property
    def finalized(self) -> bool:
        return self._finalized

    def finalize(self, directory: Optional[str] = None) -> Path:
        """
        Serialize every entry into a ZIP file in a temporary location.

        The caller owns the returned file and is responsible for removing it.

        Args:
            directory: Optional directory for the temporary file

        Returns:
            Path of the written archive

        Raises:
            ArchiveError: If already finalized or writing fails
        """
        if self._finalized:
            raise ArchiveError("Archive has already been finalized")

        fd, tmp_name = tempfile.mkstemp(prefix='export-', suffix='.zip', dir=directory)
        path = Path(tmp_name)

        try:
            with os.fdopen(fd, 'wb') as handle:
                with zipfile.ZipFile(handle, 'w', compression=self.compression) as zf:
                    for entry in self._entries.values():
                        zf.writestr(self._zip_info(entry), entry.data)
        except (OSError, zipfile.BadZipFile, ValueError) as e:
            path.unlink(missing_ok=True)
            raise ArchiveError(f"Failed to write archive: {e}") from e

        self._finalized = True
        logger.info(
            f"Archive written to {path} ({len(self)} entries, {path.stat().st_size} bytes)"
        )
        return path

    def _zip_info(self, entry: ArchiveEntry) -> zipfile.ZipInfo:
        date_time = DEFAULT_ENTRY_DATE
        if entry.date is not None:
            # ZIP cannot represent dates before 1980
            date_time = max(entry.date.timetuple()[:6], DEFAULT_ENTRY_DATE)

        info = zipfile.ZipInfo(entry.name, date_time=date_time)
        if entry.is_dir:
            info.external_attr = (0o40755 << 16) | 0x10
            info.compress_type = zipfile.ZIP_STORED
        else:
            info.external_attr = 0o644 << 16
            info.compress_type = self.compression
        if entry.comment:
            info.comment = entry.comment.encode('utf-8')
        return info
