"""Tests for the in-memory ZIP archive builder."""

import zipfile
from datetime import datetime

import pytest

from exporters.archive_builder import ArchiveBuilder, ArchiveError


class TestAddEntry:
    """Entry bookkeeping before finalization."""

    def test_string_data_is_utf8_encoded(self):
        archive = ArchiveBuilder()
        archive.add_entry("notes.md", "Grüße")

        assert archive.read("notes.md") == "Grüße".encode('utf-8')

    def test_last_write_wins_and_keeps_position(self):
        archive = ArchiveBuilder()
        archive.add_entry("a.json", "first")
        archive.add_entry("b.json", "other")
        archive.add_entry("a.json", "second")

        assert archive.names() == ["a.json", "b.json"]
        assert archive.read("a.json") == b"second"
        assert len(archive) == 2

    def test_create_folders_adds_parent_entries(self):
        archive = ArchiveBuilder()
        archive.add_entry("uploads/u1/a1/pic.png", b"x", create_folders=True)

        assert archive.names(include_folders=True) == [
            "uploads/",
            "uploads/u1/",
            "uploads/u1/a1/",
            "uploads/u1/a1/pic.png",
        ]
        assert archive.names() == ["uploads/u1/a1/pic.png"]
        assert "uploads/" not in archive

    def test_invalid_names_rejected(self):
        archive = ArchiveBuilder()
        with pytest.raises(ArchiveError):
            archive.add_entry("", b"x")
        with pytest.raises(ArchiveError):
            archive.add_entry("folder/", b"x")

    def test_read_missing_entry_raises_key_error(self):
        with pytest.raises(KeyError):
            ArchiveBuilder().read("missing.json")


class TestFinalize:
    """Serializing entries into a ZIP file."""

    def test_finalize_writes_every_entry(self, tmp_path):
        archive = ArchiveBuilder()
        archive.add_entry("metadata.json", '{"backupVersion": 1}')
        archive.add_entry("uploads/a/b.bin", b"\x00\x01", create_folders=True)

        path = archive.finalize(str(tmp_path))

        assert path.parent == tmp_path
        assert path.suffix == ".zip"
        with zipfile.ZipFile(path) as zf:
            assert zf.read("metadata.json") == b'{"backupVersion": 1}'
            assert zf.read("uploads/a/b.bin") == b"\x00\x01"
            assert "uploads/a/" in zf.namelist()

    def test_finalize_twice_raises(self, tmp_path):
        archive = ArchiveBuilder()
        archive.add_entry("a.txt", "a")
        archive.finalize(str(tmp_path))

        assert archive.finalized
        with pytest.raises(ArchiveError):
            archive.finalize(str(tmp_path))

    def test_add_after_finalize_raises(self, tmp_path):
        archive = ArchiveBuilder()
        archive.finalize(str(tmp_path))

        with pytest.raises(ArchiveError):
            archive.add_entry("late.txt", "late")

    def test_identical_entries_give_identical_bytes(self, tmp_path):
        paths = []
        for _ in range(2):
            archive = ArchiveBuilder()
            archive.add_entry("one.json", '{"a": 1}')
            archive.add_entry("dir/two.bin", b"\x01\x02", create_folders=True)
            paths.append(archive.finalize(str(tmp_path)))

        assert paths[0] != paths[1]
        assert paths[0].read_bytes() == paths[1].read_bytes()

    def test_entry_date_and_comment(self, tmp_path):
        archive = ArchiveBuilder()
        archive.add_entry("new.md", "x", date=datetime(2024, 3, 4, 5, 6, 8), comment='{"k": 1}')
        archive.add_entry("old.md", "x", date=datetime(1970, 1, 1))
        archive.add_entry("plain.md", "x")

        with zipfile.ZipFile(archive.finalize(str(tmp_path))) as zf:
            assert zf.getinfo("new.md").date_time == (2024, 3, 4, 5, 6, 8)
            assert zf.getinfo("new.md").comment == b'{"k": 1}'
            assert zf.getinfo("old.md").date_time == (1980, 1, 1, 0, 0, 0)
            assert zf.getinfo("plain.md").date_time == (1980, 1, 1, 0, 0, 0)
