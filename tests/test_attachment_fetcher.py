"""Tests for the bounded per-document attachment fan-out."""

import logging

import pytest

from conftest import (
    ATTACHMENT_1,
    FakeBlobStorage,
    InMemoryStore,
    make_attachment,
    make_document,
    redirect_link,
)
from exporters.attachment_fetcher import AttachmentFetcher


def attachment_ids(count):
    return [f"5f0e7b3c-1a2b-4c3d-8e9f-{i:012d}" for i in range(1, count + 1)]


class TestFetchAll:
    """Concurrency bounds and result ordering."""

    def test_results_follow_input_order(self):
        attachments = [make_attachment(i) for i in attachment_ids(6)]
        storage = FakeBlobStorage(blobs={a.key: a.id.encode() for a in attachments}, delay=0.01)
        fetcher = AttachmentFetcher(InMemoryStore(), storage, max_workers=3)

        results = fetcher.fetch_all(attachments)

        assert [r.attachment.id for r in results] == [a.id for a in attachments]
        assert [r.data for r in results] == [a.id.encode() for a in attachments]
        assert all(r.ok for r in results)

    def test_in_flight_fetches_bounded(self):
        attachments = [make_attachment(i) for i in attachment_ids(8)]
        storage = FakeBlobStorage(blobs={a.key: b"x" for a in attachments}, delay=0.02)
        fetcher = AttachmentFetcher(InMemoryStore(), storage, max_workers=2)

        fetcher.fetch_all(attachments)

        assert len(storage.calls) == 8
        assert storage.max_in_flight <= 2

    def test_failure_logged_with_key(self, caplog):
        attachment = make_attachment(ATTACHMENT_1)
        storage = FakeBlobStorage(failing_keys={attachment.key})
        fetcher = AttachmentFetcher(
            InMemoryStore(), storage, max_workers=2, logger=logging.getLogger("tests.attachment_fetcher")
        )

        with caplog.at_level(logging.ERROR):
            results = fetcher.fetch_all([attachment])

        assert not results[0].ok
        assert results[0].data is None
        assert f"Failed to add attachment to archive: {attachment.key}" in caplog.text

    def test_no_attachments_no_pool(self):
        storage = FakeBlobStorage()
        fetcher = AttachmentFetcher(InMemoryStore(), storage)

        assert fetcher.fetch_all([]) == []
        assert storage.calls == []

    def test_progress_bar_does_not_change_results(self):
        attachments = [make_attachment(i) for i in attachment_ids(3)]
        storage = FakeBlobStorage(blobs={a.key: b"x" for a in attachments})
        fetcher = AttachmentFetcher(InMemoryStore(), storage, max_workers=2, show_progress=True)

        results = fetcher.fetch_all(attachments)

        assert [r.attachment.id for r in results] == [a.id for a in attachments]

    def test_max_workers_must_be_positive(self):
        with pytest.raises(ValueError):
            AttachmentFetcher(InMemoryStore(), FakeBlobStorage(), max_workers=0)


class TestFindAttachments:
    """Resolving the references in a document body."""

    def test_document_without_references(self):
        store = InMemoryStore()
        fetcher = AttachmentFetcher(store, FakeBlobStorage())

        assert fetcher.find_attachments(make_document("d1", text="no files here")) == []

    def test_resolves_through_store(self):
        attachment = make_attachment(ATTACHMENT_1)
        store = InMemoryStore(attachments=[attachment])
        storage = FakeBlobStorage(blobs={attachment.key: b"data"})
        fetcher = AttachmentFetcher(store, storage)

        results = fetcher.fetch_for_document(make_document("d1", text=redirect_link(ATTACHMENT_1)))

        assert [r.attachment for r in results] == [attachment]
        assert results[0].data == b"data"
