"""Shared fixtures: in-memory store and blob storage plus a small sample knowledge base."""

import threading
import time
from datetime import datetime, timezone

import pytest

from models import Attachment, Collection, Document, NavigationNode
from storage import BaseBlobStorage, BlobNotFoundError, BlobStorageError
from stores import BaseStore

TEAM_ID = "team-1"

ATTACHMENT_1 = "5f0e7b3c-1a2b-4c3d-8e9f-000000000001"
ATTACHMENT_2 = "5f0e7b3c-1a2b-4c3d-8e9f-000000000002"
FOREIGN_ATTACHMENT = "5f0e7b3c-1a2b-4c3d-8e9f-0000000000ff"
USER_ID = "9a8b7c6d-0000-4000-8000-000000000000"


def redirect_link(attachment_id: str, label: str = "file") -> str:
    return f"[{label}](/api/attachments.redirect?id={attachment_id})"


def node(node_id, *children):
    return NavigationNode(id=node_id, title=node_id, url=f"/doc/{node_id}", children=list(children))


class InMemoryStore(BaseStore):
    """BaseStore over plain dictionaries."""

    def __init__(self, collections=None, documents=None, attachments=None):
        super().__init__()
        self.collections = list(collections or [])
        self.documents = {d.id: d for d in documents or []}
        self.attachments = {a.id: a for a in attachments or []}
        self.document_lookups = []
        self.fail_on_document = None

    def find_collections(self, collection_ids=None):
        if not collection_ids:
            return list(self.collections)
        by_id = {c.id: c for c in self.collections}
        return [by_id[cid] for cid in collection_ids]

    def find_document(self, document_id, include_state=True):
        self.document_lookups.append(document_id)
        if document_id == self.fail_on_document:
            raise RuntimeError(f"database unavailable while loading {document_id}")
        return self.documents.get(document_id)

    def find_attachments(self, team_id, attachment_ids):
        found = []
        for attachment_id in attachment_ids:
            attachment = self.attachments.get(attachment_id)
            if attachment is not None and attachment.team_id == team_id:
                found.append(attachment)
        return found


class FakeBlobStorage(BaseBlobStorage):
    """Blob storage returning canned bytes and recording every fetch."""

    def __init__(self, blobs=None, failing_keys=None, delay=0.0):
        self.blobs = dict(blobs or {})
        self.failing_keys = set(failing_keys or [])
        self.delay = delay
        self.calls = []
        self.in_flight = 0
        self.max_in_flight = 0
        self.closed = False
        self._lock = threading.Lock()

    def get_file_by_key(self, key):
        with self._lock:
            self.calls.append(key)
            self.in_flight += 1
            self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            if self.delay:
                time.sleep(self.delay)
            if key in self.failing_keys:
                raise BlobStorageError(f"connection reset fetching {key}")
            if key not in self.blobs:
                raise BlobNotFoundError(f"No blob stored for key: {key}")
            return self.blobs[key]
        finally:
            with self._lock:
                self.in_flight -= 1

    def close(self):
        self.closed = True


def make_attachment(attachment_id, document_id="d1", team_id=TEAM_ID, name="diagram.png"):
    return Attachment(
        id=attachment_id,
        key=f"uploads/{USER_ID}/{attachment_id}/{name}",
        team_id=team_id,
        document_id=document_id,
        name=name,
        content_type="image/png",
        size=4,
        created_at=datetime(2024, 1, 1, tzinfo=timezone.utc)
    )


def make_document(document_id, title=None, text="", parent=None, **kwargs):
    return Document(
        id=document_id,
        title=title or document_id.upper(),
        text=text,
        url_id=f"url-{document_id}",
        created_at=datetime(2024, 1, 1, 9, 0, tzinfo=timezone.utc),
        updated_at=datetime(2024, 2, 1, 9, 0, tzinfo=timezone.utc),
        published_at=datetime(2024, 1, 2, 9, 0, tzinfo=timezone.utc),
        parent_document_id=parent,
        team_id=kwargs.pop('team_id', TEAM_ID),
        **kwargs
    )


@pytest.fixture
def attachment_1():
    return make_attachment(ATTACHMENT_1)


@pytest.fixture
def engineering(attachment_1):
    """Collection "Engineering": d1 (references a1) with child d2."""
    collection = Collection(
        id="c1",
        name="Engineering",
        description="Team **handbook**",
        document_structure=[node("d1", node("d2"))],
        url_id="eng",
        url="/collection/eng",
        created_at=datetime(2023, 12, 1, tzinfo=timezone.utc),
        updated_at=datetime(2024, 2, 1, tzinfo=timezone.utc)
    )
    documents = [
        make_document("d1", title="Intro", text=f"See ![diagram](/api/attachments.redirect?id={ATTACHMENT_1})"),
        make_document("d2", title="Setup", text="Install things.", parent="d1"),
    ]
    return collection, documents


@pytest.fixture
def store(engineering, attachment_1):
    collection, documents = engineering
    return InMemoryStore(
        collections=[collection],
        documents=documents,
        attachments=[attachment_1]
    )


@pytest.fixture
def blob_storage(attachment_1):
    return FakeBlobStorage(blobs={attachment_1.key: b"\x89PNG"})


@pytest.fixture
def export_config(tmp_path):
    return {
        'environment': 'test',
        'export': {
            'format': 'json',
            'output_path': str(tmp_path / 'export.zip'),
            'collections': [],
            'pretty_json': False,
            'attachments': {'max_workers': 4},
            'temp_directory': str(tmp_path),
        },
    }
