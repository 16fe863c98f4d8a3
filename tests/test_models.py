"""Tests for data models and wire-format helpers."""

from datetime import datetime, timedelta, timezone

from models import (
    Attachment,
    Collection,
    Document,
    ExportFormat,
    NavigationNode,
    format_datetime,
    parse_datetime,
)
from presenters import present_attachment, present_collection


class TestDatetimes:

    def test_format_utc_with_milliseconds(self):
        value = datetime(2024, 5, 6, 7, 8, 9, 123456, tzinfo=timezone.utc)
        assert format_datetime(value) == "2024-05-06T07:08:09.123Z"

    def test_format_converts_offsets(self):
        value = datetime(2024, 5, 6, 9, 0, tzinfo=timezone(timedelta(hours=2)))
        assert format_datetime(value) == "2024-05-06T07:00:00.000Z"

    def test_naive_treated_as_utc(self):
        assert format_datetime(datetime(2024, 1, 1)) == "2024-01-01T00:00:00.000Z"

    def test_none(self):
        assert format_datetime(None) is None
        assert parse_datetime(None) is None
        assert parse_datetime("") is None

    def test_parse_iso(self):
        parsed = parse_datetime("2024-01-02T03:04:05.678Z")
        assert parsed == datetime(2024, 1, 2, 3, 4, 5, 678000, tzinfo=timezone.utc)


class TestFromDict:

    def test_collection_with_structure(self):
        collection = Collection.from_dict({
            'id': 'c1',
            'name': 'Engineering',
            'urlId': 'eng',
            'documentStructure': [
                {'id': 'd1', 'title': 'Intro', 'children': [{'id': 'd2', 'title': 'Setup'}]},
                {'id': 'd3', 'title': 'FAQ', 'children': []},
            ],
        })

        assert collection.url_id == 'eng'
        assert collection.count_nodes() == 3
        assert collection.document_structure[0].iter_ids() == ['d1', 'd2']
        assert collection.sort == {'field': 'index', 'direction': 'asc'}

    def test_structure_absent_stays_none(self):
        collection = Collection.from_dict({'id': 'c1', 'name': 'Empty'})

        assert collection.document_structure is None
        assert collection.structure_to_dict() is None
        assert collection.count_nodes() == 0

    def test_structure_keeps_unmodelled_keys(self):
        structure = [{'id': 'd1', 'icon': 'rocket', 'isDraft': True, 'children': []}]
        collection = Collection.from_dict({'id': 'c1', 'name': 'Eng', 'documentStructure': structure})

        structure[0]['icon'] = 'changed'

        assert collection.structure_to_dict() == [
            {'id': 'd1', 'icon': 'rocket', 'isDraft': True, 'children': []}
        ]
        assert collection.document_structure[0].title == ""

    def test_node_round_trip_shape(self):
        data = {'id': 'd1', 'title': 'Intro', 'url': '/doc/d1', 'children': []}
        assert NavigationNode.from_dict(data).to_dict() == data

    def test_document(self):
        document = Document.from_dict({
            'id': 'd1', 'title': 'Intro', 'text': None, 'fullWidth': True,
            'teamId': 't1', 'parentDocumentId': 'd0', 'updatedAt': '2024-01-01T00:00:00Z'
        })

        assert document.text == ""
        assert document.full_width is True
        assert document.team_id == 't1'
        assert document.updated_at.tzinfo is not None

    def test_attachment_defaults(self):
        attachment = Attachment.from_dict({'id': 'a1', 'key': 'uploads/a1/x'})

        assert attachment.content_type == "application/octet-stream"
        assert attachment.size == 0
        assert attachment.redirect_url == "/api/attachments.redirect?id=a1"

    def test_export_format_values(self):
        assert ExportFormat("json") is ExportFormat.JSON
        assert ExportFormat("markdown") is ExportFormat.MARKDOWN


class TestPresenters:

    def test_present_collection(self):
        collection = Collection(
            id='c1', name='Eng', url='/collection/eng', color='#fff',
            created_at=datetime(2024, 1, 1, tzinfo=timezone.utc)
        )

        presented = present_collection(collection)

        assert presented['url'] == '/collection/eng'
        assert presented['createdAt'] == "2024-01-01T00:00:00.000Z"
        assert 'documentStructure' not in presented

    def test_present_attachment(self):
        attachment = Attachment(id='a1', key='k', document_id='d1', name='x.png', size=3)

        assert present_attachment(attachment) == {
            'id': 'a1',
            'documentId': 'd1',
            'contentType': 'application/octet-stream',
            'name': 'x.png',
            'size': 3,
            'url': '/api/attachments.redirect?id=a1',
        }
