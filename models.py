"""Data models for the knowledge-base archive export pipeline."""

import copy
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

from dateutil.parser import isoparse

# Bumped whenever the layout of the JSON archive changes
BACKUP_VERSION = 1


class ExportFormat(Enum):
    """Archive formats the exporter can produce."""
    JSON = "json"
    MARKDOWN = "markdown"


def parse_datetime(value: Any) -> Optional[datetime]:
    """Parse an ISO 8601 value from the wire, passing datetimes through."""
    if value is None or value == '':
        return None
    if isinstance(value, datetime):
        return value
    return isoparse(str(value))


def format_datetime(value: Optional[datetime]) -> Optional[str]:
    """
    Format a datetime as an ISO 8601 UTC string with millisecond precision.

    Naive datetimes are assumed to already be in UTC.
    """
    if value is None:
        return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    value = value.astimezone(timezone.utc)
    return value.isoformat(timespec='milliseconds').replace('+00:00', 'Z')


@dataclass
class NavigationNode:
    """A hierarchy entry referencing a document plus its ordered children."""

    id: str
    title: str = ""
    url: Optional[str] = None
    children: List['NavigationNode'] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'NavigationNode':
        """Recursively build a node from its wire form."""
        return cls(
            id=data['id'],
            title=data.get('title') or "",
            url=data.get('url'),
            children=[cls.from_dict(child) for child in data.get('children') or []]
        )

    def to_dict(self) -> Dict[str, Any]:
        """Serialize node (and children) back to the wire form."""
        return {
            'id': self.id,
            'title': self.title,
            'url': self.url,
            'children': [child.to_dict() for child in self.children]
        }

    def iter_ids(self) -> List[str]:
        """Document ids of this node and all descendants, pre-order."""
        ids = [self.id]
        for child in self.children:
            ids.extend(child.iter_ids())
        return ids


@dataclass
class Collection:
    """Top-level container owning an ordered forest of document nodes."""

    id: str
    name: str
    description: Optional[str] = None
    document_structure: Optional[List[NavigationNode]] = None
    url_id: Optional[str] = None
    url: Optional[str] = None
    icon: Optional[str] = None
    color: Optional[str] = None
    index: Optional[str] = None
    sort: Dict[str, Any] = field(default_factory=lambda: {'field': 'index', 'direction': 'asc'})
    permission: Optional[str] = None
    sharing: bool = True
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    # hierarchy exactly as received; document_structure is the parsed view
    raw_structure: Optional[List[Dict[str, Any]]] = field(default=None, repr=False)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Collection':
        """Deserialize from the platform's camelCase representation."""
        structure = data.get('documentStructure')
        return cls(
            id=data['id'],
            name=data.get('name') or "",
            description=data.get('description'),
            document_structure=(
                [NavigationNode.from_dict(node) for node in structure]
                if structure is not None else None
            ),
            url_id=data.get('urlId'),
            url=data.get('url'),
            icon=data.get('icon'),
            color=data.get('color'),
            index=data.get('index'),
            sort=data.get('sort') or {'field': 'index', 'direction': 'asc'},
            permission=data.get('permission'),
            sharing=data.get('sharing', True),
            created_at=parse_datetime(data.get('createdAt')),
            updated_at=parse_datetime(data.get('updatedAt')),
            raw_structure=copy.deepcopy(structure)
        )

    def structure_to_dict(self) -> Optional[List[Dict[str, Any]]]:
        """
        The document structure in wire form, preserving None for an unset tree.

        A structure received through from_dict is returned untouched, keys the
        parsed nodes do not model included.
        """
        if self.raw_structure is not None:
            return copy.deepcopy(self.raw_structure)
        if self.document_structure is None:
            return None
        return [node.to_dict() for node in self.document_structure]

    def count_nodes(self) -> int:
        """Count every node in the document structure."""
        return sum(len(node.iter_ids()) for node in self.document_structure or [])


@dataclass
class Document:
    """A single knowledge-base document."""

    id: str
    title: str
    text: str = ""
    url_id: Optional[str] = None
    content: Optional[Dict[str, Any]] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    published_at: Optional[datetime] = None
    full_width: bool = False
    template: bool = False
    parent_document_id: Optional[str] = None
    team_id: Optional[str] = None
    collection_id: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Document':
        """Deserialize from the platform's camelCase representation."""
        return cls(
            id=data['id'],
            title=data.get('title') or "",
            text=data.get('text') or "",
            url_id=data.get('urlId'),
            content=data.get('content'),
            created_at=parse_datetime(data.get('createdAt')),
            updated_at=parse_datetime(data.get('updatedAt')),
            published_at=parse_datetime(data.get('publishedAt')),
            full_width=bool(data.get('fullWidth', False)),
            template=bool(data.get('template', False)),
            parent_document_id=data.get('parentDocumentId'),
            team_id=data.get('teamId'),
            collection_id=data.get('collectionId')
        )


@dataclass
class Attachment:
    """A binary file uploaded to the platform and referenced from documents."""

    id: str
    key: str
    team_id: Optional[str] = None
    document_id: Optional[str] = None
    name: Optional[str] = None
    content_type: str = "application/octet-stream"
    size: int = 0
    created_at: Optional[datetime] = None
    url: Optional[str] = None

    @property
    def redirect_url(self) -> str:
        """Relative URL documents use to embed this attachment."""
        return f"/api/attachments.redirect?id={self.id}"

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Attachment':
        """Deserialize from the platform's camelCase representation."""
        return cls(
            id=data['id'],
            key=data['key'],
            team_id=data.get('teamId'),
            document_id=data.get('documentId'),
            name=data.get('name'),
            content_type=data.get('contentType') or "application/octet-stream",
            size=int(data.get('size') or 0),
            created_at=parse_datetime(data.get('createdAt')),
            url=data.get('url')
        )


@dataclass
class ExportStats:
    """Counters collected while an archive is built."""

    collections: int = 0
    documents_exported: int = 0
    documents_missing: int = 0
    attachments_exported: int = 0
    attachments_failed: int = 0

    def to_dict(self) -> Dict[str, int]:
        return {
            'collections': self.collections,
            'documents_exported': self.documents_exported,
            'documents_missing': self.documents_missing,
            'attachments_exported': self.attachments_exported,
            'attachments_failed': self.attachments_failed
        }


__all__ = [
    'BACKUP_VERSION',
    'Attachment',
    'Collection',
    'Document',
    'ExportFormat',
    'ExportStats',
    'NavigationNode',
    'format_datetime',
    'parse_datetime'
]
