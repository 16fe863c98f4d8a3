"""Public-facing descriptors for collections and attachments."""

from typing import Any, Dict

from models import Attachment, Collection, format_datetime


def present_collection(collection: Collection) -> Dict[str, Any]:
    """
    Build the sanitized public representation of a collection.

    The document structure is not included; callers add it when needed.
    """
    return {
        'id': collection.id,
        'url': collection.url,
        'urlId': collection.url_id,
        'name': collection.name,
        'description': collection.description,
        'sort': collection.sort,
        'icon': collection.icon,
        'index': collection.index,
        'color': collection.color,
        'permission': collection.permission,
        'sharing': collection.sharing,
        'createdAt': format_datetime(collection.created_at),
        'updatedAt': format_datetime(collection.updated_at)
    }


def present_attachment(attachment: Attachment) -> Dict[str, Any]:
    """Build the sanitized public representation of an attachment."""
    return {
        'id': attachment.id,
        'documentId': attachment.document_id,
        'contentType': attachment.content_type,
        'name': attachment.name,
        'size': attachment.size,
        'url': attachment.redirect_url
    }


__all__ = ['present_collection', 'present_attachment']
