"""Small helpers shared by the exporters."""

from .attachment_ids import parse_attachment_ids
from .filenames import deserialize_filename, serialize_filename

__all__ = [
    'deserialize_filename',
    'parse_attachment_ids',
    'serialize_filename'
]
