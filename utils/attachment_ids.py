"""Extraction of attachment ids embedded in raw document markdown."""

import re
from typing import List

UUID_PATTERN = r'[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}'

ATTACHMENT_REDIRECT_PATTERN = re.compile(
    r'/api/attachments\.redirect\?id=(?P<id>' + UUID_PATTERN + r')',
    re.IGNORECASE
)

# Public bucket URLs: .../uploads/<user id>/<attachment id>/<filename>
ATTACHMENT_PUBLIC_PATTERN = re.compile(
    r'uploads/' + UUID_PATTERN + r'/(?P<id>' + UUID_PATTERN + r')/',
    re.IGNORECASE
)


def parse_attachment_ids(text: str, include_public: bool = False) -> List[str]:
    """
    Find the ids of all attachments referenced by a document body.

    Ids are lower-cased and deduplicated; first-occurrence order is kept so
    repeated runs over the same text yield the same list.

    Args:
        text: Raw markdown body of a document
        include_public: Also match direct public-bucket upload URLs

    Returns:
        Unique attachment ids in order of first appearance
    """
    if not text:
        return []

    matches = []
    for match in ATTACHMENT_REDIRECT_PATTERN.finditer(text):
        matches.append((match.start(), match.group('id').lower()))

    if include_public:
        for match in ATTACHMENT_PUBLIC_PATTERN.finditer(text):
            matches.append((match.start(), match.group('id').lower()))
        matches.sort()

    seen = set()
    ids = []
    for _, attachment_id in matches:
        if attachment_id not in seen:
            seen.add(attachment_id)
            ids.append(attachment_id)
    return ids


__all__ = ['parse_attachment_ids']
