"""Filename sanitization for archive entry names."""

import re

MAX_FILENAME_LENGTH = 255

# NUL and other C0 control characters are rejected by most unzip tools
CONTROL_CHARS_PATTERN = re.compile(r'[\x00-\x1f\x7f]')


def serialize_filename(text: str) -> str:
    """
    Turn arbitrary text (a collection or document title) into a single path segment.

    Slashes are percent-encoded so a title never creates extra folders inside
    the archive, control characters are dropped and the result is truncated
    to the common filesystem limit.

    Args:
        text: Title to sanitize

    Returns:
        Sanitized filename segment (may be empty)
    """
    if not text:
        return ""
    cleaned = CONTROL_CHARS_PATTERN.sub('', text)
    cleaned = cleaned.replace('/', '%2F')
    return cleaned[:MAX_FILENAME_LENGTH]


def deserialize_filename(text: str) -> str:
    """Reverse serialize_filename's slash encoding."""
    return text.replace('%2F', '/')


__all__ = ['serialize_filename', 'deserialize_filename', 'MAX_FILENAME_LENGTH']
