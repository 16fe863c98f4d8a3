"""Link rewriter pointing attachment URLs in markdown at archive-relative paths."""

import logging
import posixpath
import re
from typing import Dict, List, Optional, Tuple
from urllib.parse import quote

from models import Attachment
from utils.attachment_ids import UUID_PATTERN

MAX_CHARS_BETWEEN_BRACKETS = 1000  # Prevent catastrophic backtracking


class LinkRewriter:
    """
    Rewrites markdown links and images that embed attachments.

    This rewriter:
    1. Finds markdown links [text](url) and images ![alt](url)
    2. Matches redirect URLs against the attachments written to the archive
    3. Replaces them with paths relative to the document's folder
    """

    def __init__(self, logger: Optional[logging.Logger] = None):
        """
        Initialize the link rewriter.

        Args:
            logger: Logger instance
        """
        self.logger = logger or logging.getLogger('kb_exporter.exporters.link_rewriter')

        self.link_pattern = re.compile(
            r'(!?)\[([^\]]{0,' + str(MAX_CHARS_BETWEEN_BRACKETS) + r'})\]\(([^\)\s]*)((?:\s+"[^"]*")?)\)'
        )
        self.redirect_pattern = re.compile(
            r'^(?:https?://[^/]+)?/api/attachments\.redirect\?id=(' + UUID_PATTERN + r')',
            re.IGNORECASE
        )

    def rewrite_links(
        self,
        markdown: str,
        attachments: List[Attachment],
        folder: str = ""
    ) -> Tuple[str, int, List[str]]:
        """
        Rewrite attachment links in a document body.

        Args:
            markdown: Markdown content
            attachments: Attachments written to the archive for this document
            folder: Archive folder the document is written into

        Returns:
            Tuple of (updated_markdown, rewritten_count, broken_references)
        """
        if not markdown:
            return "", 0, []

        key_by_id: Dict[str, str] = {a.id.lower(): a.key for a in attachments}
        rewritten_count = 0
        broken_references = []

        def replace_url(match):
            nonlocal rewritten_count

            bang, text, url, title = match.groups()
            redirect = self.redirect_pattern.match(url)
            if not redirect:
                return match.group(0)

            attachment_id = redirect.group(1).lower()
            key = key_by_id.get(attachment_id)
            if key is None:
                broken_references.append(attachment_id)
                return match.group(0)

            rewritten_count += 1
            return f"{bang}[{text}]({self.relative_path(key, folder)}{title})"

        result = self.link_pattern.sub(replace_url, markdown)

        if broken_references:
            self.logger.debug(
                f"{len(broken_references)} attachment link(s) left untouched: {', '.join(broken_references)}"
            )
        return result, rewritten_count, broken_references

    @staticmethod
    def relative_path(key: str, folder: str) -> str:
        """URL-encoded path from an archive folder to an entry at the archive root."""
        relative = posixpath.relpath(key, folder) if folder else key
        return quote(relative)
