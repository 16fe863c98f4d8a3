"""Bounded concurrent fetching of the attachments referenced by one document."""

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import List, Optional

from tqdm import tqdm

from models import Attachment, Document
from storage import BaseBlobStorage
from stores import BaseStore
from utils import parse_attachment_ids

DEFAULT_MAX_WORKERS = 10


@dataclass
class FetchResult:
    """Outcome of fetching one attachment blob."""

    attachment: Attachment
    data: Optional[bytes] = None
    error: Optional[Exception] = None

    @property
    def ok(self) -> bool:
        return self.error is None


class AttachmentFetcher:
    """
    Resolves and downloads the attachments a document references.

    All of a document's fetches are dispatched together on a bounded thread
    pool and joined before returning, so at most one document's attachment
    set is in flight at any time. Worker threads only read from storage;
    results are handed back in submission order for the caller to apply.
    A failed fetch is logged with its storage key and reported in the
    result instead of being raised.
    """

    def __init__(
        self,
        store: BaseStore,
        storage: BaseBlobStorage,
        max_workers: int = DEFAULT_MAX_WORKERS,
        logger: Optional[logging.Logger] = None,
        show_progress: bool = False
    ):
        if max_workers < 1:
            raise ValueError("max_workers must be a positive integer")

        self.store = store
        self.storage = storage
        self.max_workers = max_workers
        self.show_progress = show_progress
        self.logger = logger or logging.getLogger('kb_exporter.exporters.attachment_fetcher')

    def find_attachments(self, document: Document) -> List[Attachment]:
        """Attachments referenced by a document's body and owned by its team."""
        attachment_ids = parse_attachment_ids(document.text)
        if not attachment_ids:
            return []
        return self.store.find_attachments(document.team_id, attachment_ids)

    def fetch_for_document(self, document: Document) -> List[FetchResult]:
        """Find and fetch every attachment of a document."""
        attachments = self.find_attachments(document)
        if attachments:
            self.logger.debug(
                f"Fetching {len(attachments)} attachment(s) for document '{document.title}'"
            )
        return self.fetch_all(attachments)

    def fetch_all(self, attachments: List[Attachment]) -> List[FetchResult]:
        """
        Fetch a set of attachments concurrently and wait for all of them.

        Args:
            attachments: Attachments to download

        Returns:
            One FetchResult per attachment, in input order
        """
        if not attachments:
            return []

        results = []
        with ThreadPoolExecutor(max_workers=min(self.max_workers, len(attachments))) as executor:
            futures = [
                executor.submit(self.storage.get_file_by_key, attachment.key)
                for attachment in attachments
            ]

            pending = zip(attachments, futures)
            if self.show_progress:
                pending = tqdm(pending, desc="Fetching attachments", total=len(attachments), leave=False)

            for attachment, future in pending:
                try:
                    results.append(FetchResult(attachment=attachment, data=future.result()))
                except Exception as e:
                    self.logger.error(
                        f"Failed to add attachment to archive: {attachment.key}: {e}",
                        exc_info=self.logger.isEnabledFor(logging.DEBUG)
                    )
                    results.append(FetchResult(attachment=attachment, error=e))

        return results
