"""Abstract persistence lookup interface for collections, documents and attachments."""

import logging
from abc import ABC, abstractmethod
from typing import List, Optional

from models import Attachment, Collection, Document


class StoreError(Exception):
    """Base exception for persistence lookup errors."""
    pass


class BaseStore(ABC):
    """Abstract read-only lookup over the platform's persisted content."""

    def __init__(self, logger: Optional[logging.Logger] = None):
        self.logger = logger or logging.getLogger('kb_exporter.store')

    @abstractmethod
    def find_collections(self, collection_ids: Optional[List[str]] = None) -> List[Collection]:
        """
        Load collections with their document structure.

        Args:
            collection_ids: Optional ids to restrict to; results follow this order

        Returns:
            List of Collection objects

        Raises:
            StoreError: If a requested collection does not exist
        """
        pass

    @abstractmethod
    def find_document(self, document_id: str, include_state: bool = True) -> Optional[Document]:
        """
        Load a single document.

        Args:
            document_id: Document id
            include_state: Include the latest merged collaborative state rather
                than only the last saved markdown body

        Returns:
            Document, or None if no such document exists
        """
        pass

    @abstractmethod
    def find_attachments(self, team_id: Optional[str], attachment_ids: List[str]) -> List[Attachment]:
        """
        Load the attachments with the given ids that belong to a team.

        Ids that do not exist or belong to another team are silently dropped.
        Results follow the order of attachment_ids.
        """
        pass

    def find_collection(self, collection_id: str) -> Collection:
        """Load one collection by id."""
        return self.find_collections([collection_id])[0]

    def close(self) -> None:
        """Release any held resources."""
        pass
