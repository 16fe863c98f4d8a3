"""Store backed by the platform's HTTP API."""

import logging
from typing import List, Optional

from models import Attachment, Collection, Document
from platform_client import PlatformClient
from .base_store import BaseStore, StoreError


class ApiStore(BaseStore):
    """Resolves collections, documents and attachments through PlatformClient."""

    def __init__(self, client: PlatformClient, logger: Optional[logging.Logger] = None):
        super().__init__(logger)
        self.client = client

    def find_collections(self, collection_ids: Optional[List[str]] = None) -> List[Collection]:
        if collection_ids:
            records = []
            for collection_id in collection_ids:
                record = self.client.get_collection(collection_id)
                if record is None:
                    raise StoreError(f"Collection not found: {collection_id}")
                records.append(record)
        else:
            records = self.client.list_collections()

        collections = []
        for record in records:
            # list/info omit the tree, it has its own endpoint
            if record.get('documentStructure') is None:
                record = dict(record)
                record['documentStructure'] = self.client.get_document_structure(record['id'])
            collections.append(Collection.from_dict(record))

        self.logger.info(f"Loaded {len(collections)} collection(s) from API")
        return collections

    def find_document(self, document_id: str, include_state: bool = True) -> Optional[Document]:
        # documents.info always answers with the latest merged revision
        record = self.client.get_document(document_id)
        if record is None:
            return None

        document = Document.from_dict(record)
        if not include_state:
            document.content = None
        return document

    def find_attachments(self, team_id: Optional[str], attachment_ids: List[str]) -> List[Attachment]:
        attachments = []
        for attachment_id in attachment_ids:
            record = self.client.get_attachment(attachment_id)
            if record is None:
                continue
            attachment = Attachment.from_dict(record)
            if attachment.team_id == team_id:
                attachments.append(attachment)
        return attachments

    def close(self) -> None:
        self.client.close()
