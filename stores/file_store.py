"""Store reading a platform dump from a local directory."""

import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

from models import Attachment, Collection, Document
from .base_store import BaseStore, StoreError


class FileStore(BaseStore):
    """
    Read-only store over a directory dump.

    Layout:
        collections.yaml | collections.json   list of collections with documentStructure
        documents/<id>.json                   one file per document
        attachments.json                      list of attachment records
    """

    def __init__(self, dump_path: str, logger: Optional[logging.Logger] = None):
        super().__init__(logger)
        self.root = Path(dump_path)
        if not self.root.is_dir():
            raise StoreError(f"Dump directory does not exist: {dump_path}")

        self.documents_dir = self.root / 'documents'
        self._attachments: Optional[Dict[str, Attachment]] = None

        self.logger.info(f"FileStore initialized at {self.root}")

    def _read_structured(self, path: Path) -> Any:
        try:
            with open(path, 'r', encoding='utf-8') as f:
                if path.suffix in ('.yaml', '.yml'):
                    return yaml.safe_load(f)
                return json.load(f)
        except (OSError, ValueError, yaml.YAMLError) as e:
            raise StoreError(f"Failed to read {path}: {e}") from e

    def _load_collection_records(self) -> List[Dict[str, Any]]:
        for name in ('collections.yaml', 'collections.yml', 'collections.json'):
            path = self.root / name
            if path.exists():
                records = self._read_structured(path) or []
                if not isinstance(records, list):
                    raise StoreError(f"{path} must contain a list of collections")
                return records
        raise StoreError(f"No collections file found in {self.root}")

    def find_collections(self, collection_ids: Optional[List[str]] = None) -> List[Collection]:
        collections = [Collection.from_dict(record) for record in self._load_collection_records()]

        if not collection_ids:
            return collections

        by_id = {collection.id: collection for collection in collections}
        missing = [cid for cid in collection_ids if cid not in by_id]
        if missing:
            raise StoreError(f"Collections not found: {', '.join(missing)}")
        return [by_id[cid] for cid in collection_ids]

    def find_document(self, document_id: str, include_state: bool = True) -> Optional[Document]:
        # ids come from the dump itself, but never let one walk out of the directory
        if '/' in document_id or '\\' in document_id or document_id in ('', '.', '..'):
            self.logger.warning(f"Ignoring malformed document id: {document_id!r}")
            return None

        path = self.documents_dir / f"{document_id}.json"
        if not path.exists():
            return None

        data = self._read_structured(path)
        document = Document.from_dict(data)
        if not include_state:
            document.content = None
        return document

    def _attachment_index(self) -> Dict[str, Attachment]:
        if self._attachments is None:
            path = self.root / 'attachments.json'
            records = self._read_structured(path) if path.exists() else []
            self._attachments = {
                record['id'].lower(): Attachment.from_dict(record) for record in records or []
            }
            self.logger.debug(f"Indexed {len(self._attachments)} attachments")
        return self._attachments

    def find_attachments(self, team_id: Optional[str], attachment_ids: List[str]) -> List[Attachment]:
        index = self._attachment_index()
        found = []
        for attachment_id in attachment_ids:
            attachment = index.get(attachment_id.lower())
            if attachment is not None and attachment.team_id == team_id:
                found.append(attachment)
        return found
