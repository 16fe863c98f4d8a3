"""Depth-first traversal of a collection's document tree into manifest maps."""

import logging
from typing import Any, Container, Dict, List, Optional, Tuple

from converters import ProsemirrorRenderer
from models import Collection, Document, ExportStats, NavigationNode, format_datetime
from presenters import present_attachment, present_collection
from stores import BaseStore
from .archive_builder import ArchiveBuilder
from .attachment_fetcher import AttachmentFetcher


class TreeWalker:
    """
    Walks one collection's document structure and builds its export manifest.

    Nodes are visited pre-order with sibling order preserved; a node's whole
    subtree is finished before its next sibling starts. Attachment blobs are
    written to the archive as a side effect.
    """

    def __init__(
        self,
        store: BaseStore,
        fetcher: AttachmentFetcher,
        archive: ArchiveBuilder,
        renderer: Optional[ProsemirrorRenderer] = None,
        stats: Optional[ExportStats] = None,
        logger: Optional[logging.Logger] = None,
        reserved_names: Container[str] = ()
    ):
        self.store = store
        self.fetcher = fetcher
        self.archive = archive
        self.renderer = renderer or ProsemirrorRenderer()
        self.stats = stats if stats is not None else ExportStats()
        self.reserved_names = reserved_names
        self.logger = logger or logging.getLogger('kb_exporter.exporters.tree_walker')

    def build_manifest(self, collection: Collection) -> Dict[str, Any]:
        """
        Build the complete export manifest for a collection.

        Args:
            collection: Collection to export

        Returns:
            Manifest dictionary ready for JSON serialization
        """
        documents, attachments = self.walk(collection)

        manifest = present_collection(collection)
        # access URLs are instance specific
        manifest.pop('url', None)
        manifest['description'] = self.renderer.render_description(collection.description)
        manifest['documentStructure'] = collection.structure_to_dict()
        manifest['documents'] = documents
        manifest['attachments'] = attachments
        return manifest

    def walk(self, collection: Collection) -> Tuple[Dict[str, Any], Dict[str, Any]]:
        """
        Traverse a collection's tree.

        Returns:
            Tuple of (documents map, attachments map), both keyed by id
        """
        documents: Dict[str, Any] = {}
        attachments: Dict[str, Any] = {}

        if collection.document_structure:
            self._walk_nodes(collection.document_structure, documents, attachments)

        self.logger.debug(
            f"Collection '{collection.name}': {len(documents)} document(s), "
            f"{len(attachments)} attachment(s)"
        )
        return documents, attachments

    def _walk_nodes(
        self,
        nodes: List[NavigationNode],
        documents: Dict[str, Any],
        attachments: Dict[str, Any]
    ) -> None:
        for node in nodes:
            document = self.store.find_document(node.id, include_state=True)

            if document is None:
                # children of a missing document are still exported
                self.logger.debug(f"Document {node.id} not found, skipping node")
                self.stats.documents_missing += 1
            else:
                self._add_attachments(document, attachments)
                documents[document.id] = self._snapshot(document)
                self.stats.documents_exported += 1

            if node.children:
                self._walk_nodes(node.children, documents, attachments)

    def _add_attachments(self, document: Document, attachments: Dict[str, Any]) -> None:
        for result in self.fetcher.fetch_for_document(document):
            if not result.ok:
                self.stats.attachments_failed += 1
                continue

            attachment = result.attachment
            if attachment.key in self.reserved_names:
                self.logger.error(
                    f"Failed to add attachment to archive: {attachment.key} (entry name is reserved)"
                )
                self.stats.attachments_failed += 1
                continue

            self.archive.add_entry(attachment.key, result.data, create_folders=True)

            descriptor = present_attachment(attachment)
            descriptor['key'] = attachment.key
            descriptor.pop('url', None)
            attachments[attachment.id] = descriptor
            self.stats.attachments_exported += 1

    def _snapshot(self, document: Document) -> Dict[str, Any]:
        return {
            'id': document.id,
            'urlId': document.url_id,
            'title': document.title,
            'data': self.renderer.render_document(document),
            'createdAt': format_datetime(document.created_at),
            'updatedAt': format_datetime(document.updated_at),
            'publishedAt': format_datetime(document.published_at),
            'fullWidth': document.full_width,
            'template': document.template,
            'parentDocumentId': document.parent_document_id
        }
