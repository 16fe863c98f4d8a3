"""Markdown archive format: one folder per collection, one file per document."""

import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Set

import yaml

from logger import ProgressTracker
from models import Collection, Document, ExportStats, NavigationNode, format_datetime
from storage import BaseBlobStorage
from stores import BaseStore
from utils import serialize_filename
from .archive_builder import ArchiveBuilder
from .attachment_fetcher import DEFAULT_MAX_WORKERS, AttachmentFetcher
from .base_exporter import unique_entry_name
from .link_rewriter import LinkRewriter


class MarkdownExporter:
    """
    Exports collections as a tree of markdown files inside a ZIP archive.

    This exporter:
    1. Creates one folder per collection
    2. Writes each document as "<title>.md", children in a sub-folder named after it
    3. Stores attachment blobs under their storage keys
    4. Rewrites attachment links to archive-relative paths
    5. Optionally prefixes each file with YAML frontmatter
    """

    def __init__(
        self,
        config: Dict[str, Any],
        store: BaseStore,
        storage: BaseBlobStorage,
        logger: Optional[logging.Logger] = None
    ):
        """
        Initialize the markdown exporter.

        Args:
            config: Configuration dictionary with export settings
            store: Lookup for documents and attachments
            storage: Blob storage attachments are read from
            logger: Logger instance
        """
        self.config = config
        self.store = store
        self.storage = storage
        self.logger = logger or logging.getLogger('kb_exporter.exporters.markdown_exporter')

        export_config = config.get('export', {})
        self.max_workers = export_config.get('attachments', {}).get('max_workers', DEFAULT_MAX_WORKERS)
        self.include_frontmatter = export_config.get('frontmatter', False)
        self.temp_directory = export_config.get('temp_directory')
        self.show_progress = export_config.get('progress_bars', False)

        self.link_rewriter = LinkRewriter(logger=self.logger)
        self.stats = ExportStats()

    def export(self, collections: List[Collection]) -> Path:
        """
        Export collections into a finalized ZIP archive of markdown files.

        Args:
            collections: Collections to export, in archive order

        Returns:
            Path of the temporary archive file
        """
        self.stats = ExportStats()
        archive = ArchiveBuilder()
        fetcher = AttachmentFetcher(
            self.store, self.storage, self.max_workers,
            logger=self.logger, show_progress=self.show_progress
        )
        used_names: Set[str] = set()

        with ProgressTracker(total_items=len(collections), item_type='collections') as tracker:
            for collection in collections:
                folder = unique_entry_name(serialize_filename(collection.name) or 'Untitled', used_names)
                used_names.add(folder)
                self.logger.info(f"Exporting collection '{collection.name}' to folder '{folder}'")

                self._add_document_tree(
                    archive, fetcher, collection.document_structure or [], folder, used_names
                )
                self.stats.collections += 1
                tracker.increment(success=True)

        return archive.finalize(self.temp_directory)

    def _add_document_tree(
        self,
        archive: ArchiveBuilder,
        fetcher: AttachmentFetcher,
        nodes: List[NavigationNode],
        folder: str,
        used_names: Set[str]
    ) -> None:
        for node in nodes:
            document = self.store.find_document(node.id, include_state=True)
            child_folder = folder

            if document is None:
                self.logger.debug(f"Document {node.id} not found, skipping node")
                self.stats.documents_missing += 1
            else:
                name = self._add_document(archive, fetcher, document, folder, used_names)
                child_folder = name[:-len('.md')]
                self.stats.documents_exported += 1

            if node.children:
                self._add_document_tree(archive, fetcher, node.children, child_folder, used_names)

    def _add_document(
        self,
        archive: ArchiveBuilder,
        fetcher: AttachmentFetcher,
        document: Document,
        folder: str,
        used_names: Set[str]
    ) -> str:
        exported = []
        for result in fetcher.fetch_for_document(document):
            if not result.ok:
                self.stats.attachments_failed += 1
                continue
            archive.add_entry(result.attachment.key, result.data, create_folders=True)
            exported.append(result.attachment)
            self.stats.attachments_exported += 1

        text, _, _ = self.link_rewriter.rewrite_links(document.text, exported, folder)
        content = f"# {document.title}\n\n{text}"
        if self.include_frontmatter:
            content = f"{self._generate_frontmatter(document)}\n{content}"

        title = serialize_filename(document.title) or 'Untitled'
        name = unique_entry_name(f"{folder}/{title}.md", used_names)
        used_names.add(name)

        archive.add_entry(
            name,
            content,
            create_folders=True,
            date=document.updated_at,
            comment=json.dumps({
                'createdAt': format_datetime(document.created_at),
                'updatedAt': format_datetime(document.updated_at)
            })
        )
        self.logger.debug(f"Wrote '{name}' ({len(exported)} attachment(s))")
        return name

    def _generate_frontmatter(self, document: Document) -> str:
        """Generate YAML frontmatter describing the document."""
        frontmatter = {
            'id': document.id,
            'urlId': document.url_id,
            'title': document.title,
            'createdAt': format_datetime(document.created_at),
            'updatedAt': format_datetime(document.updated_at),
            'publishedAt': format_datetime(document.published_at),
            'template': document.template,
            'parentDocumentId': document.parent_document_id
        }
        body = yaml.safe_dump(frontmatter, sort_keys=False, allow_unicode=True)
        return f"---\n{body}---\n"
