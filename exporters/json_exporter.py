"""JSON backup format: one manifest per collection plus attachment blobs."""

import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional

from converters import ProsemirrorRenderer
from logger import ProgressTracker
from models import BACKUP_VERSION, Collection, ExportStats, format_datetime
from storage import BaseBlobStorage
from stores import BaseStore
from utils import serialize_filename
from version import __version__
from .archive_builder import ArchiveBuilder
from .attachment_fetcher import DEFAULT_MAX_WORKERS, AttachmentFetcher
from .base_exporter import unique_entry_name
from .tree_walker import TreeWalker

METADATA_ENTRY = 'metadata.json'


class JsonExporter:
    """
    Builds the JSON backup archive.

    Collections are processed strictly one after another; attachment fetches
    run concurrently only within a single document. Any error other than a
    failed attachment fetch aborts the whole export and no archive is produced.
    """

    def __init__(
        self,
        config: Dict[str, Any],
        store: BaseStore,
        storage: BaseBlobStorage,
        renderer: Optional[ProsemirrorRenderer] = None,
        logger: Optional[logging.Logger] = None
    ):
        """
        Initialize the JSON exporter.

        Args:
            config: Configuration dictionary
            store: Lookup for documents and attachments
            storage: Blob storage attachments are read from
            renderer: Content renderer for document snapshots
            logger: Logger instance
        """
        self.config = config
        self.store = store
        self.storage = storage
        self.renderer = renderer or ProsemirrorRenderer()
        self.logger = logger or logging.getLogger('kb_exporter.exporters.json_exporter')

        export_config = config.get('export', {})
        self.max_workers = export_config.get('attachments', {}).get('max_workers', DEFAULT_MAX_WORKERS)
        self.pretty = (
            export_config.get('pretty_json', False)
            or config.get('environment') == 'development'
        )
        self.temp_directory = export_config.get('temp_directory')
        self.show_progress = export_config.get('progress_bars', False)

        self.stats = ExportStats()

    def export(self, collections: List[Collection]) -> Path:
        """
        Export collections into a finalized ZIP archive.

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
        # manifest names and metadata.json; attachments may not take them
        used_names = {METADATA_ENTRY}
        walker = TreeWalker(
            self.store, fetcher, archive,
            renderer=self.renderer, stats=self.stats, logger=self.logger,
            reserved_names=used_names
        )

        with ProgressTracker(total_items=len(collections), item_type='collections') as tracker:
            for collection in collections:
                self._add_collection(archive, walker, collection, used_names)
                self.stats.collections += 1
                tracker.increment(success=True)

        self._add_metadata(archive)
        return archive.finalize(self.temp_directory)

    def _add_collection(
        self,
        archive: ArchiveBuilder,
        walker: TreeWalker,
        collection: Collection,
        used_names: set
    ) -> None:
        self.logger.info(f"Exporting collection '{collection.name}' ({collection.count_nodes()} node(s))")

        manifest = walker.build_manifest(collection)

        taken = used_names.union(archive.names())
        name = unique_entry_name(f"{serialize_filename(collection.name) or 'Untitled'}.json", taken)
        used_names.add(name)
        archive.add_entry(name, self._dumps(manifest))

        self.logger.debug(f"Wrote manifest '{name}'")

    def _add_metadata(self, archive: ArchiveBuilder) -> None:
        metadata = {
            'backupVersion': BACKUP_VERSION,
            'version': __version__,
            'createdAt': format_datetime(datetime.now(timezone.utc))
        }
        archive.add_entry(METADATA_ENTRY, self._dumps(metadata))

    def _dumps(self, data: Any) -> str:
        if self.pretty:
            return json.dumps(data, indent=2, ensure_ascii=False)
        return json.dumps(data, ensure_ascii=False)
