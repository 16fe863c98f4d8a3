"""Archive exporters for the knowledge-base export pipeline.

Package Structure:
- archive_builder: In-memory ZIP builder finalized into a temporary file
- attachment_fetcher: Bounded per-document fan-out over blob storage
- tree_walker: Depth-first traversal producing per-collection manifests
- json_exporter: JSON backup format (manifests + metadata + blobs)
- markdown_exporter: Markdown format (folder tree of .md files + blobs)
- link_rewriter: Rewrites attachment links to archive-relative paths
- base_exporter: Exporter protocol and entry-name de-duplication

Every format implements the same contract, export(collections) -> Path,
and is selected through ExporterFactory.
"""

from models import ExportFormat

from .archive_builder import ArchiveBuilder, ArchiveError
from .attachment_fetcher import AttachmentFetcher, FetchResult
from .base_exporter import Exporter, unique_entry_name
from .json_exporter import JsonExporter
from .link_rewriter import LinkRewriter
from .markdown_exporter import MarkdownExporter
from .tree_walker import TreeWalker


class ExporterFactory:
    """Factory for creating the exporter of a given archive format."""

    @staticmethod
    def create_exporter(export_format, config: dict, store, storage, logger=None) -> Exporter:
        """Create the exporter for a format.

        Args:
            export_format: ExportFormat or its string value
            config: Configuration dictionary
            store: BaseStore used for lookups
            storage: BaseBlobStorage attachments are fetched from
            logger: Logger instance

        Returns:
            Exporter instance (JsonExporter or MarkdownExporter)

        Raises:
            ValueError: If the format is unknown
        """
        export_format = ExportFormat(export_format)

        if export_format == ExportFormat.JSON:
            return JsonExporter(config, store, storage, logger=logger)
        elif export_format == ExportFormat.MARKDOWN:
            return MarkdownExporter(config, store, storage, logger=logger)
        raise ValueError(f"Unsupported export format: {export_format}")


__all__ = [
    'ArchiveBuilder',
    'ArchiveError',
    'AttachmentFetcher',
    'Exporter',
    'ExporterFactory',
    'FetchResult',
    'JsonExporter',
    'LinkRewriter',
    'MarkdownExporter',
    'TreeWalker',
    'unique_entry_name'
]
