"""
Export orchestrator driving one complete export run.

Sequences the run: load collections → build archive with the configured
format → move the finalized archive into place → report.
"""

import logging
import shutil
import time
from pathlib import Path
from typing import Any, Dict, Optional

from exporters import ExporterFactory
from logger import log_section
from models import ExportFormat
from storage import BaseBlobStorage
from stores import BaseStore
from .export_report import ExportReport


class ExportError(Exception):
    """Raised when an export run cannot be set up."""
    pass


class ExportOrchestrator:
    """Coordinates collection loading, archive building and delivery of the archive file."""

    def __init__(
        self,
        config: Dict[str, Any],
        store: BaseStore,
        storage: BaseBlobStorage,
        logger: Optional[logging.Logger] = None
    ):
        """
        Initialize export orchestrator.

        Args:
            config: Configuration dictionary
            store: Lookup for collections, documents and attachments
            storage: Blob storage attachments are read from
            logger: Optional logger instance
        """
        self.config = config
        self.store = store
        self.storage = storage
        self.logger = logger or logging.getLogger('kb_exporter.orchestrator')

        export_config = config.get('export', {})
        try:
            self.export_format = ExportFormat(export_config.get('format', 'json'))
        except ValueError as e:
            raise ExportError(str(e)) from e
        self.output_path = Path(export_config.get('output_path', './export.zip'))
        self.collection_ids = export_config.get('collections') or None

        self.report_generator = ExportReport(logger=self.logger)

    def run(self) -> Dict[str, Any]:
        """
        Execute the export.

        Any failure aborts the run and propagates; the output path is only
        written once the archive has been finalized completely.

        Returns:
            Report dictionary
        """
        start_time = time.time()

        log_section("Loading collections")
        collections = self.store.find_collections(self.collection_ids)
        self.logger.info(f"Exporting {len(collections)} collection(s) as {self.export_format.value}")

        exporter = ExporterFactory.create_exporter(
            self.export_format, self.config, self.store, self.storage, logger=self.logger
        )

        log_section(f"Building {self.export_format.value} archive")
        archive_path = exporter.export(collections)

        destination = self._deliver(archive_path)

        report = self.report_generator.generate_report(
            exporter.stats,
            self.export_format.value,
            str(destination),
            time.time() - start_time
        )
        self.logger.info(f"Export complete in {report['duration_formatted']}: {destination}")
        return report

    def _deliver(self, archive_path: Path) -> Path:
        """Move the temporary archive to the configured output path."""
        destination = self.output_path
        try:
            destination.parent.mkdir(parents=True, exist_ok=True)
            shutil.move(str(archive_path), str(destination))
        except OSError:
            archive_path.unlink(missing_ok=True)
            raise
        return destination
