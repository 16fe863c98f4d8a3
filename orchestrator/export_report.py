"""Export report generation and formatting."""

import json
import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from logger import format_duration
from models import ExportStats, format_datetime


class ExportReport:
    """Builds the run summary printed after an export and optionally saved as JSON."""

    def __init__(self, logger: Optional[logging.Logger] = None):
        self.logger = logger or logging.getLogger('kb_exporter.orchestrator.report')

    def generate_report(
        self,
        stats: ExportStats,
        export_format: str,
        output_path: str,
        duration: float
    ) -> Dict[str, Any]:
        """
        Generate the report for a finished export.

        Args:
            stats: Counters collected by the exporter
            export_format: Archive format value
            output_path: Where the archive was written
            duration: Run time in seconds

        Returns:
            Report dictionary
        """
        return {
            'summary': stats.to_dict(),
            'format': export_format,
            'output_path': output_path,
            'duration': round(duration, 3),
            'duration_formatted': format_duration(duration),
            'timestamp': format_datetime(datetime.now(timezone.utc))
        }

    def format_console_report(self, report: Dict[str, Any]) -> str:
        """Format a report for console display."""
        summary = report.get('summary', {})
        sections = [
            "=" * 60,
            "EXPORT REPORT",
            "=" * 60,
            f"  Format:               {report.get('format', 'unknown')}",
            f"  Archive:              {report.get('output_path', '-')}",
            f"  Collections:          {summary.get('collections', 0)}",
            f"  Documents exported:   {summary.get('documents_exported', 0)}",
            f"  Documents missing:    {summary.get('documents_missing', 0)}",
            f"  Attachments exported: {summary.get('attachments_exported', 0)}",
            f"  Attachments failed:   {summary.get('attachments_failed', 0)}",
            f"  Duration:             {report.get('duration_formatted', '0s')}",
            "=" * 60,
        ]
        return "\n".join(sections)

    def export_json_report(self, report: Dict[str, Any], filepath: str) -> None:
        """Write a report to a JSON file."""
        with open(filepath, 'w', encoding='utf-8') as f:
            json.dump(report, f, indent=2, ensure_ascii=False)
        self.logger.info(f"JSON report exported to {filepath}")

