"""
Orchestration package for running a complete export.

Loads the requested collections, builds the archive with the configured
format strategy and reports on the run.
"""

from .export_orchestrator import ExportError, ExportOrchestrator
from .export_report import ExportReport

__all__ = [
    'ExportError',
    'ExportOrchestrator',
    'ExportReport'
]
