#!/usr/bin/env python3
"""
Knowledge Base Export Tool - Main CLI Entry Point

Builds a ZIP archive of one or more collections, either as a JSON backup
(one manifest per collection plus attachment blobs and metadata.json) or as
a tree of markdown files.
"""

import argparse
import logging
import os
import sys
from typing import List, Optional

from config_loader import ConfigLoader
from logger import log_config, log_section, setup_logging
from models import ExportFormat
from orchestrator import ExportOrchestrator, ExportReport
from storage import create_blob_storage
from stores import StoreFactory
from version import __version__


def create_argument_parser() -> argparse.ArgumentParser:
    """Create and configure the argument parser for CLI."""
    parser = argparse.ArgumentParser(
        prog='kb-export',
        description="Export knowledge-base collections to a ZIP archive",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # JSON backup of every collection
  kb-export --config config.yaml

  # Markdown export of two collections
  kb-export --format markdown --collections 1d8a...,7c2f...

  # Export straight from a dump directory
  kb-export --source-mode file --dump-path ./dump --output backup.zip

  # Verbose logging
  kb-export -vv
        """
    )

    parser.add_argument(
        '--version',
        action='version',
        version=f'%(prog)s {__version__}'
    )

    parser.add_argument(
        '--config',
        type=str,
        default='config.yaml',
        help='Path to configuration YAML file (default: config.yaml)'
    )

    parser.add_argument(
        '--format',
        choices=[f.value for f in ExportFormat],
        help='Archive format (default: from config, else json)'
    )

    parser.add_argument(
        '--output',
        type=str,
        help='Path the finished archive is written to'
    )

    parser.add_argument(
        '--collections',
        type=str,
        help='Comma-separated collection ids to export (default: all)'
    )

    parser.add_argument(
        '--source-mode',
        choices=['file', 'api'],
        help='Read collections from a dump directory or the platform API'
    )

    parser.add_argument(
        '--dump-path',
        type=str,
        help='Dump directory used in file mode'
    )

    parser.add_argument(
        '--storage-path',
        type=str,
        help='Local directory attachment blobs are read from'
    )

    parser.add_argument(
        '--max-workers',
        type=int,
        help='Concurrent attachment fetches per document'
    )

    parser.add_argument(
        '--environment',
        choices=['production', 'development', 'test'],
        help='Runtime environment (development pretty-prints JSON)'
    )

    parser.add_argument(
        '--log-file',
        type=str,
        help='Also write logs to this rotating file'
    )

    parser.add_argument(
        '--report',
        type=str,
        help='Write the export report as JSON to this path'
    )

    parser.add_argument(
        '-v', '--verbose',
        action='count',
        default=0,
        help='Increase verbosity (-v for INFO, -vv for DEBUG)'
    )

    return parser


def load_configuration(config_path: str, logger: logging.Logger) -> dict:
    """Load the config file, falling back to defaults when it does not exist."""
    if os.path.exists(config_path):
        logger.info(f"Loading configuration from {config_path}")
        return ConfigLoader.load(config_path)

    logger.info(f"No configuration file at {config_path}, using defaults")
    return ConfigLoader.with_defaults({})


def run_export(config: dict, args: argparse.Namespace, logger: logging.Logger) -> int:
    """Execute the export and print the report."""
    store = StoreFactory.create_store(config, logger)
    storage = create_blob_storage(config)

    try:
        orchestrator = ExportOrchestrator(config, store, storage, logger)
        report = orchestrator.run()
    finally:
        storage.close()
        store.close()

    report_generator = ExportReport(logger=logger)
    print(report_generator.format_console_report(report))

    if args.report:
        report_generator.export_json_report(report, args.report)

    return 0


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for the CLI."""
    parser = create_argument_parser()
    args = parser.parse_args(argv)

    logger = setup_logging(verbosity=args.verbose)

    try:
        log_section("Knowledge Base Export Tool")
        logger.info(f"Version: {__version__}")

        config = load_configuration(args.config, logger)

        # CLI arguments take precedence
        config = ConfigLoader.merge_with_args(config, args)
        ConfigLoader.validate(config)

        logging_config = config.get('logging', {})
        logger = setup_logging(
            verbosity=args.verbose,
            log_file=logging_config.get('file'),
            level=None if args.verbose else logging_config.get('level')
        )

        log_config(config)

        return run_export(config, args, logger)

    except KeyboardInterrupt:
        print("\nExport interrupted by user", file=sys.stderr)
        return 1
    except Exception as e:
        logger.error(f"Export failed: {e}", exc_info=logger.isEnabledFor(logging.DEBUG))
        print(f"ERROR: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
