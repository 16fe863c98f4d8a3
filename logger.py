"""Logging setup for the exporter: colored console output, rotating log file, progress summaries."""

import copy
import logging
import logging.handlers
import time
from typing import Any, Dict, Optional

import colorlog

LOGGER_NAME = 'kb_exporter'

DEFAULT_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
DEFAULT_DATE_FORMAT = '%Y-%m-%d %H:%M:%S'

LOG_COLORS = {
    'DEBUG': 'cyan',
    'INFO': 'green',
    'WARNING': 'yellow',
    'ERROR': 'red',
    'CRITICAL': 'red,bg_white',
}

LOG_FILE_MAX_BYTES = 10 * 1024 * 1024
LOG_FILE_BACKUPS = 5

SENSITIVE_FIELDS = {
    'password', 'secret', 'api_key', 'api_token', 'access_token', 'authorization'
}

VERBOSITY_LEVELS = [logging.WARNING, logging.INFO, logging.DEBUG]


def _resolve_level(verbosity: int, level: Optional[str]) -> int:
    if not level:
        return VERBOSITY_LEVELS[min(max(verbosity, 0), len(VERBOSITY_LEVELS) - 1)]

    resolved = logging.getLevelName(level.upper())
    if not isinstance(resolved, int):
        raise ValueError(
            f"Invalid log level '{level}'. Must be one of: "
            f"{sorted(logging.getLevelName(lvl) for lvl in (10, 20, 30, 40, 50))}"
        )
    return resolved


def setup_logging(
    verbosity: int = 0,
    log_file: Optional[str] = None,
    level: Optional[str] = None,
    log_format: str = DEFAULT_FORMAT,
    date_format: str = DEFAULT_DATE_FORMAT
) -> logging.Logger:
    """
    Configure the `kb_exporter` logger hierarchy.

    Calling it again replaces the handlers installed by the previous call, so
    the CLI can start with console-only logging and reconfigure once the
    configuration file has been read.

    Args:
        verbosity: -v count (0=WARNING, 1=INFO, 2+=DEBUG)
        log_file: Optional path of a rotating log file
        level: Explicit level name; takes precedence over verbosity
        log_format: Record format shared by console and file
        date_format: Timestamp format

    Returns:
        The configured exporter logger
    """
    log_level = _resolve_level(verbosity, level)

    logger = logging.getLogger(LOGGER_NAME)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    logger.setLevel(log_level)
    # Library loggers (urllib3, markdown) stay on the root logger's defaults
    logger.propagate = False

    console = colorlog.StreamHandler()
    console.setFormatter(colorlog.ColoredFormatter(
        fmt='%(log_color)s' + log_format,
        datefmt=date_format,
        log_colors=LOG_COLORS
    ))
    logger.addHandler(console)

    if log_file:
        try:
            file_handler = logging.handlers.RotatingFileHandler(
                log_file,
                maxBytes=LOG_FILE_MAX_BYTES,
                backupCount=LOG_FILE_BACKUPS,
                encoding='utf-8'
            )
        except OSError as e:
            logger.warning(f"Cannot write log file {log_file}: {e}")
        else:
            file_handler.setFormatter(logging.Formatter(fmt=log_format, datefmt=date_format))
            logger.addHandler(file_handler)
            logger.debug(f"Writing log file {log_file}")

    logger.debug(f"Log level set to {logging.getLevelName(log_level)}")
    return logger


def format_duration(seconds: float) -> str:
    """Human-readable duration: "4.2s", "3m 7s", "1h 2m 5s"."""
    if seconds < 60:
        return f"{seconds:.1f}s"
    minutes, secs = divmod(int(seconds), 60)
    if minutes < 60:
        return f"{minutes}m {secs}s"
    hours, minutes = divmod(minutes, 60)
    return f"{hours}h {minutes}m {secs}s"


class ProgressTracker:
    """
    Counts units of work inside a `with` block and logs where the run stands.

    Every finished item is logged at INFO with its position; leaving the block
    logs a summary, or an abort message when an exception is propagating.
    Exceptions are never suppressed.
    """

    def __init__(self, total_items: int, item_type: str = "items"):
        self.total_items = total_items
        self.item_type = item_type
        self.succeeded = 0
        self.failed = 0
        self._started: Optional[float] = None
        self.logger = logging.getLogger(f'{LOGGER_NAME}.progress')

    @property
    def processed(self) -> int:
        return self.succeeded + self.failed

    @property
    def elapsed(self) -> float:
        return 0.0 if self._started is None else time.monotonic() - self._started

    def __enter__(self) -> 'ProgressTracker':
        self._started = time.monotonic()
        self.logger.info(f"Exporting {self.total_items} {self.item_type}")
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> bool:
        if exc_type is not None:
            self.logger.error(
                f"Export aborted after {self.processed}/{self.total_items} {self.item_type} "
                f"({format_duration(self.elapsed)}): {exc_val}"
            )
            return False

        summary = (
            f"Finished {self.processed}/{self.total_items} {self.item_type} "
            f"in {format_duration(self.elapsed)}"
        )
        if self.failed:
            self.logger.warning(f"{summary}, {self.failed} failed")
        else:
            self.logger.info(summary)
        return False

    def increment(self, success: bool = True) -> None:
        """Record one finished item."""
        if success:
            self.succeeded += 1
        else:
            self.failed += 1
        self.logger.info(f"[{self.processed}/{self.total_items}] {self.item_type} done")

    def get_stats(self) -> Dict[str, Any]:
        """Counters and elapsed time so far."""
        return {
            'total': self.total_items,
            'processed': self.processed,
            'successful': self.succeeded,
            'failed': self.failed,
            'elapsed_time': self.elapsed,
            'elapsed_time_formatted': format_duration(self.elapsed)
        }


def log_section(title: str) -> None:
    """Log a banner line separating the phases of a run."""
    logging.getLogger(LOGGER_NAME).info(f"{'=' * 20} {title} {'=' * 20}")


def log_config(config: Dict[str, Any]) -> None:
    """Log the effective source, storage and export settings with secrets masked."""
    logger = logging.getLogger(LOGGER_NAME)
    settings = sanitize_config(config)
    source = settings.get('source', {})
    storage = settings.get('storage', {})
    export_settings = settings.get('export', {})

    log_section("Configuration")

    if source.get('mode') == 'api':
        logger.info(f"Source: platform API at {source.get('base_url')} (token {source.get('api_token') or 'unset'})")
    else:
        logger.info(f"Source: dump directory {source.get('dump_path')}")

    if storage.get('mode') == 'http':
        logger.info(f"Attachments: HTTP storage at {storage.get('base_url')}")
    else:
        logger.info(f"Attachments: local storage at {storage.get('path')}")

    logger.info(
        f"Export: {export_settings.get('format')} archive to {export_settings.get('output_path')}, "
        f"collections={export_settings.get('collections') or 'all'}, "
        f"workers={export_settings.get('attachments', {}).get('max_workers')}"
    )
    logger.info(f"Environment: {settings.get('environment')}")


def sanitize_config(config: Dict[str, Any]) -> Dict[str, Any]:
    """
    Deep copy of a configuration with credential values replaced.

    Keys are matched case-insensitively against SENSITIVE_FIELDS; empty
    values are left as they are so an unset token still reads as unset.
    """

    def mask(data: Any) -> Any:
        if isinstance(data, dict):
            return {
                key: (
                    "***REDACTED***"
                    if isinstance(value, str) and value
                    and any(field in str(key).lower() for field in SENSITIVE_FIELDS)
                    else mask(value)
                )
                for key, value in data.items()
            }
        if isinstance(data, list):
            return [mask(item) for item in data]
        return data

    return mask(copy.deepcopy(config))


__all__ = [
    'LOGGER_NAME',
    'ProgressTracker',
    'format_duration',
    'log_config',
    'log_section',
    'sanitize_config',
    'setup_logging'
]
