"""Stores package for looking up collections, documents and attachments."""

from platform_client import PlatformClient

from .base_store import BaseStore, StoreError
from .file_store import FileStore
from .api_store import ApiStore


class StoreFactory:
    """Factory for creating store instances based on configuration."""

    @staticmethod
    def create_store(config: dict, logger=None):
        """Create appropriate store based on config mode.

        Args:
            config: Configuration dictionary
            logger: Logger instance

        Returns:
            BaseStore instance (FileStore or ApiStore)

        Raises:
            ValueError: If mode is invalid
        """
        source = config.get('source', {})
        mode = source.get('mode', 'file')

        if mode == 'file':
            return FileStore(source.get('dump_path', './dump'), logger)
        elif mode == 'api':
            return ApiStore(PlatformClient.from_config(config), logger)
        else:
            raise ValueError(f"Invalid source mode: {mode}. Must be 'file' or 'api'.")


__all__ = [
    'BaseStore',
    'StoreError',
    'FileStore',
    'ApiStore',
    'StoreFactory'
]
