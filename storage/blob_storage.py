"""Fetch-by-key access to the blob storage holding attachment files."""

import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Dict, Optional
from urllib.parse import quote

import requests
import urllib3
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

logger = logging.getLogger('kb_exporter.storage')


class BlobStorageError(Exception):
    """Raised when a blob cannot be read from storage."""
    pass


class BlobNotFoundError(BlobStorageError):
    """Raised when no blob exists for a storage key."""
    pass


class BaseBlobStorage(ABC):
    """Abstract read-only view over attachment blob storage."""

    @abstractmethod
    def get_file_by_key(self, key: str) -> bytes:
        """
        Read the full content stored under a key.

        Args:
            key: Storage key of the attachment

        Returns:
            Binary content

        Raises:
            BlobNotFoundError: If nothing is stored under the key
            BlobStorageError: For any other read failure
        """
        pass

    def close(self) -> None:
        """Release any held resources."""
        pass


class LocalBlobStorage(BaseBlobStorage):
    """Blob storage backed by a local directory, one file per key."""

    def __init__(self, root: str):
        self.root = Path(root).resolve()
        logger.debug(f"LocalBlobStorage rooted at {self.root}")

    def _resolve(self, key: str) -> Path:
        path = (self.root / key.lstrip('/')).resolve()
        # keys must never escape the storage root
        if path != self.root and self.root not in path.parents:
            raise BlobStorageError(f"Storage key escapes storage root: {key}")
        return path

    def get_file_by_key(self, key: str) -> bytes:
        path = self._resolve(key)
        if not path.is_file():
            raise BlobNotFoundError(f"No blob stored for key: {key}")
        try:
            return path.read_bytes()
        except OSError as e:
            raise BlobStorageError(f"Failed to read blob '{key}': {e}") from e


class HttpBlobStorage(BaseBlobStorage):
    """Blob storage reachable over HTTP(S), e.g. a bucket endpoint or CDN."""

    def __init__(
        self,
        base_url: str,
        api_token: Optional[str] = None,
        verify_ssl: bool = True,
        timeout: int = 30,
        max_retries: int = 3,
        retry_backoff_factor: float = 2.0
    ):
        """
        Initialize HTTP blob storage.

        Args:
            base_url: URL prefix storage keys are appended to
            api_token: Optional bearer token
            verify_ssl: Whether to verify SSL certificates
            timeout: HTTP request timeout in seconds
            max_retries: Transport-level retries for transient errors
            retry_backoff_factor: Exponential backoff factor
        """
        self.base_url = base_url.rstrip('/')
        self.timeout = timeout

        self.session = requests.Session()
        if api_token:
            self.session.headers['Authorization'] = f'Bearer {api_token}'

        self.session.verify = verify_ssl
        if not verify_ssl:
            logger.warning("SSL verification disabled for blob storage - this is insecure!")
            urllib3.disable_warnings(urllib3.exceptions.InsecureRequestWarning)

        retry_strategy = Retry(
            total=max_retries,
            backoff_factor=retry_backoff_factor,
            status_forcelist=[429, 500, 502, 503, 504],
            allowed_methods=["HEAD", "GET"]
        )
        # one pooled connection per concurrent attachment fetch
        adapter = HTTPAdapter(max_retries=retry_strategy, pool_maxsize=32)
        self.session.mount("http://", adapter)
        self.session.mount("https://", adapter)

        logger.info(f"Initialized HTTP blob storage for {self.base_url}")

    def get_file_by_key(self, key: str) -> bytes:
        url = f"{self.base_url}/{quote(key.lstrip('/'))}"
        logger.debug(f"Blob Request: GET {url}")

        try:
            response = self.session.get(url, timeout=self.timeout)
        except requests.exceptions.RequestException as e:
            raise BlobStorageError(f"Request for blob '{key}' failed: {e}") from e

        if response.status_code == 404:
            raise BlobNotFoundError(f"No blob stored for key: {key}")
        if response.status_code != 200:
            raise BlobStorageError(
                f"Unexpected status {response.status_code} fetching blob '{key}'"
            )
        return response.content

    def close(self) -> None:
        self.session.close()


def create_blob_storage(config: Dict[str, Any]) -> BaseBlobStorage:
    """
    Create the blob storage configured under the `storage` section.

    Args:
        config: Configuration dictionary

    Returns:
        BaseBlobStorage instance

    Raises:
        ValueError: If storage.mode is invalid
    """
    storage_config = config.get('storage', {})
    advanced = config.get('advanced', {})
    mode = storage_config.get('mode', 'local')

    if mode == 'local':
        return LocalBlobStorage(storage_config.get('path', './blobs'))
    elif mode == 'http':
        return HttpBlobStorage(
            base_url=storage_config['base_url'],
            api_token=storage_config.get('api_token'),
            verify_ssl=advanced.get('verify_ssl', True),
            timeout=advanced.get('request_timeout', 30),
            max_retries=advanced.get('max_retries', 3)
        )
    else:
        raise ValueError(f"Invalid storage mode: {mode}. Must be 'local' or 'http'.")
