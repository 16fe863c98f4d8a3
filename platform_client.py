"""HTTP client for the knowledge-base platform's RPC-style API with retry logic."""

import json
import logging
import time
from typing import Any, Dict, List, Optional
from urllib.parse import urljoin

import requests
import urllib3
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

logger = logging.getLogger('kb_exporter.client')


class PlatformApiError(Exception):
    """Raised when the platform API answers with an unexpected error."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class PlatformClient:
    """Platform API client with bearer authentication, retries and rate limiting."""

    def __init__(
        self,
        base_url: str,
        api_token: str,
        verify_ssl: bool = True,
        timeout: int = 30,
        max_retries: int = 3,
        retry_backoff_factor: float = 2.0,
        rate_limit: float = 0.0
    ):
        """
        Initialize platform client.

        Args:
            base_url: Platform base URL (e.g., "https://kb.example.com")
            api_token: API token sent as a bearer token
            verify_ssl: Whether to verify SSL certificates
            timeout: HTTP request timeout in seconds
            max_retries: Maximum retry attempts for transient errors
            retry_backoff_factor: Exponential backoff factor
            rate_limit: Minimum seconds between requests (0.0 = no rate limiting)
        """
        if not api_token:
            raise ValueError("Platform client requires api_token")

        self.base_url = base_url.rstrip('/') + '/'
        self.timeout = timeout
        self.rate_limit = rate_limit
        self.last_request_time = 0.0

        self.session = requests.Session()
        self.session.headers['Authorization'] = f'Bearer {api_token}'
        self.session.headers['Accept'] = 'application/json'

        self.session.verify = verify_ssl
        if not verify_ssl:
            logger.warning("SSL verification disabled - this is insecure!")
            urllib3.disable_warnings(urllib3.exceptions.InsecureRequestWarning)

        # Every API method is a read-only POST, so POST is safe to retry here
        retry_strategy = Retry(
            total=max_retries,
            backoff_factor=retry_backoff_factor,
            status_forcelist=[429, 500, 502, 503, 504],
            allowed_methods=["POST"]
        )
        adapter = HTTPAdapter(max_retries=retry_strategy)
        self.session.mount("http://", adapter)
        self.session.mount("https://", adapter)

        logger.info(f"Initialized platform client for {base_url}")
        logger.debug(f"Client configured with timeout={timeout}s, max_retries={max_retries}, "
                     f"backoff_factor={retry_backoff_factor}, rate_limit={rate_limit}s")

    def _enforce_rate_limit(self) -> None:
        """Enforce rate limiting if configured."""
        if self.rate_limit <= 0:
            return

        time_since_last = time.time() - self.last_request_time
        if time_since_last < self.rate_limit:
            sleep_time = self.rate_limit - time_since_last
            logger.debug(f"Rate limiting: sleeping for {sleep_time:.2f}s")
            time.sleep(sleep_time)

    def _call(self, method: str, payload: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """
        Call one API method and return the decoded JSON body.

        Args:
            method: API method name (e.g., "documents.info")
            payload: JSON request body

        Returns:
            Decoded response body

        Raises:
            PlatformApiError: For non-2xx answers or undecodable bodies
            requests.exceptions.RequestException: For transport errors
        """
        self._enforce_rate_limit()

        url = urljoin(self.base_url, f"api/{method}")
        start_time = time.time()
        logger.debug(f"API Request: POST {url}")

        try:
            response = self.session.post(url, json=payload or {}, timeout=self.timeout)
        except requests.exceptions.Timeout:
            logger.error(f"Request timeout after {self.timeout}s: POST {url}")
            raise
        except requests.exceptions.RequestException as e:
            logger.error(f"Request error: POST {url} - {str(e)}")
            raise
        finally:
            self.last_request_time = time.time()

        logger.debug(f"API Response: {response.status_code} {url} ({time.time() - start_time:.3f}s)")

        if response.status_code >= 400:
            error_details = ""
            try:
                error_json = response.json()
                error_details = error_json.get('message') or error_json.get('error') or ""
                logger.debug(f"Error details: {json.dumps(error_json, indent=2)}")
            except ValueError:
                error_details = response.text[:500]
            raise PlatformApiError(
                f"HTTP {response.status_code} calling {method}: {error_details}",
                status_code=response.status_code
            )

        try:
            return response.json()
        except ValueError as e:
            raise PlatformApiError(f"Invalid JSON returned by {method}: {e}") from e

    def _paginate(self, method: str, payload: Optional[Dict[str, Any]] = None,
                  limit: int = 100) -> List[Dict[str, Any]]:
        """Collect every page of a list method."""
        results = []
        offset = 0

        while True:
            body = dict(payload or {})
            body.update({'offset': offset, 'limit': limit})
            data = self._call(method, body).get('data') or []
            results.extend(data)

            if len(data) < limit:
                break
            offset += limit
            logger.debug(f"Fetched {len(results)} results from {method} so far...")

        return results

    def list_collections(self) -> List[Dict[str, Any]]:
        """Fetch every collection visible to the token."""
        collections = self._paginate('collections.list')
        logger.info(f"Fetched {len(collections)} total collections")
        return collections

    def get_collection(self, collection_id: str) -> Optional[Dict[str, Any]]:
        """Fetch one collection, or None if it does not exist."""
        try:
            return self._call('collections.info', {'id': collection_id}).get('data')
        except PlatformApiError as e:
            if e.status_code == 404:
                return None
            raise

    def get_document_structure(self, collection_id: str) -> List[Dict[str, Any]]:
        """Fetch a collection's navigation tree."""
        return self._call('collections.documents', {'id': collection_id}).get('data') or []

    def get_document(self, document_id: str) -> Optional[Dict[str, Any]]:
        """
        Fetch the latest persisted state of a document.

        Returns:
            Document dictionary, or None when the document no longer exists
        """
        try:
            return self._call('documents.info', {'id': document_id}).get('data')
        except PlatformApiError as e:
            if e.status_code in (403, 404):
                logger.debug(f"Document {document_id} not available (HTTP {e.status_code})")
                return None
            raise

    def get_attachment(self, attachment_id: str) -> Optional[Dict[str, Any]]:
        """Fetch one attachment record, or None if it does not exist."""
        try:
            return self._call('attachments.info', {'id': attachment_id}).get('data')
        except PlatformApiError as e:
            if e.status_code in (403, 404):
                logger.debug(f"Attachment {attachment_id} not available (HTTP {e.status_code})")
                return None
            raise

    def close(self) -> None:
        self.session.close()

    @classmethod
    def from_config(cls, config: Dict[str, Any]) -> 'PlatformClient':
        """
        Initialize platform client from configuration dictionary.

        Args:
            config: Configuration dictionary with source and advanced settings

        Returns:
            PlatformClient instance
        """
        source_config = config.get('source', {})
        advanced_config = config.get('advanced', {})

        return cls(
            base_url=source_config.get('base_url'),
            api_token=source_config.get('api_token'),
            verify_ssl=advanced_config.get('verify_ssl', True),
            timeout=advanced_config.get('request_timeout', 30),
            max_retries=advanced_config.get('max_retries', 3),
            retry_backoff_factor=advanced_config.get('retry_backoff_factor', 2.0),
            rate_limit=advanced_config.get('rate_limit', 0.0)
        )


__all__ = ['PlatformClient', 'PlatformApiError']
