"""Blob storage backends attachments are fetched from by storage key."""

from .blob_storage import (
    BaseBlobStorage,
    BlobNotFoundError,
    BlobStorageError,
    HttpBlobStorage,
    LocalBlobStorage,
    create_blob_storage
)

__all__ = [
    'BaseBlobStorage',
    'BlobNotFoundError',
    'BlobStorageError',
    'HttpBlobStorage',
    'LocalBlobStorage',
    'create_blob_storage'
]
