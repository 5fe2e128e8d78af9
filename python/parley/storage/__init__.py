"""Storage module for Supabase Storage operations.

Provides:
- StorageClient for downloading project files from Supabase Storage
- FakeStorageClient for tests and local development
"""

from parley.storage.client import (
    FakeStorageClient,
    ObjectMetadata,
    StorageClient,
    StorageClientBase,
    StorageError,
    get_storage_client,
)

__all__ = [
    "StorageClient",
    "StorageClientBase",
    "FakeStorageClient",
    "ObjectMetadata",
    "StorageError",
    "get_storage_client",
]
