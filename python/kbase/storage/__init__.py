"""Storage module for article content blobs.

Provides:
- Blob store backends (Supabase Storage, S3-compatible, in-memory fake)
- ArticleContentStore for article-level save/get/delete/verify
- Key building utilities for the articles/{id}.md convention
"""

from kbase.storage.client import (
    BlobStoreBase,
    FakeBlobStore,
    ObjectMetadata,
    S3BlobStore,
    StorageError,
    SupabaseBlobStore,
    compute_sha256,
    get_blob_store,
)
from kbase.storage.content import MARKDOWN_CONTENT_TYPE, ArticleContentStore, StoredContent
from kbase.storage.paths import build_content_key, parse_content_key

__all__ = [
    "BlobStoreBase",
    "SupabaseBlobStore",
    "S3BlobStore",
    "FakeBlobStore",
    "ObjectMetadata",
    "StorageError",
    "get_blob_store",
    "compute_sha256",
    "ArticleContentStore",
    "StoredContent",
    "MARKDOWN_CONTENT_TYPE",
    "build_content_key",
    "parse_content_key",
]
