"""Blob store client abstraction.

Provides a small key/value interface over object storage:
- Object upload with content type and custom metadata
- Object download
- Object existence checks (HEAD)
- Object deletion (idempotent)

Backends:
- SupabaseBlobStore: Supabase Storage REST API over httpx
- S3BlobStore: any S3-compatible store (Cloudflare R2, Tigris, MinIO, AWS) via boto3
- FakeBlobStore: in-memory store for tests and local development

All methods receive the full key directly - no prefix manipulation.
A missing object is never an error: get/head return None. Every other backend
failure raises StorageError; clients do not retry.
"""

import base64
import hashlib
import json
from abc import ABC, abstractmethod
from dataclasses import dataclass, field

import boto3
import httpx
from botocore.exceptions import BotoCoreError, ClientError

from kbase.config import BlobBackend, Settings, get_settings


@dataclass(frozen=True)
class ObjectMetadata:
    """Storage object metadata.

    Advisory only - the relational row's content_size/content_hash are the
    values the application trusts.
    """

    content_type: str
    size_bytes: int
    custom: dict[str, str] = field(default_factory=dict)


class StorageError(Exception):
    """Storage operation error."""

    def __init__(self, message: str, code: str = "E_STORAGE_ERROR"):
        super().__init__(message)
        self.message = message
        self.code = code


class BlobStoreBase(ABC):
    """Abstract base class for blob store implementations."""

    @abstractmethod
    def put_object(
        self,
        key: str,
        data: bytes,
        *,
        content_type: str,
        metadata: dict[str, str] | None = None,
    ) -> None:
        """Write an object, replacing any existing object at the key.

        Args:
            key: Full object key (e.g., "articles/42.md").
            data: Object bytes.
            content_type: MIME type stored with the object.
            metadata: Custom string metadata stored with the object.

        Raises:
            StorageError: If the write fails.
        """
        ...

    @abstractmethod
    def get_object(self, key: str) -> bytes | None:
        """Read an object.

        Returns:
            Object bytes, or None if the object doesn't exist.

        Raises:
            StorageError: If the read fails for any reason other than not-found.
        """
        ...

    @abstractmethod
    def head_object(self, key: str) -> ObjectMetadata | None:
        """Check if object exists and get metadata.

        Returns:
            ObjectMetadata if object exists, None otherwise.

        Raises:
            StorageError: If the check fails for any reason other than not-found.
        """
        ...

    @abstractmethod
    def delete_object(self, key: str) -> None:
        """Delete an object. Deleting a missing key is not an error.

        Raises:
            StorageError: If the delete fails.
        """
        ...


class SupabaseBlobStore(BlobStoreBase):
    """Supabase Storage client.

    Uses httpx for HTTP operations against the Supabase Storage API.
    """

    def __init__(
        self,
        supabase_url: str,
        service_key: str,
        bucket: str = "articles",
        *,
        timeout: float = 30.0,
    ):
        """Initialize the storage client.

        Args:
            supabase_url: Supabase project URL (e.g., https://xxx.supabase.co).
            service_key: Supabase service role key.
            bucket: Storage bucket name.
            timeout: Per-request timeout in seconds.
        """
        self._base_url = supabase_url.rstrip("/")
        self._bucket = bucket
        self._storage_url = f"{self._base_url}/storage/v1"
        self._timeout = timeout
        self._headers = {
            "Authorization": f"Bearer {service_key}",
            "apikey": service_key,
        }

    def _object_url(self, key: str) -> str:
        return f"{self._storage_url}/object/{self._bucket}/{key}"

    def _client(self) -> httpx.Client:
        return httpx.Client(headers=self._headers, timeout=self._timeout)

    def put_object(
        self,
        key: str,
        data: bytes,
        *,
        content_type: str,
        metadata: dict[str, str] | None = None,
    ) -> None:
        """Upload via POST with x-upsert so an existing object is overwritten."""
        headers = {"content-type": content_type, "x-upsert": "true"}
        if metadata:
            # Supabase expects user metadata as base64-encoded JSON
            encoded = json.dumps(metadata).encode("utf-8")
            headers["x-metadata"] = base64.b64encode(encoded).decode("ascii")

        try:
            with self._client() as client:
                response = client.post(self._object_url(key), content=data, headers=headers)
        except httpx.HTTPError as e:
            raise StorageError(f"Failed to upload object {key}: {e}") from e

        if response.status_code not in (200, 201):
            raise StorageError(
                f"Failed to upload object {key}: {response.status_code} {response.text}",
                code="E_STORAGE_UPLOAD_FAILED",
            )

    def get_object(self, key: str) -> bytes | None:
        """Download via authenticated GET request."""
        try:
            with self._client() as client:
                response = client.get(self._object_url(key))
        except httpx.HTTPError as e:
            raise StorageError(f"Failed to read object {key}: {e}") from e

        # Supabase reports a missing object as 400 with a not_found body on some versions
        if response.status_code == 404 or _is_supabase_not_found(response):
            return None

        if response.status_code != 200:
            raise StorageError(f"Failed to read object {key}: {response.status_code}")

        return response.content

    def head_object(self, key: str) -> ObjectMetadata | None:
        """Check object existence via HEAD request."""
        try:
            with self._client() as client:
                response = client.head(self._object_url(key))
        except httpx.HTTPError as e:
            raise StorageError(f"Failed to check object {key}: {e}") from e

        if response.status_code in (400, 404):
            return None

        if response.status_code != 200:
            raise StorageError(f"Failed to check object {key}: {response.status_code}")

        return ObjectMetadata(
            content_type=response.headers.get("content-type", "application/octet-stream"),
            size_bytes=int(response.headers.get("content-length", "0")),
        )

    def delete_object(self, key: str) -> None:
        """Delete object from storage."""
        try:
            with self._client() as client:
                response = client.delete(self._object_url(key))
        except httpx.HTTPError as e:
            raise StorageError(f"Failed to delete object {key}: {e}") from e

        if response.status_code not in (200, 204, 404) and not _is_supabase_not_found(response):
            raise StorageError(
                f"Failed to delete object {key}: {response.status_code} {response.text}"
            )


def _is_supabase_not_found(response: httpx.Response) -> bool:
    if response.status_code != 400:
        return False
    try:
        body = response.json()
    except ValueError:
        return False
    return str(body.get("statusCode")) == "404" or body.get("error") == "not_found"


class S3BlobStore(BlobStoreBase):
    """S3-compatible object storage client (Cloudflare R2, Tigris, MinIO, AWS)."""

    def __init__(
        self,
        bucket: str,
        *,
        access_key_id: str,
        secret_access_key: str,
        endpoint_url: str | None = None,
        region: str = "auto",
        s3_client=None,
    ):
        """Initialize the S3 client.

        Args:
            bucket: Bucket name.
            access_key_id: Access key ID.
            secret_access_key: Secret access key.
            endpoint_url: Endpoint for non-AWS stores (e.g. https://<account>.r2.cloudflarestorage.com).
            region: Region name ("auto" for R2).
            s3_client: Pre-built boto3 client (tests inject a stub).
        """
        self._bucket = bucket
        self._s3 = s3_client or boto3.client(
            "s3",
            aws_access_key_id=access_key_id,
            aws_secret_access_key=secret_access_key,
            endpoint_url=endpoint_url,
            region_name=region,
        )

    def put_object(
        self,
        key: str,
        data: bytes,
        *,
        content_type: str,
        metadata: dict[str, str] | None = None,
    ) -> None:
        try:
            self._s3.put_object(
                Bucket=self._bucket,
                Key=key,
                Body=data,
                ContentType=content_type,
                Metadata=metadata or {},
            )
        except (ClientError, BotoCoreError) as e:
            raise StorageError(f"Failed to upload object {key}: {e}") from e

    def get_object(self, key: str) -> bytes | None:
        try:
            response = self._s3.get_object(Bucket=self._bucket, Key=key)
            return response["Body"].read()
        except ClientError as e:
            if _is_s3_not_found(e):
                return None
            raise StorageError(f"Failed to read object {key}: {e}") from e
        except BotoCoreError as e:
            raise StorageError(f"Failed to read object {key}: {e}") from e

    def head_object(self, key: str) -> ObjectMetadata | None:
        try:
            response = self._s3.head_object(Bucket=self._bucket, Key=key)
        except ClientError as e:
            if _is_s3_not_found(e):
                return None
            raise StorageError(f"Failed to check object {key}: {e}") from e
        except BotoCoreError as e:
            raise StorageError(f"Failed to check object {key}: {e}") from e

        return ObjectMetadata(
            content_type=response.get("ContentType", "application/octet-stream"),
            size_bytes=int(response.get("ContentLength", 0)),
            custom=dict(response.get("Metadata") or {}),
        )

    def delete_object(self, key: str) -> None:
        # S3 DELETE on a missing key already succeeds
        try:
            self._s3.delete_object(Bucket=self._bucket, Key=key)
        except ClientError as e:
            if _is_s3_not_found(e):
                return
            raise StorageError(f"Failed to delete object {key}: {e}") from e
        except BotoCoreError as e:
            raise StorageError(f"Failed to delete object {key}: {e}") from e


def _is_s3_not_found(error: ClientError) -> bool:
    code = error.response.get("Error", {}).get("Code", "")
    return code in ("404", "NoSuchKey", "NotFound")


class FakeBlobStore(BlobStoreBase):
    """Fake blob store for testing without real object storage.

    Stores objects in memory and provides deterministic behavior for unit tests.
    """

    def __init__(self):
        # key -> (content, content_type, metadata)
        self._objects: dict[str, tuple[bytes, str, dict[str, str]]] = {}

    def put_object(
        self,
        key: str,
        data: bytes,
        *,
        content_type: str,
        metadata: dict[str, str] | None = None,
    ) -> None:
        self._objects[key] = (bytes(data), content_type, dict(metadata or {}))

    def get_object(self, key: str) -> bytes | None:
        if key not in self._objects:
            return None
        return self._objects[key][0]

    def head_object(self, key: str) -> ObjectMetadata | None:
        if key not in self._objects:
            return None
        content, content_type, metadata = self._objects[key]
        return ObjectMetadata(
            content_type=content_type,
            size_bytes=len(content),
            custom=dict(metadata),
        )

    def delete_object(self, key: str) -> None:
        self._objects.pop(key, None)

    # Test helper methods

    def keys(self) -> list[str]:
        """List stored keys (test helper)."""
        return sorted(self._objects)

    def clear(self) -> None:
        """Drop every object (test helper)."""
        self._objects.clear()


_memory_store: FakeBlobStore | None = None


def get_blob_store(settings: Settings | None = None) -> BlobStoreBase:
    """Get the configured blob store backend.

    The in-memory backend is a process-wide singleton so content survives
    across requests in local development.
    """
    global _memory_store
    settings = settings or get_settings()

    if settings.blob_backend == BlobBackend.SUPABASE:
        return SupabaseBlobStore(
            supabase_url=settings.supabase_url,  # type: ignore[arg-type]
            service_key=settings.supabase_service_key,  # type: ignore[arg-type]
            bucket=settings.storage_bucket,
            timeout=settings.storage_timeout_s,
        )

    if settings.blob_backend == BlobBackend.S3:
        return S3BlobStore(
            settings.s3_bucket,  # type: ignore[arg-type]
            access_key_id=settings.s3_access_key_id,  # type: ignore[arg-type]
            secret_access_key=settings.s3_secret_access_key,  # type: ignore[arg-type]
            endpoint_url=settings.s3_endpoint_url,
            region=settings.s3_region,
        )

    if _memory_store is None:
        _memory_store = FakeBlobStore()
    return _memory_store


def compute_sha256(data: bytes) -> str:
    """Return the hex-encoded SHA-256 of data."""
    return hashlib.sha256(data).hexdigest()
