"""Article content store.

Wraps a BlobStoreBase backend with the article-level operations the service
layer needs: save Markdown under the deterministic key, read it back, delete,
check existence, and verify a SHA-256 digest.

Invariants:
- Key is a pure function of the article id (articles/{id}.md)
- Hash and size are computed over the UTF-8 encoding of the content
- Saves overwrite (last-write-wins, no versioning)
- Reads do not verify the hash; callers use verify() explicitly
- Bytes that are not valid UTF-8 read back as a StorageError from get()
"""

from dataclasses import dataclass
from datetime import UTC, datetime

from kbase.storage.client import BlobStoreBase, StorageError, compute_sha256
from kbase.storage.paths import build_content_key

MARKDOWN_CONTENT_TYPE = "text/markdown; charset=utf-8"


@dataclass(frozen=True)
class StoredContent:
    """Result of a content save: the three values mirrored onto the article row."""

    key: str
    size: int
    hash: str


class ArticleContentStore:
    """Markdown content storage keyed by article id."""

    def __init__(self, backend: BlobStoreBase, key_prefix: str = ""):
        self.backend = backend
        self.key_prefix = key_prefix

    def key_for(self, article_id: int) -> str:
        """Return the content key for an article."""
        return build_content_key(article_id, self.key_prefix)

    def save(self, article_id: int, content: str) -> StoredContent:
        """Write article content and return its key, byte size and SHA-256.

        Raises:
            StorageError: If the backend write fails.
        """
        key = self.key_for(article_id)
        data = content.encode("utf-8")
        digest = compute_sha256(data)

        self.backend.put_object(
            key,
            data,
            content_type=MARKDOWN_CONTENT_TYPE,
            metadata={
                "articleId": str(article_id),
                "hash": digest,
                "uploadedAt": datetime.now(UTC).isoformat(),
            },
        )

        return StoredContent(key=key, size=len(data), hash=digest)

    def get_bytes(self, key: str) -> bytes | None:
        """Read the raw stored bytes, or None if no object exists at the key."""
        return self.backend.get_object(key)

    def get(self, key: str) -> str | None:
        """Read content as text, or None if no object exists at the key.

        Raises:
            StorageError: If the stored bytes are not valid UTF-8.
        """
        data = self.get_bytes(key)
        if data is None:
            return None
        try:
            return data.decode("utf-8")
        except UnicodeDecodeError as e:
            raise StorageError(
                f"Content at {key} is not valid UTF-8", code="E_STORAGE_CONTENT_INVALID"
            ) from e

    def delete(self, key: str) -> None:
        self.backend.delete_object(key)

    def exists(self, key: str) -> bool:
        return self.backend.head_object(key) is not None

    @staticmethod
    def verify(content: str, expected_hash: str) -> bool:
        """Check that content hashes to expected_hash."""
        return compute_sha256(content.encode("utf-8")) == expected_hash
