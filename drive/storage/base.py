# drive/storage/base.py
import time
import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import BinaryIO, Optional


@dataclass(frozen=True)
class StoredBlob:
    """Result of a successful write.

    ``locator`` is what the catalog shows and resolves (relative path or
    public URL); ``key`` is the object id the store needs to delete it.
    """

    locator: str
    key: str
    size: int = 0


@dataclass(frozen=True)
class BlobLocation:
    """Where a download should be served from: a local path or a URL."""

    path: Optional[Path] = None
    url: Optional[str] = None


def generate_name(original_name: str) -> str:
    """Build a collision-resistant object name keeping the original extension.

    Example: 'report.PDF' -> 'file-1718000000000-1a2b3c4d.pdf'
    """
    extension = Path(original_name or "").suffix.lower()
    timestamp = int(time.time() * 1000)
    return f"file-{timestamp}-{uuid.uuid4().hex[:8]}{extension}"


class BlobStore(ABC):
    """Persists raw bytes and hands back a stable locator."""

    name: str

    @abstractmethod
    async def store(self, stream: BinaryIO, original_name: str) -> StoredBlob:
        """Persist the stream. Either returns a usable blob or raises StorageError."""

    @abstractmethod
    async def delete(self, key: str) -> None:
        """Delete an object. Deleting an absent object is not an error."""

    @abstractmethod
    def resolve(self, locator: str, key: Optional[str] = None) -> BlobLocation:
        """Turn a stored locator into something a response can serve."""

    @abstractmethod
    def key_from_locator(self, locator: str) -> str:
        """Recover the object key from a locator built by ``store``."""
