"""Abstract document and blob store interfaces used by the migration."""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, List, Optional


class WriteBatch(ABC):
    """A group of document writes committed atomically."""

    @abstractmethod
    def set(self, collection: str, doc_id: Optional[str], data: Dict[str, Any]) -> None:
        """
        Queue a write.

        Args:
            collection: Target collection name
            doc_id: Document id, or None for a store-generated id
            data: Document fields
        """
        pass

    @abstractmethod
    def commit(self) -> None:
        """Commit every queued write or none of them."""
        pass


class DocumentStore(ABC):
    """Abstract base class for the target document store."""

    @abstractmethod
    def get(self, collection: str, doc_id: str) -> Optional[Dict[str, Any]]:
        """Fetch a single document, None if it does not exist."""
        pass

    @abstractmethod
    def set(self, collection: str, doc_id: str, data: Dict[str, Any]) -> None:
        """Create or overwrite a single document."""
        pass

    @abstractmethod
    def batch(self) -> WriteBatch:
        """Start a new atomic write batch."""
        pass

    @abstractmethod
    def query(self, collection: str, field: str, value: Any) -> List[Dict[str, Any]]:
        """Documents whose ``field`` equals ``value``."""
        pass

    @abstractmethod
    def order_by(self, collection: str, field: str, descending: bool = False) -> List[Dict[str, Any]]:
        """All documents of a collection ordered by ``field``."""
        pass


class BlobStore(ABC):
    """Abstract base class for binary object storage."""

    @abstractmethod
    def upload(self, path: str, data: bytes, content_type: str,
               metadata: Optional[Dict[str, str]] = None) -> Any:
        """
        Store an object.

        Returns:
            Store-specific reference passed to ``make_public``
        """
        pass

    @abstractmethod
    def make_public(self, ref: Any) -> str:
        """Make an uploaded object publicly readable and return its URL."""
        pass

    @abstractmethod
    def public_url(self, path: str) -> str:
        """Public URL an object at ``path`` has (or would have)."""
        pass


@dataclass
class ServiceContext:
    """Explicit handle on the external services of a real run."""

    document_store: DocumentStore
    blob_store: Optional[BlobStore] = None


__all__ = ['WriteBatch', 'DocumentStore', 'BlobStore', 'ServiceContext']
