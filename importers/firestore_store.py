"""Firestore and Cloud Storage implementations of the store interfaces."""

import logging
from typing import Any, Dict, List, Optional

from firebase_admin import firestore

from .document_store import BlobStore, DocumentStore, WriteBatch

logger = logging.getLogger('wp_cms_migrator.importers.firestore_store')

DEFAULT_TIMEOUT = 30


class FirestoreWriteBatch(WriteBatch):
    """Wraps a Firestore ``WriteBatch``."""

    def __init__(self, client, timeout: float = DEFAULT_TIMEOUT):
        self.client = client
        self.timeout = timeout
        self._batch = client.batch()

    def set(self, collection: str, doc_id: Optional[str], data: Dict[str, Any]) -> None:
        collection_ref = self.client.collection(collection)
        doc_ref = collection_ref.document(doc_id) if doc_id else collection_ref.document()
        self._batch.set(doc_ref, data)

    def commit(self) -> None:
        self._batch.commit(timeout=self.timeout)


class FirestoreDocumentStore(DocumentStore):
    """Document store backed by a ``google.cloud.firestore`` client."""

    def __init__(self, client, timeout: float = DEFAULT_TIMEOUT):
        """
        Initialize the store.

        Args:
            client: Firestore client (``firebase_admin.firestore.client(app)``)
            timeout: Per-call timeout in seconds
        """
        self.client = client
        self.timeout = timeout

    def get(self, collection: str, doc_id: str) -> Optional[Dict[str, Any]]:
        snapshot = self.client.collection(collection).document(doc_id).get(timeout=self.timeout)
        if not snapshot.exists:
            return None
        return snapshot.to_dict()

    def set(self, collection: str, doc_id: str, data: Dict[str, Any]) -> None:
        self.client.collection(collection).document(doc_id).set(data, timeout=self.timeout)

    def batch(self) -> FirestoreWriteBatch:
        return FirestoreWriteBatch(self.client, timeout=self.timeout)

    def query(self, collection: str, field: str, value: Any) -> List[Dict[str, Any]]:
        query = self.client.collection(collection).where(filter=firestore.FieldFilter(field, '==', value))
        return [snapshot.to_dict() for snapshot in query.stream(timeout=self.timeout)]

    def order_by(self, collection: str, field: str, descending: bool = False) -> List[Dict[str, Any]]:
        direction = firestore.Query.DESCENDING if descending else firestore.Query.ASCENDING
        query = self.client.collection(collection).order_by(field, direction=direction)
        return [snapshot.to_dict() for snapshot in query.stream(timeout=self.timeout)]


class CloudStorageBlobStore(BlobStore):
    """Blob store backed by a Cloud Storage bucket."""

    def __init__(self, bucket, timeout: float = DEFAULT_TIMEOUT):
        """
        Initialize the store.

        Args:
            bucket: ``google.cloud.storage.Bucket`` (``firebase_admin.storage.bucket(name, app)``)
            timeout: Per-call timeout in seconds
        """
        self.bucket = bucket
        self.timeout = timeout

    def upload(self, path: str, data: bytes, content_type: str,
               metadata: Optional[Dict[str, str]] = None):
        blob = self.bucket.blob(path)
        if metadata:
            blob.metadata = metadata
        blob.upload_from_string(data, content_type=content_type, timeout=self.timeout)
        logger.debug(f"Uploaded gs://{self.bucket.name}/{path}")
        return blob

    def make_public(self, ref) -> str:
        ref.make_public(timeout=self.timeout)
        return ref.public_url

    def public_url(self, path: str) -> str:
        return self.bucket.blob(path).public_url


__all__ = ['FirestoreDocumentStore', 'FirestoreWriteBatch', 'CloudStorageBlobStore']
