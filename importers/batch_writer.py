"""Chunked, atomic-per-batch document writes."""

import logging
from typing import Any, Callable, Dict, Iterable, List, Optional

from exceptions import WriteBatchError
from .document_store import DocumentStore

MAX_BATCH_SIZE = 500

IdGetter = Callable[[Dict[str, Any]], Optional[str]]


class BatchWriter:
    """
    Writes documents in batches of at most ``batch_size``.

    Each batch commits atomically; batches are independent of each other, so
    a failing batch leaves earlier ones in place. ``results`` records the
    attempted and committed counts per collection.
    """

    def __init__(self, store: DocumentStore, batch_size: int = MAX_BATCH_SIZE,
                 logger: Optional[logging.Logger] = None):
        """
        Initialize batch writer.

        Args:
            store: Target document store
            batch_size: Documents per batch (1..500)
            logger: Optional logger instance

        Raises:
            ValueError: If batch_size is outside 1..500
        """
        if not 1 <= int(batch_size) <= MAX_BATCH_SIZE:
            raise ValueError(f"batch_size must be between 1 and {MAX_BATCH_SIZE}, got {batch_size}")
        self.store = store
        self.batch_size = int(batch_size)
        self.logger = logger or logging.getLogger('wp_cms_migrator.importers.batch_writer')
        self.results: Dict[str, Dict[str, int]] = {}

    def write(self, collection: str, documents: Iterable[Dict[str, Any]],
              id_getter: Optional[IdGetter] = None) -> int:
        """
        Write documents to a collection.

        Args:
            collection: Target collection
            documents: Serialized documents
            id_getter: Returns the document id for a document (None = store-generated)

        Returns:
            Number of documents committed

        Raises:
            WriteBatchError: When a batch fails to commit
        """
        documents = list(documents)
        result = self.results.setdefault(collection, {'attempted': 0, 'committed': 0, 'batches': 0})

        for batch_index, start in enumerate(range(0, len(documents), self.batch_size)):
            chunk: List[Dict[str, Any]] = documents[start:start + self.batch_size]
            batch = self.store.batch()
            for document in chunk:
                doc_id = id_getter(document) if id_getter else None
                batch.set(collection, doc_id, document)

            result['attempted'] += len(chunk)
            try:
                batch.commit()
            except Exception as e:
                self.logger.error(f"Batch {batch_index} for '{collection}' failed: {e}")
                raise WriteBatchError(
                    collection=collection,
                    batch_index=batch_index,
                    attempted=result['attempted'],
                    committed=result['committed'],
                    cause=e
                ) from e

            result['committed'] += len(chunk)
            result['batches'] += 1
            self.logger.debug(f"Committed batch {batch_index} ({len(chunk)} documents) to '{collection}'")

        self.logger.info(f"Wrote {result['committed']} documents to '{collection}'")
        return result['committed']


__all__ = ['BatchWriter', 'MAX_BATCH_SIZE']
