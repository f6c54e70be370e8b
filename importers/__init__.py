"""Import package writing migrated content to the target document store.

Package Structure:
- document_store: Abstract DocumentStore / WriteBatch / BlobStore interfaces and ServiceContext
- firestore_store: Firestore and Cloud Storage implementations (firebase-admin)
- credentials: ServiceContextLoader resolving service-account credentials
- batch_writer: Atomic-per-batch writes capped at 500 documents

Configuration Referenced:
- target.credentials_path / target.storage_bucket: Service connection
- target.collections.*: Collection names
- migration.batch_size: Documents per batch
"""

from .batch_writer import BatchWriter, MAX_BATCH_SIZE
from .document_store import BlobStore, DocumentStore, ServiceContext, WriteBatch

__all__ = [
    'BatchWriter',
    'MAX_BATCH_SIZE',
    'BlobStore',
    'DocumentStore',
    'ServiceContext',
    'WriteBatch'
]
