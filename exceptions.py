"""Exception hierarchy for the WordPress migration pipeline."""

from typing import Optional


class MigrationError(Exception):
    """Base exception for migration pipeline errors."""
    pass


class FormatError(MigrationError):
    """Raised when the export document is malformed or has no channel element."""
    pass


class AttachmentError(MigrationError):
    """Raised when a single attachment cannot be downloaded or stored."""

    def __init__(self, url: str, message: str):
        """
        Initialize attachment error.

        Args:
            url: Source URL of the attachment
            message: Human-readable error message
        """
        self.url = url
        self.message = message
        super().__init__(message)


class CredentialError(MigrationError):
    """Raised when store or blob credentials cannot be initialized."""
    pass


class WriteBatchError(MigrationError):
    """Raised when a batched document write fails to commit."""

    def __init__(
        self,
        collection: str,
        batch_index: int,
        attempted: int,
        committed: int,
        cause: Optional[BaseException] = None
    ):
        """
        Initialize batch write error.

        Args:
            collection: Collection the failing batch targeted
            batch_index: Zero-based index of the failing batch
            attempted: Documents attempted in this collection so far
            committed: Documents confirmed committed before the failure
            cause: Underlying store exception
        """
        self.collection = collection
        self.batch_index = batch_index
        self.attempted = attempted
        self.committed = committed
        self.cause = cause
        super().__init__(
            f"Batch {batch_index} for '{collection}' failed "
            f"({committed}/{attempted} committed): {cause}"
        )


__all__ = [
    'MigrationError',
    'FormatError',
    'AttachmentError',
    'CredentialError',
    'WriteBatchError'
]
