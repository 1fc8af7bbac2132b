"""Blob storage protocol for dependency injection."""
from typing import Protocol, runtime_checkable


@runtime_checkable
class BlobStoreProtocol(Protocol):
    """Protocol for the file blob store."""

    def exists(self, key: str) -> bool:
        ...

    def download_bytes(self, key: str) -> bytes:
        ...

    def move_file(self, src_key: str, dst_key: str) -> None:
        """Move a blob to a new key.

        Args:
            src_key: Current key.
            dst_key: Target key.
        """
        ...
