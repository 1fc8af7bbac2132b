"""Text extraction protocol for dependency injection."""
from typing import Protocol, runtime_checkable


@runtime_checkable
class TextExtractorProtocol(Protocol):
    """Protocol for extracting plain text from file content."""

    def extract_text(self, data: bytes, file_name: str) -> str:
        """Extract text from raw file bytes.

        Args:
            data: File content.
            file_name: Original file name, used to pick a format.

        Returns:
            Extracted plain text.
        """
        ...
