"""Content fingerprints used for deduplication."""
import hashlib
import re

_WHITESPACE = re.compile(r"\s+")


def binary_fingerprint(data: bytes) -> str:
    """SHA-256 hex digest of raw file content."""
    return hashlib.sha256(data).hexdigest()


def normalize_for_hash(text: str) -> str:
    """Normalize text so formatting-only differences hash the same.

    Line endings are unified, text is lowercased, whitespace runs
    collapse to one space and the ends are trimmed.
    """
    text = text.replace("\r\n", "\n").replace("\r", "\n")
    return _WHITESPACE.sub(" ", text.lower()).strip()


def text_fingerprint(text: str) -> str:
    """SHA-256 hex digest of normalized text."""
    return hashlib.sha256(normalize_for_hash(text).encode("utf-8")).hexdigest()
