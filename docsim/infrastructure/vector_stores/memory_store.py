import logging
import threading
from dataclasses import replace

import numpy as np

from docsim.core.models.search import VectorEntry, VectorMatch, VectorSearchOptions

from .base import validate_query_vector

logger = logging.getLogger(__name__)


class InMemoryVectorIndex:
    """Brute-force cosine index over vectors held in memory."""

    def __init__(self):
        self._entries: dict[str, VectorEntry] = {}
        self._lock = threading.Lock()

    def nearest_neighbors(
        self, vector: list[float], options: VectorSearchOptions
    ) -> list[VectorMatch]:
        validate_query_vector(vector)

        with self._lock:
            entries = [
                e
                for e in self._entries.values()
                if e.is_active
                and len(e.vector) == len(vector)
                and options.accepts(e.chunk_id, e.document_id, e.chunk_type)
            ]
        if not entries or options.limit <= 0:
            return []

        matrix = np.asarray([e.vector for e in entries], dtype=float)
        query = np.asarray(vector, dtype=float)
        norms = np.linalg.norm(matrix, axis=1) * np.linalg.norm(query)
        similarities = np.divide(
            matrix @ query, norms, out=np.zeros(len(entries)), where=norms > 0
        )
        similarities = np.clip(similarities, -1.0, 1.0)

        matches = []
        for i in np.argsort(-similarities, kind="stable"):
            similarity = float(similarities[i])
            if similarity < options.similarity_threshold:
                break
            entry = entries[i]
            matches.append(
                VectorMatch(
                    chunk_id=entry.chunk_id,
                    document_id=entry.document_id,
                    similarity=similarity,
                    content=entry.content,
                    chunk_index=entry.chunk_index,
                    chunk_type=entry.chunk_type,
                )
            )
            if len(matches) >= options.limit:
                break
        return matches

    def upsert(self, entries: list[VectorEntry]) -> None:
        with self._lock:
            for entry in entries:
                self._entries[entry.chunk_id] = replace(entry, vector=list(entry.vector))
        logger.debug(f"Upserted {len(entries)} vectors")

    def set_document_active(self, document_id: str, active: bool) -> int:
        updated = 0
        with self._lock:
            for entry in self._entries.values():
                if entry.document_id == document_id and entry.is_active != active:
                    entry.is_active = active
                    updated += 1
        return updated

    def delete_document(self, document_id: str) -> int:
        with self._lock:
            ids = [cid for cid, e in self._entries.items() if e.document_id == document_id]
            for chunk_id in ids:
                del self._entries[chunk_id]
        return len(ids)

    def count(self) -> int:
        return len(self._entries)
