import logging
from typing import Any, Optional

import requests

from docsim.core.errors import PipelineStep, ProviderError
from docsim.core.models.document import ChunkType
from docsim.core.models.search import VectorEntry, VectorMatch, VectorSearchOptions

from .base import validate_query_vector

logger = logging.getLogger(__name__)


class ChromaVectorIndex:
    """Vector index using ChromaDB HTTP API."""

    def __init__(
        self,
        host: str = "localhost",
        port: int = 8001,
        collection_name: str = "document_chunks",
        tenant: str = "default_tenant",
        database: str = "default_database",
        timeout: float = 30.0,
    ):
        """Initialize ChromaDB client.

        Args:
            host: ChromaDB host.
            port: ChromaDB port.
            collection_name: Collection name.
            tenant: Tenant name.
            database: Database name.
            timeout: HTTP timeout in seconds.
        """
        self._base_url = f"http://{host}:{port}/api/v2"
        self._tenant = tenant
        self._database = database
        self._collection_name = collection_name
        self._timeout = timeout
        self._collection_id: Optional[str] = None

    @property
    def _collections_url(self) -> str:
        return f"{self._base_url}/tenants/{self._tenant}/databases/{self._database}/collections"

    def _request(self, method: str, url: str, payload: Optional[dict] = None) -> Any:
        try:
            resp = requests.request(method, url, json=payload, timeout=self._timeout)
            resp.raise_for_status()
        except requests.HTTPError as e:
            status = e.response.status_code if e.response is not None else None
            raise ProviderError(
                f"ChromaDB {method} {url} failed with status {status}",
                step=PipelineStep.SEARCH,
                status_code=status,
                cause=e,
            ) from e
        except requests.RequestException as e:
            raise ProviderError(
                f"ChromaDB unreachable: {e}", step=PipelineStep.SEARCH, cause=e
            ) from e
        return resp.json() if resp.content else None

    def _ensure_collection(self) -> str:
        """Get or create collection, return ID."""
        if self._collection_id:
            return self._collection_id

        for col in self._request("GET", self._collections_url) or []:
            if col["name"] == self._collection_name:
                self._collection_id = col["id"]
                return self._collection_id

        created = self._request(
            "POST",
            self._collections_url,
            {"name": self._collection_name, "metadata": {"hnsw:space": "cosine"}},
        )
        self._collection_id = created["id"]
        logger.info(f"Created collection: {self._collection_name}")
        return self._collection_id

    def _collection_url(self, action: str) -> str:
        return f"{self._collections_url}/{self._ensure_collection()}/{action}"

    @staticmethod
    def build_where(options: VectorSearchOptions) -> dict:
        """Translate search filters into a Chroma metadata filter."""
        clauses: list[dict] = [{"is_active": True}]
        if options.document_ids is not None:
            clauses.append({"document_id": {"$in": sorted(options.document_ids)}})
        if options.exclude_document_ids:
            clauses.append({"document_id": {"$nin": sorted(options.exclude_document_ids)}})
        if options.chunk_types is not None:
            clauses.append(
                {"chunk_type": {"$in": sorted(t.value for t in options.chunk_types)}}
            )
        if options.exclude_chunk_ids:
            clauses.append({"chunk_id": {"$nin": sorted(options.exclude_chunk_ids)}})
        return clauses[0] if len(clauses) == 1 else {"$and": clauses}

    def nearest_neighbors(
        self, vector: list[float], options: VectorSearchOptions
    ) -> list[VectorMatch]:
        """Search by embedding."""
        validate_query_vector(vector)
        if options.limit <= 0 or (
            options.document_ids is not None and not options.document_ids
        ):
            return []

        data = self._request(
            "POST",
            self._collection_url("query"),
            {
                "query_embeddings": [vector],
                "n_results": options.limit,
                "where": self.build_where(options),
                "include": ["documents", "metadatas", "distances"],
            },
        )

        matches = []
        if data and data.get("ids") and data["ids"][0]:
            for i, chunk_id in enumerate(data["ids"][0]):
                similarity = 1.0 - data["distances"][0][i]
                if similarity < options.similarity_threshold:
                    continue
                meta = data["metadatas"][0][i] or {}
                matches.append(
                    VectorMatch(
                        chunk_id=chunk_id,
                        document_id=meta.get("document_id", ""),
                        similarity=similarity,
                        content=data["documents"][0][i] or "",
                        chunk_index=meta.get("chunk_index", 0),
                        chunk_type=ChunkType(meta["chunk_type"]) if meta.get("chunk_type") else None,
                    )
                )

        matches.sort(key=lambda m: m.similarity, reverse=True)
        return matches

    def upsert(self, entries: list[VectorEntry]) -> None:
        """Insert or replace chunk vectors."""
        if not entries:
            return
        self._request(
            "POST",
            self._collection_url("upsert"),
            {
                "ids": [e.chunk_id for e in entries],
                "embeddings": [e.vector for e in entries],
                "documents": [e.content for e in entries],
                "metadatas": [
                    {
                        "chunk_id": e.chunk_id,
                        "document_id": e.document_id,
                        "chunk_index": e.chunk_index,
                        "chunk_type": e.chunk_type.value,
                        "is_active": e.is_active,
                    }
                    for e in entries
                ],
            },
        )
        logger.info(f"Upserted {len(entries)} vectors")

    def _document_records(self, document_id: str) -> tuple[list[str], list[dict]]:
        data = self._request(
            "POST",
            self._collection_url("get"),
            {"where": {"document_id": document_id}, "include": ["metadatas"]},
        ) or {}
        return data.get("ids", []), data.get("metadatas", [])

    def set_document_active(self, document_id: str, active: bool) -> int:
        """Flag all vectors of a document active or inactive."""
        ids, metadatas = self._document_records(document_id)
        if not ids:
            return 0
        self._request(
            "POST",
            self._collection_url("update"),
            {
                "ids": ids,
                "metadatas": [dict(meta or {}, is_active=active) for meta in metadatas],
            },
        )
        return len(ids)

    def delete_document(self, document_id: str) -> int:
        """Remove all vectors of a document."""
        ids, _ = self._document_records(document_id)
        if not ids:
            return 0
        self._request("POST", self._collection_url("delete"), {"ids": ids})
        return len(ids)

    def count(self) -> int:
        """Get vector count."""
        return self._request("GET", self._collection_url("count")) or 0
