"""
Document chunk search for context retrieval.
Runs the pgvector similarity search through a Supabase RPC and attaches
the owning documents' titles and hub areas to each candidate.
"""

import logging
from typing import Any, Dict, List, Optional

from supabase import Client

from hubcontext.core.exceptions import StorageError
from hubcontext.models.schemas import Chunk, ChunkMetadata

logger = logging.getLogger(__name__)


class DocumentChunkStore:
    """Vector search over ``document_chunks`` using Supabase with pgvector."""

    def __init__(self, client: Client):
        self.client = client

    async def match_chunks(
        self,
        query_embedding: List[float],
        similarity_threshold: float,
        match_count: int,
        hub_area: Optional[str] = None,
    ) -> List[Chunk]:
        """
        Perform vector similarity search.

        Args:
            query_embedding: Query vector embedding (1536 dimensions)
            similarity_threshold: Minimum cosine similarity (0.0 to 1.0)
            match_count: Maximum number of candidates to return
            hub_area: Optional hub area filter

        Returns:
            Candidates sorted by raw similarity descending; empty when nothing matches
        """
        try:
            result = self.client.rpc('match_document_chunks', {
                'query_embedding': query_embedding,
                'similarity_threshold': similarity_threshold,
                'match_count': match_count,
                'filter_hub_area': hub_area,
            }).execute()
        except Exception as e:
            logger.error(f"Vector search failed: {e}")
            raise StorageError(f"Vector search failed: {e}") from e

        rows = [row for row in (result.data or []) if (row.get('similarity') or 0.0) >= similarity_threshold]
        if not rows:
            logger.info("No chunks matched the similarity threshold")
            return []

        documents = await self._load_documents({row['document_id'] for row in rows})
        logger.info(f"Vector search returned {len(rows)} chunks from {len(documents)} documents")
        return [self._to_chunk(row, documents.get(row['document_id'])) for row in rows]

    async def _load_documents(self, document_ids) -> Dict[str, Dict[str, Any]]:
        """Fetch title and hub areas for the given documents, keyed by id."""
        try:
            result = self.client.table('documents').select(
                'id, title, hub_areas'
            ).in_('id', sorted(document_ids)).execute()
        except Exception as e:
            logger.error(f"Failed to load documents for chunks: {e}")
            raise StorageError(f"Failed to load documents: {e}") from e

        return {doc['id']: doc for doc in (result.data or [])}

    @staticmethod
    def _to_chunk(row: Dict[str, Any], document: Optional[Dict[str, Any]]) -> Chunk:
        if document is None:
            logger.warning(f"Document {row['document_id']} not found for chunk {row.get('id')}")
            document = {}
        return Chunk(
            id=str(row['id']),
            document_id=str(row['document_id']),
            content=row.get('content') or '',
            chunk_index=row.get('chunk_index') or 0,
            metadata=ChunkMetadata.from_raw(row.get('metadata')),
            similarity=float(row.get('similarity') or 0.0),
            document_title=document.get('title') or '',
            document_hub_areas=list(document.get('hub_areas') or []),
        )
