"""Vector index adapter using Supabase pgvector."""
import logging
from typing import Any, Dict, List, Optional, Sequence
from supabase import create_client, Client
from models.chunk import QueryResult
from services.dimension_normalizer import normalize_dimension
from services.errors import UpstreamFailure
from config import SUPABASE_URL, SUPABASE_KEY, VECTOR_TABLE, MATCH_FUNCTION, MERGE_FUNCTION, EMBEDDING_DIMENSION

logger = logging.getLogger(__name__)

# Expected schema:
#
#   CREATE TABLE chunks (
#     id text PRIMARY KEY,
#     embedding vector(1024) NOT NULL,
#     metadata jsonb NOT NULL
#   );
#
#   CREATE OR REPLACE FUNCTION match_chunks(
#     query_embedding vector(1024),
#     match_count int
#   )
#   RETURNS TABLE (id text, metadata jsonb, similarity float)
#   LANGUAGE sql STABLE
#   AS $$
#     SELECT chunks.id, chunks.metadata,
#            1 - (chunks.embedding <=> query_embedding) AS similarity
#     FROM chunks
#     ORDER BY chunks.embedding <=> query_embedding
#     LIMIT match_count;
#   $$;
#
#   CREATE OR REPLACE FUNCTION merge_chunk_metadata(
#     record_id text,
#     patch jsonb
#   )
#   RETURNS void
#   LANGUAGE sql
#   AS $$
#     UPDATE chunks SET metadata = metadata || patch WHERE id = record_id;
#   $$;


class VectorStore:
    """Store chunk vectors with their metadata and run similarity search."""

    def __init__(
        self,
        supabase_url: Optional[str] = SUPABASE_URL,
        supabase_key: Optional[str] = SUPABASE_KEY,
        table_name: str = VECTOR_TABLE,
        match_function: str = MATCH_FUNCTION,
        merge_function: str = MERGE_FUNCTION,
        dimension: int = EMBEDDING_DIMENSION
    ):
        """
        Initialize the vector store with Supabase client.

        Args:
            supabase_url: Supabase project URL
            supabase_key: Supabase API key
            table_name: Table holding id, embedding and metadata columns
            match_function: Name of the similarity-search RPC
            merge_function: Name of the RPC merging a metadata patch into a record
            dimension: Fixed dimensionality of the embedding column

        Raises:
            ValueError: If Supabase credentials are missing
        """
        if not supabase_url or not supabase_key:
            raise ValueError("SUPABASE_URL and SUPABASE_KEY environment variables are required")

        self.table_name = table_name
        self.match_function = match_function
        self.merge_function = merge_function
        self.dimension = dimension

        # Initialize Supabase client
        self.client: Client = create_client(supabase_url, supabase_key)

        logger.info(f"Initialized VectorStore with table: {table_name}")

    def upsert(self, records: Sequence[Dict[str, Any]]) -> None:
        """
        Insert or replace records by id.

        Each record is ``{"id", "embedding", "metadata"}``. Vectors are fitted
        to the index dimensionality and the id is copied into the metadata.
        An empty sequence is a no-op.

        Raises:
            UpstreamFailure: If the database operation fails
        """
        if not records:
            return

        rows = [
            {
                "id": record["id"],
                "embedding": normalize_dimension(record["embedding"], self.dimension),
                "metadata": {**record.get("metadata", {}), "id": record["id"]},
            }
            for record in records
        ]

        try:
            self.client.table(self.table_name).upsert(rows).execute()
        except Exception as e:
            logger.error(f"Failed to upsert {len(rows)} records: {e}")
            raise UpstreamFailure("Failed to write to vector store") from e

        logger.info(f"Upserted {len(rows)} records into {self.table_name}")

    def query(self, embedding: Sequence[float], top_k: int) -> List[QueryResult]:
        """
        Find the ``top_k`` nearest records by cosine similarity.

        No validation beyond dimension normalization is applied, so an empty
        vector still executes as an all-zero query.

        Returns:
            Matches ordered by descending score

        Raises:
            UpstreamFailure: If the database operation fails
        """
        try:
            response = self.client.rpc(
                self.match_function,
                {
                    "query_embedding": normalize_dimension(embedding, self.dimension),
                    "match_count": top_k
                }
            ).execute()
        except Exception as e:
            logger.error(f"Failed to search vector store: {e}")
            raise UpstreamFailure("Failed to search vector store") from e

        results = [
            QueryResult(
                id=row["id"],
                score=float(row["similarity"]) if row.get("similarity") is not None else 0.0,
                metadata=row.get("metadata") or {}
            )
            for row in (response.data or [])
        ]
        results.sort(key=lambda r: r.score, reverse=True)

        logger.debug(f"Found {len(results)} matches (top_k={top_k})")
        return results[:top_k]

    def fetch(self, ids: Sequence[str]) -> Dict[str, Dict[str, Any]]:
        """
        Look up records by id.

        Returns:
            Mapping of id to metadata for the ids that exist; absent ids are
            simply missing from the mapping

        Raises:
            UpstreamFailure: If the database operation fails
        """
        if not ids:
            return {}

        try:
            response = (
                self.client.table(self.table_name)
                .select("id, metadata")
                .in_("id", list(ids))
                .execute()
            )
        except Exception as e:
            logger.error(f"Failed to fetch {len(ids)} records: {e}")
            raise UpstreamFailure("Failed to fetch from vector store") from e

        return {row["id"]: row.get("metadata") or {} for row in (response.data or [])}

    def update(self, record_id: str, metadata: Dict[str, Any]) -> None:
        """
        Merge a metadata patch into one record, leaving its vector untouched.

        Keys absent from ``metadata`` keep their stored values.

        Raises:
            UpstreamFailure: If the database operation fails
        """
        try:
            self.client.rpc(
                self.merge_function,
                {"record_id": record_id, "patch": metadata}
            ).execute()
        except Exception as e:
            logger.error(f"Failed to update record {record_id}: {e}")
            raise UpstreamFailure("Failed to update vector store") from e

    def list_records(self, limit: int) -> List[Dict[str, Any]]:
        """
        Return the metadata of up to ``limit`` stored records.

        Raises:
            UpstreamFailure: If the database operation fails
        """
        try:
            response = (
                self.client.table(self.table_name)
                .select("id, metadata")
                .limit(limit)
                .execute()
            )
        except Exception as e:
            logger.error(f"Failed to list records: {e}")
            raise UpstreamFailure("Failed to list vector store records") from e

        return [row.get("metadata") or {} for row in (response.data or [])]

    def count(self) -> int:
        """
        Get the total number of records in the vector store.

        Raises:
            UpstreamFailure: If the database operation fails
        """
        try:
            response = self.client.table(self.table_name).select("id", count="exact").execute()
            return response.count if response.count is not None else 0
        except Exception as e:
            logger.error(f"Failed to count records in vector store: {e}")
            raise UpstreamFailure("Failed to count vector store records") from e
