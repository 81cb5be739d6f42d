"""Retrieval engine for orchestrating query embedding, search and filtering."""
import logging
from dataclasses import dataclass, field
from typing import List, Optional, Union
from config import MAX_TOP_K
from models.chunk import QueryResult
from services.vector_store import VectorStore
from services.embedding_model import EmbeddingModel, EmbeddingMode
from services.usage_tracker import UsageTracker
from services.errors import ValidationError

logger = logging.getLogger(__name__)


@dataclass
class SearchFilters:
    """Metadata constraints applied to a page of search results."""
    publish_year: Optional[Union[int, str]] = None
    journal: Optional[str] = None
    attributes: List[str] = field(default_factory=list)

    def matches(self, result: QueryResult) -> bool:
        metadata = result.metadata
        if self.publish_year:
            if str(metadata.get("publish_year")) != str(self.publish_year):
                return False
        if self.journal:
            journal = metadata.get("journal")
            if not isinstance(journal, str) or journal.lower() != self.journal.lower():
                return False
        if self.attributes:
            available = result.attributes
            if not all(attr in available for attr in self.attributes):
                return False
        return True


@dataclass
class RetrievalResult:
    """Filtered matches plus the raw query embedding that produced them."""
    results: List[QueryResult]
    embedding: List[float]


class RetrievalEngine:
    """Embed a query, search the index and post-filter the returned page."""

    def __init__(
        self,
        vector_store: VectorStore,
        embedding_model: EmbeddingModel,
        usage_tracker: Optional[UsageTracker] = None,
        max_top_k: int = MAX_TOP_K
    ):
        """
        Initialize the retrieval engine.

        Args:
            vector_store: VectorStore instance for similarity search
            embedding_model: EmbeddingModel instance for query embedding
            usage_tracker: Tracker bumping usage counts of returned chunks
            max_top_k: Server-side cap on requested result count
        """
        self.vector_store = vector_store
        self.embedding_model = embedding_model
        self.usage_tracker = usage_tracker or UsageTracker(vector_store)
        self.max_top_k = max_top_k
        logger.info("Initialized RetrievalEngine")

    def retrieve(
        self,
        query: str,
        k: int,
        filters: Optional[SearchFilters] = None
    ) -> RetrievalResult:
        """
        Retrieve chunks similar to the query.

        Steps:
        1. Embed the query in QUERY mode
        2. Search for the top min(k, max_top_k) neighbors over the whole index
        3. Drop results failing the metadata filters
        4. Bump usage_count on each surviving result (best effort)

        Filters run over the page the index returned, not inside the search,
        so a filtered query can return fewer than k results even when more
        matching chunks exist further down the ranking.

        Args:
            query: Free-text query
            k: Requested number of results
            filters: Optional metadata filters

        Returns:
            RetrievalResult with filtered matches in descending score order

        Raises:
            ValidationError: If the query is blank or k is not positive
            EmbeddingUnavailable, UpstreamFailure: If embedding or search fails
        """
        if not query or not query.strip():
            raise ValidationError("Query is required and must be a non-empty string")
        if k <= 0:
            raise ValidationError("k must be a positive integer")

        filters = filters or SearchFilters()
        top_k = min(k, self.max_top_k)

        logger.debug(f"Embedding query: {query[:100]}...")
        query_embedding = self.embedding_model.embed(query, EmbeddingMode.QUERY)

        logger.debug(f"Searching for top {top_k} chunks")
        matches = self.vector_store.query(query_embedding, top_k)

        results = [match for match in matches if filters.matches(match)]
        if len(results) < len(matches):
            logger.debug(f"Filters removed {len(matches) - len(results)} of {len(matches)} matches")

        self.usage_tracker.record_hits(results)

        logger.info(f"Retrieved {len(results)} chunks (top_k={top_k})")
        return RetrievalResult(results=results, embedding=query_embedding)
