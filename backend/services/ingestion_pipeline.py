"""Validate uploaded chunks, skip ones already indexed, embed and store the rest."""
import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Any, List

from config import EMBEDDING_CONCURRENCY
from models.chunk import Chunk
from services.embedding_model import EmbeddingModel, EmbeddingMode
from services.errors import DuplicateIdError, ValidationError
from services.vector_store import VectorStore

logger = logging.getLogger(__name__)

INVALID_BODY_MESSAGE = "Request body must be an array of chunk objects or { chunks: [...] }."
INVALID_CHUNK_MESSAGE = (
    "Each chunk must have id, source_doc_id, section_heading, journal, "
    "publish_year, usage_count, attributes, link, and text."
)

_STRING_FIELDS = ("id", "source_doc_id", "section_heading", "journal", "link", "text")
_CHUNK_FIELDS = set(_STRING_FIELDS) | {
    "publish_year", "usage_count", "attributes", "chunk_index", "doi"
}


@dataclass
class IngestionResult:
    """Outcome of one upload batch."""
    chunks_added: int
    skipped_ids: List[str] = field(default_factory=list)

    @property
    def message(self) -> str:
        message = f"Successfully uploaded {self.chunks_added} new chunks."
        if self.skipped_ids:
            message += f" Skipped {len(self.skipped_ids)} redundant chunks."
        return message


def _is_number(value: Any) -> bool:
    # bool is an int subclass but not a valid count or year
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def is_valid_chunk(candidate: Any) -> bool:
    """Check that a decoded JSON object has every chunk field with the right shape."""
    if not isinstance(candidate, dict):
        return False
    if not all(isinstance(candidate.get(name), str) for name in _STRING_FIELDS):
        return False
    publish_year = candidate.get("publish_year")
    if not (isinstance(publish_year, str) or _is_number(publish_year)):
        return False
    if not _is_number(candidate.get("usage_count")):
        return False
    if not isinstance(candidate.get("attributes"), list):
        return False
    return True


def parse_chunks(payload: Any) -> List[Chunk]:
    """
    Turn an upload body into Chunk objects, all or nothing.

    Accepts either a bare array of chunk objects or ``{"chunks": [...]}``.

    Raises:
        ValidationError: If the body or any chunk is malformed
        DuplicateIdError: If an id appears more than once in the batch
    """
    raw_chunks = payload if isinstance(payload, list) else (
        payload.get("chunks") if isinstance(payload, dict) else None
    )
    if not isinstance(raw_chunks, list):
        raise ValidationError(INVALID_BODY_MESSAGE)

    for candidate in raw_chunks:
        if not is_valid_chunk(candidate):
            raise ValidationError(INVALID_CHUNK_MESSAGE)

    seen = set()
    for candidate in raw_chunks:
        if candidate["id"] in seen:
            raise DuplicateIdError(candidate["id"])
        seen.add(candidate["id"])

    return [
        Chunk(
            id=c["id"],
            source_doc_id=c["source_doc_id"],
            section_heading=c["section_heading"],
            journal=c["journal"],
            publish_year=c["publish_year"],
            attributes=list(c["attributes"]),
            link=c["link"],
            text=c["text"],
            usage_count=c["usage_count"],
            chunk_index=c.get("chunk_index"),
            doi=c.get("doi"),
            extra={key: value for key, value in c.items() if key not in _CHUNK_FIELDS},
        )
        for c in raw_chunks
    ]


class IngestionPipeline:
    """Idempotent, all-or-nothing ingestion of uploaded chunks."""

    def __init__(
        self,
        vector_store: VectorStore,
        embedding_model: EmbeddingModel,
        max_workers: int = EMBEDDING_CONCURRENCY
    ):
        """
        Initialize the ingestion pipeline.

        Args:
            vector_store: Index the chunks are written to
            embedding_model: Model used to embed new chunks in DOCUMENT mode
            max_workers: Upper bound on concurrent embedding calls
        """
        self.vector_store = vector_store
        self.embedding_model = embedding_model
        self.max_workers = max(1, max_workers)
        logger.info("Initialized IngestionPipeline")

    def ingest(self, payload: Any) -> IngestionResult:
        """
        Validate, deduplicate, embed and upsert an upload batch.

        Ids already present in the index are skipped, never re-embedded or
        overwritten. Any embedding failure aborts the whole batch before
        anything is written.

        Raises:
            ValidationError, DuplicateIdError: For a malformed batch
            EmbeddingUnavailable, UpstreamFailure: If a remote call fails
        """
        chunks = parse_chunks(payload)

        existing = self.vector_store.fetch([chunk.id for chunk in chunks])
        new_chunks = [chunk for chunk in chunks if chunk.id not in existing]
        skipped_ids = [chunk.id for chunk in chunks if chunk.id in existing]

        if skipped_ids:
            logger.info(f"Skipping {len(skipped_ids)} chunks already in the index")

        if new_chunks:
            embeddings = self._embed_all(new_chunks)
            self.vector_store.upsert([
                {"id": chunk.id, "embedding": embedding, "metadata": chunk.to_metadata()}
                for chunk, embedding in zip(new_chunks, embeddings)
            ])

        logger.info(f"Ingested {len(new_chunks)} chunks, skipped {len(skipped_ids)}")
        return IngestionResult(chunks_added=len(new_chunks), skipped_ids=skipped_ids)

    def _embed_all(self, chunks: List[Chunk]) -> List[List[float]]:
        """Embed chunk texts concurrently; the first failure propagates."""
        with ThreadPoolExecutor(max_workers=min(self.max_workers, len(chunks))) as executor:
            return list(executor.map(
                lambda chunk: self.embedding_model.embed(chunk.text, EmbeddingMode.DOCUMENT),
                chunks
            ))
