"""Summaries, comparisons and metadata listings over explicit chunk sets."""
import logging
from typing import Any, Dict, List, Optional, Sequence

from config import LISTING_LIMIT
from models.chunk import parse_attributes
from services.answer_synthesizer import AnswerSynthesizer
from services.errors import GenerationUnavailable, NotFoundError
from services.llm_client import LLMClient
from services.vector_store import VectorStore

logger = logging.getLogger(__name__)

SUMMARY_INSTRUCTION = "Summarize the following content:"
EMPTY_COMPARISON = "No comparison generated"


class ChunkAggregator:
    """Operations over chunks chosen by id or by metadata rather than by similarity."""

    def __init__(
        self,
        vector_store: VectorStore,
        answer_synthesizer: AnswerSynthesizer,
        llm_client: Optional[LLMClient] = None,
        listing_limit: int = LISTING_LIMIT
    ):
        """
        Args:
            vector_store: Index to read chunks from
            answer_synthesizer: Used for summaries
            llm_client: Used directly for comparisons; None when unconfigured
            listing_limit: Maximum number of records scanned by listings
        """
        self.vector_store = vector_store
        self.answer_synthesizer = answer_synthesizer
        self.llm_client = llm_client
        self.listing_limit = listing_limit

    def get_chunks(self, chunk_ids: Sequence[str]) -> List[Dict[str, Any]]:
        """Fetch chunk metadata for the given ids, in request order; missing ids are skipped."""
        records = self.vector_store.fetch(chunk_ids)
        return [records[chunk_id] for chunk_id in chunk_ids if chunk_id in records]

    def summarize(self, chunk_ids: Sequence[str]) -> str:
        """
        Summarize the content of the given chunks.

        Raises:
            NotFoundError: If none of the ids resolve to stored chunks
        """
        chunks = self.get_chunks(chunk_ids)
        if not chunks:
            raise NotFoundError("No chunks found for provided IDs")

        context = [{"id": chunk.get("id", ""), "score": 1, "metadata": chunk} for chunk in chunks]
        return self.answer_synthesizer.answer(SUMMARY_INSTRUCTION, context)

    @staticmethod
    def build_comparison_prompt(chunks_a: List[Dict[str, Any]], chunks_b: List[Dict[str, Any]]) -> str:
        set_a_text = "\n\n".join(
            f"Document A{i + 1} ({chunk.get('source_doc_id')} - {chunk.get('section_heading')}):\n{chunk.get('text')}"
            for i, chunk in enumerate(chunks_a)
        )
        set_b_text = "\n\n".join(
            f"Document B{i + 1} ({chunk.get('source_doc_id')} - {chunk.get('section_heading')}):\n{chunk.get('text')}"
            for i, chunk in enumerate(chunks_b)
        )

        return f"""You are a research assistant tasked with comparing two sets of documents. Please analyze the content below and provide a detailed comparison highlighting similarities, differences, and notable findings.

SET A DOCUMENTS:
{set_a_text}

SET B DOCUMENTS:
{set_b_text}

Please provide a comprehensive comparison that includes:
1. **Similarities**: What common themes, concepts, or information appear in both sets?
2. **Differences**: What unique aspects, approaches, or information exist in each set?
3. **Key Findings**: What are the most notable insights when comparing these document sets?
4. **Context**: What topics or domains do these documents cover?

Comparison Analysis:"""

    def compare(self, chunk_ids_a: Sequence[str], chunk_ids_b: Sequence[str]) -> str:
        """
        Compare two chunk sets with a free-form generation call.

        Raises:
            NotFoundError: If either set resolves to no stored chunks
            GenerationUnavailable: If no generation client is configured
            LLMClientError: If the generation call fails
        """
        chunks_a = self.get_chunks(chunk_ids_a)
        chunks_b = self.get_chunks(chunk_ids_b)
        if not chunks_a or not chunks_b:
            raise NotFoundError("No chunks found for provided IDs")

        if self.llm_client is None:
            raise GenerationUnavailable("LLM service not available")

        logger.info(f"Comparing {len(chunks_a)} chunks against {len(chunks_b)} chunks")
        response = self.llm_client.generate(self.build_comparison_prompt(chunks_a, chunks_b))
        return response.text or EMPTY_COMPARISON

    def list_chunks(self, journal: Optional[str] = None) -> List[Dict[str, Any]]:
        """
        List stored chunk metadata, optionally restricted to one journal.

        Scans at most ``listing_limit`` records, so larger corpora are
        silently truncated. The journal match is case-insensitive.
        """
        records = self.vector_store.list_records(self.listing_limit)
        if journal is None:
            return records

        wanted = journal.lower()
        return [
            record for record in records
            if isinstance(record.get("journal"), str) and record["journal"].lower() == wanted
        ]

    def distinct_metadata(self) -> Dict[str, List[str]]:
        """Distinct journals, publish years and attributes, in first-seen order."""
        journals: Dict[str, None] = {}
        years: Dict[str, None] = {}
        attributes: Dict[str, None] = {}

        for record in self.list_chunks():
            if record.get("journal"):
                journals[str(record["journal"])] = None
            if record.get("publish_year"):
                years[str(record["publish_year"])] = None
            for attr in parse_attributes(record.get("attributes")):
                if attr:
                    attributes[str(attr)] = None

        return {
            "journals": list(journals),
            "years": list(years),
            "attributes": list(attributes),
        }
