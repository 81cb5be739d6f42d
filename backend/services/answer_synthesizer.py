"""Grounded answer generation over retrieved chunks."""
import random
import time
import logging
from typing import Any, Dict, List, Optional, Sequence

from services.llm_client import LLMClient, LLMClientError

logger = logging.getLogger(__name__)

NO_CONTEXT_ANSWER = "No relevant information found in the provided context."
UNAVAILABLE_ANSWER = "Generation API key is missing or invalid. Please configure GROQ_API_KEY in your environment."
FAILURE_ANSWER = "An error occurred while communicating with the AI model."
EMPTY_ANSWER = "No response generated"


class AnswerSynthesizer:
    """Answer questions using only the supplied context chunks."""

    def __init__(self, llm_client: Optional[LLMClient] = None, unavailable_delay: tuple = (0.3, 0.7)):
        """
        Args:
            llm_client: Generation client, or None when no credential is configured
            unavailable_delay: (min, max) seconds slept before the unavailability answer
        """
        self.llm_client = llm_client
        self.unavailable_delay = unavailable_delay

    @staticmethod
    def build_prompt(question: str, context_chunks: Sequence[Dict[str, Any]]) -> str:
        """Label each chunk by position, source document and section, then ask the question."""
        citations = []
        for i, chunk in enumerate(context_chunks):
            metadata = chunk.get("metadata") or {}
            citations.append(
                f"Citation {i + 1} (Source Document ID: {metadata.get('source_doc_id')}, "
                f"Section: \"{metadata.get('section_heading')}\"):\n{metadata.get('text')}"
            )
        context_text = "\n\n---\n\n".join(citations)

        return f"""You are a research assistant. Use ONLY the provided context below to answer the user's question. If none of the context is relevant to the question, reply: '{NO_CONTEXT_ANSWER}' Otherwise, answer as best as possible using only the context. Do NOT make up information or use outside knowledge.

Context:
{context_text}

Question: {question}

Answer:"""

    def answer(self, question: str, context_chunks: List[Dict[str, Any]]) -> str:
        """
        Answer a question from context chunks shaped like search results.

        Never raises for remote problems: an unconfigured client, empty
        context and generation errors each map to a fixed answer string.

        Args:
            question: User question or instruction
            context_chunks: ``{"id", "score", "metadata"}`` dicts

        Returns:
            Model output, or one of the fixed fallback answers
        """
        if self.llm_client is None:
            time.sleep(random.uniform(*self.unavailable_delay))
            return UNAVAILABLE_ANSWER

        if not context_chunks:
            return NO_CONTEXT_ANSWER

        prompt = self.build_prompt(question, context_chunks)

        try:
            response = self.llm_client.generate(prompt)
        except LLMClientError as e:
            logger.warning(f"Answer generation failed: {e.error.code}")
            return FAILURE_ANSWER

        return response.text or EMPTY_ANSWER
