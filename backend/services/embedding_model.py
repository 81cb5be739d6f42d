"""Embedding model integration with Hugging Face Inference API."""
import time
import logging
from enum import Enum
from typing import Any, List, Optional
import httpx
from config import HUGGINGFACE_API_KEY, EMBEDDING_MODEL, EMBEDDING_API_URL
from services.errors import EmbeddingUnavailable, UpstreamFailure

logger = logging.getLogger(__name__)


class EmbeddingMode(str, Enum):
    """
    Whether text is being indexed or used to query.

    The e5 model family is trained asymmetrically: stored passages and
    incoming queries are embedded with different input prefixes.
    """
    DOCUMENT = "passage: "
    QUERY = "query: "


class EmbeddingModel:
    """Wrapper for Hugging Face Inference API embedding model."""

    def __init__(
        self,
        api_key: Optional[str] = HUGGINGFACE_API_KEY,
        model_name: str = EMBEDDING_MODEL,
        api_url: str = EMBEDDING_API_URL,
        timeout: float = 120.0
    ):
        """
        Initialize the embedding model client.

        A missing API key does not fail construction; every embed call
        raises EmbeddingUnavailable instead so the service can still start.

        Args:
            api_key: Hugging Face API key
            model_name: Model identifier (default: intfloat/multilingual-e5-large)
            api_url: Feature-extraction endpoint for the model
            timeout: Request timeout in seconds
        """
        self.api_key = api_key
        self.model_name = model_name
        self.api_url = api_url
        self.timeout = timeout

        if api_key:
            logger.info(f"Initialized EmbeddingModel with model: {model_name}")
        else:
            logger.warning("HUGGINGFACE_API_KEY not set; embedding requests will fail")

    @property
    def available(self) -> bool:
        return bool(self.api_key)

    def embed(self, text: str, mode: EmbeddingMode) -> List[float]:
        """
        Generate the embedding for a single text.

        Args:
            text: Text to embed
            mode: DOCUMENT for stored chunks, QUERY for search queries

        Returns:
            Embedding vector as list of floats (native model dimensionality)

        Raises:
            EmbeddingUnavailable: If the client is not configured or no vector is returned
            UpstreamFailure: If the API request fails
        """
        if not self.available:
            raise EmbeddingUnavailable("Embedding client not initialized")

        payload = {
            "inputs": [f"{mode.value}{text}"],
            "options": {
                "wait_for_model": True  # Wait for model to load if sleeping
            }
        }
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json"
        }

        start_time = time.time()
        try:
            with httpx.Client(timeout=self.timeout) as client:
                response = client.post(self.api_url, headers=headers, json=payload)
        except httpx.TimeoutException as e:
            logger.error(f"Embedding request timed out after {self.timeout}s")
            raise UpstreamFailure("Embedding request timed out") from e
        except httpx.RequestError as e:
            logger.error(f"Network error calling embedding API: {e}")
            raise UpstreamFailure("Embedding service unreachable") from e

        elapsed = time.time() - start_time

        if response.status_code == 429:
            logger.error("Rate limit exceeded for Hugging Face API")
            raise UpstreamFailure("Embedding rate limit exceeded. Please try again later.")

        if response.status_code == 401:
            logger.error("Authentication failed for Hugging Face API")
            raise UpstreamFailure("Embedding service rejected the API key")

        if response.status_code != 200:
            logger.error(
                f"Embedding request failed with status {response.status_code}: {response.text}"
            )
            raise UpstreamFailure(f"Embedding request failed with status {response.status_code}")

        vector = self._extract_vector(response.json())
        if not vector:
            raise EmbeddingUnavailable("No embedding returned")

        logger.debug(
            f"Generated {mode.name.lower()} embedding ({len(vector)} dims) in {elapsed:.2f}s"
        )
        return vector

    @staticmethod
    def _extract_vector(body: Any) -> List[float]:
        """
        Pull the first pooled vector out of a feature-extraction response.

        Batched input yields ``[[...]]``; some deployments answer a single
        input with a bare ``[...]``.
        """
        if not isinstance(body, list) or not body:
            return []
        vector = body[0] if isinstance(body[0], list) else body
        # Token-level (unpooled) output is nested one level deeper
        if not all(isinstance(x, (int, float)) for x in vector):
            return []
        return [float(x) for x in vector]
