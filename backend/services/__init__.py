"""Services for the Journal RAG service."""
from .errors import (
    RAGServiceError,
    ValidationError,
    DuplicateIdError,
    NotFoundError,
    UpstreamUnavailable,
    EmbeddingUnavailable,
    GenerationUnavailable,
    UpstreamFailure,
)
from .dimension_normalizer import normalize_dimension
from .embedding_model import EmbeddingModel, EmbeddingMode
from .vector_store import VectorStore
from .ingestion_pipeline import IngestionPipeline, IngestionResult
from .usage_tracker import UsageTracker
from .retrieval_engine import RetrievalEngine, RetrievalResult, SearchFilters
from .llm_client import LLMClient, LLMResponse, LLMError, LLMClientError
from .answer_synthesizer import AnswerSynthesizer, NO_CONTEXT_ANSWER
from .aggregations import ChunkAggregator

__all__ = [
    'RAGServiceError', 'ValidationError', 'DuplicateIdError', 'NotFoundError',
    'UpstreamUnavailable', 'EmbeddingUnavailable', 'GenerationUnavailable', 'UpstreamFailure',
    'normalize_dimension', 'EmbeddingModel', 'EmbeddingMode', 'VectorStore',
    'IngestionPipeline', 'IngestionResult', 'UsageTracker',
    'RetrievalEngine', 'RetrievalResult', 'SearchFilters',
    'LLMClient', 'LLMResponse', 'LLMError', 'LLMClientError',
    'AnswerSynthesizer', 'NO_CONTEXT_ANSWER', 'ChunkAggregator',
]
