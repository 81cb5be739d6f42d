"""Data models for the Journal RAG service."""
from .chunk import Chunk, QueryResult, parse_attributes
from .api import (
    SearchRequest,
    SearchResponse,
    SearchResult,
    SearchParams,
    ContextChunk,
    AnswerRequest,
    AnswerResponse,
    UploadResponse,
    SummaryRequest,
    SummaryResponse,
    CompareRequest,
    CompareResponse,
    JournalResponse,
    MetadataResponse,
    StatsResponse,
)

__all__ = [
    "Chunk",
    "QueryResult",
    "parse_attributes",
    "SearchRequest",
    "SearchResponse",
    "SearchResult",
    "SearchParams",
    "ContextChunk",
    "AnswerRequest",
    "AnswerResponse",
    "UploadResponse",
    "SummaryRequest",
    "SummaryResponse",
    "CompareRequest",
    "CompareResponse",
    "JournalResponse",
    "MetadataResponse",
    "StatsResponse",
]
