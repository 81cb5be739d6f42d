"""Request and response models for the HTTP API."""
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from config import DEFAULT_TOP_K


class SearchRequest(BaseModel):
    """Body of POST /search."""
    query: Optional[str] = None
    k: Optional[int] = Field(default=DEFAULT_TOP_K, description="Requested result count, clamped server-side")
    min_score: Optional[float] = Field(default=0.0, description="Advisory only; not enforced")
    publish_year: Optional[Union[int, str]] = None
    journal: Optional[str] = None
    attributes: Optional[List[str]] = None


class SearchResult(BaseModel):
    id: str
    score: float
    metadata: Dict[str, Any]


class SearchParams(BaseModel):
    k: int
    min_score: float
    publish_year: Optional[Union[int, str]] = None
    journal: Optional[str] = None
    attributes: Optional[List[str]] = None
    timestamp: str


class SearchResponse(BaseModel):
    query: str
    results: List[SearchResult]
    total_found: int
    search_params: SearchParams
    embedding: List[float]


class ContextChunk(BaseModel):
    """A search result passed back as grounding context."""
    id: str = ""
    score: float = 0.0
    metadata: Dict[str, Any] = Field(default_factory=dict)


class AnswerRequest(BaseModel):
    """Body of POST /answer."""
    model_config = ConfigDict(populate_by_name=True)

    question: Optional[str] = None
    context_chunks: Optional[List[ContextChunk]] = Field(default=None, alias="contextChunks")


class AnswerResponse(BaseModel):
    answer: str


class UploadResponse(BaseModel):
    message: str
    chunks_added: int
    skipped_ids: List[str]


class SummaryRequest(BaseModel):
    """Body of POST /summary."""
    model_config = ConfigDict(populate_by_name=True)

    chunk_ids: Optional[List[str]] = Field(default=None, alias="chunkIds")


class SummaryResponse(BaseModel):
    summary: str


class CompareRequest(BaseModel):
    """Body of POST /compare."""
    model_config = ConfigDict(populate_by_name=True)

    chunk_ids_a: Optional[List[str]] = Field(default=None, alias="chunkIdsA")
    chunk_ids_b: Optional[List[str]] = Field(default=None, alias="chunkIdsB")


class CompareResponse(BaseModel):
    comparison: str


class JournalResponse(BaseModel):
    journal_id: str
    total_found: int
    chunks: List[Dict[str, Any]]


class MetadataResponse(BaseModel):
    journals: List[str]
    years: List[str]
    attributes: List[str]


class StatsResponse(BaseModel):
    total_chunks: int
    status: str
