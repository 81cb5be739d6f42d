"""Main entry point for the Journal RAG API."""
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Optional
from fastapi import Body, Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from config import PORT, LOG_LEVEL, LOG_FORMAT, CORS_ORIGINS, DEFAULT_TOP_K
from logger import setup_logging
from models.api import (
    SearchRequest, SearchResponse, SearchParams, SearchResult,
    AnswerRequest, AnswerResponse,
    UploadResponse,
    SummaryRequest, SummaryResponse,
    CompareRequest, CompareResponse,
    JournalResponse, MetadataResponse, StatsResponse,
)
from services.errors import RAGServiceError, ValidationError, UpstreamFailure
from services.embedding_model import EmbeddingModel
from services.vector_store import VectorStore
from services.ingestion_pipeline import IngestionPipeline
from services.usage_tracker import UsageTracker
from services.retrieval_engine import RetrievalEngine, SearchFilters
from services.llm_client import LLMClient, LLMClientError
from services.answer_synthesizer import AnswerSynthesizer
from services.aggregations import ChunkAggregator

if LOG_FORMAT == "json":
    setup_logging(LOG_LEVEL)

# Initialize logging
logger = logging.getLogger(__name__)

# Initialize FastAPI app
app = FastAPI(
    title="Journal RAG API",
    description="Retrieval-augmented question answering over uploaded journal passages",
    version="1.0.0"
)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@dataclass
class ServiceContainer:
    """Clients and pipelines shared by all requests, built once at startup."""
    vector_store: VectorStore
    embedding_model: EmbeddingModel
    llm_client: Optional[LLMClient]
    ingestion_pipeline: IngestionPipeline
    retrieval_engine: RetrievalEngine
    answer_synthesizer: AnswerSynthesizer
    aggregator: ChunkAggregator


def build_services() -> ServiceContainer:
    """Construct every service from environment configuration."""
    embedding_model = EmbeddingModel()
    vector_store = VectorStore()

    try:
        llm_client: Optional[LLMClient] = LLMClient()
    except ValueError as e:
        logger.warning(f"Generation disabled: {e}")
        llm_client = None

    answer_synthesizer = AnswerSynthesizer(llm_client)
    return ServiceContainer(
        vector_store=vector_store,
        embedding_model=embedding_model,
        llm_client=llm_client,
        ingestion_pipeline=IngestionPipeline(vector_store, embedding_model),
        retrieval_engine=RetrievalEngine(vector_store, embedding_model, UsageTracker(vector_store)),
        answer_synthesizer=answer_synthesizer,
        aggregator=ChunkAggregator(vector_store, answer_synthesizer, llm_client),
    )


@app.on_event("startup")
async def startup_event():
    """Initialize services on startup."""
    logger.info("Initializing Journal RAG services...")
    try:
        app.state.services = build_services()
        logger.info("All services initialized successfully")
    except Exception as e:
        logger.error(f"Failed to initialize services: {e}", exc_info=True)
        raise


def get_services(request: Request) -> ServiceContainer:
    return request.app.state.services


@app.exception_handler(RAGServiceError)
async def service_error_handler(request: Request, exc: RAGServiceError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content={"error": exc.message})


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    logger.info(f"Rejected malformed request to {request.url.path}")
    return JSONResponse(status_code=400, content={"error": "Invalid request"})


@app.get("/")
async def root():
    """Health check endpoint."""
    return {"status": "ok", "message": "Journal RAG API"}


@app.get("/health")
async def health():
    """Detailed health check."""
    return {
        "status": "healthy",
        "service": "journal-rag",
        "version": "1.0.0"
    }


@app.post("/search", response_model=SearchResponse)
def search_endpoint(
    request: SearchRequest,
    services: ServiceContainer = Depends(get_services)
) -> SearchResponse:
    """
    Similarity search with optional metadata filters.

    Filters are applied to the top-k page after the search, and every
    returned chunk has its usage_count incremented.

    Raises:
        ValidationError: If query is missing or blank
        EmbeddingUnavailable, UpstreamFailure: If embedding or search fails
    """
    if not request.query or not request.query.strip():
        raise ValidationError("Query is required and must be a non-empty string")

    k = DEFAULT_TOP_K if request.k is None else request.k
    min_score = 0.0 if request.min_score is None else request.min_score

    logger.info(f"Processing search: {request.query[:100]}...")

    try:
        filters = SearchFilters(
            publish_year=request.publish_year,
            journal=request.journal,
            attributes=request.attributes or []
        )
        retrieval = services.retrieval_engine.retrieve(request.query, k, filters)
    except RAGServiceError:
        raise
    except Exception as e:
        logger.error(f"Unexpected error during search: {e}", exc_info=True)
        raise UpstreamFailure("Internal server error during search")

    results = [SearchResult(**result.to_dict()) for result in retrieval.results]
    return SearchResponse(
        query=request.query,
        results=results,
        total_found=len(results),
        search_params=SearchParams(
            k=k,
            min_score=min_score,
            publish_year=request.publish_year,
            journal=request.journal,
            attributes=request.attributes,
            timestamp=datetime.now(timezone.utc).isoformat()
        ),
        embedding=retrieval.embedding
    )


@app.post("/answer", response_model=AnswerResponse)
def answer_endpoint(
    request: AnswerRequest,
    services: ServiceContainer = Depends(get_services)
) -> AnswerResponse:
    """Answer a question grounded in the supplied context chunks."""
    if not request.question or request.context_chunks is None:
        raise ValidationError("Invalid request")

    context = [chunk.model_dump() for chunk in request.context_chunks]
    answer = services.answer_synthesizer.answer(request.question, context)
    return AnswerResponse(answer=answer)


@app.post("/upload", response_model=UploadResponse, status_code=202)
def upload_endpoint(
    payload: Any = Body(None),
    services: ServiceContainer = Depends(get_services)
) -> UploadResponse:
    """
    Upload chunk records, skipping ids that are already indexed.

    Body is an array of chunk objects or ``{"chunks": [...]}``; the batch is
    accepted or rejected as a whole.
    """
    try:
        result = services.ingestion_pipeline.ingest(payload)
    except RAGServiceError:
        raise
    except Exception as e:
        logger.error(f"Upload failed: {e}", exc_info=True)
        raise UpstreamFailure("Failed to process upload.")

    return UploadResponse(
        message=result.message,
        chunks_added=result.chunks_added,
        skipped_ids=result.skipped_ids
    )


@app.post("/summary", response_model=SummaryResponse)
def summary_endpoint(
    request: SummaryRequest,
    services: ServiceContainer = Depends(get_services)
) -> SummaryResponse:
    """Summarize an explicit set of chunks."""
    if not request.chunk_ids:
        raise ValidationError("chunkIds must be a non-empty array")

    try:
        summary = services.aggregator.summarize(request.chunk_ids)
    except RAGServiceError:
        raise
    except Exception as e:
        logger.error(f"Summary error: {e}", exc_info=True)
        raise UpstreamFailure("Failed to generate summary")

    return SummaryResponse(summary=summary)


@app.post("/compare", response_model=CompareResponse)
def compare_endpoint(
    request: CompareRequest,
    services: ServiceContainer = Depends(get_services)
) -> CompareResponse:
    """Compare two explicit chunk sets."""
    if not request.chunk_ids_a or not request.chunk_ids_b:
        raise ValidationError("chunkIdsA and chunkIdsB must be non-empty arrays")

    try:
        comparison = services.aggregator.compare(request.chunk_ids_a, request.chunk_ids_b)
    except LLMClientError as e:
        logger.error(f"Compare error: {e.error.code}")
        raise UpstreamFailure("Failed to generate comparison")
    except RAGServiceError:
        raise
    except Exception as e:
        logger.error(f"Compare error: {e}", exc_info=True)
        raise UpstreamFailure("Failed to generate comparison")

    return CompareResponse(comparison=comparison)


@app.get("/journal")
@app.get("/journal/")
async def journal_missing():
    raise ValidationError("Missing journal_id")


@app.get("/journal/{journal_id}", response_model=JournalResponse)
def journal_endpoint(
    journal_id: str,
    services: ServiceContainer = Depends(get_services)
) -> JournalResponse:
    """List chunks from one journal (case-insensitive), or every chunk for ``all``."""
    try:
        journal = None if journal_id == "all" else journal_id
        chunks = services.aggregator.list_chunks(journal)
    except RAGServiceError:
        raise
    except Exception as e:
        logger.error(f"Journal listing failed: {e}", exc_info=True)
        raise UpstreamFailure("Internal server error")

    return JournalResponse(journal_id=journal_id, total_found=len(chunks), chunks=chunks)


@app.get("/metadata", response_model=MetadataResponse)
def metadata_endpoint(services: ServiceContainer = Depends(get_services)) -> MetadataResponse:
    """Distinct journals, years and attributes across stored chunks."""
    try:
        values = services.aggregator.distinct_metadata()
    except RAGServiceError:
        raise
    except Exception as e:
        logger.error(f"Metadata listing failed: {e}", exc_info=True)
        raise UpstreamFailure("Internal server error")

    return MetadataResponse(**values)


@app.get("/stats", response_model=StatsResponse)
def stats_endpoint(services: ServiceContainer = Depends(get_services)) -> StatsResponse:
    """Number of chunks in the index."""
    return StatsResponse(total_chunks=services.vector_store.count(), status="ok")


if __name__ == "__main__":
    import uvicorn
    logger.info(f"Starting Journal RAG API on port {PORT}")
    uvicorn.run(app, host="0.0.0.0", port=PORT)
