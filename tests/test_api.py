"""Integration tests for the HTTP endpoints."""
import sys
from pathlib import Path

# Add backend to path
sys.path.insert(0, str(Path(__file__).parent.parent / "backend"))

import pytest
from fastapi.testclient import TestClient
from unittest.mock import Mock

from conftest import FakeEmbeddingModel, make_chunk
from main import app, get_services, ServiceContainer
from services.aggregations import ChunkAggregator
from services.answer_synthesizer import AnswerSynthesizer, NO_CONTEXT_ANSWER
from services.ingestion_pipeline import IngestionPipeline, INVALID_CHUNK_MESSAGE
from services.llm_client import LLMClientError, LLMError, LLMResponse
from services.errors import EmbeddingUnavailable
from services.retrieval_engine import RetrievalEngine
from services.usage_tracker import UsageTracker


def _build_container(vector_store, embedding_model, llm_client):
    answer_synthesizer = AnswerSynthesizer(llm_client, unavailable_delay=(0, 0))
    return ServiceContainer(
        vector_store=vector_store,
        embedding_model=embedding_model,
        llm_client=llm_client,
        ingestion_pipeline=IngestionPipeline(vector_store, embedding_model),
        retrieval_engine=RetrievalEngine(vector_store, embedding_model, UsageTracker(vector_store)),
        answer_synthesizer=answer_synthesizer,
        aggregator=ChunkAggregator(vector_store, answer_synthesizer, llm_client),
    )


@pytest.fixture
def llm_client():
    client = Mock()
    client.generate.return_value = LLMResponse(
        text="Velvet bean improves soil fertility [1].",
        tokens_input=120,
        tokens_output=10,
        latency_ms=300,
        model_used="llama-3.3-70b-versatile"
    )
    return client


@pytest.fixture
def services(vector_store, embedding_model, llm_client):
    return _build_container(vector_store, embedding_model, llm_client)


@pytest.fixture
def client(services):
    """Test client whose requests resolve to in-memory services."""
    app.dependency_overrides[get_services] = lambda: services
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def seeded(client):
    """Upload three chunks across two journals."""
    response = client.post("/upload", json=[
        make_chunk("c1"),
        make_chunk("c2", journal="nature", publish_year="2021", attributes=["maize", "soil"],
                   text="Maize yields rose after intercropping."),
        make_chunk("c3", journal="Science", attributes=["water"],
                   text="Drip irrigation reduces water use."),
    ])
    assert response.status_code == 202
    return client


class TestHealth:

    def test_root(self, client):
        response = client.get("/")
        assert response.status_code == 200
        assert response.json()["status"] == "ok"

    def test_health(self, client):
        response = client.get("/health")
        assert response.json()["status"] == "healthy"


class TestEndToEnd:
    """Upload, search, answer, in order."""

    def test_upload_search_answer(self, client, vector_store):
        response = client.post("/upload", json=[make_chunk("c1")])
        assert response.status_code == 202
        assert response.json() == {
            "message": "Successfully uploaded 1 new chunks.",
            "chunks_added": 1,
            "skipped_ids": [],
        }

        response = client.post("/search", json={"query": "soil fertility", "k": 5})
        assert response.status_code == 200
        body = response.json()
        assert [r["id"] for r in body["results"]] == ["c1"]
        assert body["total_found"] == 1
        assert body["query"] == "soil fertility"
        assert len(body["embedding"]) == 12
        assert body["search_params"]["k"] == 5
        assert body["search_params"]["timestamp"]

        assert vector_store.fetch(["c1"])["c1"]["usage_count"] == 1

        response = client.post("/answer", json={
            "question": "What improves soil fertility?",
            "contextChunks": body["results"],
        })
        assert response.status_code == 200
        answer = response.json()["answer"]
        assert answer != NO_CONTEXT_ANSWER
        assert "Velvet bean" in answer


class TestUpload:

    def test_extra_fields_round_trip(self, client):
        client.post("/upload", json=[make_chunk("c1", authors="Smith", doi="10.1000/xyz")])

        chunk = client.get("/journal/all").json()["chunks"][0]
        assert chunk["authors"] == "Smith"
        assert chunk["doi"] == "10.1000/xyz"

    def test_wrapped_body_accepted(self, client):
        response = client.post("/upload", json={"chunks": [make_chunk("c1"), make_chunk("c2")]})
        assert response.status_code == 202
        assert response.json()["chunks_added"] == 2

    def test_reupload_is_skipped(self, client, embedding_model):
        client.post("/upload", json=[make_chunk("c1")])
        calls_after_first = len(embedding_model.calls)

        response = client.post("/upload", json=[make_chunk("c1"), make_chunk("c2")])

        assert response.status_code == 202
        body = response.json()
        assert body["chunks_added"] == 1
        assert body["skipped_ids"] == ["c1"]
        assert body["message"] == "Successfully uploaded 1 new chunks. Skipped 1 redundant chunks."
        assert len(embedding_model.calls) == calls_after_first + 1

    def test_duplicate_ids_rejected(self, client, vector_store):
        response = client.post("/upload", json=[make_chunk("x"), make_chunk("x")])

        assert response.status_code == 400
        assert response.json() == {"error": "Duplicate chunk id found in upload batch: x"}
        assert vector_store.count() == 0

    def test_invalid_chunk_rejects_batch(self, client, vector_store):
        bad = make_chunk("c2")
        del bad["link"]

        response = client.post("/upload", json=[make_chunk("c1"), bad])

        assert response.status_code == 400
        assert response.json()["error"] == INVALID_CHUNK_MESSAGE
        assert vector_store.count() == 0

    @pytest.mark.parametrize("body", [{"items": []}, "chunks", 42])
    def test_invalid_body(self, client, body):
        response = client.post("/upload", json=body)
        assert response.status_code == 400
        assert "error" in response.json()

    def test_embedding_failure_writes_nothing(self, vector_store, llm_client):
        services = _build_container(vector_store, FakeEmbeddingModel(fail_on="broken"), llm_client)
        app.dependency_overrides[get_services] = lambda: services
        try:
            client = TestClient(app)
            response = client.post("/upload", json=[
                make_chunk("c1"), make_chunk("c2", text="broken passage")
            ])
        finally:
            app.dependency_overrides.clear()

        assert response.status_code == 500
        assert response.json() == {"error": "No embedding returned"}
        assert vector_store.count() == 0


class TestSearch:

    @pytest.mark.parametrize("body", [{}, {"query": ""}, {"query": "   "}])
    def test_missing_query(self, client, body):
        response = client.post("/search", json=body)
        assert response.status_code == 400
        assert response.json() == {"error": "Query is required and must be a non-empty string"}

    def test_non_positive_k(self, client):
        response = client.post("/search", json={"query": "soil", "k": 0})
        assert response.status_code == 400

    def test_null_optional_fields_use_defaults(self, seeded):
        response = seeded.post("/search", json={
            "query": "soil", "k": None, "min_score": None,
            "publish_year": None, "journal": None, "attributes": None,
        })

        assert response.status_code == 200
        body = response.json()
        assert body["search_params"]["k"] == 10
        assert body["search_params"]["min_score"] == 0.0
        assert body["total_found"] == 3

    def test_malformed_field_type(self, client):
        response = client.post("/search", json={"query": "soil", "k": "many"})
        assert response.status_code == 400
        assert response.json() == {"error": "Invalid request"}

    def test_journal_filter(self, seeded):
        response = seeded.post("/search", json={"query": "soil", "journal": "NATURE"})
        ids = {r["id"] for r in response.json()["results"]}
        assert ids == {"c1", "c2"}

    def test_year_filter_matches_number_and_string(self, seeded):
        response = seeded.post("/search", json={"query": "soil", "publish_year": "2021"})
        assert [r["id"] for r in response.json()["results"]] == ["c2"]

        response = seeded.post("/search", json={"query": "soil", "publish_year": 2022})
        assert {r["id"] for r in response.json()["results"]} == {"c1", "c3"}

    def test_attribute_filter_requires_all(self, seeded):
        response = seeded.post("/search", json={"query": "soil", "attributes": ["maize", "soil"]})
        assert [r["id"] for r in response.json()["results"]] == ["c2"]

    def test_only_returned_chunks_are_counted(self, seeded, vector_store):
        seeded.post("/search", json={"query": "soil", "journal": "Science"})

        counts = {i: m["usage_count"] for i, m in vector_store.fetch(["c1", "c2", "c3"]).items()}
        assert counts == {"c1": 0, "c2": 0, "c3": 1}

    def test_embedding_unavailable(self, vector_store, llm_client):
        embedding_model = Mock()
        embedding_model.embed.side_effect = EmbeddingUnavailable("Embedding client not initialized")
        services = _build_container(vector_store, embedding_model, llm_client)
        app.dependency_overrides[get_services] = lambda: services
        try:
            response = TestClient(app).post("/search", json={"query": "soil"})
        finally:
            app.dependency_overrides.clear()

        assert response.status_code == 500
        assert response.json() == {"error": "Embedding client not initialized"}


class TestAnswer:

    def test_missing_question(self, client):
        response = client.post("/answer", json={"contextChunks": []})
        assert response.status_code == 400
        assert response.json() == {"error": "Invalid request"}

    def test_missing_context(self, client):
        response = client.post("/answer", json={"question": "Why?"})
        assert response.status_code == 400

    def test_empty_context(self, client, llm_client):
        response = client.post("/answer", json={"question": "Why?", "contextChunks": []})

        assert response.status_code == 200
        assert response.json() == {"answer": NO_CONTEXT_ANSWER}
        llm_client.generate.assert_not_called()

    def test_generation_failure_is_reported_as_answer(self, client, llm_client):
        llm_client.generate.side_effect = LLMClientError(
            LLMError(code="API_ERROR", message="Groq API error", details={})
        )

        response = client.post("/answer", json={
            "question": "Why?",
            "contextChunks": [{"id": "c1", "score": 0.9, "metadata": make_chunk("c1")}],
        })

        assert response.status_code == 200
        assert response.json() == {"answer": "An error occurred while communicating with the AI model."}


class TestSummaryAndCompare:

    def test_summary(self, seeded, llm_client):
        response = seeded.post("/summary", json={"chunkIds": ["c1", "c2"]})

        assert response.status_code == 200
        assert response.json()["summary"] == "Velvet bean improves soil fertility [1]."
        prompt = llm_client.generate.call_args[0][0]
        assert "Summarize the following content:" in prompt

    @pytest.mark.parametrize("body", [{}, {"chunkIds": []}])
    def test_summary_requires_ids(self, client, body):
        response = client.post("/summary", json=body)
        assert response.status_code == 400
        assert response.json() == {"error": "chunkIds must be a non-empty array"}

    def test_summary_not_found(self, client):
        response = client.post("/summary", json={"chunkIds": ["missing"]})
        assert response.status_code == 404
        assert response.json() == {"error": "No chunks found for provided IDs"}

    def test_compare(self, seeded, llm_client):
        llm_client.generate.return_value = LLMResponse(
            text="Both discuss soil.", tokens_input=1, tokens_output=1, latency_ms=1, model_used="m"
        )

        response = seeded.post("/compare", json={"chunkIdsA": ["c1"], "chunkIdsB": ["c2", "c3"]})

        assert response.status_code == 200
        assert response.json() == {"comparison": "Both discuss soil."}

    def test_compare_requires_both_lists(self, client):
        response = client.post("/compare", json={"chunkIdsA": ["c1"]})
        assert response.status_code == 400
        assert response.json() == {"error": "chunkIdsA and chunkIdsB must be non-empty arrays"}

    def test_compare_one_side_missing(self, seeded):
        response = seeded.post("/compare", json={"chunkIdsA": ["c1"], "chunkIdsB": ["missing"]})
        assert response.status_code == 404

    def test_compare_generation_failure(self, seeded, llm_client):
        llm_client.generate.side_effect = LLMClientError(
            LLMError(code="TIMEOUT_ERROR", message="Request timed out", details={})
        )

        response = seeded.post("/compare", json={"chunkIdsA": ["c1"], "chunkIdsB": ["c2"]})

        assert response.status_code == 500
        assert response.json() == {"error": "Failed to generate comparison"}

    def test_without_generation_client(self, vector_store, embedding_model):
        services = _build_container(vector_store, embedding_model, None)
        app.dependency_overrides[get_services] = lambda: services
        try:
            client = TestClient(app)
            client.post("/upload", json=[make_chunk("c1"), make_chunk("c2")])
            compare = client.post("/compare", json={"chunkIdsA": ["c1"], "chunkIdsB": ["c2"]})
            answer = client.post("/answer", json={"question": "Why?", "contextChunks": []})
        finally:
            app.dependency_overrides.clear()

        assert compare.status_code == 503
        assert compare.json() == {"error": "LLM service not available"}
        assert answer.status_code == 200
        assert "GROQ_API_KEY" in answer.json()["answer"]


class TestListings:

    def test_journal_all(self, seeded):
        response = seeded.get("/journal/all")

        body = response.json()
        assert response.status_code == 200
        assert body["journal_id"] == "all"
        assert body["total_found"] == 3

    def test_journal_case_insensitive(self, seeded):
        response = seeded.get("/journal/NATURE")

        body = response.json()
        assert body["journal_id"] == "NATURE"
        assert {c["id"] for c in body["chunks"]} == {"c1", "c2"}

    def test_journal_unknown(self, seeded):
        response = seeded.get("/journal/Cell")
        assert response.json()["total_found"] == 0

    def test_journal_missing_id(self, client):
        response = client.get("/journal/")
        assert response.status_code == 400
        assert response.json() == {"error": "Missing journal_id"}

    def test_metadata(self, seeded):
        response = seeded.get("/metadata")

        assert response.status_code == 200
        assert response.json() == {
            "journals": ["Nature", "nature", "Science"],
            "years": ["2022", "2021"],
            "attributes": ["soil", "maize", "water"],
        }

    def test_stats(self, seeded):
        response = seeded.get("/stats")
        assert response.json() == {"total_chunks": 3, "status": "ok"}
