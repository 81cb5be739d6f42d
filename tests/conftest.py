"""Shared fixtures and in-memory fakes for the test suite."""
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

# Add backend to path
sys.path.insert(0, str(Path(__file__).parent.parent / "backend"))

import numpy as np
import pytest

from models.chunk import QueryResult
from services.dimension_normalizer import normalize_dimension
from services.embedding_model import EmbeddingMode
from services.errors import EmbeddingUnavailable


class InMemoryVectorStore:
    """Dict-backed stand-in for VectorStore with the same public methods."""

    def __init__(self, dimension: int = 16):
        self.dimension = dimension
        self.records: Dict[str, Dict[str, Any]] = {}
        self.update_calls: List[str] = []

    def upsert(self, records: Sequence[Dict[str, Any]]) -> None:
        for record in records:
            self.records[record["id"]] = {
                "embedding": normalize_dimension(record["embedding"], self.dimension),
                "metadata": {**record.get("metadata", {}), "id": record["id"]},
            }

    def query(self, embedding: Sequence[float], top_k: int) -> List[QueryResult]:
        query = np.asarray(normalize_dimension(embedding, self.dimension))
        scored = []
        for record_id, record in self.records.items():
            stored = np.asarray(record["embedding"])
            denom = np.linalg.norm(query) * np.linalg.norm(stored)
            score = float(query @ stored / denom) if denom else 0.0
            scored.append(QueryResult(id=record_id, score=score, metadata=dict(record["metadata"])))
        scored.sort(key=lambda r: r.score, reverse=True)
        return scored[:top_k]

    def fetch(self, ids: Sequence[str]) -> Dict[str, Dict[str, Any]]:
        return {i: dict(self.records[i]["metadata"]) for i in ids if i in self.records}

    def update(self, record_id: str, metadata: Dict[str, Any]) -> None:
        self.update_calls.append(record_id)
        stored = self.records[record_id]["metadata"]
        self.records[record_id]["metadata"] = {**stored, **metadata}

    def list_records(self, limit: int) -> List[Dict[str, Any]]:
        return [dict(r["metadata"]) for r in list(self.records.values())[:limit]]

    def count(self) -> int:
        return len(self.records)


class FakeEmbeddingModel:
    """Deterministic bag-of-words embedding that records every call."""

    def __init__(self, dimension: int = 12, fail_on: Optional[str] = None):
        self.dimension = dimension
        self.fail_on = fail_on
        self.calls: List[tuple] = []

    def embed(self, text: str, mode: EmbeddingMode) -> List[float]:
        self.calls.append((text, mode))
        if self.fail_on is not None and self.fail_on in text:
            raise EmbeddingUnavailable("No embedding returned")
        vector = [0.0] * self.dimension
        for word in text.lower().replace(".", "").split():
            vector[sum(map(ord, word)) % self.dimension] += 1.0
        return vector


def make_chunk(chunk_id: str = "c1", **overrides: Any) -> Dict[str, Any]:
    """A valid upload record."""
    chunk = {
        "id": chunk_id,
        "source_doc_id": "d1.pdf",
        "section_heading": "Intro",
        "journal": "Nature",
        "publish_year": 2022,
        "usage_count": 0,
        "attributes": ["soil"],
        "link": "https://x",
        "text": "Velvet bean improves soil fertility.",
    }
    chunk.update(overrides)
    return chunk


@pytest.fixture
def vector_store():
    return InMemoryVectorStore()


@pytest.fixture
def embedding_model():
    return FakeEmbeddingModel()
