"""Chunk data models."""
import json
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Union


@dataclass
class Chunk:
    """A labeled passage uploaded by a user, keyed by a caller-supplied id."""
    id: str
    source_doc_id: str  # Originating document, e.g. filename
    section_heading: str
    journal: str
    publish_year: Union[str, int, float]
    attributes: List[str]
    link: str
    text: str
    usage_count: Union[int, float] = 0
    chunk_index: Optional[int] = None
    doi: Optional[str] = None
    extra: Dict[str, Any] = field(default_factory=dict)  # Any other uploaded fields, stored as-is

    def to_metadata(self) -> Dict[str, Any]:
        """Full record stored alongside the vector, including the id."""
        metadata = {
            **self.extra,
            "id": self.id,
            "source_doc_id": self.source_doc_id,
            "section_heading": self.section_heading,
            "journal": self.journal,
            "publish_year": self.publish_year,
            "attributes": list(self.attributes),
            "link": self.link,
            "text": self.text,
            "usage_count": self.usage_count,
        }
        if self.chunk_index is not None:
            metadata["chunk_index"] = self.chunk_index
        if self.doi is not None:
            metadata["doi"] = self.doi
        return metadata


@dataclass
class QueryResult:
    """A single similarity-search match."""
    id: str
    score: float  # Higher is more similar; no fixed bound
    metadata: Dict[str, Any] = field(default_factory=dict)

    @property
    def attributes(self) -> List[str]:
        """Attribute list, whether stored as an array or a JSON-encoded string."""
        return parse_attributes(self.metadata.get("attributes"))

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "score": self.score, "metadata": self.metadata}


def parse_attributes(raw: Any) -> List[str]:
    """Read an attributes value that may be a list or a JSON-encoded list."""
    if isinstance(raw, list):
        return raw
    if isinstance(raw, str):
        try:
            parsed = json.loads(raw)
        except json.JSONDecodeError:
            return []
        return parsed if isinstance(parsed, list) else []
    return []
