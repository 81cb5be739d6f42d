"""
Bulk chunk loader for the Journal RAG service.

This script:
1. Reads a JSON file holding an array of chunk records (or {"chunks": [...]})
2. Validates the whole batch and rejects duplicate ids
3. Skips chunks whose ids are already in the index
4. Embeds the remaining chunks and stores them in Supabase pgvector

Usage:
    python ingest_chunks.py chunks.json [--batch-size 50]
"""
import argparse
import json
import sys
import logging
from pathlib import Path
from typing import Any, List

# Add backend to path
sys.path.insert(0, str(Path(__file__).parent))

from services.embedding_model import EmbeddingModel
from services.vector_store import VectorStore
from services.ingestion_pipeline import IngestionPipeline, parse_chunks
from services.errors import RAGServiceError

logger = logging.getLogger(__name__)


def load_records(path: Path) -> List[Any]:
    """Read chunk records from a JSON file, validating the batch as a whole."""
    with path.open(encoding="utf-8") as f:
        payload = json.load(f)
    parse_chunks(payload)
    return payload if isinstance(payload, list) else payload["chunks"]


def main(argv: List[str] = None) -> int:
    """Main ingestion process."""
    parser = argparse.ArgumentParser(description="Upload chunk records from a JSON file")
    parser.add_argument("path", type=Path, help="JSON file with chunk records")
    parser.add_argument("--batch-size", type=int, default=50, help="Chunks per upsert batch")
    args = parser.parse_args(argv)

    try:
        logger.info("=" * 60)
        logger.info(f"Loading chunks from {args.path}")
        logger.info("=" * 60)

        records = load_records(args.path)
        logger.info(f"Validated {len(records)} chunk records")

        embedding_model = EmbeddingModel()
        vector_store = VectorStore()
        pipeline = IngestionPipeline(vector_store, embedding_model)

        batch_size = max(1, args.batch_size)
        total_batches = (len(records) + batch_size - 1) // batch_size
        added = 0
        skipped: List[str] = []

        for i in range(0, len(records), batch_size):
            batch_num = (i // batch_size) + 1
            logger.info(f"Processing batch {batch_num}/{total_batches}...")
            result = pipeline.ingest(records[i:i + batch_size])
            added += result.chunks_added
            skipped.extend(result.skipped_ids)

        logger.info("=" * 60)
        logger.info(f"Chunks added: {added}")
        logger.info(f"Chunks skipped (already indexed): {len(skipped)}")
        logger.info(f"Chunks in index: {vector_store.count()}")
        logger.info("=" * 60)
        return 0

    except RAGServiceError as e:
        logger.error(f"Ingestion failed: {e.message}")
        return 1
    except (OSError, json.JSONDecodeError) as e:
        logger.error(f"Could not read {args.path}: {e}")
        return 1
    except KeyboardInterrupt:
        logger.warning("Ingestion interrupted by user")
        return 1


if __name__ == "__main__":
    sys.exit(main())
