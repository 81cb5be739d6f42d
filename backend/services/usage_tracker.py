"""Best-effort usage-count bookkeeping for retrieved chunks."""
import logging
import math
from concurrent.futures import ThreadPoolExecutor
from typing import Any, List, Union

from config import USAGE_UPDATE_CONCURRENCY
from models.chunk import QueryResult
from services.vector_store import VectorStore

logger = logging.getLogger(__name__)


def _as_count(value: Any) -> Union[int, float]:
    """Read a stored counter, accepting numeric strings; anything else counts as 0."""
    if isinstance(value, bool):
        return 0
    if isinstance(value, (int, float)):
        return value if math.isfinite(value) else 0
    if isinstance(value, str):
        try:
            return int(value)
        except ValueError:
            pass
        try:
            parsed = float(value)
        except ValueError:
            return 0
        return parsed if math.isfinite(parsed) else 0
    return 0


class UsageTracker:
    """
    Increment ``usage_count`` on every chunk a search returns.

    Updates run concurrently in a bounded pool. Each one is isolated: a
    failed update is logged and dropped without touching the others or the
    search response.
    """

    def __init__(self, vector_store: VectorStore, max_workers: int = USAGE_UPDATE_CONCURRENCY):
        self.vector_store = vector_store
        self.max_workers = max(1, max_workers)

    def record_hits(self, results: List[QueryResult]) -> int:
        """
        Bump the usage counter of each result once.

        Returns:
            Number of updates that succeeded
        """
        if not results:
            return 0

        with ThreadPoolExecutor(max_workers=min(self.max_workers, len(results))) as executor:
            outcomes = list(executor.map(self._increment, results))

        succeeded = sum(outcomes)
        if succeeded < len(results):
            logger.warning(f"Usage tracking failed for {len(results) - succeeded} of {len(results)} chunks")
        return succeeded

    def _increment(self, result: QueryResult) -> bool:
        try:
            current = _as_count(result.metadata.get("usage_count"))
            self.vector_store.update(result.id, {"usage_count": current + 1})
            return True
        except Exception as e:
            logger.debug(f"Usage update failed for {result.id}: {e}")
            return False
