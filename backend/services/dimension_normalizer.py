"""Fit embedding vectors to the vector index's fixed dimensionality."""
from typing import List, Sequence

import numpy as np


def normalize_dimension(embedding: Sequence[float], target_dim: int) -> List[float]:
    """
    Pad or truncate an embedding to exactly ``target_dim`` components.

    Longer vectors keep their first ``target_dim`` components; shorter ones
    are right-padded with zeros. Applied to both stored and query vectors so
    the two always compare in the same space.

    Args:
        embedding: Raw embedding vector
        target_dim: Dimensionality expected by the index

    Returns:
        New list of floats of length ``target_dim``

    Raises:
        ValueError: If target_dim is negative
    """
    if target_dim < 0:
        raise ValueError("target_dim must be non-negative")

    values = np.asarray(embedding, dtype=float).ravel()
    if values.size >= target_dim:
        return values[:target_dim].tolist()
    return np.pad(values, (0, target_dim - values.size)).tolist()
