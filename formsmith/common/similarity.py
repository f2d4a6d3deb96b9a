"""
Similarity Scoring

Cosine similarity that is total over its inputs: mismatched lengths and
zero-magnitude vectors score 0 instead of raising.
"""

from typing import List, Sequence

import numpy as np


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    """
    Compute cosine similarity between two vectors.

    Args:
        a: First vector
        b: Second vector

    Returns:
        Similarity in [-1, 1]; 0 when lengths differ or either vector is zero
    """
    if len(a) != len(b) or len(a) == 0:
        return 0.0

    v1 = np.asarray(a, dtype=np.float64)
    v2 = np.asarray(b, dtype=np.float64)

    norm_a = float(np.linalg.norm(v1))
    norm_b = float(np.linalg.norm(v2))
    if norm_a == 0.0 or norm_b == 0.0:
        return 0.0

    similarity = float(np.dot(v1, v2)) / (norm_a * norm_b)

    # Clamp to valid range (numerical precision issues)
    return max(-1.0, min(1.0, similarity))


def batch_cosine_similarity(
    query_vec: Sequence[float],
    vectors: List[Sequence[float]]
) -> List[float]:
    """
    Compute cosine similarity between a query and multiple vectors.

    Rows whose length differs from the query score 0, as in
    cosine_similarity.
    """
    if not vectors:
        return []

    dim = len(query_vec)
    same_dim = [i for i, v in enumerate(vectors) if len(v) == dim and dim > 0]
    scores = [0.0] * len(vectors)
    if not same_dim:
        return scores

    query = np.asarray(query_vec, dtype=np.float64)
    query_norm = float(np.linalg.norm(query))
    if query_norm == 0.0:
        return scores

    matrix = np.asarray([vectors[i] for i in same_dim], dtype=np.float64)
    row_norms = np.linalg.norm(matrix, axis=1)
    dots = matrix @ query

    for pos, idx in enumerate(same_dim):
        if row_norms[pos] == 0.0:
            continue
        value = float(dots[pos]) / (float(row_norms[pos]) * query_norm)
        scores[idx] = max(-1.0, min(1.0, value))

    return scores
