"""Vector math utilities."""

import numpy as np


def to_array(vector: np.ndarray | list[float]) -> np.ndarray:
    """
    Convert a vector to a 1-D float64 numpy array.

    Args:
        vector: Numpy array or list of floats

    Returns:
        Flat float64 array
    """
    return np.asarray(vector, dtype=np.float64).reshape(-1)


def cosine_similarity(a: np.ndarray | list[float], b: np.ndarray | list[float]) -> float:
    """
    Cosine similarity of two equal-length vectors.

    Returns 0.0 when either vector has zero magnitude. The result is
    clipped to [-1, 1] to absorb floating point drift.
    """
    vec_a = to_array(a)
    vec_b = to_array(b)
    if vec_a.shape != vec_b.shape:
        raise ValueError(f"Shape mismatch: {vec_a.shape} vs {vec_b.shape}")

    norm_a = float(np.linalg.norm(vec_a))
    norm_b = float(np.linalg.norm(vec_b))
    if norm_a == 0.0 or norm_b == 0.0:
        return 0.0
    return float(np.clip(np.dot(vec_a, vec_b) / (norm_a * norm_b), -1.0, 1.0))


def cosine_similarities(query: np.ndarray | list[float], matrix: np.ndarray) -> np.ndarray:
    """
    Cosine similarity of one query vector against every row of a matrix.

    Rows (or a query) with zero magnitude score 0.0.

    Args:
        query: Vector of length D
        matrix: Array of shape (n, D)

    Returns:
        Array of n similarities
    """
    vec = to_array(query)
    if matrix.size == 0:
        return np.zeros(matrix.shape[0], dtype=np.float64)

    query_norm = float(np.linalg.norm(vec))
    row_norms = np.linalg.norm(matrix, axis=1)
    if query_norm == 0.0:
        return np.zeros(matrix.shape[0], dtype=np.float64)

    dots = matrix @ vec
    denom = row_norms * query_norm
    scores = np.divide(dots, denom, out=np.zeros_like(dots), where=denom != 0)
    return np.clip(scores, -1.0, 1.0)
