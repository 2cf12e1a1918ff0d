"""
Sparse Matrix Addition and Subtraction (A + B, A - B)
Accumulates B's entries into a copy of A's entries, keyed by (row, col).

Algorithm: Dictionary Accumulation
1. Start from a copy of A's nonzero entries
2. For each nonzero entry of B, add (or subtract) it at the same coordinate
3. Drop any coordinate whose result is exactly zero

Time Complexity: O(nnz(A) + nnz(B))
Space Complexity: O(nnz(A) + nnz(B))
"""

import logging
import time

import numpy as np

from matrix_formats import SparseMatrix, DimensionMismatchError


logging.basicConfig(level=logging.INFO, format='%(levelname)s: %(message)s')
logger = logging.getLogger(__name__)


# ============================================================================
# Accumulation
# ============================================================================

def _check_same_shape(a: SparseMatrix, b: SparseMatrix):
    if a.shape != b.shape:
        raise DimensionMismatchError(f"Matrix dimensions don't match: {a.shape} vs {b.shape}")


def _accumulate(a: SparseMatrix, b: SparseMatrix, sign: float) -> SparseMatrix:
    """
    Compute A + sign * B.

    All of A is taken first, then each entry of B is applied in B's
    storage order, so floating-point results are reproducible.
    """
    result = a.copy()
    data = result.data

    for key, value in b.data.items():
        total = data.get(key, 0.0) + sign * value
        if total != 0:
            data[key] = total
        else:
            data.pop(key, None)

    return result


# ============================================================================
# Main Addition Functions
# ============================================================================

def sparse_add(a: SparseMatrix, b: SparseMatrix) -> SparseMatrix:
    """
    Add two sparse matrices: C = A + B

    Args:
        a: First matrix
        b: Second matrix, same shape as A

    Returns:
        SparseMatrix with A's dimensions

    Raises:
        DimensionMismatchError: If the shapes differ
    """
    logger.info(f"Sparse addition: A({a.shape}) + B({b.shape})")
    _check_same_shape(a, b)

    start = time.time()
    result = _accumulate(a, b, 1.0)
    elapsed = time.time() - start

    logger.info(f"✓ Addition complete in {elapsed:.4f}s, result has {result.count_nnz():,} entries")
    return result


def sparse_subtract(a: SparseMatrix, b: SparseMatrix) -> SparseMatrix:
    """
    Subtract two sparse matrices: C = A - B

    Same as ``sparse_add(a, b.negate())``; zero results are dropped.

    Raises:
        DimensionMismatchError: If the shapes differ
    """
    logger.info(f"Sparse subtraction: A({a.shape}) - B({b.shape})")
    _check_same_shape(a, b)

    start = time.time()
    result = _accumulate(a, b, -1.0)
    elapsed = time.time() - start

    logger.info(f"✓ Subtraction complete in {elapsed:.4f}s, result has {result.count_nnz():,} entries")
    return result


# ============================================================================
# Verification Against scipy
# ============================================================================

def _verify_against(expected, result: SparseMatrix, tolerance: float) -> bool:
    diff = result.to_scipy_sparse().tocsr() - expected
    max_diff = np.abs(diff.data).max() if diff.nnz > 0 else 0

    if max_diff > tolerance:
        logger.error(f"✗ Verification failed: max difference = {max_diff}")
        return False

    logger.info("✓ Verification passed! Result matches scipy.sparse")
    return True


def verify_addition_scipy(a: SparseMatrix, b: SparseMatrix, result: SparseMatrix,
                          tolerance: float = 1e-9) -> bool:
    """
    Verify addition result against scipy.sparse.

    Args:
        a, b: Input matrices
        result: Our result
        tolerance: Maximum allowed absolute difference

    Returns:
        True if correct
    """
    logger.info("Verifying addition against scipy.sparse...")
    expected = a.to_scipy_sparse().tocsr() + b.to_scipy_sparse().tocsr()
    return _verify_against(expected, result, tolerance)


def verify_subtraction_scipy(a: SparseMatrix, b: SparseMatrix, result: SparseMatrix,
                             tolerance: float = 1e-9) -> bool:
    """Verify subtraction result against scipy.sparse."""
    logger.info("Verifying subtraction against scipy.sparse...")
    expected = a.to_scipy_sparse().tocsr() - b.to_scipy_sparse().tocsr()
    return _verify_against(expected, result, tolerance)
