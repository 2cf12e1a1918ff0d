"""
Sparse Matrix Multiplication (A × B)
Implements row-indexed sparse multiplication with Numba acceleration.

Algorithm: Row-Indexed Outer Product
1. Flatten A to COO arrays in storage order
2. Flatten B to COO arrays and stable-sort them by row
3. For each entry (i, k, a) of A: binary-search B's row k and emit a*b for (i, j)
4. Accumulate every product per (i, j), then keep only |sum| > EPSILON

Time Complexity: O(nnz(B) log nnz(B) + nnz(A) log nnz(B) + #products)
Worst case: O(nnz(A) × nnz(B)) when every A column meets every B row
"""

import logging
import time
from typing import Tuple

import numba
import numpy as np

from matrix_formats import SparseMatrix, DimensionMismatchError


logging.basicConfig(level=logging.INFO, format='%(levelname)s: %(message)s')
logger = logging.getLogger(__name__)

# Accumulated sums with |value| <= EPSILON are treated as zero
EPSILON = 1e-10

_INT64_MIN = int(np.iinfo(np.int64).min)
_INT64_MAX = int(np.iinfo(np.int64).max)


# ============================================================================
# Numba-Accelerated Product Expansion
# ============================================================================

@numba.jit(nopython=True, cache=True)
def _count_products(a_cols, b_rows_sorted):
    """
    Count how many (A entry, B entry) pairs share the inner index.

    Args:
        a_cols: Column index of every A entry
        b_rows_sorted: Row index of every B entry, sorted ascending

    Returns:
        Total number of products
    """
    total = 0
    for k in range(len(a_cols)):
        lo = np.searchsorted(b_rows_sorted, a_cols[k], side='left')
        hi = np.searchsorted(b_rows_sorted, a_cols[k], side='right')
        total += hi - lo
    return total


@numba.jit(nopython=True, cache=True)
def _expand_products(a_rows, a_cols, a_vals, b_rows_sorted, b_cols_sorted, b_vals_sorted, total):
    """
    Emit every product a*b where A's column equals B's row.

    Products are emitted in A's order, and for each A entry in B's
    (stable) row order.

    Returns:
        (result_rows, result_cols, result_vals), each of length ``total``
    """
    result_rows = np.empty(total, dtype=np.int64)
    result_cols = np.empty(total, dtype=np.int64)
    result_vals = np.empty(total, dtype=np.float64)

    n = 0
    for k in range(len(a_cols)):
        lo = np.searchsorted(b_rows_sorted, a_cols[k], side='left')
        hi = np.searchsorted(b_rows_sorted, a_cols[k], side='right')
        for m in range(lo, hi):
            result_rows[n] = a_rows[k]
            result_cols[n] = b_cols_sorted[m]
            result_vals[n] = a_vals[k] * b_vals_sorted[m]
            n += 1

    return result_rows, result_cols, result_vals


def _to_arrays(matrix: SparseMatrix) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
    """Flatten a matrix to (rows, cols, values) arrays in storage order."""
    n = matrix.count_nnz()
    rows = np.empty(n, dtype=np.int64)
    cols = np.empty(n, dtype=np.int64)
    values = np.empty(n, dtype=np.float64)
    for k, (i, j, v) in enumerate(matrix.entries()):
        rows[k] = i
        cols[k] = j
        values[k] = v
    return rows, cols, values


def _fits_int64(matrix: SparseMatrix) -> bool:
    return all(
        _INT64_MIN <= i <= _INT64_MAX and _INT64_MIN <= j <= _INT64_MAX
        for i, j in matrix.data
    )


def _accumulate_numba(a: SparseMatrix, b: SparseMatrix) -> dict:
    """Sum products per (i, j) using the Numba kernels."""
    a_rows, a_cols, a_vals = _to_arrays(a)
    b_rows, b_cols, b_vals = _to_arrays(b)

    order = np.argsort(b_rows, kind='stable')
    b_rows, b_cols, b_vals = b_rows[order], b_cols[order], b_vals[order]

    total = _count_products(a_cols, b_rows)
    prod_rows, prod_cols, prod_vals = _expand_products(
        a_rows, a_cols, a_vals, b_rows, b_cols, b_vals, total
    )

    accumulator = {}
    for i, j, v in zip(prod_rows.tolist(), prod_cols.tolist(), prod_vals.tolist()):
        key = (i, j)
        accumulator[key] = accumulator.get(key, 0.0) + v
    return accumulator


def _accumulate_row_index(a: SparseMatrix, b: SparseMatrix) -> dict:
    """
    Sum products per (i, j) with B indexed by row in a dict.

    Handles indices of any size; products are summed in the same order
    as the Numba path.
    """
    b_by_row = {}
    for k, j, b_val in b.entries():
        b_by_row.setdefault(k, []).append((j, b_val))

    accumulator = {}
    for i, k, a_val in a.entries():
        for j, b_val in b_by_row.get(k, ()):
            key = (i, j)
            accumulator[key] = accumulator.get(key, 0.0) + a_val * b_val
    return accumulator


def _finalize(accumulator: dict, shape: Tuple[int, int]) -> SparseMatrix:
    result = SparseMatrix(*shape)
    for (i, j), total in accumulator.items():
        if abs(total) > EPSILON:
            result.set(i, j, total)
    return result


def _check_inner_dimensions(a: SparseMatrix, b: SparseMatrix):
    if a.cols != b.rows:
        raise DimensionMismatchError(
            f"Incompatible dimensions: A is {a.shape}, B is {b.shape}. "
            f"A's columns ({a.cols}) must equal B's rows ({b.rows})"
        )


# ============================================================================
# Main Multiplication Functions
# ============================================================================

def sparse_multiply(a: SparseMatrix, b: SparseMatrix) -> SparseMatrix:
    """
    Multiply sparse matrices: C = A × B

    Args:
        a: Matrix A (m × k)
        b: Matrix B (k × n)

    Returns:
        SparseMatrix of shape (m, n)

    Raises:
        DimensionMismatchError: If A's columns differ from B's rows
    """
    logger.info(f"Sparse multiplication: A({a.shape}) × B({b.shape})")
    _check_inner_dimensions(a, b)

    result_shape = (a.rows, b.cols)
    logger.info(f"A: {a.count_nnz():,} nonzeros, B: {b.count_nnz():,} nonzeros")

    start = time.time()

    if not (a.count_nnz() and b.count_nnz()):
        accumulator = {}
    elif _fits_int64(a) and _fits_int64(b):
        accumulator = _accumulate_numba(a, b)
    else:
        logger.info("Indices exceed int64, using Python row index")
        accumulator = _accumulate_row_index(a, b)

    result = _finalize(accumulator, result_shape)
    elapsed = time.time() - start

    logger.info(f"✓ Multiplication complete in {elapsed:.4f}s")
    logger.info(f"Result {result_shape[0]} × {result_shape[1]} has {result.count_nnz():,} nonzeros")
    return result


def sparse_multiply_naive(a: SparseMatrix, b: SparseMatrix) -> SparseMatrix:
    """
    Reference multiplication over the full nnz(A) × nnz(B) cross product.

    Produces the same entries as sparse_multiply; only useful for
    small inputs and for checking the fast path.
    """
    _check_inner_dimensions(a, b)

    accumulator = {}
    for i, k, a_val in a.entries():
        for k2, j, b_val in b.entries():
            if k == k2:
                key = (i, j)
                accumulator[key] = accumulator.get(key, 0.0) + a_val * b_val

    return _finalize(accumulator, (a.rows, b.cols))


# ============================================================================
# Verification Against scipy
# ============================================================================

def verify_multiplication_scipy(a: SparseMatrix, b: SparseMatrix, result: SparseMatrix,
                                tolerance: float = 1e-9) -> bool:
    """
    Verify multiplication result against scipy.sparse.

    Args:
        a, b: Input matrices
        result: Our result
        tolerance: Maximum allowed absolute difference

    Returns:
        True if correct
    """
    logger.info("Verifying result against scipy.sparse...")

    expected = a.to_scipy_sparse().tocsr() @ b.to_scipy_sparse().tocsc()
    diff = result.to_scipy_sparse().tocsr() - expected
    max_diff = np.abs(diff.data).max() if diff.nnz > 0 else 0

    if max_diff > tolerance:
        logger.error(f"✗ Verification failed: max difference = {max_diff}")
        return False

    logger.info("✓ Verification passed! Result matches scipy.sparse")
    return True
