import numpy as np
import pytest

from matrix_formats import SparseMatrix


def random_matrix(rows, cols, nnz, seed=0):
    """Random matrix with small nonzero float values, duplicates collapsed."""
    rng = np.random.default_rng(seed)
    m = SparseMatrix(rows, cols)
    for i, j, v in zip(
        rng.integers(0, rows, nnz).tolist(),
        rng.integers(0, cols, nnz).tolist(),
        rng.uniform(-5.0, 5.0, nnz).round(2).tolist(),
    ):
        m.set(i, j, v)
    return m


@pytest.fixture
def make_random_matrix():
    return random_matrix


@pytest.fixture
def matrix_2x2():
    # A = [[1, 2], [3, 4]]
    return SparseMatrix.from_text("rows=2\ncols=2\n(0, 0, 1)\n(0, 1, 2)\n(1, 0, 3)\n(1, 1, 4)\n")


@pytest.fixture
def identity_2x2():
    return SparseMatrix.from_text("rows=2\ncols=2\n(0, 0, 1)\n(1, 1, 1)\n")
