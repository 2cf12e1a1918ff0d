import numpy as np
import pytest
from scipy import sparse as sp

from matrix_formats import (
    SparseMatrix, FormatError, format_matrix, format_value, parse_matrix
)


def test_parse_basic():
    m = parse_matrix("rows=2\ncols=3\n(0, 0, 1)\n(1, 2, -2.5)\n")
    assert m.shape == (2, 3)
    assert m.count_nnz() == 2
    assert m.get(0, 0) == 1.0
    assert m.get(1, 2) == -2.5
    assert m.get(1, 1) == 0.0


def test_parse_ignores_blank_lines_and_whitespace():
    text = "\n\n  rows=3  \n\ncols=4\n\n   (0,1,5)   \n\n( 2 , 3 , 1e2 )\n\n\n"
    m = parse_matrix(text)
    assert m.shape == (3, 4)
    assert m.get(0, 1) == 5.0
    assert m.get(2, 3) == 100.0


def test_parse_tolerates_spaces_around_equals():
    m = parse_matrix("rows = 1\ncols =1\n")
    assert m.shape == (1, 1)
    assert m.count_nnz() == 0


def test_parse_drops_zero_entries():
    m = parse_matrix("rows=1\ncols=1\n(0, 0, 0)\n")
    assert (0, 0) not in m.data
    assert m.get(0, 0) == 0
    assert m.count_nnz() == 0

    m = parse_matrix("rows=1\ncols=2\n(0, 1, -0.0)\n")
    assert m.count_nnz() == 0


def test_parse_duplicates_last_wins():
    m = parse_matrix("rows=2\ncols=2\n(0, 0, 1)\n(0, 0, 7)\n")
    assert m.get(0, 0) == 7.0
    assert m.count_nnz() == 1

    # a later zero removes the earlier entry
    m = parse_matrix("rows=2\ncols=2\n(0, 0, 1)\n(0, 0, 0)\n")
    assert m.count_nnz() == 0


def test_parse_does_not_check_bounds():
    m = parse_matrix("rows=2\ncols=2\n(5, -1, 3)\n")
    assert m.get(5, -1) == 3.0


@pytest.mark.parametrize(
    "text",
    [
        "",
        "\n\n",
        "cols=2\nrows=2\n",
        "rows=2\n",
        "rows=2\n(0, 0, 1)\n",
        "rows=abc\ncols=2\n",
        "rows=-1\ncols=2\n",
        "rows=1.5\ncols=2\n",
        "rows=2\ncols=\n",
        "row=2\ncols=2\n",
        "rows=2\ncols=2\n0, 0, 1\n",
        "rows=2\ncols=2\n(0, 0, 1\n",
        "rows=2\ncols=2\n0, 0, 1)\n",
        "rows=2\ncols=2\n(0, 0)\n",
        "rows=2\ncols=2\n(0, 0, 1, 2)\n",
        "rows=2\ncols=2\n()\n",
        "rows=2\ncols=2\n(a, 0, 1)\n",
        "rows=2\ncols=2\n(0, 1.5, 1)\n",
        "rows=2\ncols=2\n(0, 0, x)\n",
        "rows=2\ncols=2\n(0, 0, )\n",
        "rows=2\ncols=2\n(0, 0, nan)\n",
        "rows=2\ncols=2\n(0, 0, inf)\n",
        "rows=2\ncols=2\n(0, 0, 1e999)\n",
        "rows=2\ncols=2\nrows=2\n",
    ],
)
def test_parse_rejects_malformed_input(text):
    with pytest.raises(FormatError):
        parse_matrix(text)


def test_format_error_reports_line():
    with pytest.raises(FormatError) as excinfo:
        parse_matrix("rows=2\ncols=2\n\n(0, 0, 1)\n(0, 0)\n")
    assert excinfo.value.line_number == 5
    assert excinfo.value.line == "(0, 0)"
    assert "line 5" in str(excinfo.value)


def test_format_error_is_value_error():
    with pytest.raises(ValueError):
        parse_matrix("cols=1\n")


def test_get_set():
    m = SparseMatrix(3, 3)
    m.set(1, 2, 4)
    assert m.get(1, 2) == 4.0
    assert isinstance(m.get(1, 2), float)
    m.set(1, 2, -1.5)
    assert m.get(1, 2) == -1.5
    m.set(1, 2, 0)
    assert m.count_nnz() == 0
    assert m.get(1, 2) == 0.0
    # removing an absent coordinate is a no-op
    m.set(0, 0, 0.0)
    assert m.count_nnz() == 0
    # no bounds checking
    m.set(10, -3, 2.0)
    assert m.get(10, -3) == 2.0
    assert m.get(99, 99) == 0.0


def test_dimensions_are_fixed():
    m = SparseMatrix(2, 3)
    assert (m.rows, m.cols) == (2, 3)
    with pytest.raises(AttributeError):
        m.rows = 5
    with pytest.raises(ValueError):
        SparseMatrix(-1, 2)
    empty = SparseMatrix(0, 0)
    assert empty.shape == (0, 0)


def test_copy_and_negate_are_independent(matrix_2x2):
    c = matrix_2x2.copy()
    c.set(0, 0, 9)
    assert matrix_2x2.get(0, 0) == 1.0

    n = -matrix_2x2
    assert n.get(1, 1) == -4.0
    assert n.shape == matrix_2x2.shape
    assert matrix_2x2.get(1, 1) == 4.0


def test_equality(matrix_2x2):
    assert matrix_2x2 == matrix_2x2.copy()
    assert matrix_2x2 != matrix_2x2.negate()
    other = SparseMatrix(2, 3)
    assert SparseMatrix(2, 2) != other
    assert matrix_2x2 != "not a matrix"


def test_allclose():
    a = parse_matrix("rows=1\ncols=2\n(0, 0, 1)\n")
    b = parse_matrix("rows=1\ncols=2\n(0, 0, 1.0000000001)\n(0, 1, 1e-12)\n")
    assert a.allclose(b)
    assert not a.allclose(b, tolerance=1e-13)
    assert not a.allclose(SparseMatrix(2, 1))


def test_format_matrix_text():
    m = SparseMatrix(2, 2)
    m.set(0, 0, 4)
    m.set(1, 1, 2.5)
    assert format_matrix(m) == "rows=2\ncols=2\n(0, 0, 4)\n(1, 1, 2.5)\n"
    assert m.to_text() == format_matrix(m)
    assert format_matrix(SparseMatrix(0, 3)) == "rows=0\ncols=3\n"


def test_format_value():
    assert format_value(4.0) == "4"
    assert format_value(-3.0) == "-3"
    assert format_value(0.1) == "0.1"
    assert format_value(1e20) == "1e+20"
    assert format_value(1.5e-7) == "1.5e-07"


def test_round_trip(make_random_matrix):
    m = make_random_matrix(20, 15, 60, seed=3)
    m.set(0, 0, 0.1)
    m.set(1, 1, -1e-20)
    m.set(2, 2, 123456789.125)
    m.set(3, 3, 1e20)
    parsed = parse_matrix(format_matrix(m))
    assert parsed == m


def test_file_round_trip(tmp_path, matrix_2x2):
    path = tmp_path / "m.txt"
    matrix_2x2.to_file(path)
    assert SparseMatrix.from_file(path) == matrix_2x2
    assert SparseMatrix.from_file(str(path)) == matrix_2x2


def test_from_file_missing(tmp_path):
    with pytest.raises(FileNotFoundError):
        SparseMatrix.from_file(tmp_path / "missing.txt")


def test_scipy_interop(matrix_2x2):
    np.testing.assert_allclose(matrix_2x2.toarray(), np.array([[1.0, 2.0], [3.0, 4.0]]))

    coo = matrix_2x2.to_scipy_sparse()
    assert coo.shape == (2, 2)
    assert coo.nnz == 4

    back = SparseMatrix.from_scipy_sparse(sp.csr_matrix(coo))
    assert back == matrix_2x2


def test_from_scipy_sparse_sums_duplicates_and_drops_zeros():
    coo = sp.coo_matrix(([1.0, 2.0, 0.0], ([0, 0, 1], [1, 1, 0])), shape=(2, 2))
    m = SparseMatrix.from_scipy_sparse(coo)
    assert m.get(0, 1) == 3.0
    assert m.count_nnz() == 1


class LabelledMatrix(SparseMatrix):
    pass


def test_constructors_keep_subclass(tmp_path):
    m = LabelledMatrix.from_text("rows=2\ncols=2\n(1, 0, 3)\n")
    assert type(m) is LabelledMatrix
    assert m.get(1, 0) == 3.0

    path = tmp_path / "m.txt"
    m.to_file(path)
    loaded = LabelledMatrix.from_file(path)
    assert type(loaded) is LabelledMatrix
    assert loaded == m
    assert type(m.copy()) is LabelledMatrix
    assert type(m.negate()) is LabelledMatrix
