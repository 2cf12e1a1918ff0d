"""
Sparse Matrix Text Format
Dictionary-backed sparse matrix plus the parser and serializer for the
``rows=`` / ``cols=`` / ``(row, col, value)`` text format.

Key Design:
- Only nonzero entries are stored, keyed by (row, col)
- Coordinates are not checked against the declared dimensions
- Parser is format-exact: any malformed line raises FormatError
- scipy.sparse and NumPy interop for verification and comparison
"""

import logging
import math
import re
from pathlib import Path
from typing import Iterator, Optional, Tuple, Union

import numpy as np
from scipy import sparse as sp


logger = logging.getLogger(__name__)


# ============================================================================
# Errors
# ============================================================================

class FormatError(ValueError):
    """Raised when matrix text does not follow the expected format."""

    def __init__(self, message: str, line_number: Optional[int] = None,
                 line: Optional[str] = None):
        self.line_number = line_number
        self.line = line
        if line_number is not None:
            message = f"line {line_number}: {message}: {line!r}"
        super().__init__(message)


class DimensionMismatchError(ValueError):
    """Raised when operand shapes are incompatible with an operation."""


# ============================================================================
# Sparse Matrix
# ============================================================================

class SparseMatrix:
    """
    Sparse matrix storing only nonzero entries in a dict.

    Dimensions are fixed at construction. Entries are keyed by
    ``(row, col)`` and an entry whose value is exactly 0.0 is never stored.
    """

    def __init__(self, rows: int, cols: int):
        """
        Args:
            rows: Number of rows (>= 0)
            cols: Number of columns (>= 0)
        """
        if rows < 0 or cols < 0:
            raise ValueError(f"Matrix dimensions must be non-negative, got {rows}×{cols}")
        self._rows = int(rows)
        self._cols = int(cols)
        self.data = {}
        self.logger = logging.getLogger(__name__)

    @property
    def rows(self) -> int:
        return self._rows

    @property
    def cols(self) -> int:
        return self._cols

    @property
    def shape(self) -> Tuple[int, int]:
        return (self._rows, self._cols)

    def get(self, row: int, col: int) -> float:
        """Value at (row, col), 0.0 when nothing is stored there."""
        return self.data.get((row, col), 0.0)

    def set(self, row: int, col: int, value: float):
        """
        Store a value at (row, col).

        Setting 0.0 removes the entry instead of storing it.
        """
        key = (int(row), int(col))
        if value == 0:
            self.data.pop(key, None)
        else:
            self.data[key] = float(value)

    def count_nnz(self) -> int:
        return len(self.data)

    def entries(self) -> Iterator[Tuple[int, int, float]]:
        """Yields (row, col, value) in storage order."""
        for (i, j), v in self.data.items():
            yield i, j, v

    def copy(self) -> 'SparseMatrix':
        result = type(self)(self._rows, self._cols)
        result.data = dict(self.data)
        return result

    def negate(self) -> 'SparseMatrix':
        """Return a new matrix with every stored value negated."""
        result = type(self)(self._rows, self._cols)
        result.data = {key: -v for key, v in self.data.items()}
        return result

    def __neg__(self) -> 'SparseMatrix':
        return self.negate()

    def __eq__(self, other):
        if not isinstance(other, SparseMatrix):
            return NotImplemented
        return self.shape == other.shape and self.data == other.data

    __hash__ = None

    def __repr__(self):
        return f"SparseMatrix(rows={self._rows}, cols={self._cols}, nnz={self.count_nnz()})"

    def allclose(self, other: 'SparseMatrix', tolerance: float = 1e-9) -> bool:
        """
        Compare against another matrix entrywise within an absolute tolerance.

        Args:
            other: Matrix to compare against
            tolerance: Maximum allowed absolute difference per coordinate

        Returns:
            True if shapes match and every coordinate agrees
        """
        if self.shape != other.shape:
            return False
        keys = set(self.data) | set(other.data)
        return all(abs(self.get(i, j) - other.get(i, j)) <= tolerance for i, j in keys)

    # ------------------------------------------------------------------
    # Text format
    # ------------------------------------------------------------------

    @classmethod
    def from_text(cls, text: str) -> 'SparseMatrix':
        parsed = parse_matrix(text)
        result = cls(parsed.rows, parsed.cols)
        result.data = parsed.data
        return result

    @classmethod
    def from_file(cls, filepath: Union[str, Path]) -> 'SparseMatrix':
        """
        Load a matrix from a text file.

        Args:
            filepath: Path to a file in rows=/cols=/(r, c, v) format

        Returns:
            SparseMatrix instance
        """
        filepath = Path(filepath)

        if not filepath.exists():
            raise FileNotFoundError(f"Matrix file not found: {filepath}")

        matrix = cls.from_text(filepath.read_text(encoding='utf-8'))
        logger.info(f"Loaded {filepath}: {matrix.rows}×{matrix.cols}, {matrix.count_nnz():,} nonzeros")
        return matrix

    def to_text(self) -> str:
        return format_matrix(self)

    def to_file(self, filepath: Union[str, Path]):
        """
        Write the matrix to a text file.

        Args:
            filepath: Output file path
        """
        filepath = Path(filepath)
        filepath.write_text(format_matrix(self), encoding='utf-8')
        self.logger.info(f"Wrote {self.count_nnz()} entries to {filepath}")

    # ------------------------------------------------------------------
    # scipy / NumPy interop
    # ------------------------------------------------------------------

    def to_scipy_sparse(self) -> sp.coo_matrix:
        """
        Convert to scipy.sparse.coo_matrix for verification.

        All stored coordinates must lie inside the declared dimensions,
        otherwise scipy raises ValueError.

        Returns:
            scipy.sparse.coo_matrix
        """
        n = self.count_nnz()
        rows = np.empty(n, dtype=np.int64)
        cols = np.empty(n, dtype=np.int64)
        values = np.empty(n, dtype=np.float64)
        for k, (i, j, v) in enumerate(self.entries()):
            rows[k] = i
            cols[k] = j
            values[k] = v
        return sp.coo_matrix((values, (rows, cols)), shape=self.shape)

    def toarray(self) -> np.ndarray:
        return self.to_scipy_sparse().toarray()

    @classmethod
    def from_scipy_sparse(cls, matrix) -> 'SparseMatrix':
        """
        Create from any scipy.sparse matrix.

        Duplicate coordinates are summed first, explicit zeros are dropped.
        """
        coo = sp.coo_matrix(matrix)
        coo.sum_duplicates()
        result = cls(*coo.shape)
        for i, j, v in zip(coo.row.tolist(), coo.col.tolist(), coo.data.tolist()):
            result.set(i, j, v)
        return result


# ============================================================================
# Parser
# ============================================================================

_HEADER_PATTERN = re.compile(r'^(rows|cols)\s*=\s*(\d+)$')
_INT_PATTERN = re.compile(r'^[+-]?\d+$')
_FLOAT_PATTERN = re.compile(r'^[+-]?(\d+(\.\d*)?|\.\d+)([eE][+-]?\d+)?$')


def _parse_header(lines, name: str) -> int:
    for line_number, line in lines:
        match = _HEADER_PATTERN.match(line)
        if match is None or match.group(1) != name:
            raise FormatError(f"expected '{name}=<integer>'", line_number, line)
        return int(match.group(2))
    raise FormatError(f"missing '{name}=' header")


def _parse_entry(line_number: int, line: str) -> Tuple[int, int, float]:
    if not (line.startswith('(') and line.endswith(')')):
        raise FormatError("entry must be wrapped in parentheses", line_number, line)

    parts = [part.strip() for part in line[1:-1].split(',')]
    if len(parts) != 3:
        raise FormatError(f"entry must have 3 fields, found {len(parts)}", line_number, line)

    row, col, value = parts
    if not _INT_PATTERN.match(row) or not _INT_PATTERN.match(col):
        raise FormatError("row and column must be integers", line_number, line)
    if not _FLOAT_PATTERN.match(value):
        raise FormatError("value must be a number", line_number, line)

    number = float(value)
    if not math.isfinite(number):
        raise FormatError("value is out of range", line_number, line)

    return int(row), int(col), number


def parse_matrix(text: str) -> SparseMatrix:
    """
    Parse matrix text into a SparseMatrix.

    Format::

        rows=<integer>
        cols=<integer>
        (<integer>, <integer>, <float>)
        ...

    Lines are trimmed and blank lines are ignored. Zero values are skipped
    and a repeated coordinate keeps its last value.

    Args:
        text: Full matrix text

    Returns:
        SparseMatrix instance

    Raises:
        FormatError: On a missing or malformed header or entry line
    """
    lines = (
        (number, line.strip())
        for number, line in enumerate(text.splitlines(), start=1)
        if line.strip()
    )

    num_rows = _parse_header(lines, 'rows')
    num_cols = _parse_header(lines, 'cols')
    matrix = SparseMatrix(num_rows, num_cols)

    for line_number, line in lines:
        row, col, value = _parse_entry(line_number, line)
        matrix.set(row, col, value)

    return matrix


# ============================================================================
# Serializer
# ============================================================================

def format_value(value: float) -> str:
    if value.is_integer() and abs(value) < 1e16:
        return str(int(value))
    return repr(value)


def format_matrix(matrix: SparseMatrix) -> str:
    """
    Serialize a matrix to text.

    Entries are written in storage order, integral values without a
    fractional part.
    """
    lines = [f"rows={matrix.rows}", f"cols={matrix.cols}"]
    for i, j, v in matrix.entries():
        lines.append(f"({i}, {j}, {format_value(v)})")
    return "\n".join(lines) + "\n"


# ============================================================================
# Utilities
# ============================================================================

def print_matrix_info(matrix: SparseMatrix, name: str = "Matrix"):
    """Log shape, nnz and density of a matrix."""
    rows, cols = matrix.shape
    nnz = matrix.count_nnz()
    total = rows * cols
    density = nnz / total if total else 0.0

    logger.info(f"{name}:")
    logger.info(f"  Shape: {rows} × {cols}")
    logger.info(f"  Nonzeros: {nnz:,}")
    logger.info(f"  Density: {density:.6f} ({density * 100:.4f}%)")
