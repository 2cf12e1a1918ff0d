"""
Sparse Matrix Calculator
Loads two matrices, applies +, - or * and writes the result.

Usage:
    # Add two matrices, writing result.txt
    python sparse_operations.py --op + a.txt b.txt

    # Multiply, print the result and check it against scipy
    python sparse_operations.py --op '*' a.txt b.txt -o - --verify

    # Prompt for the operation and use the bundled samples
    python sparse_operations.py
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import Callable, Optional

from matrix_formats import (
    SparseMatrix, FormatError, DimensionMismatchError, print_matrix_info
)
from sparse_addition import (
    sparse_add, sparse_subtract, verify_addition_scipy, verify_subtraction_scipy
)
from sparse_multiplication import sparse_multiply, verify_multiplication_scipy


logging.basicConfig(level=logging.INFO, format='%(levelname)s: %(message)s')
logger = logging.getLogger(__name__)

DEFAULT_OUTPUT = "result.txt"
# Source checkout first, then the data-files location of an installed copy
SAMPLE_DIRS = [
    Path(__file__).parent / "sample_inputs",
    Path(sys.prefix) / "share" / "sparse-matrix-calc" / "sample_inputs",
]

OPERATIONS = {
    '+': sparse_add,
    '-': sparse_subtract,
    '*': sparse_multiply,
}

VERIFIERS = {
    '+': verify_addition_scipy,
    '-': verify_subtraction_scipy,
    '*': verify_multiplication_scipy,
}

# Sample inputs with shapes compatible with each operation
SAMPLE_INPUTS = {
    '+': ("easy_sample_02_1.txt", "easy_sample_02_2.txt"),
    '-': ("easy_sample_02_1.txt", "easy_sample_02_2.txt"),
    '*': ("easy_sample_01_2.txt", "easy_sample_01_3.txt"),
}


class InvalidOperationError(ValueError):
    """Raised for an operator symbol other than +, - or *."""


# ============================================================================
# Operator Selection
# ============================================================================

def resolve_operation(symbol: str) -> Callable[[SparseMatrix, SparseMatrix], SparseMatrix]:
    """
    Map an operator symbol to its arithmetic function.

    Args:
        symbol: One of '+', '-', '*' (surrounding whitespace ignored)

    Returns:
        The matching function from OPERATIONS

    Raises:
        InvalidOperationError: For any other symbol
    """
    operation = OPERATIONS.get(symbol.strip())
    if operation is None:
        raise InvalidOperationError(f"Invalid operation {symbol!r}. Please enter +, - or *")
    return operation


def apply_operation(symbol: str, a: SparseMatrix, b: SparseMatrix) -> SparseMatrix:
    return resolve_operation(symbol)(a, b)


def prompt_operation(input_fn: Optional[Callable[[str], str]] = None) -> str:
    """Ask for an operator until a valid one is entered (reads stdin by default)."""
    if input_fn is None:
        input_fn = input
    while True:
        symbol = input_fn("Enter an operation (+, -, *): ").strip()
        if symbol in OPERATIONS:
            return symbol
        logger.warning("Invalid operation. Please enter +, - or *")


def find_sample_dir() -> Path:
    """First existing directory in SAMPLE_DIRS."""
    for candidate in SAMPLE_DIRS:
        if candidate.is_dir():
            return candidate
    raise FileNotFoundError(
        "Bundled sample inputs not found; pass file_a and file_b explicitly"
    )


def default_inputs(symbol: str):
    """Bundled sample files suited to the given operation."""
    name_a, name_b = SAMPLE_INPUTS[symbol.strip()]
    sample_dir = find_sample_dir()
    return sample_dir / name_a, sample_dir / name_b


# ============================================================================
# Run
# ============================================================================

def run(symbol: str, file_a, file_b, output=DEFAULT_OUTPUT, verify: bool = False) -> SparseMatrix:
    """
    Load both matrices, apply the operation and write the result.

    Args:
        symbol: Operator symbol
        file_a: Path to matrix A
        file_b: Path to matrix B
        output: Output file path, or '-' for stdout
        verify: Check the result against scipy.sparse

    Returns:
        The result matrix
    """
    operation = resolve_operation(symbol)

    a = SparseMatrix.from_file(file_a)
    b = SparseMatrix.from_file(file_b)
    print_matrix_info(a, "A")
    print_matrix_info(b, "B")

    result = operation(a, b)

    if output == '-':
        sys.stdout.write(result.to_text())
    else:
        logger.info(f"Writing result to {output}...")
        result.to_file(output)

    if verify:
        VERIFIERS[symbol.strip()](a, b, result)

    return result


def main(argv: Optional[list] = None) -> int:
    parser = argparse.ArgumentParser(
        description='Add, subtract or multiply two sparse matrices',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Input format:
  rows=<integer>
  cols=<integer>
  (<row>, <col>, <value>)
  ...

Examples:
  python sparse_operations.py --op + a.txt b.txt
  python sparse_operations.py --op '*' a.txt b.txt -o product.txt --verify
        """
    )

    parser.add_argument('file_a', nargs='?', help='Matrix A (defaults to a bundled sample)')
    parser.add_argument('file_b', nargs='?', help='Matrix B (defaults to a bundled sample)')
    parser.add_argument('--op', help="Operation: +, - or * (prompted if omitted)")
    parser.add_argument('-o', '--output', default=DEFAULT_OUTPUT,
                        help=f"Output file, '-' for stdout (default: {DEFAULT_OUTPUT})")
    parser.add_argument('--verify', action='store_true', help='Verify the result against scipy.sparse')

    args = parser.parse_args(argv)

    if (args.file_a is None) != (args.file_b is None):
        parser.error("give both file_a and file_b, or neither")

    symbol = args.op if args.op is not None else prompt_operation()

    try:
        resolve_operation(symbol)
        if args.file_a is None:
            file_a, file_b = default_inputs(symbol)
        else:
            file_a, file_b = args.file_a, args.file_b
        run(symbol, file_a, file_b, output=args.output, verify=args.verify)
    except (InvalidOperationError, FormatError, DimensionMismatchError, FileNotFoundError) as e:
        logger.error(str(e))
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
