"""
Sparse Matrix Data Generator
Generates synthetic sparse matrices in the rows=/cols=/(r, c, v) text format.

Features:
- Control matrix size and sparsity
- Size estimation before generation
- Random, banded and identity patterns
- Progress tracking
"""

import argparse
import logging
from pathlib import Path
from typing import Optional

import numpy as np
from tqdm import tqdm

from matrix_formats import SparseMatrix, format_value


# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(levelname)s: %(message)s'
)
logger = logging.getLogger(__name__)


class SparseMatrixGenerator:
    """Generate synthetic sparse matrices for testing."""

    def __init__(self, output_dir: str = "sample_inputs", max_size_mb: float = 500):
        self.output_dir = Path(output_dir)
        self.output_dir.mkdir(parents=True, exist_ok=True)
        self.max_size_mb = max_size_mb

    def estimate_memory(self, num_rows: int, num_cols: int, nnz: int) -> dict:
        """
        Estimate memory and file size for a matrix.

        Args:
            num_rows: Number of rows
            num_cols: Number of columns
            nnz: Number of nonzeros

        Returns:
            Dictionary with estimates in MB
        """
        # Dict entry: key tuple + two ints + float, roughly 200 bytes in CPython
        memory_generation_mb = (nnz * 200) / (1024 * 1024)

        # Text line "(row, col, value)": roughly 30 bytes per entry
        text_size_mb = (nnz * 30) / (1024 * 1024)

        return {
            'generation_mb': memory_generation_mb,
            'text_size_mb': text_size_mb,
            'total_mb': memory_generation_mb + text_size_mb
        }

    def check_safety(self, num_rows: int, num_cols: int, nnz: int):
        """
        Refuse to generate matrices above the size limit.

        Raises:
            ValueError if unsafe
        """
        estimates = self.estimate_memory(num_rows, num_cols, nnz)

        if estimates['total_mb'] > self.max_size_mb:
            raise ValueError(
                f"Matrix too large! Estimated memory: {estimates['total_mb']:.1f} MB\n"
                f"Maximum allowed: {self.max_size_mb} MB\n"
                f"Suggestion: Reduce nnz to {int(nnz * self.max_size_mb / estimates['total_mb'])}"
            )

        logger.info(f"Memory estimate: {estimates['total_mb']:.1f} MB (SAFE)")

    def _write(self, matrix: SparseMatrix, filename: str) -> str:
        filepath = self.output_dir / filename

        logger.info(f"Writing {matrix.count_nnz():,} entries to {filepath}...")
        with open(filepath, 'w', encoding='utf-8') as f:
            f.write(f"rows={matrix.rows}\ncols={matrix.cols}\n")
            for i, j, v in tqdm(matrix.entries(), total=matrix.count_nnz(),
                                desc="Writing entries", unit=" entries"):
                f.write(f"({i}, {j}, {format_value(v)})\n")

        file_size_mb = filepath.stat().st_size / (1024 * 1024)
        logger.info(f"✓ Generated {filepath} ({file_size_mb:.2f} MB)")

        return str(filepath)

    def generate_random(
        self,
        num_rows: int,
        num_cols: int,
        nnz: int,
        filename: str,
        seed: Optional[int] = None,
        check_duplicates: bool = False
    ) -> str:
        """
        Generate random sparse matrix with uniform distribution.

        Values are nonzero integers between -100 and 100.

        Args:
            num_rows: Number of rows
            num_cols: Number of columns
            nnz: Number of nonzeros
            filename: Output filename
            seed: Random seed for reproducibility
            check_duplicates: If True, ensure exactly ``nnz`` distinct (i,j) pairs

        Returns:
            Path to generated file
        """
        logger.info(f"Generating random matrix: {num_rows}×{num_cols}, {nnz:,} nonzeros")

        self.check_safety(num_rows, num_cols, nnz)

        if seed is not None:
            np.random.seed(seed)

        if check_duplicates:
            # Slower but ensures no duplicates
            logger.info("Ensuring unique (row, col) pairs...")
            total_possible = num_rows * num_cols

            if nnz > total_possible:
                raise ValueError(f"Cannot generate {nnz} unique entries in {num_rows}×{num_cols} matrix")

            positions = np.random.choice(total_possible, size=nnz, replace=False)
            rows = positions // num_cols
            cols = positions % num_cols
        else:
            # Faster, duplicates collapse to one entry
            rows = np.random.randint(0, num_rows, nnz)
            cols = np.random.randint(0, num_cols, nnz)

        values = np.random.randint(1, 101, nnz) * np.random.choice([-1, 1], nnz)

        matrix = SparseMatrix(num_rows, num_cols)
        for i, j, v in zip(rows.tolist(), cols.tolist(), values.tolist()):
            matrix.set(i, j, v)

        return self._write(matrix, filename)

    def generate_banded(
        self,
        size: int,
        bandwidth: int,
        filename: str,
        seed: Optional[int] = None
    ) -> str:
        """
        Generate banded matrix (nonzeros near diagonal).

        Args:
            size: Matrix size (size × size)
            bandwidth: Number of diagonals on each side of main diagonal
            filename: Output filename
            seed: Random seed

        Returns:
            Path to generated file
        """
        logger.info(f"Generating banded matrix: {size}×{size}, bandwidth={bandwidth}")

        self.check_safety(size, size, size * (2 * bandwidth + 1))

        if seed is not None:
            np.random.seed(seed)

        matrix = SparseMatrix(size, size)
        for i in range(size):
            for k in range(-bandwidth, bandwidth + 1):
                j = i + k
                if 0 <= j < size:
                    matrix.set(i, j, round(float(np.random.randn()), 3))

        return self._write(matrix, filename)

    def generate_identity(self, size: int, filename: str) -> str:
        """Generate the size × size identity matrix."""
        logger.info(f"Generating identity matrix: {size}×{size}")

        self.check_safety(size, size, size)

        matrix = SparseMatrix(size, size)
        for i in range(size):
            matrix.set(i, i, 1.0)

        return self._write(matrix, filename)


def main():
    parser = argparse.ArgumentParser(
        description='Generate sparse matrices for the sparse matrix calculator',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Generate a 100×80 random matrix with 500 nonzeros
  python generate_data.py --random --rows 100 --cols 80 --nnz 500 -o random.txt

  # Generate banded matrix
  python generate_data.py --banded --size 50 --bandwidth 2 -o banded.txt

  # Generate identity matrix
  python generate_data.py --identity --size 50 -o identity.txt
        """
    )

    parser.add_argument('--output-dir', default='sample_inputs', help='Output directory')
    parser.add_argument('--seed', type=int, default=42, help='Random seed')
    parser.add_argument('--max-memory', type=float, default=500, help='Max memory in MB (safety limit)')

    parser.add_argument('--random', action='store_true', help='Generate random matrix')
    parser.add_argument('--banded', action='store_true', help='Generate banded matrix')
    parser.add_argument('--identity', action='store_true', help='Generate identity matrix')

    parser.add_argument('--rows', type=int, help='Number of rows')
    parser.add_argument('--cols', type=int, help='Number of columns')
    parser.add_argument('--nnz', type=int, help='Number of nonzeros')
    parser.add_argument('--size', type=int, help='Matrix size (for square matrices)')
    parser.add_argument('--bandwidth', type=int, help='Bandwidth for banded matrices')
    parser.add_argument('--unique', action='store_true', help='Avoid duplicate coordinates')

    parser.add_argument('-o', '--output', help='Output filename')

    args = parser.parse_args()

    generator = SparseMatrixGenerator(args.output_dir, max_size_mb=args.max_memory)

    if args.random:
        if not all([args.rows, args.cols, args.nnz, args.output]):
            parser.error("--random requires --rows, --cols, --nnz, and -o")

        generator.generate_random(
            num_rows=args.rows,
            num_cols=args.cols,
            nnz=args.nnz,
            filename=args.output,
            seed=args.seed,
            check_duplicates=args.unique
        )

    elif args.banded:
        if args.size is None or args.bandwidth is None or not args.output:
            parser.error("--banded requires --size, --bandwidth, and -o")

        generator.generate_banded(
            size=args.size,
            bandwidth=args.bandwidth,
            filename=args.output,
            seed=args.seed
        )

    elif args.identity:
        if not all([args.size, args.output]):
            parser.error("--identity requires --size and -o")

        generator.generate_identity(size=args.size, filename=args.output)

    else:
        parser.print_help()


if __name__ == "__main__":
    main()
