"""
Small dense linear algebra kernel for surveystats.

This module provides the Matrix type used by the factor analysis and
reliability code: element access, transpose, scalar and matrix products,
subtraction, Frobenius norm, sub-matrix extraction, a cofactor-expansion
determinant and a Gauss-Jordan inverse.

The determinant is computed by recursive cofactor expansion along the first
row, which is exponential in the matrix size. The matrices handled here have
one axis per selected survey variable (typically fewer than 20), so this is
a scaling limit rather than a practical problem.
"""

import logging
import numpy as np
from typing import Sequence, Tuple, Union

from surveystats.errors import ShapeError, SingularMatrixError

logger = logging.getLogger(__name__)

# Pivots with an absolute value below this are treated as zero
PIVOT_TOLERANCE = 1e-10


class Matrix:
    """
    A 2-D numeric matrix with a fixed number of rows and columns.

    All operations return new matrices; only set() modifies the receiver.
    """

    def __init__(self, data: Union[Sequence[Sequence[float]], np.ndarray]):
        """
        Initialize a matrix from nested sequences or a 2-D array.

        Args:
            data: Row-major matrix data
        """
        array = np.array(data, dtype=float)
        if array.ndim == 1 and array.size == 0:
            array = array.reshape(0, 0)
        if array.ndim != 2:
            raise ShapeError(f"Matrix data must be 2-D, got {array.ndim} dimension(s)")
        self._data = array

    @classmethod
    def zeros(cls, rows: int, cols: int) -> 'Matrix':
        """Create a rows x cols matrix of zeros."""
        return cls(np.zeros((rows, cols)))

    @classmethod
    def identity(cls, n: int) -> 'Matrix':
        """Create the n x n identity matrix."""
        return cls(np.eye(n))

    @property
    def rows(self) -> int:
        return self._data.shape[0]

    @property
    def cols(self) -> int:
        return self._data.shape[1]

    @property
    def shape(self) -> Tuple[int, int]:
        return self._data.shape

    @property
    def is_square(self) -> bool:
        return self.rows == self.cols

    def get(self, i: int, j: int) -> float:
        return float(self._data[i, j])

    def set(self, i: int, j: int, value: float) -> None:
        self._data[i, j] = value

    def to_numpy(self) -> np.ndarray:
        """Return a copy of the matrix as a numpy array."""
        return self._data.copy()

    def _require_square(self, operation: str) -> None:
        if not self.is_square:
            raise ShapeError(f"{operation} requires a square matrix, got {self.rows}x{self.cols}")
        if self.rows == 0:
            raise ShapeError(f"{operation} requires a non-empty matrix")

    def sub_matrix(self, rows: Sequence[int], cols: Sequence[int]) -> 'Matrix':
        """
        Extract the sub-matrix at the given row and column indices.

        Args:
            rows: Row indices to keep, in order
            cols: Column indices to keep, in order

        Returns:
            New matrix of shape len(rows) x len(cols)
        """
        rows = list(rows)
        cols = list(cols)
        if not rows or not cols:
            raise ShapeError("Empty row or column selection")
        if any(i < 0 or i >= self.rows for i in rows) or \
                any(j < 0 or j >= self.cols for j in cols):
            raise IndexError("Sub-matrix index out of bounds")
        return Matrix(self._data[np.ix_(rows, cols)])

    def minor(self, i: int, j: int) -> 'Matrix':
        """The matrix with row i and column j removed."""
        keep_rows = [r for r in range(self.rows) if r != i]
        keep_cols = [c for c in range(self.cols) if c != j]
        return self.sub_matrix(keep_rows, keep_cols)

    def determinant(self) -> float:
        """
        Determinant by cofactor expansion along the first row.

        Returns:
            The determinant

        Raises:
            ShapeError: if the matrix is not square
        """
        self._require_square("Determinant")
        d = self._data
        if self.rows == 1:
            return float(d[0, 0])
        if self.rows == 2:
            return float(d[0, 0] * d[1, 1] - d[0, 1] * d[1, 0])

        det = 0.0
        for j in range(self.cols):
            if d[0, j] == 0:
                continue
            sign = 1.0 if j % 2 == 0 else -1.0
            det += sign * d[0, j] * self.minor(0, j).determinant()
        return det

    def inverse(self) -> 'Matrix':
        """
        Inverse by Gauss-Jordan elimination on [M | I] with partial pivoting.

        Returns:
            The inverse matrix

        Raises:
            ShapeError: if the matrix is not square
            SingularMatrixError: if a pivot falls below PIVOT_TOLERANCE
        """
        self._require_square("Inverse")
        n = self.rows
        augmented = np.hstack([self._data.copy(), np.eye(n)])

        for i in range(n):
            pivot_row = i + int(np.argmax(np.abs(augmented[i:, i])))
            pivot = augmented[pivot_row, i]
            if abs(pivot) < PIVOT_TOLERANCE:
                raise SingularMatrixError(f"Matrix is singular (pivot {pivot:.3g} in column {i})")
            if pivot_row != i:
                augmented[[i, pivot_row]] = augmented[[pivot_row, i]]

            augmented[i] = augmented[i] / pivot
            for k in range(n):
                if k != i:
                    factor = augmented[k, i]
                    if factor != 0:
                        augmented[k] = augmented[k] - factor * augmented[i]

        return Matrix(augmented[:, n:])

    def transpose(self) -> 'Matrix':
        return Matrix(self._data.T.copy())

    def scalar_multiply(self, scalar: float) -> 'Matrix':
        return Matrix(self._data * scalar)

    def multiply(self, other: 'Matrix') -> 'Matrix':
        """
        Matrix product self x other.

        Raises:
            ShapeError: if self.cols != other.rows
        """
        if self.cols != other.rows:
            raise ShapeError(
                f"Cannot multiply {self.rows}x{self.cols} by {other.rows}x{other.cols}"
            )
        return Matrix(self._data @ other._data)

    def subtract(self, other: 'Matrix') -> 'Matrix':
        """
        Element-wise difference self - other.

        Raises:
            ShapeError: if the dimensions differ
        """
        if self.shape != other.shape:
            raise ShapeError(
                f"Matrices must have same dimensions: {self.rows}x{self.cols} "
                f"vs {other.rows}x{other.cols}"
            )
        return Matrix(self._data - other._data)

    def frobenius_norm(self) -> float:
        return float(np.sqrt(np.sum(self._data ** 2)))

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Matrix):
            return NotImplemented
        return self.shape == other.shape and bool(np.array_equal(self._data, other._data))

    def __repr__(self) -> str:
        return f"Matrix(rows={self.rows}, cols={self.cols})"
