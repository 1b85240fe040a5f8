"""Immutable rectangular matrices of Scalars with exact decompositions."""

from __future__ import annotations

import logging
from typing import Iterable, List, Optional, Sequence, Tuple, Union

import numpy as np
from numpy.typing import NDArray

from exactgeom.common import ConvergenceFailure, DimensionMismatch, DomainError, Singular
from exactgeom.consts import MATRIX_EXP_MAX_ITERATIONS, MATRIX_EXP_MAX_SQUARINGS
from exactgeom.numeric import ONE, ZERO, Scalar, ScalarLike, epsilon, to_scalar
from exactgeom.vector import Vector, VectorLike, to_vector

logger = logging.getLogger(__name__)


class Matrix:
    """R x C array of Scalars. ``A.mul(B)`` applies B first, then A."""

    __slots__ = ("_rows",)

    def __init__(self, rows: Iterable[Iterable[ScalarLike]]):
        built = tuple(tuple(to_scalar(v) for v in row) for row in rows)
        if not built or not built[0]:
            raise DimensionMismatch("Matrix needs at least one row and one column")
        cols = len(built[0])
        for index, row in enumerate(built):
            if len(row) != cols:
                raise DimensionMismatch(f"Row {index} has {len(row)} entries, expected {cols}")
        self._rows = built

    ###########################################################################
    # Factories
    ###########################################################################

    @classmethod
    def from_rows(cls, rows: Sequence[Sequence[ScalarLike]]) -> Matrix:
        return cls(rows)

    @classmethod
    def zeros(cls, rows: int, cols: int) -> Matrix:
        if rows < 1 or cols < 1:
            raise DimensionMismatch(f"Invalid matrix shape ({rows}, {cols})")
        return cls([[ZERO] * cols for _ in range(rows)])

    @classmethod
    def identity(cls, size: int) -> Matrix:
        if size < 1:
            raise DimensionMismatch(f"Invalid identity size {size}")
        return cls([[ONE if i == j else ZERO for j in range(size)] for i in range(size)])

    @classmethod
    def column(cls, values: VectorLike) -> Matrix:
        """Single-column matrix from a vector."""
        return cls([[v] for v in to_vector(values)])

    @classmethod
    def from_numpy(cls, array: NDArray) -> Matrix:
        """Create a matrix from a 2D numpy array. LOSSY: float entries carry binary rounding."""
        array = np.asarray(array)
        if array.ndim != 2:
            raise DimensionMismatch(f"Expected a 2D array, got shape {array.shape}")
        return cls([[float(v) for v in row] for row in array])

    ###########################################################################
    # Accessors
    ###########################################################################

    @property
    def shape(self) -> Tuple[int, int]:
        return len(self._rows), len(self._rows[0])

    @property
    def rows(self) -> int:
        return len(self._rows)

    @property
    def cols(self) -> int:
        return len(self._rows[0])

    def is_square(self) -> bool:
        return self.rows == self.cols

    def row(self, index: int) -> Vector:
        return Vector(self._rows[index])

    def column_vector(self, index: int) -> Vector:
        return Vector(row[index] for row in self._rows)

    def __getitem__(self, index: Tuple[int, int]) -> Scalar:
        i, j = index
        return self._rows[i][j]

    def __eq__(self, other) -> bool:
        if not isinstance(other, Matrix):
            return NotImplemented
        return self._rows == other._rows

    def __hash__(self) -> int:
        return hash(self._rows)

    def __repr__(self) -> str:
        return f"Matrix({self.to_text_rows()})"

    def _require_square(self, operation: str) -> None:
        if not self.is_square():
            raise DimensionMismatch(f"{operation} requires a square matrix, got shape {self.shape}")

    ###########################################################################
    # Arithmetic
    ###########################################################################

    def _elementwise(self, other: Union[Matrix, ScalarLike], op, operation: str) -> Matrix:
        if isinstance(other, Matrix):
            if self.shape != other.shape:
                raise DimensionMismatch(f"{operation}: shapes {self.shape} and {other.shape} differ")
            return Matrix([[op(a, b) for a, b in zip(ra, rb)] for ra, rb in zip(self._rows, other._rows)])
        k = to_scalar(other)
        return Matrix([[op(a, k) for a in row] for row in self._rows])

    def add(self, other: Union[Matrix, ScalarLike]) -> Matrix:
        """Element-wise sum with a matrix of the same shape, or with a scalar."""
        return self._elementwise(other, lambda a, b: a + b, "add")

    def sub(self, other: Union[Matrix, ScalarLike]) -> Matrix:
        return self._elementwise(other, lambda a, b: a - b, "sub")

    def mul(self, other: Union[Matrix, Vector, ScalarLike]) -> Union[Matrix, Vector]:
        """Matrix product, matrix-vector product or scaling.

        Raises:
            DimensionMismatch: If cols(self) != rows(other) (or len(vector)).
        """
        if isinstance(other, Vector):
            return self.apply_to_vector(other)
        if isinstance(other, Matrix):
            if self.cols != other.rows:
                raise DimensionMismatch(f"mul: shapes {self.shape} and {other.shape} are incompatible")
            other_cols = [other.column_vector(j).components for j in range(other.cols)]
            return Matrix([[_dot(row, col) for col in other_cols] for row in self._rows])
        k = to_scalar(other)
        return Matrix([[a * k for a in row] for row in self._rows])

    def div(self, divisor: ScalarLike) -> Matrix:
        k = to_scalar(divisor)
        return Matrix([[a / k for a in row] for row in self._rows])

    def negate(self) -> Matrix:
        return Matrix([[-a for a in row] for row in self._rows])

    def __add__(self, other):
        return self.add(other)

    def __sub__(self, other):
        return self.sub(other)

    def __matmul__(self, other):
        return self.mul(other)

    def __neg__(self):
        return self.negate()

    def apply_to_vector(self, vector: VectorLike) -> Vector:
        v = to_vector(vector)
        if v.dimension != self.cols:
            raise DimensionMismatch(f"apply_to_vector: matrix has {self.cols} columns, vector has {v.dimension}")
        return Vector(_dot(row, v.components) for row in self._rows)

    def transpose(self) -> Matrix:
        return Matrix(zip(*self._rows))

    def trace(self) -> Scalar:
        self._require_square("trace")
        total = ZERO
        for i in range(self.rows):
            total = total + self._rows[i][i]
        return total

    def equals(self, other: Matrix, tolerance: ScalarLike = 0) -> bool:
        """Entry-wise comparison within tolerance; different shapes are unequal."""
        tol = to_scalar(tolerance)
        if tol.is_negative():
            raise DomainError(f"Tolerance must not be negative, got {tol}")
        if self.shape != other.shape:
            return False
        return all(abs(a - b) <= tol for ra, rb in zip(self._rows, other._rows) for a, b in zip(ra, rb))

    def max_abs(self) -> Scalar:
        return max(abs(a) for row in self._rows for a in row)

    ###########################################################################
    # Decompositions
    ###########################################################################

    def _lu_in_place(self) -> Tuple[List[List[Scalar]], List[int], int]:
        """Doolittle elimination with partial pivoting.

        Returns the combined LU rows (L below the diagonal, unit diagonal implied),
        the row permutation and the number of row swaps.
        """
        self._require_square("LU decomposition")
        n = self.rows
        a = [list(row) for row in self._rows]
        perm = list(range(n))
        swaps = 0
        for k in range(n):
            pivot_row = max(range(k, n), key=lambda i: abs(a[i][k]))
            if a[pivot_row][k].is_zero():
                raise Singular(f"Matrix is singular (zero pivot in column {k})")
            if pivot_row != k:
                a[k], a[pivot_row] = a[pivot_row], a[k]
                perm[k], perm[pivot_row] = perm[pivot_row], perm[k]
                swaps += 1
            pivot = a[k][k]
            for i in range(k + 1, n):
                factor = a[i][k] / pivot
                a[i][k] = factor
                if factor.is_zero():
                    continue
                for j in range(k + 1, n):
                    a[i][j] = a[i][j] - factor * a[k][j]
        return a, perm, swaps

    def lu(self) -> Tuple[Matrix, Matrix, Matrix]:
        """LU decomposition with partial pivoting.

        Returns:
            Tuple[Matrix, Matrix, Matrix]: (L, U, P) with P * A = L * U, L unit lower
            triangular and U upper triangular.

        Raises:
            DimensionMismatch: If the matrix is not square.
            Singular: If a pivot is exactly zero.
        """
        a, perm, _ = self._lu_in_place()
        n = self.rows
        lower = Matrix([[ONE if i == j else (a[i][j] if j < i else ZERO) for j in range(n)] for i in range(n)])
        upper = Matrix([[a[i][j] if j >= i else ZERO for j in range(n)] for i in range(n)])
        permutation = Matrix([[ONE if perm[i] == j else ZERO for j in range(n)] for i in range(n)])
        return lower, upper, permutation

    def determinant(self) -> Scalar:
        """Determinant via LU; exact singularity raises Singular instead of returning zero."""
        a, _, swaps = self._lu_in_place()
        det = ONE if swaps % 2 == 0 else -ONE
        for i in range(self.rows):
            det = det * a[i][i]
        return det

    @staticmethod
    def _lu_solve(a: List[List[Scalar]], perm: List[int], b: Sequence[Scalar]) -> List[Scalar]:
        n = len(a)
        y: List[Scalar] = []
        for i in range(n):
            value = b[perm[i]]
            for j in range(i):
                value = value - a[i][j] * y[j]
            y.append(value)
        x: List[Scalar] = [ZERO] * n
        for i in reversed(range(n)):
            value = y[i]
            for j in range(i + 1, n):
                value = value - a[i][j] * x[j]
            x[i] = value / a[i][i]
        return x

    def solve(self, b: VectorLike) -> Vector:
        """Solve A * x = b.

        Raises:
            DimensionMismatch: If A is not square or len(b) != rows(A).
            Singular: If A is singular.
        """
        self._require_square("solve")
        rhs = to_vector(b)
        if rhs.dimension != self.rows:
            raise DimensionMismatch(f"solve: right-hand side has {rhs.dimension} entries, expected {self.rows}")
        a, perm, _ = self._lu_in_place()
        return Vector(self._lu_solve(a, perm, rhs.components))

    def inverse(self) -> Matrix:
        a, perm, _ = self._lu_in_place()
        n = self.rows
        columns = [
            self._lu_solve(a, perm, [ONE if i == j else ZERO for i in range(n)]) for j in range(n)
        ]
        return Matrix(zip(*columns))

    def qr(self) -> Tuple[Matrix, Matrix]:
        """Householder QR decomposition of an m x n matrix.

        Returns:
            Tuple[Matrix, Matrix]: (Q, R) with Q m x m orthogonal, R m x n upper
            trapezoidal and A = Q * R.
        """
        m, n = self.shape
        r = [list(row) for row in self._rows]
        q = [[ONE if i == j else ZERO for j in range(m)] for i in range(m)]
        for k in range(min(m - 1, n)):
            x = [r[i][k] for i in range(k, m)]
            norm_x = _dot(x, x).sqrt()
            if norm_x.is_zero():
                continue
            alpha = -norm_x if x[0] > 0 else norm_x
            v = list(x)
            v[0] = v[0] - alpha
            vtv = _dot(v, v)
            if vtv.is_zero():
                continue
            # R <- H R on rows k..m-1
            for j in range(n):
                s = _dot(v, [r[i][j] for i in range(k, m)]) * 2 / vtv
                if s.is_zero():
                    continue
                for offset, vi in enumerate(v):
                    r[k + offset][j] = r[k + offset][j] - s * vi
            # Q <- Q H on columns k..m-1
            for i in range(m):
                s = _dot(q[i][k:], v) * 2 / vtv
                if s.is_zero():
                    continue
                for offset, vi in enumerate(v):
                    q[i][k + offset] = q[i][k + offset] - s * vi
            # Entries below the diagonal are zero by construction
            for i in range(k + 1, m):
                r[i][k] = ZERO
        return Matrix(q), Matrix(r)

    def exp(self, max_iterations: int = MATRIX_EXP_MAX_ITERATIONS, tolerance: Optional[ScalarLike] = None) -> Matrix:
        """Matrix exponential by Taylor series with scaling and squaring.

        Args:
            max_iterations: Maximum number of Taylor terms.
            tolerance: Stop once every entry of a term is below this value
                (default: epsilon() of the active precision).

        Raises:
            ConvergenceFailure: If the series does not converge, or the norm needs
                more than MATRIX_EXP_MAX_SQUARINGS halvings.
        """
        self._require_square("exp")
        tol = epsilon() if tolerance is None else to_scalar(tolerance)
        n = self.rows

        norm = max(sum((abs(a) for a in row), ZERO) for row in self._rows)
        squarings = 0
        half = Scalar.from_text("0.5")
        while norm > half:
            norm = norm / 2
            squarings += 1
            if squarings > MATRIX_EXP_MAX_SQUARINGS:
                raise ConvergenceFailure(f"Matrix exponential needs more than {MATRIX_EXP_MAX_SQUARINGS} squarings")
        scaled = self.div(Scalar.from_int(2**squarings)) if squarings else self

        total = Matrix.identity(n)
        term = Matrix.identity(n)
        for k in range(1, max_iterations + 1):
            term = term.mul(scaled).div(k)
            total = total.add(term)
            if term.max_abs() <= tol:
                logger.debug("Matrix exp converged after %d terms and %d squarings", k, squarings)
                break
        else:
            raise ConvergenceFailure(f"Matrix exponential did not converge in {max_iterations} terms")

        for _ in range(squarings):
            total = total.mul(total)
        return total

    ###########################################################################
    # Export
    ###########################################################################

    def to_text_rows(self) -> List[List[str]]:
        return [[a.to_text() for a in row] for row in self._rows]

    def to_float_rows(self) -> List[List[float]]:
        """LOSSY float entries, for display."""
        return [[a.to_float() for a in row] for row in self._rows]

    def to_numpy(self) -> NDArray[np.float64]:
        """LOSSY float64 array, for display and plotting."""
        return np.array(self.to_float_rows(), dtype=np.float64)


def _dot(a: Sequence[Scalar], b: Sequence[Scalar]) -> Scalar:
    total = ZERO
    for x, y in zip(a, b):
        total = total + x * y
    return total
