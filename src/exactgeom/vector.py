"""Immutable N-dimensional vectors of Scalars."""

from __future__ import annotations

from typing import Iterable, Iterator, List, Sequence, Union

import numpy as np
from numpy.typing import NDArray

from exactgeom.common import DegenerateInput, DimensionMismatch, DomainError
from exactgeom.numeric import ONE, ZERO, Scalar, ScalarLike, to_scalar


class Vector:
    """Ordered tuple of Scalars with a fixed dimension."""

    __slots__ = ("_components",)

    def __init__(self, components: Iterable[ScalarLike]):
        self._components = tuple(to_scalar(c) for c in components)
        if not self._components:
            raise DimensionMismatch("Vector needs at least one component")

    @classmethod
    def zeros(cls, dimension: int) -> Vector:
        if dimension < 1:
            raise DimensionMismatch(f"Vector dimension must be >= 1, got {dimension}")
        return cls([ZERO] * dimension)

    @classmethod
    def from_numpy(cls, array: NDArray) -> Vector:
        """Create a vector from a 1D numpy array. LOSSY: float entries carry binary rounding."""
        array = np.asarray(array)
        if array.ndim != 1:
            raise DimensionMismatch(f"Expected a 1D array, got shape {array.shape}")
        return cls(float(v) for v in array)

    ###########################################################################
    # Accessors
    ###########################################################################

    @property
    def dimension(self) -> int:
        return len(self._components)

    @property
    def components(self) -> tuple:
        return self._components

    @property
    def x(self) -> Scalar:
        return self._components[0]

    @property
    def y(self) -> Scalar:
        if self.dimension < 2:
            raise DimensionMismatch("Vector has no y component")
        return self._components[1]

    @property
    def z(self) -> Scalar:
        if self.dimension < 3:
            raise DimensionMismatch("Vector has no z component")
        return self._components[2]

    def __len__(self) -> int:
        return len(self._components)

    def __iter__(self) -> Iterator[Scalar]:
        return iter(self._components)

    def __getitem__(self, index: int) -> Scalar:
        return self._components[index]

    def __eq__(self, other) -> bool:
        if not isinstance(other, Vector):
            return NotImplemented
        return self._components == other._components

    def __hash__(self) -> int:
        return hash(self._components)

    def __repr__(self) -> str:
        return f"Vector([{', '.join(c.to_text() for c in self._components)}])"

    ###########################################################################
    # Arithmetic
    ###########################################################################

    def _check_same_dimension(self, other: Vector, operation: str) -> None:
        if self.dimension != other.dimension:
            raise DimensionMismatch(f"{operation}: dimensions {self.dimension} and {other.dimension} differ")

    def add(self, other: Vector) -> Vector:
        self._check_same_dimension(other, "add")
        return Vector(a + b for a, b in zip(self, other))

    def sub(self, other: Vector) -> Vector:
        self._check_same_dimension(other, "sub")
        return Vector(a - b for a, b in zip(self, other))

    def scale(self, factor: ScalarLike) -> Vector:
        k = to_scalar(factor)
        return Vector(c * k for c in self)

    def negate(self) -> Vector:
        return Vector(-c for c in self)

    def __add__(self, other: Vector) -> Vector:
        return self.add(other)

    def __sub__(self, other: Vector) -> Vector:
        return self.sub(other)

    def __neg__(self) -> Vector:
        return self.negate()

    def __mul__(self, factor: ScalarLike) -> Vector:
        return self.scale(factor)

    __rmul__ = __mul__

    def dot(self, other: Vector) -> Scalar:
        self._check_same_dimension(other, "dot")
        total = ZERO
        for a, b in zip(self, other):
            total = total + a * b
        return total

    def cross(self, other: Vector) -> Vector:
        """Cross product; both vectors must be 3-dimensional."""
        if self.dimension != 3 or other.dimension != 3:
            raise DimensionMismatch(f"cross: requires dimension 3, got {self.dimension} and {other.dimension}")
        a1, a2, a3 = self._components
        b1, b2, b3 = other._components
        return Vector([a2 * b3 - a3 * b2, a3 * b1 - a1 * b3, a1 * b2 - a2 * b1])

    def outer(self, other: Vector) -> List[List[Scalar]]:
        """Outer product as a list of rows (self[i] * other[j])."""
        return [[a * b for b in other] for a in self]

    def norm_squared(self) -> Scalar:
        return self.dot(self)

    def norm(self) -> Scalar:
        return self.norm_squared().sqrt()

    def is_zero(self) -> bool:
        return all(c.is_zero() for c in self)

    def normalize(self) -> Vector:
        """Unit vector in the same direction.

        Raises:
            DegenerateInput: If the vector is zero.
        """
        if self.is_zero():
            raise DegenerateInput("Cannot normalize a zero vector")
        length = self.norm()
        return Vector(c / length for c in self)

    def distance(self, other: Vector) -> Scalar:
        self._check_same_dimension(other, "distance")
        return self.sub(other).norm()

    def angle_between(self, other: Vector) -> Scalar:
        """Unsigned angle in radians, in [0, pi]."""
        self._check_same_dimension(other, "angle_between")
        if self.is_zero() or other.is_zero():
            raise DegenerateInput("Angle with a zero vector is undefined")
        cos_theta = self.dot(other) / (self.norm() * other.norm())
        # Rounding may push |cos| marginally beyond 1
        cos_theta = Scalar.max(-ONE, Scalar.min(ONE, cos_theta))
        return cos_theta.acos()

    def project_onto(self, other: Vector) -> Vector:
        """Orthogonal projection of self onto the direction of other."""
        self._check_same_dimension(other, "project_onto")
        if other.is_zero():
            raise DegenerateInput("Cannot project onto a zero vector")
        return other.scale(self.dot(other) / other.dot(other))

    def orthogonal(self) -> Vector:
        """A vector perpendicular to self.

        2D: the vector rotated by +90 degrees, (-y, x).
        N >= 3: a unit vector perpendicular to self, obtained by Gram-Schmidt
        against the standard basis vector least aligned with self.
        """
        if self.dimension == 1:
            raise DimensionMismatch("A 1-dimensional vector has no orthogonal direction")
        if self.is_zero():
            raise DegenerateInput("A zero vector has no orthogonal direction")
        if self.dimension == 2:
            return Vector([-self.y, self.x])

        unit = self.normalize()
        axis = min(range(self.dimension), key=lambda i: abs(unit[i]))
        basis = Vector([ONE if i == axis else ZERO for i in range(self.dimension)])
        return basis.sub(unit.scale(basis.dot(unit))).normalize()

    def is_orthogonal_to(self, other: Vector, tolerance: ScalarLike = 0) -> bool:
        return abs(self.dot(other)) <= to_scalar(tolerance)

    def equals(self, other: Vector, tolerance: ScalarLike = 0) -> bool:
        """Component-wise comparison within tolerance; different dimensions are unequal."""
        tol = to_scalar(tolerance)
        if tol.is_negative():
            raise DomainError(f"Tolerance must not be negative, got {tol}")
        if self.dimension != other.dimension:
            return False
        return all(abs(a - b) <= tol for a, b in zip(self, other))

    ###########################################################################
    # Export
    ###########################################################################

    def to_text_list(self) -> List[str]:
        return [c.to_text() for c in self]

    def to_float_list(self) -> List[float]:
        """LOSSY float components, for display."""
        return [c.to_float() for c in self]

    def to_numpy(self) -> NDArray[np.float64]:
        """LOSSY float64 array, for display and plotting."""
        return np.array(self.to_float_list(), dtype=np.float64)


VectorLike = Union[Vector, Sequence[ScalarLike]]


def to_vector(value: VectorLike, dimension: int = 0) -> Vector:
    """Coerce a Vector or a sequence of numbers, optionally checking its dimension."""
    vector = value if isinstance(value, Vector) else Vector(value)
    if dimension and vector.dimension != dimension:
        raise DimensionMismatch(f"Expected a {dimension}D vector, got dimension {vector.dimension}")
    return vector
