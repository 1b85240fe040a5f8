"""Axis-aligned boxes of exact coordinates"""

from __future__ import annotations

from typing import Iterable, Tuple

from exactgeom.common import DegenerateInput
from exactgeom.matrix import Matrix
from exactgeom.numeric import Scalar, ScalarLike, to_scalar
from exactgeom.transforms import Transform2D
from exactgeom.vector import Vector, VectorLike, to_vector


###############################################################################
# Box
###############################################################################
class Box:
    """
    Represents an axis-aligned rectangle with exact coordinates.

    Attributes:
        xmin (Scalar): The minimum x-coordinate.
        ymin (Scalar): The minimum y-coordinate.
        xmax (Scalar): The maximum x-coordinate.
        ymax (Scalar): The maximum y-coordinate.
    """

    __slots__ = ("_xmin", "_ymin", "_xmax", "_ymax")

    def __init__(self, xmin: ScalarLike, ymin: ScalarLike, xmax: ScalarLike, ymax: ScalarLike):
        """Initialize Box with coordinates.

        Args:
            xmin: The minimum x-coordinate
            ymin: The minimum y-coordinate
            xmax: The maximum x-coordinate
            ymax: The maximum y-coordinate
        """
        self._xmin = to_scalar(xmin)
        self._ymin = to_scalar(ymin)
        self._xmax = to_scalar(xmax)
        self._ymax = to_scalar(ymax)

        # Normalize coordinates to ensure xmin <= xmax and ymin <= ymax
        if self._xmin > self._xmax:
            self._xmin, self._xmax = self._xmax, self._xmin
        if self._ymin > self._ymax:
            self._ymin, self._ymax = self._ymax, self._ymin

    @classmethod
    def from_points(cls, points: Iterable[VectorLike]) -> Box:
        """Smallest box containing all given 2D points."""
        vectors = [to_vector(p, 2) for p in points]
        if not vectors:
            raise DegenerateInput("Box.from_points needs at least one point")
        xs = [v.x for v in vectors]
        ys = [v.y for v in vectors]
        return cls(min(xs), min(ys), max(xs), max(ys))

    @property
    def xmin(self) -> Scalar:
        """Scalar: The minimum x-coordinate."""
        return self._xmin

    @property
    def ymin(self) -> Scalar:
        """Scalar: The minimum y-coordinate."""
        return self._ymin

    @property
    def xmax(self) -> Scalar:
        """Scalar: The maximum x-coordinate."""
        return self._xmax

    @property
    def ymax(self) -> Scalar:
        """Scalar: The maximum y-coordinate."""
        return self._ymax

    @property
    def extent(self) -> Tuple[Scalar, Scalar, Scalar, Scalar]:
        """The extent of the box as Tuple (xmin, ymin, xmax, ymax)."""
        return self._xmin, self._ymin, self._xmax, self._ymax

    @property
    def width(self) -> Scalar:
        return self._xmax - self._xmin

    @property
    def height(self) -> Scalar:
        return self._ymax - self._ymin

    @property
    def area(self) -> Scalar:
        return self.width * self.height

    @property
    def centroid(self) -> Vector:
        """The centroid of the box as 2D Vector."""
        return Vector([(self._xmin + self._xmax) / 2, (self._ymin + self._ymax) / 2])

    def overlaps(self, other: Box, tolerance: ScalarLike = 0) -> bool:
        """True if the boxes intersect (touching counts), optionally grown by tolerance."""
        tol = to_scalar(tolerance)
        return (
            self._xmin <= other._xmax + tol
            and other._xmin <= self._xmax + tol
            and self._ymin <= other._ymax + tol
            and other._ymin <= self._ymax + tol
        )

    def contains(self, point: VectorLike) -> bool:
        p = to_vector(point, 2)
        return self._xmin <= p.x <= self._xmax and self._ymin <= p.y <= self._ymax

    def union(self, other: Box) -> Box:
        return Box(
            min(self._xmin, other._xmin),
            min(self._ymin, other._ymin),
            max(self._xmax, other._xmax),
            max(self._ymax, other._ymax),
        )

    def corners(self) -> Tuple[Vector, Vector, Vector, Vector]:
        return (
            Vector([self._xmin, self._ymin]),
            Vector([self._xmax, self._ymin]),
            Vector([self._xmax, self._ymax]),
            Vector([self._xmin, self._ymax]),
        )

    def transform_affine(self, affine_trafo: Matrix) -> Box:
        """
        Transform the Box using the given 3x3 affine transformation.

        All four corners are mapped, so the result bounds the image also under
        rotation and skew.

        Args:
            affine_trafo (Matrix): Homogeneous 2D affine transformation

        Returns:
            Box: The axis-aligned box of the transformed corners
        """
        return Box.from_points(Transform2D.apply_to_point(affine_trafo, c) for c in self.corners())

    def transform_scale_translate(self, scale_factor: ScalarLike, translate_x: ScalarLike, translate_y: ScalarLike) -> Box:
        k = to_scalar(scale_factor)
        tx, ty = to_scalar(translate_x), to_scalar(translate_y)
        return Box(self._xmin * k + tx, self._ymin * k + ty, self._xmax * k + tx, self._ymax * k + ty)

    @classmethod
    def from_dict(cls, data: dict) -> Box:
        """Create a Box instance from a dictionary of exact texts or numbers."""
        return cls(
            xmin=data.get("xmin", 0),
            ymin=data.get("ymin", 0),
            xmax=data.get("xmax", 0),
            ymax=data.get("ymax", 0),
        )

    def to_dict(self) -> dict:
        """Convert the Box to a dictionary of exact texts."""
        return {
            "xmin": self._xmin.to_text(),
            "ymin": self._ymin.to_text(),
            "xmax": self._xmax.to_text(),
            "ymax": self._ymax.to_text(),
        }

    def __eq__(self, other) -> bool:
        if not isinstance(other, Box):
            return NotImplemented
        return self.extent == other.extent

    def __hash__(self) -> int:
        return hash(self.extent)

    def __str__(self):
        """Returns a string representation of the Box instance."""
        return (
            f"Box(xmin={self.xmin}, ymin={self.ymin}, "
            f"xmax={self.xmax}, ymax={self.ymax}, "
            f"width={self.width}, height={self.height})"
        )
