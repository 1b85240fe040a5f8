"""Exact Bezier curve analysis: evaluation, derivatives, curvature, bounds and subdivision."""

from __future__ import annotations

from dataclasses import dataclass
from math import comb
from typing import List, Sequence, Tuple

import numpy as np
from numpy.typing import NDArray

from exactgeom.common import DegenerateInput, DimensionMismatch, DomainError
from exactgeom.consts import BBOX_VERIFY_SAMPLES, BEZIER_VERIFY_TOLERANCE
from exactgeom.geom import Box
from exactgeom.matrix import Matrix
from exactgeom.numeric import ONE, ZERO, Scalar, ScalarLike, to_scalar
from exactgeom.roots import RootFinder
from exactgeom.transforms import Transform2D
from exactgeom.vector import Vector, VectorLike, to_vector


@dataclass(frozen=True)
class VerificationResult:
    """Outcome of a self-check: the largest measured error and whether it is within tolerance."""

    valid: bool
    error: Scalar

    @classmethod
    def of(cls, errors: Sequence[Scalar], tolerance: ScalarLike) -> VerificationResult:
        worst = Scalar.max(ZERO, *errors)
        return cls(worst <= to_scalar(tolerance), worst)


class BezierCurve:
    """Line, quadratic or cubic Bezier curve with exact 2D control points.

    The degree is the number of control points minus one (1 to 3). The
    parameter t is conventionally in [0, 1], but any real t is accepted.
    """

    __slots__ = ("_points",)

    def __init__(self, points: Sequence[VectorLike]):
        if not 2 <= len(points) <= 4:
            raise DimensionMismatch(f"A Bezier curve needs 2 to 4 control points, got {len(points)}")
        self._points: Tuple[Vector, ...] = tuple(to_vector(p, 2) for p in points)

    @classmethod
    def from_coordinates(cls, coordinates: Sequence[Sequence[ScalarLike]]) -> BezierCurve:
        """Create a curve from [[x, y], ...] given as exact texts, ints, Decimals or floats (lossy)."""
        return cls([Vector(xy) for xy in coordinates])

    ###########################################################################
    # Accessors
    ###########################################################################

    @property
    def points(self) -> Tuple[Vector, ...]:
        return self._points

    @property
    def degree(self) -> int:
        return len(self._points) - 1

    @property
    def start(self) -> Vector:
        return self._points[0]

    @property
    def end(self) -> Vector:
        return self._points[-1]

    def __eq__(self, other) -> bool:
        if not isinstance(other, BezierCurve):
            return NotImplemented
        return self._points == other._points

    def __hash__(self) -> int:
        return hash(self._points)

    def __repr__(self) -> str:
        coords = ", ".join(f"({p.x}, {p.y})" for p in self._points)
        return f"BezierCurve([{coords}])"

    ###########################################################################
    # Evaluation
    ###########################################################################

    @staticmethod
    def _lerp(a: Vector, b: Vector, t: Scalar) -> Vector:
        return Vector([a.x + (b.x - a.x) * t, a.y + (b.y - a.y) * t])

    def _casteljau_levels(self, t: Scalar) -> List[List[Vector]]:
        levels = [list(self._points)]
        while len(levels[-1]) > 1:
            prev = levels[-1]
            levels.append([self._lerp(prev[i], prev[i + 1], t) for i in range(len(prev) - 1)])
        return levels

    def point(self, t: ScalarLike) -> Vector:
        """Point at parameter t by de Casteljau's algorithm."""
        return self._casteljau_levels(to_scalar(t))[-1][0]

    @staticmethod
    def _difference(points: Sequence[Vector]) -> List[Vector]:
        n = len(points) - 1
        return [points[i + 1].sub(points[i]).scale(n) for i in range(n)]

    def hodograph(self) -> List[Vector]:
        """Control points of the first derivative curve: n * (P[i+1] - P[i])."""
        return self._difference(self._points)

    def derivative(self, t: ScalarLike, order: int = 1) -> Vector:
        """
        Derivative of the given order at t.

        Control points are differenced once per order, each time scaled by the
        current degree. Order 0 is the point itself; orders above the degree
        give the zero vector.

        Raises:
            DomainError: If order is negative.
        """
        if order < 0:
            raise DomainError(f"Derivative order must be >= 0, got {order}")
        if order > self.degree:
            return Vector.zeros(2)
        points = list(self._points)
        for _ in range(order):
            points = self._difference(points)
        if len(points) == 1:
            return points[0]
        return BezierCurve(points).point(t)

    def unit_tangent(self, t: ScalarLike) -> Vector:
        d1 = self.derivative(t)
        if d1.is_zero():
            raise DegenerateInput(f"Tangent is undefined at t={t} (zero derivative)")
        return d1.normalize()

    def normal(self, t: ScalarLike) -> Vector:
        """Unit tangent rotated by +90 degrees."""
        return self.unit_tangent(t).orthogonal()

    def curvature(self, t: ScalarLike) -> Scalar:
        """
        Signed curvature (x'y'' - y'x'') / (x'^2 + y'^2)^1.5 at t.

        Positive for counter-clockwise turning, zero on straight segments.

        Raises:
            DegenerateInput: If the speed is zero at t (cusp).
        """
        d1 = self.derivative(t)
        d2 = self.derivative(t, 2)
        speed_sq = d1.dot(d1)
        if speed_sq.is_zero():
            raise DegenerateInput(f"Curvature is undefined at t={t} (zero speed)")
        cross = d1.x * d2.y - d1.y * d2.x
        return cross / (speed_sq * speed_sq.sqrt())

    def radius_of_curvature(self, t: ScalarLike) -> Scalar:
        kappa = self.curvature(t)
        if kappa.is_zero():
            raise DegenerateInput(f"Radius of curvature is infinite at t={t} (zero curvature)")
        return ONE / abs(kappa)

    ###########################################################################
    # Bounds
    ###########################################################################

    def _axis_extrema(self, axis: int) -> List[Scalar]:
        """Parameters in (0, 1) where the given coordinate has zero derivative."""
        p = [pt[axis] for pt in self._points]
        if self.degree == 2:
            candidates = RootFinder.solve_linear(p[0] - p[1] * 2 + p[2], p[1] - p[0])
        elif self.degree == 3:
            a = -p[0] + p[1] * 3 - p[2] * 3 + p[3]
            b = (p[0] - p[1] * 2 + p[2]) * 2
            c = p[1] - p[0]
            candidates = RootFinder.solve_quadratic(a, b, c)
        else:
            candidates = []
        return [t for t in candidates if ZERO < t < ONE]

    def bbox(self) -> Box:
        """Tight axis-aligned bounding box of the curve for t in [0, 1]."""
        params = [ZERO, ONE] + self._axis_extrema(0) + self._axis_extrema(1)
        return Box.from_points(self.point(t) for t in params)

    def control_box(self) -> Box:
        """Box of the control polygon; contains the curve (convex hull property)."""
        return Box.from_points(self._points)

    def flatness(self) -> Scalar:
        """Maximum distance of the inner control points from the chord start-end."""
        chord = self.end.sub(self.start)
        inner = self._points[1:-1]
        if not inner:
            return ZERO
        if chord.is_zero():
            return max(p.distance(self.start) for p in inner)
        length = chord.norm()
        return max(abs(chord.x * (p.y - self.start.y) - chord.y * (p.x - self.start.x)) / length for p in inner)

    ###########################################################################
    # Subdivision
    ###########################################################################

    def split(self, t: ScalarLike) -> Tuple[BezierCurve, BezierCurve]:
        """Split at t into (left, right) with left.end == right.start == point(t)."""
        levels = self._casteljau_levels(to_scalar(t))
        left = [level[0] for level in levels]
        right = [level[-1] for level in reversed(levels)]
        return BezierCurve(left), BezierCurve(right)

    def halve(self) -> Tuple[BezierCurve, BezierCurve]:
        return self.split(Scalar.from_text("0.5"))

    def crop(self, t0: ScalarLike, t1: ScalarLike) -> BezierCurve:
        """
        Sub-curve between parameters t0 and t1.

        Raises:
            DomainError: If t0 >= t1.
        """
        a, b = to_scalar(t0), to_scalar(t1)
        if a >= b:
            raise DomainError(f"crop requires t0 < t1, got t0={a}, t1={b}")
        if not b.is_zero():
            left, _ = self.split(b)
            return left.split(a / b)[1]
        _, right = self.split(a)
        return right.split((b - a) / (ONE - a))[0]

    def reversed(self) -> BezierCurve:
        return BezierCurve(list(reversed(self._points)))

    def transformed(self, matrix: Matrix) -> BezierCurve:
        """Image under a 3x3 affine transform (applied to the control points)."""
        return BezierCurve([Transform2D.apply_to_point(matrix, p) for p in self._points])

    ###########################################################################
    # Power basis
    ###########################################################################

    def to_polynomial(self) -> Tuple[List[Scalar], List[Scalar]]:
        """Ascending power-basis coefficients (xs, ys) of x(t) and y(t)."""
        n = self.degree
        xs: List[Scalar] = []
        ys: List[Scalar] = []
        for j in range(n + 1):
            cx, cy = ZERO, ZERO
            for i in range(j + 1):
                factor = comb(j, i) * (-1) ** (i + j)
                cx = cx + self._points[i].x * factor
                cy = cy + self._points[i].y * factor
            xs.append(cx * comb(n, j))
            ys.append(cy * comb(n, j))
        return xs, ys

    @classmethod
    def from_polynomial(cls, xs: Sequence[ScalarLike], ys: Sequence[ScalarLike]) -> BezierCurve:
        """Curve whose coordinates are the given ascending power-basis polynomials (degree 1 to 3)."""
        n = max(len(xs), len(ys)) - 1
        if not 1 <= n <= 3:
            raise DimensionMismatch(f"Polynomial degree must be 1 to 3, got {n}")
        cx = [to_scalar(c) for c in xs] + [ZERO] * (n + 1 - len(xs))
        cy = [to_scalar(c) for c in ys] + [ZERO] * (n + 1 - len(ys))
        points = []
        for i in range(n + 1):
            px, py = ZERO, ZERO
            for j in range(i + 1):
                weight = Scalar.from_int(comb(i, j)) / comb(n, j)
                px = px + cx[j] * weight
                py = py + cy[j] * weight
            points.append(Vector([px, py]))
        return cls(points)

    ###########################################################################
    # Self-checks
    ###########################################################################

    _CHECK_PARAMS = ("0", "0.25", "0.5", "0.75", "1")

    def verify_split(self, t: ScalarLike, tolerance: ScalarLike = BEZIER_VERIFY_TOLERANCE) -> VerificationResult:
        """
        Check split(t) against the curve itself.

        Both halves must meet at point(t), and left(u) / right(u) must equal
        the curve at t * u and t + u * (1 - t).

        Returns:
            VerificationResult: error is the largest distance found
        """
        split_t = to_scalar(t)
        left, right = self.split(split_t)
        at_split = self.point(split_t)
        errors = [left.end.distance(at_split), right.start.distance(at_split)]
        for text in self._CHECK_PARAMS:
            u = Scalar.from_text(text)
            errors.append(left.point(u).distance(self.point(split_t * u)))
            errors.append(right.point(u).distance(self.point(split_t + u * (ONE - split_t))))
        return VerificationResult.of(errors, tolerance)

    def verify_crop(
        self, t0: ScalarLike, t1: ScalarLike, tolerance: ScalarLike = BEZIER_VERIFY_TOLERANCE
    ) -> VerificationResult:
        """Check that crop(t0, t1) at u is the curve at t0 + u * (t1 - t0)."""
        a, b = to_scalar(t0), to_scalar(t1)
        cropped = self.crop(a, b)
        errors = []
        for text in self._CHECK_PARAMS:
            u = Scalar.from_text(text)
            errors.append(cropped.point(u).distance(self.point(a + u * (b - a))))
        return VerificationResult.of(errors, tolerance)

    def verify_polynomial(self, tolerance: ScalarLike = BEZIER_VERIFY_TOLERANCE) -> VerificationResult:
        """Round trip through the power basis; compares control points and sampled points."""
        xs, ys = self.to_polynomial()
        rebuilt = BezierCurve.from_polynomial(xs, ys)
        errors = [p.distance(q) for p, q in zip(self._points, rebuilt.points)]
        for text in self._CHECK_PARAMS:
            errors.append(self.point(text).distance(rebuilt.point(text)))
        return VerificationResult.of(errors, tolerance)

    def verify_bbox(
        self, samples: int = BBOX_VERIFY_SAMPLES, tolerance: ScalarLike = BEZIER_VERIFY_TOLERANCE
    ) -> VerificationResult:
        """
        Check that bbox() contains the curve at samples + 1 equidistant parameters.

        Returns:
            VerificationResult: error is the largest distance of a sample outside the box

        Raises:
            DomainError: If samples < 1.
        """
        if samples < 1:
            raise DomainError(f"samples must be >= 1, got {samples}")
        box = self.bbox()
        errors = []
        for i in range(samples + 1):
            p = self.point(Scalar.from_int(i) / samples)
            errors.append(Scalar.max(box.xmin - p.x, p.x - box.xmax, box.ymin - p.y, p.y - box.ymax))
        return VerificationResult.of(errors, tolerance)

    ###########################################################################
    # Display
    ###########################################################################

    def polygonize(self, steps: int) -> NDArray[np.float64]:
        """
        Sample the curve at steps + 1 equidistant parameters.

        LOSSY: intended for display and plotting only.

        Returns:
            NDArray[np.float64] of shape (steps+1, 2) containing the points (x, y)
        """
        if steps < 1:
            raise DomainError(f"steps must be >= 1, got {steps}")
        n = self.degree
        points_array = np.array([p.to_float_list() for p in self._points], dtype=np.float64)
        t = np.linspace(0, 1, steps + 1, dtype=np.float64)
        omt = 1 - t
        basis = np.stack([comb(n, i) * omt ** (n - i) * t**i for i in range(n + 1)], axis=1)
        return basis @ points_array
