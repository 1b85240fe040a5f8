"""Test module for exactgeom.bezier

The tests are run using pytest.
These tests ensure that evaluation, derivatives, curvature, bounds and
subdivision of BezierCurve remain working correctly after changes and
refactoring.
"""

import numpy as np
import pytest

from exactgeom.bezier import BezierCurve, VerificationResult
from exactgeom.common import DegenerateInput, DimensionMismatch, DomainError
from exactgeom.geom import Box
from exactgeom.numeric import Scalar, to_scalar
from exactgeom.transforms import Transform2D
from exactgeom.vector import Vector

TOL = Scalar.from_text("1e-40")

ARCH = BezierCurve.from_coordinates([[0, 0], [1, 2], [3, 2], [4, 0]])
CUSP = BezierCurve.from_coordinates([[0, 0], [1, 1], [0, 1], [1, 0]])


def close(a, b, tol=TOL) -> bool:
    """Absolute difference within tolerance."""
    return abs(to_scalar(a) - to_scalar(b)) <= tol


###############################################################################
# Construction and evaluation
###############################################################################


class TestBezierEvaluation:
    """Test construction, point evaluation and derivatives."""

    def test_point_count(self):
        """Two to four control points are accepted."""
        assert BezierCurve.from_coordinates([[0, 0], [1, 1]]).degree == 1
        assert ARCH.degree == 3
        with pytest.raises(DimensionMismatch):
            BezierCurve.from_coordinates([[0, 0]])
        with pytest.raises(DimensionMismatch):
            BezierCurve.from_coordinates([[0, 0]] * 5)

    def test_point(self):
        """The arch midpoint is exact, the ends are the outer control points."""
        assert ARCH.point("0.5") == Vector([2, "1.5"])
        assert ARCH.point(0) == ARCH.start
        assert ARCH.point(1) == ARCH.end

    def test_derivatives(self):
        """First and second derivatives at t=0, and above the degree."""
        assert ARCH.derivative(0) == Vector([3, 6])
        assert ARCH.derivative(0, 2) == Vector([6, -12])
        assert ARCH.derivative(0, 0) == ARCH.start
        assert ARCH.derivative("0.3", 4) == Vector([0, 0])
        with pytest.raises(DomainError):
            ARCH.derivative(0, -1)

    def test_hodograph(self):
        """Derivative control points are n * (P[i+1] - P[i])."""
        assert ARCH.hodograph() == [Vector([3, 6]), Vector([6, 0]), Vector([3, -6])]


###############################################################################
# Differential geometry
###############################################################################


class TestBezierDifferentialGeometry:
    """Test tangents, normals and curvature."""

    def test_unit_tangent_and_normal(self):
        """At the arch apex the tangent points along +x."""
        assert ARCH.unit_tangent("0.5") == Vector([1, 0])
        assert ARCH.normal("0.5") == Vector([0, 1])

    def test_curvature_of_parabola_apex(self):
        """The quadratic (-1,0),(0,1),(1,0) has curvature -1 at its apex."""
        curve = BezierCurve.from_coordinates([[-1, 0], [0, 1], [1, 0]])
        assert close(curve.curvature("0.5"), -1)
        assert close(curve.radius_of_curvature("0.5"), 1)

    def test_straight_line_curvature(self):
        """A line has zero curvature and infinite radius."""
        line = BezierCurve.from_coordinates([[0, 0], [3, 4]])
        assert line.curvature("0.2") == 0
        with pytest.raises(DegenerateInput):
            line.radius_of_curvature("0.2")

    def test_cusp(self):
        """At a cusp the speed vanishes and tangent and curvature are undefined."""
        assert CUSP.derivative("0.5").is_zero()
        with pytest.raises(DegenerateInput):
            CUSP.unit_tangent("0.5")
        with pytest.raises(DegenerateInput):
            CUSP.curvature("0.5")


###############################################################################
# Bounds
###############################################################################


class TestBezierBounds:
    """Test tight bounding boxes, control boxes and flatness."""

    def test_bbox_cubic(self):
        """The arch bbox includes its apex, not the control points."""
        assert ARCH.bbox() == Box(0, 0, 4, "1.5")
        assert ARCH.control_box() == Box(0, 0, 4, 2)

    def test_bbox_quadratic(self):
        """A quadratic reaches half the height of its middle control point."""
        curve = BezierCurve.from_coordinates([[0, 0], [1, 2], [2, 0]])
        assert curve.bbox() == Box(0, 0, 2, 1)

    def test_flatness(self):
        """Distance of the inner control points from the chord."""
        assert ARCH.flatness() == 2
        assert BezierCurve.from_coordinates([[0, 0], [5, 5]]).flatness() == 0


###############################################################################
# Subdivision and conversion
###############################################################################


class TestBezierSubdivision:
    """Test split, crop, reversal, transformation and the power basis."""

    def test_split(self):
        """de Casteljau split at 0.5."""
        left, right = ARCH.split("0.5")
        assert left == BezierCurve.from_coordinates([[0, 0], ["0.5", 1], ["1.25", "1.5"], [2, "1.5"]])
        assert right == BezierCurve.from_coordinates([[2, "1.5"], ["2.75", "1.5"], ["3.5", 1], [4, 0]])
        assert ARCH.halve() == (left, right)

    def test_crop(self):
        """Cropping keeps the sub-curve between two parameters."""
        line = BezierCurve.from_coordinates([[0, 0], [4, 0]])
        cropped = line.crop("0.25", "0.75")
        assert cropped.start.equals(Vector([1, 0]), TOL)
        assert cropped.end.equals(Vector([3, 0]), TOL)
        assert ARCH.crop(0, "0.5") == ARCH.split("0.5")[0]
        with pytest.raises(DomainError):
            ARCH.crop("0.5", "0.5")

    def test_crop_matches_points(self):
        """Points of the cropped curve lie on the original."""
        cropped = ARCH.crop("0.2", "0.6")
        assert cropped.point("0.5").equals(ARCH.point("0.4"), TOL)

    def test_reversed(self):
        """Reversal swaps the parameter direction."""
        assert ARCH.reversed().point("0.25") == ARCH.point("0.75")

    def test_transformed(self):
        """Affine transforms act on the control points."""
        line = BezierCurve.from_coordinates([[0, 0], [4, 0]])
        assert line.transformed(Transform2D.translation(1, 2)) == BezierCurve.from_coordinates([[1, 2], [5, 2]])

    def test_polynomial_round_trip(self):
        """Power-basis coefficients of the arch and back."""
        xs, ys = ARCH.to_polynomial()
        assert xs == [0, 3, 3, -2]
        assert ys == [0, 6, -6, 0]
        back = BezierCurve.from_polynomial(xs, ys)
        for p, q in zip(back.points, ARCH.points):
            assert p.equals(q, TOL)
        with pytest.raises(DimensionMismatch):
            BezierCurve.from_polynomial([1], [1])

    def test_polygonize(self):
        """The lossy polyline has steps + 1 float rows."""
        poly = ARCH.polygonize(10)
        assert poly.shape == (11, 2)
        assert poly.dtype == np.float64
        assert np.allclose(poly[0], [0.0, 0.0])
        assert np.allclose(poly[5], [2.0, 1.5])
        assert np.allclose(poly[-1], [4.0, 0.0])
        with pytest.raises(DomainError):
            ARCH.polygonize(0)


###############################################################################
# Self-checks
###############################################################################


class TestBezierSelfChecks:
    """Test the verification helpers and the errors they report."""

    def test_verify_split(self):
        """Both halves of a split reproduce the curve."""
        for curve in (ARCH, CUSP):
            result = curve.verify_split("0.3")
            assert result.valid
            assert result.error <= TOL

    def test_verify_crop(self):
        """A cropped piece reproduces the curve between its parameters."""
        result = ARCH.verify_crop("0.2", "0.7")
        assert result.valid
        assert result.error <= TOL
        with pytest.raises(DomainError):
            ARCH.verify_crop("0.7", "0.2")

    def test_verify_polynomial(self):
        """Converting to the power basis and back keeps the curve."""
        quad = BezierCurve.from_coordinates([["0.1", "0.2"], [3, "-0.7"], ["2.5", 4]])
        for curve in (ARCH, CUSP, quad):
            assert curve.verify_polynomial().valid

    def test_verify_bbox(self):
        """Sampled points never leave the tight box."""
        result = ARCH.verify_bbox()
        assert result.valid
        assert result.error <= TOL
        assert CUSP.verify_bbox(samples=7).valid
        with pytest.raises(DomainError):
            ARCH.verify_bbox(samples=0)

    def test_result_reports_worst_error(self):
        """The largest error decides validity."""
        result = VerificationResult.of([Scalar.from_text("0.01"), Scalar.from_text("0.5")], "0.1")
        assert not result.valid
        assert result.error == Scalar.from_text("0.5")
        assert VerificationResult.of([], "0").valid
