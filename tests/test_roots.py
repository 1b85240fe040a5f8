"""Test module for exactgeom.roots

The tests are run using pytest.
"""

import pytest

from exactgeom.common import DomainError
from exactgeom.numeric import Scalar, to_scalar
from exactgeom.roots import RootFinder

TOL = Scalar.from_text("1e-20")


def close(a, b, tol=TOL) -> bool:
    """Absolute difference within tolerance."""
    return abs(to_scalar(a) - to_scalar(b)) <= tol


class TestClosedForms:
    """Test the linear and quadratic solvers."""

    def test_linear(self):
        """2x - 1 = 0 and the constant case."""
        assert RootFinder.solve_linear(2, -1) == [Scalar.from_text("0.5")]
        assert RootFinder.solve_linear(0, 3) == []

    def test_quadratic_two_roots(self):
        """x^2 - 3x + 2 has the roots 1 and 2 in ascending order."""
        assert RootFinder.solve_quadratic(1, -3, 2) == [1, 2]

    def test_quadratic_no_real_roots(self):
        """A negative discriminant gives no real roots."""
        assert RootFinder.solve_quadratic(1, 0, 1) == []

    def test_quadratic_double_root(self):
        """(x - 1)^2 reports its double root once."""
        assert RootFinder.solve_quadratic(1, -2, 1) == [1]

    def test_quadratic_degenerates_to_linear(self):
        """A zero leading coefficient falls back to the linear solver."""
        assert RootFinder.solve_quadratic(0, 2, -1) == [Scalar.from_text("0.5")]

    def test_quadratic_without_cancellation(self):
        """The small root of x^2 - 1e6 x + 1 keeps its digits."""
        small, large = RootFinder.solve_quadratic(1, -1000000, 1)
        assert close(small * large, 1, Scalar.from_text("1e-40"))
        assert close(small, Scalar.from_text("0.000001000000000001"), Scalar.from_text("1e-28"))


class TestRealRoots:
    """Test root isolation on an interval."""

    def test_evaluate_and_derivative(self):
        """Horner evaluation and the coefficient derivative."""
        coeffs = [to_scalar(c) for c in (1, 2, 3)]
        assert RootFinder.evaluate(coeffs, Scalar.from_int(2)) == 17
        assert RootFinder.derivative(coeffs) == [2, 6]

    def test_cubic_three_roots(self):
        """(x - 0.2)(x - 0.5)(x - 0.9) has all three roots in [0, 1]."""
        roots = RootFinder.real_roots(["-0.09", "0.73", "-1.6", 1])
        assert len(roots) == 3
        for root, expected in zip(roots, ("0.2", "0.5", "0.9")):
            assert close(root, expected)

    def test_touching_root(self):
        """(x - 0.1)(x - 0.5)^2 touches zero at 0.5 without a sign change."""
        roots = RootFinder.real_roots(["-0.025", "0.35", "-1.1", 1])
        assert len(roots) == 2
        assert close(roots[0], "0.1")
        assert close(roots[1], "0.5")

    def test_interval_filter(self):
        """Only roots inside [lo, hi] are returned."""
        roots = RootFinder.real_roots(["-0.09", "0.73", "-1.6", 1], lo="0.3", hi="0.8")
        assert len(roots) == 1
        assert close(roots[0], "0.5")

    def test_endpoint_root(self):
        """A root exactly at an interval end is included."""
        assert RootFinder.real_roots([0, -1, 1]) == [0, 1]

    def test_zero_polynomial(self):
        """An identically zero polynomial has no isolated roots."""
        assert RootFinder.real_roots([0, 0, 0, 0]) == []

    def test_invalid_interval(self):
        """lo > hi is rejected."""
        with pytest.raises(DomainError):
            RootFinder.real_roots([1, 1], lo=1, hi=0)

    def test_trim(self):
        """Zero leading coefficients are dropped."""
        assert RootFinder.trim([1, 2, 0, 0]) == [1, 2]
