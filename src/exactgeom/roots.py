"""Real root isolation for power-basis polynomials with Scalar coefficients."""

from __future__ import annotations

import logging
from typing import List, Optional, Sequence

from exactgeom.common import ConvergenceFailure, DomainError
from exactgeom.consts import ROOT_MAX_ITERATIONS
from exactgeom.numeric import ZERO, Scalar, ScalarLike, default_tolerance, to_scalar

logger = logging.getLogger(__name__)


class RootFinder:
    """Static helpers to find real polynomial roots.

    Coefficients are given in ascending order of powers:
    ``[c0, c1, c2]`` is ``c0 + c1*x + c2*x^2``.
    """

    @staticmethod
    def evaluate(coefficients: Sequence[Scalar], x: Scalar) -> Scalar:
        """Horner evaluation."""
        result = ZERO
        for c in reversed(coefficients):
            result = result * x + c
        return result

    @staticmethod
    def derivative(coefficients: Sequence[Scalar]) -> List[Scalar]:
        return [c * k for k, c in enumerate(coefficients) if k > 0]

    @staticmethod
    def trim(coefficients: Sequence[ScalarLike]) -> List[Scalar]:
        """Drop exactly-zero leading (highest power) coefficients."""
        trimmed = [to_scalar(c) for c in coefficients]
        while trimmed and trimmed[-1].is_zero():
            trimmed.pop()
        return trimmed

    @staticmethod
    def solve_linear(a: ScalarLike, b: ScalarLike) -> List[Scalar]:
        """Roots of a*x + b = 0; an identically constant equation has no isolated root."""
        a, b = to_scalar(a), to_scalar(b)
        if a.is_zero():
            return []
        return [-b / a]

    @staticmethod
    def solve_quadratic(a: ScalarLike, b: ScalarLike, c: ScalarLike) -> List[Scalar]:
        """Real roots of a*x^2 + b*x + c = 0 in ascending order.

        Uses the cancellation-free form q = -(b + sign(b) * sqrt(disc)) / 2.
        A double root is reported once.
        """
        a, b, c = to_scalar(a), to_scalar(b), to_scalar(c)
        if a.is_zero():
            return RootFinder.solve_linear(b, c)
        disc = b * b - a * c * 4
        if disc.is_negative():
            return []
        if disc.is_zero():
            return [-b / (a * 2)]
        root = disc.sqrt()
        # disc > 0 keeps q away from zero
        q = -(b + root) / 2 if not b.is_negative() else -(b - root) / 2
        return sorted([q / a, c / q])

    @staticmethod
    def real_roots(
        coefficients: Sequence[ScalarLike],
        lo: ScalarLike = 0,
        hi: ScalarLike = 1,
        tolerance: Optional[ScalarLike] = None,
        max_iterations: int = ROOT_MAX_ITERATIONS,
    ) -> List[Scalar]:
        """
        Isolate and refine all real roots of a polynomial in [lo, hi].

        The interval is cut at the real roots of the derivative (found recursively),
        so the polynomial is monotone on every piece and each sign change brackets
        exactly one root, refined by safeguarded Newton. A critical point where the
        polynomial vanishes within tolerance is reported as a (touching) root.

        Args:
            coefficients: Ascending power-basis coefficients
            lo: Lower interval bound
            hi: Upper interval bound
            tolerance: Root accuracy in x (default: default_tolerance())
            max_iterations: Refinement budget per root

        Returns:
            List[Scalar]: Sorted roots in [lo, hi]. An identically zero polynomial
            has no isolated roots and yields an empty list.

        Raises:
            DomainError: If lo > hi.
            ConvergenceFailure: If a root is not refined within max_iterations.
        """
        lo_s, hi_s = to_scalar(lo), to_scalar(hi)
        if lo_s > hi_s:
            raise DomainError(f"Invalid root interval [{lo_s}, {hi_s}]")
        tol = default_tolerance() if tolerance is None else to_scalar(tolerance)
        coeffs = RootFinder.trim(coefficients)
        return RootFinder._roots_in(coeffs, lo_s, hi_s, tol, max_iterations)

    @staticmethod
    def _roots_in(coeffs: List[Scalar], lo: Scalar, hi: Scalar, tol: Scalar, max_iterations: int) -> List[Scalar]:
        degree = len(coeffs) - 1
        if degree < 1:
            return []
        if degree == 1:
            candidates = RootFinder.solve_linear(coeffs[1], coeffs[0])
            return [r for r in candidates if lo <= r <= hi]
        if degree == 2:
            candidates = RootFinder.solve_quadratic(coeffs[2], coeffs[1], coeffs[0])
            return [r for r in candidates if lo <= r <= hi]

        critical = RootFinder._roots_in(RootFinder.derivative(coeffs), lo, hi, tol, max_iterations)
        breakpoints = [lo] + [c for c in critical if lo < c < hi] + [hi]
        scale = sum((abs(c) for c in coeffs), ZERO)
        touch_tol = tol * scale

        roots: List[Scalar] = []

        def add(root: Scalar) -> None:
            if not roots or abs(root - roots[-1]) > tol:
                roots.append(root)

        for a, b in zip(breakpoints, breakpoints[1:]):
            fa = RootFinder.evaluate(coeffs, a)
            fb = RootFinder.evaluate(coeffs, b)
            if fa.is_zero() or (a in critical and abs(fa) <= touch_tol):
                add(a)
            if fa.sign() * fb.sign() < 0:
                add(RootFinder._refine(coeffs, a, b, fa, tol, max_iterations))
        f_hi = RootFinder.evaluate(coeffs, hi)
        if f_hi.is_zero() or (hi in critical and abs(f_hi) <= touch_tol):
            add(hi)
        logger.debug("Degree %d polynomial: %d roots in [%s, %s]", degree, len(roots), lo, hi)
        return roots

    @staticmethod
    def _refine(coeffs: List[Scalar], a: Scalar, b: Scalar, fa: Scalar, tol: Scalar, max_iterations: int) -> Scalar:
        """Newton iteration kept inside the sign-change bracket [a, b], bisecting when it escapes."""
        slope_coeffs = RootFinder.derivative(coeffs)
        sign_a = fa.sign()
        x = (a + b) / 2
        for _ in range(max_iterations):
            fx = RootFinder.evaluate(coeffs, x)
            if fx.is_zero():
                return x
            if fx.sign() == sign_a:
                a = x
            else:
                b = x
            if b - a <= tol:
                return (a + b) / 2
            slope = RootFinder.evaluate(slope_coeffs, x)
            candidate = None
            if not slope.is_zero():
                candidate = x - fx / slope
                if not a < candidate < b:
                    candidate = None
            if candidate is None:
                candidate = (a + b) / 2
            elif abs(candidate - x) <= tol:
                return candidate
            x = candidate
        raise ConvergenceFailure(f"Root refinement did not converge in {max_iterations} iterations")
