"""Arc length of Bezier curves by adaptive Gauss-Legendre quadrature, and its inverse."""

from __future__ import annotations

import bisect
import logging
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

from exactgeom.bezier import BezierCurve, VerificationResult
from exactgeom.common import ConvergenceFailure, DegenerateInput, DomainError
from exactgeom.consts import (
    ARC_LENGTH_MAX_DEPTH,
    ARC_LENGTH_MIN_DEPTH,
    ARC_LENGTH_TOLERANCE,
    ARC_LENGTH_VERIFY_TOLERANCE,
    GAUSS_LEGENDRE_5_NODES,
    GAUSS_LEGENDRE_5_WEIGHTS,
    GAUSS_LEGENDRE_10_NODES,
    GAUSS_LEGENDRE_10_WEIGHTS,
    INVERSE_ARC_LENGTH_MAX_ITERATIONS,
    INVERSE_ARC_LENGTH_TOLERANCE,
    NEAR_ZERO_SPEED,
)
from exactgeom.numeric import ONE, ZERO, Scalar, ScalarLike, epsilon, to_scalar

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class InverseArcLengthResult:
    """Parameter t whose arc length from 0 is `length`, found in `iterations` steps."""

    t: Scalar
    length: Scalar
    iterations: int


@dataclass(frozen=True)
class PathArcLengthResult:
    """Location on a path: segment index, parameter within it, and arc length from the path start."""

    segment_index: int
    t: Scalar
    length: Scalar


def _rule(nodes: Sequence[str], weights: Sequence[str]) -> List[Tuple[Scalar, Scalar]]:
    return [(Scalar.from_text(x), Scalar.from_text(w)) for x, w in zip(nodes, weights)]


class ArcLength:
    """Static arc-length computations on BezierCurve objects."""

    @staticmethod
    def speed(curve: BezierCurve, t: ScalarLike) -> Scalar:
        """|B'(t)|"""
        return curve.derivative(t).norm()

    @staticmethod
    def _gauss(
        curve: BezierCurve, a: Scalar, b: Scalar, rule: List[Tuple[Scalar, Scalar]]
    ) -> Scalar:
        half = (b - a) / 2
        mid = (a + b) / 2
        total = ZERO
        for x, w in rule:
            total = total + w * ArcLength.speed(curve, mid + half * x)
        return total * half

    @staticmethod
    def length(
        curve: BezierCurve,
        t0: ScalarLike = 0,
        t1: ScalarLike = 1,
        tolerance: ScalarLike = ARC_LENGTH_TOLERANCE,
        max_depth: int = ARC_LENGTH_MAX_DEPTH,
        min_depth: int = ARC_LENGTH_MIN_DEPTH,
    ) -> Scalar:
        """
        Arc length of the curve between t0 and t1.

        Each interval is integrated with a 5- and a 10-point Gauss-Legendre rule.
        It is accepted once both agree within its share of the tolerance (halved
        on every subdivision) and at least min_depth subdivisions were made.
        The agreement test never asks for more than the active precision can
        resolve.

        Args:
            curve: The Bezier curve
            t0: Start parameter
            t1: End parameter; t0 > t1 is swapped, the length is never negative
            tolerance: Absolute error budget for the whole interval
            max_depth: Maximum subdivision depth
            min_depth: Minimum subdivision depth

        Returns:
            Scalar: the arc length

        Raises:
            ConvergenceFailure: If an interval does not converge within max_depth.
        """
        a, b = to_scalar(t0), to_scalar(t1)
        if a > b:
            a, b = b, a
        if a == b:
            return ZERO
        rule5 = _rule(GAUSS_LEGENDRE_5_NODES, GAUSS_LEGENDRE_5_WEIGHTS)
        rule10 = _rule(GAUSS_LEGENDRE_10_NODES, GAUSS_LEGENDRE_10_WEIGHTS)
        eps = epsilon()

        def integrate(lo: Scalar, hi: Scalar, tol: Scalar, depth: int) -> Scalar:
            coarse = ArcLength._gauss(curve, lo, hi, rule5)
            fine = ArcLength._gauss(curve, lo, hi, rule10)
            if depth >= min_depth and abs(fine - coarse) <= Scalar.max(tol, eps * abs(fine)):
                return fine
            if depth >= max_depth:
                raise ConvergenceFailure(f"Arc length did not converge on [{lo}, {hi}] within depth {max_depth}")
            mid = (lo + hi) / 2
            half_tol = tol / 2
            return integrate(lo, mid, half_tol, depth + 1) + integrate(mid, hi, half_tol, depth + 1)

        return integrate(a, b, to_scalar(tolerance), 0)

    @staticmethod
    def _newton_inverse(
        curve: BezierCurve,
        target: Scalar,
        bracket: Tuple[Scalar, Scalar, Scalar, Scalar],
        tolerance: Scalar,
        max_iterations: int,
        length_tolerance: ScalarLike,
    ) -> InverseArcLengthResult:
        """Bracketed Newton on s(t) - target, where s(lo) <= target <= s(hi).

        s(t) is measured from the nearer bracket end, using the additivity of
        arc length. Steps leaving the bracket, or taken where the speed is
        near zero (cusp), are replaced by bisection.
        """
        lo, s_lo, hi, s_hi = bracket
        near_zero = Scalar.from_text(NEAR_ZERO_SPEED)
        span = s_hi - s_lo
        t = lo + (hi - lo) * (target - s_lo) / span if not span.is_zero() else (lo + hi) / 2

        for iteration in range(1, max_iterations + 1):
            if t - lo <= hi - t:
                s_t = s_lo + ArcLength.length(curve, lo, t, tolerance=length_tolerance)
            else:
                s_t = s_hi - ArcLength.length(curve, t, hi, tolerance=length_tolerance)
            error = s_t - target
            if abs(error) <= tolerance:
                logger.debug("Inverse arc length converged after %d iterations", iteration)
                return InverseArcLengthResult(t, s_t, iteration)
            if error.is_negative():
                lo, s_lo = t, s_t
            else:
                hi, s_hi = t, s_t

            speed = ArcLength.speed(curve, t)
            candidate: Optional[Scalar] = None
            if speed >= near_zero:
                candidate = t - error / speed
                if not lo < candidate < hi:
                    candidate = None
            t = candidate if candidate is not None else (lo + hi) / 2
        raise ConvergenceFailure(f"Inverse arc length did not converge in {max_iterations} iterations")

    @staticmethod
    def inverse(
        curve: BezierCurve,
        target_length: ScalarLike,
        tolerance: ScalarLike = INVERSE_ARC_LENGTH_TOLERANCE,
        max_iterations: int = INVERSE_ARC_LENGTH_MAX_ITERATIONS,
        length_tolerance: Optional[ScalarLike] = None,
    ) -> InverseArcLengthResult:
        """
        Parameter t at which the arc length from t=0 equals target_length.

        Args:
            curve: The Bezier curve
            target_length: Desired arc length from the curve start
            tolerance: Accepted |s(t) - target_length|
            max_iterations: Newton/bisection budget
            length_tolerance: Quadrature tolerance (default ARC_LENGTH_TOLERANCE)

        Returns:
            InverseArcLengthResult: t = 0 for a zero target, t = 1 for targets at
            or beyond the total length.

        Raises:
            DomainError: If target_length is negative.
            ConvergenceFailure: If the iteration budget is exhausted.
        """
        target = to_scalar(target_length)
        if target.is_negative():
            raise DomainError(f"Target arc length must not be negative, got {target}")
        if target.is_zero():
            return InverseArcLengthResult(ZERO, ZERO, 0)
        quad_tol = ARC_LENGTH_TOLERANCE if length_tolerance is None else length_tolerance
        total = ArcLength.length(curve, tolerance=quad_tol)
        if target >= total:
            return InverseArcLengthResult(ONE, total, 0)
        return ArcLength._newton_inverse(
            curve, target, (ZERO, ZERO, ONE, total), to_scalar(tolerance), max_iterations, quad_tol
        )

    ###########################################################################
    # Self-checks
    ###########################################################################

    @staticmethod
    def verify_additivity(
        curve: BezierCurve, t: ScalarLike, tolerance: ScalarLike = ARC_LENGTH_VERIFY_TOLERANCE
    ) -> VerificationResult:
        """
        Check length(0, t) + length(t, 1) == length(0, 1).

        Raises:
            DomainError: If t is outside [0, 1].
        """
        split_t = to_scalar(t)
        if split_t < ZERO or split_t > ONE:
            raise DomainError(f"Additivity check needs t in [0, 1], got {split_t}")
        total = ArcLength.length(curve)
        parts = ArcLength.length(curve, 0, split_t) + ArcLength.length(curve, split_t, 1)
        return VerificationResult.of([abs(parts - total)], tolerance)

    @staticmethod
    def verify_inverse(
        curve: BezierCurve, target_length: ScalarLike, tolerance: ScalarLike = INVERSE_ARC_LENGTH_TOLERANCE
    ) -> VerificationResult:
        """
        Check inverse() by measuring the length up to the returned parameter.

        Targets beyond the total length are compared with the total length.
        """
        target = to_scalar(target_length)
        result = ArcLength.inverse(curve, target)
        expected = target if result.t < ONE else Scalar.min(target, ArcLength.length(curve))
        return VerificationResult.of([abs(ArcLength.length(curve, 0, result.t) - expected)], tolerance)

    ###########################################################################
    # Paths
    ###########################################################################

    @staticmethod
    def path_length(segments: Sequence[BezierCurve], tolerance: ScalarLike = ARC_LENGTH_TOLERANCE) -> Scalar:
        total = ZERO
        for segment in segments:
            total = total + ArcLength.length(segment, tolerance=tolerance)
        return total

    @staticmethod
    def path_inverse(
        segments: Sequence[BezierCurve],
        target_length: ScalarLike,
        tolerance: ScalarLike = INVERSE_ARC_LENGTH_TOLERANCE,
        max_iterations: int = INVERSE_ARC_LENGTH_MAX_ITERATIONS,
    ) -> PathArcLengthResult:
        """
        Locate the point at a given arc length along a sequence of curves.

        Targets beyond the total length map to the end of the last segment.

        Raises:
            DegenerateInput: If segments is empty.
            DomainError: If target_length is negative.
        """
        if not segments:
            raise DegenerateInput("path_inverse needs at least one segment")
        target = to_scalar(target_length)
        if target.is_negative():
            raise DomainError(f"Target arc length must not be negative, got {target}")
        walked = ZERO
        for index, segment in enumerate(segments):
            seg_length = ArcLength.length(segment)
            if target <= walked + seg_length:
                local = ArcLength.inverse(segment, target - walked, tolerance, max_iterations)
                return PathArcLengthResult(index, local.t, walked + local.length)
            walked = walked + seg_length
        return PathArcLengthResult(len(segments) - 1, ONE, walked)


class ArcLengthTable:
    """Cumulative arc lengths at equidistant parameters, for fast approximate lookups.

    ``t_at`` interpolates linearly between table entries; ``refined_t_at``
    polishes that guess with Newton inside the bracketing table interval.
    """

    def __init__(self, curve: BezierCurve, samples: int = 100, tolerance: ScalarLike = ARC_LENGTH_TOLERANCE):
        if samples < 1:
            raise DomainError(f"samples must be >= 1, got {samples}")
        self.curve = curve
        self.tolerance = tolerance
        self.params: List[Scalar] = [Scalar.from_int(i) / samples for i in range(samples + 1)]
        self.lengths: List[Scalar] = [ZERO]
        for lo, hi in zip(self.params, self.params[1:]):
            self.lengths.append(self.lengths[-1] + ArcLength.length(curve, lo, hi, tolerance=tolerance))

    @property
    def total_length(self) -> Scalar:
        return self.lengths[-1]

    def _interval(self, s: Scalar) -> int:
        index = bisect.bisect_right(self.lengths, s) - 1
        return min(max(index, 0), len(self.lengths) - 2)

    def t_at(self, length: ScalarLike) -> Scalar:
        """Approximate parameter at the given arc length (clamped to [0, 1])."""
        s = to_scalar(length)
        if s <= ZERO:
            return ZERO
        if s >= self.total_length:
            return ONE
        i = self._interval(s)
        s0, s1 = self.lengths[i], self.lengths[i + 1]
        t0, t1 = self.params[i], self.params[i + 1]
        if s1 == s0:
            return t0
        return t0 + (t1 - t0) * (s - s0) / (s1 - s0)

    def refined_t_at(
        self,
        length: ScalarLike,
        tolerance: ScalarLike = INVERSE_ARC_LENGTH_TOLERANCE,
        max_iterations: int = INVERSE_ARC_LENGTH_MAX_ITERATIONS,
    ) -> InverseArcLengthResult:
        s = to_scalar(length)
        if s.is_negative():
            raise DomainError(f"Target arc length must not be negative, got {s}")
        if s.is_zero():
            return InverseArcLengthResult(ZERO, ZERO, 0)
        if s >= self.total_length:
            return InverseArcLengthResult(ONE, self.total_length, 0)
        i = self._interval(s)
        bracket = (self.params[i], self.lengths[i], self.params[i + 1], self.lengths[i + 1])
        return ArcLength._newton_inverse(  # pylint: disable=protected-access
            self.curve, s, bracket, to_scalar(tolerance), max_iterations, self.tolerance
        )
