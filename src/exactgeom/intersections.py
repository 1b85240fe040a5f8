"""Intersections between lines, Bezier curves and paths of Bezier curves."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

from exactgeom.bezier import BezierCurve
from exactgeom.common import DegenerateInput, RecursionLimitExceeded
from exactgeom.consts import (
    INTERSECTION_FLATNESS,
    INTERSECTION_MAX_CANDIDATES,
    INTERSECTION_MAX_DEPTH,
    INTERSECTION_MIN_SEPARATION,
    MAX_NEWTON_ITERATIONS,
    SELF_INTERSECTION_MIN_SEPARATION,
)
from exactgeom.numeric import ONE, ZERO, Scalar, ScalarLike, default_tolerance, to_scalar
from exactgeom.roots import RootFinder
from exactgeom.vector import Vector

logger = logging.getLogger(__name__)

# Newton iterates outside this parameter window have left the curves
_NEWTON_LOWER = Scalar.from_int(-1)
_NEWTON_UPPER = Scalar.from_int(2)


@dataclass(frozen=True)
class Intersection:
    """Intersection at t1 on the first and t2 on the second curve.

    depth is the subdivision depth that produced the candidate (0 for closed-form
    results), residual the distance |B1(t1) - B2(t2)| after refinement.
    """

    t1: Scalar
    t2: Scalar
    point: Vector
    depth: int = 0
    residual: Scalar = ZERO


@dataclass(frozen=True)
class PathIntersection:
    """Intersection between segment1 of the first and segment2 of the second path."""

    segment1: int
    segment2: int
    t1: Scalar
    t2: Scalar
    point: Vector


def _clamp_unit(t: Scalar, slack: Scalar) -> Optional[Scalar]:
    """t clamped into [0, 1] if it lies within slack of the interval, otherwise None."""
    if t < -slack or t > ONE + slack:
        return None
    return Scalar.max(ZERO, Scalar.min(ONE, t))


def _as_line(line) -> Tuple[Vector, Vector]:
    if isinstance(line, BezierCurve):
        if line.degree != 1:
            raise DegenerateInput(f"Expected a line segment, got a degree {line.degree} curve")
        return line.start, line.end
    start, end = line
    return Vector(start), Vector(end)


def _deduplicate(results: List[Intersection], separation: Scalar) -> List[Intersection]:
    unique: List[Intersection] = []
    for candidate in sorted(results, key=lambda r: (r.t1, r.t2)):
        if any(abs(candidate.t1 - u.t1) < separation and abs(candidate.t2 - u.t2) < separation for u in unique):
            continue
        unique.append(candidate)
    return unique


class BezierIntersections:
    """Static intersection algorithms.

    Lines are given as degree 1 BezierCurves or as pairs of 2D points.
    """

    @staticmethod
    def line_line(l1, l2) -> List[Intersection]:
        """
        Intersection of two line segments.

        Returns:
            List[Intersection]: at most one result with both parameters in [0, 1].
            Parallel segments, collinear ones included, have no isolated
            intersection and give an empty list.
        """
        p, p_end = _as_line(l1)
        q, q_end = _as_line(l2)
        r = p_end.sub(p)
        s = q_end.sub(q)
        denom = r.x * s.y - r.y * s.x
        if denom.is_zero():
            return []
        qp = q.sub(p)
        t = (qp.x * s.y - qp.y * s.x) / denom
        u = (qp.x * r.y - qp.y * r.x) / denom
        if not (ZERO <= t <= ONE and ZERO <= u <= ONE):
            return []
        return [Intersection(t, u, p.add(r.scale(t)))]

    @staticmethod
    def bezier_line(curve: BezierCurve, line, tolerance: Optional[ScalarLike] = None) -> List[Intersection]:
        """
        Intersections of a Bezier curve with a line segment.

        The line's implicit equation is substituted into the curve's power-basis
        polynomial; real roots in [0, 1] are isolated with RootFinder and the line
        parameter is obtained by projection.

        Returns:
            List[Intersection]: t1 on the curve, t2 on the line, sorted by t1.
            A curve lying entirely on the line yields no isolated intersections.

        Raises:
            DegenerateInput: If the line has zero length.
        """
        a, b = _as_line(line)
        d = b.sub(a)
        if d.is_zero():
            raise DegenerateInput("Line segment has zero length")
        tol = default_tolerance() if tolerance is None else to_scalar(tolerance)
        xs, ys = curve.to_polynomial()
        # d.x * (y(t) - a.y) - d.y * (x(t) - a.x) = 0
        coefficients = [d.x * cy - d.y * cx for cx, cy in zip(xs, ys)]
        coefficients[0] = coefficients[0] - d.x * a.y + d.y * a.x
        d_sq = d.dot(d)
        results = []
        for t in RootFinder.real_roots(coefficients, ZERO, ONE, tol):
            point = curve.point(t)
            u = _clamp_unit(point.sub(a).dot(d) / d_sq, tol)
            if u is None:
                continue
            results.append(Intersection(t, u, point))
        logger.debug("bezier_line: %d intersections", len(results))
        return results

    @staticmethod
    def _newton(
        c1: BezierCurve,
        c2: BezierCurve,
        t1: Scalar,
        t2: Scalar,
        tolerance: Scalar,
        max_iterations: int,
    ) -> Optional[Tuple[Scalar, Scalar, Scalar]]:
        """Solve B1(t1) = B2(t2) by Newton-Raphson; None if it does not converge."""
        for _ in range(max_iterations):
            if not (_NEWTON_LOWER < t1 < _NEWTON_UPPER and _NEWTON_LOWER < t2 < _NEWTON_UPPER):
                return None
            f = c1.point(t1).sub(c2.point(t2))
            residual = f.norm()
            if residual <= tolerance:
                return t1, t2, residual
            d1 = c1.derivative(t1)
            d2 = c2.derivative(t2)
            # Jacobian [d1 | -d2]
            det = d2.x * d1.y - d1.x * d2.y
            if det.is_zero():
                return None
            t1 = t1 - (-d2.y * f.x + d2.x * f.y) / det
            t2 = t2 - (-d1.y * f.x + d1.x * f.y) / det
        return None

    @staticmethod
    def _coincident(
        c1: BezierCurve, c2: BezierCurve, t1: Scalar, t2: Scalar, flatness: Scalar, min_overlap: Scalar
    ) -> bool:
        """
        True if the curves share a stretch through the common point B1(t1) = B2(t2).

        Polynomial curves sharing a stretch satisfy B2(s) = B1(alpha + beta * s),
        with beta the ratio of the derivatives at the common point. The map is
        checked to within flatness at degree + 2 parameters, which pins down a
        cubic. The image of [0, 1] must overlap [0, 1] by at least min_overlap,
        so curves that only meet end to end are not coincident.
        """
        d1 = c1.derivative(t1)
        d2 = c2.derivative(t2)
        speed_sq = d1.dot(d1)
        if speed_sq.is_zero() or d2.is_zero():
            return False
        beta = d2.dot(d1) / speed_sq
        if beta.is_zero():
            return False
        alpha = t1 - beta * t2
        lo = Scalar.max(ZERO, Scalar.min(alpha, alpha + beta))
        hi = Scalar.min(ONE, Scalar.max(alpha, alpha + beta))
        if hi - lo < min_overlap:
            return False
        samples = max(c1.degree, c2.degree) + 2
        for i in range(samples):
            s = Scalar.from_int(i) / (samples - 1)
            if c1.point(alpha + beta * s).distance(c2.point(s)) > flatness:
                return False
        return True

    @staticmethod
    def _subdivide(
        # pylint: disable=too-many-arguments,too-many-positional-arguments
        c1: BezierCurve,
        c2: BezierCurve,
        tolerance: Scalar,
        max_depth: int,
        flatness: Scalar,
        min_separation: Scalar,
        max_newton_iterations: int,
        max_candidates: int,
        diagonal_separation: Optional[Scalar] = None,
    ) -> List[Intersection]:
        """
        Recursive control-box subdivision with Newton refinement of flat candidates.

        With diagonal_separation set, c1 and c2 are the same curve and only
        regions that can hold t2 - t1 >= diagonal_separation are explored.
        Each accepted candidate is checked for a shared stretch of the curves.
        """
        slack = tolerance
        found: List[Intersection] = []
        candidates = 0

        def visit(s1: BezierCurve, a1: Scalar, b1: Scalar, s2: BezierCurve, a2: Scalar, b2: Scalar, depth: int):
            nonlocal candidates
            if diagonal_separation is not None and b2 - a1 < diagonal_separation:
                return
            if not s1.control_box().overlaps(s2.control_box()):
                return
            if depth > max_depth:
                raise RecursionLimitExceeded(f"Intersection subdivision exceeded depth {max_depth}")
            flat1 = s1.flatness() <= flatness
            flat2 = s2.flatness() <= flatness
            if flat1 and flat2:
                candidates += 1
                if candidates > max_candidates:
                    raise RecursionLimitExceeded(
                        f"Intersection search exceeded {max_candidates} candidates (near-coincident curves)"
                    )
                refined = BezierIntersections._newton(
                    c1, c2, (a1 + b1) / 2, (a2 + b2) / 2, tolerance, max_newton_iterations
                )
                if refined is None:
                    logger.debug("Candidate [%s, %s] x [%s, %s] rejected: Newton did not converge", a1, b1, a2, b2)
                    return
                t1, t2, residual = refined
                t1c, t2c = _clamp_unit(t1, slack), _clamp_unit(t2, slack)
                if t1c is None or t2c is None:
                    return
                if diagonal_separation is not None:
                    if t1c > t2c:
                        t1c, t2c = t2c, t1c
                    if t2c - t1c < diagonal_separation:
                        return
                if BezierIntersections._coincident(c1, c2, t1c, t2c, flatness, min_separation):
                    raise DegenerateInput(
                        f"Curves share a stretch through t1={t1c}, t2={t2c}; there is no isolated intersection"
                    )
                found.append(Intersection(t1c, t2c, c1.point(t1c), depth, residual))
                return
            if flat1 or (not flat2 and b2 - a2 > b1 - a1):
                m2 = (a2 + b2) / 2
                left, right = s2.halve()
                visit(s1, a1, b1, left, a2, m2, depth + 1)
                visit(s1, a1, b1, right, m2, b2, depth + 1)
            else:
                m1 = (a1 + b1) / 2
                left, right = s1.halve()
                visit(left, a1, m1, s2, a2, b2, depth + 1)
                visit(right, m1, b1, s2, a2, b2, depth + 1)

        visit(c1, ZERO, ONE, c2, ZERO, ONE, 0)
        logger.debug("Subdivision produced %d candidates, %d accepted", candidates, len(found))
        return found

    @staticmethod
    def bezier_bezier(
        # pylint: disable=too-many-arguments,too-many-positional-arguments
        c1: BezierCurve,
        c2: BezierCurve,
        tolerance: Optional[ScalarLike] = None,
        max_depth: int = INTERSECTION_MAX_DEPTH,
        flatness: ScalarLike = INTERSECTION_FLATNESS,
        min_separation: ScalarLike = INTERSECTION_MIN_SEPARATION,
        max_newton_iterations: int = MAX_NEWTON_ITERATIONS,
        max_candidates: int = INTERSECTION_MAX_CANDIDATES,
    ) -> List[Intersection]:
        """
        Intersections of two Bezier curves.

        Args:
            c1: First curve
            c2: Second curve
            tolerance: Newton residual |B1(t1) - B2(t2)| to accept (default: default_tolerance())
            max_depth: Maximum subdivision depth
            flatness: Control-point distance from the chord below which a piece is flat
            min_separation: Results closer than this in both parameters are merged
            max_newton_iterations: Newton budget per candidate
            max_candidates: Maximum number of flat piece pairs to refine

        Returns:
            List[Intersection]: sorted by (t1, t2), parameters in [0, 1]

        Raises:
            RecursionLimitExceeded: If subdivision goes deeper than max_depth, or more
                than max_candidates flat piece pairs are met. The latter happens for
                curves that run within flatness of each other without meeting.
            DegenerateInput: If the curves share a stretch of positive length
                (coincident or overlapping curves). They have no isolated intersection.
        """
        tol = default_tolerance() if tolerance is None else to_scalar(tolerance)
        separation = to_scalar(min_separation)
        found = BezierIntersections._subdivide(
            c1, c2, tol, max_depth, to_scalar(flatness), separation, max_newton_iterations, max_candidates
        )
        return _deduplicate(found, separation)

    @staticmethod
    def self_intersection(
        # pylint: disable=too-many-arguments,too-many-positional-arguments
        curve: BezierCurve,
        min_separation: ScalarLike = SELF_INTERSECTION_MIN_SEPARATION,
        tolerance: Optional[ScalarLike] = None,
        max_depth: int = INTERSECTION_MAX_DEPTH,
        flatness: ScalarLike = INTERSECTION_FLATNESS,
        max_newton_iterations: int = MAX_NEWTON_ITERATIONS,
        max_candidates: int = INTERSECTION_MAX_CANDIDATES,
    ) -> List[Intersection]:
        """
        Self-intersections (loops) of a curve, reported with t1 < t2.

        Parameter pairs closer than min_separation are the trivial solution
        t1 == t2 and are excluded. Lines and quadratics cannot self-intersect.

        Raises:
            RecursionLimitExceeded: As for bezier_bezier.
            DegenerateInput: If the curve retraces a stretch of itself.
        """
        if curve.degree < 3:
            return []
        tol = default_tolerance() if tolerance is None else to_scalar(tolerance)
        found = BezierIntersections._subdivide(
            curve,
            curve,
            tol,
            max_depth,
            to_scalar(flatness),
            Scalar.from_text(INTERSECTION_MIN_SEPARATION),
            max_newton_iterations,
            max_candidates,
            diagonal_separation=to_scalar(min_separation),
        )
        return _deduplicate(found, Scalar.from_text(INTERSECTION_MIN_SEPARATION))

    @staticmethod
    def intersect(c1: BezierCurve, c2: BezierCurve, tolerance: Optional[ScalarLike] = None) -> List[Intersection]:
        """Dispatch to the closed form for lines and to subdivision otherwise."""
        if c1.degree == 1 and c2.degree == 1:
            return BezierIntersections.line_line(c1, c2)
        if c2.degree == 1:
            return BezierIntersections.bezier_line(c1, c2, tolerance)
        if c1.degree == 1:
            swapped = BezierIntersections.bezier_line(c2, c1, tolerance)
            return sorted((Intersection(r.t2, r.t1, r.point) for r in swapped), key=lambda r: r.t1)
        return BezierIntersections.bezier_bezier(c1, c2, tolerance)

    @staticmethod
    def path_path(path1: Sequence[BezierCurve], path2: Sequence[BezierCurve]) -> List[PathIntersection]:
        """All intersections between the segments of two paths."""
        results = []
        for i, seg1 in enumerate(path1):
            for j, seg2 in enumerate(path2):
                for hit in BezierIntersections.intersect(seg1, seg2):
                    results.append(PathIntersection(i, j, hit.t1, hit.t2, hit.point))
        return results

    @staticmethod
    def path_self(path: Sequence[BezierCurve]) -> List[PathIntersection]:
        """
        Self-intersections of a path.

        Adjacent segments (and the first/last pair of a closed path) share an
        endpoint by construction and are not compared with each other.
        """
        count = len(path)
        closed = count > 2 and path[0].start == path[-1].end
        results = []
        for i, segment in enumerate(path):
            for hit in BezierIntersections.self_intersection(segment):
                results.append(PathIntersection(i, i, hit.t1, hit.t2, hit.point))
            for j in range(i + 2, count):
                if closed and i == 0 and j == count - 1:
                    continue
                for hit in BezierIntersections.intersect(segment, path[j]):
                    results.append(PathIntersection(i, j, hit.t1, hit.t2, hit.point))
        return results

    @staticmethod
    def verify(c1: BezierCurve, c2: BezierCurve, intersection: Intersection, tolerance: ScalarLike) -> bool:
        """True if both curves pass within tolerance of each other at the reported parameters."""
        gap = c1.point(intersection.t1).distance(c2.point(intersection.t2))
        return gap <= to_scalar(tolerance)
