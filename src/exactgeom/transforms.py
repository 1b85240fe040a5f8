"""Factories for 2D (3x3) and 3D (4x4) homogeneous affine transforms."""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional, Sequence

from exactgeom.common import DegenerateInput, DimensionMismatch, Singular
from exactgeom.matrix import Matrix
from exactgeom.numeric import ONE, ZERO, Scalar, ScalarLike, to_scalar
from exactgeom.vector import Vector, VectorLike, to_vector


def _homogeneous(linear: Sequence[Sequence[Scalar]], translation: Sequence[Scalar]) -> Matrix:
    """Assemble a homogeneous matrix from a linear part and a translation column."""
    size = len(linear)
    rows: List[List[Scalar]] = [list(linear[i]) + [translation[i]] for i in range(size)]
    rows.append([ZERO] * size + [ONE])
    return Matrix(rows)


def _stretch_linear(k: ScalarLike, axis: Vector) -> List[List[Scalar]]:
    """Linear part of I + (k - 1) u u^T for the normalized axis u."""
    factor = to_scalar(k)
    if factor.is_zero():
        raise DegenerateInput("Stretch factor must not be zero")
    if axis.is_zero():
        raise DegenerateInput("Stretch axis must not be the zero vector")
    u = axis.normalize()
    k_minus_one = factor - 1
    n = u.dimension
    return [[(ONE if i == j else ZERO) + k_minus_one * u[i] * u[j] for j in range(n)] for i in range(n)]


def _apply_homogeneous(matrix: Matrix, coordinates: Sequence[ScalarLike]) -> Vector:
    n = len(coordinates)
    if matrix.shape != (n + 1, n + 1):
        raise DimensionMismatch(f"Expected a {n + 1}x{n + 1} transform, got shape {matrix.shape}")
    lifted = Vector(list(coordinates) + [ONE])
    image = matrix.apply_to_vector(lifted)
    weight = image[n]
    if weight.is_zero():
        raise DegenerateInput("Homogeneous weight is zero, point maps to infinity")
    if weight == ONE:
        return Vector(image.components[:n])
    return Vector(c / weight for c in image.components[:n])


@dataclass(frozen=True)
class Decomposition2D:
    """Parameters of M = translate * rotate * skewX * scale (angles in radians)."""

    translate_x: Scalar
    translate_y: Scalar
    rotation: Scalar
    scale_x: Scalar
    scale_y: Scalar
    skew_x: Scalar


###############################################################################
# Transform2D
###############################################################################


class Transform2D:
    """2D affine transforms as 3x3 homogeneous matrices.

    Composition is matrix multiplication: ``A.mul(B)`` applies B first, then A.
    """

    @staticmethod
    def identity() -> Matrix:
        return Matrix.identity(3)

    @staticmethod
    def translation(tx: ScalarLike, ty: ScalarLike) -> Matrix:
        return _homogeneous([[ONE, ZERO], [ZERO, ONE]], [to_scalar(tx), to_scalar(ty)])

    @staticmethod
    def scale(sx: ScalarLike, sy: Optional[ScalarLike] = None) -> Matrix:
        """Scale by (sx, sy); sy defaults to sx. A zero factor raises DegenerateInput."""
        x = to_scalar(sx)
        y = x if sy is None else to_scalar(sy)
        if x.is_zero() or y.is_zero():
            raise DegenerateInput(f"Scale factors must not be zero, got ({x}, {y})")
        return _homogeneous([[x, ZERO], [ZERO, y]], [ZERO, ZERO])

    @staticmethod
    def rotate(theta: ScalarLike) -> Matrix:
        """Counter-clockwise rotation by theta radians (y axis up)."""
        angle = to_scalar(theta)
        c, s = angle.cos(), angle.sin()
        return _homogeneous([[c, -s], [s, c]], [ZERO, ZERO])

    @staticmethod
    def rotate_degrees(degrees: ScalarLike) -> Matrix:
        return Transform2D.rotate(to_scalar(degrees).radians())

    @staticmethod
    def rotate_around_point(theta: ScalarLike, px: ScalarLike, py: ScalarLike) -> Matrix:
        """Rotation by theta radians around (px, py): T(p) * R * T(-p)."""
        x, y = to_scalar(px), to_scalar(py)
        return Transform2D.compose(
            Transform2D.translation(x, y), Transform2D.rotate(theta), Transform2D.translation(-x, -y)
        )

    @staticmethod
    def skew(ax: ScalarLike, ay: ScalarLike) -> Matrix:
        """Shear with factors ax (x += ax * y) and ay (y += ay * x)."""
        return _homogeneous([[ONE, to_scalar(ax)], [to_scalar(ay), ONE]], [ZERO, ZERO])

    @staticmethod
    def skew_x_degrees(degrees: ScalarLike) -> Matrix:
        return Transform2D.skew(to_scalar(degrees).radians().tan(), ZERO)

    @staticmethod
    def skew_y_degrees(degrees: ScalarLike) -> Matrix:
        return Transform2D.skew(ZERO, to_scalar(degrees).radians().tan())

    @staticmethod
    def reflect_x() -> Matrix:
        """Reflection across the x axis (y -> -y)."""
        return _homogeneous([[ONE, ZERO], [ZERO, -ONE]], [ZERO, ZERO])

    @staticmethod
    def reflect_y() -> Matrix:
        """Reflection across the y axis (x -> -x)."""
        return _homogeneous([[-ONE, ZERO], [ZERO, ONE]], [ZERO, ZERO])

    @staticmethod
    def reflect_origin() -> Matrix:
        return _homogeneous([[-ONE, ZERO], [ZERO, -ONE]], [ZERO, ZERO])

    @staticmethod
    def stretch_along_axis(k: ScalarLike, ux: ScalarLike, uy: ScalarLike) -> Matrix:
        """Scale by k along the direction (ux, uy), identity perpendicular to it."""
        return _homogeneous(_stretch_linear(k, Vector([ux, uy])), [ZERO, ZERO])

    @staticmethod
    def compose(*matrices: Matrix) -> Matrix:
        """Product of the given transforms, left to right; the last one applies first."""
        result = Matrix.identity(3)
        for matrix in matrices:
            result = result.mul(matrix)
        return result

    @staticmethod
    def apply(matrix: Matrix, x: ScalarLike, y: ScalarLike) -> Vector:
        return _apply_homogeneous(matrix, [x, y])

    @staticmethod
    def apply_to_point(matrix: Matrix, point: VectorLike) -> Vector:
        p = to_vector(point, 2)
        return _apply_homogeneous(matrix, p.components)

    @staticmethod
    def is_affine(matrix: Matrix) -> bool:
        """True for a 3x3 matrix whose last row is [0, 0, 1]."""
        if matrix.shape != (3, 3):
            return False
        return matrix[2, 0].is_zero() and matrix[2, 1].is_zero() and matrix[2, 2] == ONE

    @staticmethod
    def decompose(matrix: Matrix) -> Decomposition2D:
        """Split an affine 2D transform into translate * rotate * skewX * scale.

        The x scale is always positive; a reflection shows up as a negative y scale.

        Raises:
            DimensionMismatch: If the matrix is not an affine 3x3 transform.
            Singular: If the linear part is singular.
        """
        if not Transform2D.is_affine(matrix):
            raise DimensionMismatch("decompose requires an affine 3x3 transform")
        a, c, e = matrix[0, 0], matrix[0, 1], matrix[0, 2]
        b, d, f = matrix[1, 0], matrix[1, 1], matrix[1, 2]
        det = a * d - b * c
        if det.is_zero():
            raise Singular("Cannot decompose a transform with singular linear part")
        scale_x = (a * a + b * b).sqrt()
        rotation = Scalar.atan2(b, a)
        scale_y = det / scale_x
        skew_x = ((a * c + b * d) / det).atan()
        return Decomposition2D(e, f, rotation, scale_x, scale_y, skew_x)

    @staticmethod
    def compose_decomposition(decomposition: Decomposition2D) -> Matrix:
        return Transform2D.compose(
            Transform2D.translation(decomposition.translate_x, decomposition.translate_y),
            Transform2D.rotate(decomposition.rotation),
            Transform2D.skew(decomposition.skew_x.tan(), ZERO),
            Transform2D.scale(decomposition.scale_x, decomposition.scale_y),
        )


###############################################################################
# Transform3D
###############################################################################


class Transform3D:
    """3D affine transforms as 4x4 homogeneous matrices."""

    @staticmethod
    def identity() -> Matrix:
        return Matrix.identity(4)

    @staticmethod
    def translation(tx: ScalarLike, ty: ScalarLike, tz: ScalarLike) -> Matrix:
        return _homogeneous(
            [[ONE, ZERO, ZERO], [ZERO, ONE, ZERO], [ZERO, ZERO, ONE]], [to_scalar(tx), to_scalar(ty), to_scalar(tz)]
        )

    @staticmethod
    def scale(sx: ScalarLike, sy: Optional[ScalarLike] = None, sz: Optional[ScalarLike] = None) -> Matrix:
        """Scale by (sx, sy, sz); omitted factors default to sx."""
        x = to_scalar(sx)
        y = x if sy is None else to_scalar(sy)
        z = x if sz is None else to_scalar(sz)
        if x.is_zero() or y.is_zero() or z.is_zero():
            raise DegenerateInput(f"Scale factors must not be zero, got ({x}, {y}, {z})")
        return _homogeneous([[x, ZERO, ZERO], [ZERO, y, ZERO], [ZERO, ZERO, z]], [ZERO, ZERO, ZERO])

    @staticmethod
    def rotate_x(theta: ScalarLike) -> Matrix:
        angle = to_scalar(theta)
        c, s = angle.cos(), angle.sin()
        return _homogeneous([[ONE, ZERO, ZERO], [ZERO, c, -s], [ZERO, s, c]], [ZERO, ZERO, ZERO])

    @staticmethod
    def rotate_y(theta: ScalarLike) -> Matrix:
        angle = to_scalar(theta)
        c, s = angle.cos(), angle.sin()
        return _homogeneous([[c, ZERO, s], [ZERO, ONE, ZERO], [-s, ZERO, c]], [ZERO, ZERO, ZERO])

    @staticmethod
    def rotate_z(theta: ScalarLike) -> Matrix:
        angle = to_scalar(theta)
        c, s = angle.cos(), angle.sin()
        return _homogeneous([[c, -s, ZERO], [s, c, ZERO], [ZERO, ZERO, ONE]], [ZERO, ZERO, ZERO])

    @staticmethod
    def rotate_around_axis(ux: ScalarLike, uy: ScalarLike, uz: ScalarLike, theta: ScalarLike) -> Matrix:
        """Rodrigues rotation by theta radians around the axis (ux, uy, uz).

        Raises:
            DegenerateInput: If the axis is the zero vector.
        """
        axis = Vector([ux, uy, uz])
        if axis.is_zero():
            raise DegenerateInput("Rotation axis must not be the zero vector")
        x, y, z = axis.normalize().components
        angle = to_scalar(theta)
        c, s = angle.cos(), angle.sin()
        t = ONE - c
        linear = [
            [c + x * x * t, x * y * t - z * s, x * z * t + y * s],
            [y * x * t + z * s, c + y * y * t, y * z * t - x * s],
            [z * x * t - y * s, z * y * t + x * s, c + z * z * t],
        ]
        return _homogeneous(linear, [ZERO, ZERO, ZERO])

    @staticmethod
    def rotate_around_point(
        ux: ScalarLike,
        uy: ScalarLike,
        uz: ScalarLike,
        theta: ScalarLike,
        px: ScalarLike,
        py: ScalarLike,
        pz: ScalarLike,
    ) -> Matrix:
        """Rotation around the axis through (px, py, pz): T(p) * R * T(-p)."""
        x, y, z = to_scalar(px), to_scalar(py), to_scalar(pz)
        return Transform3D.compose(
            Transform3D.translation(x, y, z),
            Transform3D.rotate_around_axis(ux, uy, uz, theta),
            Transform3D.translation(-x, -y, -z),
        )

    @staticmethod
    def reflect_xy() -> Matrix:
        """Reflection across the xy plane (z -> -z)."""
        return Transform3D._diagonal(ONE, ONE, -ONE)

    @staticmethod
    def reflect_xz() -> Matrix:
        """Reflection across the xz plane (y -> -y)."""
        return Transform3D._diagonal(ONE, -ONE, ONE)

    @staticmethod
    def reflect_yz() -> Matrix:
        """Reflection across the yz plane (x -> -x)."""
        return Transform3D._diagonal(-ONE, ONE, ONE)

    @staticmethod
    def reflect_origin() -> Matrix:
        return Transform3D._diagonal(-ONE, -ONE, -ONE)

    @staticmethod
    def _diagonal(x: Scalar, y: Scalar, z: Scalar) -> Matrix:
        return _homogeneous([[x, ZERO, ZERO], [ZERO, y, ZERO], [ZERO, ZERO, z]], [ZERO, ZERO, ZERO])

    @staticmethod
    def stretch_along_axis(k: ScalarLike, ux: ScalarLike, uy: ScalarLike, uz: ScalarLike) -> Matrix:
        return _homogeneous(_stretch_linear(k, Vector([ux, uy, uz])), [ZERO, ZERO, ZERO])

    @staticmethod
    def compose(*matrices: Matrix) -> Matrix:
        result = Matrix.identity(4)
        for matrix in matrices:
            result = result.mul(matrix)
        return result

    @staticmethod
    def apply(matrix: Matrix, x: ScalarLike, y: ScalarLike, z: ScalarLike) -> Vector:
        return _apply_homogeneous(matrix, [x, y, z])

    @staticmethod
    def apply_to_point(matrix: Matrix, point: VectorLike) -> Vector:
        p = to_vector(point, 3)
        return _apply_homogeneous(matrix, p.components)
