"""Parsing and composing SVG transform attributes with exact arithmetic"""

from __future__ import annotations

import logging
import re
from typing import ClassVar, Dict, List, Sequence, Tuple

from exactgeom.common import DimensionMismatch, ParseError, SvgTransformNames
from exactgeom.matrix import Matrix
from exactgeom.numeric import Scalar, ScalarLike, to_scalar
from exactgeom.transforms import Transform2D
from exactgeom.vector import Vector

logger = logging.getLogger(__name__)


class SvgTransform:
    """
    This class provides a collection of static methods for SVG transform attributes.
    A transform attribute is a list of transform functions separated by whitespace
    and/or a comma, applied right to left to the element's coordinates.
    Functions (function : number of values):
        translate:  1 or 2   (ty defaults to 0)
        scale:      1 or 2   (sy defaults to sx)
        rotate:     1 or 3   (angle in degrees, optional pivot cx cy)
        skewX:      1        (angle in degrees)
        skewY:      1        (angle in degrees)
        matrix:     6        (a b c d e f)
    """

    # Definition of a number:
    SVG_NUMBER: ClassVar[str] = r"[-+]?(?:[0-9]+\.?[0-9]*|\.[0-9]+)(?:[eE][-+]?[0-9]+)?"
    # One transform function with its raw argument text:
    SVG_FUNCTION: ClassVar[re.Pattern] = re.compile(r"\s*([A-Za-z]+)\s*\(([^()]*)\)\s*")
    # Complete argument list: numbers separated by whitespace and/or one comma
    SVG_ARGUMENT_LIST: ClassVar[re.Pattern] = re.compile(
        rf"\s*{SVG_NUMBER}(?:(?:\s*,\s*|\s+|(?=[-+.])){SVG_NUMBER})*\s*"
    )
    # Allowed argument counts per function
    ARG_COUNTS: ClassVar[Dict[str, Tuple[int, ...]]] = {
        "translate": (1, 2),
        "scale": (1, 2),
        "rotate": (1, 3),
        "skewX": (1,),
        "skewY": (1,),
        "matrix": (6,),
    }

    @staticmethod
    def parse_arguments(text: str) -> List[Scalar]:
        """Parse the argument text of one transform function into exact Scalars."""
        if not text.strip():
            return []
        if not SvgTransform.SVG_ARGUMENT_LIST.fullmatch(text):
            raise ParseError(f"Malformed transform arguments: {text!r}")
        return [Scalar.from_text(number) for number in re.findall(SvgTransform.SVG_NUMBER, text)]

    @staticmethod
    def parse_transform_function(name: SvgTransformNames, args: Sequence[ScalarLike]) -> Matrix:
        """
        Build the matrix of a single transform function.

        Args:
            name (SvgTransformNames): translate, scale, rotate, skewX, skewY or matrix
            args (Sequence[ScalarLike]): the function's arguments

        Returns:
            Matrix: the 3x3 homogeneous transform

        Raises:
            ParseError: If the name is unknown or the argument count is wrong.
            DegenerateInput: For a zero scale factor, e.g. scale(0), which is valid
                SVG but has no invertible matrix.
        """
        if name not in SvgTransform.ARG_COUNTS:
            raise ParseError(f"Unknown transform function {name!r}")
        if len(args) not in SvgTransform.ARG_COUNTS[name]:
            expected = " or ".join(str(n) for n in SvgTransform.ARG_COUNTS[name])
            raise ParseError(f"{name}() takes {expected} arguments, got {len(args)}")

        if name == "translate":
            return Transform2D.translation(args[0], args[1] if len(args) == 2 else 0)
        if name == "scale":
            return Transform2D.scale(args[0], args[1] if len(args) == 2 else None)
        if name == "rotate":
            angle = to_scalar(args[0]).radians()
            if len(args) == 3:
                return Transform2D.rotate_around_point(angle, args[1], args[2])
            return Transform2D.rotate(angle)
        if name == "skewX":
            return Transform2D.skew_x_degrees(args[0])
        if name == "skewY":
            return Transform2D.skew_y_degrees(args[0])
        # matrix(a b c d e f)
        a, b, c, d, e, f = args
        return Matrix([[a, c, e], [b, d, f], [0, 0, 1]])

    @staticmethod
    def parse_transform_attribute(transform_string: str) -> Matrix:
        """
        Parse a complete transform attribute into one matrix.

        The functions are multiplied left to right, so the rightmost one is
        applied first. An empty (or blank) string is the identity.

        Args:
            transform_string (str): e.g. "translate(10, 20) rotate(45)"

        Returns:
            Matrix: the composed 3x3 transform

        Raises:
            ParseError: On unknown functions, wrong argument counts, malformed
                numbers or stray text.
            DegenerateInput: If a function has a zero scale factor (scale(0)).
        """
        result = Matrix.identity(3)
        if not transform_string.strip():
            return result

        pos = 0
        count = 0
        while True:
            match = SvgTransform.SVG_FUNCTION.match(transform_string, pos)
            if not match:
                raise ParseError(f"Unexpected text in transform at position {pos}: {transform_string[pos:]!r}")
            name, arg_text = match.group(1), match.group(2)
            args = SvgTransform.parse_arguments(arg_text)
            result = result.mul(SvgTransform.parse_transform_function(name, args))
            count += 1
            pos = match.end()
            if pos == len(transform_string):
                break
            # A single comma may separate two functions
            if transform_string[pos] == ",":
                pos += 1

        logger.debug("Parsed %d transform functions from %r", count, transform_string)
        return result

    @staticmethod
    def build_ctm(transform_strings: Sequence[str]) -> Matrix:
        """Compose the transform attributes of an ancestor-to-descendant chain."""
        ctm = Matrix.identity(3)
        for transform_string in transform_strings:
            ctm = ctm.mul(SvgTransform.parse_transform_attribute(transform_string))
        return ctm

    @staticmethod
    def apply_to_point(ctm: Matrix, x: ScalarLike, y: ScalarLike) -> Vector:
        return Transform2D.apply(ctm, x, y)

    @staticmethod
    def _format_number(value: Scalar, precision: int) -> str:
        text = value.to_fixed(precision)
        if "." in text:
            text = text.rstrip("0").rstrip(".")
        return "0" if text in ("-0", "") else text

    @staticmethod
    def to_svg_matrix(ctm: Matrix, precision: int = 6) -> str:
        """Serialize an affine 3x3 matrix as SVG "matrix(a b c d e f)" with the given decimals."""
        if not Transform2D.is_affine(ctm):
            raise DimensionMismatch("Only affine 3x3 transforms can be written as SVG matrix()")
        values = [ctm[0, 0], ctm[1, 0], ctm[0, 1], ctm[1, 1], ctm[0, 2], ctm[1, 2]]
        return "matrix(" + " ".join(SvgTransform._format_number(v, precision) for v in values) + ")"

    @staticmethod
    def is_identity(matrix: Matrix, tolerance: ScalarLike = 0) -> bool:
        return matrix.equals(Matrix.identity(matrix.rows), tolerance) if matrix.is_square() else False
