"""Central module containing error types and shared definitions for exact geometry processing."""

from __future__ import annotations

from enum import Enum, auto
from typing import Literal

###############################################################################
# Types
###############################################################################


SvgTransformNames = Literal[  # Type-Definition for the functions of an SVG transform attribute
    # translate(tx [ty]) - move by (tx, ty); ty defaults to 0
    "translate",
    # scale(sx [sy]) - scale by (sx, sy); sy defaults to sx
    "scale",
    # rotate(angle [cx cy]) - rotate by angle (degrees), optionally around (cx, cy)
    "rotate",
    # skewX(angle) - shear along the x-axis by angle (degrees)
    "skewX",
    # skewY(angle) - shear along the y-axis by angle (degrees)
    "skewY",
    # matrix(a b c d e f) - explicit affine matrix [[a c e] [b d f] [0 0 1]]
    "matrix",
]


###############################################################################
# Enums
###############################################################################


class MeetOrSlice(Enum):
    """Enum to define how a viewBox is fitted into its viewport."""

    MEET = auto()
    SLICE = auto()


###############################################################################
# Errors
###############################################################################


class GeomError(ValueError):
    """Base class of all errors raised by exactgeom."""


class DimensionMismatch(GeomError):
    """Operands have incompatible dimensions (or a matrix is not rectangular)."""


class Singular(GeomError):
    """A matrix is exactly singular (zero pivot during elimination)."""


class DegenerateInput(GeomError):
    """Input has no defined direction or is not invertible (zero vector, axis or scale)."""


class DomainError(GeomError):
    """A value lies outside the domain of the requested operation."""


class DivisionByZero(DomainError, ZeroDivisionError):
    """Division of a Scalar by exactly zero."""


class ParseError(GeomError):
    """Malformed transform, viewBox, preserveAspectRatio, length or number text."""


class ConvergenceFailure(GeomError):
    """An iterative method did not converge within its iteration budget."""


class RecursionLimitExceeded(GeomError):
    """A recursive subdivision exceeded its maximum depth."""
