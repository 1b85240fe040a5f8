"""Viewports, viewBox fitting, CSS lengths and cumulative transform (CTM) resolution"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import ClassVar, Optional, Sequence, Tuple, Union

from exactgeom.common import DegenerateInput, DimensionMismatch, DomainError, MeetOrSlice, ParseError
from exactgeom.consts import CM_PER_INCH, CSS_DPI, DEFAULT_FONT_SIZE, MM_PER_INCH, PC_PER_INCH, PT_PER_INCH
from exactgeom.matrix import Matrix
from exactgeom.numeric import ZERO, Scalar, ScalarLike, to_scalar
from exactgeom.svgtransform import SvgTransform
from exactgeom.transforms import Transform2D

logger = logging.getLogger(__name__)

LengthLike = Union[str, ScalarLike]

_NUMBER = r"[-+]?(?:[0-9]+\.?[0-9]*|\.[0-9]+)(?:[eE][-+]?[0-9]+)?"


###############################################################################
# preserveAspectRatio
###############################################################################


class AspectAlign(Enum):
    """Alignment values of preserveAspectRatio, with the fraction of the free space put before the content."""

    NONE = "none"
    X_MIN_Y_MIN = "xMinYMin"
    X_MID_Y_MIN = "xMidYMin"
    X_MAX_Y_MIN = "xMaxYMin"
    X_MIN_Y_MID = "xMinYMid"
    X_MID_Y_MID = "xMidYMid"
    X_MAX_Y_MID = "xMaxYMid"
    X_MIN_Y_MAX = "xMinYMax"
    X_MID_Y_MAX = "xMidYMax"
    X_MAX_Y_MAX = "xMaxYMax"

    @staticmethod
    def _fraction(token: str) -> Scalar:
        return {"Min": ZERO, "Mid": Scalar.from_text("0.5"), "Max": Scalar.from_int(1)}[token]

    @property
    def x_fraction(self) -> Scalar:
        return self._fraction(self.value[1:4]) if self is not AspectAlign.NONE else ZERO

    @property
    def y_fraction(self) -> Scalar:
        return self._fraction(self.value[5:8]) if self is not AspectAlign.NONE else ZERO


@dataclass(frozen=True)
class PreserveAspectRatio:
    """Parsed preserveAspectRatio attribute; the default is "xMidYMid meet"."""

    align: AspectAlign = AspectAlign.X_MID_Y_MID
    meet_or_slice: MeetOrSlice = MeetOrSlice.MEET
    defer: bool = False

    @classmethod
    def parse(cls, text: str) -> PreserveAspectRatio:
        """
        Parse "[defer] <align> [meet|slice]".

        Raises:
            ParseError: On an unknown or misplaced token.
        """
        tokens = text.split()
        if not tokens:
            return cls()
        defer = tokens[0] == "defer"
        if defer:
            tokens = tokens[1:]
        if not tokens:
            raise ParseError(f"preserveAspectRatio needs an alignment: {text!r}")
        try:
            align = AspectAlign(tokens[0])
        except ValueError as exc:
            raise ParseError(f"Unknown preserveAspectRatio alignment {tokens[0]!r}") from exc
        meet_or_slice = MeetOrSlice.MEET
        if len(tokens) > 1:
            if tokens[1] == "meet":
                meet_or_slice = MeetOrSlice.MEET
            elif tokens[1] == "slice":
                meet_or_slice = MeetOrSlice.SLICE
            else:
                raise ParseError(f"Expected 'meet' or 'slice', got {tokens[1]!r}")
        if len(tokens) > 2:
            raise ParseError(f"Unexpected text in preserveAspectRatio: {' '.join(tokens[2:])!r}")
        return cls(align, meet_or_slice, defer)


def parse_preserve_aspect_ratio(text: str) -> PreserveAspectRatio:
    return PreserveAspectRatio.parse(text)


###############################################################################
# viewBox
###############################################################################


@dataclass(frozen=True)
class ViewBox:
    """The viewBox rectangle (min_x, min_y, width, height) in user units."""

    min_x: Scalar
    min_y: Scalar
    width: Scalar
    height: Scalar

    def __post_init__(self):
        for name in ("min_x", "min_y", "width", "height"):
            object.__setattr__(self, name, to_scalar(getattr(self, name)))
        if self.width <= 0 or self.height <= 0:
            raise DegenerateInput(f"viewBox width and height must be positive, got {self.width} x {self.height}")

    @classmethod
    def parse(cls, text: str) -> ViewBox:
        """
        Parse exactly four numbers separated by whitespace and/or commas.

        Raises:
            ParseError: On a wrong count or a malformed number.
            DegenerateInput: If width or height is not positive.
        """
        parts = [p for p in re.split(r"[\s,]+", text.strip()) if p]
        if len(parts) != 4:
            raise ParseError(f"viewBox needs exactly 4 numbers, got {len(parts)}: {text!r}")
        for part in parts:
            if not re.fullmatch(_NUMBER, part):
                raise ParseError(f"Malformed number {part!r} in viewBox {text!r}")
        return cls(*(Scalar.from_text(p) for p in parts))


def parse_view_box(text: str) -> ViewBox:
    return ViewBox.parse(text)


def compute_view_box_transform(
    view_box: ViewBox,
    viewport_width: ScalarLike,
    viewport_height: ScalarLike,
    preserve_aspect_ratio: Optional[PreserveAspectRatio] = None,
) -> Matrix:
    """
    Transform mapping viewBox user units into a viewport of the given size.

    "none" stretches each axis independently. Otherwise the uniform scale is
    the smaller (meet) or larger (slice) of the two axis ratios, and the free
    space is distributed according to the alignment:
    Translate(align) * Scale * Translate(-viewBox origin).

    Raises:
        DegenerateInput: If the viewport size is not positive.
    """
    vp_w, vp_h = to_scalar(viewport_width), to_scalar(viewport_height)
    if vp_w <= 0 or vp_h <= 0:
        raise DegenerateInput(f"Viewport size must be positive, got {vp_w} x {vp_h}")
    par = preserve_aspect_ratio or PreserveAspectRatio()
    sx = vp_w / view_box.width
    sy = vp_h / view_box.height
    to_origin = Transform2D.translation(-view_box.min_x, -view_box.min_y)
    if par.align is AspectAlign.NONE:
        return Transform2D.compose(Transform2D.scale(sx, sy), to_origin)
    scale = Scalar.min(sx, sy) if par.meet_or_slice is MeetOrSlice.MEET else Scalar.max(sx, sy)
    tx = (vp_w - view_box.width * scale) * par.align.x_fraction
    ty = (vp_h - view_box.height * scale) * par.align.y_fraction
    return Transform2D.compose(Transform2D.translation(tx, ty), Transform2D.scale(scale), to_origin)


###############################################################################
# Lengths
###############################################################################


class LengthResolver:
    """
    Resolve CSS/SVG lengths to user units (px).

    Absolute units use the CSS reference pixel (96 px per inch). em and ex refer
    to font_size, rem to root_font_size; both default to DEFAULT_FONT_SIZE since
    no style cascade is available here.
    """

    LENGTH: ClassVar[re.Pattern] = re.compile(rf"\s*({_NUMBER})\s*([A-Za-z%]*)\s*")

    def __init__(
        self,
        dpi: ScalarLike = CSS_DPI,
        font_size: ScalarLike = DEFAULT_FONT_SIZE,
        root_font_size: Optional[ScalarLike] = None,
    ):
        self.dpi = to_scalar(dpi)
        self.font_size = to_scalar(font_size)
        self.root_font_size = self.font_size if root_font_size is None else to_scalar(root_font_size)

    def unit_factor(self, unit: str) -> Scalar:
        """Pixels per unit for all units except %."""
        factors = {
            "": Scalar.from_int(1),
            "px": Scalar.from_int(1),
            "in": self.dpi,
            "cm": self.dpi / Scalar.from_text(CM_PER_INCH),
            "mm": self.dpi / Scalar.from_text(MM_PER_INCH),
            "pt": self.dpi / PT_PER_INCH,
            "pc": self.dpi / PC_PER_INCH,
            "em": self.font_size,
            "rem": self.root_font_size,
            "ex": self.font_size / 2,
        }
        if unit not in factors:
            raise ParseError(f"Unknown length unit {unit!r}")
        return factors[unit]

    def resolve(self, value: LengthLike, reference: Optional[ScalarLike] = None) -> Scalar:
        """
        Resolve a length to user units.

        Args:
            value: A number (user units) or text such as "2.5cm" or "50%"
            reference: Length that 100% refers to

        Raises:
            ParseError: On malformed text or an unknown unit.
            DomainError: On a percentage without reference.
        """
        if not isinstance(value, str):
            return to_scalar(value)
        match = self.LENGTH.fullmatch(value)
        if not match:
            raise ParseError(f"Malformed length {value!r}")
        number, unit = Scalar.from_text(match.group(1)), match.group(2)
        if unit == "%":
            if reference is None:
                raise DomainError(f"Percentage length {value!r} needs a reference length")
            return number * to_scalar(reference) / 100
        return number * self.unit_factor(unit)


_DEFAULT_RESOLVER = LengthResolver()


def resolve_length(value: LengthLike, reference: Optional[ScalarLike] = None) -> Scalar:
    """Resolve a length with the default resolver (96 dpi, 16px font size)."""
    return _DEFAULT_RESOLVER.resolve(value, reference)


def resolve_percentages(
    x: LengthLike, y: LengthLike, reference_width: ScalarLike, reference_height: ScalarLike
) -> Tuple[Scalar, Scalar]:
    """Resolve an (x, y) pair; percentages refer to the width and the height respectively."""
    return resolve_length(x, reference_width), resolve_length(y, reference_height)


def normalized_diagonal(width: ScalarLike, height: ScalarLike) -> Scalar:
    """sqrt(w^2 + h^2) / sqrt(2), the reference for percentages that are neither horizontal nor vertical."""
    w, h = to_scalar(width), to_scalar(height)
    return ((w * w + h * h) / 2).sqrt()


###############################################################################
# Coordinate system items
###############################################################################


@dataclass(frozen=True)
class ObjectBoundingBox:
    """Bounding box of the referencing element, for objectBoundingBox units."""

    x: Scalar
    y: Scalar
    width: Scalar
    height: Scalar

    def __post_init__(self):
        for name in ("x", "y", "width", "height"):
            object.__setattr__(self, name, to_scalar(getattr(self, name)))


def object_bounding_box_transform(x: ScalarLike, y: ScalarLike, width: ScalarLike, height: ScalarLike) -> Matrix:
    """
    Translate(x, y) * Scale(width, height): maps the unit square onto the box.

    Raises:
        DegenerateInput: If width or height is zero.
    """
    w, h = to_scalar(width), to_scalar(height)
    if w.is_zero() or h.is_zero():
        raise DegenerateInput(f"objectBoundingBox needs a non-zero size, got {w} x {h}")
    return Transform2D.compose(Transform2D.translation(x, y), Transform2D.scale(w, h))


@dataclass(frozen=True)
class Viewport:
    """A nested viewport (svg, symbol instance, ...) in the coordinate system hierarchy.

    x, y, width and height are lengths and may be percentages of the
    enclosing viewport.
    """

    x: LengthLike = 0
    y: LengthLike = 0
    width: LengthLike = "100%"
    height: LengthLike = "100%"
    view_box: Optional[ViewBox] = None
    preserve_aspect_ratio: PreserveAspectRatio = field(default_factory=PreserveAspectRatio)
    transform: str = ""


HierarchyItem = Union[str, Matrix, Viewport, ObjectBoundingBox]


class CtmResolver:
    """Compose an ancestor-to-descendant chain of coordinate systems into one CTM.

    Items may be transform attribute strings, 3x3 matrices, Viewport descriptors
    or ObjectBoundingBox rectangles. Percentages of a Viewport refer to the size
    of the enclosing viewport: initially the given size, afterwards the viewBox
    (or, without one, the resolved size) of the last Viewport.
    """

    def __init__(
        self,
        viewport_width: Optional[ScalarLike] = None,
        viewport_height: Optional[ScalarLike] = None,
        length_resolver: Optional[LengthResolver] = None,
    ):
        self.viewport_width = None if viewport_width is None else to_scalar(viewport_width)
        self.viewport_height = None if viewport_height is None else to_scalar(viewport_height)
        self.length_resolver = length_resolver or _DEFAULT_RESOLVER

    def viewport_transform(
        self, viewport: Viewport, parent_width: Optional[Scalar], parent_height: Optional[Scalar]
    ) -> Tuple[Matrix, Scalar, Scalar]:
        """
        Matrix contributed by a viewport: transform * Translate(x, y) * viewBoxTransform.

        Returns:
            Tuple[Matrix, Scalar, Scalar]: the matrix, and the width and height that
            percentages inside this viewport refer to
        """
        resolve = self.length_resolver.resolve
        x = resolve(viewport.x, parent_width)
        y = resolve(viewport.y, parent_height)
        width = resolve(viewport.width, parent_width)
        height = resolve(viewport.height, parent_height)
        if viewport.preserve_aspect_ratio.defer:
            logger.warning("preserveAspectRatio 'defer' only applies to referenced images and is ignored")

        own = SvgTransform.parse_transform_attribute(viewport.transform)
        placement = Transform2D.translation(x, y)
        if viewport.view_box is None:
            return own.mul(placement), width, height
        fit = compute_view_box_transform(viewport.view_box, width, height, viewport.preserve_aspect_ratio)
        return Transform2D.compose(own, placement, fit), viewport.view_box.width, viewport.view_box.height

    def build_full_ctm(self, hierarchy: Sequence[HierarchyItem]) -> Matrix:
        """
        Compose the hierarchy, ancestor first, into one cumulative 3x3 matrix.

        Raises:
            ParseError: On an unsupported item or a malformed transform string.
            DimensionMismatch: If a Matrix item is not 3x3.
            DomainError: If a viewport length is a percentage (the default width and
                height are "100%") and no enclosing viewport size is known, i.e. the
                resolver was created without viewport_width and viewport_height.
            DegenerateInput: For a zero scale factor, a zero-size viewport holding a
                viewBox, or an empty objectBoundingBox.
        """
        ctm = Matrix.identity(3)
        width, height = self.viewport_width, self.viewport_height
        for item in hierarchy:
            if isinstance(item, str):
                step = SvgTransform.parse_transform_attribute(item)
            elif isinstance(item, Matrix):
                if item.shape != (3, 3):
                    raise DimensionMismatch(f"CTM items must be 3x3 matrices, got shape {item.shape}")
                step = item
            elif isinstance(item, Viewport):
                step, width, height = self.viewport_transform(item, width, height)
            elif isinstance(item, ObjectBoundingBox):
                step = object_bounding_box_transform(item.x, item.y, item.width, item.height)
            else:
                raise ParseError(f"Unsupported coordinate system item of type {type(item).__name__}")
            ctm = ctm.mul(step)
        logger.debug("Resolved CTM from %d hierarchy items", len(hierarchy))
        return ctm


def build_full_ctm(
    hierarchy: Sequence[HierarchyItem],
    viewport_width: Optional[ScalarLike] = None,
    viewport_height: Optional[ScalarLike] = None,
) -> Matrix:
    """
    Resolve a hierarchy with a fresh CtmResolver; see CtmResolver.build_full_ctm.

    Raises:
        DomainError: If a percentage length needs viewport_width or viewport_height
            and they were not given, e.g. for Viewport() with its "100%" defaults.
    """
    return CtmResolver(viewport_width, viewport_height).build_full_ctm(hierarchy)
