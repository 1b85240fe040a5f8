"""Test module for exactgeom.viewport

The tests are run using pytest.
These tests ensure that viewBox fitting, length resolution and the
resolution of coordinate system hierarchies into one CTM remain working
correctly after changes and refactoring.
"""

import logging

import pytest

from exactgeom.common import DegenerateInput, DimensionMismatch, DomainError, MeetOrSlice, ParseError
from exactgeom.matrix import Matrix
from exactgeom.numeric import Scalar, to_scalar
from exactgeom.transforms import Transform2D
from exactgeom.vector import Vector
from exactgeom.viewport import (
    AspectAlign,
    CtmResolver,
    LengthResolver,
    ObjectBoundingBox,
    PreserveAspectRatio,
    ViewBox,
    Viewport,
    build_full_ctm,
    compute_view_box_transform,
    normalized_diagonal,
    object_bounding_box_transform,
    parse_preserve_aspect_ratio,
    parse_view_box,
    resolve_length,
    resolve_percentages,
)

TOL = Scalar.from_text("1e-40")


def close(a, b, tol=TOL) -> bool:
    """Absolute difference within tolerance."""
    return abs(to_scalar(a) - to_scalar(b)) <= tol


###############################################################################
# Attribute parsing
###############################################################################


class TestViewBoxParsing:
    """Test the viewBox attribute."""

    def test_parse(self):
        """Whitespace and comma separators."""
        box = parse_view_box("0 0 100 50")
        assert (box.min_x, box.min_y, box.width, box.height) == (0, 0, 100, 50)
        assert ViewBox.parse(" -10,5.5, 20 ,30 ") == ViewBox(-10, "5.5", 20, 30)

    @pytest.mark.parametrize("text", ["0 0 100", "0 0 100 50 1", "0 0 a 50", ""])
    def test_malformed(self, text):
        """Wrong counts and malformed numbers raise ParseError."""
        with pytest.raises(ParseError):
            parse_view_box(text)

    @pytest.mark.parametrize("text", ["0 0 0 50", "0 0 100 -1"])
    def test_non_positive_size(self, text):
        """Width and height must be positive."""
        with pytest.raises(DegenerateInput):
            parse_view_box(text)


class TestPreserveAspectRatioParsing:
    """Test the preserveAspectRatio attribute."""

    def test_default(self):
        """An empty attribute is xMidYMid meet."""
        par = parse_preserve_aspect_ratio("")
        assert par.align is AspectAlign.X_MID_Y_MID
        assert par.meet_or_slice is MeetOrSlice.MEET
        assert not par.defer

    def test_align_and_slice(self):
        """Alignment with an explicit slice."""
        par = PreserveAspectRatio.parse("xMinYMax slice")
        assert par.align is AspectAlign.X_MIN_Y_MAX
        assert par.meet_or_slice is MeetOrSlice.SLICE
        assert par.align.x_fraction == 0
        assert par.align.y_fraction == 1

    def test_defer(self):
        """defer is recognized before the alignment."""
        par = parse_preserve_aspect_ratio("defer none")
        assert par.defer
        assert par.align is AspectAlign.NONE

    @pytest.mark.parametrize("text", ["foo", "xMidYMid bar", "defer", "xMidYMid meet extra", "meet xMidYMid"])
    def test_malformed(self, text):
        """Unknown or misplaced tokens raise ParseError."""
        with pytest.raises(ParseError):
            parse_preserve_aspect_ratio(text)


###############################################################################
# viewBox fitting
###############################################################################


class TestViewBoxTransform:
    """Test fitting a viewBox into a viewport."""

    def test_uniform_scale(self):
        """A square viewBox in a square viewport of twice the size."""
        m = compute_view_box_transform(parse_view_box("0 0 100 100"), 200, 200)
        assert Transform2D.apply(m, 50, 50) == Vector([100, 100])

    def test_meet_centers(self):
        """meet uses the smaller ratio and centers along the other axis."""
        m = compute_view_box_transform(parse_view_box("0 0 100 50"), 200, 200)
        assert Transform2D.apply(m, 0, 0) == Vector([0, 50])
        assert Transform2D.apply(m, 100, 50) == Vector([200, 150])

    def test_slice_overflows(self):
        """slice uses the larger ratio and crops along the other axis."""
        par = parse_preserve_aspect_ratio("xMidYMid slice")
        m = compute_view_box_transform(parse_view_box("0 0 100 50"), 200, 200, par)
        assert Transform2D.apply(m, 0, 0) == Vector([-100, 0])
        assert Transform2D.apply(m, 50, 25) == Vector([100, 100])

    def test_none_stretches(self):
        """none scales both axes independently."""
        par = parse_preserve_aspect_ratio("none")
        m = compute_view_box_transform(parse_view_box("0 0 100 50"), 200, 200, par)
        assert Transform2D.apply(m, 100, 50) == Vector([200, 200])

    def test_min_alignment_and_origin(self):
        """xMinYMin puts all free space after the content; the viewBox origin maps to 0."""
        par = parse_preserve_aspect_ratio("xMinYMin meet")
        m = compute_view_box_transform(parse_view_box("10 10 100 50"), 200, 200, par)
        assert Transform2D.apply(m, 10, 10) == Vector([0, 0])

    def test_degenerate_viewport(self):
        """A zero-size viewport cannot hold a viewBox."""
        with pytest.raises(DegenerateInput):
            compute_view_box_transform(parse_view_box("0 0 1 1"), 0, 10)


###############################################################################
# Lengths
###############################################################################


class TestLengths:
    """Test CSS length resolution."""

    def test_absolute_units(self):
        """Absolute units at 96 px per inch."""
        assert resolve_length("1in") == 96
        assert resolve_length("1pc") == 16
        assert close(resolve_length("12pt"), 16)
        assert close(resolve_length("2.54cm"), 96)
        assert close(resolve_length("25.4mm"), 96)
        assert resolve_length("10px") == 10
        assert resolve_length("10") == 10
        assert resolve_length(5) == 5

    def test_font_relative_units(self):
        """em and rem use the font sizes, ex is half an em."""
        assert resolve_length("2em") == 32
        assert resolve_length("1ex") == 8
        assert LengthResolver(root_font_size=10).resolve("2rem") == 20
        assert LengthResolver(font_size=20).resolve("2rem") == 40

    def test_percentages(self):
        """Percentages need a reference length."""
        assert resolve_length("50%", 200) == 100
        assert resolve_percentages("50%", "25%", 200, 100) == (100, 25)
        with pytest.raises(DomainError):
            resolve_length("50%")

    @pytest.mark.parametrize("text", ["10furlongs", "abc", "", "1..2px"])
    def test_malformed(self, text):
        """Malformed lengths and unknown units raise ParseError."""
        with pytest.raises(ParseError):
            resolve_length(text)

    def test_custom_dpi(self):
        """A resolver with 72 dpi maps 1in to 72."""
        assert LengthResolver(dpi=72).resolve("1in") == 72

    def test_normalized_diagonal(self):
        """sqrt((w^2 + h^2) / 2) is w for squares."""
        assert normalized_diagonal(100, 100) == 100
        assert close(normalized_diagonal(3, 4) ** 2, Scalar.from_text("12.5"))


###############################################################################
# Hierarchies
###############################################################################


class TestCtmResolution:
    """Test composing coordinate system hierarchies."""

    def test_object_bounding_box(self):
        """The unit square maps onto the box."""
        m = object_bounding_box_transform(10, 20, 100, 50)
        assert Transform2D.apply(m, "0.5", "0.5") == Vector([60, 45])
        with pytest.raises(DegenerateInput):
            object_bounding_box_transform(0, 0, 0, 10)

    def test_nested_viewport(self):
        """translate, a viewBox viewport and scale compose outermost first."""
        hierarchy = [
            "translate(10,10)",
            Viewport(width=200, height=200, view_box=parse_view_box("0 0 100 100")),
            "scale(2)",
        ]
        ctm = build_full_ctm(hierarchy)
        assert Transform2D.apply(ctm, 5, 5) == Vector([30, 30])

    def test_percentage_viewport(self):
        """Viewport geometry in percentages of the enclosing viewport."""
        viewport = Viewport(x="10%", y="10%", width="50%", height="50%", view_box=ViewBox(0, 0, 10, 10))
        ctm = build_full_ctm([viewport], 200, 100)
        assert Transform2D.apply(ctm, 0, 0) == Vector([45, 10])
        assert Transform2D.apply(ctm, 10, 10) == Vector([95, 60])

    def test_percentages_refer_to_inner_view_box(self):
        """Inside a viewBox, percentages refer to the viewBox size."""
        hierarchy = [
            Viewport(width=200, height=200, view_box=ViewBox(0, 0, 10, 10)),
            Viewport(x="50%", y="50%"),
        ]
        ctm = build_full_ctm(hierarchy)
        assert Transform2D.apply(ctm, 0, 0) == Vector([100, 100])

    def test_viewport_transform_attribute(self):
        """A viewport's own transform is applied outside its placement."""
        viewport = Viewport(x=5, width=10, height=10, transform="scale(2)")
        ctm = build_full_ctm([viewport])
        assert Transform2D.apply(ctm, 1, 1) == Vector([12, 2])

    def test_matrix_and_bounding_box_items(self):
        """Matrices and objectBoundingBox rectangles are valid items."""
        ctm = build_full_ctm([Transform2D.translation(1, 1), ObjectBoundingBox(0, 0, 10, 10)])
        assert Transform2D.apply(ctm, "0.5", "0.5") == Vector([6, 6])

    def test_invalid_items(self):
        """Wrong matrix shapes and unknown item types are rejected."""
        with pytest.raises(DimensionMismatch):
            build_full_ctm([Matrix.identity(2)])
        with pytest.raises(ParseError):
            build_full_ctm([42])
        with pytest.raises(ParseError):
            build_full_ctm(["rotate(1, 2)"])

    def test_percentage_without_viewport_size(self):
        """A percentage viewport at the root needs the initial viewport size."""
        with pytest.raises(DomainError):
            build_full_ctm([Viewport()])
        assert CtmResolver(100, 100).build_full_ctm([Viewport()]) == Matrix.identity(3)

    def test_defer_is_ignored_with_warning(self, caplog):
        """defer has no effect on inline viewports and is logged."""
        par = parse_preserve_aspect_ratio("defer xMidYMid meet")
        viewport = Viewport(width=200, height=200, view_box=ViewBox(0, 0, 100, 100), preserve_aspect_ratio=par)
        with caplog.at_level(logging.WARNING, logger="exactgeom.viewport"):
            ctm = build_full_ctm([viewport])
        assert Transform2D.apply(ctm, 50, 50) == Vector([100, 100])
        assert "defer" in caplog.text
