"""Test module for exactgeom.numeric

The tests are run using pytest.
These tests ensure that the Scalar type and the precision context
remain working correctly after changes and refactoring.
"""

import threading
from decimal import Decimal

import pytest

from exactgeom.common import DivisionByZero, DomainError, ParseError
from exactgeom.consts import DEFAULT_PRECISION
from exactgeom.numeric import (
    ONE,
    Scalar,
    default_tolerance,
    epsilon,
    get_precision,
    precision,
    set_precision,
    to_scalar,
)

TOL = Scalar.from_text("1e-45")


def close(a, b, tol=TOL) -> bool:
    """Absolute difference within tolerance."""
    return abs(to_scalar(a) - to_scalar(b)) <= tol


@pytest.fixture(name="restore_precision")
def fixture_restore_precision():
    """Reset the global precision after tests that change it."""
    yield
    set_precision(DEFAULT_PRECISION)


###############################################################################
# Construction
###############################################################################


class TestScalarConstruction:
    """Test the tagged constructors and boundary coercion."""

    def test_from_text_is_exact(self):
        """Decimal text keeps 0.1 + 0.2 == 0.3 exactly."""
        total = Scalar.from_text("0.1") + Scalar.from_text("0.2")
        assert total == Scalar.from_text("0.3")

    def test_from_text_exponent_and_whitespace(self):
        """Exponent notation and surrounding whitespace are accepted."""
        assert Scalar.from_text(" -3e-4 ") == Scalar.from_text("-0.0003")

    @pytest.mark.parametrize("text", ["abc", "", "1.2.3", "nan", "Infinity"])
    def test_from_text_rejects_malformed(self, text):
        """Malformed or non-finite text raises ParseError."""
        with pytest.raises(ParseError):
            Scalar.from_text(text)

    def test_from_float_goes_through_repr(self):
        """Floats convert through their shortest repr (lossy but predictable)."""
        assert Scalar.from_float(0.1) == Scalar.from_text("0.1")

    def test_from_float_rejects_non_finite(self):
        """NaN and infinity cannot become Scalars."""
        with pytest.raises(DomainError):
            Scalar.from_float(float("inf"))
        with pytest.raises(DomainError):
            Scalar.from_float(float("nan"))

    def test_from_decimal_and_int(self):
        """Decimal and int inputs are exact."""
        assert Scalar.from_decimal(Decimal("2.5")) == Scalar.from_text("2.5")
        assert Scalar.from_int(7) == 7

    def test_to_scalar_dispatch(self):
        """to_scalar dispatches on type and rejects bool."""
        assert to_scalar("1.5") == Scalar.from_text("1.5")
        assert to_scalar(3) == 3
        assert to_scalar(Decimal("0.25")) == Scalar.from_text("0.25")
        assert to_scalar(0.5) == Scalar.from_text("0.5")
        with pytest.raises(TypeError):
            to_scalar(True)
        with pytest.raises(TypeError):
            to_scalar([1])

    def test_constructor_requires_decimal(self):
        """The raw constructor only wraps Decimals."""
        with pytest.raises(TypeError):
            Scalar(1.0)


###############################################################################
# Arithmetic
###############################################################################


class TestScalarArithmetic:
    """Test arithmetic, comparison and error translation."""

    def test_basic_operations_with_ints(self):
        """Scalars combine with ints on both sides."""
        x = Scalar.from_text("2.5")
        assert x + 1 == Scalar.from_text("3.5")
        assert 1 - x == Scalar.from_text("-1.5")
        assert 2 * x == 5
        assert 5 / x == 2
        assert -x == Scalar.from_text("-2.5")
        assert abs(-x) == x

    def test_float_operand_rejected(self):
        """Arithmetic with floats must be explicit."""
        with pytest.raises(TypeError):
            _ = Scalar.from_int(1) + 0.5

    def test_division_by_zero(self):
        """Division by exact zero raises DivisionByZero, also a ZeroDivisionError."""
        with pytest.raises(DivisionByZero):
            _ = ONE / 0
        with pytest.raises(ZeroDivisionError):
            _ = 1 / Scalar.from_int(0)

    def test_sqrt(self):
        """Square roots are precise and reject negatives."""
        root = Scalar.from_int(2).sqrt()
        assert close(root * root, 2)
        with pytest.raises(DomainError):
            Scalar.from_int(-1).sqrt()

    def test_power(self):
        """Integer and fractional powers."""
        assert Scalar.from_int(2) ** 10 == 1024
        assert Scalar.from_int(2) ** -1 == Scalar.from_text("0.5")
        assert close(Scalar.from_int(4) ** Scalar.from_text("0.5"), 2)
        with pytest.raises(DomainError):
            _ = Scalar.from_int(-8) ** Scalar.from_text("0.5")
        with pytest.raises(DivisionByZero):
            _ = Scalar.from_int(0) ** -1

    def test_comparisons_and_hash(self):
        """Comparisons are exact and equal values hash equally."""
        a = Scalar.from_text("1.50")
        b = Scalar.from_text("1.5")
        assert a == b
        assert hash(a) == hash(b)
        assert a < 2 and a <= b and a > 1 and a >= b
        assert Scalar.min(3, "1.5", 2) == b
        assert Scalar.max(3, "1.5", 2) == 3

    def test_sign_helpers(self):
        """is_zero, is_negative and sign."""
        assert Scalar.from_int(0).is_zero()
        assert Scalar.from_text("-0.1").is_negative()
        assert Scalar.from_text("-0.1").sign() == -1
        assert Scalar.from_int(0).sign() == 0


###############################################################################
# Transcendental functions
###############################################################################


class TestScalarTranscendental:
    """Test the series-based trigonometry."""

    def test_pi_digits(self):
        """pi is correct to the working precision."""
        assert str(Scalar.pi()).startswith("3.14159265358979323846264338327950288419716939937")

    def test_sin_cos(self):
        """Known values of sin and cos."""
        pi = Scalar.pi()
        assert close((pi / 6).sin(), Scalar.from_text("0.5"))
        assert close(pi.cos(), -1)
        assert close((pi / 2).cos(), 0)

    def test_large_argument_reduction(self):
        """Arguments far outside [-pi, pi] are reduced exactly enough."""
        pi = Scalar.pi()
        assert close((pi * 1001 + pi / 2).sin(), -1, Scalar.from_text("1e-40"))

    def test_tan_and_atan(self):
        """tan(pi/4) == 1 and 4 * atan(1) == pi."""
        pi = Scalar.pi()
        assert close((pi / 4).tan(), 1)
        assert close(ONE.atan() * 4, pi)
        assert close(Scalar.from_int(1000).atan() + Scalar.from_text("0.001").atan(), pi / 2)

    def test_atan2_quadrants(self):
        """atan2 covers all quadrants and rejects the origin."""
        pi = Scalar.pi()
        assert close(Scalar.atan2(1, -1), pi * 3 / 4)
        assert close(Scalar.atan2(-1, -1), -pi * 3 / 4)
        assert close(Scalar.atan2(1, 0), pi / 2)
        assert close(Scalar.atan2(0, -1), pi)
        with pytest.raises(DomainError):
            Scalar.atan2(0, 0)

    def test_acos(self):
        """acos on the boundary and outside its domain."""
        assert close(Scalar.from_int(-1).acos(), Scalar.pi())
        assert close(ONE.acos(), 0)
        with pytest.raises(DomainError):
            Scalar.from_int(2).acos()

    def test_degrees_radians(self):
        """180 degrees are pi radians and back."""
        assert close(Scalar.from_int(180).radians(), Scalar.pi())
        assert close(Scalar.pi().degrees(), 180, Scalar.from_text("1e-44"))


###############################################################################
# Output
###############################################################################


class TestScalarOutput:
    """Test textual and lossy float output."""

    def test_to_text(self):
        """Exact text without exponent or trailing zeros."""
        assert str(Scalar.from_text("1.500")) == "1.5"
        assert str(Scalar.from_int(100)) == "100"
        assert str(Scalar.from_text("-0")) == "0"
        assert repr(Scalar.from_text("2.25")) == "Scalar('2.25')"

    def test_to_fixed(self):
        """Fixed decimals round half up and never print negative zero."""
        assert Scalar.from_text("2.5").to_fixed(0) == "3"
        assert Scalar.from_text("1.23456789").to_fixed(3) == "1.235"
        assert Scalar.from_text("-0.0000001").to_fixed(3) == "0.000"

    def test_float_conversion(self):
        """float() is the lossy display conversion."""
        assert float(Scalar.from_text("0.25")) == 0.25


###############################################################################
# Precision context
###############################################################################


class TestPrecision:
    """Test the scoped significant-digit budget."""

    def test_default_precision(self):
        """The default budget and its derived tolerances."""
        assert get_precision() == DEFAULT_PRECISION
        assert epsilon() == Scalar.from_text("1e-45")
        assert default_tolerance() == Scalar.from_text("1e-25")

    def test_scoped_precision_restores(self):
        """precision() applies inside the block only."""
        with precision(10):
            assert get_precision() == 10
            assert str(ONE / 3) == "0.3333333333"
        assert get_precision() == DEFAULT_PRECISION
        assert len(str(ONE / 3)) == 2 + DEFAULT_PRECISION

    def test_scoped_precision_restores_on_error(self):
        """The previous budget is restored when the block raises."""
        with pytest.raises(RuntimeError):
            with precision(12):
                raise RuntimeError("boom")
        assert get_precision() == DEFAULT_PRECISION

    def test_precision_is_thread_local(self):
        """A scoped override does not leak into other threads."""
        seen = []
        with precision(12):
            worker = threading.Thread(target=lambda: seen.append(get_precision()))
            worker.start()
            worker.join()
        assert seen == [DEFAULT_PRECISION]

    @pytest.mark.usefixtures("restore_precision")
    def test_set_precision(self):
        """set_precision changes the current budget."""
        set_precision(30)
        assert get_precision() == 30
        assert len(str(ONE / 3)) == 32

    def test_invalid_precision(self):
        """Digits must be a positive integer."""
        with pytest.raises(DomainError):
            with precision(0):
                pass
