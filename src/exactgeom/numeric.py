"""Arbitrary-precision scalar arithmetic with a scoped significant-digit budget.

Every Scalar operation is evaluated with an explicit ``decimal.Context`` looked up
from a context variable. The budget is therefore local to the current thread (and
asyncio task); ``precision()`` overrides it for a block and restores it on exit.
"""

from __future__ import annotations

import decimal
import math
import numbers
from contextlib import contextmanager
from contextvars import ContextVar
from decimal import Decimal
from functools import lru_cache
from typing import Iterator, Optional, Union

from exactgeom.common import DivisionByZero, DomainError, ParseError
from exactgeom.consts import DEFAULT_PRECISION, GUARD_DIGITS

ScalarLike = Union["Scalar", Decimal, int, str, float]


###############################################################################
# Precision context
###############################################################################


def _make_context(digits: int) -> decimal.Context:
    if not isinstance(digits, int) or isinstance(digits, bool) or digits < 1:
        raise DomainError(f"precision must be a positive integer, got {digits!r}")
    return decimal.Context(
        prec=digits,
        rounding=decimal.ROUND_HALF_EVEN,
        Emax=decimal.MAX_EMAX,
        Emin=decimal.MIN_EMIN,
        traps=[decimal.InvalidOperation, decimal.DivisionByZero, decimal.Overflow],
    )


_default_context: decimal.Context = _make_context(DEFAULT_PRECISION)
_active_context: ContextVar[Optional[decimal.Context]] = ContextVar("exactgeom_precision", default=None)


def _ctx() -> decimal.Context:
    ctx = _active_context.get()
    return ctx if ctx is not None else _default_context


def get_precision() -> int:
    """Return the number of significant digits currently in effect."""
    return _ctx().prec


def set_precision(digits: int) -> None:
    """Set the significant-digit budget.

    Applies to the current thread/task and becomes the default for threads
    started afterwards. Prefer ``precision()`` for temporary changes.

    Args:
        digits: Number of significant digits (>= 1).

    Raises:
        DomainError: If digits is not a positive integer.
    """
    global _default_context  # pylint: disable=global-statement
    ctx = _make_context(digits)
    _default_context = ctx
    _active_context.set(ctx)


@contextmanager
def precision(digits: int) -> Iterator[int]:
    """Run a block with a different significant-digit budget.

    The previous budget is restored on exit, also when the block raises.

    Example:
        with precision(120):
            length = ArcLength.length(curve)
    """
    token = _active_context.set(_make_context(digits))
    try:
        yield digits
    finally:
        _active_context.reset(token)


def epsilon() -> Scalar:
    """Smallest difference considered meaningful at the active precision."""
    return Scalar(Decimal(1).scaleb(-(get_precision() - 5)))


def default_tolerance() -> Scalar:
    """Default convergence tolerance for iterative methods: 10^-(precision // 2)."""
    return Scalar(Decimal(1).scaleb(-(get_precision() // 2)))


###############################################################################
# Series helpers (evaluated with guard digits)
###############################################################################


def _work_context() -> decimal.Context:
    return _make_context(_ctx().prec + GUARD_DIGITS)


@lru_cache(maxsize=16)
def _pi(digits: int) -> Decimal:
    with decimal.localcontext(_make_context(digits + 2)):
        three = Decimal(3)
        lasts, t, s, n, na, d, da = 0, three, Decimal(3), 1, 0, 0, 24
        while s != lasts:
            lasts = s
            n, na = n + na, na + 8
            d, da = d + da, da + 32
            t = (t * n) / d
            s += t
    return s


def _reduce_angle(x: Decimal, digits: int) -> Decimal:
    """Reduce x to [-pi, pi]."""
    pi = _pi(digits)
    two_pi = 2 * pi
    if -pi <= x <= pi:
        return x
    k = (x / two_pi).to_integral_value(rounding=decimal.ROUND_HALF_EVEN)
    return x - k * two_pi


def _sin(x: Decimal) -> Decimal:
    i, lasts, s, fact, num, sign = 1, 0, x, 1, x, 1
    while s != lasts:
        lasts = s
        i += 2
        fact *= i * (i - 1)
        num *= x * x
        sign *= -1
        s += num / fact * sign
    return s


def _cos(x: Decimal) -> Decimal:
    i, lasts, s, fact, num, sign = 0, 0, Decimal(1), 1, Decimal(1), 1
    while s != lasts:
        lasts = s
        i += 2
        fact *= i * (i - 1)
        num *= x * x
        sign *= -1
        s += num / fact * sign
    return s


def _atan(x: Decimal, digits: int) -> Decimal:
    if x.is_zero():
        return Decimal(0)
    if abs(x) > 1:
        half_pi = _pi(digits) / 2
        return (half_pi if x > 0 else -half_pi) - _atan(1 / x, digits)
    # Halve the argument until the series converges quickly
    halvings = 0
    while abs(x) > Decimal("0.1"):
        x = x / (1 + (1 + x * x).sqrt())
        halvings += 1
    x2 = x * x
    term, s, lasts, k = x, x, 0, 1
    while s != lasts:
        lasts = s
        term *= -x2
        k += 2
        s += term / k
    return s * (2**halvings)


###############################################################################
# Scalar
###############################################################################


class Scalar:
    """Immutable arbitrary-precision decimal value.

    Create instances with the tagged constructors:

    - ``Scalar.from_text("0.1")`` exact decimal text, the constructor to prefer,
    - ``Scalar.from_int(3)`` exact integer,
    - ``Scalar.from_float(0.1)`` LOSSY, the float already carries binary rounding,
    - ``Scalar.from_decimal(Decimal("0.1"))``.

    Arithmetic accepts other Scalars, ints and Decimals. Floats are rejected in
    arithmetic; convert them explicitly with ``from_float``.
    """

    __slots__ = ("_value",)

    def __init__(self, value: Decimal):
        if not isinstance(value, Decimal):
            raise TypeError(f"Scalar wraps a Decimal, got {type(value).__name__}; use a from_* constructor")
        if not value.is_finite():
            raise DomainError(f"Scalar must be finite, got {value}")
        self._value = value

    # ------------------------------------------------------------------ constructors
    @classmethod
    def from_text(cls, text: str) -> Scalar:
        """Exact decimal text (e.g. "12.5", "-3e-4"), rounded to the active budget."""
        try:
            value = _ctx().create_decimal(text.strip())
        except (decimal.InvalidOperation, AttributeError) as exc:
            raise ParseError(f"Invalid number text: {text!r}") from exc
        if not value.is_finite():
            raise ParseError(f"Number text must be finite: {text!r}")
        return cls(value)

    @classmethod
    def from_int(cls, value: int) -> Scalar:
        """Exact integer."""
        return cls(_ctx().create_decimal(int(value)))

    @classmethod
    def from_float(cls, value: float) -> Scalar:
        """Native float. LOSSY: converted through its shortest repr."""
        if not math.isfinite(value):
            raise DomainError(f"Cannot convert non-finite float {value!r}")
        return cls(_ctx().create_decimal(repr(float(value))))

    @classmethod
    def from_decimal(cls, value: Decimal) -> Scalar:
        """Decimal value, rounded to the active budget."""
        return cls(_ctx().create_decimal(value))

    @classmethod
    def pi(cls) -> Scalar:
        """The constant pi at the active precision."""
        ctx = _ctx()
        return cls(ctx.plus(_pi(ctx.prec + GUARD_DIGITS)))

    @staticmethod
    def min(*values: ScalarLike) -> Scalar:
        """Smallest of the given values."""
        return min(to_scalar(v) for v in values)

    @staticmethod
    def max(*values: ScalarLike) -> Scalar:
        """Largest of the given values."""
        return max(to_scalar(v) for v in values)

    # ------------------------------------------------------------------ accessors
    @property
    def value(self) -> Decimal:
        """The wrapped Decimal."""
        return self._value

    def is_zero(self) -> bool:
        return self._value.is_zero()

    def is_negative(self) -> bool:
        return self._value < 0

    def is_integer(self) -> bool:
        return self._value == self._value.to_integral_value()

    def sign(self) -> int:
        if self._value.is_zero():
            return 0
        return -1 if self._value < 0 else 1

    # ------------------------------------------------------------------ output
    def to_text(self) -> str:
        """Exact textual form without exponent."""
        if self._value.is_zero():
            return "0"
        return format(self._value.normalize(_make_context(max(_ctx().prec, len(self._value.as_tuple().digits)))), "f")

    def to_float(self) -> float:
        """Lossy float, for display only."""
        return float(self._value)

    def to_fixed(self, places: int) -> str:
        """Text rounded (half-up) to a fixed number of decimal places."""
        exponent = Decimal(1).scaleb(-places)
        digits = max(_ctx().prec, self._value.adjusted() + places + 2)
        quantized = self._value.quantize(exponent, rounding=decimal.ROUND_HALF_UP, context=_make_context(digits))
        if quantized.is_zero():
            quantized = abs(quantized)
        return format(quantized, "f")

    def __str__(self) -> str:
        return self.to_text()

    def __repr__(self) -> str:
        return f"Scalar('{self.to_text()}')"

    def __float__(self) -> float:
        return self.to_float()

    def __bool__(self) -> bool:
        return not self._value.is_zero()

    def __hash__(self) -> int:
        return hash(self._value)

    # ------------------------------------------------------------------ arithmetic
    @staticmethod
    def _operand(other) -> Optional[Decimal]:
        if isinstance(other, Scalar):
            return other._value
        if isinstance(other, bool):
            return None
        if isinstance(other, (int, Decimal)):
            return Decimal(other)
        return None

    def __add__(self, other) -> Scalar:
        b = self._operand(other)
        if b is None:
            return NotImplemented
        return Scalar(_ctx().add(self._value, b))

    __radd__ = __add__

    def __sub__(self, other) -> Scalar:
        b = self._operand(other)
        if b is None:
            return NotImplemented
        return Scalar(_ctx().subtract(self._value, b))

    def __rsub__(self, other) -> Scalar:
        b = self._operand(other)
        if b is None:
            return NotImplemented
        return Scalar(_ctx().subtract(b, self._value))

    def __mul__(self, other) -> Scalar:
        b = self._operand(other)
        if b is None:
            return NotImplemented
        return Scalar(_ctx().multiply(self._value, b))

    __rmul__ = __mul__

    def __truediv__(self, other) -> Scalar:
        b = self._operand(other)
        if b is None:
            return NotImplemented
        if b.is_zero():
            raise DivisionByZero(f"Division of {self} by zero")
        return Scalar(_ctx().divide(self._value, b))

    def __rtruediv__(self, other) -> Scalar:
        b = self._operand(other)
        if b is None:
            return NotImplemented
        if self._value.is_zero():
            raise DivisionByZero(f"Division of {b} by zero")
        return Scalar(_ctx().divide(b, self._value))

    def __pow__(self, exponent) -> Scalar:
        e = self._operand(exponent)
        if e is None:
            return NotImplemented
        ctx = _ctx()
        if e == e.to_integral_value():
            if self._value.is_zero() and e < 0:
                raise DivisionByZero("Zero raised to a negative power")
            if self._value.is_zero() and e.is_zero():
                return ONE
            return Scalar(ctx.power(self._value, int(e)))
        if self._value < 0:
            raise DomainError(f"Fractional power {e} of negative value {self}")
        if self._value.is_zero():
            if e < 0:
                raise DivisionByZero("Zero raised to a negative power")
            return ZERO
        return Scalar(ctx.power(self._value, e))

    def __neg__(self) -> Scalar:
        return Scalar(_ctx().minus(self._value))

    def __pos__(self) -> Scalar:
        return Scalar(_ctx().plus(self._value))

    def __abs__(self) -> Scalar:
        return Scalar(_ctx().abs(self._value))

    # ------------------------------------------------------------------ comparison
    def __eq__(self, other) -> bool:
        b = self._operand(other)
        if b is None:
            return NotImplemented
        return self._value == b

    def __lt__(self, other) -> bool:
        b = self._operand(other)
        if b is None:
            return NotImplemented
        return self._value < b

    def __le__(self, other) -> bool:
        b = self._operand(other)
        if b is None:
            return NotImplemented
        return self._value <= b

    def __gt__(self, other) -> bool:
        b = self._operand(other)
        if b is None:
            return NotImplemented
        return self._value > b

    def __ge__(self, other) -> bool:
        b = self._operand(other)
        if b is None:
            return NotImplemented
        return self._value >= b

    # ------------------------------------------------------------------ functions
    def sqrt(self) -> Scalar:
        """Square root; negative input raises DomainError."""
        if self._value < 0:
            raise DomainError(f"Square root of negative value {self}")
        return Scalar(_ctx().sqrt(self._value))

    def sin(self) -> Scalar:
        work = _work_context()
        with decimal.localcontext(work):
            result = _sin(_reduce_angle(self._value, work.prec))
        return Scalar(_ctx().plus(result))

    def cos(self) -> Scalar:
        work = _work_context()
        with decimal.localcontext(work):
            result = _cos(_reduce_angle(self._value, work.prec))
        return Scalar(_ctx().plus(result))

    def tan(self) -> Scalar:
        work = _work_context()
        with decimal.localcontext(work):
            x = _reduce_angle(self._value, work.prec)
            cos_x = _cos(x)
            if cos_x.is_zero():
                raise DomainError(f"tan is undefined at {self}")
            result = _sin(x) / cos_x
        return Scalar(_ctx().plus(result))

    def atan(self) -> Scalar:
        work = _work_context()
        with decimal.localcontext(work):
            result = _atan(self._value, work.prec)
        return Scalar(_ctx().plus(result))

    @staticmethod
    def atan2(y: Scalar, x: Scalar) -> Scalar:
        """Angle of the point (x, y) in (-pi, pi]; atan2(0, 0) raises DomainError."""
        yv, xv = to_scalar(y).value, to_scalar(x).value
        if yv.is_zero() and xv.is_zero():
            raise DomainError("atan2(0, 0) is undefined")
        work = _work_context()
        with decimal.localcontext(work):
            if xv.is_zero():
                half_pi = _pi(work.prec) / 2
                result = half_pi if yv > 0 else -half_pi
            else:
                result = _atan(yv / xv, work.prec)
                if xv < 0:
                    result = result + _pi(work.prec) if yv >= 0 else result - _pi(work.prec)
        return Scalar(_ctx().plus(result))

    def acos(self) -> Scalar:
        """Arc cosine in [0, pi]; |x| > 1 raises DomainError."""
        if abs(self._value) > 1:
            raise DomainError(f"acos argument {self} outside [-1, 1]")
        return Scalar.atan2((ONE - self * self).sqrt(), self)

    def radians(self) -> Scalar:
        """Interpret self as degrees and convert to radians."""
        return self * Scalar.pi() / 180

    def degrees(self) -> Scalar:
        """Interpret self as radians and convert to degrees."""
        return self * 180 / Scalar.pi()


ZERO = Scalar(Decimal(0))
ONE = Scalar(Decimal(1))


def to_scalar(value: ScalarLike) -> Scalar:
    """Coerce a boundary value to a Scalar.

    Dispatches explicitly: Scalar as is, int exact, Decimal exact, str exact
    (ParseError if malformed), float LOSSY. Anything else raises TypeError.
    """
    if isinstance(value, Scalar):
        return value
    if isinstance(value, bool):
        raise TypeError("bool is not a numeric coordinate")
    if isinstance(value, numbers.Integral):
        return Scalar.from_int(int(value))
    if isinstance(value, Decimal):
        return Scalar.from_decimal(value)
    if isinstance(value, str):
        return Scalar.from_text(value)
    if isinstance(value, float):
        return Scalar.from_float(value)
    if isinstance(value, numbers.Real):
        return Scalar.from_float(float(value))
    raise TypeError(f"Cannot convert {type(value).__name__} to Scalar")
