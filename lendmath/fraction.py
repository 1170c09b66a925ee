"""Unsigned 68.60 fixed-point numbers and a 256-bit wide variant."""

from __future__ import annotations

import fractions
import math
from dataclasses import dataclass
from decimal import Decimal
from typing import Optional, Tuple, Union

from .validation import ErrorCode, LendingError

FRAC_NBITS = 60
_ONE_BITS = 1 << FRAC_NBITS
_FRAC_MASK = _ONE_BITS - 1
_HALF_BITS = 1 << (FRAC_NBITS - 1)
_U64_MAX = (1 << 64) - 1
_U128_MAX = (1 << 128) - 1
_U256_MAX = (1 << 256) - 1
_ROUND_COMP = _ONE_BITS // (10_000 * 2)

Number = Union[int, float, Decimal, fractions.Fraction, "Fraction"]


def _check_u128(bits: int) -> int:
    if bits < 0 or bits > _U128_MAX:
        raise OverflowError("value does not fit in a Fraction")
    return bits


def _check_u256(value: int) -> int:
    if not isinstance(value, int) or value < 0 or value > _U256_MAX:
        raise OverflowError("value does not fit in 256 bits")
    return value


class Fraction:
    """Unsigned fixed-point number with 68 integer and 60 fractional bits.

    Arithmetic truncates toward zero and raises OverflowError when a result
    leaves the representable range.
    """

    __slots__ = ("_bits",)

    FRAC_NBITS = FRAC_NBITS
    ONE: "Fraction"
    ZERO: "Fraction"
    MAX: "Fraction"

    def __init__(self, value: Number = 0) -> None:
        self._bits = Fraction.from_num(value)._bits

    @classmethod
    def from_bits(cls, bits: int) -> "Fraction":
        obj = object.__new__(cls)
        obj._bits = _check_u128(int(bits))
        return obj

    @classmethod
    def from_num(cls, value: Number) -> "Fraction":
        if isinstance(value, Fraction):
            return value
        if isinstance(value, int):
            return cls.from_bits(value << FRAC_NBITS if value >= 0 else -1)
        if isinstance(value, float):
            if not math.isfinite(value):
                raise ValueError(f"cannot convert {value} to a Fraction")
            exact = fractions.Fraction(value)
        elif isinstance(value, (Decimal, fractions.Fraction)):
            exact = fractions.Fraction(value)
        else:
            raise TypeError(f"cannot convert {type(value).__name__} to a Fraction")
        return cls.from_bits(round(exact * _ONE_BITS))

    @classmethod
    def from_percent(cls, percent: Number) -> "Fraction":
        return cls.from_num(percent) / 100

    @classmethod
    def from_bps(cls, bps: Number) -> "Fraction":
        return cls.from_num(bps) / 10_000

    def to_bits(self) -> int:
        return self._bits

    def to_percent(self) -> int:
        return (self * 100).to_round()

    def to_bps(self) -> int:
        return (self * 10_000).to_round()

    def checked_pow(self, power: int) -> Optional["Fraction"]:
        return pow_fraction(self, power)

    def mul_int_ratio(self, numerator: int, denominator: int) -> "Fraction":
        return self * int(numerator) / int(denominator)

    def full_mul_int_ratio(self, numerator: int, denominator: int) -> "Fraction":
        product = self._bits * _check_u256(numerator)
        _check_u256(product)
        result = product // _check_u256(denominator)
        if result > _U128_MAX:
            raise OverflowError(
                "Denominator is not big enough, the result doesn't fit in a Fraction."
            )
        return Fraction.from_bits(result)

    def div_ceil(self, denominator: "Fraction") -> "Fraction":
        denom_bits = denominator.to_bits()
        if denom_bits == 0:
            raise ZeroDivisionError("division by a zero Fraction")
        result = ((self._bits << FRAC_NBITS) + denom_bits - 1) // denom_bits
        if result > _U128_MAX:
            raise OverflowError("Overflow in div_ceil")
        return Fraction.from_bits(result)

    def floor(self) -> "Fraction":
        return Fraction.from_bits(self._bits - (self._bits & _FRAC_MASK))

    def ceil(self) -> "Fraction":
        raised = _check_u128(self._bits + _FRAC_MASK)
        return Fraction.from_bits(raised - (raised & _FRAC_MASK))

    def round(self) -> "Fraction":
        raised = _check_u128(self._bits + _HALF_BITS)
        return Fraction.from_bits(raised - (raised & _FRAC_MASK))

    def to_floor(self) -> int:
        return self.floor()._bits >> FRAC_NBITS

    def to_ceil(self) -> int:
        return self.ceil()._bits >> FRAC_NBITS

    def to_round(self) -> int:
        return self.round()._bits >> FRAC_NBITS

    def abs_diff(self, other: "Fraction") -> "Fraction":
        return Fraction.from_bits(abs(self._bits - Fraction.from_num(other)._bits))

    def to_display(self) -> str:
        """Render with four decimal places, rounded to the nearest basis point."""
        scaled = self._bits + _ROUND_COMP
        whole = scaled >> FRAC_NBITS
        frac = scaled & _FRAC_MASK
        digits = ((frac >> 30) * 10_000) >> 30
        return f"{whole}.{digits:04d}"

    @staticmethod
    def _coerce(other: object) -> Optional["Fraction"]:
        if isinstance(other, Fraction):
            return other
        if isinstance(other, (int, float, Decimal, fractions.Fraction)):
            return Fraction.from_num(other)
        return None

    def __add__(self, other: object) -> "Fraction":
        rhs = self._coerce(other)
        if rhs is None:
            return NotImplemented
        return Fraction.from_bits(self._bits + rhs._bits)

    __radd__ = __add__

    def __sub__(self, other: object) -> "Fraction":
        rhs = self._coerce(other)
        if rhs is None:
            return NotImplemented
        return Fraction.from_bits(self._bits - rhs._bits)

    def __rsub__(self, other: object) -> "Fraction":
        lhs = self._coerce(other)
        if lhs is None:
            return NotImplemented
        return lhs - self

    def __mul__(self, other: object) -> "Fraction":
        rhs = self._coerce(other)
        if rhs is None:
            return NotImplemented
        return Fraction.from_bits((self._bits * rhs._bits) >> FRAC_NBITS)

    __rmul__ = __mul__

    def __truediv__(self, other: object) -> "Fraction":
        rhs = self._coerce(other)
        if rhs is None:
            return NotImplemented
        if rhs._bits == 0:
            raise ZeroDivisionError("division by a zero Fraction")
        return Fraction.from_bits((self._bits << FRAC_NBITS) // rhs._bits)

    def __rtruediv__(self, other: object) -> "Fraction":
        lhs = self._coerce(other)
        if lhs is None:
            return NotImplemented
        return lhs / self

    def __eq__(self, other: object) -> bool:
        rhs = self._coerce(other) if not isinstance(other, bool) else None
        if rhs is None:
            return NotImplemented
        return self._bits == rhs._bits

    def __lt__(self, other: object) -> bool:
        rhs = self._coerce(other)
        if rhs is None:
            return NotImplemented
        return self._bits < rhs._bits

    def __le__(self, other: object) -> bool:
        rhs = self._coerce(other)
        if rhs is None:
            return NotImplemented
        return self._bits <= rhs._bits

    def __gt__(self, other: object) -> bool:
        rhs = self._coerce(other)
        if rhs is None:
            return NotImplemented
        return self._bits > rhs._bits

    def __ge__(self, other: object) -> bool:
        rhs = self._coerce(other)
        if rhs is None:
            return NotImplemented
        return self._bits >= rhs._bits

    def __hash__(self) -> int:
        return hash(("Fraction", self._bits))

    def __bool__(self) -> bool:
        return self._bits != 0

    def __float__(self) -> float:
        return self._bits / _ONE_BITS

    def __repr__(self) -> str:
        return f"Fraction.from_bits({self._bits})"

    def __str__(self) -> str:
        return self.to_display()


Fraction.ONE = Fraction.from_bits(_ONE_BITS)
Fraction.ZERO = Fraction.from_bits(0)
Fraction.MAX = Fraction.from_bits(_U128_MAX)

FRACTION_ONE_SCALED = Fraction.ONE.to_bits()
EPSILON = Fraction.from_bits(1_000_000)


def pow_fraction(fraction: Fraction, power: int) -> Optional[Fraction]:
    """Raise to a non-negative integer power; None on overflow."""
    if power < 0:
        raise ValueError("power must be non-negative")
    if power == 0:
        return Fraction.ONE
    base = fraction
    acc = Fraction.ONE
    remaining = power
    try:
        while remaining > 1:
            if remaining % 2 == 1:
                acc = base * acc
            base = base * base
            remaining //= 2
        return base * acc
    except OverflowError:
        return None


def bps_to_fraction(bps: int) -> Fraction:
    """Convert whole basis points to a Fraction."""
    if bps == 10_000:
        return Fraction.ONE
    return Fraction.from_bits(_check_u128(bps << FRAC_NBITS) // 10_000)


def pct_to_fraction(percent: int) -> Fraction:
    """Convert a whole percentage to a Fraction."""
    if percent == 100:
        return Fraction.ONE
    return Fraction.from_bits(_check_u128(percent << FRAC_NBITS) // 100)


def to_sf(src: Number) -> int:
    """Scaled (raw bits) representation of a number."""
    return Fraction.from_num(src).to_bits()


@dataclass(frozen=True, order=True)
class BigFraction:
    """Fixed-point number with 60 fractional bits stored in 256 bits."""

    value: int = 0

    def __post_init__(self) -> None:
        _check_u256(self.value)

    @classmethod
    def from_fraction(cls, fraction: Number) -> "BigFraction":
        return cls(Fraction.from_num(fraction).to_bits())

    @classmethod
    def from_num(cls, num: int) -> "BigFraction":
        return cls((_check_u256(num) << FRAC_NBITS) & _U256_MAX)

    @classmethod
    def from_bits(cls, bits: Tuple[int, int, int, int]) -> "BigFraction":
        limbs = tuple(bits)
        if len(limbs) != 4 or any(not 0 <= limb <= _U64_MAX for limb in limbs):
            raise ValueError("expected four 64-bit limbs")
        return cls(sum(limb << (64 * i) for i, limb in enumerate(limbs)))

    def to_bits(self) -> Tuple[int, int, int, int]:
        return tuple((self.value >> (64 * i)) & _U64_MAX for i in range(4))

    def to_fraction(self) -> Fraction:
        if self.value > _U128_MAX:
            raise LendingError(ErrorCode.INTEGER_OVERFLOW)
        return Fraction.from_bits(self.value)

    def __add__(self, other: object) -> "BigFraction":
        if not isinstance(other, BigFraction):
            return NotImplemented
        return BigFraction(self.value + other.value)

    def __sub__(self, other: object) -> "BigFraction":
        if not isinstance(other, BigFraction):
            return NotImplemented
        return BigFraction(self.value - other.value)

    def __mul__(self, other: object) -> "BigFraction":
        if isinstance(other, BigFraction):
            return BigFraction(_check_u256(self.value * other.value) >> FRAC_NBITS)
        if isinstance(other, int):
            return BigFraction(self.value * _check_u256(other))
        return NotImplemented

    def __rmul__(self, other: object) -> "BigFraction":
        if isinstance(other, int):
            return self * other
        return NotImplemented

    def __truediv__(self, other: object) -> "BigFraction":
        if isinstance(other, BigFraction):
            divisor = other.value
        elif isinstance(other, Fraction):
            divisor = other.to_bits()
        elif isinstance(other, int):
            return BigFraction(self.value // _check_u256(other))
        else:
            return NotImplemented
        return BigFraction(((self.value << FRAC_NBITS) & _U256_MAX) // divisor)