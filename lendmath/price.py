"""Decimal prices with an exponent, and their conversion to Fraction."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Optional

from .fraction import BigFraction, Fraction
from .validation import LendingError

_U256_MAX = (1 << 256) - 1


def ten_pow_u128(exponent: int) -> int:
    """Return 10**exponent for 0 <= exponent <= 36."""
    if not isinstance(exponent, int) or not 0 <= exponent <= 36:
        raise ValueError(f"no support for exponent: {exponent}")
    return 10**exponent


@dataclass(frozen=True)
class Price:
    """A price ``value * 10**-exp`` whose value fits in ``width`` bits."""

    value: int
    exp: int
    width: int = 64

    def __post_init__(self) -> None:
        if self.width not in (64, 128, 256):
            raise ValueError("width must be 64, 128 or 256")
        if not 0 <= self.value < (1 << self.width):
            raise ValueError(f"price value does not fit in {self.width} bits")
        if self.exp < 0:
            raise ValueError("exponent must be non-negative")

    def to_adjusted_exp(self, target_exp: int) -> Optional["Price"]:
        """Rescale to ``target_exp``; None if the result does not fit."""
        if target_exp == self.exp:
            return self
        if self.exp > target_exp:
            value = self.value // ten_pow_u128(self.exp - target_exp)
        else:
            value = self.value * ten_pow_u128(target_exp - self.exp)
            if value > _U256_MAX:
                return None
        if value >= (1 << self.width):
            return None
        return Price(value, target_exp, self.width)

    def reduce_exp_lossy(self, target_exp: int) -> Optional["Price"]:
        """Lower the exponent to ``target_exp`` if it is above it, dropping digits."""
        if self.exp <= target_exp:
            return self
        return self.to_adjusted_exp(target_exp)


@dataclass
class TimestampedPrice:
    """A lazily computed price together with its publication time."""

    price_load: Callable[[], Fraction]
    timestamp: int


@dataclass
class TimestampedPriceWithTwap:
    """A spot price and an optional time-weighted average price."""

    price: TimestampedPrice
    twap: Optional[TimestampedPrice] = None


def price_to_fraction(price: Price) -> Fraction:
    """Convert a decimal price to a Fraction, truncating."""
    decimal = ten_pow_u128(price.exp)
    scaled = BigFraction.from_num(price.value) / decimal
    try:
        return scaled.to_fraction()
    except LendingError as exc:
        raise OverflowError(
            "Failed to convert Price stored on BigFraction to Fraction"
        ) from exc