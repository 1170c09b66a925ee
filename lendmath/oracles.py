"""Price extraction and confidence checks for Pyth, Switchboard and Scope feeds."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional, Sequence, Tuple

from .consts import (
    DEFAULT_PUBKEY,
    MAX_PRICE_DECIMALS_U256,
    NULL_PUBKEY,
    TARGET_PRICE_DECIMALS,
)
from .fraction import Fraction
from .price import Price, TimestampedPrice, TimestampedPriceWithTwap, price_to_fraction
from .validation import ErrorCode, LendingError

logger = logging.getLogger(__name__)

MAX_CONFIDENCE_PERCENTAGE = 2
CONFIDENCE_FACTOR = 100 // MAX_CONFIDENCE_PERCENTAGE
DEFAULT_MS_PER_SLOT = 400
SCOPE_CHAIN_END = 0xFFFF

_U64_MAX = (1 << 64) - 1
_U128_MAX = (1 << 128) - 1
_U256_MAX = (1 << 256) - 1

ScopeChain = Tuple[int, int, int, int]
DatedPrice = Tuple[Price, int]


@dataclass(frozen=True)
class ScopeConfiguration:
    """Where to find a token's price in a Scope price account."""

    price_feed: bytes = DEFAULT_PUBKEY
    price_chain: ScopeChain = (0, 0, 0, 0)
    twap_chain: ScopeChain = (0, 0, 0, 0)

    def __post_init__(self) -> None:
        for name in ("price_chain", "twap_chain"):
            chain = tuple(getattr(self, name))
            if len(chain) != 4 or any(not 0 <= pid <= SCOPE_CHAIN_END for pid in chain):
                raise ValueError(f"{name} must hold four 16-bit price ids")
            object.__setattr__(self, name, chain)

    def is_enabled(self) -> bool:
        return self.price_feed not in (DEFAULT_PUBKEY, NULL_PUBKEY)

    def has_twap(self) -> bool:
        return self.twap_chain != (0, 0, 0, 0) and self.twap_chain[0] != SCOPE_CHAIN_END


def _checked_u64(value: int, what: str) -> int:
    if not 0 <= value <= _U64_MAX:
        raise ValueError(f"{what} does not fit in an unsigned 64-bit integer: {value}")
    return value


def validate_pyth_confidence(price: int, conf: int, oracle_confidence_factor: int) -> None:
    """Raise unless the confidence interval is narrow enough relative to the price."""
    price = _checked_u64(price, "pyth price")
    if price == 0:
        raise LendingError(ErrorCode.PRICE_IS_ZERO)
    scaled_conf = conf * oracle_confidence_factor
    if scaled_conf > _U64_MAX:
        raise OverflowError("confidence scaling overflowed")
    if scaled_conf > price:
        logger.warning(
            "Confidence interval check failed on pyth account %s %s %s",
            conf,
            price,
            oracle_confidence_factor,
        )
        raise LendingError(ErrorCode.PRICE_CONFIDENCE_TOO_WIDE)


def _pyth_timestamped(price: int, exponent: int, publish_time: int) -> TimestampedPrice:
    decimal_price = Price(_checked_u64(price, "pyth price"), abs(exponent))
    timestamp = _checked_u64(publish_time, "publish time")
    return TimestampedPrice(lambda: price_to_fraction(decimal_price), timestamp)


def pyth_price_and_twap(
    price: int,
    conf: int,
    ema_price: int,
    ema_conf: int,
    exponent: int,
    publish_time: int,
) -> TimestampedPriceWithTwap:
    """Build a spot price and its EMA twap from a Pyth price message."""
    validate_pyth_confidence(price, conf, CONFIDENCE_FACTOR)
    validate_pyth_confidence(ema_price, ema_conf, CONFIDENCE_FACTOR)
    return TimestampedPriceWithTwap(
        price=_pyth_timestamped(price, exponent, publish_time),
        twap=_pyth_timestamped(ema_price, exponent, publish_time),
    )


def validate_switchboard_confidence(
    price_mantissa: int,
    price_scale: int,
    stdev_mantissa: int,
    stdev_scale: int,
    oracle_confidence_factor: int,
) -> None:
    """Raise unless the scaled standard deviation stays below the price."""
    scaling_factor = 10 ** abs(price_scale - stdev_scale)
    if scaling_factor > _U128_MAX:
        raise LendingError(ErrorCode.MATH_OVERFLOW)
    scaled = stdev_mantissa * oracle_confidence_factor
    if scaled > _U128_MAX:
        raise LendingError(ErrorCode.MATH_OVERFLOW)
    if price_scale >= stdev_scale:
        scaled *= scaling_factor
        if scaled > _U128_MAX:
            raise LendingError(ErrorCode.MATH_OVERFLOW)
    else:
        scaled //= scaling_factor
    if scaled >= price_mantissa:
        logger.warning(
            "Validation of confidence interval for switchboard feed failed. "
            "Price mantissa: %s, Price scale: %s, stdev mantissa: %s, stdev scale: %s",
            price_mantissa,
            price_scale,
            stdev_mantissa,
            stdev_scale,
        )
        raise LendingError(ErrorCode.PRICE_CONFIDENCE_TOO_WIDE)


def switchboard_price(
    mantissa: int,
    scale: int,
    stdev_mantissa: int,
    stdev_scale: int,
    last_updated_slot: int,
    clock_slot: int,
    unix_timestamp: int,
) -> TimestampedPrice:
    """Build a timestamped price from a Switchboard pull-feed result."""
    if mantissa <= 0:
        logger.warning("Switchboard oracle price is zero or negative which is not allowed")
        raise LendingError(ErrorCode.PRICE_IS_ZERO)
    if stdev_mantissa < 0:
        raise LendingError(
            ErrorCode.SWITCHBOARD_V2_ERROR, "standard deviation must not be negative"
        )
    elapsed_slots = max(clock_slot - last_updated_slot, 0)
    now = unix_timestamp if unix_timestamp >= 0 else 0
    timestamp = max(now - elapsed_slots * DEFAULT_MS_PER_SLOT // 1000, 0)

    def load() -> Fraction:
        validate_switchboard_confidence(
            mantissa, scale, stdev_mantissa, stdev_scale, CONFIDENCE_FACTOR
        )
        return price_to_fraction(Price(mantissa, scale, width=128))

    return TimestampedPrice(load, timestamp)


def _base_price(prices: Sequence[DatedPrice], price_id: int) -> Optional[DatedPrice]:
    if 0 <= price_id < len(prices):
        return prices[price_id]
    return None


def scope_price_usd(prices: Sequence[DatedPrice], chain: Sequence[int]) -> TimestampedPrice:
    """Resolve a conversion chain of Scope price ids into a single USD price."""
    chain = tuple(chain)
    if chain == (0, 0, 0, 0):
        logger.warning("Scope chain is not initialized properly")
        raise LendingError(ErrorCode.PRICE_NOT_VALID)

    resolved = []
    for price_id in chain:
        entry = _base_price(prices, price_id)
        if entry is None:
            break
        resolved.append(entry)

    if not resolved:
        logger.warning("Scope chain is empty")
        raise LendingError(ErrorCode.NO_PRICE_FOUND)

    if len(resolved) == 1:
        single, timestamp = resolved[0]
        return TimestampedPrice(lambda: price_to_fraction(single), timestamp)

    oldest_timestamp = min(timestamp for _, timestamp in resolved)
    links = [price for price, _ in resolved]

    def load() -> Fraction:
        acc = Price(1, 0, width=256)
        for link in links:
            nxt = Price(link.value, link.exp, width=256)
            if acc.exp + nxt.exp > MAX_PRICE_DECIMALS_U256:
                reduced_acc = acc.reduce_exp_lossy(TARGET_PRICE_DECIMALS)
                reduced_nxt = nxt.reduce_exp_lossy(TARGET_PRICE_DECIMALS)
                if reduced_acc is None or reduced_nxt is None:
                    raise LendingError(ErrorCode.MATH_OVERFLOW)
                acc, nxt = reduced_acc, reduced_nxt
            value = acc.value * nxt.value
            if value > _U256_MAX:
                raise LendingError(ErrorCode.MATH_OVERFLOW)
            acc = Price(value, acc.exp + nxt.exp, width=256)
        return price_to_fraction(acc)

    return TimestampedPrice(load, oldest_timestamp)


def scope_price_and_twap(
    prices: Sequence[DatedPrice], configuration: ScopeConfiguration
) -> TimestampedPriceWithTwap:
    """Resolve the price and, when configured, the twap from Scope prices."""
    if configuration.price_feed == NULL_PUBKEY:
        raise LendingError(ErrorCode.INVALID_ORACLE_CONFIG)
    price = scope_price_usd(prices, configuration.price_chain)
    twap: Optional[TimestampedPrice] = None
    if configuration.has_twap():
        try:
            twap = scope_price_usd(prices, configuration.twap_chain)
        except LendingError as exc:
            logger.warning("No valid twap found for scope price, error: %s", exc)
    return TimestampedPriceWithTwap(price=price, twap=twap)