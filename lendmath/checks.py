"""Validation of oracle prices: age, twap divergence and heuristic bounds."""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass, field
from typing import Iterable, Optional

from .consts import FULL_BPS
from .fraction import Fraction
from .price import Price, TimestampedPriceWithTwap, price_to_fraction
from .validation import ErrorCode, LendingError

logger = logging.getLogger(__name__)


class PriceStatusFlags(enum.IntFlag):
    """Which validations a price has passed."""

    PRICE_LOADED = 0b0000_0001
    PRICE_AGE_CHECKED = 0b0000_0010
    TWAP_CHECKED = 0b0000_0100
    TWAP_AGE_CHECKED = 0b0000_1000
    HEURISTIC_CHECKED = 0b0001_0000
    PRICE_USAGE_ALLOWED = 0b0010_0000

    ALL_CHECKS = 0b0011_1111
    LIQUIDATION_CHECKS = PRICE_LOADED | PRICE_AGE_CHECKED | PRICE_USAGE_ALLOWED


@dataclass(frozen=True)
class PriceHeuristic:
    """Sanity bounds ``lower`` and ``upper``, scaled by ``10**-exp``; 0 disables a bound."""

    lower: int = 0
    upper: int = 0
    exp: int = 0


@dataclass(frozen=True)
class PriceConfig:
    """Per-token settings that govern price validation."""

    symbol: str = ""
    max_age_price_seconds: int = 0
    max_age_twap_seconds: int = 0
    max_twap_divergence_bps: int = 0
    heuristic: PriceHeuristic = field(default_factory=PriceHeuristic)
    block_price_usage: int = 0

    @property
    def is_twap_enabled(self) -> bool:
        return self.max_twap_divergence_bps > 0


@dataclass
class GetPriceResult:
    """A loaded price with the set of checks it passed."""

    price: Fraction
    timestamp: int
    status: PriceStatusFlags


def check_price_age(price_timestamp: int, max_age_seconds: int, current_timestamp: int) -> None:
    """Raise PriceTooOld if the price is older than allowed."""
    age_seconds = max(current_timestamp - price_timestamp, 0)
    if age_seconds > max_age_seconds:
        logger.info("Price is too old age=%s max_age=%s", age_seconds, max_age_seconds)
        raise LendingError(
            ErrorCode.PRICE_TOO_OLD, f"age={age_seconds} max_age={max_age_seconds}"
        )


def is_within_tolerance(px: Fraction, twap: Fraction, acceptable_tolerance_bps: int) -> bool:
    """True if twap differs from px by strictly less than the tolerance."""
    diff_bps_scaled = px.abs_diff(twap) * FULL_BPS
    tolerance_scaled = px * acceptable_tolerance_bps
    return diff_bps_scaled < tolerance_scaled


def check_twap_in_tolerance(price: Fraction, twap: Fraction, max_twap_divergence_bps: int) -> None:
    """Raise PriceTooDivergentFromTwap if the twap is too far from the price."""
    if not is_within_tolerance(price, twap, max_twap_divergence_bps):
        logger.info(
            "Price is too far from TWAP price=%s twap=%s tolerance_bps=%s",
            price,
            twap,
            max_twap_divergence_bps,
        )
        raise LendingError(ErrorCode.PRICE_TOO_DIVERGENT_FROM_TWAP)


def check_price_heuristics(token_price: Fraction, heuristic: PriceHeuristic) -> None:
    """Raise if the price falls outside the enabled heuristic bounds."""
    if heuristic.lower > 0:
        lower = price_to_fraction(Price(heuristic.lower, heuristic.exp))
        if token_price < lower:
            raise LendingError(ErrorCode.PRICE_IS_LOWER_THAN_HEURISTIC)
    if heuristic.upper > 0:
        upper = price_to_fraction(Price(heuristic.upper, heuristic.exp))
        if upper < token_price:
            raise LendingError(ErrorCode.PRICE_IS_BIGGER_THAN_HEURISTIC)


def most_recent_price(
    candidates: Iterable[Optional[TimestampedPriceWithTwap]],
) -> TimestampedPriceWithTwap:
    """Pick the candidate with the newest price; earlier ones win ties."""
    best: Optional[TimestampedPriceWithTwap] = None
    for candidate in candidates:
        if candidate is None:
            continue
        if best is None or candidate.price.timestamp > best.price.timestamp:
            best = candidate
    if best is None:
        logger.warning("No price feed available")
        raise LendingError(ErrorCode.PRICE_NOT_VALID, "No price feed available")
    return best


def get_validated_price(
    price_and_twap: TimestampedPriceWithTwap,
    config: PriceConfig,
    unix_timestamp: int,
) -> Optional[GetPriceResult]:
    """Load the price and record which checks it passes; None if it cannot load."""
    if unix_timestamp < 0:
        raise ValueError("unix timestamp must not be negative")

    price, twap = price_and_twap.price, price_and_twap.twap
    label = config.symbol
    status = PriceStatusFlags(0)

    try:
        price_dec = price.price_load()
    except LendingError as exc:
        logger.warning("Price is not available token=[%s], %s", label, exc)
        return None
    status |= PriceStatusFlags.PRICE_LOADED

    try:
        check_price_age(price.timestamp, config.max_age_price_seconds, unix_timestamp)
        status |= PriceStatusFlags.PRICE_AGE_CHECKED
    except LendingError as exc:
        logger.info("Price is too old token=[%s], %s", label, exc)

    if config.is_twap_enabled:
        if twap is not None:
            try:
                check_price_age(twap.timestamp, config.max_age_twap_seconds, unix_timestamp)
                status |= PriceStatusFlags.TWAP_AGE_CHECKED
            except LendingError as exc:
                logger.info("Price twap is too old token=[%s], %s", label, exc)
            try:
                twap_dec = twap.price_load()
                check_twap_in_tolerance(price_dec, twap_dec, config.max_twap_divergence_bps)
                status |= PriceStatusFlags.TWAP_CHECKED
            except LendingError as exc:
                logger.info("Price twap check failed token=[%s]: %s", label, exc)
        else:
            logger.info("Price twap is not available but required, token=[%s]", label)
    else:
        status |= PriceStatusFlags.TWAP_CHECKED | PriceStatusFlags.TWAP_AGE_CHECKED

    try:
        check_price_heuristics(price_dec, config.heuristic)
        status |= PriceStatusFlags.HEURISTIC_CHECKED
    except LendingError as exc:
        logger.info("Price heuristic check failed token=[%s]: %s", label, exc)

    if config.block_price_usage == 0:
        status |= PriceStatusFlags.PRICE_USAGE_ALLOWED

    return GetPriceResult(price=price_dec, timestamp=price.timestamp, status=status)