"""Error types and small input validators."""

from __future__ import annotations

from enum import Enum
from typing import Iterable, Iterator, Tuple, TypeVar

L = TypeVar("L")
R = TypeVar("R")


class ErrorCode(Enum):
    """Error conditions raised by the lending computations."""

    INVALID_FLAG = "InvalidFlag"
    INTEGER_OVERFLOW = "IntegerOverflow"
    MATH_OVERFLOW = "MathOverflow"
    INVALID_ACCOUNT_INPUT = "InvalidAccountInput"
    GLOBAL_EMERGENCY_MODE = "GlobalEmergencyMode"
    INVALID_BORROW_RATE_CURVE_POINT = "InvalidBorrowRateCurvePoint"
    INVALID_UTILIZATION_RATE = "InvalidUtilizationRate"
    PRICE_NOT_VALID = "PriceNotValid"
    PRICE_TOO_OLD = "PriceTooOld"
    PRICE_TOO_DIVERGENT_FROM_TWAP = "PriceTooDivergentFromTwap"
    PRICE_IS_LOWER_THAN_HEURISTIC = "PriceIsLowerThanHeuristic"
    PRICE_IS_BIGGER_THAN_HEURISTIC = "PriceIsBiggerThanHeuristic"
    PRICE_IS_ZERO = "PriceIsZero"
    PRICE_CONFIDENCE_TOO_WIDE = "PriceConfidenceTooWide"
    INVALID_ORACLE_CONFIG = "InvalidOracleConfig"
    COULD_NOT_DESERIALIZE_SCOPE = "CouldNotDeserializeScope"
    NO_PRICE_FOUND = "NoPriceFound"
    SWITCHBOARD_V2_ERROR = "SwitchboardV2Error"


class LendingError(Exception):
    """An error carrying an :class:`ErrorCode`."""

    def __init__(self, code: ErrorCode, message: str | None = None) -> None:
        self.code = code
        super().__init__(message if message else code.value)

    def __str__(self) -> str:
        detail = super().__str__()
        if detail == self.code.value:
            return self.code.value
        return f"{self.code.value}: {detail}"


class LengthMismatchError(ValueError):
    """Two sequences expected to have the same length did not."""


def validate_numerical_bool(value: int) -> bool:
    """Check that a numeric flag is 0 or 1 and return it as a bool."""
    if value not in (0, 1):
        raise LendingError(ErrorCode.INVALID_FLAG, f"flag must be 0 or 1, got {value}")
    return bool(value)


def zip_and_validate_same_length(
    lefts: Iterable[L], rights: Iterable[R]
) -> Iterator[Tuple[L, R]]:
    """Yield pairs from both iterables; raise LengthMismatchError if one ends first."""
    sentinel = object()
    left_iter = iter(lefts)
    right_iter = iter(rights)
    while True:
        left = next(left_iter, sentinel)
        right = next(right_iter, sentinel)
        if left is sentinel and right is sentinel:
            return
        if left is sentinel or right is sentinel:
            raise LengthMismatchError("iterables have different lengths")
        yield left, right