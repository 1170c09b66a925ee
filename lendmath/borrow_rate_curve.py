"""Piecewise-linear borrow rate curve indexed by utilization rate."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Sequence, Tuple

from .consts import FULL_BPS
from .fraction import Fraction
from .validation import ErrorCode, LendingError

MAX_UTILIZATION_RATE_BPS = FULL_BPS
CURVE_POINTS = 11
_U32_MAX = (1 << 32) - 1


def _invalid_point(message: str) -> LendingError:
    return LendingError(ErrorCode.INVALID_BORROW_RATE_CURVE_POINT, message)


@dataclass(frozen=True)
class CurvePoint:
    """A (utilization rate, borrow rate) pair, both in basis points."""

    utilization_rate_bps: int = 0
    borrow_rate_bps: int = 0

    def __post_init__(self) -> None:
        for name in ("utilization_rate_bps", "borrow_rate_bps"):
            value = getattr(self, name)
            if not isinstance(value, int) or not 0 <= value <= _U32_MAX:
                raise ValueError(f"{name} must be an unsigned 32-bit integer, got {value!r}")


@dataclass(frozen=True)
class CurveSegment:
    """A linear piece of the curve starting at ``start_point``."""

    slope_nom: int = 0
    slope_denom: int = 0
    start_point: CurvePoint = field(default_factory=CurvePoint)

    @classmethod
    def from_points(cls, start: CurvePoint, end: CurvePoint) -> "CurveSegment":
        if end.borrow_rate_bps < start.borrow_rate_bps:
            raise _invalid_point("Borrow rate must be ever growing in the curve")
        if end.utilization_rate_bps <= start.utilization_rate_bps:
            raise _invalid_point("Utilization rate must be ever growing in the curve")
        return cls(
            slope_nom=end.borrow_rate_bps - start.borrow_rate_bps,
            slope_denom=end.utilization_rate_bps - start.utilization_rate_bps,
            start_point=start,
        )

    def get_borrow_rate(self, utilization_rate: Fraction) -> Fraction:
        start_utilization_rate = Fraction.from_bps(self.start_point.utilization_rate_bps)
        if utilization_rate < start_utilization_rate:
            raise LendingError(
                ErrorCode.INVALID_UTILIZATION_RATE,
                "utilization rate is below the start of the segment",
            )
        coef = utilization_rate - start_utilization_rate
        nominator = coef * self.slope_nom
        base_rate = nominator / self.slope_denom
        offset = Fraction.from_bps(self.start_point.borrow_rate_bps)
        return base_rate + offset


@dataclass(frozen=True)
class BorrowRateCurve:
    """Eleven curve points; unused trailing points repeat the last one."""

    points: Tuple[CurvePoint, ...] = field(
        default_factory=lambda: BorrowRateCurve.new_flat(0).points
    )

    def __post_init__(self) -> None:
        points = tuple(self.points)
        if len(points) != CURVE_POINTS:
            raise ValueError(f"a curve holds exactly {CURVE_POINTS} points")
        object.__setattr__(self, "points", points)

    def validate(self) -> None:
        """Raise LendingError unless the points form a valid curve."""
        pts = self.points
        if pts[0].utilization_rate_bps != 0:
            raise _invalid_point(
                "First point of borrowing rate curve must have an utilization rate of 0"
            )
        if pts[-1].utilization_rate_bps != MAX_UTILIZATION_RATE_BPS:
            raise _invalid_point(
                "Last point of borrowing rate curve must have an utilization rate of 1"
            )
        for last_pt, pt in zip(pts, pts[1:]):
            if last_pt.utilization_rate_bps == MAX_UTILIZATION_RATE_BPS:
                if pt.utilization_rate_bps != MAX_UTILIZATION_RATE_BPS:
                    raise _invalid_point(
                        "Last point of borrowing rate curve must have an utilization rate "
                        "of 1 but lower utilization rate found after last point"
                    )
            elif pt.utilization_rate_bps <= last_pt.utilization_rate_bps:
                raise _invalid_point(
                    "Borrowing rate curve points must be sorted by utilization rate"
                )
            if pt.borrow_rate_bps < last_pt.borrow_rate_bps:
                raise _invalid_point("Borrowing rate must growing in the curve")

    @classmethod
    def from_points(cls, points: Sequence[CurvePoint]) -> "BorrowRateCurve":
        pts = list(points)
        if len(pts) < 2:
            raise _invalid_point("Borrowing rate curve must have at least 2 points")
        if len(pts) > CURVE_POINTS:
            raise _invalid_point(
                f"Borrowing rate curve must have at most {CURVE_POINTS} points"
            )
        last = pts[-1]
        if last.utilization_rate_bps != MAX_UTILIZATION_RATE_BPS:
            raise _invalid_point(
                "Last point of borrowing rate curve must have an utilization rate of 1"
            )
        padded = pts + [last] * (CURVE_POINTS - len(pts))
        curve = cls(tuple(padded))
        curve.validate()
        return curve

    @classmethod
    def new_flat(cls, borrow_rate_bps: int) -> "BorrowRateCurve":
        return cls.from_points(
            [
                CurvePoint(0, borrow_rate_bps),
                CurvePoint(MAX_UTILIZATION_RATE_BPS, borrow_rate_bps),
            ]
        )

    @classmethod
    def from_legacy_parameters(
        cls,
        optimal_utilization_rate_pct: int,
        base_rate_pct: int,
        optimal_rate_pct: int,
        max_rate_pct: int,
    ) -> "BorrowRateCurve":
        optimal_utilization_rate = optimal_utilization_rate_pct * 100
        base_rate = base_rate_pct * 100
        optimal_rate = optimal_rate_pct * 100
        max_rate = max_rate_pct * 100

        if optimal_utilization_rate == 0:
            points = [
                CurvePoint(0, optimal_rate),
                CurvePoint(MAX_UTILIZATION_RATE_BPS, max_rate),
            ]
        elif optimal_utilization_rate == MAX_UTILIZATION_RATE_BPS:
            points = [
                CurvePoint(0, base_rate),
                CurvePoint(MAX_UTILIZATION_RATE_BPS, optimal_rate),
            ]
        else:
            points = [
                CurvePoint(0, base_rate),
                CurvePoint(optimal_utilization_rate, optimal_rate),
                CurvePoint(MAX_UTILIZATION_RATE_BPS, max_rate),
            ]
        return cls.from_points(points)

    def get_borrow_rate(self, utilization_rate: Fraction) -> Fraction:
        """Borrow rate at the given utilization; values above 100% are capped."""
        if utilization_rate > Fraction.ONE:
            utilization_rate = Fraction.ONE

        utilization_rate_bps = utilization_rate.to_bps()

        for start_pt, end_pt in zip(self.points, self.points[1:]):
            if (
                start_pt.utilization_rate_bps
                <= utilization_rate_bps
                <= end_pt.utilization_rate_bps
            ):
                break
        else:
            raise _invalid_point("no curve segment covers the utilization rate")

        if utilization_rate_bps == start_pt.utilization_rate_bps:
            return Fraction.from_bps(start_pt.borrow_rate_bps)
        if utilization_rate_bps == end_pt.utilization_rate_bps:
            return Fraction.from_bps(end_pt.borrow_rate_bps)

        segment = CurveSegment.from_points(start_pt, end_pt)
        return segment.get_borrow_rate(utilization_rate)

    def to_json_points(self) -> List[Dict[str, int]]:
        """Points up to and including the first one at full utilization."""
        result: List[Dict[str, int]] = []
        for point in self.points:
            result.append(
                {
                    "utilization_rate_bps": point.utilization_rate_bps,
                    "borrow_rate_bps": point.borrow_rate_bps,
                }
            )
            if point.utilization_rate_bps == MAX_UTILIZATION_RATE_BPS:
                break
        return result