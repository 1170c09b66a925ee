import pytest

from lendmath.borrow_rate_curve import (
    MAX_UTILIZATION_RATE_BPS,
    BorrowRateCurve,
    CurvePoint,
    CurveSegment,
)
from lendmath.fraction import Fraction
from lendmath.validation import ErrorCode, LendingError


def _linear_curve():
    return BorrowRateCurve.from_points(
        [CurvePoint(0, 0), CurvePoint(MAX_UTILIZATION_RATE_BPS, 10_000)]
    )


def test_max_utilization_is_full_bps():
    curve = BorrowRateCurve.new_flat(0)
    assert curve.points[-1].utilization_rate_bps == MAX_UTILIZATION_RATE_BPS == 10_000


def test_default_is_flat_zero():
    assert BorrowRateCurve() == BorrowRateCurve.new_flat(0)


def test_flat_curve_is_constant():
    curve = BorrowRateCurve.new_flat(500)
    for bps in (0, 1234, 5000, 9999, 10_000):
        assert curve.get_borrow_rate(Fraction.from_bps(bps)) == Fraction.from_bps(500)


def test_from_points_pads_with_last_point():
    last = CurvePoint(MAX_UTILIZATION_RATE_BPS, 300)
    curve = BorrowRateCurve.from_points([CurvePoint(0, 100), last])
    assert len(curve.points) == 11
    assert curve.points[1:] == (last,) * 10


def test_linear_interpolation_midpoint():
    curve = _linear_curve()
    assert curve.get_borrow_rate(Fraction.from_bps(5000)) == Fraction.from_bps(5000)


def test_utilization_above_one_is_capped():
    curve = BorrowRateCurve.from_points(
        [CurvePoint(0, 100), CurvePoint(MAX_UTILIZATION_RATE_BPS, 2000)]
    )
    assert curve.get_borrow_rate(Fraction.from_num(2)) == Fraction.from_bps(2000)


def test_legacy_parameters_three_points():
    curve = BorrowRateCurve.from_legacy_parameters(80, 0, 10, 100)
    assert curve.to_json_points() == [
        {"utilization_rate_bps": 0, "borrow_rate_bps": 0},
        {"utilization_rate_bps": 8000, "borrow_rate_bps": 1000},
        {"utilization_rate_bps": 10_000, "borrow_rate_bps": 10_000},
    ]
    assert curve.get_borrow_rate(Fraction.from_bps(8000)) == Fraction.from_bps(1000)


def test_legacy_parameters_zero_and_full_optimal():
    zero = BorrowRateCurve.from_legacy_parameters(0, 5, 10, 20)
    assert [p["borrow_rate_bps"] for p in zero.to_json_points()] == [1000, 2000]
    full = BorrowRateCurve.from_legacy_parameters(100, 5, 10, 20)
    assert [p["borrow_rate_bps"] for p in full.to_json_points()] == [500, 1000]


def test_rate_is_monotonic():
    curve = BorrowRateCurve.from_legacy_parameters(70, 2, 15, 150)
    rates = [curve.get_borrow_rate(Fraction.from_bps(bps)) for bps in range(0, 10_001, 250)]
    assert all(a <= b for a, b in zip(rates, rates[1:]))


def test_json_points_round_trip():
    points = [CurvePoint(0, 1), CurvePoint(4000, 50), CurvePoint(10_000, 900)]
    curve = BorrowRateCurve.from_points(points)
    restored = BorrowRateCurve.from_points(
        [CurvePoint(**item) for item in curve.to_json_points()]
    )
    assert restored == curve


@pytest.mark.parametrize(
    "points",
    [
        [CurvePoint(0, 0)],
        [CurvePoint(0, 0), CurvePoint(5000, 10)],
        [CurvePoint(1, 0), CurvePoint(10_000, 10)],
        [CurvePoint(0, 10), CurvePoint(10_000, 5)],
        [CurvePoint(0, 0), CurvePoint(6000, 10), CurvePoint(5000, 20), CurvePoint(10_000, 30)],
        [CurvePoint(0, i) for i in range(11)] + [CurvePoint(10_000, 100)],
    ],
)
def test_invalid_curves_rejected(points):
    with pytest.raises(LendingError) as info:
        BorrowRateCurve.from_points(points)
    assert info.value.code is ErrorCode.INVALID_BORROW_RATE_CURVE_POINT


def test_lower_utilization_after_full_is_invalid():
    points = [CurvePoint(0, 0), CurvePoint(10_000, 10)] + [CurvePoint(10_000, 10)] * 8
    points.append(CurvePoint(10_000, 10))
    points[5] = CurvePoint(9000, 10)
    curve = BorrowRateCurve(tuple(points))
    with pytest.raises(LendingError) as info:
        curve.validate()
    assert info.value.code is ErrorCode.INVALID_BORROW_RATE_CURVE_POINT


def test_segment_from_points_errors():
    with pytest.raises(LendingError):
        CurveSegment.from_points(CurvePoint(0, 10), CurvePoint(100, 5))
    with pytest.raises(LendingError):
        CurveSegment.from_points(CurvePoint(100, 5), CurvePoint(100, 10))


def test_segment_slope_and_below_start():
    segment = CurveSegment.from_points(CurvePoint(2000, 100), CurvePoint(6000, 500))
    assert (segment.slope_nom, segment.slope_denom) == (400, 4000)
    assert segment.get_borrow_rate(Fraction.from_bps(2000)) == Fraction.from_bps(100)
    with pytest.raises(LendingError) as info:
        segment.get_borrow_rate(Fraction.from_bps(1000))
    assert info.value.code is ErrorCode.INVALID_UTILIZATION_RATE


def test_curve_point_rejects_negative():
    with pytest.raises(ValueError):
        CurvePoint(-1, 0)