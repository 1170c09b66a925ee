import pytest

from lendmath.consts import NULL_PUBKEY
from lendmath.fraction import Fraction
from lendmath.oracles import (
    CONFIDENCE_FACTOR,
    ScopeConfiguration,
    pyth_price_and_twap,
    scope_price_and_twap,
    scope_price_usd,
    switchboard_price,
    validate_pyth_confidence,
    validate_switchboard_confidence,
)
from lendmath.price import Price
from lendmath.validation import ErrorCode, LendingError

FEED = bytes(range(1, 33))
END = 0xFFFF


def test_confidence_factor_from_max_percentage():
    assert CONFIDENCE_FACTOR == 50
    assert validate_pyth_confidence(100, 2, CONFIDENCE_FACTOR) is None
    with pytest.raises(LendingError) as info:
        validate_pyth_confidence(100, 3, CONFIDENCE_FACTOR)
    assert info.value.code is ErrorCode.PRICE_CONFIDENCE_TOO_WIDE


def test_pyth_confidence_boundary():
    with pytest.raises(LendingError) as info:
        validate_pyth_confidence(100, 3, 50)
    assert info.value.code is ErrorCode.PRICE_CONFIDENCE_TOO_WIDE
    assert validate_pyth_confidence(100, 2, 50) is None


def test_pyth_zero_price():
    with pytest.raises(LendingError) as info:
        validate_pyth_confidence(0, 0, 50)
    assert info.value.code is ErrorCode.PRICE_IS_ZERO


def test_pyth_negative_price_rejected():
    with pytest.raises(ValueError):
        validate_pyth_confidence(-5, 0, 50)


def test_pyth_price_and_twap_values():
    result = pyth_price_and_twap(7, 0, 9, 0, 0, 1234)
    assert result.price.timestamp == 1234
    assert result.twap.timestamp == 1234
    assert result.price.price_load() == Fraction.from_num(7)
    assert result.twap.price_load() == Fraction.from_num(9)


def test_pyth_negative_exponent_scales_down():
    result = pyth_price_and_twap(150, 0, 150, 0, -2, 1)
    assert result.price.price_load() == Fraction.from_num(1.5)


def test_pyth_twap_confidence_checked():
    with pytest.raises(LendingError) as info:
        pyth_price_and_twap(1000, 1, 1000, 500, -2, 1)
    assert info.value.code is ErrorCode.PRICE_CONFIDENCE_TOO_WIDE


def test_switchboard_confidence_same_scale():
    with pytest.raises(LendingError) as info:
        validate_switchboard_confidence(1000, 2, 20, 2, 50)
    assert info.value.code is ErrorCode.PRICE_CONFIDENCE_TOO_WIDE
    assert validate_switchboard_confidence(1000, 2, 19, 2, 50) is None


def test_switchboard_confidence_different_scales():
    assert validate_switchboard_confidence(501, 3, 1, 2, 50) is None
    with pytest.raises(LendingError) as info:
        validate_switchboard_confidence(500, 3, 1, 2, 50)
    assert info.value.code is ErrorCode.PRICE_CONFIDENCE_TOO_WIDE


def test_switchboard_confidence_scaling_overflow():
    with pytest.raises(LendingError) as info:
        validate_switchboard_confidence(1, 39, 1, 0, 50)
    assert info.value.code is ErrorCode.MATH_OVERFLOW


def test_switchboard_price_value_and_fresh_timestamp():
    price = switchboard_price(42, 0, 0, 0, 100, 100, 5000)
    assert price.timestamp == 5000
    assert price.price_load() == Fraction.from_num(42)


def test_switchboard_timestamp_moves_back_with_elapsed_slots():
    price = switchboard_price(42, 0, 0, 0, 90, 100, 1000)
    assert price.timestamp == 996


def test_switchboard_negative_clock_timestamp_is_zero():
    price = switchboard_price(42, 0, 0, 0, 100, 100, -10)
    assert price.timestamp == 0


def test_switchboard_non_positive_price():
    with pytest.raises(LendingError) as info:
        switchboard_price(0, 0, 0, 0, 1, 1, 1)
    assert info.value.code is ErrorCode.PRICE_IS_ZERO


def test_switchboard_negative_stdev():
    with pytest.raises(LendingError) as info:
        switchboard_price(10, 0, -1, 0, 1, 1, 1)
    assert info.value.code is ErrorCode.SWITCHBOARD_V2_ERROR


def test_switchboard_confidence_checked_on_load():
    price = switchboard_price(10, 0, 1, 0, 1, 1, 1)
    with pytest.raises(LendingError) as info:
        price.price_load()
    assert info.value.code is ErrorCode.PRICE_CONFIDENCE_TOO_WIDE


PRICES = [
    (Price(2, 0), 100),
    (Price(1, 0), 50),
    (Price(10**19, 19), 70),
    (Price(10**18, 18), 80),
]


def test_scope_single_price():
    result = scope_price_usd(PRICES, (0, END, END, END))
    assert result.timestamp == 100
    assert result.price_load() == Fraction.from_num(2)


def test_scope_chain_uses_oldest_timestamp():
    result = scope_price_usd(PRICES, (0, 1, END, END))
    assert result.timestamp == 50
    assert result.price_load() == Fraction.from_num(2)


def test_scope_chain_reduces_large_exponents():
    result = scope_price_usd(PRICES, (2, 2, END, END))
    assert result.price_load() == Fraction.ONE


def test_scope_chain_without_reduction():
    result = scope_price_usd(PRICES, (3, 3, END, END))
    assert result.price_load() == Fraction.ONE


def test_scope_uninitialized_chain():
    with pytest.raises(LendingError) as info:
        scope_price_usd(PRICES, (0, 0, 0, 0))
    assert info.value.code is ErrorCode.PRICE_NOT_VALID


def test_scope_empty_chain():
    with pytest.raises(LendingError) as info:
        scope_price_usd(PRICES, (END, END, END, END))
    assert info.value.code is ErrorCode.NO_PRICE_FOUND


def test_scope_configuration_flags():
    assert not ScopeConfiguration().is_enabled()
    assert not ScopeConfiguration(price_feed=NULL_PUBKEY).is_enabled()
    assert ScopeConfiguration(price_feed=FEED).is_enabled()
    assert not ScopeConfiguration().has_twap()
    assert not ScopeConfiguration(twap_chain=(END, END, END, END)).has_twap()
    assert ScopeConfiguration(twap_chain=(1, END, END, END)).has_twap()


def test_scope_configuration_rejects_bad_chain():
    with pytest.raises(ValueError):
        ScopeConfiguration(price_chain=(1, 2, 3))


def test_scope_price_and_twap():
    config = ScopeConfiguration(FEED, (0, END, END, END), (1, END, END, END))
    result = scope_price_and_twap(PRICES, config)
    assert result.price.price_load() == Fraction.from_num(2)
    assert result.twap.price_load() == Fraction.ONE
    assert result.twap.timestamp == 50


def test_scope_twap_failure_gives_no_twap():
    config = ScopeConfiguration(FEED, (0, END, END, END), (900, END, END, END))
    result = scope_price_and_twap(PRICES, config)
    assert result.twap is None
    assert result.price.timestamp == 100


def test_scope_without_twap_configured():
    config = ScopeConfiguration(FEED, (0, END, END, END))
    assert scope_price_and_twap(PRICES, config).twap is None


def test_scope_null_feed_rejected():
    config = ScopeConfiguration(NULL_PUBKEY, (0, END, END, END))
    with pytest.raises(LendingError) as info:
        scope_price_and_twap(PRICES, config)
    assert info.value.code is ErrorCode.INVALID_ORACLE_CONFIG