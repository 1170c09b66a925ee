# lendmath

`lendmath` is a library of integer arithmetic and price checks for a lending protocol. It has no dependencies outside the standard library.

## Modules

- `lendmath.fraction`
  - `Fraction` is an unsigned fixed-point number with 68 integer bits and 60 fractional bits.
    - Arithmetic truncates.
    - A result that falls outside the representable range raises `OverflowError`.
    - It has helpers for basis points and percentages: `from_bps`, `to_bps`, `from_percent`, `to_percent`.
    - It rounds with `floor`, `ceil` and `round`, and converts to integers with `to_floor`, `to_ceil` and `to_round`.
    - Other methods: `checked_pow` (returns `None` on overflow), `mul_int_ratio`, `full_mul_int_ratio`, `div_ceil`, `abs_diff`, and `to_display` (four decimal places).
  - `BigFraction` keeps the same 60 fractional bits in 256 bits.
  - Module-level helpers: `pow_fraction`, `bps_to_fraction`, `pct_to_fraction`, `to_sf`.
- `lendmath.borrow_rate_curve`
  - `BorrowRateCurve` is a piecewise-linear curve of 11 `CurvePoint`s, with rates in basis points.
  - It can be built with `from_points`, `new_flat` or `from_legacy_parameters`, and is checked with `validate`.
  - `get_borrow_rate` interpolates the rate at a utilization. A utilization above 100% is capped at 100%.
  - `to_json_points` returns the points as a list of dicts, ending at the first point at full utilization.
- `lendmath.price`
  - `Price` is a value scaled by `10**-exp`. Its value must fit in 64, 128 or 256 bits.
  - `Price` has `to_adjusted_exp` and `reduce_exp_lossy`.
  - `price_to_fraction` converts a `Price` to a `Fraction`.
  - `TimestampedPrice` holds a lazy `price_load` callable and a timestamp.
  - `TimestampedPriceWithTwap` pairs a price with an optional TWAP.
- `lendmath.oracles`
  - Confidence checks: `validate_pyth_confidence`, `validate_switchboard_confidence`.
  - Builders that turn raw feed values into timestamped prices:
    - `pyth_price_and_twap`
    - `switchboard_price`
    - `scope_price_usd` and `scope_price_and_twap`, which resolve a chain of up to four price ids through a `ScopeConfiguration`.
- `lendmath.checks`
  - Single checks: `check_price_age`, `is_within_tolerance`, `check_twap_in_tolerance`, `check_price_heuristics` (against a `PriceHeuristic`).
  - `most_recent_price` picks the newest of several candidates.
  - `get_validated_price` runs every check with a `PriceConfig`. It returns a `GetPriceResult` whose `status` is a `PriceStatusFlags` value that records the checks the price passed.
- `lendmath.consts`
  - Protocol constants and well-known program ids as 32-byte keys, including `CPI_WHITELISTED_ACCOUNTS` of `CpiWhitelistedAccount`.
  - Helpers: `ten_pow`, `b58decode`, and `maybe_null_pk`, which maps the default and null keys to `None`.
- `lendmath.secs`: `to_days_fractional`, `from_days`, `from_hours`.
- `lendmath.validation`
  - The `LendingError` exception. Its `code` attribute is an `ErrorCode` member.
  - `LengthMismatchError`.
  - `validate_numerical_bool`.
  - `zip_and_validate_same_length`, which yields pairs and raises `LengthMismatchError` when one input runs out first.

## Install

```
pip install .
```

## Examples

Interpolate a borrow rate:

```python
from lendmath.fraction import Fraction
from lendmath.borrow_rate_curve import BorrowRateCurve, CurvePoint

curve = BorrowRateCurve.from_points([
    CurvePoint(0, 100),
    CurvePoint(8000, 1000),
    CurvePoint(10000, 5000),
])
rate = curve.get_borrow_rate(Fraction.from_percent(50))
print(rate.to_display(), rate.to_bps())
```

Validate a price:

```python
from lendmath.oracles import pyth_price_and_twap
from lendmath.checks import PriceConfig, PriceStatusFlags, get_validated_price

feed = pyth_price_and_twap(
    price=150_000_000, conf=10_000,
    ema_price=149_000_000, ema_conf=10_000,
    exponent=-6, publish_time=1_700_000_000,
)
config = PriceConfig(
    symbol="SOL",
    max_age_price_seconds=60,
    max_age_twap_seconds=240,
    max_twap_divergence_bps=300,
)
result = get_validated_price(feed, config, unix_timestamp=1_700_000_030)
print(result.price.to_display(), result.status == PriceStatusFlags.ALL_CHECKS)
```

Invalid input raises `lendmath.validation.LendingError`, for example with code `ErrorCode.INVALID_BORROW_RATE_CURVE_POINT`.

## What it does not do

- The package does not read or decode on-chain accounts. The oracle functions take raw values such as prices, confidences, exponents, slots and timestamps, and the caller has to supply them.
- It does not track lending markets, reserves or obligations.
- It sends no transactions and has no command-line tool.

## Tests

```
pip install .[test]
pytest
```