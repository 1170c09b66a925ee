"""Fixed-point math, borrow rate curves and oracle price validation for lending."""

__version__ = "1.11.0"
__all__ = [
    "validation",
    "fraction",
    "consts",
    "secs",
    "borrow_rate_curve",
    "price",
    "oracles",
    "checks",
]