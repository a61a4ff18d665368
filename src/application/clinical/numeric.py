"""Rounding helpers shared by the clinical engines.

Python's round() rounds half to even; clinical displays round half up
(12.5 -> 13), so every displayed figure goes through round_half_up.
"""

import math


def round_half_up(value: float, digits: int = 0) -> float:
    """Round halves toward positive infinity (12.5 -> 13, -12.5 -> -12)."""
    factor = 10 ** digits
    return math.floor(value * factor + 0.5) / factor


def round_int(value: float) -> int:
    return int(round_half_up(value))


def format_fixed(value: float, digits: int) -> str:
    """Half-up rounded value with exactly `digits` decimals."""
    return f"{round_half_up(value, digits):.{digits}f}"
