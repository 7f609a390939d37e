import math

def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves towards +infinity.

    Matches the rounding the CDN editor used when the placement heuristics
    were tuned, which differs from Python's banker's rounding on .5 values.
    """
    return int(math.floor(value + 0.5))

def coerce_number(value) -> float:
    """Best-effort float conversion; anything unusable becomes 0"""
    if isinstance(value, bool):
        return 0.0
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0.0
    if math.isnan(number) or math.isinf(number):
        return 0.0
    return number
