import math
from fractions import Fraction
from typing import Iterable

from .errors import RoundStateError


def final_estimate(values: Iterable[int]) -> int:
    """Round-half-up of the arithmetic mean of the given vote values.

    [3, 5] -> 4, [3, 5, 5] -> 4 (mean 4.33), [1, 2] -> 2 (mean 1.5).
    Exact arithmetic so x.5 means never land on the wrong side.
    """
    values = [int(v) for v in values]
    if not values:
        raise RoundStateError('Cannot reveal a round without votes')
    mean = Fraction(sum(values), len(values))
    return math.floor(mean + Fraction(1, 2))


def summarize(values: Iterable[int]) -> dict:
    values = sorted(int(v) for v in values)
    if not values:
        return {'count': 0, 'min': None, 'max': None, 'mean': None}
    return {
        'count': len(values),
        'min': values[0],
        'max': values[-1],
        'mean': _round_half_up(Fraction(sum(values), len(values)), 2),
    }


def _round_half_up(value: Fraction, places: int) -> float:
    scale = 10 ** places
    return float(Fraction(math.floor(value * scale + Fraction(1, 2)), scale))
