"""Percentage helpers shared by the progress and score calculations."""

from __future__ import annotations

import math


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves away from zero for non-negative values.

    Matches the behaviour of the web client's ``Math.round`` for the [0, 100]
    range used by scores, so ``12.5`` becomes ``13`` rather than ``12``.
    """
    return int(math.floor(value + 0.5))


def to_percent(ratio: float) -> int:
    return round_half_up(100 * ratio)
