from __future__ import annotations

import math
import random


def quantize(rng: random.Random, low: float, high: float) -> float:
    """Uniform draw in [low, high] truncated to one decimal.

    Returns 0.0 for a negative ``low`` or a range narrower than 1.
    """
    if low < 0 or (high - low) < 1:
        return 0.0

    raw = rng.uniform(low, high)
    value = math.floor(raw * 10.0) / 10.0
    if value < low:
        # low itself carries more than one decimal; step up to the next tenth
        value = math.ceil(low * 10.0) / 10.0
    return min(value, high)
