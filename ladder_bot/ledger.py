from __future__ import annotations

from typing import Iterable

from .models import Holdings, Order


def apply_fills(holdings: Holdings, filled: Iterable[Order]) -> None:
    for order in filled:
        holdings.apply_fill(order)
