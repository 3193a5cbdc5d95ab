from __future__ import annotations

from typing import Any, Optional, Protocol, Sequence

from .models import BUY, SELL, Side

OrderId = Any


class ExchangeApiError(RuntimeError):
    pass


class Market(Protocol):
    def get_order_book(self) -> Sequence[tuple[float, float]]:
        ...

    def place_order(self, price: float, signed_volume: float) -> Optional[OrderId]:
        ...

    def cancel_order(self, order_id: OrderId) -> Any:
        ...


def signed_volume(side: Side, volume: float) -> float:
    """Exchange-side volume: positive requests a buy, negative a sell."""
    magnitude = abs(volume)
    if side == BUY:
        return magnitude
    if side == SELL:
        return -magnitude
    raise ValueError(f"Unsupported side: {side}")


def side_from_signed_volume(volume: float) -> Side:
    return BUY if volume > 0 else SELL
