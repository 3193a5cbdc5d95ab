from __future__ import annotations

from bisect import insort
from dataclasses import dataclass, field
from typing import Iterator, Literal

Side = Literal["buy", "sell"]

BUY: Side = "buy"
SELL: Side = "sell"


def _check_side(side: str) -> None:
    if side not in {BUY, SELL}:
        raise ValueError(f"Unsupported side: {side}")


@dataclass(frozen=True)
class BestPrice:
    bid: float
    ask: float


@dataclass(frozen=True)
class Order:
    side: Side
    order_id: int | str
    price: float
    volume: float

    def __post_init__(self) -> None:
        _check_side(self.side)


@dataclass
class Holdings:
    base: float = 0.0
    quote: float = 0.0

    def apply_fill(self, order: Order) -> None:
        notional = order.volume * order.price
        if order.side == BUY:
            self.base += order.volume
            self.quote -= notional
            return
        if order.side == SELL:
            self.base -= order.volume
            self.quote += notional
            return
        raise ValueError(f"Unsupported side: {order.side}")


@dataclass
class OutstandingOrders:
    """Orders placed and not yet reconciled as filled, kept sorted by price.

    Duplicate prices are allowed; side and id take no part in the ordering.
    """

    _orders: list[Order] = field(default_factory=list)

    def __post_init__(self) -> None:
        self._orders = sorted(self._orders, key=_price_key)

    def add(self, order: Order) -> None:
        insort(self._orders, order, key=_price_key)

    def remove(self, order: Order) -> None:
        self._orders.remove(order)

    def snapshot(self) -> tuple[Order, ...]:
        return tuple(self._orders)

    def __iter__(self) -> Iterator[Order]:
        return iter(self.snapshot())

    def __len__(self) -> int:
        return len(self._orders)

    def __bool__(self) -> bool:
        return bool(self._orders)


def _price_key(order: Order) -> float:
    return order.price
