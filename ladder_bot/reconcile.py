from __future__ import annotations

from .models import BUY, SELL, BestPrice, Order, OutstandingOrders


def is_filled(order: Order, best: BestPrice) -> bool:
    """A buy above the best bid, or a sell below the best ask, has crossed."""
    if order.side == BUY:
        return order.price > best.bid
    if order.side == SELL:
        return order.price < best.ask
    raise ValueError(f"Unsupported side: {order.side}")


def reconcile_fills(outstanding: OutstandingOrders, best: BestPrice) -> list[Order]:
    filled = [order for order in outstanding.snapshot() if is_filled(order, best)]
    for order in filled:
        outstanding.remove(order)
    return filled
