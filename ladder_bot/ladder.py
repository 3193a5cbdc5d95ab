from __future__ import annotations

import logging
import random
from typing import Callable, Optional

from .config import LadderConfig
from .market import OrderId, signed_volume
from .models import BUY, SELL, BestPrice, Holdings, Order, OutstandingOrders, Side
from .pricing import quantize

logger = logging.getLogger("ladder_bot")

PlaceOrder = Callable[[float, float], Optional[OrderId]]


def place_ladder(
    holdings: Holdings,
    best: BestPrice,
    count: int,
    place_order: PlaceOrder,
    rng: random.Random,
    cfg: LadderConfig | None = None,
) -> OutstandingOrders:
    """Places ``count`` buy/sell pairs around the best bid/ask.

    Each leg is sized from a snapshot of base holdings split evenly across the
    ladder, so committed base volume never exceeds what is held. Rejected legs
    are skipped.
    """
    cfg = cfg or LadderConfig()
    orders = OutstandingOrders()
    if count < 1:
        return orders

    max_volume_per_order = holdings.base / count

    for _ in range(count):
        buy_price = _leg_price(rng, cfg.bid_band * best.bid, best.bid, best.bid)
        buy_volume = quantize(rng, cfg.min_volume, max_volume_per_order)
        _place_leg(orders, place_order, BUY, buy_price, buy_volume)

        sell_price = _leg_price(rng, best.ask, cfg.ask_band * best.ask, best.ask)
        sell_volume = quantize(rng, cfg.min_volume, max_volume_per_order)
        _place_leg(orders, place_order, SELL, sell_price, sell_volume)

    return orders


def _leg_price(rng: random.Random, low: float, high: float, touch: float) -> float:
    # bands narrower than 1 would quantize to 0; quote at the touch instead
    if high - low < 1:
        return touch
    return quantize(rng, low, high)


def _place_leg(
    orders: OutstandingOrders,
    place_order: PlaceOrder,
    side: Side,
    price: float,
    volume: float,
) -> None:
    order_id = place_order(price, signed_volume(side, volume))
    if order_id is None:
        logger.info("order_rejected side=%s price=%.1f volume=%.1f", side, price, volume)
        return
    orders.add(Order(side=side, order_id=order_id, price=price, volume=volume))
