from __future__ import annotations

from dataclasses import dataclass
import logging
import random
from typing import Optional

from .config import SimulationConfig
from .market import side_from_signed_volume
from .models import BUY, Side

logger = logging.getLogger("ladder_bot")


@dataclass
class RestingOrder:
    order_id: int
    side: Side
    price: float
    volume: float


class SimulatedExchange:
    """In-process exchange with a random-walk mid and a synthetic book.

    Each ``get_order_book`` call advances the mid one step and rebuilds
    ``depth`` bid levels below it and ``depth`` ask levels above it. Resting
    orders placed here are dropped once the book crosses them.
    """

    def __init__(self, cfg: SimulationConfig, rng: Optional[random.Random] = None):
        self.cfg = cfg
        self.rng = rng or random.Random(cfg.seed)
        self.mid = cfg.starting_mid
        self.resting: dict[int, RestingOrder] = {}
        self.placed = 0
        self.rejected = 0
        self.cancelled = 0
        self._next_id = 1

    def get_order_book(self) -> list[tuple[float, float]]:
        if self.cfg.outage_probability > 0 and self.rng.random() < self.cfg.outage_probability:
            logger.debug("sim_outage mid=%.4f", self.mid)
            return []

        move = self.rng.gauss(0.0, self.cfg.volatility) * self.mid
        self.mid = max(self.cfg.level_spacing * 10, self.mid + move)

        book: list[tuple[float, float]] = []
        spacing = self.mid * self.cfg.level_spacing
        for level in range(1, max(1, self.cfg.depth) + 1):
            bid = round(self.mid - (spacing * level), 4)
            ask = round(self.mid + (spacing * level), 4)
            if bid > 0:
                book.append((bid, self._level_volume()))
            book.append((ask, -self._level_volume()))

        self._expire_crossed(book)
        self.rng.shuffle(book)
        return book

    def place_order(self, price: float, signed_volume: float) -> Optional[int]:
        if price <= 0 or signed_volume == 0:
            self.rejected += 1
            return None
        order_id = self._next_id
        self._next_id += 1
        self.resting[order_id] = RestingOrder(
            order_id=order_id,
            side=side_from_signed_volume(signed_volume),
            price=price,
            volume=abs(signed_volume),
        )
        self.placed += 1
        return order_id

    def cancel_order(self, order_id: int) -> bool:
        if self.resting.pop(order_id, None) is None:
            return False
        self.cancelled += 1
        return True

    def _level_volume(self) -> float:
        return round(self.rng.uniform(0.1, max(0.2, self.cfg.max_level_volume)), 1)

    def _expire_crossed(self, book: list[tuple[float, float]]) -> None:
        bids = [price for price, volume in book if volume > 0]
        asks = [price for price, volume in book if volume < 0]
        best_bid = max(bids) if bids else None
        best_ask = min(asks) if asks else None
        for order_id, order in list(self.resting.items()):
            if order.side == BUY and best_bid is not None and order.price > best_bid:
                del self.resting[order_id]
            elif order.side != BUY and best_ask is not None and order.price < best_ask:
                del self.resting[order_id]
