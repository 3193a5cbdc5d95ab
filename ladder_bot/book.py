from __future__ import annotations

from typing import Iterable, Optional

from .models import BestPrice

BookEntry = tuple[float, float]


def extract_best(book: Iterable[BookEntry]) -> Optional[BestPrice]:
    """Best bid/ask from a raw book of (price, signed_volume) entries.

    Entries are sorted by price and scanned left to right; the first adjacent
    pair of a resting buy (positive volume) followed by a resting sell
    (negative volume) is the answer.
    """
    levels = sorted((float(price), float(volume)) for price, volume in book)
    for (bid_px, bid_vol), (ask_px, ask_vol) in zip(levels, levels[1:]):
        if bid_vol > 0 and ask_vol < 0:
            return BestPrice(bid=bid_px, ask=ask_px)
    return None
