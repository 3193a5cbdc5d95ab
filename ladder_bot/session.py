from __future__ import annotations

from dataclasses import asdict, dataclass
from enum import Enum
import logging
import random
from typing import Any, Optional

from .book import extract_best
from .config import BotConfig
from .ladder import place_ladder
from .ledger import apply_fills
from .market import ExchangeApiError, Market
from .models import BestPrice, Holdings, OutstandingOrders
from .reconcile import reconcile_fills
from .scheduler import Clock, PollScheduler, SystemClock

logger = logging.getLogger("ladder_bot")

BEST_PRICE_UNAVAILABLE = "best-price-unavailable"
ORDER_BOOK_UNAVAILABLE = "order-book-unavailable"
RUNTIME_LIMIT = "runtime-limit"


class SessionState(str, Enum):
    AWAITING_INITIAL_PLACEMENT = "awaiting_initial_placement"
    POLLING = "polling"
    DRAINED = "drained"
    ABORTED = "aborted"


@dataclass
class PlacementResult:
    ok: bool
    reason: str = ""
    orders_placed: int = 0


@dataclass
class SessionOutcome:
    state: SessionState
    reason: str = ""
    refreshes: int = 0
    fills: int = 0
    cancelled: int = 0
    cancel_failures: int = 0
    base: float = 0.0
    quote: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        result = asdict(self)
        result["state"] = self.state.value
        return result


class TradingSession:
    """Places a ladder of orders, then polls the market until every order fills.

    A market that cannot be read aborts the session; on a mid-session abort
    every still-outstanding order is cancelled.
    """

    def __init__(
        self,
        market: Market,
        holdings: Holdings,
        cfg: Optional[BotConfig] = None,
        rng: Optional[random.Random] = None,
        clock: Optional[Clock] = None,
    ) -> None:
        self.market = market
        self.holdings = holdings
        self.cfg = cfg or BotConfig()
        self.rng = rng or random.Random()
        self.clock = clock or SystemClock()
        self.state = SessionState.AWAITING_INITIAL_PLACEMENT
        self.outstanding = OutstandingOrders()
        self.refreshes = 0
        self.fills = 0

    def place_initial_ladder(self, ladder_size: Optional[int] = None) -> PlacementResult:
        if self.state != SessionState.AWAITING_INITIAL_PLACEMENT:
            raise RuntimeError(f"initial ladder already handled state={self.state.value}")
        count = self.cfg.ladder.ladder_size if ladder_size is None else ladder_size

        best, reason = self._read_best_price()
        if best is None:
            self.state = SessionState.ABORTED
            logger.error("initial_placement_failed reason=%s", reason)
            return PlacementResult(ok=False, reason=reason)

        logger.info("initial_best_price bid=%.4f ask=%.4f", best.bid, best.ask)
        self.outstanding = place_ladder(
            self.holdings,
            best,
            count,
            self.market.place_order,
            self.rng,
            self.cfg.ladder,
        )
        self.state = SessionState.POLLING
        logger.info("ladder_placed requested=%d accepted=%d", 2 * max(0, count), len(self.outstanding))
        return PlacementResult(ok=True, orders_placed=len(self.outstanding))

    def run(self) -> SessionOutcome:
        if self.state != SessionState.POLLING:
            raise RuntimeError(f"session is not ready to poll state={self.state.value}")

        session_cfg = self.cfg.session
        start = self.clock.now()
        scheduler = PollScheduler(
            refresh_seconds=session_cfg.refresh_seconds,
            report_seconds=session_cfg.report_seconds,
            start=start,
        )
        reason = ""

        while self.outstanding:
            now = self.clock.now()
            limit = session_cfg.max_runtime_seconds
            if limit is not None and (now - start) >= limit:
                reason = RUNTIME_LIMIT
                break

            if not scheduler.refresh_due(now):
                self.clock.sleep(session_cfg.idle_sleep_seconds)
                continue

            self.refreshes += 1
            best, reason = self._read_best_price()
            if best is None:
                logger.error("market_unavailable reason=%s; closing session", reason)
                break

            filled = reconcile_fills(self.outstanding, best)
            apply_fills(self.holdings, filled)
            self.fills += len(filled)
            for order in filled:
                logger.info(
                    "order_filled side=%s price=%.1f volume=%.1f id=%s",
                    order.side,
                    order.price,
                    order.volume,
                    order.order_id,
                )

            if scheduler.report_due(now):
                self.report_assets()

        self.report_assets()

        if not self.outstanding:
            self.state = SessionState.DRAINED
            logger.info("all orders filled; closing session")
            return self._outcome()

        self.state = SessionState.ABORTED
        logger.warning("cancelling outstanding orders count=%d reason=%s", len(self.outstanding), reason)
        cancelled, failures = self._cancel_outstanding()
        return self._outcome(reason=reason, cancelled=cancelled, cancel_failures=failures)

    def report_assets(self) -> None:
        wallet = self.cfg.wallet
        logger.info(
            "wallet base=%.4f %s quote=%.4f %s outstanding=%d",
            self.holdings.base,
            wallet.base_asset,
            self.holdings.quote,
            wallet.quote_asset,
            len(self.outstanding),
        )
        for order in self.outstanding:
            logger.info(
                "outstanding side=%s price=%.1f volume=%.1f id=%s",
                order.side,
                order.price,
                order.volume,
                order.order_id,
            )

    def _read_best_price(self) -> tuple[Optional[BestPrice], str]:
        try:
            book = list(self.market.get_order_book())
        except ExchangeApiError as exc:
            logger.warning("order_book_error=%s", exc)
            return None, ORDER_BOOK_UNAVAILABLE
        logger.debug("order_book levels=%d book=%s", len(book), book)
        best = extract_best(book)
        if best is None:
            return None, BEST_PRICE_UNAVAILABLE
        return best, ""

    def _cancel_outstanding(self) -> tuple[int, int]:
        cancelled = 0
        failures = 0
        for order in self.outstanding:
            try:
                ack = self.market.cancel_order(order.order_id)
            except ExchangeApiError as exc:
                failures += 1
                logger.warning("cancel_failed id=%s error=%s", order.order_id, exc)
                continue
            if ack is False:
                failures += 1
                logger.warning("cancel_failed id=%s error=not_acknowledged", order.order_id)
                continue
            cancelled += 1
        return cancelled, failures

    def _outcome(self, reason: str = "", cancelled: int = 0, cancel_failures: int = 0) -> SessionOutcome:
        return SessionOutcome(
            state=self.state,
            reason=reason,
            refreshes=self.refreshes,
            fills=self.fills,
            cancelled=cancelled,
            cancel_failures=cancel_failures,
            base=self.holdings.base,
            quote=self.holdings.quote,
        )
