import random
import unittest
from unittest import mock

from fakes import FakeClock, FakeMarket, book
from ladder_bot.config import BotConfig
from ladder_bot.market import ExchangeApiError
from ladder_bot.models import BUY, Holdings
from ladder_bot.session import (
    BEST_PRICE_UNAVAILABLE,
    ORDER_BOOK_UNAVAILABLE,
    RUNTIME_LIMIT,
    SessionState,
    TradingSession,
)


def _cfg(**session) -> BotConfig:
    cfg = BotConfig()
    cfg.ladder.ladder_size = 3
    cfg.session.idle_sleep_seconds = 1.0
    for key, value in session.items():
        setattr(cfg.session, key, value)
    return cfg


class TradingSessionTests(unittest.TestCase):
    def _session(self, market, cfg=None, holdings=None):
        return TradingSession(
            market=market,
            holdings=holdings or Holdings(base=10.0, quote=2000.0),
            cfg=cfg or _cfg(),
            rng=random.Random(21),
            clock=FakeClock(),
        )

    def test_start_fails_without_best_price(self) -> None:
        market = FakeMarket([[]])
        session = self._session(market)

        result = session.place_initial_ladder()

        self.assertFalse(result.ok)
        self.assertEqual(result.reason, BEST_PRICE_UNAVAILABLE)
        self.assertEqual(market.placed, [])
        self.assertEqual(session.state, SessionState.ABORTED)
        self.assertEqual(session.holdings, Holdings(base=10.0, quote=2000.0))
        with self.assertRaises(RuntimeError):
            session.run()

    def test_start_fails_when_order_book_errors(self) -> None:
        market = FakeMarket([ExchangeApiError("network_error")])
        result = self._session(market).place_initial_ladder()
        self.assertFalse(result.ok)
        self.assertEqual(result.reason, ORDER_BOOK_UNAVAILABLE)
        self.assertEqual(market.placed, [])

    def test_order_book_may_be_any_iterable(self) -> None:
        class _GeneratorMarket(FakeMarket):
            def get_order_book(self):
                return (level for level in super().get_order_book())

        market = _GeneratorMarket([book(100.0, 101.0), book(90.0, 110.0)])
        session = self._session(market)
        self.assertTrue(session.place_initial_ladder().ok)
        self.assertEqual(len(session.outstanding), 6)
        outcome = session.run()
        self.assertEqual(outcome.state, SessionState.DRAINED)
        self.assertEqual(outcome.fills, 6)

    def test_run_requires_initial_placement(self) -> None:
        session = self._session(FakeMarket([book(100.0, 101.0)]))
        with self.assertRaises(RuntimeError):
            session.run()

    def test_session_drains_when_market_crosses_every_order(self) -> None:
        market = FakeMarket([book(100.0, 101.0), book(90.0, 110.0)])
        session = self._session(market)
        self.assertTrue(session.place_initial_ladder().ok)
        self.assertEqual(session.state, SessionState.POLLING)
        placed = session.outstanding.snapshot()
        self.assertEqual(len(placed), 6)

        expected_base = 10.0
        expected_quote = 2000.0
        for order in placed:
            sign = 1.0 if order.side == BUY else -1.0
            expected_base += sign * order.volume
            expected_quote -= sign * order.volume * order.price

        outcome = session.run()

        self.assertEqual(outcome.state, SessionState.DRAINED)
        self.assertEqual(outcome.reason, "")
        self.assertEqual(outcome.refreshes, 1)
        self.assertEqual(outcome.fills, 6)
        self.assertEqual(market.cancelled, [])
        self.assertAlmostEqual(session.holdings.base, expected_base)
        self.assertAlmostEqual(session.holdings.quote, expected_quote)

    def test_first_refresh_waits_one_interval(self) -> None:
        market = FakeMarket([book(100.0, 101.0), book(90.0, 110.0)])
        session = self._session(market)
        session.place_initial_ladder()
        session.run()
        self.assertGreater(session.clock.now(), 5.0)
        self.assertEqual(market.book_calls, 2)

    def test_empty_ladder_drains_immediately(self) -> None:
        market = FakeMarket([book(100.0, 101.0)], accept=False)
        session = self._session(market)
        result = session.place_initial_ladder()
        self.assertTrue(result.ok)
        self.assertEqual(result.orders_placed, 0)
        self.assertEqual(len(market.placed), 6)

        outcome = session.run()
        self.assertEqual(outcome.state, SessionState.DRAINED)
        self.assertEqual(outcome.refreshes, 0)
        self.assertEqual(market.book_calls, 1)

    def test_lost_market_aborts_and_cancels_outstanding(self) -> None:
        market = FakeMarket([book(100.0, 101.0), book(100.0, 101.0), []])
        session = self._session(market)
        session.place_initial_ladder()
        ids = sorted(o.order_id for o in session.outstanding)

        outcome = session.run()

        self.assertEqual(outcome.state, SessionState.ABORTED)
        self.assertEqual(outcome.reason, BEST_PRICE_UNAVAILABLE)
        self.assertEqual(outcome.refreshes, 2)
        self.assertEqual(outcome.fills, 0)
        self.assertEqual(sorted(market.cancelled), ids)
        self.assertEqual(outcome.cancelled, 6)
        self.assertEqual(outcome.cancel_failures, 0)
        self.assertEqual(session.holdings, Holdings(base=10.0, quote=2000.0))

    def test_fills_before_abort_are_kept(self) -> None:
        # bid drops to 97: buys priced above it fill, then the book disappears
        market = FakeMarket([book(100.0, 101.0), book(97.0, 101.0), []])
        session = self._session(market)
        session.place_initial_ladder()
        expected_filled = [o for o in session.outstanding if o.side == BUY and o.price > 97.0]
        expected_base = 10.0 + sum(o.volume for o in expected_filled)

        outcome = session.run()

        self.assertEqual(outcome.state, SessionState.ABORTED)
        self.assertEqual(outcome.fills, len(expected_filled))
        self.assertAlmostEqual(session.holdings.base, expected_base)
        self.assertEqual(len(market.cancelled), 6 - len(expected_filled))

    def test_order_book_error_mid_session_aborts(self) -> None:
        market = FakeMarket([book(100.0, 101.0), ExchangeApiError("http_error status=503")])
        session = self._session(market)
        session.place_initial_ladder()
        outcome = session.run()
        self.assertEqual(outcome.state, SessionState.ABORTED)
        self.assertEqual(outcome.reason, ORDER_BOOK_UNAVAILABLE)
        self.assertEqual(len(market.cancelled), 6)

    def test_cancel_failures_do_not_stop_remaining_cancels(self) -> None:
        market = FakeMarket([book(100.0, 101.0), []])
        session = self._session(market)
        session.place_initial_ladder()
        ids = sorted(o.order_id for o in session.outstanding)
        market.failing_cancels = {ids[0], ids[3]}

        outcome = session.run()

        self.assertEqual(outcome.cancel_failures, 2)
        self.assertEqual(outcome.cancelled, 4)
        self.assertEqual(sorted(market.cancelled), [i for i in ids if i not in market.failing_cancels])

    def test_runtime_limit_aborts_and_cancels(self) -> None:
        market = FakeMarket([book(100.0, 101.0)])
        session = self._session(market, cfg=_cfg(max_runtime_seconds=65.0))
        session.place_initial_ladder()

        with mock.patch.object(session, "report_assets", wraps=session.report_assets) as report:
            outcome = session.run()

        self.assertEqual(outcome.state, SessionState.ABORTED)
        self.assertEqual(outcome.reason, RUNTIME_LIMIT)
        # refreshes at t=6, 12, ..., 60
        self.assertEqual(outcome.refreshes, 10)
        # one report on the t=36 refresh, one on exit
        self.assertEqual(report.call_count, 2)
        self.assertEqual(len(market.cancelled), 6)

    def test_reports_only_fire_on_refresh_ticks(self) -> None:
        market = FakeMarket([book(100.0, 101.0)])
        cfg = _cfg(max_runtime_seconds=200.0, refresh_seconds=7.0, report_seconds=10.0)
        session = self._session(market, cfg=cfg)
        session.place_initial_ladder()
        report_times = []

        def record() -> None:
            report_times.append(session.clock.now())

        with mock.patch.object(session, "report_assets", side_effect=record):
            session.run()

        for t in report_times[:-1]:
            self.assertEqual(t % 8, 0)


if __name__ == "__main__":
    unittest.main()
