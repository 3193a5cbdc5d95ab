import json
from pathlib import Path
import tempfile
import unittest

from fakes import FakeClock, FakeMarket, book
from ladder_bot.config import BotConfig
from ladder_bot.exchange_api import HttpMarket
from ladder_bot.runner import build_market, run_bot, write_report
from ladder_bot.sim import SimulatedExchange


class RunnerTests(unittest.TestCase):
    def _cfg(self) -> BotConfig:
        cfg = BotConfig()
        cfg.ladder.ladder_size = 2
        cfg.session.idle_sleep_seconds = 1.0
        return cfg

    def test_build_market_by_mode(self) -> None:
        cfg = self._cfg()
        self.assertIsInstance(build_market(cfg), SimulatedExchange)
        cfg.exchange.mode = "http"
        self.assertIsInstance(build_market(cfg), HttpMarket)
        cfg.exchange.mode = "ftp"
        with self.assertRaises(ValueError):
            build_market(cfg)

    def test_start_failure_report(self) -> None:
        report = run_bot(self._cfg(), FakeMarket([[]]), clock=FakeClock())
        self.assertFalse(report["placement"]["ok"])
        self.assertEqual(report["outcome"]["state"], "aborted")
        self.assertEqual(report["outcome"]["reason"], "best-price-unavailable")
        self.assertFalse(report["outcome"]["started"])
        self.assertEqual(report["final_wallet"], {"base": 10.0, "quote": 2000.0})

    def test_drained_session_report_is_written(self) -> None:
        cfg = self._cfg()
        report = run_bot(cfg, FakeMarket([book(100.0, 101.0), book(90.0, 110.0)]), clock=FakeClock())
        self.assertEqual(report["outcome"]["state"], "drained")
        self.assertEqual(report["outcome"]["fills"], 4)
        self.assertEqual(report["outstanding"], [])

        with tempfile.TemporaryDirectory() as tmp_dir:
            out_path = Path(tmp_dir) / "reports" / "report.json"
            write_report(out_path, cfg, report)
            payload = json.loads(out_path.read_text())
        self.assertIn("generated_at_utc", payload)
        self.assertEqual(payload["config"]["ladder"]["ladder_size"], 2)
        self.assertEqual(payload["outcome"]["state"], "drained")

    def test_simulated_session_ends_in_terminal_state(self) -> None:
        cfg = self._cfg()
        cfg.session.max_runtime_seconds = 600.0
        market = SimulatedExchange(cfg.sim)
        report = run_bot(cfg, market, clock=FakeClock())
        self.assertIn(report["outcome"]["state"], {"drained", "aborted"})
        if report["outcome"]["state"] == "aborted":
            self.assertEqual(report["outcome"]["reason"], "runtime-limit")
            self.assertEqual(market.resting, {})


if __name__ == "__main__":
    unittest.main()
