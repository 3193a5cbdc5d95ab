from __future__ import annotations

from datetime import datetime, timezone
import json
import logging
from pathlib import Path
import random
from typing import Any, Optional

from .config import BotConfig
from .exchange_api import ExchangeClient, ExchangeCredentials, HttpMarket
from .market import Market
from .models import Holdings
from .scheduler import Clock
from .session import SessionState, TradingSession
from .sim import SimulatedExchange

logger = logging.getLogger("ladder_bot")


def build_market(cfg: BotConfig, credentials: Optional[ExchangeCredentials] = None) -> Market:
    mode = cfg.exchange.mode.strip().lower()
    if mode == "sim":
        return SimulatedExchange(cfg.sim, random.Random(cfg.sim.seed))
    if mode == "http":
        client = ExchangeClient(
            base_url=cfg.exchange.base_url,
            credentials=credentials,
            timeout_seconds=cfg.exchange.timeout_seconds,
        )
        return HttpMarket(client)
    raise ValueError(f"Unsupported exchange mode: {cfg.exchange.mode}")


def run_bot(
    cfg: BotConfig,
    market: Market,
    rng: Optional[random.Random] = None,
    clock: Optional[Clock] = None,
) -> dict[str, Any]:
    holdings = Holdings(base=cfg.wallet.base, quote=cfg.wallet.quote)
    session = TradingSession(
        market=market,
        holdings=holdings,
        cfg=cfg,
        rng=rng or random.Random(cfg.sim.seed),
        clock=clock,
    )

    placement = session.place_initial_ladder(cfg.ladder.ladder_size)
    report: dict[str, Any] = {
        "starting_wallet": {"base": cfg.wallet.base, "quote": cfg.wallet.quote},
        "placement": {
            "ok": placement.ok,
            "reason": placement.reason,
            "orders_placed": placement.orders_placed,
        },
    }
    if not placement.ok:
        report["outcome"] = {
            "state": SessionState.ABORTED.value,
            "reason": placement.reason,
            "started": False,
        }
        report["final_wallet"] = {"base": holdings.base, "quote": holdings.quote}
        return report

    outcome = session.run()
    report["outcome"] = {**outcome.to_dict(), "started": True}
    report["final_wallet"] = {"base": holdings.base, "quote": holdings.quote}
    report["outstanding"] = [
        {"side": o.side, "order_id": o.order_id, "price": o.price, "volume": o.volume}
        for o in session.outstanding
    ]
    return report


def write_report(file_path: str | Path, cfg: BotConfig, report: dict[str, Any]) -> None:
    p = Path(file_path)
    p.parent.mkdir(parents=True, exist_ok=True)
    payload: dict[str, Any] = {
        "generated_at_utc": datetime.now(timezone.utc).isoformat(),
        "config": cfg.to_dict(),
        **report,
    }
    p.write_text(json.dumps(payload, indent=2, default=str))
    logger.info("report_written path=%s", p.resolve())
