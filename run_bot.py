#!/usr/bin/env python3
from __future__ import annotations

import argparse
import logging
from pathlib import Path

from ladder_bot.config import BotConfig
from ladder_bot.exchange_api import resolve_credentials
from ladder_bot.logs import setup_logger
from ladder_bot.runner import build_market, run_bot, write_report


def parse_args() -> argparse.Namespace:
    default_report = str((Path(__file__).resolve().parent / "reports" / "latest_report.json"))
    p = argparse.ArgumentParser(
        description="Ladder market maker: places a symmetric order ladder and tracks fills until drained."
    )
    p.add_argument("--config", type=str, default=None, help="Optional JSON config file")
    p.add_argument("--mode", choices=["sim", "http"], default=None, help="Exchange backend")
    p.add_argument("--ladder-size", type=int, default=None, help="Buy/sell pairs to place")
    p.add_argument("--base", type=float, default=None, help="Initial base-asset holdings")
    p.add_argument("--quote", type=float, default=None, help="Initial quote-asset holdings")
    p.add_argument("--seed", type=int, default=None, help="RNG seed for pricing and the simulator")
    p.add_argument("--refresh-seconds", type=float, default=None, help="Market refresh interval")
    p.add_argument("--report-seconds", type=float, default=None, help="Wallet report interval")
    p.add_argument(
        "--max-runtime-seconds",
        type=float,
        default=None,
        help="Abort and cancel outstanding orders after this many seconds.",
    )
    p.add_argument(
        "--api-base-url",
        type=str,
        default=None,
        help="Exchange simulator base URL for --mode http.",
    )
    p.add_argument("--api-key-id", type=str, default=None, help="API key id. If omitted, reads EXCHANGE_API_KEY_ID.")
    p.add_argument(
        "--private-key-path",
        type=str,
        default=None,
        help="Path to RSA private key PEM. If omitted, reads EXCHANGE_PRIVATE_KEY_PATH.",
    )
    p.add_argument("--log-file", type=str, default=None, help="Optional log file path")
    p.add_argument("--verbose", action="store_true", help="Log order books at DEBUG level")
    p.add_argument("--report", type=str, default=default_report, help="Output JSON report path")
    return p.parse_args()


def main() -> int:
    args = parse_args()

    cfg = BotConfig.from_json(args.config) if args.config else BotConfig()
    if args.mode:
        cfg.exchange.mode = args.mode
    if args.ladder_size is not None:
        cfg.ladder.ladder_size = args.ladder_size
    if args.base is not None:
        cfg.wallet.base = args.base
    if args.quote is not None:
        cfg.wallet.quote = args.quote
    if args.seed is not None:
        cfg.sim.seed = args.seed
    if args.refresh_seconds is not None:
        cfg.session.refresh_seconds = args.refresh_seconds
    if args.report_seconds is not None:
        cfg.session.report_seconds = args.report_seconds
    if args.max_runtime_seconds is not None:
        cfg.session.max_runtime_seconds = args.max_runtime_seconds
    if args.api_base_url:
        cfg.exchange.base_url = args.api_base_url
    if args.log_file:
        cfg.log_path = args.log_file

    setup_logger(cfg.log_path, level=logging.DEBUG if args.verbose else logging.INFO)

    credentials = None
    if cfg.exchange.mode == "http":
        try:
            credentials = resolve_credentials(args.api_key_id, args.private_key_path)
        except ValueError as exc:
            print(str(exc))
            return 2

    market = build_market(cfg, credentials)
    report = run_bot(cfg, market)
    write_report(args.report, cfg, report)

    outcome = report["outcome"]
    final_wallet = report["final_wallet"]
    print(f"mode={cfg.exchange.mode} ladder_size={cfg.ladder.ladder_size}")
    print(f"orders_placed={report['placement']['orders_placed']}")
    print("--- outcome ---")
    print(f"state={outcome['state']}")
    print(f"reason={outcome.get('reason', '')}")
    print(f"refreshes={outcome.get('refreshes', 0)}")
    print(f"fills={outcome.get('fills', 0)}")
    print(f"cancelled={outcome.get('cancelled', 0)}")
    print(f"cancel_failures={outcome.get('cancel_failures', 0)}")
    print(f"final_{cfg.wallet.base_asset.lower()}={final_wallet['base']:.4f}")
    print(f"final_{cfg.wallet.quote_asset.lower()}={final_wallet['quote']:.4f}")
    print(f"report={Path(args.report).resolve()}")

    if not outcome.get("started", False):
        return 2
    if outcome["state"] != "drained":
        return 4
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
