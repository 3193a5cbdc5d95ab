from __future__ import annotations

from dataclasses import asdict, dataclass, field
import json
from pathlib import Path
from typing import Any, Dict, Optional


@dataclass
class LadderConfig:
    ladder_size: int = 5
    bid_band: float = 0.95
    ask_band: float = 1.05
    min_volume: float = 0.1


@dataclass
class SessionConfig:
    refresh_seconds: float = 5.0
    report_seconds: float = 30.0
    idle_sleep_seconds: float = 0.05
    max_runtime_seconds: Optional[float] = None


@dataclass
class WalletConfig:
    base: float = 10.0
    quote: float = 2000.0
    base_asset: str = "ETH"
    quote_asset: str = "USD"


@dataclass
class SimulationConfig:
    seed: int = 7
    starting_mid: float = 200.0
    volatility: float = 0.01
    depth: int = 5
    level_spacing: float = 0.005
    max_level_volume: float = 5.0
    outage_probability: float = 0.0


@dataclass
class ExchangeConfig:
    mode: str = "sim"  # sim | http
    base_url: str = "http://127.0.0.1:8080"
    timeout_seconds: float = 10.0


@dataclass
class BotConfig:
    ladder: LadderConfig = field(default_factory=LadderConfig)
    session: SessionConfig = field(default_factory=SessionConfig)
    wallet: WalletConfig = field(default_factory=WalletConfig)
    sim: SimulationConfig = field(default_factory=SimulationConfig)
    exchange: ExchangeConfig = field(default_factory=ExchangeConfig)
    log_path: str = ""

    @classmethod
    def from_json(cls, file_path: str | Path) -> "BotConfig":
        raw = json.loads(Path(file_path).read_text())
        return cls(
            ladder=LadderConfig(**raw.get("ladder", {})),
            session=SessionConfig(**raw.get("session", {})),
            wallet=WalletConfig(**raw.get("wallet", {})),
            sim=SimulationConfig(**raw.get("sim", {})),
            exchange=ExchangeConfig(**raw.get("exchange", {})),
            log_path=raw.get("log_path", ""),
        )

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)
