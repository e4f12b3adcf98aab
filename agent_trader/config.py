"""
Configuration management for the agent decision & execution engine.
"""
import os
from dataclasses import dataclass
from enum import Enum
from typing import Optional


class TickerSelection(str, Enum):
    ROUND_ROBIN = "round_robin"
    RANDOM = "random"


@dataclass
class EngineConfig:
    polygon_api_key: str = ""
    polygon_base_url: str = "https://api.polygon.io"
    database_url: str = "sqlite:///./agent_trader.db"

    max_concurrency: int = 4
    per_agent_timeout_seconds: float = 20.0

    ticker_selection: TickerSelection = TickerSelection.ROUND_ROBIN
    ticker_seed: Optional[int] = None
    performance_seed: Optional[int] = None
    recompute_performance: bool = True

    quote_max_attempts: int = 3
    quote_timeout_seconds: float = 10.0

    loop_seconds: int = 300
    log_dir: str = "agent_trader/logs"
    journal_enabled: bool = True
    log_level: str = "INFO"

    def __post_init__(self):
        self._validate()

    def _validate(self):
        """Reject settings the scheduler cannot run with."""
        if self.max_concurrency < 1:
            raise ValueError(f"MAX_CONCURRENCY must be >= 1 (got {self.max_concurrency})")
        if self.per_agent_timeout_seconds <= 0:
            raise ValueError(
                f"PER_AGENT_TIMEOUT_SECONDS must be positive (got {self.per_agent_timeout_seconds})"
            )
        if self.loop_seconds <= 0:
            raise ValueError(f"LOOP_SECONDS must be positive (got {self.loop_seconds})")
        if self.quote_max_attempts < 1:
            raise ValueError(f"QUOTE_MAX_ATTEMPTS must be >= 1 (got {self.quote_max_attempts})")

    def describe(self) -> str:
        """Human-readable one-line summary for startup logs."""
        return (
            f"concurrency={self.max_concurrency}, "
            f"timeout={self.per_agent_timeout_seconds}s, "
            f"tickers={self.ticker_selection.value}, "
            f"recompute={self.recompute_performance}, "
            f"loop={self.loop_seconds}s"
        )


def _optional_int(name: str) -> Optional[int]:
    raw = os.getenv(name, "").strip()
    if not raw:
        return None
    return int(raw)


def load_config() -> EngineConfig:
    """Load configuration from environment variables."""
    selection_str = os.getenv("TICKER_SELECTION", "round_robin").lower()
    try:
        ticker_selection = TickerSelection(selection_str)
    except ValueError:
        ticker_selection = TickerSelection.ROUND_ROBIN

    return EngineConfig(
        polygon_api_key=os.getenv("POLYGON_API_KEY", ""),
        polygon_base_url=os.getenv("POLYGON_BASE_URL", "https://api.polygon.io"),
        database_url=os.getenv("DATABASE_URL", "sqlite:///./agent_trader.db"),
        max_concurrency=int(os.getenv("MAX_CONCURRENCY", "4")),
        per_agent_timeout_seconds=float(os.getenv("PER_AGENT_TIMEOUT_SECONDS", "20")),
        ticker_selection=ticker_selection,
        ticker_seed=_optional_int("TICKER_SEED"),
        performance_seed=_optional_int("PERFORMANCE_SEED"),
        recompute_performance=os.getenv("RECOMPUTE_PERFORMANCE", "true").lower() == "true",
        quote_max_attempts=int(os.getenv("QUOTE_MAX_ATTEMPTS", "3")),
        quote_timeout_seconds=float(os.getenv("QUOTE_TIMEOUT_SECONDS", "10")),
        loop_seconds=int(os.getenv("LOOP_SECONDS", "300")),
        log_dir=os.getenv("LOG_DIR", "agent_trader/logs"),
        journal_enabled=os.getenv("JOURNAL_ENABLED", "true").lower() == "true",
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
    )
