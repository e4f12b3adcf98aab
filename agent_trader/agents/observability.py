"""
CycleJournal - Logging and audit trail for scheduler cycles.

Purpose: Persist every batch report as JSON and every executed paper trade as
a JSONL line, so a cycle can be reviewed after the fact.
"""
import json
import logging
from pathlib import Path
from typing import List

from .schemas import BatchReport, CycleOutcome, TradeRecord
from ..config import EngineConfig

logger = logging.getLogger("agent_trader.agents.observability")


class CycleJournal:
    """Writes cycle reports and trades under log_dir."""

    def __init__(self, log_dir: str):
        self.log_dir = Path(log_dir)
        self._ensure_log_dir()

    @classmethod
    def from_config(cls, config: EngineConfig) -> "CycleJournal":
        return cls(config.log_dir)

    def _ensure_log_dir(self):
        """Ensure log directories exist."""
        self.log_dir.mkdir(parents=True, exist_ok=True)
        (self.log_dir / "cycles").mkdir(exist_ok=True)
        (self.log_dir / "trades").mkdir(exist_ok=True)

    def log_cycle(self, report: BatchReport) -> Path:
        """Write the full batch report; a write failure is logged, not raised."""
        timestamp = report.started_at.strftime("%Y%m%d_%H%M%S")
        filename = self.log_dir / "cycles" / f"cycle_{timestamp}_{report.cycle_id[:8]}.json"

        try:
            payload = report.model_dump(mode="json")
            payload["executed_count"] = report.executed_count
            payload["held_count"] = report.held_count
            payload["failed_count"] = report.failed_count
            with open(filename, "w") as f:
                json.dump(payload, f, indent=2, default=str)
            logger.info(f"Cycle logged: {filename}")
        except OSError as e:
            logger.error(f"Failed to log cycle: {e}")

        self._log_summary(report)
        return filename

    def _log_summary(self, report: BatchReport):
        """Log a summary line for quick review."""
        logger.info(
            f"CYCLE SUMMARY | "
            f"Agents: {report.processed_count} | "
            f"Executed: {report.executed_count} | "
            f"Held: {report.held_count} | "
            f"Failed: {report.failed_count} | "
            f"Duration: {report.duration_ms:.0f}ms"
        )
        for result in report.results:
            if result.outcome == CycleOutcome.FAILED:
                logger.warning(f"Agent {result.agent_id} ({result.agent_name}) failed: {result.error}")

    def log_trade(self, trade: TradeRecord):
        """Append one executed trade to the day's JSONL file."""
        date_str = trade.executed_at.strftime("%Y%m%d")
        trades_file = self.log_dir / "trades" / f"trades_{date_str}.jsonl"

        try:
            with open(trades_file, "a") as f:
                f.write(json.dumps(trade.model_dump(mode="json"), default=str) + "\n")
            logger.info(
                f"Trade logged: {trade.ticker} {trade.side.value} "
                f"{trade.quantity} @ ${trade.price:.2f}"
            )
        except OSError as e:
            logger.error(f"Failed to log trade: {e}")

    def recent_cycles(self, limit: int = 10) -> List[dict]:
        """Most recent cycle reports, newest first."""
        files = sorted((self.log_dir / "cycles").glob("cycle_*.json"), reverse=True)[:limit]
        reports = []
        for path in files:
            try:
                with open(path) as f:
                    reports.append(json.load(f))
            except (OSError, json.JSONDecodeError) as e:
                logger.warning(f"Skipping unreadable cycle log {path}: {e}")
        return reports
