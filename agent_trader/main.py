"""
Main loop runner - runs scheduler cycles on an interval.

Usage:
    python -m agent_trader.main           # loop every LOOP_SECONDS
    python -m agent_trader.main --once    # single cycle, then exit
"""
import argparse
import asyncio
import logging
import signal
import sys

from .config import EngineConfig, load_config
from .agents.market_data import PolygonMarketData
from .agents.orchestrator import build_scheduler
from .errors import PersistenceError
from .store.sql import SqlAlchemyStore

logger = logging.getLogger("agent_trader.main")


class CycleLoop:
    """Runs CycleScheduler.run_cycle() until stopped."""

    def __init__(self, cfg: EngineConfig):
        self.cfg = cfg
        self.store = SqlAlchemyStore(cfg.database_url)
        self.store.init_db()
        self.market_data = PolygonMarketData.from_config(cfg)
        self.scheduler = build_scheduler(cfg, self.store, self.market_data)
        self._stop = asyncio.Event()

    async def run_once(self):
        try:
            report = await self.scheduler.run_cycle()
        except PersistenceError as e:
            logger.error(f"Cycle aborted: {e}")
            return None
        return report

    async def run(self):
        """Run cycles every loop_seconds until a shutdown signal arrives."""
        loop = asyncio.get_running_loop()
        for signum in (signal.SIGINT, signal.SIGTERM):
            try:
                loop.add_signal_handler(signum, self._signal_handler, signum)
            except NotImplementedError:
                pass

        logger.info("=" * 60)
        logger.info("AGENT TRADER STARTING")
        logger.info(f"Config: {self.cfg.describe()}")
        logger.info("=" * 60)

        while not self._stop.is_set():
            try:
                await self.run_once()
            except Exception:
                logger.exception("Unexpected error in cycle loop")

            if not self._stop.is_set():
                logger.info(f"Sleeping for {self.cfg.loop_seconds} seconds...")
                try:
                    await asyncio.wait_for(self._stop.wait(), timeout=self.cfg.loop_seconds)
                except asyncio.TimeoutError:
                    pass

        await self.shutdown()

    def _signal_handler(self, signum):
        logger.info(f"Received signal {signum}, shutting down...")
        self._stop.set()

    async def shutdown(self):
        logger.info("Shutting down Agent Trader...")
        await self.market_data.aclose()


async def _amain(cfg: EngineConfig, once: bool) -> int:
    loop = CycleLoop(cfg)
    if once:
        report = await loop.run_once()
        await loop.shutdown()
        return 0 if report is not None else 1
    await loop.run()
    return 0


def main(argv=None):
    """Entry point."""
    parser = argparse.ArgumentParser(description="Run agent trading cycles")
    parser.add_argument("--once", action="store_true", help="run a single cycle and exit")
    args = parser.parse_args(argv)

    try:
        cfg = load_config()
    except ValueError as e:
        logging.basicConfig(level=logging.ERROR)
        logger.error(f"CONFIGURATION ERROR: {e}")
        sys.exit(1)

    logging.basicConfig(
        level=cfg.log_level,
        format='%(asctime)s [AGENT_TRADER] %(levelname)s: %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )

    if not cfg.polygon_api_key:
        logger.warning("POLYGON_API_KEY not set. Quotes will fail.")

    sys.exit(asyncio.run(_amain(cfg, args.once)))


if __name__ == "__main__":
    main()
