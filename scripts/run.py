#!/usr/bin/env python3
"""Main entrypoint — wires all components and runs the arbitrage engine.

Submissions go through the paper signer; a live signer is an external
service plugged in through the ``SignerService`` protocol.

Usage::

    # Run with default config
    python scripts/run.py

    # Custom config file
    python scripts/run.py --config config/settings.yaml

    # Override log level, distribute profit every 10 minutes
    python scripts/run.py --log-level DEBUG --distribute-every 600
"""

from __future__ import annotations

import argparse
import asyncio
import contextlib
import signal
import sys

import structlog

from arbcore.core.config import load_settings
from arbcore.core.exceptions import ArbError
from arbcore.core.logging import setup_logging
from arbcore.paper.signer import PaperSigner
from arbcore.paper.wallets import StaticWalletDirectory
from arbcore.storage.json_store import JsonStateStore
from arbcore.strategy.engine import ArbitrageEngine
from arbcore.venues.http_oracle import HttpPriceOracle

logger = structlog.stdlib.get_logger()


async def _distribute_periodically(engine: ArbitrageEngine, interval: float) -> None:
    while True:
        await asyncio.sleep(interval)
        try:
            result = engine.ledger.distribute_profits()
        except Exception:
            logger.exception("periodic_distribution_failed")
            continue
        if result.distributed:
            logger.info(
                "periodic_distribution",
                distributed=result.distributed,
                owner_wallet=result.owner_wallet,
            )


async def run(args: argparse.Namespace) -> int:
    """Start all components and run until interrupted."""
    settings = load_settings(args.config)
    setup_logging(level=args.log_level, config=settings.logging)

    logger.info(
        "arbcore_starting",
        pairs=[p.key for p in settings.engine.token_pairs],
        flash_loans=settings.engine.use_flash_loans,
        provider=settings.loan.provider,
    )

    # ── Collaborators ────────────────────────────────────────────
    oracle = HttpPriceOracle(settings.oracle)
    await oracle.connect()

    signer = PaperSigner(
        reject_probability=settings.paper.reject_probability,
        latency_ms=settings.paper.latency_ms,
    )
    wallets = StaticWalletDirectory.from_config(settings.paper)
    store = JsonStateStore(settings.storage.path) if settings.storage.enabled else None

    # ── Engine ───────────────────────────────────────────────────
    engine = ArbitrageEngine(oracle, signer, wallets, settings, store=store)

    try:
        await engine.start()
    except ArbError as exc:
        logger.error("engine_start_failed", error=str(exc))
        print(f"Engine failed to start: {exc}", file=sys.stderr)
        await oracle.close()
        return 1

    distributor: asyncio.Task[None] | None = None
    if args.distribute_every:
        distributor = asyncio.create_task(
            _distribute_periodically(engine, args.distribute_every),
        )

    logger.info("arbcore_running", status=engine.status)

    # ── Wait for shutdown signal ─────────────────────────────────
    stop_event = asyncio.Event()

    def _signal_handler() -> None:
        logger.info("shutdown_signal_received")
        stop_event.set()

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, _signal_handler)
        except NotImplementedError:
            # Windows: signal handlers not supported on ProactorEventLoop
            pass

    try:
        await stop_event.wait()
    except KeyboardInterrupt:
        logger.info("keyboard_interrupt")

    # ── Graceful shutdown ────────────────────────────────────────
    logger.info("arbcore_shutting_down")

    if distributor is not None:
        distributor.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await distributor

    await engine.stop()
    await oracle.close()

    # ── Final summary ────────────────────────────────────────────
    stats = engine.get_statistics()
    profit = engine.ledger.get_statistics()
    logger.info(
        "arbcore_stopped",
        opportunities_detected=stats.opportunities_detected,
        executed=stats.executed,
        succeeded=stats.succeeded,
        total_profit=stats.total_profit,
        total_usd_profit=profit.total_usd_profit,
        success_rate=profit.overall_success_rate,
    )

    return 0


def main() -> None:
    parser = argparse.ArgumentParser(
        description="Run the cross-venue arbitrage engine.",
    )
    parser.add_argument(
        "--config",
        default=None,
        help="Path to settings YAML (default: config/settings.yaml)",
    )
    parser.add_argument(
        "--log-level",
        default=None,
        help="Log level override: DEBUG, INFO, WARNING, ERROR",
    )
    parser.add_argument(
        "--distribute-every",
        type=float,
        default=0.0,
        help="Seconds between profit distributions (0 disables)",
    )
    args = parser.parse_args()

    code = asyncio.run(run(args))
    sys.exit(code)


if __name__ == "__main__":
    main()
