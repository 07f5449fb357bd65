"""CLI entry point del monitor remoto.

Corre el Polling Reconciler contra una API de telemetría y loguea las
alertas que se crean.
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import signal
from typing import Optional, Sequence

from common.config import get_settings
from telemetry_api.alerts import AlertLedger, build_notifier
from telemetry_api.core.classification import ThresholdEvaluator
from telemetry_api.core.domain.channels import load_channel_configs

from .reconciler import PollingReconciler, TickStatus
from .sources import HttpReadingsSource

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    settings = get_settings()
    p = argparse.ArgumentParser(description="Telemetry polling monitor (reconciler + alert ledger)")
    p.add_argument("--base-url", default=settings.api_base_url)
    p.add_argument("--interval", type=float, default=settings.poll_interval_seconds)
    p.add_argument("--limit", type=int, default=settings.poll_fetch_limit)
    p.add_argument("--channels-file", default=settings.channels_file)
    p.add_argument("--once", action="store_true", help="run a single tick and exit")
    return p


async def _run(args: argparse.Namespace) -> int:
    settings = get_settings()
    channels = load_channel_configs(args.channels_file)
    ledger = AlertLedger(
        debounce_ms=settings.alert_debounce_ms,
        notifier=build_notifier(settings.notify_webhook_url, settings.notify_timeout_seconds),
        history_limit=settings.alert_history_limit,
    )
    source = HttpReadingsSource(args.base_url, timeout_seconds=settings.poll_timeout_seconds)
    reconciler = PollingReconciler(
        source=source,
        channels=channels,
        ledger=ledger,
        evaluator=ThresholdEvaluator(
            critical_multiplier=settings.critical_multiplier,
            offline_threshold_ms=settings.offline_threshold_ms,
        ),
        fetch_limit=args.limit,
        history_limit=settings.poll_history_limit,
        offline_threshold_ms=settings.offline_threshold_ms,
        connected_threshold_ms=settings.connected_threshold_ms,
        fetch_timeout=settings.poll_timeout_seconds,
    )

    logger.info("Monitor started against %s", source.url)
    logger.info("Config: interval=%.1fs limit=%d channels=%d", args.interval, args.limit, len(channels))

    try:
        if args.once:
            result = await reconciler.tick()
            logger.info("Tick %s: %s", result.status.value, reconciler.stats)
            return 0 if result.status is TickStatus.OK else 1

        stop = asyncio.Event()
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGINT, signal.SIGTERM):
            try:
                loop.add_signal_handler(sig, stop.set)
            except NotImplementedError:
                # Windows: sin handlers, Ctrl+C corta el loop con KeyboardInterrupt.
                pass
        await reconciler.run(args.interval, stop)
        return 0
    finally:
        await source.aclose()


def main(argv: Optional[Sequence[str]] = None) -> int:
    settings = get_settings()
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s - %(levelname)s - %(message)s",
        handlers=[logging.StreamHandler()],
    )
    args = build_parser().parse_args(argv)
    return asyncio.run(_run(args))


if __name__ == "__main__":
    raise SystemExit(main())
