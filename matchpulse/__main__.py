"""
Headless live poller.

Usage:
    python -m matchpulse
    python -m matchpulse --data-url https://example.org/api/data --duration 900
"""

import argparse
import asyncio
import logging

from matchpulse.config import get_settings
from matchpulse.runtime import build_live_context
from matchpulse.telemetry import init_sentry

logger = logging.getLogger("matchpulse")


async def run(settings, duration: float) -> None:
    ctx = build_live_context(settings)
    ctx.state.subscribe(lambda state: logger.info(f"App state: {state}"))
    ctx.start()
    try:
        if duration > 0:
            await asyncio.sleep(duration)
        else:
            await asyncio.Event().wait()
    finally:
        await ctx.close()


def main() -> None:
    parser = argparse.ArgumentParser(description="Run the live match poller without the HTTP service")
    parser.add_argument("--data-url", help="Snapshot endpoint (overrides DATA_URL)")
    parser.add_argument("--duration", type=float, default=0, help="Seconds to run (0 = until interrupted)")
    parser.add_argument("--log-level", default=None, help="Logging level (overrides LOG_LEVEL)")
    args = parser.parse_args()

    settings = get_settings()
    if args.data_url:
        settings = settings.model_copy(update={"DATA_URL": args.data_url})

    logging.basicConfig(
        level=getattr(logging, (args.log_level or settings.LOG_LEVEL).upper(), logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("apscheduler").setLevel(logging.WARNING)
    init_sentry(settings)

    try:
        asyncio.run(run(settings, args.duration))
    except KeyboardInterrupt:
        logger.info("Interrupted, exiting")


if __name__ == "__main__":
    main()
