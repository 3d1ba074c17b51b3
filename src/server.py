"""Background worker for the fuel delivery core.

Runs two periodic jobs inside the delivery domain context:
- fires simulated payment settlements whose due time has passed
- redelivers outbound webhooks that failed and are due for another attempt

Usage:
    python src/server.py                    # Run both jobs until interrupted
    python src/server.py --once             # Run one pass and exit
    python src/server.py --job settlements  # Run only the settlement job
"""

import argparse
import asyncio

import structlog

from delivery import config
from delivery.domain import delivery
from delivery.utils.logging import configure_logging

logger = structlog.get_logger(__name__)

JOBS = ("settlements", "webhooks")


def run_pass(jobs=JOBS) -> dict:
    """Run one pass of the selected jobs and return their outcome counts."""
    from delivery.services import build_services

    results = {}
    with delivery.domain_context():
        services = build_services()
        if "settlements" in jobs:
            results["settlements"] = services.payments.process_due_settlements()
        if "webhooks" in jobs:
            results["webhooks"] = services.outbound.redeliver_due()
    return results


async def run(jobs=JOBS, poll_interval=None):
    interval = poll_interval if poll_interval is not None else config.worker_poll_interval()
    logger.info("Worker started", jobs=list(jobs), poll_interval=interval)
    while True:
        try:
            run_pass(jobs)
        except Exception:
            # One bad pass must not stop the loop; the next pass retries.
            logger.exception("Worker pass failed", jobs=list(jobs))
        await asyncio.sleep(interval)


def main():
    parser = argparse.ArgumentParser(description="Fuelstream background worker")
    parser.add_argument(
        "--job",
        choices=JOBS,
        nargs="*",
        help="Specific job(s) to run (default: all)",
    )
    parser.add_argument("--once", action="store_true", help="Run a single pass and exit")
    args = parser.parse_args()

    configure_logging()
    delivery.init()

    jobs = tuple(args.job) if args.job else JOBS
    if args.once:
        logger.info("Worker pass complete", **run_pass(jobs))
        return

    try:
        asyncio.run(run(jobs))
    except KeyboardInterrupt:
        logger.info("Worker stopped")


if __name__ == "__main__":
    main()
