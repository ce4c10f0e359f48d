"""Session cleanup CLI — ``onboarding-cleanup``.

Connects to the database and hard-deletes resume-session rows that can
never be used again: revoked rows, and rows whose sliding expiry passed
more than ``--days`` ago.  Intended for cron jobs.

Examples::

    # Purge every revoked or expired session
    onboarding-cleanup

    # Keep expired rows around for a week (e.g. for support lookups)
    onboarding-cleanup --days 7
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import os
import sys

logger = logging.getLogger(__name__)


async def run_cleanup(*, days: int = 0) -> int:
    """Purge stale sessions and return the number of deleted rows.

    Creates its own database session and commits.  Safe to call from a
    CLI entry point or a scheduled task.
    """
    # Lazy imports to avoid loading DB machinery at module import time
    from onboarding_db.engine import dispose_engine, get_session_factory
    from onboarding_db.repository import OnboardingRepository
    from onboarding_flow.config import load_flow_settings
    from onboarding_flow.sessions import SessionLifecycleManager

    sessions = SessionLifecycleManager(OnboardingRepository(), load_flow_settings())
    factory = get_session_factory()

    try:
        async with factory() as db:
            affected = await sessions.purge_stale(db, grace_days=days)
            await db.commit()

        logger.info("Cleanup complete: affected_rows=%d, days=%d", affected, days)
        return affected
    finally:
        await dispose_engine()


def cli() -> None:
    """Console-script entry point: ``onboarding-cleanup``."""
    parser = argparse.ArgumentParser(
        prog="onboarding-cleanup",
        description="Delete revoked and expired onboarding resume sessions.",
    )
    parser.add_argument(
        "--days",
        type=int,
        default=int(os.getenv("DEFAULT_CLEANUP_GRACE_DAYS", "0")),
        help=(
            "Grace period in days: expired sessions are only deleted once "
            "they have been expired this long (default: "
            "$DEFAULT_CLEANUP_GRACE_DAYS or 0). Revoked rows always go."
        ),
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Log level (default: INFO)",
    )

    args = parser.parse_args()
    if args.days < 0:
        parser.error("--days must be >= 0")

    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )

    affected = asyncio.run(run_cleanup(days=args.days))

    print(f"Deleted rows: {affected}")
    sys.exit(0)
