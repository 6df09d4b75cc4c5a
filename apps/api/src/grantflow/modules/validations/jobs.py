"""
Validation Background Jobs

Daily purge of expired validation tokens.

For each expired token, inside its own savepoint, the job claims (deletes) the
token and dispatches a ValidationExpiredEvent, so subscribers react exactly as
they would when an expired token is presented. All savepoints are committed in
one transaction at the end. A token that fails is rolled back to its savepoint
and logged; the others still go through. Tokens deleted concurrently by a
confirmation are skipped without an event.
"""

import logging
from datetime import datetime
from typing import Any

from apscheduler.triggers.cron import CronTrigger
from sqlalchemy.ext.asyncio import AsyncSession

from grantflow.core.config import settings
from grantflow.core.database import async_session_maker
from grantflow.core.events import dispatcher
from grantflow.core.scheduler import register_job
from grantflow.modules.shared import utcnow
from grantflow.modules.validations import repository
from grantflow.modules.validations.events import ValidationExpiredEvent

logger = logging.getLogger(__name__)

JOB_ID_PURGE_VALIDATIONS = "validations_purge_expired"


async def purge_expired(db: AsyncSession, now: datetime | None = None) -> dict[str, Any]:
    """
    Remove every validation that expired at or before ``now``.

    Returns:
        Dict with job execution summary including:
        - executed_at: Reference time of the sweep
        - total_found: Expired tokens selected
        - total_purged: Tokens deleted by this run
        - total_skipped: Tokens already deleted concurrently
        - total_errors: Tokens that failed and were left in place
    """
    now = now or utcnow()
    results: dict[str, Any] = {
        "executed_at": now.isoformat(),
        "total_found": 0,
        "total_purged": 0,
        "total_skipped": 0,
        "total_errors": 0,
    }

    expired = await repository.get_expired(db, now)
    if not expired:
        return results

    results["total_found"] = len(expired)
    logger.debug(f"Purging {len(expired)} expired validations")

    for validation in expired:
        try:
            async with db.begin_nested():
                if not await repository.delete_by_id(db, validation.id):
                    results["total_skipped"] += 1
                    continue
                await dispatcher.dispatch(ValidationExpiredEvent(validation=validation), db)
            results["total_purged"] += 1
        except Exception as e:
            logger.error(f"Error purging validation {validation.id}: {e}", exc_info=True)
            results["total_errors"] += 1

    await db.commit()

    logger.info(
        f"Validation purge completed. "
        f"Purged: {results['total_purged']}, Skipped: {results['total_skipped']}, "
        f"Errors: {results['total_errors']}"
    )
    return results


async def purge_expired_validations() -> dict[str, Any]:
    """Scheduler entry point, runs the purge in its own session."""
    async with async_session_maker() as db:
        return await purge_expired(db)


def register_validation_jobs() -> None:
    """Register the daily purge with the scheduler."""
    register_job(
        job_id=JOB_ID_PURGE_VALIDATIONS,
        func=purge_expired_validations,
        trigger=CronTrigger(hour=settings.purge_validations_hour, minute=0),
    )
    logger.info(
        f"Registered job: {JOB_ID_PURGE_VALIDATIONS} "
        f"(daily at {settings.purge_validations_hour:02d}:00 UTC)"
    )
