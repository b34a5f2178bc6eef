from __future__ import annotations

from datetime import datetime, timezone

import structlog

from quota_ledger.db.repo.redemption_repo import RedemptionRepo
from quota_ledger.db.repo.usage_repo import UsageRepo
from quota_ledger.db.session import SessionLocal
from quota_ledger.services.usage_reconciliation import (
    find_usage_fact_mismatches,
    reconciliation_status,
)
from quota_ledger.workers.asyncio_runner import run_async_job
from quota_ledger.workers.celery_app import celery_app

logger = structlog.get_logger(__name__)


async def run_purge_invalid_codes_async() -> dict[str, int]:
    now_utc = datetime.now(timezone.utc)
    async with SessionLocal.begin() as session:
        deleted = await RedemptionRepo.soft_delete_invalid(session, now_utc=now_utc)

    result = {"deleted_codes": deleted}
    logger.info("redemption_purge_invalid_finished", **result)
    return result


async def run_usage_fact_reconciliation_async() -> dict[str, object]:
    async with SessionLocal.begin() as session:
        uses_by_code = await UsageRepo.sum_uses_by_code(session)
        facts_by_code = await UsageRepo.count_facts_by_code(session)

    mismatches = find_usage_fact_mismatches(
        uses_by_code=uses_by_code,
        facts_by_code=facts_by_code,
    )
    result: dict[str, object] = {
        "status": reconciliation_status(len(mismatches)),
        "codes_checked": len(set(uses_by_code) | set(facts_by_code)),
        "mismatched_codes": len(mismatches),
        "missing_facts_total": sum(diff for diff in mismatches.values() if diff > 0),
    }
    if mismatches:
        logger.warning(
            "usage_fact_reconciliation_diff",
            mismatches={str(code_id): diff for code_id, diff in mismatches.items()},
            **result,
        )
    else:
        logger.info("usage_fact_reconciliation_finished", **result)
    return result


@celery_app.task(name="quota_ledger.workers.tasks.redemption_maintenance.run_purge_invalid_codes")
def run_purge_invalid_codes() -> dict[str, int]:
    return run_async_job(run_purge_invalid_codes_async())


@celery_app.task(
    name="quota_ledger.workers.tasks.redemption_maintenance.run_usage_fact_reconciliation"
)
def run_usage_fact_reconciliation() -> dict[str, object]:
    return run_async_job(run_usage_fact_reconciliation_async())


celery_app.conf.beat_schedule = celery_app.conf.beat_schedule or {}
celery_app.conf.beat_schedule.update(
    {
        "redemption-purge-invalid-daily": {
            "task": "quota_ledger.workers.tasks.redemption_maintenance.run_purge_invalid_codes",
            "schedule": 86_400.0,
            "options": {"queue": "q_normal"},
        },
        "usage-fact-reconciliation-hourly": {
            "task": "quota_ledger.workers.tasks.redemption_maintenance.run_usage_fact_reconciliation",
            "schedule": 3_600.0,
            "options": {"queue": "q_normal"},
        },
    }
)
