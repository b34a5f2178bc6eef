from __future__ import annotations

from datetime import datetime

import structlog
from sqlalchemy.exc import SQLAlchemyError

from quota_ledger.core.config import get_settings
from quota_ledger.db.models.usage_facts import UsageFact
from quota_ledger.db.repo.usage_repo import UsageRepo
from quota_ledger.db.session import SessionLocal
from quota_ledger.economy.redemption.constants import CODE_KIND_GIFT
from quota_ledger.services.quota_display import format_quota

logger = structlog.get_logger(__name__)

CODE_KIND_LABELS = {CODE_KIND_GIFT: "gift code"}


def build_fact_content(*, code_kind: str, code_id: int, amount: int) -> str:
    settings = get_settings()
    label = CODE_KIND_LABELS.get(code_kind, "redemption code")
    amount_text = format_quota(
        amount,
        quota_per_unit=settings.quota_per_unit,
        display_in_currency=settings.quota_display_in_currency,
    )
    return f"Topped up {amount_text} via {label}, {label} ID {code_id}"


async def append_usage_fact(
    *,
    user_id: int,
    code_id: int,
    code_kind: str,
    amount: int,
    now_utc: datetime,
) -> bool:
    try:
        async with SessionLocal.begin() as session:
            await UsageRepo.append_fact(
                session,
                fact=UsageFact(
                    user_id=user_id,
                    code_id=code_id,
                    code_kind=code_kind,
                    amount=amount,
                    content=build_fact_content(code_kind=code_kind, code_id=code_id, amount=amount),
                    created_at=now_utc,
                ),
            )
    except SQLAlchemyError as exc:
        logger.warning(
            "usage_fact_append_failed",
            user_id=user_id,
            code_id=code_id,
            amount=amount,
            error=str(exc),
        )
        return False
    return True
