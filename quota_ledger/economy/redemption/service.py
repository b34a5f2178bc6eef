from __future__ import annotations

import asyncio
import random
from datetime import datetime, timezone

import structlog
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from quota_ledger.core.config import get_settings
from quota_ledger.db.repo.redemption_repo import RedemptionRepo
from quota_ledger.db.repo.usage_repo import UsageRepo
from quota_ledger.db.repo.users_repo import UsersRepo
from quota_ledger.db.session import SessionLocal
from quota_ledger.economy.redemption.errors import (
    RedemptionError,
    RedemptionInvalidInputError,
    RedemptionNotFoundError,
    RedemptionStorageError,
    RedemptionUserNotFoundError,
)
from quota_ledger.economy.redemption.facts import append_usage_fact
from quota_ledger.economy.redemption.locks import code_locks
from quota_ledger.economy.redemption.rules import consume_gift, consume_single, ensure_admissible
from quota_ledger.economy.redemption.types import (
    Consumption,
    RedeemResult,
    SingleCode,
    apply_to_row,
    code_variant,
)

logger = structlog.get_logger(__name__)


class RedemptionService:
    @staticmethod
    async def _random_delay() -> None:
        max_delay_ms = get_settings().redeem_random_delay_max_ms
        if max_delay_ms <= 0:
            return
        await asyncio.sleep(random.uniform(0, max_delay_ms) / 1000)

    @staticmethod
    async def _consume_locked(
        session: AsyncSession,
        *,
        key: str,
        user_id: int,
        now_utc: datetime,
    ) -> Consumption:
        row = await RedemptionRepo.get_by_key_for_update(session, key)
        if row is None:
            raise RedemptionNotFoundError

        code = code_variant(row)
        ensure_admissible(code, now_utc=now_utc)

        usage = await UsageRepo.get_for_update(session, user_id=user_id, code_id=code.id)
        if isinstance(code, SingleCode):
            consumption = consume_single(code, user_id=user_id, now_utc=now_utc)
        else:
            prior_uses = usage.uses if usage is not None else 0
            consumption = consume_gift(code, prior_uses=prior_uses, now_utc=now_utc)

        credited_rows = await UsersRepo.credit_quota(
            session,
            user_id=user_id,
            amount=consumption.credited_quota,
        )
        if credited_rows == 0:
            raise RedemptionUserNotFoundError

        await RedemptionRepo.save_code(session, code=apply_to_row(consumption.code, row))
        await UsageRepo.record_use(
            session,
            usage=usage,
            user_id=user_id,
            code_id=code.id,
            now_utc=now_utc,
        )
        return consumption

    @staticmethod
    async def redeem(
        code: str,
        user_id: int,
        *,
        now_utc: datetime | None = None,
    ) -> RedeemResult:
        key = (code or "").strip()
        if not key or user_id <= 0:
            raise RedemptionInvalidInputError

        await RedemptionService._random_delay()

        try:
            async with code_locks.hold(key):
                resolved_now = now_utc or datetime.now(timezone.utc)
                async with SessionLocal.begin() as session:
                    consumption = await RedemptionService._consume_locked(
                        session,
                        key=key,
                        user_id=user_id,
                        now_utc=resolved_now,
                    )
        except RedemptionError as exc:
            logger.info("redemption_rejected", user_id=user_id, reason=exc.code)
            raise
        except SQLAlchemyError as exc:
            logger.error("redemption_storage_failed", user_id=user_id, error=str(exc))
            raise RedemptionStorageError from exc

        redeemed = consumption.code
        await append_usage_fact(
            user_id=user_id,
            code_id=redeemed.id,
            code_kind=redeemed.kind,
            amount=consumption.credited_quota,
            now_utc=resolved_now,
        )
        logger.info(
            "redemption_succeeded",
            user_id=user_id,
            code_id=redeemed.id,
            kind=redeemed.kind,
            credited_quota=consumption.credited_quota,
            first_time_user=consumption.first_time_user,
            code_status=redeemed.status,
        )
        return RedeemResult(
            code_id=redeemed.id,
            kind=redeemed.kind,
            credited_quota=consumption.credited_quota,
            redeemed_at=resolved_now,
            first_time_user=consumption.first_time_user,
        )
