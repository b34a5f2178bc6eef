from __future__ import annotations

from datetime import datetime

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from quota_ledger.db.models.redemption_usages import RedemptionUsage
from quota_ledger.db.models.usage_facts import UsageFact


class UsageRepo:
    @staticmethod
    async def count_uses(session: AsyncSession, *, user_id: int, code_id: int) -> int:
        stmt = select(RedemptionUsage.uses).where(
            RedemptionUsage.code_id == code_id,
            RedemptionUsage.user_id == user_id,
        )
        result = await session.execute(stmt)
        return int(result.scalar_one_or_none() or 0)

    @staticmethod
    async def get_for_update(
        session: AsyncSession,
        *,
        user_id: int,
        code_id: int,
    ) -> RedemptionUsage | None:
        stmt = (
            select(RedemptionUsage)
            .where(
                RedemptionUsage.code_id == code_id,
                RedemptionUsage.user_id == user_id,
            )
            .with_for_update()
        )
        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    @staticmethod
    async def record_use(
        session: AsyncSession,
        *,
        usage: RedemptionUsage | None,
        user_id: int,
        code_id: int,
        now_utc: datetime,
    ) -> RedemptionUsage:
        if usage is None:
            usage = RedemptionUsage(
                code_id=code_id,
                user_id=user_id,
                uses=1,
                first_redeemed_at=now_utc,
                last_redeemed_at=now_utc,
            )
            session.add(usage)
        else:
            usage.uses += 1
            usage.last_redeemed_at = now_utc
        await session.flush()
        return usage

    @staticmethod
    async def append_fact(session: AsyncSession, *, fact: UsageFact) -> UsageFact:
        session.add(fact)
        await session.flush()
        return fact

    @staticmethod
    async def count_facts(session: AsyncSession, *, user_id: int, code_id: int) -> int:
        stmt = select(func.count(UsageFact.id)).where(
            UsageFact.user_id == user_id,
            UsageFact.code_id == code_id,
        )
        result = await session.execute(stmt)
        return int(result.scalar_one() or 0)

    @staticmethod
    async def sum_uses_by_code(session: AsyncSession) -> dict[int, int]:
        stmt = select(
            RedemptionUsage.code_id,
            func.coalesce(func.sum(RedemptionUsage.uses), 0),
        ).group_by(RedemptionUsage.code_id)
        result = await session.execute(stmt)
        return {int(code_id): int(total or 0) for code_id, total in result.all()}

    @staticmethod
    async def count_facts_by_code(session: AsyncSession) -> dict[int, int]:
        stmt = select(UsageFact.code_id, func.count(UsageFact.id)).group_by(UsageFact.code_id)
        result = await session.execute(stmt)
        return {int(code_id): int(total or 0) for code_id, total in result.all()}
