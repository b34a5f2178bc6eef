from __future__ import annotations

from datetime import datetime

from sqlalchemy import func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from quota_ledger.db.models.redemption_codes import RedemptionCode
from quota_ledger.economy.redemption.constants import (
    CODE_STATUS_DISABLED,
    CODE_STATUS_ENABLED,
    CODE_STATUS_USED,
)

INVALID_CODE_STATUSES = (CODE_STATUS_USED, CODE_STATUS_DISABLED)
SAVED_CODE_COLUMNS = (
    "key",
    "name",
    "kind",
    "quota",
    "status",
    "created_at",
    "redeemed_at",
    "expires_at",
    "max_uses",
    "max_uses_per_user",
    "used_count",
    "used_user_count",
    "used_user_id",
    "deleted_at",
)


def _live_codes():
    return select(RedemptionCode).where(RedemptionCode.deleted_at.is_(None))


class RedemptionRepo:
    @staticmethod
    async def create(session: AsyncSession, *, code: RedemptionCode) -> RedemptionCode:
        session.add(code)
        await session.flush()
        return code

    @staticmethod
    async def get_by_id(session: AsyncSession, code_id: int) -> RedemptionCode | None:
        stmt = _live_codes().where(RedemptionCode.id == code_id)
        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    @staticmethod
    async def get_by_id_for_update(session: AsyncSession, code_id: int) -> RedemptionCode | None:
        stmt = _live_codes().where(RedemptionCode.id == code_id).with_for_update()
        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    @staticmethod
    async def get_by_key_for_update(session: AsyncSession, key: str) -> RedemptionCode | None:
        stmt = _live_codes().where(RedemptionCode.key == key).with_for_update()
        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    @staticmethod
    async def save_code(session: AsyncSession, *, code: RedemptionCode) -> int:
        values = {column: getattr(code, column) for column in SAVED_CODE_COLUMNS}
        stmt = update(RedemptionCode).where(RedemptionCode.id == code.id).values(**values)
        result = await session.execute(stmt)
        return int(getattr(result, "rowcount", 0) or 0)

    @staticmethod
    async def list_codes(
        session: AsyncSession,
        *,
        offset: int,
        limit: int,
    ) -> tuple[list[RedemptionCode], int]:
        total_stmt = select(func.count(RedemptionCode.id)).where(RedemptionCode.deleted_at.is_(None))
        total = int((await session.execute(total_stmt)).scalar_one() or 0)

        stmt = _live_codes().order_by(RedemptionCode.id.desc()).offset(offset).limit(limit)
        result = await session.execute(stmt)
        return list(result.scalars().all()), total

    @staticmethod
    async def search_codes(
        session: AsyncSession,
        *,
        keyword: str,
        offset: int,
        limit: int,
    ) -> tuple[list[RedemptionCode], int]:
        name_match = RedemptionCode.name.like(f"{keyword}%")
        condition = name_match
        if keyword.isdigit():
            condition = or_(RedemptionCode.id == int(keyword), name_match)

        total_stmt = select(func.count(RedemptionCode.id)).where(
            RedemptionCode.deleted_at.is_(None),
            condition,
        )
        total = int((await session.execute(total_stmt)).scalar_one() or 0)

        stmt = (
            _live_codes()
            .where(condition)
            .order_by(RedemptionCode.id.desc())
            .offset(offset)
            .limit(limit)
        )
        result = await session.execute(stmt)
        return list(result.scalars().all()), total

    @staticmethod
    async def list_names(session: AsyncSession) -> list[str]:
        stmt = (
            select(RedemptionCode.name)
            .where(RedemptionCode.deleted_at.is_(None), RedemptionCode.name != "")
            .distinct()
            .order_by(RedemptionCode.name.asc())
        )
        result = await session.execute(stmt)
        return [str(name) for name in result.scalars().all()]

    @staticmethod
    async def list_by_names(
        session: AsyncSession,
        names: list[str],
    ) -> dict[str, list[RedemptionCode]]:
        grouped: dict[str, list[RedemptionCode]] = {name: [] for name in names}
        if not names:
            return grouped

        stmt = (
            _live_codes()
            .where(RedemptionCode.name.in_(names))
            .order_by(RedemptionCode.id.desc())
        )
        result = await session.execute(stmt)
        for code in result.scalars().all():
            grouped[code.name].append(code)
        return grouped

    @staticmethod
    async def soft_delete_by_id(session: AsyncSession, *, code_id: int, now_utc: datetime) -> int:
        stmt = (
            update(RedemptionCode)
            .where(RedemptionCode.id == code_id, RedemptionCode.deleted_at.is_(None))
            .values(deleted_at=now_utc)
        )
        result = await session.execute(stmt)
        return int(getattr(result, "rowcount", 0) or 0)

    @staticmethod
    async def soft_delete_by_name(session: AsyncSession, *, name: str, now_utc: datetime) -> int:
        stmt = (
            update(RedemptionCode)
            .where(RedemptionCode.name == name, RedemptionCode.deleted_at.is_(None))
            .values(deleted_at=now_utc)
        )
        result = await session.execute(stmt)
        return int(getattr(result, "rowcount", 0) or 0)

    @staticmethod
    async def soft_delete_invalid(session: AsyncSession, *, now_utc: datetime) -> int:
        stmt = (
            update(RedemptionCode)
            .where(
                RedemptionCode.deleted_at.is_(None),
                or_(
                    RedemptionCode.status.in_(INVALID_CODE_STATUSES),
                    (RedemptionCode.status == CODE_STATUS_ENABLED)
                    & RedemptionCode.expires_at.is_not(None)
                    & (RedemptionCode.expires_at <= now_utc),
                ),
            )
            .values(deleted_at=now_utc)
        )
        result = await session.execute(stmt)
        return int(getattr(result, "rowcount", 0) or 0)
