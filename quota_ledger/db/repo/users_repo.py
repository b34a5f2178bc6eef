from __future__ import annotations

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from quota_ledger.db.models.users import User


class UsersRepo:
    @staticmethod
    async def create(
        session: AsyncSession,
        *,
        username: str | None,
        quota: int = 0,
    ) -> User:
        user = User(username=username, quota=quota, status="ACTIVE")
        session.add(user)
        await session.flush()
        return user

    @staticmethod
    async def get_quota(session: AsyncSession, user_id: int) -> int | None:
        stmt = select(User.quota).where(User.id == user_id)
        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    @staticmethod
    async def credit_quota(session: AsyncSession, *, user_id: int, amount: int) -> int:
        stmt = update(User).where(User.id == user_id).values(quota=User.quota + amount)
        result = await session.execute(stmt)
        return result.rowcount or 0
