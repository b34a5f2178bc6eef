from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone

import structlog

from quota_ledger.db.models.redemption_codes import RedemptionCode
from quota_ledger.db.repo.redemption_repo import RedemptionRepo
from quota_ledger.db.session import SessionLocal
from quota_ledger.economy.redemption.constants import (
    ADMIN_SETTABLE_STATUSES,
    CODE_KIND_GIFT,
    CODE_STATUS_DISABLED,
    CODE_STATUS_ENABLED,
    CODE_STATUS_USED,
)
from quota_ledger.economy.redemption.errors import (
    RedemptionInvalidInputError,
    RedemptionNotFoundError,
)
from quota_ledger.economy.redemption.locks import code_locks
from quota_ledger.economy.redemption.rules import gift_user_cap_reached
from quota_ledger.economy.redemption.types import code_variant

logger = structlog.get_logger(__name__)

ADMIN_EDITABLE_FIELDS = ("name", "quota", "expires_at", "max_uses", "max_uses_per_user", "status")


@dataclass(slots=True)
class RedemptionGroup:
    name: str
    codes: list[RedemptionCode]

    @property
    def count(self) -> int:
        return len(self.codes)


def _page_window(page: int, page_size: int) -> tuple[int, int]:
    resolved_size = max(1, min(100, int(page_size)))
    resolved_page = max(1, int(page))
    return (resolved_page - 1) * resolved_size, resolved_size


async def list_codes(*, page: int, page_size: int) -> tuple[list[RedemptionCode], int]:
    offset, limit = _page_window(page, page_size)
    async with SessionLocal.begin() as session:
        return await RedemptionRepo.list_codes(session, offset=offset, limit=limit)


async def search_codes(
    *,
    keyword: str,
    page: int,
    page_size: int,
) -> tuple[list[RedemptionCode], int]:
    offset, limit = _page_window(page, page_size)
    async with SessionLocal.begin() as session:
        return await RedemptionRepo.search_codes(
            session,
            keyword=keyword.strip(),
            offset=offset,
            limit=limit,
        )


async def list_groups(*, page: int, page_size: int) -> tuple[list[RedemptionGroup], int]:
    offset, limit = _page_window(page, page_size)
    async with SessionLocal.begin() as session:
        names = await RedemptionRepo.list_names(session)
        paged_names = names[offset : offset + limit]
        grouped = await RedemptionRepo.list_by_names(session, paged_names)
    groups = [RedemptionGroup(name=name, codes=grouped.get(name, [])) for name in paged_names]
    return groups, len(names)


async def get_code(code_id: int) -> RedemptionCode:
    async with SessionLocal.begin() as session:
        code = await RedemptionRepo.get_by_id(session, code_id)
    if code is None:
        raise RedemptionNotFoundError
    return code


def _validate_changes(code: RedemptionCode, changes: dict[str, object]) -> None:
    unknown = set(changes) - set(ADMIN_EDITABLE_FIELDS)
    if unknown:
        raise RedemptionInvalidInputError(f"Fields cannot be edited: {', '.join(sorted(unknown))}.")
    if "status" in changes and changes["status"] not in ADMIN_SETTABLE_STATUSES:
        raise RedemptionInvalidInputError("Status must be ENABLED or DISABLED.")
    quota = changes.get("quota")
    if quota is not None and int(quota) <= 0:
        raise RedemptionInvalidInputError("Quota must be positive.")
    max_uses = changes.get("max_uses")
    if max_uses is not None:
        if int(max_uses) < 0:
            raise RedemptionInvalidInputError("max_uses cannot be negative.")
        if code.kind == CODE_KIND_GIFT and 0 < int(max_uses) < code.used_user_count:
            raise RedemptionInvalidInputError("max_uses cannot drop below the users already served.")
    max_uses_per_user = changes.get("max_uses_per_user")
    if max_uses_per_user is not None and int(max_uses_per_user) < 0:
        raise RedemptionInvalidInputError("max_uses_per_user cannot be negative.")


def _sync_gift_status(code: RedemptionCode) -> None:
    if code.kind != CODE_KIND_GIFT or code.status == CODE_STATUS_DISABLED:
        return
    code.status = CODE_STATUS_USED if gift_user_cap_reached(code_variant(code)) else CODE_STATUS_ENABLED


async def update_code(code_id: int, *, changes: dict[str, object]) -> RedemptionCode:
    # The key is needed to queue behind in-flight redemptions of the same code.
    current = await get_code(code_id)
    async with code_locks.hold(current.key):
        async with SessionLocal.begin() as session:
            code = await RedemptionRepo.get_by_id_for_update(session, code_id)
            if code is None:
                raise RedemptionNotFoundError
            _validate_changes(code, changes)
            for field_name, value in changes.items():
                setattr(code, field_name, value)
            _sync_gift_status(code)
            await session.flush()

    logger.info("redemption_code_updated", code_id=code_id, fields=sorted(changes))
    return code


async def delete_code(code_id: int, *, now_utc: datetime | None = None) -> None:
    now_utc = now_utc or datetime.now(timezone.utc)
    async with SessionLocal.begin() as session:
        deleted = await RedemptionRepo.soft_delete_by_id(session, code_id=code_id, now_utc=now_utc)
    if deleted == 0:
        raise RedemptionNotFoundError
    logger.info("redemption_code_deleted", code_id=code_id)


async def delete_codes_by_name(name: str, *, now_utc: datetime | None = None) -> int:
    if not name.strip():
        raise RedemptionInvalidInputError("Name must not be empty.")
    now_utc = now_utc or datetime.now(timezone.utc)
    async with SessionLocal.begin() as session:
        deleted = await RedemptionRepo.soft_delete_by_name(session, name=name, now_utc=now_utc)
    logger.info("redemption_codes_deleted_by_name", name=name, deleted=deleted)
    return deleted


async def delete_invalid_codes(*, now_utc: datetime | None = None) -> int:
    now_utc = now_utc or datetime.now(timezone.utc)
    async with SessionLocal.begin() as session:
        deleted = await RedemptionRepo.soft_delete_invalid(session, now_utc=now_utc)
    logger.info("redemption_invalid_codes_deleted", deleted=deleted)
    return deleted
