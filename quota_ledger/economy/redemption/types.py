from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from quota_ledger.db.models.redemption_codes import RedemptionCode
from quota_ledger.economy.redemption.constants import CODE_KIND_GIFT, CODE_KIND_SINGLE
from quota_ledger.economy.redemption.errors import RedemptionUnknownKindError


@dataclass(frozen=True, slots=True)
class SingleCode:
    id: int
    quota: int
    status: str
    expires_at: datetime | None
    redeemed_at: datetime | None
    used_user_id: int | None

    @property
    def kind(self) -> str:
        return CODE_KIND_SINGLE


@dataclass(frozen=True, slots=True)
class GiftCode:
    id: int
    quota: int
    status: str
    expires_at: datetime | None
    redeemed_at: datetime | None
    max_uses: int
    max_uses_per_user: int
    used_count: int
    used_user_count: int

    @property
    def kind(self) -> str:
        return CODE_KIND_GIFT


CodeVariant = SingleCode | GiftCode


@dataclass(frozen=True, slots=True)
class Consumption:
    code: CodeVariant
    credited_quota: int
    first_time_user: bool


@dataclass(slots=True)
class RedeemResult:
    code_id: int
    kind: str
    credited_quota: int
    redeemed_at: datetime
    first_time_user: bool


def code_variant(row: RedemptionCode) -> CodeVariant:
    if row.kind == CODE_KIND_SINGLE:
        return SingleCode(
            id=row.id,
            quota=row.quota,
            status=row.status,
            expires_at=row.expires_at,
            redeemed_at=row.redeemed_at,
            used_user_id=row.used_user_id,
        )
    if row.kind == CODE_KIND_GIFT:
        return GiftCode(
            id=row.id,
            quota=row.quota,
            status=row.status,
            expires_at=row.expires_at,
            redeemed_at=row.redeemed_at,
            max_uses=row.max_uses,
            max_uses_per_user=row.max_uses_per_user,
            used_count=row.used_count,
            used_user_count=row.used_user_count,
        )
    raise RedemptionUnknownKindError


def apply_to_row(code: CodeVariant, row: RedemptionCode) -> RedemptionCode:
    row.status = code.status
    row.redeemed_at = code.redeemed_at
    if isinstance(code, SingleCode):
        row.used_user_id = code.used_user_id
    else:
        row.used_count = code.used_count
        row.used_user_count = code.used_user_count
    return row
