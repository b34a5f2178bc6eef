from __future__ import annotations

from dataclasses import replace
from datetime import datetime

from quota_ledger.economy.redemption.constants import (
    CODE_STATUS_DISABLED,
    CODE_STATUS_ENABLED,
    CODE_STATUS_USED,
)
from quota_ledger.economy.redemption.errors import (
    RedemptionAlreadyUsedError,
    RedemptionDisabledError,
    RedemptionExpiredError,
    RedemptionMaxUsersReachedError,
    RedemptionPerUserLimitReachedError,
    RedemptionUnknownKindError,
)
from quota_ledger.economy.redemption.types import CodeVariant, Consumption, GiftCode, SingleCode


def is_expired(code: CodeVariant, *, now_utc: datetime) -> bool:
    return code.expires_at is not None and code.expires_at <= now_utc


def gift_user_cap_reached(code: GiftCode) -> bool:
    return code.max_uses > 0 and code.used_user_count >= code.max_uses


def ensure_admissible(code: CodeVariant, *, now_utc: datetime) -> None:
    if isinstance(code, SingleCode):
        if code.status != CODE_STATUS_ENABLED:
            raise RedemptionAlreadyUsedError
    elif isinstance(code, GiftCode):
        if code.status == CODE_STATUS_DISABLED:
            raise RedemptionDisabledError
        if gift_user_cap_reached(code):
            raise RedemptionMaxUsersReachedError
    else:
        raise RedemptionUnknownKindError

    if is_expired(code, now_utc=now_utc):
        raise RedemptionExpiredError


def consume_single(code: SingleCode, *, user_id: int, now_utc: datetime) -> Consumption:
    return Consumption(
        code=replace(
            code,
            status=CODE_STATUS_USED,
            redeemed_at=now_utc,
            used_user_id=user_id,
        ),
        credited_quota=code.quota,
        first_time_user=True,
    )


def consume_gift(code: GiftCode, *, prior_uses: int, now_utc: datetime) -> Consumption:
    if code.max_uses_per_user > 0 and prior_uses >= code.max_uses_per_user:
        raise RedemptionPerUserLimitReachedError

    first_time_user = prior_uses == 0
    # A returning user may keep redeeming within the per-user allowance after the
    # distinct-user cap is reached; only new users are turned away here.
    if gift_user_cap_reached(code) and first_time_user:
        raise RedemptionMaxUsersReachedError

    used_user_count = code.used_user_count + (1 if first_time_user else 0)
    consumed = replace(
        code,
        used_count=code.used_count + 1,
        used_user_count=used_user_count,
        redeemed_at=now_utc,
    )
    status = CODE_STATUS_USED if gift_user_cap_reached(consumed) else CODE_STATUS_ENABLED
    return Consumption(
        code=replace(consumed, status=status),
        credited_quota=code.quota,
        first_time_user=first_time_user,
    )
