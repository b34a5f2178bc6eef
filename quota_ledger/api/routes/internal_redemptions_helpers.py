from __future__ import annotations

import structlog
from fastapi import HTTPException, Request

from quota_ledger.core.config import get_settings
from quota_ledger.db.models.redemption_codes import RedemptionCode
from quota_ledger.economy.redemption.admin import RedemptionGroup
from quota_ledger.economy.redemption.errors import (
    RedemptionAlreadyUsedError,
    RedemptionDisabledError,
    RedemptionError,
    RedemptionExpiredError,
    RedemptionInvalidInputError,
    RedemptionMaxUsersReachedError,
    RedemptionNotFoundError,
    RedemptionPerUserLimitReachedError,
    RedemptionStorageError,
    RedemptionUnknownKindError,
    RedemptionUserNotFoundError,
)
from quota_ledger.economy.redemption.types import RedeemResult
from quota_ledger.services.internal_auth import (
    extract_client_ip,
    is_client_ip_allowed,
    is_internal_request_authenticated,
)

from .internal_redemptions_models import (
    RedeemResponse,
    RedemptionCodeResponse,
    RedemptionGroupResponse,
)

logger = structlog.get_logger(__name__)

ERROR_STATUS_CODES: dict[type[RedemptionError], int] = {
    RedemptionInvalidInputError: 422,
    RedemptionNotFoundError: 404,
    RedemptionUserNotFoundError: 404,
    RedemptionAlreadyUsedError: 409,
    RedemptionMaxUsersReachedError: 409,
    RedemptionPerUserLimitReachedError: 409,
    RedemptionDisabledError: 423,
    RedemptionExpiredError: 410,
    RedemptionUnknownKindError: 500,
    RedemptionStorageError: 503,
}


def _as_http_error(exc: RedemptionError) -> HTTPException:
    return HTTPException(
        status_code=ERROR_STATUS_CODES.get(type(exc), 400),
        detail={"code": exc.code, "message": exc.message},
    )


def _as_redeem_response(result: RedeemResult) -> RedeemResponse:
    return RedeemResponse(
        code_id=result.code_id,
        kind=result.kind,
        credited_quota=result.credited_quota,
        redeemed_at=result.redeemed_at,
    )


def _code_as_response(code: RedemptionCode) -> RedemptionCodeResponse:
    return RedemptionCodeResponse(
        id=code.id,
        key=code.key,
        name=code.name,
        kind=code.kind,
        quota=code.quota,
        status=code.status,
        created_at=code.created_at,
        redeemed_at=code.redeemed_at,
        expires_at=code.expires_at,
        max_uses=code.max_uses,
        max_uses_per_user=code.max_uses_per_user,
        used_count=code.used_count,
        used_user_count=code.used_user_count,
        used_user_id=code.used_user_id,
    )


def _group_as_response(group: RedemptionGroup) -> RedemptionGroupResponse:
    return RedemptionGroupResponse(
        name=group.name,
        count=group.count,
        redemptions=[_code_as_response(code) for code in group.codes],
    )


def _assert_internal_access(request: Request) -> None:
    settings = get_settings()
    client_ip = extract_client_ip(request, trusted_proxies=settings.internal_api_trusted_proxies)

    if not is_client_ip_allowed(client_ip=client_ip, allowlist=settings.internal_api_allowlist):
        logger.warning("internal_redemptions_auth_failed", reason="ip_not_allowed", client_ip=client_ip)
        raise HTTPException(status_code=403, detail={"code": "E_FORBIDDEN"})

    if not is_internal_request_authenticated(request, expected_token=settings.internal_api_token):
        logger.warning(
            "internal_redemptions_auth_failed",
            reason="invalid_credentials",
            client_ip=client_ip,
        )
        raise HTTPException(status_code=403, detail={"code": "E_FORBIDDEN"})
