from __future__ import annotations

from fastapi import APIRouter, Query, Request

from quota_ledger.economy.redemption import admin as redemption_admin
from quota_ledger.economy.redemption.errors import RedemptionError
from quota_ledger.economy.redemption.service import RedemptionService

from .internal_redemptions_helpers import (
    _as_http_error,
    _as_redeem_response,
    _assert_internal_access,
    _code_as_response,
    _group_as_response,
)
from .internal_redemptions_models import (
    RedeemRequest,
    RedeemResponse,
    RedemptionCodePageResponse,
    RedemptionCodeResponse,
    RedemptionCodeUpdateRequest,
    RedemptionDeleteResponse,
    RedemptionGroupPageResponse,
)

router = APIRouter(prefix="/internal/redemptions", tags=["internal", "redemptions"])

NULLABLE_UPDATE_FIELDS = {"expires_at"}


@router.post("/redeem", response_model=RedeemResponse)
async def redeem_code(payload: RedeemRequest, request: Request) -> RedeemResponse:
    _assert_internal_access(request)
    try:
        result = await RedemptionService.redeem(payload.code, payload.user_id)
    except RedemptionError as exc:
        raise _as_http_error(exc) from exc
    return _as_redeem_response(result)


@router.get("", response_model=RedemptionCodePageResponse)
async def list_redemption_codes(
    request: Request,
    page: int = Query(default=1, ge=1),
    page_size: int = Query(default=20, ge=1, le=100),
) -> RedemptionCodePageResponse:
    _assert_internal_access(request)
    codes, total = await redemption_admin.list_codes(page=page, page_size=page_size)
    return RedemptionCodePageResponse(
        items=[_code_as_response(code) for code in codes],
        total=total,
        page=page,
        page_size=page_size,
    )


@router.get("/search", response_model=RedemptionCodePageResponse)
async def search_redemption_codes(
    request: Request,
    keyword: str = Query(min_length=1, max_length=64),
    page: int = Query(default=1, ge=1),
    page_size: int = Query(default=20, ge=1, le=100),
) -> RedemptionCodePageResponse:
    _assert_internal_access(request)
    codes, total = await redemption_admin.search_codes(
        keyword=keyword,
        page=page,
        page_size=page_size,
    )
    return RedemptionCodePageResponse(
        items=[_code_as_response(code) for code in codes],
        total=total,
        page=page,
        page_size=page_size,
    )


@router.get("/groups", response_model=RedemptionGroupPageResponse)
async def list_redemption_groups(
    request: Request,
    page: int = Query(default=1, ge=1),
    page_size: int = Query(default=20, ge=1, le=100),
) -> RedemptionGroupPageResponse:
    _assert_internal_access(request)
    groups, total = await redemption_admin.list_groups(page=page, page_size=page_size)
    return RedemptionGroupPageResponse(
        groups=[_group_as_response(group) for group in groups],
        total=total,
        page=page,
        page_size=page_size,
    )


@router.delete("/invalid", response_model=RedemptionDeleteResponse)
async def delete_invalid_redemption_codes(request: Request) -> RedemptionDeleteResponse:
    _assert_internal_access(request)
    deleted = await redemption_admin.delete_invalid_codes()
    return RedemptionDeleteResponse(deleted=deleted)


@router.delete("", response_model=RedemptionDeleteResponse)
async def delete_redemption_codes_by_name(
    request: Request,
    name: str = Query(min_length=1, max_length=64),
) -> RedemptionDeleteResponse:
    _assert_internal_access(request)
    try:
        deleted = await redemption_admin.delete_codes_by_name(name)
    except RedemptionError as exc:
        raise _as_http_error(exc) from exc
    return RedemptionDeleteResponse(deleted=deleted)


@router.get("/{code_id}", response_model=RedemptionCodeResponse)
async def get_redemption_code(code_id: int, request: Request) -> RedemptionCodeResponse:
    _assert_internal_access(request)
    try:
        code = await redemption_admin.get_code(code_id)
    except RedemptionError as exc:
        raise _as_http_error(exc) from exc
    return _code_as_response(code)


@router.patch("/{code_id}", response_model=RedemptionCodeResponse)
async def update_redemption_code(
    code_id: int,
    payload: RedemptionCodeUpdateRequest,
    request: Request,
) -> RedemptionCodeResponse:
    _assert_internal_access(request)
    changes = {
        field_name: value
        for field_name, value in payload.model_dump(exclude_unset=True).items()
        if value is not None or field_name in NULLABLE_UPDATE_FIELDS
    }
    try:
        code = await redemption_admin.update_code(code_id, changes=changes)
    except RedemptionError as exc:
        raise _as_http_error(exc) from exc
    return _code_as_response(code)


@router.delete("/{code_id}", response_model=RedemptionDeleteResponse)
async def delete_redemption_code(code_id: int, request: Request) -> RedemptionDeleteResponse:
    _assert_internal_access(request)
    try:
        await redemption_admin.delete_code(code_id)
    except RedemptionError as exc:
        raise _as_http_error(exc) from exc
    return RedemptionDeleteResponse(deleted=1)
