from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field


class RedeemRequest(BaseModel):
    user_id: int = Field(gt=0)
    code: str = Field(min_length=1, max_length=64)


class RedeemResponse(BaseModel):
    code_id: int
    kind: str
    credited_quota: int = Field(ge=0)
    redeemed_at: datetime


class RedemptionCodeResponse(BaseModel):
    id: int
    key: str
    name: str
    kind: str
    quota: int
    status: str
    created_at: datetime
    redeemed_at: datetime | None = None
    expires_at: datetime | None = None
    max_uses: int = Field(ge=0)
    max_uses_per_user: int = Field(ge=0)
    used_count: int = Field(ge=0)
    used_user_count: int = Field(ge=0)
    used_user_id: int | None = None


class RedemptionCodePageResponse(BaseModel):
    items: list[RedemptionCodeResponse]
    total: int = Field(ge=0)
    page: int = Field(ge=1)
    page_size: int = Field(ge=1)


class RedemptionGroupResponse(BaseModel):
    name: str
    count: int = Field(ge=0)
    redemptions: list[RedemptionCodeResponse]


class RedemptionGroupPageResponse(BaseModel):
    groups: list[RedemptionGroupResponse]
    total: int = Field(ge=0)
    page: int = Field(ge=1)
    page_size: int = Field(ge=1)


class RedemptionCodeUpdateRequest(BaseModel):
    name: str | None = Field(default=None, max_length=64)
    quota: int | None = Field(default=None, gt=0)
    expires_at: datetime | None = None
    max_uses: int | None = Field(default=None, ge=0)
    max_uses_per_user: int | None = Field(default=None, ge=0)
    status: str | None = Field(default=None, min_length=1, max_length=16)


class RedemptionDeleteResponse(BaseModel):
    deleted: int = Field(ge=0)
