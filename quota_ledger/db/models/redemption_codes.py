from __future__ import annotations

from datetime import datetime

from sqlalchemy import BigInteger, CHAR, CheckConstraint, DateTime, Index, Integer, String, text
from sqlalchemy.orm import Mapped, mapped_column

from quota_ledger.db.models.base import Base


class RedemptionCode(Base):
    __tablename__ = "redemption_codes"
    __table_args__ = (
        CheckConstraint("kind IN ('SINGLE','GIFT')", name="ck_redemption_codes_kind"),
        CheckConstraint(
            "status IN ('ENABLED','USED','DISABLED')",
            name="ck_redemption_codes_status",
        ),
        CheckConstraint("quota > 0", name="ck_redemption_codes_quota_positive"),
        CheckConstraint("max_uses >= 0", name="ck_redemption_codes_max_uses_non_negative"),
        CheckConstraint(
            "max_uses_per_user >= 0",
            name="ck_redemption_codes_max_uses_per_user_non_negative",
        ),
        CheckConstraint("used_count >= 0", name="ck_redemption_codes_used_count_non_negative"),
        CheckConstraint(
            "used_user_count >= 0",
            name="ck_redemption_codes_used_user_count_non_negative",
        ),
        CheckConstraint(
            "max_uses = 0 OR used_user_count <= max_uses",
            name="ck_redemption_codes_used_user_count_le_max_uses",
        ),
        Index("idx_redemption_codes_name", "name"),
        Index("idx_redemption_codes_status_expires", "status", "expires_at"),
        Index("idx_redemption_codes_deleted_at", "deleted_at"),
    )

    id: Mapped[int] = mapped_column(BigInteger, primary_key=True)
    key: Mapped[str] = mapped_column(CHAR(32), unique=True, nullable=False)
    name: Mapped[str] = mapped_column(String(64), nullable=False, server_default=text("''"))
    kind: Mapped[str] = mapped_column(String(16), nullable=False)
    quota: Mapped[int] = mapped_column(Integer, nullable=False)
    status: Mapped[str] = mapped_column(String(16), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    redeemed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    expires_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    max_uses: Mapped[int] = mapped_column(Integer, nullable=False, server_default=text("1"))
    max_uses_per_user: Mapped[int] = mapped_column(
        Integer, nullable=False, server_default=text("1")
    )
    used_count: Mapped[int] = mapped_column(Integer, nullable=False, server_default=text("0"))
    used_user_count: Mapped[int] = mapped_column(Integer, nullable=False, server_default=text("0"))
    used_user_id: Mapped[int | None] = mapped_column(BigInteger, nullable=True)
    deleted_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
