from __future__ import annotations

from datetime import datetime

from sqlalchemy import BigInteger, CheckConstraint, DateTime, ForeignKey, Index, Integer
from sqlalchemy.orm import Mapped, mapped_column

from quota_ledger.db.models.base import Base


class RedemptionUsage(Base):
    __tablename__ = "redemption_usages"
    __table_args__ = (
        CheckConstraint("uses > 0", name="ck_redemption_usages_uses_positive"),
        Index("idx_redemption_usages_user", "user_id"),
    )

    code_id: Mapped[int] = mapped_column(
        BigInteger,
        ForeignKey("redemption_codes.id", ondelete="CASCADE"),
        primary_key=True,
    )
    user_id: Mapped[int] = mapped_column(BigInteger, ForeignKey("users.id"), primary_key=True)
    uses: Mapped[int] = mapped_column(Integer, nullable=False)
    first_redeemed_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    last_redeemed_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
