from __future__ import annotations

from datetime import datetime

from sqlalchemy import BigInteger, CheckConstraint, DateTime, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from quota_ledger.db.models.base import Base


class UsageFact(Base):
    __tablename__ = "usage_facts"
    __table_args__ = (
        CheckConstraint("amount > 0", name="ck_usage_facts_amount_positive"),
        CheckConstraint("code_kind IN ('SINGLE','GIFT')", name="ck_usage_facts_code_kind"),
        Index("idx_usage_facts_user_code", "user_id", "code_id"),
        Index("idx_usage_facts_created_at", "created_at"),
    )

    id: Mapped[int] = mapped_column(BigInteger, primary_key=True)
    user_id: Mapped[int] = mapped_column(BigInteger, nullable=False)
    code_id: Mapped[int] = mapped_column(BigInteger, nullable=False)
    code_kind: Mapped[str] = mapped_column(String(16), nullable=False)
    amount: Mapped[int] = mapped_column(Integer, nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
