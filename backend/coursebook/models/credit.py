"""
Credit packages and the append-only credit ledger.

CreditPurchase rows are the ledger: one row per grant, never updated or
deleted. A user's granted total is SUM(credits) over their rows. Corrections
must be recorded as new rows, not edits.
"""

from datetime import datetime, timezone

from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, Index, CheckConstraint
from sqlalchemy.orm import relationship

from coursebook.db.base import Base, TimestampMixin


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class CreditPackage(Base, TimestampMixin):
    __tablename__ = "credit_packages"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(50), unique=True, nullable=False)
    credit_amount = Column(Integer, nullable=False)
    price = Column(Integer, nullable=False)  # minor currency unit

    __table_args__ = (
        CheckConstraint("credit_amount > 0", name="check_package_credit_amount_positive"),
        CheckConstraint("price >= 0", name="check_package_price_non_negative"),
    )

    def __repr__(self) -> str:
        return f"<CreditPackage(id={self.id}, name={self.name}, credits={self.credit_amount})>"


class CreditPurchase(Base):
    __tablename__ = "credit_purchases"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    credit_package_id = Column(Integer, ForeignKey("credit_packages.id"), nullable=True)
    credits = Column(Integer, nullable=False)
    price_paid = Column(Integer, nullable=False, default=0)
    granted_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)

    # Relationships
    user = relationship("User", back_populates="credit_purchases")
    credit_package = relationship("CreditPackage", lazy="selectin")

    __table_args__ = (
        CheckConstraint("credits > 0", name="check_grant_credits_positive"),
        CheckConstraint("price_paid >= 0", name="check_grant_price_non_negative"),
        Index("ix_credit_purchases_user_granted", "user_id", "granted_at"),
    )

    def __repr__(self) -> str:
        return f"<CreditPurchase(id={self.id}, user={self.user_id}, credits={self.credits})>"
