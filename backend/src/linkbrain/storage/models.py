"""Database models for subscriptions and the invite code index."""

import enum
from datetime import datetime
from typing import Any

from sqlalchemy import JSON, DateTime, Enum, Integer, String, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    """Base class for all models."""
    pass


class Plan(str, enum.Enum):
    """Subscription plan."""
    TRIAL = "trial"
    PRO = "pro"


class SubscriptionRecord(Base):
    """Subscription state for a single user.

    The invite code ledger is stored inline as a JSON list of documents
    (``code``, ``usedBy``, ``usedAt``, ``createdAt``) in issuance order.
    ``version`` is bumped on every UPDATE and checked in its WHERE clause,
    so a writer holding a stale copy gets ``StaleDataError`` instead of
    overwriting a newer ledger.
    """

    __tablename__ = "subscriptions"

    user_id: Mapped[str] = mapped_column(String(128), primary_key=True)
    plan: Mapped[Plan] = mapped_column(
        Enum(Plan, values_callable=lambda e: [m.value for m in e], native_enum=False),
        default=Plan.TRIAL,
        nullable=False,
    )

    trial_start_date: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    trial_end_date: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    pro_start_date: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    pro_end_date: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)

    # Referral
    referred_by: Mapped[str | None] = mapped_column(String(128), nullable=True, index=True)
    referral_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    invite_codes: Mapped[list[dict[str, Any]]] = mapped_column(JSON, default=list, nullable=False)

    version: Mapped[int] = mapped_column(Integer, nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime, server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, server_default=func.now(), onupdate=func.now(), nullable=False
    )

    __mapper_args__ = {"version_id_col": version}

    def __repr__(self):
        return f"<SubscriptionRecord(user_id={self.user_id}, plan={self.plan.value})>"


class InviteCodeIndex(Base):
    """Secondary index from invite code to the user whose ledger holds it.

    The primary key makes codes globally unique across all ledgers.
    """

    __tablename__ = "invite_code_index"

    code: Mapped[str] = mapped_column(String(16), primary_key=True)
    user_id: Mapped[str] = mapped_column(String(128), nullable=False, index=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime, server_default=func.now(), nullable=False
    )

    def __repr__(self):
        return f"<InviteCodeIndex(code={self.code}, user_id={self.user_id})>"
