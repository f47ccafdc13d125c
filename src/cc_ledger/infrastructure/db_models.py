"""SQLAlchemy ORM models for cc_ledger.

These map to tables created by Alembic migrations.
DO NOT add/remove columns here without a corresponding migration.
"""

from datetime import datetime

from sqlalchemy import BigInteger, CheckConstraint, DateTime, Integer, String, func
from sqlalchemy.orm import Mapped, mapped_column

from src.cc_common.database import Base

# SQLite only autoincrements INTEGER PRIMARY KEY
_BIGINT_PK = BigInteger().with_variant(Integer, "sqlite")


class CreditAccountORM(Base):
    __tablename__ = "credit_accounts"
    __table_args__ = (
        CheckConstraint("credit_limit > 0", name="ck_credit_accounts_limit_gt_0"),
        CheckConstraint("current_balance >= 0", name="ck_credit_accounts_balance_gte_0"),
        CheckConstraint(
            "current_balance <= credit_limit", name="ck_credit_accounts_balance_lte_limit"
        ),
    )

    player_id: Mapped[str] = mapped_column(String(64), primary_key=True)
    club_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    credit_limit: Mapped[int] = mapped_column(BigInteger, nullable=False)
    current_balance: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    eligibility: Mapped[str] = mapped_column(String(16), nullable=False, default="ACTIVE")
    version: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )


class CreditMovementORM(Base):
    __tablename__ = "credit_movements"

    id: Mapped[int] = mapped_column(_BIGINT_PK, primary_key=True, autoincrement=True)
    player_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    movement_type: Mapped[str] = mapped_column(String(20), nullable=False)
    amount: Mapped[int] = mapped_column(BigInteger, nullable=False)
    balance_after: Mapped[int] = mapped_column(BigInteger, nullable=False)
    reference_type: Mapped[str | None] = mapped_column(String(30), nullable=True)
    reference_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    description: Mapped[str | None] = mapped_column(String(500), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    # NOTE: No updated_at; credit_movements is append-only
