"""SQLAlchemy ORM models for cc_disbursement.

These map to tables created by Alembic migrations.
DO NOT add/remove columns here without a corresponding migration.
"""

from datetime import datetime

from sqlalchemy import BigInteger, CheckConstraint, DateTime, String, func
from sqlalchemy.orm import Mapped, mapped_column

from src.cc_common.database import Base


class DisbursementRequestORM(Base):
    __tablename__ = "disbursement_requests"
    __table_args__ = (
        CheckConstraint(
            "requested_amount > 0", name="ck_disbursement_requests_requested_amount_gt_0"
        ),
    )

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    club_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    player_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    # One disbursement per approved credit request
    credit_request_id: Mapped[str] = mapped_column(String(64), nullable=False, unique=True)
    approved_limit: Mapped[int] = mapped_column(BigInteger, nullable=False)
    current_balance_snapshot: Mapped[int] = mapped_column(BigInteger, nullable=False)
    requested_amount: Mapped[int] = mapped_column(BigInteger, nullable=False)
    status: Mapped[str] = mapped_column(String(16), nullable=False, default="PENDING")
    rejection_reason: Mapped[str | None] = mapped_column(String(500), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    decided_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    decided_by: Mapped[str | None] = mapped_column(String(64), nullable=True)
