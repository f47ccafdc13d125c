"""002: create credit request and disbursement tables

Revision ID: 002
Revises: 001
Create Date: 2026-10-12
"""
from typing import Sequence, Union
from alembic import op

revision: str = "002"
down_revision: Union[str, None] = "001"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE credit_limit_requests (
            id                 VARCHAR(64)   PRIMARY KEY,
            club_id            VARCHAR(64)   NOT NULL,
            player_id          VARCHAR(64)   NOT NULL,
            amount             BIGINT        NOT NULL,
            requested_limit    BIGINT        NOT NULL,
            status             VARCHAR(16)   NOT NULL DEFAULT 'PENDING',
            reason             VARCHAR(500),
            visible_to_player  BOOLEAN       NOT NULL DEFAULT TRUE,
            requested_at       TIMESTAMPTZ   NOT NULL DEFAULT NOW(),
            decided_at         TIMESTAMPTZ,
            decided_by         VARCHAR(64),
            decision_notes     VARCHAR(500),
            CONSTRAINT ck_credit_limit_requests_amount_gt_0 CHECK (amount > 0),
            CONSTRAINT ck_credit_limit_requests_requested_limit_gt_0 CHECK (requested_limit > 0),
            CONSTRAINT ck_credit_limit_requests_status CHECK (
                status IN ('PENDING', 'APPROVED', 'REJECTED')
            )
        );
    """)
    op.execute(
        "CREATE INDEX idx_credit_limit_requests_club ON credit_limit_requests (club_id, status);"
    )
    op.execute(
        "CREATE INDEX idx_credit_limit_requests_player ON credit_limit_requests (player_id);"
    )

    op.execute("""
        CREATE TABLE credit_feature_requests (
            id                VARCHAR(64)   PRIMARY KEY,
            club_id           VARCHAR(64)   NOT NULL,
            player_id         VARCHAR(64)   NOT NULL,
            kyc_status        VARCHAR(16)   NOT NULL,
            account_status    VARCHAR(16)   NOT NULL,
            status            VARCHAR(16)   NOT NULL DEFAULT 'PENDING',
            rejection_reason  VARCHAR(500),
            requested_by      VARCHAR(64),
            requested_at      TIMESTAMPTZ   NOT NULL DEFAULT NOW(),
            decided_at        TIMESTAMPTZ,
            decided_by        VARCHAR(64),
            CONSTRAINT ck_credit_feature_requests_status CHECK (
                status IN ('PENDING', 'APPROVED', 'REJECTED')
            )
        );
    """)
    op.execute(
        "CREATE INDEX idx_credit_feature_requests_club ON credit_feature_requests (club_id, status);"
    )

    op.execute("""
        CREATE TABLE disbursement_requests (
            id                        VARCHAR(64)   PRIMARY KEY,
            club_id                   VARCHAR(64)   NOT NULL,
            player_id                 VARCHAR(64)   NOT NULL,
            credit_request_id         VARCHAR(64)   NOT NULL,
            approved_limit            BIGINT        NOT NULL,
            current_balance_snapshot  BIGINT        NOT NULL,
            requested_amount          BIGINT        NOT NULL,
            status                    VARCHAR(16)   NOT NULL DEFAULT 'PENDING',
            rejection_reason          VARCHAR(500),
            created_at                TIMESTAMPTZ   NOT NULL DEFAULT NOW(),
            decided_at                TIMESTAMPTZ,
            decided_by                VARCHAR(64),
            CONSTRAINT uq_disbursement_requests_credit_request UNIQUE (credit_request_id),
            CONSTRAINT ck_disbursement_requests_requested_amount_gt_0 CHECK (requested_amount > 0),
            CONSTRAINT ck_disbursement_requests_status CHECK (
                status IN ('PENDING', 'APPROVED', 'REJECTED')
            )
        );
    """)
    op.execute(
        "CREATE INDEX idx_disbursement_requests_club ON disbursement_requests (club_id, status);"
    )
    op.execute(
        "CREATE INDEX idx_disbursement_requests_player ON disbursement_requests (player_id);"
    )


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS disbursement_requests CASCADE;")
    op.execute("DROP TABLE IF EXISTS credit_feature_requests CASCADE;")
    op.execute("DROP TABLE IF EXISTS credit_limit_requests CASCADE;")
