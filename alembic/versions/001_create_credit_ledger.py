"""001: create credit_accounts and credit_movements tables

Revision ID: 001
Revises:
Create Date: 2026-10-12
"""
from typing import Sequence, Union
from alembic import op

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE credit_accounts (
            player_id        VARCHAR(64)  PRIMARY KEY,
            club_id          VARCHAR(64)  NOT NULL,
            credit_limit     BIGINT       NOT NULL,
            current_balance  BIGINT       NOT NULL DEFAULT 0,
            eligibility      VARCHAR(16)  NOT NULL DEFAULT 'ACTIVE',
            version          BIGINT       NOT NULL DEFAULT 0,
            created_at       TIMESTAMPTZ  NOT NULL DEFAULT NOW(),
            updated_at       TIMESTAMPTZ  NOT NULL DEFAULT NOW(),
            CONSTRAINT ck_credit_accounts_limit_gt_0        CHECK (credit_limit > 0),
            CONSTRAINT ck_credit_accounts_balance_gte_0     CHECK (current_balance >= 0),
            CONSTRAINT ck_credit_accounts_balance_lte_limit CHECK (current_balance <= credit_limit),
            CONSTRAINT ck_credit_accounts_eligibility CHECK (eligibility IN ('ACTIVE', 'REMOVED'))
        );
    """)
    op.execute("CREATE INDEX idx_credit_accounts_club ON credit_accounts (club_id, eligibility);")

    op.execute("""
        CREATE TABLE credit_movements (
            id              BIGSERIAL     PRIMARY KEY,
            player_id       VARCHAR(64)   NOT NULL,
            movement_type   VARCHAR(20)   NOT NULL,
            amount          BIGINT        NOT NULL,
            balance_after   BIGINT        NOT NULL,
            reference_type  VARCHAR(30),
            reference_id    VARCHAR(64),
            description     VARCHAR(500),
            created_at      TIMESTAMPTZ   NOT NULL DEFAULT NOW(),
            CONSTRAINT ck_credit_movement_type CHECK (
                movement_type IN ('LIMIT_SET', 'CREDIT', 'DEBIT', 'DISBURSEMENT', 'REMOVED')
            ),
            CONSTRAINT ck_credit_movements_balance_gte_0 CHECK (balance_after >= 0)
        );
    """)
    op.execute("CREATE INDEX idx_credit_movements_player ON credit_movements (player_id, id DESC);")
    op.execute("""
        CREATE INDEX idx_credit_movements_reference
        ON credit_movements (reference_type, reference_id)
        WHERE reference_id IS NOT NULL;
    """)
    op.execute("COMMENT ON TABLE credit_movements IS 'Append-only; amounts in paise';")


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS credit_movements CASCADE;")
    op.execute("DROP TABLE IF EXISTS credit_accounts CASCADE;")
