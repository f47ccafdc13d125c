"""003: create waitlist and table board tables

Revision ID: 003
Revises: 002
Create Date: 2026-10-12
"""
from typing import Sequence, Union
from alembic import op

revision: str = "003"
down_revision: Union[str, None] = "002"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE waitlist_entries (
            id          VARCHAR(64)   PRIMARY KEY,
            club_id     VARCHAR(64)   NOT NULL,
            player_id   VARCHAR(64)   NOT NULL,
            table_type  VARCHAR(50),
            party_size  INTEGER       NOT NULL DEFAULT 1,
            status      VARCHAR(16)   NOT NULL DEFAULT 'WAITING',
            queue_no    BIGINT        NOT NULL,
            created_at  TIMESTAMPTZ   NOT NULL DEFAULT NOW(),
            updated_at  TIMESTAMPTZ   NOT NULL DEFAULT NOW(),
            CONSTRAINT ck_waitlist_entries_party_size_gte_1 CHECK (party_size >= 1),
            CONSTRAINT ck_waitlist_entries_status CHECK (
                status IN ('WAITING', 'SEATED', 'CANCELLED')
            )
        );
    """)
    op.execute("""
        CREATE INDEX idx_waitlist_entries_queue
        ON waitlist_entries (club_id, queue_no)
        WHERE status = 'WAITING';
    """)
    op.execute("CREATE INDEX idx_waitlist_entries_player ON waitlist_entries (player_id, status);")

    op.execute("""
        CREATE TABLE floor_tables (
            id          VARCHAR(64)   PRIMARY KEY,
            club_id     VARCHAR(64)   NOT NULL,
            name        VARCHAR(100)  NOT NULL,
            table_type  VARCHAR(50)   NOT NULL,
            max_seats   INTEGER       NOT NULL,
            status      VARCHAR(16)   NOT NULL DEFAULT 'OPEN',
            created_at  TIMESTAMPTZ   NOT NULL DEFAULT NOW(),
            updated_at  TIMESTAMPTZ   NOT NULL DEFAULT NOW(),
            CONSTRAINT ck_floor_tables_max_seats_gte_1 CHECK (max_seats >= 1),
            CONSTRAINT ck_floor_tables_status CHECK (status IN ('OPEN', 'FULL', 'CLOSED'))
        );
    """)
    op.execute("CREATE INDEX idx_floor_tables_club ON floor_tables (club_id);")

    op.execute("""
        CREATE TABLE table_seats (
            table_id   VARCHAR(64)   NOT NULL REFERENCES floor_tables (id),
            player_id  VARCHAR(64)   NOT NULL,
            chips      BIGINT        NOT NULL DEFAULT 0,
            seated_at  TIMESTAMPTZ   NOT NULL DEFAULT NOW(),
            PRIMARY KEY (table_id, player_id),
            CONSTRAINT ck_table_seats_chips_gte_0 CHECK (chips >= 0)
        );
    """)
    op.execute("CREATE INDEX idx_table_seats_player ON table_seats (player_id);")


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS table_seats CASCADE;")
    op.execute("DROP TABLE IF EXISTS floor_tables CASCADE;")
    op.execute("DROP TABLE IF EXISTS waitlist_entries CASCADE;")
