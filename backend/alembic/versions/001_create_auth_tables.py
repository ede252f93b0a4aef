"""Create users, sessions, devices and macros tables

Revision ID: 001
Revises: None
Create Date: 2026-10-19 00:00:00.000000+00:00

What:  Initial schema: accounts, their login sessions, their devices and the
       macros attached to those devices.
How:   PostgreSQL types: UUID keys, JSONB key lists, a native `accesstype`
       enum, TIMESTAMP WITH TIME ZONE. Every child row cascades on delete of
       its parent.

Rollback: downgrade() drops all four tables and the enum (all data lost).
"""

from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers
revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

access_type = postgresql.ENUM("SHARED", "RESTRICTED", "NONE", name="accesstype", create_type=False)


def upgrade() -> None:
    access_type.create(op.get_bind(), checkfirst=True)

    op.create_table(
        "users",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("password", sa.String(255), nullable=False, comment="argon2id PHC string"),
        sa.Column("access", access_type, nullable=False, server_default="RESTRICTED"),
        sa.Column(
            "keys",
            postgresql.JSONB(),
            nullable=False,
            server_default=sa.text("'[]'::jsonb"),
        ),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("NOW()"),
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("NOW()"),
        ),
        sa.PrimaryKeyConstraint("id", name="pk_users"),
        sa.UniqueConstraint("name", name="uq_users_name"),
    )

    op.create_table(
        "sessions",
        sa.Column("id", sa.String(64), nullable=False, comment="Opaque session token"),
        sa.Column("user_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("NOW()"),
        ),
        sa.PrimaryKeyConstraint("id", name="pk_sessions"),
        sa.ForeignKeyConstraint(
            ["user_id"], ["users.id"], name="fk_sessions_user_id", ondelete="CASCADE"
        ),
    )
    op.create_index("ix_sessions_user_id", "sessions", ["user_id"])

    op.create_table(
        "devices",
        sa.Column("id", sa.String(255), nullable=False, comment="Trigger service device id"),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("access", access_type, nullable=False, server_default="RESTRICTED"),
        sa.Column(
            "keys",
            postgresql.JSONB(),
            nullable=False,
            server_default=sa.text("'[]'::jsonb"),
        ),
        sa.Column("user_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("NOW()"),
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("NOW()"),
        ),
        sa.PrimaryKeyConstraint("id", name="pk_devices"),
        sa.ForeignKeyConstraint(
            ["user_id"], ["users.id"], name="fk_devices_user_id", ondelete="CASCADE"
        ),
    )
    op.create_index("ix_devices_user_id", "devices", ["user_id"])

    op.create_table(
        "macros",
        sa.Column("endpoint", sa.String(255), nullable=False, comment="Routing key and action name"),
        sa.Column("device_id", sa.String(255), nullable=False),
        sa.Column("access", access_type, nullable=False, server_default="RESTRICTED"),
        sa.Column(
            "keys",
            postgresql.JSONB(),
            nullable=False,
            server_default=sa.text("'[]'::jsonb"),
        ),
        sa.Column("params", postgresql.JSONB(), nullable=True),
        sa.PrimaryKeyConstraint("endpoint", name="pk_macros"),
        sa.ForeignKeyConstraint(
            ["device_id"], ["devices.id"], name="fk_macros_device_id", ondelete="CASCADE"
        ),
    )
    op.create_index("ix_macros_device_id", "macros", ["device_id"])


def downgrade() -> None:
    op.drop_index("ix_macros_device_id", table_name="macros")
    op.drop_table("macros")
    op.drop_index("ix_devices_user_id", table_name="devices")
    op.drop_table("devices")
    op.drop_index("ix_sessions_user_id", table_name="sessions")
    op.drop_table("sessions")
    op.drop_table("users")
    access_type.drop(op.get_bind(), checkfirst=True)
