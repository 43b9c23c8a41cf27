"""Create inventory tables

Revision ID: 001
Revises: None
Create Date: 2026-10-19 00:00:00.000000+00:00

What:  Creates the reference tables (manufacturers, emitter_types) and the
       owned records (flashlights, flashlight_emitters).
How:   Portable column types (sa.Uuid, sa.JSON) so the same revision runs on
       PostgreSQL in production and SQLite in local runs.

Rollback: downgrade() drops all four tables; collection data is lost.
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers
revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # ── Reference tables ──────────────────────────────────────────────────
    op.create_table(
        "manufacturers",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column(
            "name",
            sa.String(120),
            nullable=False,
            comment="Display name, matched case-sensitively by the resolver",
        ),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("CURRENT_TIMESTAMP"),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("id"),
        # Arbitrates concurrent creation of the same manufacturer
        sa.UniqueConstraint("name", name="uq_manufacturers_name"),
    )

    op.create_table(
        "emitter_types",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("name", sa.String(120), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("CURRENT_TIMESTAMP"),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("name", name="uq_emitter_types_name"),
    )

    # ── Owned records ─────────────────────────────────────────────────────
    op.create_table(
        "flashlights",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("user_id", sa.String(64), nullable=False, comment="Identity-provider user id"),
        sa.Column("model", sa.String(200), nullable=False),
        sa.Column("manufacturer_id", sa.Integer(), nullable=True),
        sa.Column("finish", sa.String(200), nullable=False, server_default=sa.text("''")),
        sa.Column("finish_group", sa.String(100), nullable=False, server_default=sa.text("''")),
        sa.Column("battery_type", sa.String(100), nullable=False),
        sa.Column("driver", sa.String(100), nullable=False, server_default=sa.text("''")),
        sa.Column("ui", sa.String(100), nullable=False, server_default=sa.text("''")),
        sa.Column("anduril", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("form_factors", sa.JSON(), nullable=False),
        sa.Column("ip_rating", sa.String(20), nullable=True),
        sa.Column("special_features", sa.JSON(), nullable=False),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("purchase_date", sa.String(32), nullable=True, comment="Free text; may be a bare year"),
        sa.Column(
            "status",
            sa.String(20),
            nullable=False,
            comment="Wanted, Ordered, Owned, Sold",
        ),
        sa.Column(
            "shipping_status",
            sa.String(20),
            nullable=True,
            comment="Received, Shipped, Ordered; kept for any status",
        ),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("CURRENT_TIMESTAMP"),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("CURRENT_TIMESTAMP"),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["manufacturer_id"], ["manufacturers.id"]),
    )
    op.create_index("ix_flashlights_user_id", "flashlights", ["user_id"])
    # Listing is always "this user's flashlights, newest first"
    op.create_index("idx_flashlights_user_created", "flashlights", ["user_id", "created_at"])

    op.create_table(
        "flashlight_emitters",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("flashlight_id", sa.Uuid(), nullable=False),
        sa.Column("emitter_type_id", sa.Integer(), nullable=True),
        sa.Column("type", sa.String(120), nullable=True),
        sa.Column("cct", sa.String(40), nullable=True),
        sa.Column("count", sa.Integer(), nullable=False, server_default=sa.text("1")),
        sa.Column("color", sa.String(20), nullable=False, server_default=sa.text("'White'")),
        sa.Column("position", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("CURRENT_TIMESTAMP"),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["flashlight_id"], ["flashlights.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["emitter_type_id"], ["emitter_types.id"]),
        sa.CheckConstraint("count >= 1", name="ck_flashlight_emitters_count_positive"),
    )
    op.create_index("ix_flashlight_emitters_flashlight_id", "flashlight_emitters", ["flashlight_id"])


def downgrade() -> None:
    op.drop_index("ix_flashlight_emitters_flashlight_id", table_name="flashlight_emitters")
    op.drop_table("flashlight_emitters")
    op.drop_index("idx_flashlights_user_created", table_name="flashlights")
    op.drop_index("ix_flashlights_user_id", table_name="flashlights")
    op.drop_table("flashlights")
    op.drop_table("emitter_types")
    op.drop_table("manufacturers")
