"""Record store tables: keyed JSON records and named sequences

Revision ID: 20261018_record_store
Revises:
Create Date: 2026-10-18 09:00:00.000000
"""

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "20261018_record_store"
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        "stored_records",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("key", sa.String(length=64), nullable=False),
        sa.Column("value_json", sa.Text(), nullable=False),
        sa.Column("size_bytes", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("CURRENT_TIMESTAMP"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("CURRENT_TIMESTAMP"), nullable=False),
        sa.Column("version_id", sa.Integer(), nullable=False, server_default="1"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("key", name="uq_stored_records_key"),
        sqlite_autoincrement=True,
    )
    op.create_index("ix_stored_records_key", "stored_records", ["key"], unique=False)

    op.create_table(
        "record_sequences",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(length=32), nullable=False),
        sa.Column("next_number", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("CURRENT_TIMESTAMP"), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("name", name="uq_record_sequences_name"),
        sqlite_autoincrement=True,
    )
    op.create_index("ix_record_sequences_name", "record_sequences", ["name"], unique=False)


def downgrade():
    op.drop_index("ix_record_sequences_name", table_name="record_sequences")
    op.drop_table("record_sequences")
    op.drop_index("ix_stored_records_key", table_name="stored_records")
    op.drop_table("stored_records")
