"""Initial schema – users

Revision ID: 0001_initial
Revises:
Create Date: 2026-10-16

One table.  ``email`` holds AES-256-GCM ciphertext; ``email_hash`` is the
SHA-256 lookup key.  The lookup index is intentionally non-unique: the
service layer enforces uniqueness with a check-then-insert.
"""

from alembic import op
import sqlalchemy as sa

# Alembic revision identifiers
revision = "0001_initial"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.String(32), primary_key=True),
        sa.Column("email_hash", sa.String(64), nullable=False),
        # base64( nonce || ciphertext || tag ) – never plaintext
        sa.Column("email", sa.Text(), nullable=False),
        sa.Column("password_hash", sa.String(255), nullable=False),
        sa.Column(
            "role",
            sa.Enum("admin", "user", name="user_role"),
            nullable=False,
            server_default="user",
        ),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    )

    op.create_index("ix_users_email_hash", "users", ["email_hash"])


def downgrade() -> None:
    op.drop_index("ix_users_email_hash", table_name="users")
    op.drop_table("users")
