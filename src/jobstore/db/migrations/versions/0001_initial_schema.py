"""Initial schema: BINARIES, BINARIES_CONTENTS, JOBS, CONFIGS.

Revision ID: 0001
Revises:
Create Date: 2026-10-18
"""

from alembic import op
import sqlalchemy as sa

revision = "0001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "BINARIES",
        sa.Column("BIN_ID", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("APP_NAME", sa.String(255), nullable=False),
        sa.Column("BINARY_TYPE", sa.String(255), nullable=False),
        sa.Column("UPLOAD_TIME", sa.DateTime(), nullable=False),
    )
    op.create_table(
        "BINARIES_CONTENTS",
        sa.Column("BIN_ID", sa.Integer(), primary_key=True, autoincrement=False),
        sa.Column("BINARY", sa.LargeBinary(), nullable=False),
    )
    # JOBS.BIN_ID intentionally carries no foreign key to BINARIES.
    op.create_table(
        "JOBS",
        sa.Column("JOB_ID", sa.String(255), primary_key=True),
        sa.Column("CONTEXT_NAME", sa.String(255), nullable=False),
        sa.Column("BIN_ID", sa.Integer(), nullable=False),
        sa.Column("CLASSPATH", sa.String(255), nullable=False),
        sa.Column("START_TIME", sa.DateTime(), nullable=False),
        sa.Column("END_TIME", sa.DateTime(), nullable=True),
        sa.Column("ERROR", sa.Text(), nullable=True),
        sa.Column("ERROR_CLASS", sa.String(255), nullable=True),
        sa.Column("ERROR_STACK_TRACE", sa.Text(), nullable=True),
    )
    op.create_table(
        "CONFIGS",
        sa.Column("JOB_ID", sa.String(255), primary_key=True),
        sa.Column("JOB_CONFIG", sa.Text(), nullable=False),
    )


def downgrade() -> None:
    op.drop_table("CONFIGS")
    op.drop_table("JOBS")
    op.drop_table("BINARIES_CONTENTS")
    op.drop_table("BINARIES")
