"""Initial schema with all tables.

Revision ID: 001_initial
Revises:
Create Date: 2026-10-18

This migration creates the complete PeerStudy database schema:
- Tables: groups, users, user_subjects, messages, tasks, task_completions, notes
- Enums are stored as plain strings so SQLite and PostgreSQL match
- Indexes: membership lookups, chat history order, note duplicate checks
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = "001_initial"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

MESSAGE_TYPES = ("text", "image", "video", "pdf", "voice")
NOTE_TYPES = ("Lecture", "Assignment", "Personal", "Reference")


def upgrade() -> None:
    # ==========================================================================
    # GROUPS TABLE
    # ==========================================================================
    op.create_table(
        "groups",
        sa.Column("id", sa.Integer(), autoincrement=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("icon_url", sa.String(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id", name="pk_groups"),
    )

    # ==========================================================================
    # USERS TABLE
    # ==========================================================================
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), autoincrement=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("branch", sa.String(255), nullable=False),
        sa.Column("email", sa.String(320), nullable=False),
        sa.Column("password_hash", sa.String(255), nullable=False),
        sa.Column("goals", sa.Text(), nullable=True),
        sa.Column("group_preference", sa.Integer(), nullable=False, server_default="3"),
        sa.Column("group_id", sa.Integer(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id", name="pk_users"),
        sa.ForeignKeyConstraint(
            ["group_id"], ["groups.id"], name="fk_users_group_id_groups", ondelete="SET NULL"
        ),
    )
    op.create_index("ix_users_email", "users", ["email"], unique=True)
    op.create_index("idx_users_group_id", "users", ["group_id"])

    # ==========================================================================
    # USER_SUBJECTS TABLE
    # ==========================================================================
    op.create_table(
        "user_subjects",
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("subject_name", sa.String(255), nullable=False),
        sa.Column("score", sa.Integer(), nullable=False),
        sa.PrimaryKeyConstraint("user_id", "subject_name", name="pk_user_subjects"),
        sa.ForeignKeyConstraint(
            ["user_id"], ["users.id"], name="fk_user_subjects_user_id_users", ondelete="CASCADE"
        ),
        sa.CheckConstraint("score >= 0 AND score <= 10", name="score_range"),
    )

    # ==========================================================================
    # MESSAGES TABLE
    # ==========================================================================
    op.create_table(
        "messages",
        sa.Column("id", sa.Integer(), autoincrement=True),
        sa.Column("group_id", sa.Integer(), nullable=False),
        sa.Column("sender_id", sa.Integer(), nullable=False),
        sa.Column("sender_name", sa.String(255), nullable=False),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column(
            "type",
            sa.Enum(*MESSAGE_TYPES, name="message_type", native_enum=False),
            nullable=False,
        ),
        sa.Column("timestamp", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id", name="pk_messages"),
        sa.ForeignKeyConstraint(
            ["group_id"], ["groups.id"], name="fk_messages_group_id_groups", ondelete="CASCADE"
        ),
        sa.ForeignKeyConstraint(
            ["sender_id"], ["users.id"], name="fk_messages_sender_id_users", ondelete="CASCADE"
        ),
    )
    op.create_index("idx_messages_group_timestamp", "messages", ["group_id", "timestamp"])

    # ==========================================================================
    # TASKS / TASK_COMPLETIONS TABLES
    # ==========================================================================
    op.create_table(
        "tasks",
        sa.Column("id", sa.Integer(), autoincrement=True),
        sa.Column("group_id", sa.Integer(), nullable=False),
        sa.Column("creator_id", sa.Integer(), nullable=False),
        sa.Column("subject", sa.String(255), nullable=False),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id", name="pk_tasks"),
        sa.ForeignKeyConstraint(
            ["group_id"], ["groups.id"], name="fk_tasks_group_id_groups", ondelete="CASCADE"
        ),
        sa.ForeignKeyConstraint(
            ["creator_id"], ["users.id"], name="fk_tasks_creator_id_users", ondelete="CASCADE"
        ),
    )
    op.create_index("idx_tasks_group_id", "tasks", ["group_id"])

    op.create_table(
        "task_completions",
        sa.Column("task_id", sa.Integer(), nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("task_id", "user_id", name="pk_task_completions"),
        sa.ForeignKeyConstraint(
            ["task_id"], ["tasks.id"], name="fk_task_completions_task_id_tasks", ondelete="CASCADE"
        ),
        sa.ForeignKeyConstraint(
            ["user_id"], ["users.id"], name="fk_task_completions_user_id_users", ondelete="CASCADE"
        ),
    )

    # ==========================================================================
    # NOTES TABLE
    # ==========================================================================
    op.create_table(
        "notes",
        sa.Column("id", sa.Integer(), autoincrement=True),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("group_id", sa.Integer(), nullable=True),
        sa.Column("file_name", sa.String(), nullable=False),
        sa.Column("file_url", sa.String(), nullable=False),
        sa.Column("file_type", sa.String(), nullable=False),
        sa.Column("subject_tags", sa.JSON(), nullable=False),
        sa.Column(
            "type",
            sa.Enum(*NOTE_TYPES, name="note_type", native_enum=False),
            nullable=False,
        ),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("reviewed", sa.Boolean(), nullable=False),
        sa.Column("annotations", sa.JSON(), nullable=False),
        sa.Column("chat_message_id", sa.Integer(), nullable=True),
        sa.Column("file_size", sa.Integer(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id", name="pk_notes"),
        sa.ForeignKeyConstraint(
            ["user_id"], ["users.id"], name="fk_notes_user_id_users", ondelete="CASCADE"
        ),
        sa.ForeignKeyConstraint(
            ["group_id"], ["groups.id"], name="fk_notes_group_id_groups", ondelete="SET NULL"
        ),
    )
    op.create_index("idx_notes_user_created", "notes", ["user_id", "created_at"])
    op.create_index("idx_notes_upload_lookup", "notes", ["user_id", "file_name", "file_size"])
    op.create_index("idx_notes_url_lookup", "notes", ["user_id", "file_url"])


def downgrade() -> None:
    op.drop_table("notes")
    op.drop_table("task_completions")
    op.drop_table("tasks")
    op.drop_table("messages")
    op.drop_table("user_subjects")
    op.drop_index("idx_users_group_id", table_name="users")
    op.drop_index("ix_users_email", table_name="users")
    op.drop_table("users")
    op.drop_table("groups")
