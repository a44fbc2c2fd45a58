"""
SQLAlchemy 2.0 Models for PeerStudy.

Uses modern declarative syntax with Mapped[] type annotations.
Integer primary keys; timestamps are assigned in Python (UTC) so the
same values are visible before and after a refresh on every backend.
"""

from datetime import datetime, timezone
from enum import Enum as PyEnum
from typing import Any, Optional

from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
)
from sqlalchemy import Enum as SAEnum
from sqlalchemy.orm import Mapped, mapped_column, relationship

from peerstudy.db.base import Base


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


# =============================================================================
# ENUMS
# =============================================================================


class MessageType(str, PyEnum):
    """Kind of chat message content."""

    TEXT = "text"
    IMAGE = "image"
    VIDEO = "video"
    PDF = "pdf"
    VOICE = "voice"


class NoteType(str, PyEnum):
    """Category of a note in the personal library."""

    LECTURE = "Lecture"
    ASSIGNMENT = "Assignment"
    PERSONAL = "Personal"
    REFERENCE = "Reference"


def _enum_values(enum_cls: type[PyEnum]) -> list[str]:
    return [member.value for member in enum_cls]


# =============================================================================
# MODELS
# =============================================================================


class User(Base):
    """
    Student account.

    A user belongs to at most one study group at a time (group_id is NULL
    for ungrouped users, which makes them match candidates).
    """

    __tablename__ = "users"
    __table_args__ = (Index("idx_users_group_id", "group_id"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    branch: Mapped[str] = mapped_column(String(255), nullable=False)
    email: Mapped[str] = mapped_column(String(320), unique=True, index=True, nullable=False)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    goals: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    group_preference: Mapped[int] = mapped_column(Integer, nullable=False, default=3, server_default="3")
    group_id: Mapped[Optional[int]] = mapped_column(
        Integer, ForeignKey("groups.id", ondelete="SET NULL"), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)

    # Relationships
    subjects: Mapped[list["UserSubject"]] = relationship(
        "UserSubject", back_populates="user", cascade="all, delete-orphan"
    )


class UserSubject(Base):
    """Subject proficiency (0-10). Replaced wholesale when a user resaves subjects."""

    __tablename__ = "user_subjects"
    __table_args__ = (
        CheckConstraint("score >= 0 AND score <= 10", name="score_range"),
    )

    user_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True
    )
    subject_name: Mapped[str] = mapped_column(String(255), primary_key=True)
    score: Mapped[int] = mapped_column(Integer, nullable=False)

    # Relationships
    user: Mapped["User"] = relationship("User", back_populates="subjects")


class Group(Base):
    """Study group. Name and icon are editable by any current member."""

    __tablename__ = "groups"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    icon_url: Mapped[Optional[str]] = mapped_column(String(), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)


class Message(Base):
    """
    Group chat message.

    sender_name is denormalised because the sender may later change name.
    content is either text or a URL to an uploaded asset.
    """

    __tablename__ = "messages"
    __table_args__ = (Index("idx_messages_group_timestamp", "group_id", "timestamp"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    group_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("groups.id", ondelete="CASCADE"), nullable=False
    )
    sender_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    sender_name: Mapped[str] = mapped_column(String(255), nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    type: Mapped[MessageType] = mapped_column(
        SAEnum(MessageType, name="message_type", values_callable=_enum_values, native_enum=False),
        nullable=False,
        default=MessageType.TEXT,
    )
    timestamp: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)


class Task(Base):
    """Shared group task. Never edited after creation."""

    __tablename__ = "tasks"
    __table_args__ = (Index("idx_tasks_group_id", "group_id"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    group_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("groups.id", ondelete="CASCADE"), nullable=False
    )
    creator_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    subject: Mapped[str] = mapped_column(String(255), nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)


class TaskCompletion(Base):
    """One user's completion of one task. Insert-only, unique per pair."""

    __tablename__ = "task_completions"

    task_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("tasks.id", ondelete="CASCADE"), primary_key=True
    )
    user_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True
    )
    completed_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)


class Note(Base):
    """
    Personal library entry: an uploaded file or a file saved from group chat.

    subject_tags and annotations are JSON lists and default to empty.
    """

    __tablename__ = "notes"
    __table_args__ = (
        Index("idx_notes_user_created", "user_id", "created_at"),
        Index("idx_notes_upload_lookup", "user_id", "file_name", "file_size"),
        Index("idx_notes_url_lookup", "user_id", "file_url"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    group_id: Mapped[Optional[int]] = mapped_column(
        Integer, ForeignKey("groups.id", ondelete="SET NULL"), nullable=True
    )
    file_name: Mapped[str] = mapped_column(String(), nullable=False)
    file_url: Mapped[str] = mapped_column(String(), nullable=False)
    file_type: Mapped[str] = mapped_column(String(), nullable=False)
    subject_tags: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    type: Mapped[NoteType] = mapped_column(
        SAEnum(NoteType, name="note_type", values_callable=_enum_values, native_enum=False),
        nullable=False,
        default=NoteType.LECTURE,
    )
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    reviewed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    annotations: Mapped[list[dict[str, Any]]] = mapped_column(JSON, nullable=False, default=list)
    chat_message_id: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    file_size: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)
