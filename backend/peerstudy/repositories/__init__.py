"""Data-access layer: repository contracts and their SQLAlchemy implementation."""

from peerstudy.repositories.base import (
    GroupRepository,
    MessageRepository,
    NoteQuery,
    NoteRepository,
    TaskRepository,
    TaskRow,
    UnitOfWork,
    UserRepository,
)
from peerstudy.repositories.sql import SqlUnitOfWork

__all__ = [
    "GroupRepository",
    "MessageRepository",
    "NoteQuery",
    "NoteRepository",
    "SqlUnitOfWork",
    "TaskRepository",
    "TaskRow",
    "UnitOfWork",
    "UserRepository",
]
