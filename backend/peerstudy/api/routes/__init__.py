"""API routes package."""

from peerstudy.api.routes import (
    auth,
    groups,
    matching,
    messages,
    notes,
    realtime,
    uploads,
    users,
)

__all__ = [
    "auth",
    "groups",
    "matching",
    "messages",
    "notes",
    "realtime",
    "uploads",
    "users",
]
