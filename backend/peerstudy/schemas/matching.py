"""Peer matching schemas."""

from pydantic import Field

from peerstudy.schemas.base import BaseSchema, IDMixin
from peerstudy.schemas.user import SubjectScore


class MatchCandidate(BaseSchema, IDMixin):
    """A ranked recommendation for the requesting user."""

    name: str
    branch: str
    goals: str | None = None
    group_preference: int
    compatibility: int = Field(..., ge=0)
    strongest_subjects: list[str] = Field(default_factory=list)
    all_subjects: list[SubjectScore] = Field(default_factory=list)
