"""Pydantic schemas for API request/response validation."""

from peerstudy.schemas.user import (
    LoginRequest,
    MemberRead,
    RegisterRequest,
    SubjectScore,
    SubjectsUpdate,
    UserProfile,
    UserRead,
)
from peerstudy.schemas.auth import TokenResponse
from peerstudy.schemas.matching import MatchCandidate
from peerstudy.schemas.messages import (
    ChatClearedPayload,
    MessageDeletedPayload,
    MessageEditRequest,
    MessageRead,
)
from peerstudy.schemas.tasks import TaskCompletionResponse, TaskCreate, TaskRead
from peerstudy.schemas.groups import (
    GroupFormRequest,
    GroupFormResponse,
    GroupRead,
    GroupState,
    GroupUpdateRequest,
    GroupUpdateResponse,
)
from peerstudy.schemas.notes import (
    Annotation,
    NoteListResponse,
    NoteMutationResponse,
    NoteRead,
    NoteRename,
    NoteUpdate,
    SaveFromChatRequest,
)

__all__ = [
    # User
    "LoginRequest",
    "MemberRead",
    "RegisterRequest",
    "SubjectScore",
    "SubjectsUpdate",
    "UserProfile",
    "UserRead",
    # Auth
    "TokenResponse",
    # Matching
    "MatchCandidate",
    # Messages
    "ChatClearedPayload",
    "MessageDeletedPayload",
    "MessageEditRequest",
    "MessageRead",
    # Tasks
    "TaskCompletionResponse",
    "TaskCreate",
    "TaskRead",
    # Groups
    "GroupFormRequest",
    "GroupFormResponse",
    "GroupRead",
    "GroupState",
    "GroupUpdateRequest",
    "GroupUpdateResponse",
    # Notes
    "Annotation",
    "NoteListResponse",
    "NoteMutationResponse",
    "NoteRead",
    "NoteRename",
    "NoteUpdate",
    "SaveFromChatRequest",
]
