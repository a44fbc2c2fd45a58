"""User and profile schemas."""

from pydantic import AliasChoices, EmailStr, Field, field_validator

from peerstudy.schemas.base import BaseSchema, IDMixin


class SubjectScore(BaseSchema):
    """One subject proficiency, 0-10."""

    subject_name: str
    score: int = Field(..., ge=0, le=10)


class UserRead(BaseSchema, IDMixin):
    """Schema for reading user data."""

    name: str
    branch: str
    email: str
    goals: str | None = None
    group_preference: int
    group_id: int | None = None


class MemberRead(BaseSchema, IDMixin):
    """Group member as listed in group state."""

    name: str
    branch: str
    email: str
    goals: str | None = None


class UserProfile(UserRead):
    """Current user's profile with subject proficiencies."""

    subjects: list[SubjectScore] = Field(default_factory=list)


class SubjectsUpdate(BaseSchema):
    """Replace the caller's subject set and preferred group size."""

    subjects: dict[str, int] = Field(default_factory=dict)
    group_preference: int = Field(
        default=3,
        ge=1,
        le=20,
        validation_alias=AliasChoices("group_preference", "groupPreference"),
    )

    @field_validator("subjects")
    @classmethod
    def check_scores(cls, value: dict[str, int]) -> dict[str, int]:
        cleaned = {}
        for name, score in value.items():
            name = name.strip()
            if not name:
                raise ValueError("Subject names must not be blank")
            if not 0 <= score <= 10:
                raise ValueError(f"Score for {name} must be between 0 and 10")
            cleaned[name] = score
        return cleaned


class RegisterRequest(BaseSchema):
    """Registration form."""

    name: str = Field(..., min_length=1, max_length=255)
    branch: str = Field(..., min_length=1, max_length=255)
    email: EmailStr
    password: str = Field(..., min_length=6, max_length=128)
    goals: str | None = None


class LoginRequest(BaseSchema):
    email: EmailStr
    password: str = Field(..., min_length=1)
