"""Base schema configuration."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict


class BaseSchema(BaseModel):
    """Base schema with common configuration."""

    model_config = ConfigDict(
        from_attributes=True,  # Enable ORM mode
        str_strip_whitespace=True,
        validate_assignment=True,
        populate_by_name=True,
    )


class IDMixin(BaseModel):
    """Mixin for integer primary key."""

    id: int


class CreatedAtMixin(BaseModel):
    """Mixin for the server-assigned creation timestamp."""

    created_at: datetime
