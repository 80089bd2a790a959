"""Base entity class for all domain models."""

from datetime import UTC, datetime
from uuid import UUID, uuid4

from pydantic import BaseModel, ConfigDict, Field


def utc_now() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(UTC)


class BaseEntity(BaseModel):
    """Base class for all user-owned domain entities.

    Provides:
    - Unique ID (UUID)
    - Owning user (every entity is scoped to exactly one user)
    - Creation timestamp
    - Standard serialization config
    """

    model_config = ConfigDict(
        str_strip_whitespace=True,
        validate_default=True,
        from_attributes=True,
    )

    id: UUID = Field(default_factory=uuid4, description="Unique entity identifier")
    user_id: str = Field(min_length=1, description="Owning user")
    created_at: datetime = Field(
        default_factory=utc_now,
        description="When entity was created",
    )
