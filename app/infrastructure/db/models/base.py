"""
Base Model for SQLModel ORM

Common id and timestamp columns shared by every table.
"""

from datetime import datetime, timezone
from uuid import uuid4

from sqlalchemy import DateTime
from sqlmodel import Field, SQLModel


def utcnow() -> datetime:
    """Timezone-aware current time in UTC."""
    return datetime.now(timezone.utc)


def new_id() -> str:
    """String UUID v4 primary key."""
    return str(uuid4())


class TimestampMixin(SQLModel):
    """Mixin providing timestamp fields for models."""

    created_at: datetime = Field(
        default_factory=utcnow,
        nullable=False,
        sa_type=DateTime(timezone=True),
        description="Record creation timestamp (UTC)"
    )
    updated_at: datetime = Field(
        default_factory=utcnow,
        nullable=False,
        sa_type=DateTime(timezone=True),
        sa_column_kwargs={"onupdate": utcnow},
        description="Last update timestamp (UTC)"
    )


class IDMixin(SQLModel):
    """Mixin providing a string UUID primary key."""

    id: str = Field(
        default_factory=new_id,
        primary_key=True,
        max_length=36,
        nullable=False,
        description="Unique identifier (UUID v4)"
    )


class BaseModel(IDMixin, TimestampMixin):
    """
    Base model combining id and timestamp mixins.

    All database models inherit from this class.
    Provides: id, created_at, updated_at
    """
    pass


def tz_field(**kwargs):
    """Optional timezone-aware datetime column."""
    return Field(default=None, sa_type=DateTime(timezone=True), **kwargs)
