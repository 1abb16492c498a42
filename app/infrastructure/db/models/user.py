"""
User Database Models

Accounts, profiles, identity verification and one-time email tokens.
"""

from datetime import datetime
from typing import List, Optional

from sqlalchemy import Column, JSON
from sqlmodel import Field, SQLModel

from app.infrastructure.db.models.base import BaseModel, tz_field


class User(BaseModel, table=True):
    """
    Registered account.

    Never hard-deleted; suspension is a flag.
    """

    __tablename__ = "users"

    email: str = Field(max_length=255, unique=True, index=True, nullable=False)
    password_hash: str = Field(nullable=False)
    name: Optional[str] = Field(default=None, max_length=100)
    avatar_url: Optional[str] = Field(default=None)
    role: str = Field(default="user", max_length=20, index=True)

    is_email_verified: bool = Field(default=False)
    is_id_verified: bool = Field(default=False)
    is_suspended: bool = Field(default=False)
    suspended_reason: Optional[str] = Field(default=None)

    last_login_at: Optional[datetime] = tz_field()


class UserProfile(BaseModel, table=True):
    """Public freelancer profile, one per user."""

    __tablename__ = "user_profiles"

    user_id: str = Field(foreign_key="users.id", unique=True, index=True, max_length=36)
    headline: Optional[str] = Field(default=None, max_length=150)
    bio: Optional[str] = Field(default=None)
    location: Optional[str] = Field(default=None, max_length=100)
    skills: Optional[List[str]] = Field(
        default=None,
        sa_column=Column(JSON),
        description="Free-form skill tags"
    )
    hourly_rate: Optional[int] = Field(default=None, description="In cents")


class UserVerification(BaseModel, table=True):
    """ID document submission reviewed by staff."""

    __tablename__ = "user_verifications"

    user_id: str = Field(foreign_key="users.id", index=True, max_length=36)
    document_type: str = Field(max_length=50)
    document_url: Optional[str] = Field(default=None)
    selfie_url: Optional[str] = Field(default=None)
    status: str = Field(default="pending", max_length=20, index=True)
    notes: Optional[str] = Field(default=None)
    reviewed_by: Optional[str] = Field(default=None, max_length=36)
    reviewed_at: Optional[datetime] = tz_field()


class EmailVerificationToken(BaseModel, table=True):
    __tablename__ = "email_verification_tokens"

    user_id: str = Field(foreign_key="users.id", index=True, max_length=36)
    token: str = Field(unique=True, index=True, max_length=128)
    expires_at: datetime = tz_field(nullable=False)


class PasswordResetToken(BaseModel, table=True):
    __tablename__ = "password_reset_tokens"

    user_id: str = Field(foreign_key="users.id", index=True, max_length=36)
    token: str = Field(unique=True, index=True, max_length=128)
    expires_at: datetime = tz_field(nullable=False)
