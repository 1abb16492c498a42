"""
Domain Models for Zomieks

Pure Python/Pydantic models with no framework dependencies.
Identity, action results and account request schemas.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional
from pydantic import BaseModel, ConfigDict, Field, field_validator


class UserRole(str, Enum):
    """Account roles."""
    USER = "user"
    ADMIN = "admin"
    MODERATOR = "moderator"


class Identity(BaseModel):
    """
    Authenticated caller, as stored in the session record.

    Passed explicitly into every action instead of being read from
    request-global state.
    """
    user_id: str
    email: str
    name: Optional[str] = None
    role: UserRole = UserRole.USER
    is_email_verified: bool = False
    is_id_verified: bool = False
    created_at: datetime
    expires_at: datetime

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN

    @property
    def is_staff(self) -> bool:
        """Admins and moderators."""
        return self.role in (UserRole.ADMIN, UserRole.MODERATOR)


class ActionResult(BaseModel):
    """
    Structured outcome of an action.

    Business-rule failures are reported here with a human-readable message
    rather than raised past the action boundary.
    """
    success: bool
    error: Optional[str] = None
    errors: Optional[List[str]] = None
    data: Dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def ok(cls, **data: Any) -> "ActionResult":
        return cls(success=True, data=data)

    @classmethod
    def fail(cls, error: str, errors: Optional[List[str]] = None) -> "ActionResult":
        return cls(success=False, error=error, errors=errors)


NOT_LOGGED_IN = "You must be logged in"


# =============================================================================
# Account Requests
# =============================================================================

class RegisterRequest(BaseModel):
    """Registration form."""
    name: str = ""
    email: str = ""
    password: str = ""
    confirm_password: str = Field(default="", alias="confirmPassword")

    model_config = ConfigDict(populate_by_name=True)


class LoginRequest(BaseModel):
    """Login form."""
    email: str = ""
    password: str = ""


class VerifyEmailRequest(BaseModel):
    token: str


class PasswordResetRequest(BaseModel):
    email: str


class ProfileUpdate(BaseModel):
    """Editable profile fields. All optional."""
    name: Optional[str] = Field(None, max_length=100)
    headline: Optional[str] = Field(None, max_length=150)
    bio: Optional[str] = Field(None, max_length=2000)
    location: Optional[str] = Field(None, max_length=100)
    skills: Optional[list[str]] = None
    hourly_rate: Optional[int] = Field(None, ge=0, description="In cents")

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and not v.strip():
            raise ValueError("Name cannot be empty or whitespace only")
        return v.strip() if v else v


class VerificationSubmission(BaseModel):
    """ID document upload for staff review."""
    document_type: str = Field(..., min_length=2, max_length=50, alias="documentType")
    document_url: str = Field(..., min_length=1, alias="documentUrl")
    selfie_url: Optional[str] = Field(None, alias="selfieUrl")

    model_config = ConfigDict(populate_by_name=True)
