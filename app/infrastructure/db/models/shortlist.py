"""
Shortlist Database Model

Pro users' saved freelancers.
"""

from typing import Optional

from sqlalchemy import UniqueConstraint
from sqlmodel import Field

from app.infrastructure.db.models.base import BaseModel


class ShortlistEntry(BaseModel, table=True):
    __tablename__ = "shortlist"
    __table_args__ = (
        UniqueConstraint("user_id", "shortlisted_user_id", name="uq_shortlist_user_target"),
    )

    user_id: str = Field(foreign_key="users.id", index=True, max_length=36)
    shortlisted_user_id: str = Field(foreign_key="users.id", max_length=36)
    category_id: Optional[str] = Field(default=None, max_length=36)
    notes: Optional[str] = Field(default=None)
    priority: int = Field(default=0)
