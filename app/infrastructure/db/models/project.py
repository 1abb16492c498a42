"""
Project Database Models

Buyer-posted projects and the bids freelancers submit on them.
"""

from datetime import datetime
from typing import List, Optional

from sqlalchemy import Column, JSON, UniqueConstraint
from sqlmodel import Field

from app.infrastructure.db.models.base import BaseModel, tz_field


class Project(BaseModel, table=True):
    __tablename__ = "projects"

    buyer_id: str = Field(foreign_key="users.id", index=True, max_length=36)
    category_id: str = Field(foreign_key="categories.id", index=True, max_length=36)
    title: str = Field(max_length=200)
    slug: str = Field(max_length=120, unique=True, index=True)
    description: str
    budget_type: str = Field(default="fixed", max_length=20)
    budget_min: Optional[int] = Field(default=None)
    budget_max: Optional[int] = Field(default=None)
    deadline: Optional[datetime] = tz_field()
    expected_duration: Optional[str] = Field(default=None, max_length=50)
    skills: Optional[List[str]] = Field(default=None, sa_column=Column(JSON))
    bid_count: int = Field(default=0)
    view_count: int = Field(default=0)
    status: str = Field(default="open", max_length=20, index=True)
    awarded_bid_id: Optional[str] = Field(default=None, max_length=36)
    awarded_at: Optional[datetime] = tz_field()


class Bid(BaseModel, table=True):
    """One bid per freelancer per project."""

    __tablename__ = "bids"
    __table_args__ = (UniqueConstraint("project_id", "bidder_id", name="uq_bids_project_bidder"),)

    project_id: str = Field(foreign_key="projects.id", index=True, max_length=36)
    bidder_id: str = Field(foreign_key="users.id", index=True, max_length=36)
    amount: int = Field(description="In cents")
    proposal: str
    delivery_days: int
    status: str = Field(default="pending", max_length=20)
