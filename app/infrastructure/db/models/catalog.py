"""
Catalog Database Models

Categories and seller service listings.
"""

from typing import Any, Dict, List, Optional

from sqlalchemy import Column, JSON
from sqlmodel import Field

from app.infrastructure.db.models.base import BaseModel


class Category(BaseModel, table=True):
    __tablename__ = "categories"

    name: str = Field(max_length=100)
    slug: str = Field(max_length=120, unique=True, index=True)
    description: Optional[str] = Field(default=None)
    icon: Optional[str] = Field(default=None, max_length=50)
    parent_id: Optional[str] = Field(default=None, foreign_key="categories.id", max_length=36)
    sort_order: int = Field(default=0)
    is_active: bool = Field(default=True)


class Service(BaseModel, table=True):
    """
    Fixed-price service listing with up to three pricing tiers.

    pricing_tiers maps tier name (basic/standard/premium) to
    {name, description, price, delivery_days, revisions}.
    """

    __tablename__ = "services"

    seller_id: str = Field(foreign_key="users.id", index=True, max_length=36)
    category_id: str = Field(foreign_key="categories.id", index=True, max_length=36)
    title: str = Field(max_length=200)
    slug: str = Field(max_length=120, unique=True, index=True)
    description: str
    short_description: Optional[str] = Field(default=None, max_length=300)
    pricing_tiers: Dict[str, Any] = Field(default_factory=dict, sa_column=Column(JSON))
    tags: Optional[List[str]] = Field(default=None, sa_column=Column(JSON))
    delivery_days: int = Field(default=7)
    max_revisions: int = Field(default=1)
    view_count: int = Field(default=0)
    order_count: int = Field(default=0)
    status: str = Field(default="active", max_length=20, index=True)
    is_active: bool = Field(default=True)
