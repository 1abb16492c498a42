"""
Review Database Model

Ratings left by either party once an order completes.
"""

from datetime import datetime
from typing import Optional

from sqlalchemy import UniqueConstraint
from sqlmodel import Field

from app.infrastructure.db.models.base import BaseModel, tz_field


class Review(BaseModel, table=True):
    """
    One review per party per completed order.

    Only buyer_to_seller reviews count toward a seller's rating and accept a
    seller response.
    """

    __tablename__ = "reviews"
    __table_args__ = (
        UniqueConstraint("order_id", "reviewer_id", name="uq_reviews_order_reviewer"),
    )

    order_id: str = Field(foreign_key="orders.id", index=True, max_length=36)
    reviewer_id: str = Field(foreign_key="users.id", index=True, max_length=36)
    reviewee_id: str = Field(foreign_key="users.id", index=True, max_length=36)
    review_type: str = Field(max_length=20)

    # 1-5
    overall_rating: int
    communication_rating: Optional[int] = Field(default=None)
    quality_rating: Optional[int] = Field(default=None)
    value_rating: Optional[int] = Field(default=None)
    timeliness_rating: Optional[int] = Field(default=None)

    title: Optional[str] = Field(default=None, max_length=200)
    comment: str
    seller_response: Optional[str] = Field(default=None)
    seller_response_at: Optional[datetime] = tz_field()

    is_visible: bool = Field(default=True)
    is_reported: bool = Field(default=False)
