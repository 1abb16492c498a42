# API Routes Module
from app.api.routes import (
    auth,
    payments,
    notifications,
    projects,
    services,
    orders,
    messages,
    shortlist,
    outsourcing,
    subscriptions,
    admin,
    profiles,
    reviews,
)

__all__ = [
    "auth",
    "payments",
    "notifications",
    "projects",
    "services",
    "orders",
    "messages",
    "shortlist",
    "outsourcing",
    "subscriptions",
    "admin",
    "profiles",
    "reviews",
]
