"""SQLAlchemy ORM models for the WebSub subscriber.

All models are exported from this module for convenient imports:
    from websub_subscriber.models import Subscription
"""

from websub_subscriber.models.base import Base, TimestampMixin
from websub_subscriber.models.subscription import Subscription

__all__ = [
    "Base",
    "TimestampMixin",
    "Subscription",
]
