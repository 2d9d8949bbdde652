"""SQLModel database entities.

All models are imported here to ensure they're registered with SQLModel metadata
for Alembic autogenerate support.
"""

from cattv.models.cat import Cat, CatVibe, MediaType
from cattv.models.feed_event import FeedEvent
from cattv.models.global_stats import GLOBAL_STATS_KEY, GlobalStats
from cattv.models.purchase import InvalidPurchaseTransition, Purchase, PurchaseStatus
from cattv.models.user import User

__all__ = [
    "User",
    "Cat",
    "CatVibe",
    "MediaType",
    "FeedEvent",
    "GlobalStats",
    "GLOBAL_STATS_KEY",
    "Purchase",
    "PurchaseStatus",
    "InvalidPurchaseTransition",
]
