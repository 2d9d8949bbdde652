"""Repository layer for CatTV backend.

Provides data access abstractions for all domain entities.
No base classes - each repository is self-contained.
"""

from cattv.repositories.cat import CatRepository
from cattv.repositories.feed_event import FeedEventRepository
from cattv.repositories.global_stats import GlobalStatsRepository
from cattv.repositories.purchase import PurchaseRepository
from cattv.repositories.user import UserRepository

__all__ = [
    "UserRepository",
    "CatRepository",
    "FeedEventRepository",
    "GlobalStatsRepository",
    "PurchaseRepository",
]
