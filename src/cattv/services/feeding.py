"""Interaction processor: spend food to feed a cat.

One feed touches four records in a single transaction: the actor's balance
and counters, the cat's feed counter, the global counter and a new audit
event. Rows are locked in a fixed order (user, cat, global stats) so concurrent
feeds serialize without deadlocking. After commit, the chain mirror is
scheduled in the background and never awaited by the caller.
"""

from dataclasses import dataclass
from datetime import datetime

import structlog

from cattv.core.config import GameRules
from cattv.core.timezone import start_of_local_day, utcnow
from cattv.models.feed_event import FeedEvent
from cattv.services.blockchain.chain_mirror import ChainMirror
from cattv.services.exceptions import DailyLimitExceeded, InsufficientFunds, NotFound

logger = structlog.get_logger()


@dataclass(frozen=True)
class FeedResult:
    balance: int
    feeds_remaining: int
    cat_name: str

    @property
    def message(self) -> str:
        return f"{self.cat_name} says thank you! 😸"


class FeedingService:
    """Couples the balance ledger and the catalog in one atomic feed."""

    def __init__(self, uow_factory, rules: GameRules, chain_mirror: ChainMirror | None = None):
        self.uow_factory = uow_factory
        self.rules = rules
        self.chain_mirror = chain_mirror

    async def feed(self, user_id: str, cat_id: str, now: datetime | None = None) -> FeedResult:
        """Debit the feed cost from the actor and credit the cat.

        Args:
            user_id: Authenticated actor
            cat_id: Target cat
            now: Override for the current time (naive UTC)

        Returns:
            FeedResult with the new balance and feeds left today

        Raises:
            NotFound: Actor or cat missing
            InsufficientFunds: Balance below the feed cost
            DailyLimitExceeded: Daily feed cap reached
        """
        now = now or utcnow()
        cost = self.rules.feed_cost

        async with await self.uow_factory() as uow:
            user = await uow.users.get_for_update(user_id)
            cat = await uow.cats.get_for_update(cat_id)
            if user is None:
                raise NotFound("User not found")
            if cat is None:
                raise NotFound("Cat not found")
            stats = await uow.global_stats.get_or_create_for_update()

            if user.balance < cost:
                logger.info("feed.insufficient_funds", user_id=user_id, balance=user.balance)
                raise InsufficientFunds(
                    "Not enough food! Come back tomorrow.",
                    details={"balance": user.balance, "cost": cost},
                )

            day_start = start_of_local_day(now, self.rules.day_boundary_tz)
            feeds_today = user.effective_feeds_today(day_start)
            if feeds_today >= self.rules.max_daily_feeds:
                logger.info("feed.daily_limit", user_id=user_id, feeds_today=feeds_today)
                raise DailyLimitExceeded(
                    f"Daily limit reached! You can feed {self.rules.max_daily_feeds} cats per day. "
                    "Come back tomorrow!"
                )

            user.balance -= cost
            user.total_feeds += 1
            user.feeds_today = feeds_today + 1
            user.last_feed_date = now

            cat.record_feed(now)

            stats.total_feeds += 1
            stats.updated_at = now

            await uow.feed_events.add(
                FeedEvent(user_id=user_id, cat_id=cat_id, amount=cost, timestamp=now)
            )

            result = FeedResult(
                balance=user.balance,
                feeds_remaining=self.rules.max_daily_feeds - user.feeds_today,
                cat_name=cat.name,
            )

        logger.info(
            "feed.committed",
            user_id=user_id,
            cat_id=cat_id,
            balance=result.balance,
            feeds_remaining=result.feeds_remaining,
        )

        if self.chain_mirror is not None:
            self.chain_mirror.schedule_feed(cat_id)
        else:
            logger.debug("feed.mirror_skipped", cat_id=cat_id)

        return result
