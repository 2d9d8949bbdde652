"""Request and response models for the RPC transport.

Every operation takes ``{"data": {...}}`` and answers ``{"result": {...}}``.
Field names are camelCase on the wire and timestamps are epoch milliseconds.
"""

from datetime import datetime
from typing import Generic, Optional, TypeVar

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from cattv.core.timezone import to_epoch_ms
from cattv.models.cat import Cat
from cattv.models.user import User
from cattv.services.catalog import CatalogStats, calculate_happiness
from cattv.services.ledger import ClaimStatus
from cattv.services.purchases import TierView

DataT = TypeVar("DataT")
ResultT = TypeVar("ResultT")


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class RpcRequest(BaseModel, Generic[DataT]):
    data: DataT


class RpcResponse(BaseModel, Generic[ResultT]):
    result: ResultT


def _ms(value: datetime | None) -> int | None:
    return to_epoch_ms(value) if value is not None else None


# Request payloads


class GetUserData(CamelModel):
    wallet_address: Optional[str] = None


class FeedData(CamelModel):
    cat_id: Optional[str] = None


class AddCatData(CamelModel):
    name: Optional[str] = None
    media_url: Optional[str] = None
    media_type: Optional[str] = None
    vibes: Optional[list[str]] = None


class UpdateCatVibesData(CamelModel):
    cat_id: Optional[str] = None
    vibes: list[str] = Field(default_factory=list)


class UploadMediaData(CamelModel):
    file_data: Optional[str] = None
    content_type: Optional[str] = None
    file_name: Optional[str] = None


class GetCatsData(CamelModel):
    limit: int = 50


class CheckoutData(CamelModel):
    tier_id: Optional[str] = None
    success_url: Optional[str] = None
    cancel_url: Optional[str] = None


class TriggerDecayData(CamelModel):
    max_cats: int = Field(default=50, ge=1, le=500)


# Results


class UserView(CamelModel):
    id: str
    wallet_address: Optional[str]
    balance: int
    last_claim_at: Optional[int]
    total_feeds: int
    feeds_today: int
    total_purchased: int
    created_at: int
    can_claim: bool
    next_claim_at: Optional[int]
    time_until_claim: Optional[str]
    token_balance: Optional[int] = None

    @classmethod
    def build(
        cls,
        user: User,
        status: ClaimStatus,
        day_start: datetime,
        token_balance: int | None = None,
    ) -> "UserView":
        return cls(
            id=user.id,
            wallet_address=user.wallet_address,
            balance=user.balance,
            last_claim_at=_ms(user.last_claim_at),
            total_feeds=user.total_feeds,
            feeds_today=user.effective_feeds_today(day_start),
            total_purchased=user.total_purchased,
            created_at=to_epoch_ms(user.created_at),
            can_claim=status.can_claim,
            next_claim_at=_ms(status.next_claim_at),
            time_until_claim=status.time_until_claim,
            token_balance=token_balance,
        )


class ClaimView(CamelModel):
    success: bool = True
    claimed: int
    balance: Optional[int] = None
    tx_hash: Optional[str] = None


class FeedView(CamelModel):
    success: bool = True
    balance: int
    feeds_remaining: int
    message: str


class HappinessView(CamelModel):
    level: str
    emoji: str
    label: str


class CatView(CamelModel):
    id: str
    name: str
    media_url: str
    media_type: str
    total_fed: int
    last_fed_at: Optional[int]
    created_at: int
    created_by: str
    vibes: list[str]
    happiness: HappinessView

    @classmethod
    def build(cls, cat: Cat, now: datetime | None = None) -> "CatView":
        mood = calculate_happiness(cat.last_fed_at, now)
        return cls(
            id=cat.id,
            name=cat.name,
            media_url=cat.media_url,
            media_type=cat.media_type.value,
            total_fed=cat.total_fed,
            last_fed_at=_ms(cat.last_fed_at),
            created_at=to_epoch_ms(cat.created_at),
            created_by=cat.created_by,
            vibes=list(cat.vibes or []),
            happiness=HappinessView(level=mood.level, emoji=mood.emoji, label=mood.label),
        )


class AddCatView(CamelModel):
    success: bool = True
    cat_id: str
    cat: CatView


class UpdateCatVibesView(CamelModel):
    success: bool = True
    cat: CatView


class UploadMediaView(CamelModel):
    media_url: str
    media_type: str


class CatsView(CamelModel):
    cats: list[CatView]


class StatsView(CamelModel):
    total_feeds: int
    total_cats: int
    happy_cats: int

    @classmethod
    def build(cls, stats: CatalogStats) -> "StatsView":
        return cls(
            total_feeds=stats.total_feeds,
            total_cats=stats.total_cats,
            happy_cats=stats.happy_cats,
        )


class TierItem(CamelModel):
    id: str
    price_usd: int
    cattv: int
    cats_can_feed: int
    label: str

    @classmethod
    def build(cls, view: TierView) -> "TierItem":
        return cls(
            id=view.tier.id,
            price_usd=view.tier.price_usd,
            cattv=view.tier.cattv,
            cats_can_feed=view.cats_can_feed,
            label=view.label,
        )


class TiersView(CamelModel):
    tiers: list[TierItem]
    disclaimer: str


class CheckoutView(CamelModel):
    session_id: str
    url: str


class DecayView(CamelModel):
    success: bool = True
    tx_hash: str
