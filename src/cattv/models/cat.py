"""Cat entity - user-submitted media entry with aggregate feed counters."""

from datetime import datetime
from enum import Enum
from typing import Optional
from uuid import uuid4

from sqlalchemy import JSON, Column
from sqlmodel import Field, SQLModel

from cattv.core.timezone import utcnow

MAX_CAT_NAME_LENGTH = 20


class MediaType(str, Enum):
    """Kind of media a cat entry points at."""

    IMAGE = "image"
    VIDEO = "video"


class CatVibe(str, Enum):
    """Owner-selectable personality tags."""

    HAPPY = "happy"
    SLEEPY = "sleepy"
    GRUMPY = "grumpy"
    MENACE = "menace"
    VOID = "void"
    DERP = "derp"
    CHONK = "chonk"
    FLOOF = "floof"
    LOAF = "loaf"
    ZOOMIES = "zoomies"
    MAJESTIC = "majestic"
    CHAOS = "chaos"


def new_cat_id() -> str:
    return uuid4().hex


class Cat(SQLModel, table=True):
    """Cat represents one uploaded image or video that users can feed."""

    __tablename__ = "cats"  # type: ignore[assignment]

    id: str = Field(default_factory=new_cat_id, primary_key=True, max_length=64)
    name: str = Field(max_length=MAX_CAT_NAME_LENGTH)
    media_url: str
    media_type: MediaType = Field(default=MediaType.IMAGE)
    total_fed: int = Field(default=0, ge=0)
    last_fed_at: Optional[datetime] = Field(default=None)
    created_at: datetime = Field(default_factory=utcnow, index=True)
    created_by: str = Field(max_length=128, index=True)
    vibes: list[str] = Field(default_factory=list, sa_column=Column(JSON, nullable=False))

    def record_feed(self, now: datetime) -> None:
        """Increment the feed counter and stamp the interaction time."""
        self.total_fed += 1
        self.last_fed_at = now
