"""Catalog of user-submitted cats, happiness labels and aggregate stats."""

from dataclasses import dataclass
from datetime import datetime, timedelta

import structlog

from cattv.core.timezone import utcnow
from cattv.models.cat import MAX_CAT_NAME_LENGTH, Cat, CatVibe, MediaType
from cattv.services.exceptions import InvalidArgument, NotFound, PermissionDenied

logger = structlog.get_logger()

HAPPY_WINDOW = timedelta(hours=6)
OKAY_WINDOW = timedelta(hours=24)


@dataclass(frozen=True)
class Happiness:
    level: str
    emoji: str
    label: str


HAPPY = Happiness(level="happy", emoji="😸", label="Vibing")
OKAY = Happiness(level="okay", emoji="🐱", label="Cozy")
SAD = Happiness(level="sad", emoji="😺", label="Chillin")


def calculate_happiness(last_fed_at: datetime | None, now: datetime | None = None) -> Happiness:
    """Derive the display mood from time since the last feed (not persisted)."""
    if last_fed_at is None:
        return SAD
    elapsed = (now or utcnow()) - last_fed_at
    if elapsed < HAPPY_WINDOW:
        return HAPPY
    if elapsed < OKAY_WINDOW:
        return OKAY
    return SAD


@dataclass(frozen=True)
class CatalogStats:
    total_feeds: int
    total_cats: int
    happy_cats: int


def _validate_vibes(vibes: list[str] | None) -> list[str]:
    if not vibes:
        return []
    if not isinstance(vibes, list):
        raise InvalidArgument("vibes must be a list")
    allowed = {v.value for v in CatVibe}
    cleaned: list[str] = []
    for vibe in vibes:
        if vibe not in allowed:
            raise InvalidArgument(f"Unknown vibe: {vibe}")
        if vibe not in cleaned:
            cleaned.append(vibe)
    return cleaned


class CatalogService:
    """Create, list and tag cats."""

    def __init__(self, uow_factory):
        self.uow_factory = uow_factory

    async def add_cat(
        self,
        user_id: str,
        name: str | None,
        media_url: str | None,
        media_type: str | None = None,
        vibes: list[str] | None = None,
    ) -> Cat:
        """Create a cat owned by ``user_id``.

        Raises:
            InvalidArgument: Missing name/media URL, name over 20 characters,
                unknown media type or vibe
        """
        if not name or not name.strip() or not media_url:
            raise InvalidArgument("name and mediaUrl required")
        name = name.strip()
        if len(name) > MAX_CAT_NAME_LENGTH:
            raise InvalidArgument(f"Name too long (max {MAX_CAT_NAME_LENGTH} chars)")
        try:
            kind = MediaType(media_type or MediaType.IMAGE.value)
        except ValueError:
            raise InvalidArgument("mediaType must be 'image' or 'video'")
        cleaned_vibes = _validate_vibes(vibes)

        async with await self.uow_factory() as uow:
            cat = await uow.cats.add(
                Cat(
                    name=name,
                    media_url=media_url,
                    media_type=kind,
                    created_by=user_id,
                    vibes=cleaned_vibes,
                )
            )

        logger.info("cat.created", cat_id=cat.id, user_id=user_id, media_type=kind.value)
        return cat

    async def update_vibes(self, user_id: str, cat_id: str, vibes: list[str] | None) -> Cat:
        """Replace a cat's vibe tags; only the uploader may do this.

        Raises:
            NotFound: Cat missing
            PermissionDenied: Caller is not the cat's owner
            InvalidArgument: Unknown vibe
        """
        cleaned_vibes = _validate_vibes(vibes)
        async with await self.uow_factory() as uow:
            cat = await uow.cats.get_for_update(cat_id)
            if cat is None:
                raise NotFound("Cat not found")
            if cat.created_by != user_id:
                raise PermissionDenied("Only the owner can change this cat's vibes")
            cat.vibes = cleaned_vibes
            await uow.session.flush()

        logger.info("cat.vibes_updated", cat_id=cat_id, vibes=cleaned_vibes)
        return cat

    async def list_cats(self, limit: int = 50) -> list[Cat]:
        """Most recent cats, newest first (limit clamped to 1..50)."""
        limit = max(1, min(limit, 50))
        async with await self.uow_factory() as uow:
            return await uow.cats.list_recent(limit=limit)

    async def get_stats(self, now: datetime | None = None) -> CatalogStats:
        now = now or utcnow()
        async with await self.uow_factory() as uow:
            stats = await uow.global_stats.get()
            fed_times = await uow.cats.list_last_fed_times()

        happy = sum(1 for t in fed_times if calculate_happiness(t, now) is HAPPY)
        return CatalogStats(
            total_feeds=stats.total_feeds if stats else 0,
            total_cats=len(fed_times),
            happy_cats=happy,
        )
