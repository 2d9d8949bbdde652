"""Cat operations: feeding, catalog management, media upload and stats."""

from typing import Optional

import structlog
from fastapi import APIRouter, Depends

from cattv.api.dependencies import get_catalog, get_current_user, get_feeding, get_media
from cattv.api.schemas import (
    AddCatData,
    AddCatView,
    CatsView,
    CatView,
    FeedData,
    FeedView,
    GetCatsData,
    RpcRequest,
    RpcResponse,
    StatsView,
    UpdateCatVibesData,
    UpdateCatVibesView,
    UploadMediaData,
    UploadMediaView,
)
from cattv.core.timezone import utcnow
from cattv.services.catalog import CatalogService
from cattv.services.exceptions import InvalidArgument
from cattv.services.feeding import FeedingService
from cattv.services.media import MediaService

logger = structlog.get_logger()
router = APIRouter(prefix="/api", tags=["cats"])


@router.post("/feed", response_model=RpcResponse[FeedView])
async def feed(
    body: RpcRequest[FeedData],
    user_id: str = Depends(get_current_user),
    feeding: FeedingService = Depends(get_feeding),
):
    """Spend food to feed a cat."""
    if not body.data.cat_id:
        raise InvalidArgument("catId is required")
    result = await feeding.feed(user_id, body.data.cat_id)
    return RpcResponse(
        result=FeedView(
            balance=result.balance,
            feeds_remaining=result.feeds_remaining,
            message=result.message,
        )
    )


@router.post("/addCat", response_model=RpcResponse[AddCatView])
async def add_cat(
    body: RpcRequest[AddCatData],
    user_id: str = Depends(get_current_user),
    catalog: CatalogService = Depends(get_catalog),
):
    data = body.data
    cat = await catalog.add_cat(
        user_id,
        name=data.name,
        media_url=data.media_url,
        media_type=data.media_type,
        vibes=data.vibes,
    )
    return RpcResponse(result=AddCatView(cat_id=cat.id, cat=CatView.build(cat)))


@router.post("/updateCatVibes", response_model=RpcResponse[UpdateCatVibesView])
async def update_cat_vibes(
    body: RpcRequest[UpdateCatVibesData],
    user_id: str = Depends(get_current_user),
    catalog: CatalogService = Depends(get_catalog),
):
    """Replace a cat's vibe tags (owner only)."""
    if not body.data.cat_id:
        raise InvalidArgument("catId is required")
    cat = await catalog.update_vibes(user_id, body.data.cat_id, body.data.vibes)
    return RpcResponse(result=UpdateCatVibesView(cat=CatView.build(cat)))


@router.post("/uploadMedia", response_model=RpcResponse[UploadMediaView])
async def upload_media(
    body: RpcRequest[UploadMediaData],
    user_id: str = Depends(get_current_user),
    media: MediaService = Depends(get_media),
):
    """Upload a base64 encoded image or video (max 5MB)."""
    data = body.data
    uploaded = await media.upload_media(
        user_id,
        file_data=data.file_data,
        content_type=data.content_type,
        file_name=data.file_name,
    )
    return RpcResponse(
        result=UploadMediaView(
            media_url=uploaded.media_url, media_type=uploaded.media_type.value
        )
    )


@router.post("/getCats", response_model=RpcResponse[CatsView])
async def get_cats(
    body: Optional[RpcRequest[GetCatsData]] = None,
    catalog: CatalogService = Depends(get_catalog),
):
    """Newest cats first, each with its current happiness."""
    limit = body.data.limit if body else 50
    cats = await catalog.list_cats(limit=limit)
    now = utcnow()
    return RpcResponse(result=CatsView(cats=[CatView.build(cat, now) for cat in cats]))


@router.post("/getStats", response_model=RpcResponse[StatsView])
async def get_stats(catalog: CatalogService = Depends(get_catalog)):
    stats = await catalog.get_stats()
    return RpcResponse(result=StatsView.build(stats))
