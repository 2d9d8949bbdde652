"""Media upload: validate a base64 payload and store it in object storage.

All validation (presence, content type, decoded size) happens before any
storage call, so a rejected upload never writes anything.
"""

import base64
import binascii
import re
from dataclasses import dataclass

import structlog

from cattv.core.timezone import to_epoch_ms, utcnow
from cattv.models.cat import MediaType
from cattv.services.exceptions import (
    FailedPrecondition,
    Internal,
    InvalidArgument,
    PermanentError,
    ServiceError,
)
from cattv.services.storage.pinata_client import PinataClient

logger = structlog.get_logger()

MAX_UPLOAD_BYTES = 5 * 1024 * 1024

_UNSAFE_FILENAME_CHARS = re.compile(r"[^A-Za-z0-9._-]+")


@dataclass(frozen=True)
class UploadedMedia:
    media_url: str
    media_type: MediaType


def media_type_for(content_type: str) -> MediaType:
    """Map a MIME type to the cat media kind.

    Raises:
        InvalidArgument: If the type is neither image/* nor video/*
    """
    if content_type.startswith("image/"):
        return MediaType.IMAGE
    if content_type.startswith("video/"):
        return MediaType.VIDEO
    raise InvalidArgument("Please select an image or video.")


def safe_filename(file_name: str) -> str:
    cleaned = _UNSAFE_FILENAME_CHARS.sub("_", file_name).strip("._")
    return cleaned[:100] or "upload"


def decode_payload(file_data: str) -> bytes:
    """Decode base64 file data, accepting an optional ``data:...;base64,`` prefix.

    Raises:
        InvalidArgument: Malformed base64 or decoded size above 5MB
    """
    if "," in file_data and file_data.startswith("data:"):
        file_data = file_data.split(",", 1)[1]
    # Reject by encoded length first so oversize payloads are never decoded
    if len(file_data) > (MAX_UPLOAD_BYTES * 4) // 3 + 4:
        raise InvalidArgument("File too large! Max 5MB.")
    try:
        data = base64.b64decode(file_data, validate=True)
    except (binascii.Error, ValueError):
        raise InvalidArgument("fileData must be base64 encoded")
    if len(data) > MAX_UPLOAD_BYTES:
        raise InvalidArgument("File too large! Max 5MB.")
    if not data:
        raise InvalidArgument("fileData is empty")
    return data


class MediaService:
    """Validate and store uploaded cat media."""

    def __init__(self, storage: PinataClient | None):
        self.storage = storage

    async def upload_media(
        self,
        user_id: str,
        file_data: str | None,
        content_type: str | None,
        file_name: str | None,
    ) -> UploadedMedia:
        """Store an uploaded file and return its public URL.

        Raises:
            InvalidArgument: Missing fields, bad base64, wrong type or > 5MB
            FailedPrecondition: Storage not configured
            Internal: Storage failure
        """
        if not file_data or not content_type or not file_name:
            raise InvalidArgument("fileData, contentType and fileName required")
        media_type = media_type_for(content_type)
        data = decode_payload(file_data)

        if self.storage is None:
            raise FailedPrecondition("Media storage not configured")

        object_name = f"cats/{user_id}/{to_epoch_ms(utcnow())}_{safe_filename(file_name)}"
        try:
            cid = await self.storage.upload_file(
                data,
                filename=object_name,
                content_type=content_type,
                keyvalues={"userId": user_id, "mediaType": media_type.value},
            )
        except PermanentError as e:
            logger.error("media.upload_rejected", user_id=user_id, error=str(e))
            raise Internal("Failed to upload media")
        except ServiceError as e:
            logger.error("media.upload_failed", user_id=user_id, error=str(e))
            raise Internal("Failed to upload media")

        url = self.storage.get_gateway_url(cid)
        logger.info("media.uploaded", user_id=user_id, cid=cid, size=len(data))
        return UploadedMedia(media_url=url, media_type=media_type)
