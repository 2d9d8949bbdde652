"""Media upload tests: validation happens before any storage write."""

import base64

import httpx
import pytest

from cattv.models.cat import MediaType
from cattv.services.exceptions import (
    FailedPrecondition,
    Internal,
    InvalidArgument,
    StorageAuthError,
    StorageNetworkError,
    StorageValidationError,
    TransientError,
)
from cattv.services.media import MAX_UPLOAD_BYTES, MediaService, safe_filename
from cattv.services.storage.pinata_client import PinataClient


class RecordingStorage:
    """Storage double that records uploads."""

    def __init__(self, error: Exception | None = None):
        self.error = error
        self.uploads: list[dict] = []

    async def upload_file(self, data, filename, content_type, keyvalues=None):
        if self.error is not None:
            raise self.error
        self.uploads.append({"data": data, "filename": filename, "content_type": content_type})
        return "bafytestcid"

    def get_gateway_url(self, cid: str) -> str:
        return f"https://gateway.example/ipfs/{cid}"


def b64(data: bytes) -> str:
    return base64.b64encode(data).decode("ascii")


@pytest.fixture
def storage():
    return RecordingStorage()


@pytest.fixture
def media(storage):
    return MediaService(storage)


@pytest.mark.asyncio
async def test_uploads_image(media, storage):
    uploaded = await media.upload_media("user-1", b64(b"\x89PNG..."), "image/png", "my cat.png")

    assert uploaded.media_url == "https://gateway.example/ipfs/bafytestcid"
    assert uploaded.media_type == MediaType.IMAGE
    assert len(storage.uploads) == 1
    name = storage.uploads[0]["filename"]
    assert name.startswith("cats/user-1/")
    assert name.endswith("_my_cat.png")
    assert storage.uploads[0]["data"] == b"\x89PNG..."


@pytest.mark.asyncio
async def test_accepts_data_url_prefix(media, storage):
    uploaded = await media.upload_media(
        "user-1", "data:video/mp4;base64," + b64(b"mp4bytes"), "video/mp4", "clip.mp4"
    )

    assert uploaded.media_type == MediaType.VIDEO
    assert storage.uploads[0]["data"] == b"mp4bytes"


@pytest.mark.asyncio
async def test_six_megabyte_upload_rejected_without_storage_write(media, storage):
    payload = b64(b"\0" * (6 * 1024 * 1024))

    with pytest.raises(InvalidArgument, match="File too large"):
        await media.upload_media("user-1", payload, "image/png", "huge.png")

    assert storage.uploads == []


@pytest.mark.asyncio
async def test_exactly_five_megabytes_allowed(media, storage):
    await media.upload_media("user-1", b64(b"\1" * MAX_UPLOAD_BYTES), "image/jpeg", "max.jpg")

    assert len(storage.uploads) == 1


@pytest.mark.asyncio
async def test_non_media_content_type_rejected(media, storage):
    with pytest.raises(InvalidArgument, match="image or video"):
        await media.upload_media("user-1", b64(b"%PDF"), "application/pdf", "doc.pdf")

    assert storage.uploads == []


@pytest.mark.asyncio
async def test_invalid_base64_rejected(media, storage):
    with pytest.raises(InvalidArgument, match="base64"):
        await media.upload_media("user-1", "not*base64!", "image/png", "x.png")

    assert storage.uploads == []


@pytest.mark.parametrize(
    "file_data,content_type,file_name",
    [(None, "image/png", "a.png"), ("aGk=", None, "a.png"), ("aGk=", "image/png", "")],
)
@pytest.mark.asyncio
async def test_missing_fields_rejected(media, storage, file_data, content_type, file_name):
    with pytest.raises(InvalidArgument, match="required"):
        await media.upload_media("user-1", file_data, content_type, file_name)

    assert storage.uploads == []


@pytest.mark.asyncio
async def test_unconfigured_storage():
    with pytest.raises(FailedPrecondition):
        await MediaService(None).upload_media("user-1", b64(b"x"), "image/png", "a.png")


@pytest.mark.asyncio
async def test_storage_failure_is_internal():
    media = MediaService(RecordingStorage(error=StorageNetworkError("timeout")))

    with pytest.raises(Internal, match="Failed to upload media"):
        await media.upload_media("user-1", b64(b"x"), "image/png", "a.png")


def test_safe_filename():
    assert safe_filename("../../etc/passwd") == "etc_passwd"
    assert safe_filename("мой кот.png") == "png"
    assert safe_filename("...") == "upload"


class TestPinataClient:
    """Pinata response classification against a mocked HTTP transport."""

    @pytest.fixture
    def client(self):
        def install(handler):
            return PinataClient(
                "jwt-token", gateway_domain="gw.example", transport=httpx.MockTransport(handler)
            )

        return install

    @pytest.mark.asyncio
    async def test_success_returns_cid(self, client):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["auth"] = request.headers["Authorization"]
            seen["path"] = request.url.path
            return httpx.Response(200, json={"IpfsHash": "bafyok"})

        pinata = client(handler)
        cid = await pinata.upload_file(b"data", "cats/u/1_a.png", "image/png")

        assert cid == "bafyok"
        assert seen == {"auth": "Bearer jwt-token", "path": "/pinning/pinFileToIPFS"}
        assert pinata.get_gateway_url(cid) == "https://gw.example/ipfs/bafyok"

    @pytest.mark.parametrize(
        "status_code,error_type",
        [
            (401, StorageAuthError),
            (403, StorageAuthError),
            (400, StorageValidationError),
            (429, StorageNetworkError),
            (503, TransientError),
        ],
    )
    @pytest.mark.asyncio
    async def test_error_classification(self, client, status_code, error_type):
        pinata = client(lambda request: httpx.Response(status_code, text="nope"))

        with pytest.raises(error_type):
            await pinata.upload_file(b"data", "a.png", "image/png")
