"""Pinata IPFS client for storing uploaded cat media."""

import json

import httpx

from cattv.services.exceptions import (
    StorageAuthError,
    StorageNetworkError,
    StorageValidationError,
    TransientError,
)


class PinataClient:
    """Object storage client using the Pinata pinning service."""

    def __init__(
        self,
        jwt_token: str,
        gateway_domain: str = "gateway.pinata.cloud",
        timeout: float = 60.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """Initialize Pinata client.

        Args:
            jwt_token: Pinata API JWT token (from PINATA_JWT env var)
            gateway_domain: Gateway domain for URL generation (default: public gateway)
            timeout: Request timeout in seconds
            transport: Optional httpx transport (mock transport in tests)
        """
        self.jwt_token = jwt_token
        self.gateway_domain = gateway_domain
        self.timeout = timeout
        self.transport = transport
        self.base_url = "https://api.pinata.cloud"
        self.headers = {"Authorization": f"Bearer {jwt_token}"}

    async def upload_file(
        self,
        data: bytes,
        filename: str,
        content_type: str,
        keyvalues: dict[str, str] | None = None,
    ) -> str:
        """Upload raw bytes to IPFS via Pinata.

        Args:
            data: File contents
            filename: Object name shown in the Pinata dashboard
            content_type: MIME type of the file
            keyvalues: Optional metadata key/values for dashboard organization

        Returns:
            IPFS CID (Content Identifier) as string (CIDv1 format)

        Raises:
            TransientError: Network timeout, rate limit (429), service unavailable (503)
            PermanentError: Invalid API key (401), forbidden (403), bad request (400)
        """
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                response = await client.post(
                    f"{self.base_url}/pinning/pinFileToIPFS",
                    headers=self.headers,
                    files={"file": (filename, data, content_type)},
                    data={
                        "pinataOptions": '{"cidVersion": 1}',
                        "pinataMetadata": json.dumps(
                            {"name": filename, "keyvalues": keyvalues or {}}
                        ),
                    },
                )
        except httpx.TimeoutException as e:
            raise StorageNetworkError(f"Request timeout after {self.timeout}s: {str(e)}")
        except httpx.HTTPError as e:
            raise StorageNetworkError(f"Network error: {str(e)}")

        if response.status_code == 429:
            raise StorageNetworkError(f"Rate limit exceeded: {response.text}")
        elif response.status_code in (500, 502, 503):
            raise TransientError(f"Service unavailable ({response.status_code}): {response.text}")
        elif response.status_code in (401, 403):
            raise StorageAuthError(
                f"Pinata rejected credentials ({response.status_code}). "
                "Check PINATA_JWT configuration and pinFileToIPFS permission."
            )
        elif response.status_code == 400:
            raise StorageValidationError(f"Bad request: {response.text}")

        response.raise_for_status()
        return response.json()["IpfsHash"]

    def get_gateway_url(self, cid: str) -> str:
        """Convert CID to gateway URL for browser access.

        Args:
            cid: IPFS CID

        Returns:
            Gateway URL (e.g., "https://gateway.pinata.cloud/ipfs/<CID>")
        """
        return f"https://{self.gateway_domain}/ipfs/{cid}"
