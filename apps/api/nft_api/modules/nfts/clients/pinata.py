from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

import httpx

from nft_api.core.config import PublishingCredentials
from nft_api.core.errors import ExternalServiceFault

from .base import PublishContent, PublishResult


class PinataPublisher:
    """
    Pins JSON documents and image files to IPFS through the Pinata API.
    Transport errors and non-2xx responses raise ExternalServiceFault; the
    orchestrator owns the retry policy.
    """
    name = "pinata"

    def __init__(
        self,
        credentials: PublishingCredentials,
        *,
        timeout: float = 30.0,
        client: Optional[httpx.Client] = None,
    ) -> None:
        self.credentials = credentials
        self.client = client or httpx.Client(base_url=credentials.api_base_url, timeout=timeout)

    def _headers(self) -> Dict[str, str]:
        return {
            "pinata_api_key": self.credentials.api_key,
            "pinata_secret_api_key": self.credentials.secret_api_key,
        }

    def gateway_url(self, ipfs_hash: str) -> str:
        return f"{self.credentials.gateway.rstrip('/')}/ipfs/{ipfs_hash}"

    def publish(self, content: PublishContent, content_type: str, *, name: str) -> PublishResult:
        try:
            if isinstance(content, Mapping):
                resp = self.client.post(
                    "/pinning/pinJSONToIPFS",
                    headers=self._headers(),
                    json={"pinataContent": dict(content), "pinataMetadata": {"name": name}},
                )
            else:
                data = content.read_bytes() if isinstance(content, Path) else bytes(content)
                resp = self.client.post(
                    "/pinning/pinFileToIPFS",
                    headers=self._headers(),
                    files={"file": (name, data, content_type)},
                    data={"pinataMetadata": json.dumps({"name": name})},
                )
        except httpx.HTTPError as e:
            raise ExternalServiceFault(self.name, f"transport error: {e}", details={"name": name}) from e

        if resp.status_code >= 400:
            raise ExternalServiceFault(
                self.name,
                f"HTTP {resp.status_code}",
                details={"name": name, "body": resp.text[:500]},
            )

        body: Any
        try:
            body = resp.json()
        except ValueError as e:
            raise ExternalServiceFault(self.name, "invalid JSON response", details={"name": name}) from e

        ipfs_hash = body.get("IpfsHash") if isinstance(body, dict) else None
        if not ipfs_hash:
            raise ExternalServiceFault(self.name, "response missing IpfsHash", details={"name": name})
        return PublishResult(content_address=str(ipfs_hash), url=self.gateway_url(str(ipfs_hash)))
