from __future__ import annotations

from typing import Any, Optional

import httpx

from nft_api.core.errors import ConfigurationError, ExternalServiceFault

from .base import AnchorReceipt


class LedgerGatewayClient:
    """
    Points a token's on-chain metadata uri at a new url through a signing
    gateway. The signing key reference is sent as a header; the gateway holds
    the keypair and submits the update-metadata transaction.
    """
    name = "ledger"

    def __init__(self, base_url: str, *, timeout: float = 30.0, client: Optional[httpx.Client] = None) -> None:
        if not base_url and client is None:
            raise ConfigurationError("LEDGER_GATEWAY_URL is not configured")
        self.client = client or httpx.Client(base_url=base_url, timeout=timeout)

    def update_metadata_pointer(self, token_address: str, signing_key: str, metadata_url: str) -> AnchorReceipt:
        try:
            resp = self.client.post(
                f"/tokens/{token_address}/metadata-uri",
                headers={"X-Signing-Key": signing_key},
                json={"token_address": token_address, "metadata_uri": metadata_url},
            )
        except httpx.HTTPError as e:
            raise ExternalServiceFault(self.name, f"transport error: {e}", details={"token_address": token_address}) from e

        if resp.status_code >= 400:
            raise ExternalServiceFault(
                self.name,
                f"HTTP {resp.status_code}",
                details={"token_address": token_address, "body": resp.text[:500]},
            )

        signature: Any = None
        try:
            body = resp.json()
            if isinstance(body, dict):
                signature = body.get("signature")
        except ValueError:
            body = None
        return AnchorReceipt(
            token_address=token_address,
            metadata_url=metadata_url,
            signature=str(signature) if signature else None,
        )
