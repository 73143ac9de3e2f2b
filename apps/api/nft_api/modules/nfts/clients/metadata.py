from __future__ import annotations

import logging
from typing import Any, Dict, Optional

import httpx

_log = logging.getLogger("nft_api.metadata")


def to_gateway_url(uri: str, gateway: str) -> str:
    if uri.startswith("ipfs://"):
        return f"{gateway.rstrip('/')}/ipfs/{uri[len('ipfs://'):]}"
    return uri


class HttpMetadataFetcher:
    """GET the prior metadata JSON. Any failure yields None (NoPriorMetadata upstream)."""

    def __init__(self, gateway: str, *, timeout: float = 30.0, client: Optional[httpx.Client] = None) -> None:
        self.gateway = gateway
        self.client = client or httpx.Client(timeout=timeout, follow_redirects=True)

    def fetch(self, token_address: str, metadata_uri: str) -> Optional[Dict[str, Any]]:
        if not metadata_uri:
            return None
        url = to_gateway_url(metadata_uri, self.gateway)
        try:
            resp = self.client.get(url)
            resp.raise_for_status()
            body = resp.json()
        except (httpx.HTTPError, ValueError) as e:
            _log.warning("metadata fetch failed for %s (%s): %s", token_address, url, e)
            return None
        return body if isinstance(body, dict) else None
