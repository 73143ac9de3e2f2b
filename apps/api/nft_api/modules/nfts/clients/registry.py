from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from nft_api.core.config import ServiceConfig
from nft_api.core.storage import ensure_storage_root, renders_dir

from .base import LedgerClient, MetadataFetcher, Publisher, RenderQueue
from .ledger import LedgerGatewayClient
from .metadata import HttpMetadataFetcher
from .pinata import PinataPublisher
from .render import FileCopyRenderer, LocalRenderQueue


@dataclass
class Collaborators:
    publisher: Publisher
    ledger: LedgerClient
    render_queue: RenderQueue
    metadata_fetcher: MetadataFetcher


def build_collaborators(config: ServiceConfig) -> Collaborators:
    """
    Registry entry point: wires the default adapters from configuration.
    Render templates live in RENDER_TEMPLATE_DIR (default <storage>/templates).
    """
    root = ensure_storage_root()
    template_dir = Path(os.getenv("RENDER_TEMPLATE_DIR") or (root / "templates"))
    timeout = config.http_timeout_seconds
    return Collaborators(
        publisher=PinataPublisher(config.publishing_credentials, timeout=timeout),
        ledger=LedgerGatewayClient(config.ledger_gateway_url, timeout=timeout),
        render_queue=LocalRenderQueue(FileCopyRenderer(template_dir, renders_dir(root))),
        metadata_fetcher=HttpMetadataFetcher(config.publishing_credentials.gateway, timeout=timeout),
    )
