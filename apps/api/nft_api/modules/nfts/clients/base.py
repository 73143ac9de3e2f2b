from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Protocol, Union

PublishContent = Union[Mapping[str, Any], bytes, Path]


@dataclass(frozen=True)
class PublishResult:
    """
    content_address: the CID; identical content always yields the same address.
    url: gateway url stored in metadata and anchored on the ledger.
    """
    content_address: str
    url: str


@dataclass(frozen=True)
class RenderJobSpec:
    token_id: str
    token_address: str
    hero_tier: str
    recipe: str
    cosmetic_traits: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class RenderResult:
    image_path: Path
    content_type: str = "image/png"
    details: Optional[Dict[str, Any]] = None


@dataclass(frozen=True)
class AnchorReceipt:
    token_address: str
    metadata_url: str
    signature: Optional[str] = None


class Publisher(Protocol):
    """Content-addressed publishing (pinning) service."""
    name: str

    def publish(self, content: PublishContent, content_type: str, *, name: str) -> PublishResult:
        ...


class LedgerClient(Protocol):
    name: str

    def update_metadata_pointer(self, token_address: str, signing_key: str, metadata_url: str) -> AnchorReceipt:
        ...


class RenderJob(Protocol):
    job_id: str

    def wait(self, timeout: Optional[float] = None) -> RenderResult:
        """Block until done; raise RenderFailed on failure or timeout."""
        ...


class RenderQueue(Protocol):
    name: str

    def submit(self, spec: RenderJobSpec) -> RenderJob:
        ...

    def shutdown(self) -> None:
        """Release workers; jobs not yet started are dropped."""
        ...


class MetadataFetcher(Protocol):
    def fetch(self, token_address: str, metadata_uri: str) -> Optional[Dict[str, Any]]:
        """Prior metadata document, or None when it cannot be obtained."""
        ...
