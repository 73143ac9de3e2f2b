from .base import (
    AnchorReceipt,
    LedgerClient,
    MetadataFetcher,
    Publisher,
    PublishResult,
    RenderJob,
    RenderJobSpec,
    RenderQueue,
    RenderResult,
)
from .registry import Collaborators, build_collaborators

__all__ = [
    "AnchorReceipt",
    "Collaborators",
    "LedgerClient",
    "MetadataFetcher",
    "Publisher",
    "PublishResult",
    "RenderJob",
    "RenderJobSpec",
    "RenderQueue",
    "RenderResult",
    "build_collaborators",
]
