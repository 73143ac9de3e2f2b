"""
Typed errors for the reveal/customize pipeline.

Every error carries a stable ``code`` (the envelope's ``error`` key), the HTTP
status the API layer maps it to, and a ``details`` dict that always names the
asset involved when there is one.
"""
from __future__ import annotations

from typing import Any, Dict, Optional


class NftError(Exception):
    code = "nft_error"
    status_code = 400
    retryable = False

    def __init__(self, message: str, *, details: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(message)
        self.message = message
        self.details: Dict[str, Any] = dict(details or {})


class NoPriorMetadata(NftError):
    code = "no_prior_metadata"
    status_code = 422

    def __init__(self, token_address: str, metadata_uri: Optional[str] = None) -> None:
        super().__init__(
            f"No metadata found for NFT {token_address}",
            details={"token_address": token_address, "metadata_uri": metadata_uri},
        )


class AlreadyInStage(NftError):
    code = "already_in_stage"
    status_code = 409

    def __init__(self, token_address: str, stage: str) -> None:
        super().__init__(
            f"NFT {token_address} has already been {stage}",
            details={"token_address": token_address, "stage": stage},
        )


class StageNotReached(NftError):
    code = "stage_not_reached"
    status_code = 409

    def __init__(self, token_address: str, required_stage: str) -> None:
        super().__init__(
            f"NFT {token_address} has not been {required_stage} yet",
            details={"token_address": token_address, "required_stage": required_stage},
        )


class StaleMetadataUri(NftError):
    """The caller sent a metadata uri other than the one recorded for the current stage."""

    code = "stale_metadata_uri"
    status_code = 409

    def __init__(self, token_address: str, metadata_uri: str, current_uri: str) -> None:
        super().__init__(
            f"Metadata uri for NFT {token_address} is not the current one",
            details={"token_address": token_address, "metadata_uri": metadata_uri, "current_uri": current_uri},
        )


class PoolExhausted(NftError):
    code = "pool_exhausted"
    status_code = 409

    def __init__(self, pool_id: str) -> None:
        super().__init__(f"All tokens already revealed for recipe {pool_id}", details={"recipe": pool_id})


class UnknownRecipePool(NftError):
    code = "unknown_recipe"
    status_code = 404

    def __init__(self, pool_id: str) -> None:
        super().__init__(f"Unknown recipe: {pool_id}", details={"recipe": pool_id})


class TokenIdTaken(NftError):
    code = "token_id_taken"
    status_code = 409

    def __init__(self, token_id: Any, token_address: Optional[str] = None) -> None:
        super().__init__(
            f"Token id {token_id} is already used",
            details={"token_id": token_id, "token_address": token_address},
        )


class AllocationCollision(NftError):
    """Two reveals picked the same slot; the loser re-runs the whole reveal."""

    code = "allocation_collision"
    status_code = 409
    retryable = True

    def __init__(self, pool_id: str, slot_number: int) -> None:
        super().__init__(
            f"Slot {slot_number} of recipe {pool_id} was taken concurrently",
            details={"recipe": pool_id, "slot_number": slot_number},
        )


class ExternalServiceFault(NftError):
    code = "external_service_fault"
    status_code = 502
    retryable = True

    def __init__(
        self,
        service: str,
        message: str,
        *,
        details: Optional[Dict[str, Any]] = None,
        retryable: Optional[bool] = None,
    ) -> None:
        d = {"service": service}
        d.update(details or {})
        super().__init__(f"{service}: {message}", details=d)
        self.service = service
        if retryable is not None:
            self.retryable = retryable


class RenderFailed(ExternalServiceFault):
    """Render job failed or timed out. Not retried: the transition fails."""

    code = "render_failed"
    retryable = False

    def __init__(self, message: str, *, details: Optional[Dict[str, Any]] = None) -> None:
        super().__init__("render", message, details=details)


class ConfigurationError(NftError):
    code = "configuration_error"
    status_code = 500
