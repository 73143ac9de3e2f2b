"""
Reveal / customize pipeline.

Each request runs as an explicit state machine:

    validating -> allocating (reveal) | rendering (customize)
               -> publishing_artifact -> publishing_metadata
               -> anchoring -> persisting -> done
    any non-terminal state -> failed

Every state change is appended to transition_events and emitted as a JSON log
line, so a transition that died midway can be read back per token address.

Retry policy:
- external calls (publish, ledger, store) retry ExternalServiceFault with a
  bounded exponential backoff (config.external_max_attempts)
- a reveal that loses a slot race at commit time (AllocationCollision) re-runs
  from allocation, up to config.reveal_max_attempts, with no delay
- everything else is fatal for the request

Nothing is compensated. Publishes are content-addressed, so a re-run only
repeats a remote write; a ledger anchor is never rolled back.
"""
from __future__ import annotations

import random
import shutil
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Dict, Optional, TypeVar

from tenacity import Retrying, retry_if_exception, retry_if_exception_type, stop_after_attempt, wait_exponential

from nft_api.core.config import ServiceConfig
from nft_api.core.errors import (
    AllocationCollision,
    ConfigurationError,
    ExternalServiceFault,
    NftError,
    NoPriorMetadata,
    StageNotReached,
    StaleMetadataUri,
    TokenIdTaken,
)
from nft_api.core.ids import new_ulid
from nft_api.core.observability import emit
from nft_api.core.storage import archive_metadata, extract_hash_from_ipfs_url, metadata_dir
from nft_api.modules.recipes.service import RecipeCatalog

from .allocator import Allocation, Allocator
from .clients.base import LedgerClient, MetadataFetcher, Publisher, PublishResult, RenderJobSpec, RenderQueue
from .guard import assert_can_customize, assert_can_reveal
from .metadata_builder import build_metadata
from .store import NftStore
from .variables import IMAGE_CONTENT_TYPE, JSON_CONTENT_TYPE, NftStage, hero_tier_image_key
from .writer import MetadataPointer, PersistenceWriter

T = TypeVar("T")


class TransitionState(str, Enum):
    validating = "validating"
    allocating = "allocating"
    rendering = "rendering"
    publishing_artifact = "publishing_artifact"
    publishing_metadata = "publishing_metadata"
    anchoring = "anchoring"
    persisting = "persisting"
    done = "done"
    failed = "failed"


TERMINAL_STATES = (TransitionState.done, TransitionState.failed)


def _same_location(a: str, b: str) -> bool:
    # ipfs://<cid> and <gateway>/ipfs/<cid> name the same document
    if a == b:
        return True
    if _is_ipfs(a) and _is_ipfs(b):
        return extract_hash_from_ipfs_url(a) == extract_hash_from_ipfs_url(b)
    return False


def _is_ipfs(uri: str) -> bool:
    return uri.startswith("ipfs://") or "/ipfs/" in uri


@dataclass(frozen=True)
class RevealRequest:
    token_address: str
    metadata_uri: str
    mint_name: Optional[str]
    mint_number: Optional[int]
    recipe: str


@dataclass(frozen=True)
class RevealOutcome:
    token_address: str
    stat_points: int
    cosmetic_points: int
    hero_tier: str
    stat_tier: int
    cosmetic_tier: int
    slot_number: int
    metadata_url: str
    image_url: str
    attempts: int = 1


@dataclass(frozen=True)
class CustomizeRequest:
    token_address: str
    token_name: str
    token_id: Any
    metadata_uri: str
    cosmetic_traits: Dict[str, Any] = field(default_factory=dict)
    skills: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class CustomizeOutcome:
    success: bool
    token_address: str
    metadata_url: str
    image_url: str


class Transition:
    """State tracker for one request; persists and logs every state change."""

    def __init__(self, store: NftStore, kind: str, token_address: str, request_id: Optional[str]) -> None:
        self.store = store
        self.kind = kind
        self.token_address = token_address
        self.request_id = request_id
        self.transition_id = new_ulid()
        self.state: Optional[TransitionState] = None

    def enter(self, state: TransitionState, **detail: Any) -> None:
        if self.state in TERMINAL_STATES:
            raise RuntimeError(f"transition {self.transition_id} already {self.state.value}")
        self.state = state
        emit(
            "error" if state is TransitionState.failed else "info",
            f"nft.transition.{state.value}",
            f"{self.kind} {self.token_address} -> {state.value}",
            self.request_id,
            __name__,
            transition_id=self.transition_id,
            token_address=self.token_address,
            **detail,
        )
        try:
            self.store.append_transition_event(
                transition_id=self.transition_id,
                token_address=self.token_address,
                kind=self.kind,
                state=state.value,
                detail=detail,
                request_id=self.request_id,
            )
        except ExternalServiceFault as e:
            # the JSON log line above is the fallback record
            emit(
                "warning",
                "nft.transition.log_write_failed",
                str(e),
                self.request_id,
                __name__,
                transition_id=self.transition_id,
            )

    def fail(self, exc: BaseException) -> None:
        if self.state in TERMINAL_STATES:
            return
        failed_in = self.state.value if self.state else None
        detail: Dict[str, Any] = {"failed_in": failed_in, "type": type(exc).__name__, "error": str(exc)}
        if isinstance(exc, NftError):
            detail["code"] = exc.code
            detail["details"] = exc.details
        self.enter(TransitionState.failed, **detail)


class PipelineOrchestrator:
    def __init__(
        self,
        config: ServiceConfig,
        *,
        publisher: Publisher,
        ledger: LedgerClient,
        render_queue: RenderQueue,
        metadata_fetcher: MetadataFetcher,
        catalog: Optional[RecipeCatalog] = None,
        store: Optional[NftStore] = None,
        writer: Optional[PersistenceWriter] = None,
        rng: Optional[random.Random] = None,
        archive_root: Optional[Path] = None,
    ) -> None:
        self.config = config
        self.publisher = publisher
        self.ledger = ledger
        self.render_queue = render_queue
        self.metadata_fetcher = metadata_fetcher
        self.catalog = catalog or RecipeCatalog()
        self.store = store or NftStore()
        self.writer = writer or PersistenceWriter()
        self.archive_root = archive_root
        self.allocator = Allocator(
            self.catalog,
            self.store,
            pools=config.recipe_pools,
            stat_tier_thresholds=config.stat_tier_thresholds,
            cosmetic_tier_thresholds=config.cosmetic_tier_thresholds,
            rng=rng,
        )

    def close(self) -> None:
        self.render_queue.shutdown()

    # --- retry helpers ---
    def _call_external(self, fn: Callable[..., T], *args: Any, **kwargs: Any) -> T:
        retrying = Retrying(
            stop=stop_after_attempt(self.config.external_max_attempts),
            wait=wait_exponential(multiplier=0.1, max=self.config.external_wait_max_seconds),
            retry=retry_if_exception(lambda e: isinstance(e, ExternalServiceFault) and e.retryable),
            reraise=True,
        )
        return retrying(fn, *args, **kwargs)

    def _recorded_metadata_uri(self, token_address: str, nft_id: str, stage: NftStage, metadata_uri: str) -> str:
        """The stage record is authoritative; a caller uri pointing elsewhere is rejected."""
        record = self.store.get_stage_record(nft_id, stage)
        if record is None:
            raise StageNotReached(token_address, stage.value)
        if not _same_location(metadata_uri, record.metadata_url):
            raise StaleMetadataUri(token_address, metadata_uri, record.metadata_url)
        return record.metadata_url

    def _fetch_prior(self, token_address: str, metadata_uri: str) -> Dict[str, Any]:
        old = self.metadata_fetcher.fetch(token_address, metadata_uri)
        if old is None:
            raise NoPriorMetadata(token_address, metadata_uri)
        archive_metadata(extract_hash_from_ipfs_url(metadata_uri), old, self.archive_root)
        return old

    def _publish_metadata(self, transition: Transition, doc: Dict[str, Any], stage: NftStage) -> PublishResult:
        transition.enter(TransitionState.publishing_metadata)
        published = self._call_external(
            self.publisher.publish,
            doc,
            JSON_CONTENT_TYPE,
            name=f"{transition.token_address}_{stage.value}.json",
        )
        archive_metadata(published.content_address, doc, self.archive_root)
        return published

    def _anchor(self, transition: Transition, published: PublishResult) -> None:
        transition.enter(TransitionState.anchoring, metadata_url=published.url)
        self._call_external(
            self.ledger.update_metadata_pointer,
            transition.token_address,
            self.config.ledger_signing_key,
            published.url,
        )

    def _persist(self, transition: Transition, fn: Callable[..., T], **kwargs: Any) -> T:
        # past the anchor: the new metadata is public, so the write is retried, never skipped
        transition.enter(TransitionState.persisting)
        try:
            return self._call_external(fn, **kwargs)
        except ExternalServiceFault as e:
            emit(
                "error",
                "nft.transition.persist_after_anchor_failed",
                f"{transition.kind} {transition.token_address} anchored but not persisted: {e}",
                transition.request_id,
                __name__,
                transition_id=transition.transition_id,
                token_address=transition.token_address,
            )
            raise

    # --- reveal ---
    def _hero_tier_image(self, recipe: str, hero_tier: str) -> str:
        key = hero_tier_image_key(recipe, hero_tier)
        url = self.config.hero_tier_images.get(key)
        if not url:
            raise ConfigurationError(
                f"no hero tier image configured for {key}",
                details={"recipe": recipe, "hero_tier": hero_tier, "key": key},
            )
        return url

    def _reveal_once(
        self, transition: Transition, req: RevealRequest, old: Dict[str, Any], attempt: int
    ) -> RevealOutcome:
        transition.enter(TransitionState.allocating, recipe=req.recipe, attempt=attempt)
        allocation: Allocation = self._call_external(self.allocator.allocate, req.recipe)

        transition.enter(TransitionState.publishing_artifact, slot_number=allocation.slot_number)
        image_url = self._hero_tier_image(req.recipe, allocation.hero_tier)

        attributes = {"recipe": req.recipe, **allocation.to_dict()}
        attributes.pop("slot_number")
        doc = build_metadata(
            old,
            attributes,
            NftStage.revealed,
            image_url=image_url,
            site_root_url=self.config.site_root_url,
        )
        published = self._publish_metadata(transition, doc, NftStage.revealed)
        self._anchor(transition, published)
        self._persist(
            transition,
            self.writer.commit_reveal,
            token_address=req.token_address,
            mint_name=req.mint_name,
            mint_number=req.mint_number,
            recipe=req.recipe,
            allocation=allocation,
            minted=MetadataPointer(req.metadata_uri, old.get("image")),
            revealed=MetadataPointer(published.url, image_url),
        )
        return RevealOutcome(
            token_address=req.token_address,
            stat_points=allocation.stat_points,
            cosmetic_points=allocation.cosmetic_points,
            hero_tier=allocation.hero_tier,
            stat_tier=allocation.stat_tier,
            cosmetic_tier=allocation.cosmetic_tier,
            slot_number=allocation.slot_number,
            metadata_url=published.url,
            image_url=image_url,
            attempts=attempt,
        )

    def reveal(self, req: RevealRequest, *, request_id: Optional[str] = None) -> RevealOutcome:
        transition = Transition(self.store, "reveal", req.token_address, request_id)
        try:
            transition.enter(TransitionState.validating, recipe=req.recipe)
            assert_can_reveal(self.store, req.token_address)
            old = self._fetch_prior(req.token_address, req.metadata_uri)

            outcome: Optional[RevealOutcome] = None
            retrying = Retrying(
                stop=stop_after_attempt(self.config.reveal_max_attempts),
                retry=retry_if_exception_type(AllocationCollision),
                reraise=True,
            )
            for attempt in retrying:
                with attempt:
                    outcome = self._reveal_once(transition, req, old, attempt.retry_state.attempt_number)
            if outcome is None:
                raise RuntimeError("reveal retry loop ended without an outcome")

            transition.enter(TransitionState.done, slot_number=outcome.slot_number, attempts=outcome.attempts)
            return outcome
        except Exception as e:
            transition.fail(e)
            raise

    # --- customize ---
    def _archive_image(self, image_path: Path, content_address: str) -> None:
        dest = metadata_dir(self.archive_root) / f"{content_address}{image_path.suffix or '.png'}"
        shutil.copyfile(image_path, dest)

    def customize(self, req: CustomizeRequest, *, request_id: Optional[str] = None) -> CustomizeOutcome:
        transition = Transition(self.store, "customize", req.token_address, request_id)
        try:
            transition.enter(TransitionState.validating, token_id=str(req.token_id))
            token = assert_can_customize(self.store, req.token_address)
            if self.store.is_token_id_taken(req.token_id):
                raise TokenIdTaken(req.token_id, req.token_address)
            prior_uri = self._recorded_metadata_uri(req.token_address, token.id, NftStage.revealed, req.metadata_uri)
            old = self._fetch_prior(req.token_address, prior_uri)

            transition.enter(TransitionState.rendering, hero_tier=token.hero_tier)
            job = self.render_queue.submit(
                RenderJobSpec(
                    token_id=str(req.token_id),
                    token_address=req.token_address,
                    hero_tier=token.hero_tier,
                    recipe=token.recipe,
                    cosmetic_traits=dict(req.cosmetic_traits),
                )
            )
            rendered = job.wait(timeout=self.config.render_timeout_seconds)

            transition.enter(TransitionState.publishing_artifact, job_id=job.job_id)
            image = self._call_external(
                self.publisher.publish,
                rendered.image_path,
                rendered.content_type or IMAGE_CONTENT_TYPE,
                name=f"{req.token_id}.png",
            )
            self._archive_image(rendered.image_path, image.content_address)

            doc = build_metadata(
                old,
                {
                    "token_name": req.token_name,
                    "skills": dict(req.skills),
                    "cosmetic_traits": dict(req.cosmetic_traits),
                },
                NftStage.customized,
                image_url=image.url,
                site_root_url=self.config.site_root_url,
            )
            published = self._publish_metadata(transition, doc, NftStage.customized)
            self._anchor(transition, published)
            self._persist(
                transition,
                self.writer.commit_customize,
                nft_id=token.id,
                token_address=req.token_address,
                token_name=req.token_name,
                token_id=req.token_id,
                cosmetic_traits=req.cosmetic_traits,
                skills=req.skills,
                customized=MetadataPointer(published.url, image.url),
            )

            transition.enter(TransitionState.done)
            return CustomizeOutcome(
                success=True,
                token_address=req.token_address,
                metadata_url=published.url,
                image_url=image.url,
            )
        except Exception as e:
            transition.fail(e)
            raise
