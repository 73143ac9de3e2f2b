from __future__ import annotations

from typing import Optional, Protocol

from nft_api.core.errors import AlreadyInStage, StageNotReached

from .models import Token
from .variables import NftStage


class StageRecordSource(Protocol):
    def find_asset_by_address(self, token_address: str) -> Optional[Token]:
        ...

    def has_stage_record(self, nft_id: str, stage: NftStage) -> bool:
        ...


def assert_stage_allowed(
    store: StageRecordSource,
    token_address: str,
    required_prior_stage: Optional[NftStage],
    forbidden_stage: NftStage,
) -> Optional[Token]:
    """
    Read-side idempotency check. Returns the asset row when one exists.

    This is check-then-act: a concurrent request can pass the same check. The
    unique indexes checked by PersistenceWriter reject the second insert.
    """
    token = store.find_asset_by_address(token_address)

    if token is not None and store.has_stage_record(token.id, forbidden_stage):
        raise AlreadyInStage(token_address, forbidden_stage.value)

    if required_prior_stage is not None and required_prior_stage is not NftStage.minted:
        if token is None or not store.has_stage_record(token.id, required_prior_stage):
            raise StageNotReached(token_address, required_prior_stage.value)

    return token


def assert_can_reveal(store: StageRecordSource, token_address: str) -> None:
    assert_stage_allowed(store, token_address, NftStage.minted, NftStage.revealed)


def assert_can_customize(store: StageRecordSource, token_address: str) -> Token:
    token = assert_stage_allowed(store, token_address, NftStage.revealed, NftStage.customized)
    if token is None:
        raise StageNotReached(token_address, NftStage.revealed.value)
    return token
