from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Request

from .deps import get_orchestrator, get_store
from .orchestrator import CustomizeRequest, PipelineOrchestrator, RevealRequest
from .schemas import (
    CustomizeIn,
    CustomizeOut,
    MetadataRecordOut,
    RevealIn,
    RevealOut,
    TokenDetailOut,
    TokenIdUniqueIn,
    TokenIdUniqueOut,
    TokenOut,
    TransitionEventOut,
    TransitionsOut,
)
from .store import NftStore
from .variables import NftStage

router = APIRouter(prefix="/nft", tags=["nfts"])

_STAGE_ORDER = [NftStage.minted.value, NftStage.revealed.value, NftStage.customized.value]


def _request_id(request: Request) -> str:
    st = getattr(request, "state", None)
    rid = getattr(st, "request_id", None) if st is not None else None
    return str(rid) if rid else (request.headers.get("x-request-id") or "")


@router.post("/reveal", response_model=RevealOut)
def reveal_nft(
    body: RevealIn,
    request: Request,
    orchestrator: PipelineOrchestrator = Depends(get_orchestrator),
) -> RevealOut:
    outcome = orchestrator.reveal(
        RevealRequest(
            token_address=body.token_address,
            metadata_uri=body.metadata_uri,
            mint_name=body.mint_name,
            mint_number=body.mint_number,
            recipe=body.recipe,
        ),
        request_id=_request_id(request),
    )
    return RevealOut(
        token_address=outcome.token_address,
        stat_points=outcome.stat_points,
        cosmetic_points=outcome.cosmetic_points,
        hero_tier=outcome.hero_tier,
        stat_tier=outcome.stat_tier,
        cosmetic_tier=outcome.cosmetic_tier,
    )


@router.post("/customize", response_model=CustomizeOut)
def customize_nft(
    body: CustomizeIn,
    request: Request,
    orchestrator: PipelineOrchestrator = Depends(get_orchestrator),
) -> CustomizeOut:
    outcome = orchestrator.customize(
        CustomizeRequest(
            token_address=body.token_address,
            token_name=body.token_name,
            token_id=body.token_id,
            metadata_uri=body.metadata_uri,
            cosmetic_traits=dict(body.cosmetic_traits),
            skills=body.skills.model_dump(exclude_none=True),
        ),
        request_id=_request_id(request),
    )
    return CustomizeOut(success=outcome.success)


@router.post("/token-id/unique", response_model=TokenIdUniqueOut)
def check_token_id_unique(body: TokenIdUniqueIn, store: NftStore = Depends(get_store)) -> TokenIdUniqueOut:
    return TokenIdUniqueOut(is_token_id_exist=store.is_token_id_taken(body.token_id))


@router.get("/{token_address}", response_model=TokenDetailOut)
def get_token(token_address: str, store: NftStore = Depends(get_store)) -> TokenDetailOut:
    token = store.find_asset_by_address(token_address)
    if token is None:
        raise HTTPException(status_code=404, detail=f"NFT not found: {token_address}")

    records = store.list_metadata_records(token.id)
    stages = {r.stage for r in records}
    current = NftStage.minted.value
    for s in _STAGE_ORDER:
        if s in stages:
            current = s

    character = store.get_character(token.id)
    return TokenDetailOut(
        token=TokenOut(**token.model_dump()),
        stage=current,
        metadata=[
            MetadataRecordOut(
                stage=r.stage,
                metadata_url=r.metadata_url,
                image_url=r.image_url,
                created_at=r.created_at,
            )
            for r in records
        ],
        character=character.model_dump(exclude={"id", "nft_id"}) if character else None,
    )


@router.get("/{token_address}/transitions", response_model=TransitionsOut)
def get_token_transitions(token_address: str, store: NftStore = Depends(get_store)) -> TransitionsOut:
    items = [TransitionEventOut(**ev) for ev in store.list_transition_events(token_address)]
    return TransitionsOut(token_address=token_address, items=items)
