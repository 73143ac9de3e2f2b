from __future__ import annotations

from typing import Optional
from sqlmodel import SQLModel, Field


# inserted once at reveal; never updated or deleted
class Token(SQLModel, table=True):
    __tablename__ = "tokens"

    id: str = Field(primary_key=True)
    token_address: str
    mint_name: Optional[str] = None
    mint_number: Optional[int] = None
    recipe: str
    token_number: int
    stat_points: int
    cosmetic_points: int
    stat_tier: int
    cosmetic_tier: int
    hero_tier: str
    created_at: str


# append-only (enforced by SQLite triggers in migration); one row per (nft_id, stage)
class MetadataRecord(SQLModel, table=True):
    __tablename__ = "metadata"

    id: str = Field(primary_key=True)
    nft_id: str = Field(foreign_key="tokens.id")
    stage: str  # minted|revealed|customized
    metadata_url: str
    image_url: Optional[str] = None
    created_at: str


# append-only
class TokenName(SQLModel, table=True):
    __tablename__ = "token_names"

    id: str = Field(primary_key=True)
    nft_id: str = Field(foreign_key="tokens.id")
    token_name: str
    token_name_status: str
    created_at: str


# append-only; at most one per token (customize)
class Character(SQLModel, table=True):
    __tablename__ = "characters"

    id: str = Field(primary_key=True)
    nft_id: str = Field(foreign_key="tokens.id")
    token_id: str
    constitution: Optional[int] = None
    strength: Optional[int] = None
    dexterity: Optional[int] = None
    wisdom: Optional[int] = None
    intelligence: Optional[int] = None
    charisma: Optional[int] = None
    race: Optional[str] = None
    sex: Optional[str] = None
    face_style: Optional[str] = None
    eye_detail: Optional[str] = None
    eyes: Optional[str] = None
    facial_hair: Optional[str] = None
    glasses: Optional[str] = None
    hair_style: Optional[str] = None
    hair_color: Optional[str] = None
    necklace: Optional[str] = None
    earring: Optional[str] = None
    nose_piercing: Optional[str] = None
    scar: Optional[str] = None
    tattoo: Optional[str] = None
    background: Optional[str] = None
    created_at: str


# append-only orchestrator state log
class TransitionEvent(SQLModel, table=True):
    __tablename__ = "transition_events"

    event_id: str = Field(primary_key=True)
    transition_id: str
    token_address: str
    kind: str  # reveal|customize
    state: str
    detail_json: Optional[str] = None
    request_id: Optional[str] = None
    created_at: str
