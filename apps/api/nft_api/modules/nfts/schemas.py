from __future__ import annotations

from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

# request/response bodies keep the camelCase keys existing clients send;
# snake_case names are accepted as well


class _CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class RevealIn(_CamelModel):
    token_address: str = Field(..., alias="tokenAddress", min_length=1)
    metadata_uri: str = Field(..., alias="metadataUri", min_length=1)
    mint_name: Optional[str] = Field(None, alias="mintName")
    mint_number: Optional[int] = Field(None, alias="mintNumber")
    recipe: str = Field(..., min_length=1)


class RevealOut(_CamelModel):
    token_address: str = Field(..., alias="tokenAddress")
    stat_points: int = Field(..., alias="statPoints")
    cosmetic_points: int = Field(..., alias="cosmeticPoints")
    hero_tier: str = Field(..., alias="heroTier")
    stat_tier: int = Field(..., alias="statTier")
    cosmetic_tier: int = Field(..., alias="cosmeticTier")


class SkillsIn(BaseModel):
    constitution: Optional[int] = None
    strength: Optional[int] = None
    dexterity: Optional[int] = None
    wisdom: Optional[int] = None
    intelligence: Optional[int] = None
    charisma: Optional[int] = None


class CustomizeIn(_CamelModel):
    token_address: str = Field(..., alias="tokenAddress", min_length=1)
    token_name: str = Field(..., alias="tokenName", min_length=1)
    token_id: Union[int, str] = Field(..., alias="tokenId")
    cosmetic_traits: Dict[str, Any] = Field(default_factory=dict, alias="cosmeticTraits")
    skills: SkillsIn = Field(default_factory=SkillsIn)
    metadata_uri: str = Field(..., alias="metadataUri", min_length=1)


class CustomizeOut(BaseModel):
    success: bool


class TokenIdUniqueIn(_CamelModel):
    token_id: Union[int, str] = Field(..., alias="tokenId")


class TokenIdUniqueOut(_CamelModel):
    is_token_id_exist: bool = Field(..., alias="isTokenIdExist")


class MetadataRecordOut(BaseModel):
    stage: str
    metadata_url: str
    image_url: Optional[str] = None
    created_at: Optional[str] = None


class TokenOut(BaseModel):
    id: str
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
    created_at: Optional[str] = None


class TokenDetailOut(BaseModel):
    token: TokenOut
    stage: str
    metadata: List[MetadataRecordOut] = Field(default_factory=list)
    character: Optional[Dict[str, Any]] = None


class TransitionEventOut(BaseModel):
    event_id: str
    transition_id: str
    token_address: str
    kind: str
    state: str
    detail: Dict[str, Any] = Field(default_factory=dict)
    request_id: Optional[str] = None
    created_at: Optional[str] = None


class TransitionsOut(BaseModel):
    token_address: str
    items: List[TransitionEventOut]
