from __future__ import annotations

from enum import Enum
from typing import Dict, Tuple


class NftStage(str, Enum):
    minted = "minted"
    revealed = "revealed"
    customized = "customized"


# request key -> metadata attributes display name
COSMETIC_TRAITS_MAP: Dict[str, str] = {
    "race": "Race",
    "sex": "Sex",
    "faceStyle": "Face Style",
    "eyeDetail": "Eye Detail",
    "eyes": "Eyes",
    "facialHair": "Facial Hair",
    "glasses": "Glasses",
    "hairStyle": "Hair Style",
    "hairColor": "Hair Color",
    "necklace": "Necklace",
    "earring": "Earring",
    "nosePiercing": "Nose Piercing",
    "scar": "Scar",
    "tattoo": "Tattoo",
    "background": "Background",
}

# request key -> characters column
COSMETIC_TRAIT_COLUMNS: Dict[str, str] = {
    "race": "race",
    "sex": "sex",
    "faceStyle": "face_style",
    "eyeDetail": "eye_detail",
    "eyes": "eyes",
    "facialHair": "facial_hair",
    "glasses": "glasses",
    "hairStyle": "hair_style",
    "hairColor": "hair_color",
    "necklace": "necklace",
    "earring": "earring",
    "nosePiercing": "nose_piercing",
    "scar": "scar",
    "tattoo": "tattoo",
    "background": "background",
}

SKILL_KEYS: Tuple[str, ...] = ("constitution", "strength", "dexterity", "wisdom", "intelligence", "charisma")

TOKEN_NAME_APPROVED = "approved"

IMAGE_CONTENT_TYPE = "image/png"
JSON_CONTENT_TYPE = "application/json"


def slugify(value: str) -> str:
    # "Woodland Respite" -> "woodland_respite"
    return "_".join(value.lower().split())


def hero_tier_image_key(pool_id: str, hero_tier: str) -> str:
    return f"{slugify(pool_id)}_{slugify(hero_tier)}"
