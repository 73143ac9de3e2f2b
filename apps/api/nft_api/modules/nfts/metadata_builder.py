"""
Next-stage metadata documents.

Pure functions: no I/O, inputs are never mutated, and identical inputs give
identical documents. Fields of the prior document that this module does not
know about are carried over untouched.
"""
from __future__ import annotations

import copy
from typing import Any, Dict, List, Mapping, Optional

from .variables import COSMETIC_TRAITS_MAP, IMAGE_CONTENT_TYPE, SKILL_KEYS, NftStage

REVEAL_FIELDS = ("recipe", "stat_points", "cosmetic_points", "stat_tier", "cosmetic_tier", "hero_tier")


def cosmetic_attributes(cosmetic_traits: Mapping[str, Any]) -> List[Dict[str, Any]]:
    # unknown trait keys keep their raw key as trait_type
    return [
        {"trait_type": COSMETIC_TRAITS_MAP.get(key, key), "value": value}
        for key, value in cosmetic_traits.items()
    ]


def _properties(old: Mapping[str, Any], image_url: str) -> Dict[str, Any]:
    prev = old.get("properties")
    props: Dict[str, Any] = copy.deepcopy(dict(prev)) if isinstance(prev, Mapping) else {}
    props["files"] = [{"uri": image_url, "type": IMAGE_CONTENT_TYPE}]
    return props


def build_metadata(
    old_metadata: Optional[Mapping[str, Any]],
    new_attributes: Mapping[str, Any],
    stage: NftStage,
    *,
    image_url: str,
    site_root_url: str,
) -> Dict[str, Any]:
    """
    reveal:    new_attributes carries REVEAL_FIELDS
    customize: new_attributes carries token_name, skills{}, cosmetic_traits{}
    """
    stage = NftStage(stage)
    old = old_metadata or {}
    doc: Dict[str, Any] = copy.deepcopy(dict(old))

    doc["image"] = image_url
    doc["external_url"] = site_root_url

    if stage is NftStage.revealed:
        for k in REVEAL_FIELDS:
            if k in new_attributes:
                doc[k] = copy.deepcopy(new_attributes[k])
    elif stage is NftStage.customized:
        doc["token_name"] = new_attributes.get("token_name")
        skills = new_attributes.get("skills") or {}
        for k in SKILL_KEYS:
            if k in skills:
                doc[k] = skills[k]
        doc["attributes"] = cosmetic_attributes(new_attributes.get("cosmetic_traits") or {})
    else:
        raise ValueError(f"no metadata transition into stage {stage.value!r}")

    doc["properties"] = _properties(old, image_url)
    return doc
