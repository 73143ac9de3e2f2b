"""
Service configuration.

Read once from the environment by ``load_config`` and then passed explicitly to
the orchestrator and the adapters. Nothing below the API layer calls
``os.getenv`` for pipeline settings.
"""
from __future__ import annotations

import json
import os
from typing import Dict, List, Optional

from pydantic import BaseModel, Field, field_validator

from .errors import ConfigurationError

DEFAULT_RECIPE_POOLS = ["Woodland Respite", "Dawn of Man"]


class PublishingCredentials(BaseModel):
    api_key: str = ""
    secret_api_key: str = ""
    gateway: str = "https://gateway.pinata.cloud"
    api_base_url: str = "https://api.pinata.cloud"


class ServiceConfig(BaseModel):
    recipe_pools: List[str] = Field(default_factory=lambda: list(DEFAULT_RECIPE_POOLS))
    publishing_credentials: PublishingCredentials = Field(default_factory=PublishingCredentials)
    ledger_signing_key: str = ""
    ledger_gateway_url: str = ""
    site_root_url: str = ""

    # "<pool slug>_<hero tier slug>" -> pre-published image url, e.g. woodland_respite_epic
    hero_tier_images: Dict[str, str] = Field(default_factory=dict)

    reveal_max_attempts: int = Field(5, ge=1)
    external_max_attempts: int = Field(3, ge=1)
    external_wait_max_seconds: float = Field(4.0, ge=0)
    render_timeout_seconds: float = Field(600.0, gt=0)
    http_timeout_seconds: float = Field(30.0, gt=0)

    # ascending lower bounds; tier = 1 + number of thresholds <= points
    stat_tier_thresholds: List[int] = Field(default_factory=lambda: [20, 40, 60, 80])
    cosmetic_tier_thresholds: List[int] = Field(default_factory=lambda: [20, 40, 60, 80])

    @field_validator("stat_tier_thresholds", "cosmetic_tier_thresholds")
    @classmethod
    def _ascending(cls, v: List[int]) -> List[int]:
        if list(v) != sorted(v):
            raise ValueError("tier thresholds must be ascending")
        return v


def _split_csv(raw: Optional[str]) -> List[str]:
    return [x.strip() for x in (raw or "").split(",") if x.strip()]


def _int_list(name: str, raw: Optional[str]) -> Optional[List[int]]:
    if raw is None or not raw.strip():
        return None
    try:
        return [int(x) for x in _split_csv(raw)]
    except ValueError as e:
        raise ConfigurationError(f"{name} must be a comma separated list of integers", details={"value": raw}) from e


def load_config() -> ServiceConfig:
    hero_raw = os.getenv("HERO_TIER_IMAGES")
    hero: Dict[str, str] = {}
    if hero_raw:
        try:
            hero = json.loads(hero_raw)
        except ValueError as e:
            raise ConfigurationError("HERO_TIER_IMAGES must be a JSON object", details={"value": hero_raw}) from e
        if not isinstance(hero, dict):
            raise ConfigurationError("HERO_TIER_IMAGES must be a JSON object", details={"value": hero_raw})

    data: Dict[str, object] = {
        "recipe_pools": _split_csv(os.getenv("RECIPE_POOLS")) or list(DEFAULT_RECIPE_POOLS),
        "publishing_credentials": PublishingCredentials(
            api_key=os.getenv("PINATA_API_KEY", ""),
            secret_api_key=os.getenv("PINATA_API_SECRET_KEY", ""),
            gateway=os.getenv("PINATA_GATEWAY", "https://gateway.pinata.cloud"),
            api_base_url=os.getenv("PINATA_API_URL", "https://api.pinata.cloud"),
        ),
        "ledger_signing_key": os.getenv("LEDGER_SIGNING_KEY", ""),
        "ledger_gateway_url": os.getenv("LEDGER_GATEWAY_URL", ""),
        "site_root_url": os.getenv("WEBSITE_URL", ""),
        "hero_tier_images": hero,
    }
    for key, env in (
        ("reveal_max_attempts", "REVEAL_MAX_ATTEMPTS"),
        ("external_max_attempts", "EXTERNAL_MAX_ATTEMPTS"),
        ("render_timeout_seconds", "RENDER_TIMEOUT_SECONDS"),
        ("http_timeout_seconds", "HTTP_TIMEOUT_SECONDS"),
    ):
        v = os.getenv(env)
        if v:
            data[key] = v
    stat = _int_list("STAT_TIER_THRESHOLDS", os.getenv("STAT_TIER_THRESHOLDS"))
    if stat is not None:
        data["stat_tier_thresholds"] = stat
    cosmetic = _int_list("COSMETIC_TIER_THRESHOLDS", os.getenv("COSMETIC_TIER_THRESHOLDS"))
    if cosmetic is not None:
        data["cosmetic_tier_thresholds"] = cosmetic

    try:
        return ServiceConfig(**data)
    except ValueError as e:
        raise ConfigurationError("invalid service configuration", details={"error": str(e)}) from e
