"""
Shared pytest fixtures.

- a temporary SQLite database migrated to head with the production alembic
  migrations (DATABASE_URL / STORAGE_ROOT point at tmp_path)
- a seeded "Woodland Respite" pool
- an orchestrator wired to the in-memory fakes from tests/fakes.py
- a FastAPI TestClient whose orchestrator dependency is that orchestrator
"""

from __future__ import annotations

import random
from collections.abc import Generator
from pathlib import Path
from typing import Any, Dict, List

import pytest
from fastapi.testclient import TestClient

from nft_api.core.config import ServiceConfig
from nft_api.core.db import upgrade_schema
from nft_api.modules.nfts.orchestrator import PipelineOrchestrator
from nft_api.modules.nfts.store import NftStore
from nft_api.modules.nfts.writer import PersistenceWriter
from nft_api.modules.recipes.service import RecipeCatalog
from tests.fakes import FakeLedger, FakeMetadataFetcher, FakePublisher, FakeRenderQueue

WOODLAND = "Woodland Respite"
DAWN = "Dawn of Man"

WOODLAND_SLOTS: List[Dict[str, Any]] = [
    {"slot_number": 1, "stat_points": 10, "cosmetic_points": 5, "hero_tier": "Common"},
    {"slot_number": 2, "stat_points": 50, "cosmetic_points": 40, "hero_tier": "Rare"},
    {"slot_number": 3, "stat_points": 90, "cosmetic_points": 85, "hero_tier": "Epic"},
]

HERO_TIER_IMAGES = {
    "woodland_respite_common": "https://gw.test/ipfs/common-hero",
    "woodland_respite_rare": "https://gw.test/ipfs/rare-hero",
    "woodland_respite_epic": "https://gw.test/ipfs/epic-hero",
    "dawn_of_man_common": "https://gw.test/ipfs/dawn-common-hero",
}


def minted_metadata(address: str) -> Dict[str, Any]:
    """Metadata document as it looks right after mint."""
    return {
        "name": f"Hero #{address[-3:]}",
        "symbol": "HERO",
        "image": f"https://gw.test/ipfs/egg-{address}",
        "seller_fee_basis_points": 500,
        "properties": {
            "category": "image",
            "creators": [{"address": "creator", "share": 100}],
            "files": [{"uri": f"https://gw.test/ipfs/egg-{address}", "type": "image/png"}],
        },
    }


def metadata_uri_for(address: str) -> str:
    return f"ipfs://minted-{address}"


@pytest.fixture(scope="function")
def db_url(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Generator[str, None, None]:
    """Fresh database per test, schema from the real migrations."""
    url = "sqlite:///" + (tmp_path / "test_app.db").as_posix()
    monkeypatch.setenv("DATABASE_URL", url)
    monkeypatch.setenv("STORAGE_ROOT", str(tmp_path / "storage"))
    upgrade_schema(url)
    yield url


@pytest.fixture
def catalog(db_url: str) -> RecipeCatalog:
    return RecipeCatalog(db_url)


@pytest.fixture
def store(db_url: str) -> NftStore:
    return NftStore(db_url)


@pytest.fixture
def writer(db_url: str) -> PersistenceWriter:
    return PersistenceWriter(db_url)


@pytest.fixture
def woodland(catalog: RecipeCatalog) -> str:
    catalog.seed_pool(WOODLAND, WOODLAND_SLOTS)
    return WOODLAND


@pytest.fixture
def service_config() -> ServiceConfig:
    return ServiceConfig(
        recipe_pools=[WOODLAND, DAWN],
        ledger_signing_key="test-signing-key",
        site_root_url="https://heroes.test",
        hero_tier_images=dict(HERO_TIER_IMAGES),
        external_wait_max_seconds=0,
        render_timeout_seconds=5,
    )


@pytest.fixture
def fetcher() -> FakeMetadataFetcher:
    f = FakeMetadataFetcher()
    for i in range(1, 10):
        address = f"TokenAddr{i:03d}"
        f.documents[metadata_uri_for(address)] = minted_metadata(address)
    return f


@pytest.fixture
def publisher() -> FakePublisher:
    return FakePublisher()


@pytest.fixture
def ledger() -> FakeLedger:
    return FakeLedger()


@pytest.fixture
def render_queue(tmp_path: Path) -> FakeRenderQueue:
    return FakeRenderQueue(tmp_path / "renders")


@pytest.fixture
def orchestrator(
    service_config: ServiceConfig,
    db_url: str,
    tmp_path: Path,
    publisher: FakePublisher,
    ledger: FakeLedger,
    render_queue: FakeRenderQueue,
    fetcher: FakeMetadataFetcher,
) -> PipelineOrchestrator:
    return PipelineOrchestrator(
        service_config,
        publisher=publisher,
        ledger=ledger,
        render_queue=render_queue,
        metadata_fetcher=fetcher,
        catalog=RecipeCatalog(db_url),
        store=NftStore(db_url),
        writer=PersistenceWriter(db_url),
        rng=random.Random(1234),
        archive_root=tmp_path / "archive",
    )


@pytest.fixture
def client(orchestrator: PipelineOrchestrator, service_config: ServiceConfig) -> Generator[TestClient, None, None]:
    from nft_api.main import app
    from nft_api.modules.nfts.deps import get_config, get_orchestrator

    app.dependency_overrides[get_orchestrator] = lambda: orchestrator
    app.dependency_overrides[get_config] = lambda: service_config
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()
