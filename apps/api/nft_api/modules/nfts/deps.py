from __future__ import annotations

import threading

from fastapi import FastAPI, Request

from nft_api.core.config import ServiceConfig, load_config
from nft_api.modules.recipes.service import RecipeCatalog

from .clients import build_collaborators
from .orchestrator import PipelineOrchestrator
from .store import NftStore

_lock = threading.Lock()


def get_config(request: Request) -> ServiceConfig:
    cfg = getattr(request.app.state, "config", None)
    if cfg is None:
        with _lock:
            cfg = getattr(request.app.state, "config", None)
            if cfg is None:
                cfg = load_config()
                request.app.state.config = cfg
    return cfg


def get_orchestrator(request: Request) -> PipelineOrchestrator:
    """Built once per app from configuration; tests override this dependency."""
    orch = getattr(request.app.state, "orchestrator", None)
    if orch is None:
        cfg = get_config(request)
        with _lock:
            orch = getattr(request.app.state, "orchestrator", None)
            if orch is None:
                c = build_collaborators(cfg)
                orch = PipelineOrchestrator(
                    cfg,
                    publisher=c.publisher,
                    ledger=c.ledger,
                    render_queue=c.render_queue,
                    metadata_fetcher=c.metadata_fetcher,
                )
                request.app.state.orchestrator = orch
    return orch


def close_orchestrator(app: FastAPI) -> None:
    """App shutdown: stop the render workers of the cached orchestrator, if one was built."""
    with _lock:
        orch = getattr(app.state, "orchestrator", None)
        if orch is None:
            return
        app.state.orchestrator = None
    orch.close()


def get_store() -> NftStore:
    return NftStore()


def get_catalog() -> RecipeCatalog:
    return RecipeCatalog()
