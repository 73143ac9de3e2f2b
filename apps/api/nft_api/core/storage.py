"""
Local filesystem storage.

Defaults:
- STORAGE_ROOT: ./data/storage

Layout:
- metadata/<hash>.json   archived metadata documents (prior and published)
- renders/<token_id>.png render worker output
"""
from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any, Dict, Optional


def _repo_root() -> Path:
    # apps/api/nft_api/core/storage.py -> repo root = parents[4]
    return Path(__file__).resolve().parents[4]


def get_storage_root() -> Path:
    raw = os.getenv("STORAGE_ROOT", "./data/storage")
    p = Path(raw)
    return (_repo_root() / p).resolve() if not p.is_absolute() else p


def ensure_storage_root() -> Path:
    root = get_storage_root()
    root.mkdir(parents=True, exist_ok=True)
    return root


def metadata_dir(root: Optional[Path] = None) -> Path:
    d = (root or ensure_storage_root()) / "metadata"
    d.mkdir(parents=True, exist_ok=True)
    return d


def renders_dir(root: Optional[Path] = None) -> Path:
    d = (root or ensure_storage_root()) / "renders"
    d.mkdir(parents=True, exist_ok=True)
    return d


def extract_hash_from_ipfs_url(url: str) -> str:
    # ipfs://<hash>, https://gw/ipfs/<hash>, https://gw/ipfs/<hash>/file.json
    u = (url or "").strip().rstrip("/")
    if u.startswith("ipfs://"):
        return u[len("ipfs://") :].split("/")[0]
    if "/ipfs/" in u:
        return u.split("/ipfs/", 1)[1].split("/")[0]
    return u.rsplit("/", 1)[-1]


def archive_metadata(name: str, document: Dict[str, Any], root: Optional[Path] = None) -> Path:
    """
    Write a metadata document as <storage_root>/metadata/<name>.json.
    Re-archiving the same name overwrites with identical content.
    """
    safe = "".join(ch for ch in name if ch.isalnum() or ch in "-_.") or "unnamed"
    out = metadata_dir(root) / f"{safe}.json"
    out.write_text(json.dumps(document, ensure_ascii=False, indent=2), encoding="utf-8")
    return out


def storage_health() -> Dict[str, Any]:
    try:
        root = ensure_storage_root()
        probe = root / ".probe_write"
        probe.write_text("ok", encoding="utf-8")
        try:
            probe.unlink()
        except OSError:
            pass
        return {"status": "ok", "kind": "local_fs", "root": str(root.as_posix())}
    except Exception as e:
        return {"status": "error", "kind": "local_fs", "root": str(get_storage_root().as_posix()), "error": str(e)}
