"""
DB utilities (sqlite default).

Defaults:
- DATABASE_URL: sqlite:///./data/app.db
"""
from __future__ import annotations

import os
import sqlite3
from pathlib import Path
from typing import Any, Dict, Optional

from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine

DEFAULT_DATABASE_URL = "sqlite:///./data/app.db"


def get_database_url() -> str:
    return os.getenv("DATABASE_URL", DEFAULT_DATABASE_URL)


def _repo_root() -> Path:
    # apps/api/nft_api/core/db.py -> repo root = parents[4]
    return Path(__file__).resolve().parents[4]


def resolve_sqlite_path(database_url: str) -> Optional[Path]:
    if not database_url.startswith("sqlite:///"):
        return None
    p = database_url[len("sqlite:///") :]

    # absolute unix
    if p.startswith("/"):
        return Path(p)

    # absolute windows drive, both C:/ and C:\ forms
    if len(p) >= 3 and p[1] == ":" and (p[2] == "/" or p[2] == "\\"):
        return Path(p)

    # relative -> repo root
    return (_repo_root() / p).resolve()


def connect(database_url: Optional[str] = None) -> sqlite3.Connection:
    """
    One connection per store call; callers close it in a finally block.
    No connection is shared between requests.
    """
    url = database_url or get_database_url()
    path = resolve_sqlite_path(url)
    if path is None:
        raise ValueError(f"Only sqlite supported for now, got DATABASE_URL={url!r}")
    path.parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(str(path), timeout=30.0, check_same_thread=False)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA foreign_keys=ON;")
    return conn


def table_exists(conn: sqlite3.Connection, table: str) -> bool:
    row = conn.execute(
        "SELECT name FROM sqlite_master WHERE type='table' AND name=?",
        (table,),
    ).fetchone()
    return row is not None


def upgrade_schema(database_url: Optional[str] = None, revision: str = "head") -> None:
    """Run the alembic migrations in apps/api/migrations against database_url."""
    from alembic import command
    from alembic.config import Config

    api_dir = Path(__file__).resolve().parents[2]
    cfg = Config(str(api_dir / "alembic.ini"))
    cfg.set_main_option("script_location", str(api_dir / "migrations"))
    cfg.attributes["db_url"] = database_url or get_database_url()
    command.upgrade(cfg, revision)


_engines: Dict[str, Engine] = {}


def get_engine() -> Engine:
    url = get_database_url()
    if url in _engines:
        return _engines[url]

    connect_args = {}
    if url.startswith("sqlite:///"):
        connect_args = {"check_same_thread": False}

    resolved = url
    sp = resolve_sqlite_path(url)
    if sp is not None:
        sp.parent.mkdir(parents=True, exist_ok=True)
        resolved = "sqlite:///" + sp.as_posix()

    _engines[url] = create_engine(resolved, future=True, connect_args=connect_args)
    return _engines[url]


def db_health() -> Dict[str, Any]:
    url = get_database_url()
    kind = "sqlite" if url.startswith("sqlite") else "unknown"
    sp = resolve_sqlite_path(url)
    path = str(sp.as_posix()) if sp is not None else url

    try:
        eng = get_engine()
        with eng.connect() as conn:
            conn.execute(text("SELECT 1"))
        return {"status": "ok", "kind": kind, "path": path}
    except Exception as e:
        return {"status": "error", "kind": kind, "path": path, "error": str(e)}
