from __future__ import annotations

import os
from pathlib import Path
from logging.config import fileConfig

from sqlalchemy import engine_from_config, pool
from alembic import context

THIS = Path(__file__).resolve()

config = context.config
if config.config_file_name is not None:
    fileConfig(config.config_file_name, disable_existing_loggers=False)

# schema is hand-written in versions/ (SQLite triggers are not expressible in metadata)
target_metadata = None


def _repo_root() -> Path:
    # apps/api/migrations/env.py -> repo root = parents[3]
    return THIS.parents[3]


def _resolve_sqlite_url(url: str) -> str:
    if not url.startswith("sqlite:///"):
        return url
    p = url[len("sqlite:///") :]

    # absolute unix
    if p.startswith("/"):
        Path(p).parent.mkdir(parents=True, exist_ok=True)
        return url

    # absolute windows drive
    if len(p) >= 3 and p[1] == ":" and (p[2] == "/" or p[2] == "\\"):
        return url

    abs_path = (_repo_root() / p).resolve()
    abs_path.parent.mkdir(parents=True, exist_ok=True)
    return "sqlite:///" + abs_path.as_posix()


def get_url() -> str:
    # explicit -x db_url=... / Config attribute wins over the environment
    url = context.get_x_argument(as_dictionary=True).get("db_url")
    if not url:
        url = config.attributes.get("db_url")
    if not url:
        url = os.getenv("DATABASE_URL", "sqlite:///./data/app.db")
    return _resolve_sqlite_url(url)


def run_migrations_offline() -> None:
    url = get_url()
    context.configure(
        url=url,
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
    )
    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    configuration = config.get_section(config.config_ini_section) or {}
    configuration["sqlalchemy.url"] = get_url()

    connectable = engine_from_config(
        configuration,
        prefix="sqlalchemy.",
        poolclass=pool.NullPool,
        future=True,
    )

    with connectable.connect() as connection:
        context.configure(connection=connection, target_metadata=target_metadata)
        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
