from __future__ import annotations

import sqlite3
from typing import Any, Dict, Iterable, List, Mapping, Optional

from nft_api.core.db import connect, table_exists
from nft_api.core.errors import ExternalServiceFault

from .models import RecipeSlot


class RecipeCatalog:
    """
    Catalog store: the pre-seeded recipe_slots table.
    Every call opens and closes its own connection.
    """

    def __init__(self, database_url: Optional[str] = None) -> None:
        self.database_url = database_url

    def _connect(self) -> sqlite3.Connection:
        conn = connect(self.database_url)
        if not table_exists(conn, "recipe_slots"):
            conn.close()
            raise ExternalServiceFault("catalog_store", "DB missing table: recipe_slots", retryable=False)
        return conn

    def list_slots(self, pool_id: str) -> List[RecipeSlot]:
        try:
            conn = self._connect()
            try:
                rows = conn.execute(
                    "SELECT * FROM recipe_slots WHERE pool_id=? ORDER BY slot_number",
                    (pool_id,),
                ).fetchall()
                return [RecipeSlot(**dict(r)) for r in rows]
            finally:
                conn.close()
        except sqlite3.Error as e:
            raise ExternalServiceFault("catalog_store", str(e), details={"recipe": pool_id}) from e

    def count_slots(self, pool_ids: Iterable[str]) -> Dict[str, int]:
        ids = list(pool_ids)
        out: Dict[str, int] = {p: 0 for p in ids}
        if not ids:
            return out
        try:
            conn = self._connect()
            try:
                rows = conn.execute(
                    f"SELECT pool_id, COUNT(1) AS c FROM recipe_slots WHERE pool_id IN ({','.join(['?'] * len(ids))}) GROUP BY pool_id",
                    ids,
                ).fetchall()
            finally:
                conn.close()
        except sqlite3.Error as e:
            raise ExternalServiceFault("catalog_store", str(e), details={"recipes": ids}) from e
        for r in rows:
            out[str(r["pool_id"])] = int(r["c"])
        return out

    def seed_pool(self, pool_id: str, slots: Iterable[Mapping[str, Any]]) -> int:
        """
        Insert catalog rows for a pool. Existing (pool_id, slot_number) rows are kept
        as they are, so seeding is repeatable. Returns the number of new rows.
        """
        try:
            conn = self._connect()
            try:
                inserted = 0
                for s in slots:
                    cur = conn.execute(
                        """
                        INSERT OR IGNORE INTO recipe_slots
                        (pool_id, slot_number, stat_points, cosmetic_points, hero_tier)
                        VALUES (?,?,?,?,?);
                        """,
                        (
                            pool_id,
                            int(s["slot_number"]),
                            int(s["stat_points"]),
                            int(s["cosmetic_points"]),
                            str(s["hero_tier"]),
                        ),
                    )
                    inserted += cur.rowcount
                conn.commit()
                return inserted
            finally:
                conn.close()
        except sqlite3.Error as e:
            raise ExternalServiceFault("catalog_store", str(e), details={"recipe": pool_id}) from e
