from __future__ import annotations

import sqlite3
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional

from nft_api.core.db import connect
from nft_api.core.errors import AllocationCollision, AlreadyInStage, ExternalServiceFault, NftError, TokenIdTaken
from nft_api.core.ids import new_ulid
from nft_api.core.observability import now_iso

from .allocator import Allocation
from .variables import COSMETIC_TRAIT_COLUMNS, SKILL_KEYS, TOKEN_NAME_APPROVED, NftStage


@dataclass(frozen=True)
class MetadataPointer:
    metadata_url: str
    image_url: Optional[str] = None


def _insert_metadata_record(conn: sqlite3.Connection, nft_id: str, stage: NftStage, pointer: MetadataPointer) -> str:
    rid = new_ulid()
    conn.execute(
        "INSERT INTO metadata (id, nft_id, stage, metadata_url, image_url, created_at) VALUES (?,?,?,?,?,?);",
        (rid, nft_id, stage.value, pointer.metadata_url, pointer.image_url, now_iso()),
    )
    return rid


class PersistenceWriter:
    """
    Commits a stage transition as one SQLite transaction.

    Insert order puts the stage record last, and the unique indexes on
    tokens(token_address), tokens(recipe, token_number), metadata(nft_id, stage)
    and characters(nft_id|token_id) turn a lost race into a typed error
    instead of a second row.
    """

    def __init__(self, database_url: Optional[str] = None) -> None:
        self.database_url = database_url

    def _translate(self, e: sqlite3.IntegrityError, ctx: Dict[str, Any]) -> NftError:
        msg = str(e)
        address = str(ctx.get("token_address") or "")
        if "tokens.recipe" in msg and "tokens.token_number" in msg:
            return AllocationCollision(str(ctx.get("recipe")), int(ctx.get("slot_number") or 0))
        if "tokens.token_address" in msg:
            return AlreadyInStage(address, NftStage.revealed.value)
        if "characters.token_id" in msg:
            return TokenIdTaken(ctx.get("token_id"), address)
        if "characters.nft_id" in msg:
            return AlreadyInStage(address, NftStage.customized.value)
        if "metadata.nft_id" in msg:
            return AlreadyInStage(address, str(ctx.get("stage")))
        # NOT NULL / FOREIGN KEY / CHECK: the same write fails the same way every time
        return ExternalServiceFault("asset_store", msg, details={"token_address": address}, retryable=False)

    def commit_reveal(
        self,
        *,
        token_address: str,
        mint_name: Optional[str],
        mint_number: Optional[int],
        recipe: str,
        allocation: Allocation,
        minted: MetadataPointer,
        revealed: MetadataPointer,
    ) -> str:
        """Insert token + minted record + revealed record. Returns the token id."""
        ctx = {
            "token_address": token_address,
            "recipe": recipe,
            "slot_number": allocation.slot_number,
            "stage": NftStage.revealed.value,
        }
        nft_id = new_ulid()
        try:
            conn = connect(self.database_url)
        except sqlite3.Error as e:
            raise ExternalServiceFault("asset_store", str(e), details={"token_address": token_address}) from e
        try:
            conn.execute(
                """
                INSERT INTO tokens
                (id, token_address, mint_name, mint_number, recipe, token_number,
                 stat_points, cosmetic_points, stat_tier, cosmetic_tier, hero_tier, created_at)
                VALUES (?,?,?,?,?,?,?,?,?,?,?,?);
                """,
                (
                    nft_id,
                    token_address,
                    mint_name,
                    mint_number,
                    recipe,
                    allocation.slot_number,
                    allocation.stat_points,
                    allocation.cosmetic_points,
                    allocation.stat_tier,
                    allocation.cosmetic_tier,
                    allocation.hero_tier,
                    now_iso(),
                ),
            )
            _insert_metadata_record(conn, nft_id, NftStage.minted, minted)
            _insert_metadata_record(conn, nft_id, NftStage.revealed, revealed)
            conn.commit()
            return nft_id
        except sqlite3.IntegrityError as e:
            conn.rollback()
            raise self._translate(e, ctx) from e
        except sqlite3.Error as e:
            conn.rollback()
            raise ExternalServiceFault("asset_store", str(e), details={"token_address": token_address}) from e
        finally:
            conn.close()

    def commit_customize(
        self,
        *,
        nft_id: str,
        token_address: str,
        token_name: str,
        token_id: Any,
        cosmetic_traits: Mapping[str, Any],
        skills: Mapping[str, Any],
        customized: MetadataPointer,
    ) -> None:
        """Insert token name + character + customized record."""
        ctx = {
            "token_address": token_address,
            "token_id": token_id,
            "stage": NftStage.customized.value,
        }
        row: Dict[str, Any] = {
            "id": new_ulid(),
            "nft_id": nft_id,
            "token_id": str(token_id),
            "created_at": now_iso(),
        }
        for k in SKILL_KEYS:
            row[k] = skills.get(k)
        for key, col in COSMETIC_TRAIT_COLUMNS.items():
            v = cosmetic_traits.get(key)
            row[col] = None if v is None else str(v)

        keys = sorted(row.keys())
        try:
            conn = connect(self.database_url)
        except sqlite3.Error as e:
            raise ExternalServiceFault("asset_store", str(e), details={"token_address": token_address}) from e
        try:
            conn.execute(
                "INSERT INTO token_names (id, nft_id, token_name, token_name_status, created_at) VALUES (?,?,?,?,?);",
                (new_ulid(), nft_id, token_name, TOKEN_NAME_APPROVED, now_iso()),
            )
            conn.execute(
                f"INSERT INTO characters ({','.join(keys)}) VALUES ({','.join(['?'] * len(keys))});",
                [row[k] for k in keys],
            )
            _insert_metadata_record(conn, nft_id, NftStage.customized, customized)
            conn.commit()
        except sqlite3.IntegrityError as e:
            conn.rollback()
            raise self._translate(e, ctx) from e
        except sqlite3.Error as e:
            conn.rollback()
            raise ExternalServiceFault("asset_store", str(e), details={"token_address": token_address}) from e
        finally:
            conn.close()
