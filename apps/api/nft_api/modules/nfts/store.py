from __future__ import annotations

import json
import sqlite3
from typing import Any, Dict, Iterable, List, Optional

from nft_api.core.db import connect
from nft_api.core.errors import ExternalServiceFault
from nft_api.core.ids import new_ulid
from nft_api.core.observability import now_iso

from .models import Character, MetadataRecord, Token, TransitionEvent
from .variables import NftStage


def _safe_json_loads(v: Any) -> Dict[str, Any]:
    if not v:
        return {}
    if isinstance(v, dict):
        return v
    try:
        out = json.loads(v)
    except ValueError:
        return {}
    return out if isinstance(out, dict) else {}


class NftStore:
    """
    Asset store reads plus the transition event log.
    All writes that change an asset's stage go through PersistenceWriter.
    """

    def __init__(self, database_url: Optional[str] = None) -> None:
        self.database_url = database_url

    def _query(self, op: str, sql: str, params: Iterable[Any] = ()) -> List[sqlite3.Row]:
        try:
            conn = connect(self.database_url)
            try:
                return conn.execute(sql, tuple(params)).fetchall()
            finally:
                conn.close()
        except sqlite3.Error as e:
            raise ExternalServiceFault("asset_store", f"{op}: {e}") from e

    # --- asset reads ---
    def list_revealed_slots(self, pool_id: str) -> List[int]:
        rows = self._query(
            "list_revealed_slots",
            "SELECT token_number FROM tokens WHERE recipe=?",
            (pool_id,),
        )
        return [int(r["token_number"]) for r in rows]

    def count_revealed(self, pool_ids: Iterable[str]) -> Dict[str, int]:
        ids = list(pool_ids)
        out: Dict[str, int] = {p: 0 for p in ids}
        if not ids:
            return out
        rows = self._query(
            "count_revealed",
            f"SELECT recipe, COUNT(1) AS c FROM tokens WHERE recipe IN ({','.join(['?'] * len(ids))}) GROUP BY recipe",
            ids,
        )
        for r in rows:
            out[str(r["recipe"])] = int(r["c"])
        return out

    def find_asset_by_address(self, token_address: str) -> Optional[Token]:
        rows = self._query(
            "find_asset_by_address",
            "SELECT * FROM tokens WHERE token_address=? LIMIT 1",
            (token_address,),
        )
        return Token(**dict(rows[0])) if rows else None

    def has_stage_record(self, nft_id: str, stage: NftStage) -> bool:
        rows = self._query(
            "has_stage_record",
            "SELECT 1 FROM metadata WHERE nft_id=? AND stage=? LIMIT 1",
            (nft_id, NftStage(stage).value),
        )
        return bool(rows)

    def get_stage_record(self, nft_id: str, stage: NftStage) -> Optional[MetadataRecord]:
        rows = self._query(
            "get_stage_record",
            "SELECT * FROM metadata WHERE nft_id=? AND stage=? LIMIT 1",
            (nft_id, NftStage(stage).value),
        )
        return MetadataRecord(**dict(rows[0])) if rows else None

    def list_metadata_records(self, nft_id: str) -> List[MetadataRecord]:
        rows = self._query(
            "list_metadata_records",
            "SELECT * FROM metadata WHERE nft_id=? ORDER BY created_at, rowid",
            (nft_id,),
        )
        return [MetadataRecord(**dict(r)) for r in rows]

    def get_character(self, nft_id: str) -> Optional[Character]:
        rows = self._query(
            "get_character",
            "SELECT * FROM characters WHERE nft_id=? LIMIT 1",
            (nft_id,),
        )
        return Character(**dict(rows[0])) if rows else None

    def is_token_id_taken(self, token_id: Any) -> bool:
        rows = self._query(
            "is_token_id_taken",
            "SELECT EXISTS(SELECT 1 FROM characters WHERE token_id=?) AS e",
            (str(token_id),),
        )
        return bool(rows and rows[0]["e"])

    # --- transition log ---
    def append_transition_event(
        self,
        *,
        transition_id: str,
        token_address: str,
        kind: str,
        state: str,
        detail: Optional[Dict[str, Any]] = None,
        request_id: Optional[str] = None,
    ) -> str:
        event_id = new_ulid()
        try:
            conn = connect(self.database_url)
            try:
                conn.execute(
                    """
                    INSERT INTO transition_events
                    (event_id, transition_id, token_address, kind, state, detail_json, request_id, created_at)
                    VALUES (?,?,?,?,?,?,?,?);
                    """,
                    (
                        event_id,
                        transition_id,
                        token_address,
                        kind,
                        state,
                        json.dumps(detail or {}, ensure_ascii=False, default=str),
                        request_id or "",
                        now_iso(),
                    ),
                )
                conn.commit()
            finally:
                conn.close()
        except sqlite3.Error as e:
            raise ExternalServiceFault("asset_store", f"append_transition_event: {e}") from e
        return event_id

    def list_transition_events(self, token_address: str, limit: int = 200) -> List[Dict[str, Any]]:
        rows = self._query(
            "list_transition_events",
            "SELECT * FROM transition_events WHERE token_address=? ORDER BY created_at, rowid LIMIT ?",
            (token_address, limit),
        )
        out: List[Dict[str, Any]] = []
        for r in rows:
            ev = TransitionEvent(**dict(r))
            d = ev.model_dump(exclude={"detail_json"})
            d["detail"] = _safe_json_loads(ev.detail_json)
            out.append(d)
        return out
