"""
JSON-line event logging shared by the HTTP layer and the pipeline.

Event keys: ts, level, message, request_id, event, module (+ extras).
"""
from __future__ import annotations

import datetime
import json
import logging
import os
from typing import Any, Dict, Optional

_log = logging.getLogger("nft_api")
if not _log.handlers:
    logging.basicConfig(level=os.getenv("LOG_LEVEL", "INFO"))


def now_iso() -> str:
    return datetime.datetime.now(datetime.timezone.utc).replace(microsecond=0).isoformat().replace("+00:00", "Z")


def emit(level: str, event: str, message: str, request_id: Optional[str], module: str, **extra: Any) -> None:
    payload: Dict[str, Any] = {
        "ts": now_iso(),
        "level": level.lower(),
        "message": message,
        "request_id": request_id,
        "event": event,
        "module": module,
    }
    payload.update(extra)
    lvl = logging.getLevelName(level.upper())
    if isinstance(lvl, int) and not _log.isEnabledFor(lvl):
        return
    print(json.dumps(payload, ensure_ascii=False, default=str), flush=True)
