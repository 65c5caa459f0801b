"""
Shared helpers for API routes.
Contains: CORS origins, request-payload conversion, text formatting.
"""

from __future__ import annotations

import logging
import os
from typing import Any, Dict, List

from models import Notification

log = logging.getLogger("api")

DEFAULT_ORIGINS = [
    "http://localhost:3000",
    "http://127.0.0.1:3000",
    "http://localhost:5173",
]


def _frontend_origins() -> List[str]:
    origin_env = os.getenv("FRONTEND_ORIGINS", "")
    return [o.strip() for o in origin_env.split(",") if o.strip()] or list(DEFAULT_ORIGINS)


# ─── Type coercion ──────────────────────────────────────────

def _text(value: Any) -> str:
    return str(value) if value is not None else ""


def _clip_text(text: str, max_len: int = 280) -> str:
    s = _text(text).replace("\n", " ").strip()
    if len(s) <= max_len:
        return s
    return s[: max_len - 3].rstrip() + "..."


# ─── Payload conversion ────────────────────────────────────

def _sources_from_payload(payload: Dict[str, Any]) -> Dict[str, List[Dict[str, Any]]]:
    """Drop empty source lists so the report only logs what was sent."""
    out = {}
    for key in ("recovery", "sleep", "workouts", "nutrition", "body", "strength"):
        rows = payload.get(key) or []
        if rows:
            out[key] = [dict(r) for r in rows]
    return out


def _notifications_from_payload(items: List[Dict[str, Any]]) -> List[Notification]:
    return [Notification(**item) for item in items]


def _export_preview(records: List[Dict[str, Any]], limit: int = 3) -> str:
    """Short one-line description of parsed export rows for logs."""
    if not records:
        return "no rows"
    dates = [_text(r.get("date")) for r in records if r.get("date")]
    span = f"{min(dates)} -> {max(dates)}" if dates else "undated"
    return _clip_text(f"{len(records)} rows ({span}), first: {records[:limit]}", 200)
