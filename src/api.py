"""
FastAPI backend contract for the health-insights frontend.

Route handlers are defined here; shared utilities live in routes/helpers.py.
Every request runs the analysis from scratch over the records it carries.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, ConfigDict, Field

from correlation_engine import CorrelationEngine
from insight_engine import active, dismiss
from metric_aligner import align_daily_metrics
from pipeline.analysis_pipeline import run_analysis
from routes.helpers import (
    _export_preview,
    _frontend_origins,
    _notifications_from_payload,
    _sources_from_payload,
)
from whoop_export import ALIGNER_KIND, parse_export

log = logging.getLogger("api")


# ─── App setup ─────────────────────────────────────────────

app = FastAPI(title="Health Correlation API", version="1.0.0")

app.add_middleware(
    CORSMiddleware,
    allow_origins=_frontend_origins(),
    allow_credentials=False,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["*"],
)


class SourcePayload(BaseModel):
    recovery: List[Dict[str, Any]] = Field(default_factory=list)
    sleep: List[Dict[str, Any]] = Field(default_factory=list)
    workouts: List[Dict[str, Any]] = Field(default_factory=list)
    nutrition: List[Dict[str, Any]] = Field(default_factory=list)
    body: List[Dict[str, Any]] = Field(default_factory=list)
    strength: List[Dict[str, Any]] = Field(default_factory=list)


class AnalysisRequest(SourcePayload):
    model_config = ConfigDict(extra="forbid")

    min_abs_correlation: Optional[float] = Field(default=None, ge=0.0, le=1.0)
    notable_min_abs: Optional[float] = Field(default=None, ge=0.0, le=1.0)
    top_n: Optional[int] = Field(default=None, ge=1, le=50)
    include_ai: bool = False


class WhoopImportRequest(BaseModel):
    csv_text: str


class NotificationPayload(BaseModel):
    id: str
    kind: str
    title: str
    message: str
    metric: str
    value: float
    threshold: float
    dismissed: bool = False


class DismissRequest(BaseModel):
    notifications: List[NotificationPayload]
    id: str


# ─── Routes ────────────────────────────────────────────────

@app.get("/")
def root() -> Dict[str, Any]:
    return {"service": "health-correlation-api", "status": "ok"}


@app.post("/api/v1/analysis")
def analysis(body: AnalysisRequest) -> Dict[str, Any]:
    payload = body.model_dump()
    sources = _sources_from_payload(payload)
    log.info("Analysis request: %s", ", ".join(f"{k}={len(v)}" for k, v in sources.items()) or "empty")
    return run_analysis(
        skip_ai=not body.include_ai,
        min_abs_correlation=body.min_abs_correlation,
        notable_min_abs=body.notable_min_abs,
        top_n=body.top_n,
        **sources,
    )


@app.post("/api/v1/correlations")
def correlations(body: AnalysisRequest) -> Dict[str, Any]:
    sources = _sources_from_payload(body.model_dump())
    records = align_daily_metrics(**sources)
    engine = CorrelationEngine(min_abs_correlation=body.min_abs_correlation,
                               notable_min_abs=body.notable_min_abs,
                               top_n=body.top_n)
    results = engine.compute(records)
    return {
        "data_days": len(records),
        "correlations": [c.to_dict() for c in results],
        "notable_correlations": [c.to_dict() for c in engine.notable(results)],
    }


@app.post("/api/v1/import/whoop")
def import_whoop(body: WhoopImportRequest) -> Dict[str, Any]:
    if not body.csv_text.strip():
        raise HTTPException(status_code=400, detail="csv_text is required")

    result = parse_export(body.csv_text)
    if result.data_type == "unknown":
        raise HTTPException(status_code=400, detail="Could not detect export type from CSV headers")

    out = result.to_dict()
    out["source"] = ALIGNER_KIND[result.data_type]
    log.info("Whoop import (%s): %s", result.data_type, _export_preview(out["records"]))
    return out


@app.post("/api/v1/notifications/dismiss")
def notifications_dismiss(body: DismissRequest) -> Dict[str, Any]:
    current = _notifications_from_payload([n.model_dump() for n in body.notifications])
    if not any(n.id == body.id for n in current):
        raise HTTPException(status_code=404, detail=f"Notification not found: {body.id}")
    updated = dismiss(current, body.id)
    return {
        "notifications": [n.to_dict() for n in updated],
        "active": [n.to_dict() for n in active(updated)],
    }
