"""Analysis pipeline orchestration with explicit health signaling."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional

import config
from ai_insights import generate_ai_insights, is_placeholder
from correlation_engine import CorrelationEngine
from health_score import compute_health_score
from insight_engine import (
    generate_insights,
    generate_notifications,
    generate_recommendations,
    sort_recommendations,
)
from metric_aligner import DailyMetricRecord, align_daily_metrics
from pipeline.summary_builder import build_concise_summary

log = logging.getLogger("analysis_pipeline")

SOURCE_KEYS = ("recovery", "sleep", "workouts", "nutrition", "body", "strength")


class AnalysisPipeline:
    """One full analysis pass over a snapshot of source records."""

    def __init__(self, engine: Optional[CorrelationEngine] = None,
                 min_days: Optional[int] = None):
        self.engine = engine or CorrelationEngine()
        self.min_days = config.MIN_ANALYSIS_DAYS if min_days is None else min_days

    def run(self, sources: Optional[Dict[str, Iterable[Any]]] = None,
            skip_ai: bool = True) -> Dict[str, Any]:
        """Align, correlate, evaluate rules and score; return a JSON-ready report."""
        sources = sources or {}
        unknown = set(sources) - set(SOURCE_KEYS)
        if unknown:
            raise ValueError(f"Unknown source(s): {', '.join(sorted(unknown))}")

        status: Dict[str, Any] = {
            "run_started_at": datetime.utcnow().isoformat() + "Z",
            "analysis_status": "success",
            "degraded_reasons": [],
        }

        log.info("=" * 60)
        log.info("  ANALYSIS STARTED")
        log.info("=" * 60)

        log.info("Step 1/5: Aligning daily metrics...")
        records = align_daily_metrics(**{k: sources.get(k) for k in SOURCE_KEYS})
        if len(records) < self.min_days:
            status["degraded_reasons"].append("insufficient_daily_rows")

        log.info("Step 2/5: Computing correlations...")
        correlations = self.engine.compute(records)
        notable = self.engine.notable(correlations)
        if not correlations:
            status["degraded_reasons"].append("no_computable_correlations")

        log.info("Step 3/5: Evaluating insight rules...")
        rel_insights, rel_recs = self.engine.relationship_insights(records)
        insights = generate_insights(records) + rel_insights
        recommendations = sort_recommendations(generate_recommendations(records) + rel_recs)
        notifications = generate_notifications(records)

        log.info("Step 4/5: Scoring...")
        health = compute_health_score(records)
        summary = build_concise_summary(insights, recommendations, notable, notifications)

        ai_text = None
        if not skip_ai:
            log.info("Step 5/5: Requesting AI narrative...")
            ai_text = generate_ai_insights(notable, len(records))
            if is_placeholder(ai_text):
                status["degraded_reasons"].append("ai_insights_unavailable")
        else:
            log.info("Step 5/5: AI narrative SKIPPED")

        if status["degraded_reasons"]:
            status["analysis_status"] = "degraded"
            log.warning("Analysis degraded: %s", ", ".join(status["degraded_reasons"]))
        status["run_finished_at"] = datetime.utcnow().isoformat() + "Z"

        report = {
            **status,
            "data_days": len(records),
            "date_range": self._date_range(records),
            "daily_metrics": [r.to_dict() for r in records],
            "correlations": [c.to_dict() for c in correlations],
            "notable_correlations": [c.to_dict() for c in notable],
            "insights": [i.to_dict() for i in insights],
            "recommendations": [r.to_dict() for r in recommendations],
            "notifications": [n.to_dict() for n in notifications],
            "health_score": health.to_dict(),
            "summary": summary,
            "ai_insights": ai_text,
        }
        self._print_summary(report)
        return report

    @staticmethod
    def _date_range(records: List[DailyMetricRecord]) -> Optional[Dict[str, str]]:
        if not records:
            return None
        return {"start": records[0].date.isoformat(), "end": records[-1].date.isoformat()}

    @staticmethod
    def _print_summary(report: Dict[str, Any]) -> None:
        log.info("ANALYSIS SUMMARY:")
        log.info("  Days aligned:     %d", report["data_days"])
        log.info("  Correlations:     %d (%d notable)",
                 len(report["correlations"]), len(report["notable_correlations"]))
        log.info("  Insights:         %d", len(report["insights"]))
        log.info("  Recommendations:  %d", len(report["recommendations"]))
        log.info("  Notifications:    %d", len(report["notifications"]))
        log.info("  Health score:     %.1f", report["health_score"]["score"])
        log.info("  Status: %s", report["analysis_status"])


def run_analysis(skip_ai: bool = True,
                 min_abs_correlation: Optional[float] = None,
                 notable_min_abs: Optional[float] = None,
                 top_n: Optional[int] = None,
                 **sources: Iterable[Any]) -> Dict[str, Any]:
    engine = CorrelationEngine(min_abs_correlation=min_abs_correlation,
                               notable_min_abs=notable_min_abs, top_n=top_n)
    return AnalysisPipeline(engine=engine).run(sources, skip_ai=skip_ai)
