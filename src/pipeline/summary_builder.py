"""Helpers for building concise insight text for UI consumption."""

from __future__ import annotations

from typing import Optional, Sequence

from models import CorrelationResult, Insight, Notification, Recommendation

_EMPTY_SUMMARY = (
    "- What changed: Insufficient data in this run.\n"
    "- Why it matters: Without stable signal, training decisions should stay conservative.\n"
    "- Next 24-48h: Keep logging recovery, sleep and workouts, then rerun the analysis."
)

_KIND_RANK = {"critical": 0, "warning": 1, "success": 2, "info": 3}


def _clip(s: str, limit: int = 260) -> str:
    s = s.replace("\n", " ").strip()
    if len(s) <= limit:
        return s
    return s[: limit - 3].rstrip() + "..."


def _bullet(label: str, value: str) -> str:
    prefix = f"- {label}: "
    allowed = max(48, 280 - len(prefix))
    return prefix + _clip(value, allowed)


def build_concise_summary(
    insights: Optional[Sequence[Insight]] = None,
    recommendations: Optional[Sequence[Recommendation]] = None,
    notable: Optional[Sequence[CorrelationResult]] = None,
    notifications: Optional[Sequence[Notification]] = None,
) -> str:
    """Create a strict 3-bullet, human-friendly summary for UI cards.

    What changed   - most urgent active notification, else the most
                     pressing insight
    Why it matters - strongest notable correlation, else the next insight
    Next 24-48h    - highest-priority recommendation
    """
    insights = list(insights or [])
    recommendations = list(recommendations or [])
    notable = list(notable or [])
    alerts = [n for n in (notifications or []) if not n.dismissed]

    if not (insights or recommendations or notable or alerts):
        return _EMPTY_SUMMARY

    ranked = sorted(insights, key=lambda i: _KIND_RANK.get(i.kind, 9))

    what_changed = ""
    if alerts:
        top = sorted(alerts, key=lambda n: _KIND_RANK.get(n.kind, 9))[0]
        what_changed = f"{top.title}. {top.message}"
    elif ranked:
        what_changed = f"{ranked[0].title}. {ranked[0].message}"

    why_it_matters = ""
    if notable:
        why_it_matters = notable[0].explanation
    else:
        for item in ranked:
            line = f"{item.title}. {item.message}"
            if line != what_changed:
                why_it_matters = line
                break

    next_24_48h = ""
    if recommendations:
        rec = recommendations[0]
        next_24_48h = f"{rec.title}: {rec.action}"

    what_changed = _clip(what_changed or "Metrics are within their usual ranges for this period.")
    why_it_matters = _clip(why_it_matters or "No strong relationships between metrics were detected yet.")
    next_24_48h = _clip(next_24_48h or "Keep the current routine and reassess after a few more days of data.")

    return (
        f"{_bullet('What changed', what_changed)}\n"
        f"{_bullet('Why it matters', why_it_matters)}\n"
        f"{_bullet('Next 24-48h', next_24_48h)}"
    )
