"""
Optional LLM narrative over the notable correlations.

One chat-completions request; any failure is logged and turned into a
fixed placeholder string so the analysis report is always complete.
"""

from __future__ import annotations

import logging
from typing import Sequence

import requests

import config
from models import CorrelationResult

log = logging.getLogger("ai_insights")

NO_KEY_MESSAGE = "AI insights unavailable - OpenAI API key not configured"
UNAVAILABLE_MESSAGE = "AI insights temporarily unavailable"
NO_CORRELATIONS_MESSAGE = "AI insights skipped - no notable correlations to describe"

SYSTEM_PROMPT = (
    "You are a health data analyst specializing in wearable device data "
    "and nutrition correlations."
)


def is_placeholder(text: str) -> bool:
    return text in (NO_KEY_MESSAGE, UNAVAILABLE_MESSAGE, NO_CORRELATIONS_MESSAGE)


def build_prompt(correlations: Sequence[CorrelationResult], n_days: int) -> str:
    lines = "\n".join(
        f"• {c.metric1} vs {c.metric2}: {c.correlation:.3f} ({c.strength} {c.direction})"
        for c in correlations
    )
    return (
        "As a health data analyst, provide exactly 3 actionable insights based on "
        f"these correlations from {n_days} days of health data:\n\n"
        f"{lines}\n\n"
        "Format your response as exactly 3 separate insights, each separated by "
        "double line breaks. Each insight should:\n"
        "1. Focus on one key pattern for health optimization\n"
        "2. Provide one specific, actionable recommendation\n"
        "3. Be concise but practical (2-3 sentences max)\n\n"
        "Example format:\n"
        "Insight 1: [Pattern description]. [Actionable recommendation].\n\n"
        "Insight 2: [Pattern description]. [Actionable recommendation].\n\n"
        "Insight 3: [Pattern description]. [Actionable recommendation]."
    )


def generate_ai_insights(correlations: Sequence[CorrelationResult], n_days: int,
                         session=None) -> str:
    """Narrative text, or one of the placeholder messages."""
    api_key = config.openai_api_key()
    if not api_key:
        return NO_KEY_MESSAGE
    if not correlations:
        return NO_CORRELATIONS_MESSAGE

    payload = {
        "model": config.OPENAI_MODEL,
        "messages": [
            {"role": "system", "content": SYSTEM_PROMPT},
            {"role": "user", "content": build_prompt(correlations, n_days)},
        ],
        "temperature": 0.7,
        "max_tokens": 500,
    }
    client = session or requests.Session()
    try:
        log.info("   Requesting AI narrative (%s, %d correlations)...",
                 config.OPENAI_MODEL, len(correlations))
        resp = client.post(
            config.OPENAI_API_URL,
            json=payload,
            headers={"Authorization": f"Bearer {api_key}"},
            timeout=config.AI_INSIGHTS_TIMEOUT,
        )
        resp.raise_for_status()
        content = resp.json()["choices"][0]["message"]["content"]
    except requests.RequestException as e:
        log.warning("AI insights request failed: %s", e)
        return UNAVAILABLE_MESSAGE
    except (KeyError, IndexError, TypeError, ValueError) as e:
        log.warning("AI insights response malformed: %s", e)
        return UNAVAILABLE_MESSAGE

    text = str(content or "").strip()
    return text or UNAVAILABLE_MESSAGE
