"""Configuration loaded from .env"""

import os
from pathlib import Path

from dotenv import load_dotenv

load_dotenv(Path(__file__).parent.parent / ".env")

# Correlation cutoffs: full result list vs. "notable" surface
MIN_ABS_CORRELATION = float(os.getenv("MIN_ABS_CORRELATION", "0.1"))
NOTABLE_MIN_ABS_CORRELATION = float(os.getenv("NOTABLE_MIN_ABS_CORRELATION", "0.3"))
NOTABLE_TOP_N = int(os.getenv("NOTABLE_TOP_N", "5"))

# Below this many aligned days the analysis is reported as degraded
MIN_ANALYSIS_DAYS = int(os.getenv("MIN_ANALYSIS_DAYS", "7"))

# AI narrative
OPENAI_API_URL = os.getenv("OPENAI_API_URL", "https://api.openai.com/v1/chat/completions")
OPENAI_MODEL = os.getenv("OPENAI_MODEL", "gpt-4o-mini")
AI_INSIGHTS_TIMEOUT = float(os.getenv("AI_INSIGHTS_TIMEOUT", "30"))


def openai_api_key() -> str:
    """Read at call time so tests can patch the environment."""
    return os.getenv("OPENAI_API_KEY", "").strip()
