"""
Shared test configuration.

Adds src/ to sys.path so flat modules (metric_aligner, correlation_engine,
api, ...) import with plain `import module_name`, and provides a small
builder for DailyMetricRecord sequences.
"""

import os
import sys
from datetime import date, timedelta

import pytest

_project_root = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
_src_dir = os.path.join(_project_root, "src")

if _src_dir not in sys.path:
    sys.path.insert(0, _src_dir)

# Keep a developer's real key out of the AI narrative tests
os.environ.pop("OPENAI_API_KEY", None)

START = date(2024, 1, 1)


@pytest.fixture
def make_days():
    """make_days(recovery_score=[...], hrv=[...]) -> consecutive daily records.

    Lists may contain None; all lists are aligned from START.
    """
    from metric_aligner import DailyMetricRecord

    def _build(**series):
        n = max((len(v) for v in series.values()), default=0)
        out = []
        for i in range(n):
            values = {k: v[i] for k, v in series.items() if i < len(v) and v[i] is not None}
            out.append(DailyMetricRecord(date=START + timedelta(days=i), **values))
        return out

    return _build
