"""
Derived result types.

Every value here is produced fresh by an analysis run from the current
DailyMetricRecord set and is never mutated afterwards.
"""

from __future__ import annotations

from dataclasses import dataclass, asdict, field, replace
from typing import Dict, List, Optional


@dataclass(frozen=True)
class CorrelationResult:
    """Pearson correlation between two daily metrics."""
    metric1: str
    metric2: str
    correlation: float  # in [-1, 1]
    strength: str  # "weak" | "moderate" | "strong"
    direction: str  # "positive" | "negative"
    n: int  # paired days
    p_value: float
    explanation: str

    @property
    def significance(self) -> float:
        return abs(self.correlation)

    def to_dict(self) -> dict:
        out = asdict(self)
        out["significance"] = self.significance
        return out


@dataclass(frozen=True)
class Insight:
    kind: str  # "success" | "warning" | "info"
    title: str
    message: str
    metric: Optional[str] = None
    value: Optional[float] = None

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass(frozen=True)
class Recommendation:
    category: str  # "recovery" | "sleep" | "training" | "nutrition"
    priority: str  # "high" | "medium" | "low"
    title: str
    description: str
    action: str
    based_on: List[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass(frozen=True)
class Notification:
    id: str
    kind: str  # "info" | "warning" | "critical"
    title: str
    message: str
    metric: str
    value: float
    threshold: float
    dismissed: bool = False

    def dismiss(self) -> "Notification":
        return replace(self, dismissed=True)

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass(frozen=True)
class HealthScore:
    """Composite 0-100 score normalised over the components with data."""
    score: float
    components: Dict[str, float]
    available_weight: float

    def to_dict(self) -> dict:
        return {
            "score": self.score,
            "components": dict(self.components),
            "available_weight": self.available_weight,
        }
