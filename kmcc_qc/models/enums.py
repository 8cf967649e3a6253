"""
Enumeration definitions for the KMCC QC forecast backend.

All enums inherit from both `str` and `Enum` to ensure JSON serialization
compatibility with Pydantic models, so the values travel to the dashboard
exactly as written here.
"""

from enum import Enum


class Week(str, Enum):
    """
    Fixed calendar-day week buckets within a month.

    Values: W1 (days 1-5), W2 (6-12), W3 (13-19), W4 (20-end)
    """
    W1 = "W1"
    W2 = "W2"
    W3 = "W3"
    W4 = "W4"


class Trend(str, Enum):
    """
    Trajectory of the two most recent weekly error rates.

    Error rates are "lower is better", so a falling rate is improving.
    """
    IMPROVING = "improving"
    STABLE = "stable"
    WORSENING = "worsening"


class RiskLevel(str, Enum):
    """
    Discrete risk of missing the monthly target.

    - low: likely to meet the target on a flat or improving trend
    - medium: reasonable chance, projected within 10% of target
    - high: weak chance or projected within 30% of target
    - critical: none of the above
    """
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"

    @property
    def severity(self) -> int:
        """Severity ranking used for roll-ups: critical=4 > high=3 > medium=2 > low=1."""
        return _RISK_SEVERITY[self]


_RISK_SEVERITY = {
    RiskLevel.LOW: 1,
    RiskLevel.MEDIUM: 2,
    RiskLevel.HIGH: 3,
    RiskLevel.CRITICAL: 4,
}


class Category(str, Enum):
    """
    Top-level evaluation categories whose error rates are forecast.

    - attitude: 5 scored items (greeting, empathy, apology, ...)
    - ops: 11 scored business/process items (consult type, guide, ...)
    """
    ATTITUDE = "attitude"
    OPS = "ops"

    @property
    def label(self) -> str:
        """Dashboard label used to prefix watch-list reasons."""
        return "태도" if self is Category.ATTITUDE else "오상담"


class ProbabilityMethod(str, Enum):
    """
    Achievement probability strategies.

    - statistical: normal-CDF approximation over weekly variance (default)
    - trend_heuristic: linear distance to target with a trend adjustment
    """
    STATISTICAL = "statistical"
    TREND_HEURISTIC = "trend_heuristic"
