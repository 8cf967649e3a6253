"""
Watch-List Rule Engine

Decides which groups and agents are enrolled on the manager watch list and
why. A dimension is enrolled when at least one rule matches; the reasons are
returned in a fixed order so the dashboard renders them consistently.

Group rules (per metric prediction):
- achievement probability below 30%
- week-over-week surge of 50% or more
- worsening trend while above target
- critical risk

Agent rules use absolute thresholds on the month-to-date rates:
- attitude error rate above 5%
- ops error rate above 6%

Reason strings are Korean because they are shown to managers verbatim.
"""

from typing import List, Optional

from kmcc_qc.models.enums import Category, RiskLevel, Trend
from kmcc_qc.models.schemas import PredictionResult


# =============================================================================
# Thresholds and Reason Texts
# =============================================================================

LOW_PROBABILITY_THRESHOLD = 30
SURGE_MULTIPLIER = 1.5

AGENT_ATTITUDE_THRESHOLD = 5.0
AGENT_OPS_THRESHOLD = 6.0

# Agent rates above these escalate the watch-list headline and risk
AGENT_ATTITUDE_SEVERE_THRESHOLD = 10.0
AGENT_OPS_SEVERE_THRESHOLD = 10.0

REASON_LOW_PROBABILITY = "목표 달성 확률 30% 미만"
REASON_SURGE = "전주 대비 50% 이상 급등"
REASON_WORSENING_OVER_TARGET = "악화 추세 + 목표 초과"
REASON_CRITICAL = "위험도 Critical"


def check_watch_list_conditions(
    prediction: PredictionResult,
    previous_week_rate: Optional[float] = None,
) -> List[str]:
    """
    Return every watch-list reason matched by one metric prediction.

    Args:
        prediction: Month-end prediction of the metric.
        previous_week_rate: Rate of the week before the latest one, if known.
            A zero rate gives no baseline and never counts as a surge.

    Returns:
        Matched reasons in rule order; empty when nothing matched.
    """
    reasons: List[str] = []

    if prediction.achievementProbability < LOW_PROBABILITY_THRESHOLD:
        reasons.append(REASON_LOW_PROBABILITY)

    if previous_week_rate and prediction.currentRate > previous_week_rate * SURGE_MULTIPLIER:
        reasons.append(REASON_SURGE)

    if prediction.trend == Trend.WORSENING and prediction.currentRate > prediction.targetRate:
        reasons.append(REASON_WORSENING_OVER_TARGET)

    if prediction.riskLevel == RiskLevel.CRITICAL:
        reasons.append(REASON_CRITICAL)

    return reasons


def check_agent_watch_conditions(attitude_rate: float, process_rate: float) -> List[str]:
    """
    Return the absolute-threshold reasons of an agent.

    Both comparisons are strict: exactly 5.00% / 6.00% is not flagged.
    """
    reasons: List[str] = []

    if attitude_rate > AGENT_ATTITUDE_THRESHOLD:
        reasons.append(f"태도 오류율 {attitude_rate:.2f}% (기준 5% 초과)")

    if process_rate > AGENT_OPS_THRESHOLD:
        reasons.append(f"오상담 오류율 {process_rate:.2f}% (기준 6% 초과)")

    return reasons


def group_watch_reasons(
    attitude: PredictionResult,
    ops: PredictionResult,
    previous_attitude_rate: Optional[float] = None,
    previous_ops_rate: Optional[float] = None,
) -> List[str]:
    """
    Combine the reasons of both metrics of a group, attitude first.

    Each reason is prefixed with its category label, e.g. "[태도] 위험도 Critical".
    """
    labelled = [
        (Category.ATTITUDE, check_watch_list_conditions(attitude, previous_attitude_rate)),
        (Category.OPS, check_watch_list_conditions(ops, previous_ops_rate)),
    ]
    return [
        f"[{category.label}] {reason}"
        for category, reasons in labelled
        for reason in reasons
    ]


def is_alert(
    attitude_probability: int,
    ops_probability: int,
    overall_risk: RiskLevel,
) -> bool:
    """Alert flag of a group: either probability below 30% or overall risk critical."""
    return (
        attitude_probability < LOW_PROBABILITY_THRESHOLD
        or ops_probability < LOW_PROBABILITY_THRESHOLD
        or overall_risk == RiskLevel.CRITICAL
    )


def agent_watch_headline(attitude_rate: float, ops_rate: float) -> str:
    """
    Single headline shown next to an agent on the watch list.

    The most severe breach wins: attitude over 10%, ops over 10%, attitude
    over 5%, then ops over 6%.
    """
    if attitude_rate > AGENT_ATTITUDE_SEVERE_THRESHOLD:
        return "태도 오류율 10% 초과"
    if ops_rate > AGENT_OPS_SEVERE_THRESHOLD:
        return "오상담 오류율 10% 초과"
    if attitude_rate > AGENT_ATTITUDE_THRESHOLD:
        return "태도 오류율 5% 초과"
    return "오상담 오류율 6% 초과"
