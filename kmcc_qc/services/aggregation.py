"""
Dimension Aggregator Service

Assembles per-metric predictions into dimension-level records:

- GroupPrediction: attitude + ops predictions of a center x service x channel
  group, their equal-weight blend, the overall risk, the alert flag and the
  watch-list reasons
- AgentPrediction: an agent's month-to-date rates judged on absolute
  thresholds, with the trend borrowed from the agent's group
- Roll-ups for the predictions summary and the per-center view
"""

from collections import OrderedDict
from typing import Dict, List, Mapping, Optional, Sequence, Tuple

from kmcc_qc.models.enums import ProbabilityMethod, RiskLevel, Trend
from kmcc_qc.models.schemas import (
    AgentPrediction,
    AgentRateRow,
    CategorySummary,
    CenterSummary,
    CenterTargetMap,
    CenterTargets,
    GroupPrediction,
    GroupRateRow,
    PredictionResult,
    PredictionSummary,
    WeeklyMetric,
)
from kmcc_qc.services.forecasting import classify_risk, generate_prediction, round_half_up
from kmcc_qc.services.watch_list import (
    AGENT_ATTITUDE_SEVERE_THRESHOLD,
    check_agent_watch_conditions,
    check_watch_list_conditions,
    group_watch_reasons,
    is_alert,
)


# Ops rate above which a flagged agent is critical
AGENT_OPS_CRITICAL_THRESHOLD = 12.0

# Total (mean) rate above which an unflagged agent is medium risk
AGENT_TOTAL_MEDIUM_THRESHOLD = 5.0

GroupKey = Tuple[str, str, str]


def _mean(values: Sequence[float]) -> float:
    return sum(values) / len(values) if values else 0.0


def group_key(center: str, service: str, channel: str) -> GroupKey:
    return (center, service, channel)


# =============================================================================
# Trend and Risk Combination
# =============================================================================

def combine_trends(first: Trend, second: Trend) -> Trend:
    """
    Combine the trends of two metrics.

    Worsening wins over everything; improving requires both to improve.
    """
    if Trend.WORSENING in (first, second):
        return Trend.WORSENING
    if first == Trend.IMPROVING and second == Trend.IMPROVING:
        return Trend.IMPROVING
    return Trend.STABLE


def worst_risk_level(*levels: RiskLevel) -> RiskLevel:
    """Most severe of the given risk levels (LOW when none are given)."""
    if not levels:
        return RiskLevel.LOW
    return max(levels, key=lambda level: level.severity)


# =============================================================================
# Group Predictions
# =============================================================================

def build_total_prediction(
    attitude: PredictionResult,
    ops: PredictionResult,
) -> PredictionResult:
    """
    Blend the attitude and ops predictions with equal weight.

    Rates are averaged and rounded to 2 decimals, the probability is the
    rounded mean of both probabilities and the risk level is re-derived from
    the blended values.

    Args:
        attitude: Attitude prediction.
        ops: Ops prediction.

    Returns:
        PredictionResult for the total error rate.
    """
    current = round_half_up(_mean([attitude.currentRate, ops.currentRate]))
    predicted = round_half_up(_mean([attitude.predictedRate, ops.predictedRate]))
    target = round_half_up(_mean([attitude.targetRate, ops.targetRate]))
    w4_predicted = round_half_up(_mean([attitude.w4Predicted, ops.w4Predicted]))
    probability = int(round_half_up(
        _mean([attitude.achievementProbability, ops.achievementProbability]), 0
    ))
    weekly_rates = [
        round_half_up(_mean([a, o]))
        for a, o in zip(attitude.weeklyRates, ops.weeklyRates)
    ]
    trend = combine_trends(attitude.trend, ops.trend)

    return PredictionResult(
        currentRate=current,
        predictedRate=predicted,
        targetRate=target,
        achievementProbability=probability,
        trend=trend,
        riskLevel=classify_risk(probability, predicted, target, trend),
        weeklyRates=weekly_rates,
        w4Predicted=w4_predicted,
    )


def _weekly_metrics(row: GroupRateRow) -> List[WeeklyMetric]:
    metrics: Dict[str, WeeklyMetric] = {}

    for weekly in row.weeklyAttitude:
        metric = metrics.setdefault(weekly.week.value, WeeklyMetric(week=weekly.week))
        metric.checks = max(metric.checks, weekly.sampleCount)
        metric.attitudeRate = weekly.rate

    for weekly in row.weeklyOps:
        metric = metrics.setdefault(weekly.week.value, WeeklyMetric(week=weekly.week))
        metric.checks = max(metric.checks, weekly.sampleCount)
        metric.opsRate = weekly.rate

    return [metrics[week] for week in sorted(metrics)]


def build_group_prediction(
    row: GroupRateRow,
    targets: CenterTargets,
    days_passed: int,
    days_remaining: int,
    method: ProbabilityMethod = ProbabilityMethod.STATISTICAL,
) -> GroupPrediction:
    """
    Build the prediction record of one center x service x channel group.

    Args:
        row: Validated warehouse row of the group.
        targets: Targets of the group's center.
        days_passed: Days of the month already elapsed.
        days_remaining: Days of the month still to come.
        method: Achievement probability strategy.

    Returns:
        GroupPrediction
    """
    attitude_rates = row.attitude_rates
    ops_rates = row.ops_rates

    attitude = generate_prediction(
        row.currentAttitudeRate, attitude_rates, targets.attitude,
        days_passed, days_remaining, method,
    )
    ops = generate_prediction(
        row.currentOpsRate, ops_rates, targets.ops,
        days_passed, days_remaining, method,
    )
    total = build_total_prediction(attitude, ops)

    overall = worst_risk_level(attitude.riskLevel, ops.riskLevel)

    previous_attitude = attitude_rates[-2] if len(attitude_rates) >= 2 else None
    previous_ops = ops_rates[-2] if len(ops_rates) >= 2 else None
    reasons = group_watch_reasons(
        attitude, ops,
        previous_attitude_rate=previous_attitude,
        previous_ops_rate=previous_ops,
    )

    return GroupPrediction(
        center=row.center,
        service=row.service,
        channel=row.channel,
        serviceChannel=row.service_channel,
        currentChecks=row.totalChecks,
        attitudePrediction=attitude,
        processPrediction=ops,
        totalPrediction=total,
        overallRiskLevel=overall,
        alertFlag=is_alert(
            attitude.achievementProbability, ops.achievementProbability, overall
        ),
        watchListReason=reasons,
        attitudeWatchReasons=check_watch_list_conditions(attitude, previous_attitude),
        opsWatchReasons=check_watch_list_conditions(ops, previous_ops),
        weeklyMetrics=_weekly_metrics(row),
    )


# =============================================================================
# Agent Predictions
# =============================================================================

def agent_risk_level(
    attitude_rate: float,
    process_rate: float,
    reasons: Sequence[str],
) -> RiskLevel:
    """
    Risk level of an agent.

    Flagged agents are HIGH, or CRITICAL above 10% attitude / 12% ops.
    Unflagged agents are MEDIUM when their mean rate exceeds 5%, else LOW.
    """
    if reasons:
        if attitude_rate > AGENT_ATTITUDE_SEVERE_THRESHOLD or process_rate > AGENT_OPS_CRITICAL_THRESHOLD:
            return RiskLevel.CRITICAL
        return RiskLevel.HIGH

    total = _mean([attitude_rate, process_rate])
    return RiskLevel.MEDIUM if total > AGENT_TOTAL_MEDIUM_THRESHOLD else RiskLevel.LOW


def build_agent_prediction(
    row: AgentRateRow,
    group_trends: Optional[Mapping[GroupKey, Trend]] = None,
) -> AgentPrediction:
    """
    Build the watch-list record of one agent.

    Args:
        row: Validated warehouse row of the agent.
        group_trends: Combined attitude/ops trend per group key. Agents
            whose group has no prediction get a stable trend.

    Returns:
        AgentPrediction
    """
    trend = (group_trends or {}).get(
        group_key(row.center, row.service, row.channel), Trend.STABLE
    )
    reasons = check_agent_watch_conditions(row.attitudeRate, row.opsRate)

    return AgentPrediction(
        agentId=row.agentId,
        agentName=row.agentName,
        center=row.center,
        group=f"{row.service}/{row.channel}",
        service=row.service,
        channel=row.channel,
        evaluationCount=row.evaluationCount,
        attitudeRate=round_half_up(row.attitudeRate),
        processRate=round_half_up(row.opsRate),
        totalRate=round_half_up(_mean([row.attitudeRate, row.opsRate])),
        trend=trend,
        riskLevel=agent_risk_level(row.attitudeRate, row.opsRate, reasons),
        watchListReason=reasons,
        mainErrors=list(row.topErrors),
    )


def group_trend_map(predictions: Sequence[GroupPrediction]) -> Dict[GroupKey, Trend]:
    """Map each group to the combined trend of its total prediction."""
    return {
        group_key(p.center, p.service, p.channel): p.totalPrediction.trend
        for p in predictions
    }


# =============================================================================
# Roll-ups
# =============================================================================

def summarize_predictions(predictions: Sequence[GroupPrediction]) -> PredictionSummary:
    """Headline counts: groups, alerted groups and groups per total risk level."""
    risk_counts = {level.value: 0 for level in RiskLevel}
    for prediction in predictions:
        risk_counts[prediction.totalPrediction.riskLevel.value] += 1

    return PredictionSummary(
        totalGroups=len(predictions),
        atRiskGroups=sum(1 for p in predictions if p.alertFlag),
        riskCounts=risk_counts,
    )


def _category_summary(results: Sequence[PredictionResult], target: float) -> CategorySummary:
    return CategorySummary(
        current=round_half_up(_mean([r.currentRate for r in results])),
        predicted=round_half_up(_mean([r.predictedRate for r in results])),
        target=target,
        probability=int(round_half_up(_mean([r.achievementProbability for r in results]), 0)),
    )


def summarize_centers(
    predictions: Sequence[GroupPrediction],
    targets: CenterTargetMap,
) -> List[CenterSummary]:
    """
    Roll group predictions up to one record per center.

    Centers appear in the order of their first group.
    """
    by_center: "OrderedDict[str, List[GroupPrediction]]" = OrderedDict()
    for prediction in predictions:
        by_center.setdefault(prediction.center, []).append(prediction)

    summaries = []
    for center, groups in by_center.items():
        center_targets = targets.for_center(center)
        summaries.append(CenterSummary(
            center=center,
            groupCount=len(groups),
            attitude=_category_summary(
                [g.attitudePrediction for g in groups], center_targets.attitude
            ),
            ops=_category_summary(
                [g.processPrediction for g in groups], center_targets.ops
            ),
            overallRiskLevel=worst_risk_level(*(g.overallRiskLevel for g in groups)),
        ))

    return summaries
