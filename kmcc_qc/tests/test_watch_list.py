"""
Watch-List Rule Engine Test Module

Covers kmcc_qc/services/watch_list.py: group reasons and their order,
the week-over-week surge rule, strict agent thresholds, category labels,
the alert flag and the agent headline.
"""

import pytest

from kmcc_qc.models import PredictionResult, RiskLevel, Trend
from kmcc_qc.services.watch_list import (
    REASON_CRITICAL,
    REASON_LOW_PROBABILITY,
    REASON_SURGE,
    REASON_WORSENING_OVER_TARGET,
    agent_watch_headline,
    check_agent_watch_conditions,
    check_watch_list_conditions,
    group_watch_reasons,
    is_alert,
)


def make_prediction(**overrides) -> PredictionResult:
    values = dict(
        currentRate=2.0,
        predictedRate=2.0,
        targetRate=3.0,
        achievementProbability=90,
        trend=Trend.STABLE,
        riskLevel=RiskLevel.LOW,
        weeklyRates=[2.0, 2.0],
        w4Predicted=2.0,
    )
    values.update(overrides)
    return PredictionResult(**values)


# =============================================================================
# Group Rules
# =============================================================================

class TestCheckWatchListConditions:

    def test_healthy_prediction_has_no_reasons(self):
        assert check_watch_list_conditions(make_prediction(), previous_week_rate=2.0) == []

    def test_all_rules_in_fixed_order(self):
        prediction = make_prediction(
            currentRate=6.0,
            achievementProbability=5,
            trend=Trend.WORSENING,
            riskLevel=RiskLevel.CRITICAL,
        )
        assert check_watch_list_conditions(prediction, previous_week_rate=3.0) == [
            REASON_LOW_PROBABILITY,
            REASON_SURGE,
            REASON_WORSENING_OVER_TARGET,
            REASON_CRITICAL,
        ]

    def test_probability_threshold_is_strict(self):
        assert check_watch_list_conditions(make_prediction(achievementProbability=30)) == []
        assert check_watch_list_conditions(make_prediction(achievementProbability=29)) == [
            REASON_LOW_PROBABILITY
        ]

    def test_surge_requires_previous_rate(self):
        prediction = make_prediction(currentRate=2.0)
        assert check_watch_list_conditions(prediction) == []
        assert check_watch_list_conditions(prediction, previous_week_rate=0.0) == []
        assert check_watch_list_conditions(prediction, previous_week_rate=1.0) == [REASON_SURGE]

    def test_surge_boundary_is_strict(self):
        prediction = make_prediction(currentRate=3.0)
        assert check_watch_list_conditions(prediction, previous_week_rate=2.0) == []

    def test_worsening_only_counts_over_target(self):
        under = make_prediction(currentRate=2.5, trend=Trend.WORSENING)
        over = make_prediction(currentRate=3.5, trend=Trend.WORSENING)
        assert check_watch_list_conditions(under) == []
        assert check_watch_list_conditions(over) == [REASON_WORSENING_OVER_TARGET]

    def test_idempotent(self):
        prediction = make_prediction(
            currentRate=6.0, achievementProbability=5, riskLevel=RiskLevel.CRITICAL
        )
        first = check_watch_list_conditions(prediction, previous_week_rate=3.0)
        second = check_watch_list_conditions(prediction, previous_week_rate=3.0)
        assert first == second


class TestGroupWatchReasons:

    def test_labels_and_attitude_first(self):
        attitude = make_prediction(riskLevel=RiskLevel.CRITICAL)
        ops = make_prediction(achievementProbability=10)

        assert group_watch_reasons(attitude, ops) == [
            f"[태도] {REASON_CRITICAL}",
            f"[오상담] {REASON_LOW_PROBABILITY}",
        ]

    def test_previous_rates_are_per_category(self):
        attitude = make_prediction(currentRate=2.0)
        ops = make_prediction(currentRate=2.0)

        reasons = group_watch_reasons(
            attitude, ops, previous_attitude_rate=2.0, previous_ops_rate=1.0
        )
        assert reasons == [f"[오상담] {REASON_SURGE}"]

    def test_empty_when_nothing_matches(self):
        assert group_watch_reasons(make_prediction(), make_prediction()) == []


class TestIsAlert:

    @pytest.mark.parametrize("attitude,ops,risk,expected", [
        (80, 80, RiskLevel.LOW, False),
        (29, 80, RiskLevel.LOW, True),
        (80, 29, RiskLevel.MEDIUM, True),
        (30, 30, RiskLevel.HIGH, False),
        (80, 80, RiskLevel.CRITICAL, True),
    ])
    def test_alert_flag(self, attitude, ops, risk, expected):
        assert is_alert(attitude, ops, risk) is expected


# =============================================================================
# Agent Rules
# =============================================================================

class TestCheckAgentWatchConditions:

    def test_attitude_just_over_threshold(self):
        reasons = check_agent_watch_conditions(5.01, 0.0)
        assert reasons == ["태도 오류율 5.01% (기준 5% 초과)"]

    def test_boundaries_are_strict(self):
        assert check_agent_watch_conditions(5.0, 6.0) == []

    def test_both_categories(self):
        assert check_agent_watch_conditions(7.5, 6.25) == [
            "태도 오류율 7.50% (기준 5% 초과)",
            "오상담 오류율 6.25% (기준 6% 초과)",
        ]


class TestAgentWatchHeadline:

    @pytest.mark.parametrize("attitude,ops,expected", [
        (10.5, 20.0, "태도 오류율 10% 초과"),
        (6.0, 10.5, "오상담 오류율 10% 초과"),
        (5.5, 7.0, "태도 오류율 5% 초과"),
        (1.0, 7.0, "오상담 오류율 6% 초과"),
    ])
    def test_most_severe_breach_wins(self, attitude, ops, expected):
        assert agent_watch_headline(attitude, ops) == expected
