"""
Forecasting Engine Service

This module implements the month-end quality forecast for one metric (attitude
or ops error rate) of one dimension. It turns the month-to-date error rate and
the chronological weekly rates into a projected month-end rate, a probability
of finishing at or below target, and a discrete risk level.

Pipeline per metric:
1. classify_trend: direction of the two most recent weekly rates
2. forecast_month_end: day-weighted blend of the current rate and an
   extrapolated final-week rate
3. estimate_achievement_probability: one of two named strategies
   (statistical / trend_heuristic)
4. classify_risk: first-match decision table

Every function here is pure. Days passed and days remaining are supplied by
the caller (see month_progress), so nothing reads the wall clock. Numeric edge
cases (empty history, zero variance, zero day total, non-positive target)
resolve to documented defaults rather than raising.

Error rates are "lower is better": a falling weekly rate is an improving trend.
"""

import calendar
import math
from dataclasses import dataclass
from datetime import date
from typing import Callable, Dict, List, Sequence, Tuple

import numpy as np

from kmcc_qc.models.enums import ProbabilityMethod, RiskLevel, Trend, Week
from kmcc_qc.models.schemas import PredictionResult


# =============================================================================
# Constants
# =============================================================================

# Week-over-week change (percentage points) treated as noise
TREND_NOISE_BAND = 0.3

# Last day-of-month of each week bucket; W4 runs to the end of the month
WEEK_BOUNDARIES: List[Tuple[int, Week]] = [
    (5, Week.W1),
    (12, Week.W2),
    (19, Week.W3),
]

# Standard deviation used when the weekly rates have zero variance
STD_DEV_FLOOR = 0.5

# sqrt(2/pi); 0.5 * (1 + tanh(c * z)) approximates the standard normal CDF
CDF_COEFFICIENT = 0.797885

# Short-circuit probabilities when there are fewer than two weekly points
SHORT_HISTORY_ON_TRACK = 70
SHORT_HISTORY_OFF_TRACK = 30

TREND_BONUS = {
    Trend.IMPROVING: 10,
    Trend.STABLE: 0,
    Trend.WORSENING: -15,
}


def round_half_up(value: float, digits: int = 2) -> float:
    """
    Round half away from zero for non-negative rates.

    Python's round() uses banker's rounding, which would turn 3.125 into 3.12
    where the dashboard expects 3.13.
    """
    factor = 10 ** digits
    return math.floor(value * factor + 0.5) / factor


def _clamp_probability(value: float) -> int:
    return int(max(0, min(100, math.floor(value + 0.5))))


# =============================================================================
# Weekly Bucketer
# =============================================================================

def get_week(day: int) -> Week:
    """
    Map a day of month (1-31) to its week bucket.

    Args:
        day: Day of month. Values outside 1-31 are a caller error and are
            not validated.

    Returns:
        Week.W1 for days 1-5, W2 for 6-12, W3 for 13-19, W4 otherwise.
    """
    for last_day, week in WEEK_BOUNDARIES:
        if day <= last_day:
            return week
    return Week.W4


def week_for_date(value: date) -> Week:
    """Week bucket of a calendar date."""
    return get_week(value.day)


def week_case_sql(column: str) -> str:
    """
    Render the week buckets as a BigQuery CASE expression.

    Keeps the warehouse aggregation on the same boundaries as get_week().

    Args:
        column: DATE expression to bucket, e.g. "evaluation_date".

    Returns:
        SQL CASE expression yielding 'W1'..'W4'.
    """
    branches = "\n".join(
        f"    WHEN EXTRACT(DAY FROM {column}) <= {last_day} THEN '{week.value}'"
        for last_day, week in WEEK_BOUNDARIES
    )
    return f"CASE\n{branches}\n    ELSE '{Week.W4.value}'\n  END"


# =============================================================================
# Trend Classifier
# =============================================================================

def classify_trend(weekly_rates: Sequence[float]) -> Trend:
    """
    Classify the direction of the two most recent weekly rates.

    Args:
        weekly_rates: Chronological weekly error rates.

    Returns:
        Trend.STABLE with fewer than two points or a change within
        +/- TREND_NOISE_BAND; IMPROVING when the rate fell by more than the
        band; WORSENING when it rose by more than the band.
    """
    if len(weekly_rates) < 2:
        return Trend.STABLE

    delta = weekly_rates[-1] - weekly_rates[-2]

    if delta < -TREND_NOISE_BAND:
        return Trend.IMPROVING
    if delta > TREND_NOISE_BAND:
        return Trend.WORSENING
    return Trend.STABLE


# =============================================================================
# Month-End Forecaster
# =============================================================================

@dataclass(frozen=True)
class MonthEndForecast:
    """Projected month-end rate and the extrapolated final-week rate."""
    predicted: float
    w4_predicted: float


def forecast_month_end(
    current_rate: float,
    weekly_rates: Sequence[float],
    days_passed: int,
    days_remaining: int,
) -> MonthEndForecast:
    """
    Project the month-end error rate.

    The last week-over-week change is carried forward one more week (floored
    at zero) and blended with the month-to-date rate, weighted by the days
    already elapsed and the days still to come.

    Args:
        current_rate: Error rate over the elapsed part of the month.
        weekly_rates: Chronological weekly error rates.
        days_passed: Days of the month already elapsed.
        days_remaining: Days of the month still to come.

    Returns:
        MonthEndForecast with both values rounded half-up to 2 decimals.

    Example:
        >>> forecast_month_end(3.0, [2.8, 3.0, 3.2], 19, 12)
        MonthEndForecast(predicted=3.15, w4_predicted=3.4)
    """
    if len(weekly_rates) < 2:
        w4_predicted = current_rate
        projected = current_rate
    else:
        weekly_change = weekly_rates[-1] - weekly_rates[-2]
        w4_predicted = max(0.0, weekly_rates[-1] + weekly_change)

        total_days = days_passed + days_remaining
        if total_days <= 0:
            projected = current_rate
        else:
            projected = (
                current_rate * days_passed + w4_predicted * days_remaining
            ) / total_days

    return MonthEndForecast(
        predicted=round_half_up(projected),
        w4_predicted=round_half_up(w4_predicted),
    )


def month_progress(month: str, today: date) -> Tuple[int, int]:
    """
    Split a month into days passed and days remaining relative to today.

    Args:
        month: Month in YYYY-MM format.
        today: Reference date injected by the caller.

    Returns:
        (days_passed, days_remaining). A past month is fully elapsed and a
        future month has not started.
    """
    year, month_number = (int(part) for part in month.split("-"))
    last_day = calendar.monthrange(year, month_number)[1]

    if (year, month_number) == (today.year, today.month):
        return today.day, last_day - today.day
    if (year, month_number) < (today.year, today.month):
        return last_day, 0
    return 0, last_day


# =============================================================================
# Achievement Probability Estimator
# =============================================================================

def statistical_probability(
    predicted: float,
    target: float,
    weekly_rates: Sequence[float],
) -> int:
    """
    Probability of finishing at or below target from weekly variance.

    Treats the month-end rate as normally distributed around the prediction
    with the population standard deviation of the weekly rates.

    Args:
        predicted: Projected month-end rate.
        target: Target rate.
        weekly_rates: Chronological weekly error rates.

    Returns:
        Integer percentage in [0, 100].
    """
    if len(weekly_rates) < 2:
        return SHORT_HISTORY_ON_TRACK if predicted <= target else SHORT_HISTORY_OFF_TRACK

    variance = float(np.var(np.asarray(weekly_rates, dtype=float)))
    std_dev = math.sqrt(variance) if variance > 0 else STD_DEV_FLOOR

    z_score = (target - predicted) / std_dev
    probability = 100 * 0.5 * (1 + math.tanh(CDF_COEFFICIENT * z_score))

    return _clamp_probability(probability)


def trend_heuristic_probability(
    predicted: float,
    target: float,
    trend: Trend,
) -> int:
    """
    Probability from the relative distance to target, nudged by the trend.

    Args:
        predicted: Projected month-end rate.
        target: Target rate.
        trend: Trend of the weekly rates.

    Returns:
        Integer percentage in [0, 100]. A non-positive target gives 100 when
        the prediction is at or below it and 0 otherwise.
    """
    if target <= 0:
        return 100 if predicted <= target else 0

    base = 100 - ((predicted - target) / target) * 100
    return _clamp_probability(base + TREND_BONUS[trend])


ProbabilityStrategy = Callable[[float, float, Sequence[float], Trend], int]

PROBABILITY_STRATEGIES: Dict[ProbabilityMethod, ProbabilityStrategy] = {
    ProbabilityMethod.STATISTICAL: (
        lambda predicted, target, rates, trend: statistical_probability(predicted, target, rates)
    ),
    ProbabilityMethod.TREND_HEURISTIC: (
        lambda predicted, target, rates, trend: trend_heuristic_probability(predicted, target, trend)
    ),
}


def estimate_achievement_probability(
    predicted: float,
    target: float,
    weekly_rates: Sequence[float],
    trend: Trend,
    method: ProbabilityMethod = ProbabilityMethod.STATISTICAL,
) -> int:
    """
    Estimate the probability (%) of finishing at or below target.

    Args:
        predicted: Projected month-end rate.
        target: Target rate.
        weekly_rates: Chronological weekly error rates.
        trend: Trend of the weekly rates.
        method: Strategy to use.

    Returns:
        Integer percentage in [0, 100].
    """
    strategy = PROBABILITY_STRATEGIES[ProbabilityMethod(method)]
    return strategy(predicted, target, weekly_rates, trend)


# =============================================================================
# Risk Classifier
# =============================================================================

def classify_risk(
    probability: float,
    predicted: float,
    target: float,
    trend: Trend,
) -> RiskLevel:
    """
    Classify risk of missing the target. First matching rule wins.

    1. probability >= 70 on an improving or stable trend -> LOW
    2. probability >= 40 and predicted within 110% of target -> MEDIUM
    3. probability >= 20 or predicted within 130% of target -> HIGH
    4. otherwise -> CRITICAL

    Args:
        probability: Achievement probability (%).
        predicted: Projected month-end rate.
        target: Target rate.
        trend: Trend of the weekly rates.

    Returns:
        RiskLevel
    """
    if probability >= 70 and trend in (Trend.IMPROVING, Trend.STABLE):
        return RiskLevel.LOW
    if probability >= 40 and predicted <= target * 1.1:
        return RiskLevel.MEDIUM
    if probability >= 20 or predicted <= target * 1.3:
        return RiskLevel.HIGH
    return RiskLevel.CRITICAL


# =============================================================================
# Prediction Assembly
# =============================================================================

def generate_prediction(
    current_rate: float,
    weekly_rates: Sequence[float],
    target_rate: float,
    days_passed: int,
    days_remaining: int,
    method: ProbabilityMethod = ProbabilityMethod.STATISTICAL,
) -> PredictionResult:
    """
    Build the full month-end prediction of one metric.

    Args:
        current_rate: Month-to-date error rate (%).
        weekly_rates: Chronological weekly error rates (%).
        target_rate: Monthly target rate (%).
        days_passed: Days of the month already elapsed.
        days_remaining: Days of the month still to come.
        method: Achievement probability strategy.

    Returns:
        PredictionResult whose riskLevel is derived from the other fields.
    """
    rates = [float(rate) for rate in weekly_rates]

    trend = classify_trend(rates)
    forecast = forecast_month_end(current_rate, rates, days_passed, days_remaining)
    probability = estimate_achievement_probability(
        forecast.predicted, target_rate, rates, trend, method
    )
    risk_level = classify_risk(probability, forecast.predicted, target_rate, trend)

    return PredictionResult(
        currentRate=round_half_up(current_rate),
        predictedRate=forecast.predicted,
        targetRate=target_rate,
        achievementProbability=probability,
        trend=trend,
        riskLevel=risk_level,
        weeklyRates=rates,
        w4Predicted=forecast.w4_predicted,
    )
