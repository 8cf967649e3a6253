"""
Services package for the KMCC QC forecast backend.

Contains the forecasting core and the pipeline around it:
- forecasting: week buckets, trend, month-end forecast, probability, risk
- watch_list: watch-list rules for groups and agents
- aggregation: group/agent records and roll-ups
- predictions: warehouse-backed pipeline used by the API and jobs

The pure engine is re-exported here. The pipeline depends on the SQL layer
and is imported from kmcc_qc.services.predictions directly.
"""

from kmcc_qc.services.forecasting import (
    round_half_up,
    get_week,
    week_for_date,
    classify_trend,
    MonthEndForecast,
    forecast_month_end,
    month_progress,
    statistical_probability,
    trend_heuristic_probability,
    estimate_achievement_probability,
    classify_risk,
    generate_prediction,
)
from kmcc_qc.services.watch_list import (
    check_watch_list_conditions,
    check_agent_watch_conditions,
    group_watch_reasons,
    is_alert,
    agent_watch_headline,
)
from kmcc_qc.services.aggregation import (
    combine_trends,
    worst_risk_level,
    build_total_prediction,
    build_group_prediction,
    agent_risk_level,
    build_agent_prediction,
    summarize_predictions,
    summarize_centers,
)


__all__ = [
    # Forecasting
    'round_half_up',
    'get_week',
    'week_for_date',
    'classify_trend',
    'MonthEndForecast',
    'forecast_month_end',
    'month_progress',
    'statistical_probability',
    'trend_heuristic_probability',
    'estimate_achievement_probability',
    'classify_risk',
    'generate_prediction',
    # Watch list
    'check_watch_list_conditions',
    'check_agent_watch_conditions',
    'group_watch_reasons',
    'is_alert',
    'agent_watch_headline',
    # Aggregation
    'combine_trends',
    'worst_risk_level',
    'build_total_prediction',
    'build_group_prediction',
    'agent_risk_level',
    'build_agent_prediction',
    'summarize_predictions',
    'summarize_centers',
]
