"""
Prediction Queries Module for the KMCC QC forecast backend.

Provides parameterized BigQuery Standard SQL for the forecast pipeline:
- Active monthly targets per center (simple and date-ranged shapes)
- Month-to-date and weekly error rates per center x service x channel
- Month-to-date error rates and item error counts per agent

Error rates are percentages of the maximum score of the evaluation:
    rate = SAFE_DIVIDE(SUM(errors), COUNT(*) * max_score) * 100
with a max score of 5 for attitude items and 11 for ops items. SAFE_DIVIDE
returns NULL for empty groups; ingestion coerces NULL to 0.

All functions return query strings only. Values are bound as named
parameters (@month, @center, ...) by the warehouse client; only the dataset
id is interpolated.
"""

from typing import Dict, Optional

from kmcc_qc.services.forecasting import week_case_sql


# =============================================================================
# CONSTANTS
# =============================================================================

ATTITUDE_MAX_SCORE: int = 5
OPS_MAX_SCORE: int = 11

# Boolean item columns of the evaluations table and their dashboard names
ERROR_ITEM_COLUMNS: Dict[str, str] = {
    "empathy_error": "공감표현누락",
    "consult_type_error": "상담유형오설정",
    "guide_error": "가이드미준수",
    "identity_check_error": "본인확인누락",
    "flag_keyword_error": "플래그키워드누락",
    "greeting_error": "첫인사끝인사누락",
    "apology_error": "사과표현누락",
    "additional_inquiry_error": "추가문의누락",
    "unkind_error": "불친절",
}


def _rate_expr(error_column: str, max_score: int) -> str:
    return f"ROUND(SAFE_DIVIDE(SUM({error_column}), COUNT(*) * {max_score}) * 100, 2)"


# =============================================================================
# TARGETS QUERY
# =============================================================================

def get_targets_query(dataset: str, with_period: bool = False) -> str:
    """
    Generate SQL to fetch the active monthly targets.

    Args:
        dataset: BigQuery dataset id holding the targets table.
        with_period: Also require the target period to cover the current
            date. Older targets tables have no period columns, so callers
            try both shapes.

    Returns:
        Query returning center, target_type ('attitude' | 'ops') and
        target_rate. A NULL center applies to every center.
    """
    period_filter = (
        "\n      AND period_start <= CURRENT_DATE()"
        "\n      AND period_end >= CURRENT_DATE()"
        if with_period else ""
    )

    return f"""
    SELECT
      center,
      target_type,
      target_rate
    FROM `{dataset}.targets`
    WHERE period_type = 'monthly'
      AND is_active = TRUE{period_filter}
    """


# =============================================================================
# GROUP WEEKLY RATES QUERY
# =============================================================================

def get_group_weekly_rates_query(dataset: str) -> str:
    """
    Generate SQL for month-to-date and weekly rates per group.

    One row per group and week; groups with no evaluations in a week have
    no row for it. Groups are kept even when no week matched (LEFT JOIN),
    in which case the week columns are NULL.

    Parameters:
        @month: Month in YYYY-MM format.

    Returns:
        Query with columns center, service, channel, total_checks,
        current_attitude_rate, current_ops_rate, week, checks,
        attitude_rate, ops_rate ordered by group then week.
    """
    return f"""
    WITH weekly_data AS (
      SELECT
        center,
        service,
        channel,
        {week_case_sql("evaluation_date")} AS week,
        COUNT(*) AS checks,
        {_rate_expr("attitude_error_count", ATTITUDE_MAX_SCORE)} AS attitude_rate,
        {_rate_expr("business_error_count", OPS_MAX_SCORE)} AS ops_rate
      FROM `{dataset}.evaluations`
      WHERE FORMAT_DATE('%Y-%m', evaluation_date) = @month
      GROUP BY center, service, channel, week
    ),
    current_totals AS (
      SELECT
        center,
        service,
        channel,
        COUNT(*) AS total_checks,
        {_rate_expr("attitude_error_count", ATTITUDE_MAX_SCORE)} AS current_attitude_rate,
        {_rate_expr("business_error_count", OPS_MAX_SCORE)} AS current_ops_rate
      FROM `{dataset}.evaluations`
      WHERE FORMAT_DATE('%Y-%m', evaluation_date) = @month
      GROUP BY center, service, channel
    )
    SELECT
      ct.center,
      ct.service,
      ct.channel,
      ct.total_checks,
      ct.current_attitude_rate,
      ct.current_ops_rate,
      wd.week,
      wd.checks,
      wd.attitude_rate,
      wd.ops_rate
    FROM current_totals ct
    LEFT JOIN weekly_data wd
      ON ct.center = wd.center
      AND ct.service = wd.service
      AND ct.channel = wd.channel
    ORDER BY ct.center, ct.service, ct.channel, wd.week
    """


# =============================================================================
# AGENT RATES QUERY
# =============================================================================

def get_agent_rates_query(
    dataset: str,
    center: Optional[str] = None,
    watch_only: bool = False,
) -> str:
    """
    Generate SQL for month-to-date rates and item error counts per agent.

    Agents whose id starts with @exclude_prefix are test data and excluded.

    Args:
        dataset: BigQuery dataset id.
        center: When set, adds a @center filter.
        watch_only: Keep only agents above @attitude_threshold or
            @ops_threshold. The rule engine still applies its own
            thresholds to the returned rows.

    Parameters:
        @month, @exclude_prefix, and @center / @attitude_threshold /
        @ops_threshold depending on the arguments.

    Returns:
        Query with columns agent_id, agent_name, center, service, channel,
        evaluation_count, attitude_rate, ops_rate and one
        <item>_errors column per ERROR_ITEM_COLUMNS entry.
    """
    item_counts = ",\n        ".join(
        f"SUM(CAST({column} AS INT64)) AS {column}s"
        for column in ERROR_ITEM_COLUMNS
    )
    center_filter = "\n        AND center = @center" if center else ""
    watch_filter = (
        "\n    WHERE attitude_rate > @attitude_threshold OR ops_rate > @ops_threshold"
        if watch_only else ""
    )

    return f"""
    WITH agent_errors AS (
      SELECT
        agent_id,
        agent_name,
        center,
        service,
        channel,
        COUNT(*) AS evaluation_count,
        {_rate_expr("attitude_error_count", ATTITUDE_MAX_SCORE)} AS attitude_rate,
        {_rate_expr("business_error_count", OPS_MAX_SCORE)} AS ops_rate,
        {item_counts}
      FROM `{dataset}.evaluations`
      WHERE FORMAT_DATE('%Y-%m', evaluation_date) = @month
        AND agent_id IS NOT NULL
        AND NOT STARTS_WITH(agent_id, @exclude_prefix){center_filter}
      GROUP BY agent_id, agent_name, center, service, channel
    )
    SELECT *
    FROM agent_errors{watch_filter}
    ORDER BY (attitude_rate + ops_rate) DESC
    """
