"""
SQL Query Module for the KMCC QC forecast backend.

Provides parameterized BigQuery queries for the forecast pipeline. All query
functions are re-exported here so callers can import from kmcc_qc.sql.

Example usage:
    from kmcc_qc.sql import get_group_weekly_rates_query

    rows = await warehouse.fetch(
        get_group_weekly_rates_query("KMCC_QC"),
        {"month": "2026-01"},
    )
"""

from kmcc_qc.sql.prediction_queries import (
    ATTITUDE_MAX_SCORE,
    OPS_MAX_SCORE,
    ERROR_ITEM_COLUMNS,
    get_targets_query,
    get_group_weekly_rates_query,
    get_agent_rates_query,
)


__all__ = [
    'ATTITUDE_MAX_SCORE',
    'OPS_MAX_SCORE',
    'ERROR_ITEM_COLUMNS',
    'get_targets_query',
    'get_group_weekly_rates_query',
    'get_agent_rates_query',
]
